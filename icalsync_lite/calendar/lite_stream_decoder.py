"""Byte stream decoding and line unfolding for ICS calendar processing - icalsync_lite.

Resolves the charset of a calendar stream (explicit override, byte-order mark
or default), decodes it to text and reverses RFC 5545 line folding before any
property is interpreted.
"""

import codecs
import logging
import re
from typing import BinaryIO, Optional, Union

from icalsync_lite.core.config_manager import DEFAULT_CHARSET, MAX_ICS_SIZE_BYTES
from icalsync_lite.exceptions import DecodeError

logger = logging.getLogger(__name__)

MAX_ICS_SIZE_WARNING = 10 * 1024 * 1024  # 10MB warning threshold

# Recognized byte-order marks and the charset each one selects
BYTE_ORDER_MARKS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
)

# A line break followed by a single space or tab continues the previous line
_FOLD_RE = re.compile(r"\r?\n[ \t]")

CalendarSource = Union[bytes, bytearray, str, BinaryIO]


def unfold_lines(text: str) -> str:
    """Join folded physical lines into logical lines.

    Works for CRLF and bare LF terminators; exactly one leading whitespace
    character of each continuation line is removed.

    Examples:
        >>> unfold_lines("DESCRIPTION:abc\\r\\n def\\r\\n")
        'DESCRIPTION:abcdef\\r\\n'
    """
    return _FOLD_RE.sub("", text)


def sniff_charset(data: bytes, default_charset: str = DEFAULT_CHARSET) -> tuple[str, int]:
    """Pick a charset from a leading byte-order mark.

    Args:
        data: Raw stream bytes
        default_charset: Charset used when no mark is present

    Returns:
        Tuple of (charset, length of the mark in bytes)
    """
    for bom, charset in BYTE_ORDER_MARKS:
        if data.startswith(bom):
            return charset, len(bom)
    return default_charset, 0


class LiteStreamDecoder:
    """Turns a calendar byte source into unfolded text."""

    def __init__(
        self,
        max_size_bytes: int = MAX_ICS_SIZE_BYTES,
        default_charset: str = DEFAULT_CHARSET,
    ):
        """Initialize stream decoder.

        Args:
            max_size_bytes: Largest accepted input, larger inputs raise DecodeError
            default_charset: Charset for streams without override or byte-order mark
        """
        self.max_size_bytes = max_size_bytes
        self.default_charset = default_charset

    def read_source(self, source: CalendarSource) -> Union[bytes, str]:
        """Read the whole source in one bounded read.

        Args:
            source: bytes, bytearray, str or a binary file object

        Returns:
            Raw bytes, or text when the source was already decoded

        Raises:
            DecodeError: If the source exceeds the size limit
        """
        if isinstance(source, str):
            data: Union[bytes, str] = source
        elif isinstance(source, (bytes, bytearray)):
            data = bytes(source)
        else:
            data = source.read(self.max_size_bytes + 1)

        if len(data) > self.max_size_bytes:
            raise DecodeError(
                f"ICS content too large: exceeds {self.max_size_bytes} byte limit",
                charset=self.default_charset,
            )
        if len(data) > MAX_ICS_SIZE_WARNING:
            logger.warning(
                "Large ICS content: %d bytes (threshold: %d)", len(data), MAX_ICS_SIZE_WARNING
            )
        return data

    def decode_bytes(self, data: bytes, charset: Optional[str] = None) -> str:
        """Decode raw bytes to text.

        An explicit charset is used as is; otherwise the byte-order mark picks
        UTF-8, UTF-16BE or UTF-16LE, falling back to the default charset.

        Args:
            data: Raw stream bytes
            charset: Optional charset override, no sniffing when given

        Returns:
            Decoded text without a leading byte-order mark

        Raises:
            DecodeError: If the charset is unknown or the bytes are malformed
        """
        if charset:
            resolved, skip = charset, 0
        else:
            resolved, skip = sniff_charset(data, self.default_charset)

        try:
            codecs.lookup(resolved)
        except LookupError as e:
            raise DecodeError(f"Unknown charset: {resolved}", charset=resolved) from e

        try:
            text = data[skip:].decode(resolved)
        except UnicodeDecodeError as e:
            offset = e.start + skip
            logger.error("Failed to decode ICS content as %s at byte %d", resolved, offset)
            raise DecodeError(
                f"Malformed {resolved} byte sequence at offset {offset}: {e.reason}",
                charset=resolved,
                offset=offset,
            ) from e

        # An override such as "utf-8" leaves the mark in the text
        if text.startswith("\ufeff"):
            text = text[1:]

        logger.debug("Decoded %d bytes as %s", len(data), resolved)
        return text

    def decode(self, source: CalendarSource, charset: Optional[str] = None) -> str:
        """Read, decode and unfold a calendar source.

        Args:
            source: bytes, bytearray, str or a binary file object
            charset: Optional charset override for byte sources

        Returns:
            Unfolded calendar text
        """
        data = self.read_source(source)
        if isinstance(data, str):
            text = data[1:] if data.startswith("\ufeff") else data
        else:
            text = self.decode_bytes(data, charset)
        return unfold_lines(text)


def decode_stream(source: CalendarSource, charset: Optional[str] = None) -> str:
    """Decode and unfold a calendar source with default limits (convenience function)."""
    return LiteStreamDecoder().decode(source, charset)
