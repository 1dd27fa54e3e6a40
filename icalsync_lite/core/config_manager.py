"""Configuration management for icalsync_lite parsing and serialization."""

from __future__ import annotations

import codecs
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Stream limits and output defaults
DEFAULT_CHARSET = "utf-8"
FOLD_LIMIT = 75  # RFC5545 3.1: lines SHOULD NOT be longer than 75 octets
MIN_FOLD_LIMIT = 10
MAX_ICS_SIZE_BYTES = 50 * 1024 * 1024  # 50MB limit
DEFAULT_PRODID = "-//icalsync-lite//icalsync_lite 1.0//EN"

# Key of the calendar display name in the top-level property mapping
CALENDAR_NAME = "CALENDAR_NAME"


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


class LiteCalendarSettings(BaseModel):
    """Settings shared by the parser and the serializer."""

    default_charset: str = Field(
        default=DEFAULT_CHARSET, description="Charset used when no override is given"
    )
    prodid: str = Field(default=DEFAULT_PRODID, description="PRODID written on output")
    fold_limit: int = Field(
        default=FOLD_LIMIT, ge=MIN_FOLD_LIMIT, description="Octets per physical output line"
    )
    max_ics_size_bytes: int = Field(
        default=MAX_ICS_SIZE_BYTES, gt=0, description="Maximum accepted input size"
    )


class ConfigManager:
    """Builds LiteCalendarSettings from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        parsed = parse_env_file(self.env_file_path)

        set_keys = []
        for key, val in parsed.items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build a settings dictionary from environment variables.

        Recognizes:
        - ICALSYNC_DEFAULT_CHARSET -> 'default_charset' (must be a known codec)
        - ICALSYNC_PRODID -> 'prodid'
        - ICALSYNC_FOLD_LIMIT -> 'fold_limit' (int >= MIN_FOLD_LIMIT)
        - ICALSYNC_MAX_ICS_SIZE_BYTES -> 'max_ics_size_bytes' (positive int)

        Returns:
            Dictionary of recognized, valid settings
        """
        cfg: dict[str, Any] = {}

        charset = os.environ.get("ICALSYNC_DEFAULT_CHARSET")
        if charset:
            try:
                codecs.lookup(charset)
                cfg["default_charset"] = charset
            except LookupError:
                logger.warning("Unknown ICALSYNC_DEFAULT_CHARSET=%r; ignoring", charset)

        prodid = os.environ.get("ICALSYNC_PRODID")
        if prodid:
            cfg["prodid"] = prodid

        fold_limit = os.environ.get("ICALSYNC_FOLD_LIMIT")
        if fold_limit:
            try:
                value = int(fold_limit)
                if value < MIN_FOLD_LIMIT:
                    raise ValueError(fold_limit)
                cfg["fold_limit"] = value
            except ValueError:
                logger.warning("Invalid ICALSYNC_FOLD_LIMIT=%r; ignoring", fold_limit)

        max_size = os.environ.get("ICALSYNC_MAX_ICS_SIZE_BYTES")
        if max_size:
            try:
                value = int(max_size)
                if value <= 0:
                    raise ValueError(max_size)
                cfg["max_ics_size_bytes"] = value
            except ValueError:
                logger.warning("Invalid ICALSYNC_MAX_ICS_SIZE_BYTES=%r; ignoring", max_size)

        return cfg

    def build_settings(self) -> LiteCalendarSettings:
        """Load .env file and build settings from the environment.

        Returns:
            Settings with environment overrides applied
        """
        self.load_env_file()
        return LiteCalendarSettings(**self.build_config_from_env())
