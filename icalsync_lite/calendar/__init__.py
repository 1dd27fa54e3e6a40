"""Calendar stream processing: decoding, component parsing, grouping and serialization."""
