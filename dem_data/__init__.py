"""Demo capture decoder: frames, recording phases and string table replay."""

__all__ = [
    "bitstream",
    "capture_format",
    "capture_inspect",
    "cli",
    "codec",
    "config",
    "embedded",
    "errors",
    "messages",
    "parser",
    "phases",
    "records",
    "runlog",
    "specialize",
    "string_tables",
    "varint",
    "wire",
]
