"""HTTP API building blocks: problem-details errors, JSON/CBOR formats, form files and session recording."""

__version__ = "0.1.0"
__all__ = ["errors", "formats", "formdata", "recorder"]