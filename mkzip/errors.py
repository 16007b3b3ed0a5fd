"""Exceptions raised by the mkzip codec.

All errors derive from MkzipError, itself a ValueError, so callers that
already guard codec calls with ``except ValueError`` keep working.
"""


class MkzipError(ValueError):
    """Base class for all mkzip errors."""


class UnsupportedType(MkzipError, TypeError):
    """Element type (or dimensionality) cannot be encoded."""


class CorruptHeader(MkzipError):
    """Type tag or dimension count in a tagged buffer is invalid."""


class TruncatedBuffer(CorruptHeader):
    """Buffer ends before the declared header does."""


class PayloadSizeMismatch(MkzipError):
    """Payload length disagrees with element width and declared shape."""


class InvalidCompressedStream(MkzipError):
    """Input to a backend's decompress() is not a valid compressed stream."""


__all__ = [
    "MkzipError",
    "UnsupportedType",
    "CorruptHeader",
    "TruncatedBuffer",
    "PayloadSizeMismatch",
    "InvalidCompressedStream",
]
