"""mkzip: lossless compression of numeric and character arrays.

    import mkzip
    packed = mkzip.pack(data)      # PackedArray, not usable as an array
    packed.ratio                   # compressed / original size
    data = mkzip.unpack(packed)    # original dtype and shape restored

Supported element types: float64, float32, bool, char (one byte per
character), int8, uint8, int16, uint16, int32, uint32, int64, uint64.

For the bare compressed bytes without the PackedArray guard:

    blob = mkzip.compress_array(data)
    data = mkzip.decompress_array(blob)
"""

__version__ = "1.0.0"

import logging
from typing import Optional, Union

import numpy as np

from .codec.backends import get_backend
from .codec.tagged import ElementType, decode
from .config import MkzipConfig
from .errors import (
    CorruptHeader,
    InvalidCompressedStream,
    MkzipError,
    PayloadSizeMismatch,
    TruncatedBuffer,
    UnsupportedType,
)
from .packed import PackedArray

logging.getLogger(__name__).addHandler(logging.NullHandler())


def pack(
    data,
    backend: Optional[str] = None,
    level: Optional[int] = None,
    config: Optional[MkzipConfig] = None,
) -> PackedArray:
    """Compress an array into a PackedArray.

    Args:
        data: Numpy array, nested list, scalar, str or bytes. Scalars are
            stored as 1x1 matrices.
        backend: 'zlib' (default), 'lzma' or 'zstd'.
        level: Backend compression level; None uses the config default.
        config: MkzipConfig; None uses the defaults.

    Returns:
        Immutable PackedArray with size and ratio statistics.

    Example:
        >>> import numpy as np
        >>> import mkzip
        >>> d = np.random.randint(1, 9, size=(1000, 1000))
        >>> packed = mkzip.pack(d)
        >>> np.array_equal(mkzip.unpack(packed), d)
        True
    """
    return PackedArray.from_array(data, backend=backend, level=level, config=config)


def unpack(packed: PackedArray) -> Union[np.ndarray, str, bytes]:
    """Restore the array held by a PackedArray.

    Returns a str for packed text, bytes for packed bytes, otherwise an
    ndarray with the original dtype and shape.
    """
    if not isinstance(packed, PackedArray):
        raise TypeError(f"Expected a PackedArray, got {type(packed).__name__}")
    return packed.unpack()


def compress_array(
    data,
    backend: Optional[str] = None,
    level: Optional[int] = None,
    config: Optional[MkzipConfig] = None,
) -> bytes:
    """Compress an array straight to bytes (no PackedArray wrapper).

    The result is the backend stream over the tagged buffer. Text comes
    back from decompress_array() as a char (S1) array.
    """
    return pack(data, backend=backend, level=level, config=config).compressed


def decompress_array(data: bytes, backend: str = "zlib") -> np.ndarray:
    """Decompress bytes from compress_array() back to an array.

    Args:
        data: Compressed bytes.
        backend: Backend that produced them.

    Raises:
        InvalidCompressedStream: data is not a valid stream for backend.
        CorruptHeader, TruncatedBuffer, PayloadSizeMismatch: the stream
            decompressed but does not hold a valid tagged buffer.
    """
    raw = get_backend(backend).decompress(data)
    arr, _element_type, _shape = decode(raw)
    return arr


__all__ = [
    "__version__",
    "ElementType",
    "MkzipConfig",
    "PackedArray",
    "pack",
    "unpack",
    "compress_array",
    "decompress_array",
    "MkzipError",
    "UnsupportedType",
    "CorruptHeader",
    "TruncatedBuffer",
    "PayloadSizeMismatch",
    "InvalidCompressedStream",
]
