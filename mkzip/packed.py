"""PackedArray: an array that has been compressed and cannot be used as one.

Wrapping the compressed bytes in their own immutable type makes it
impossible to forget that an array is packed and run calculations on the
compressed buffer as if it were the data. Getting the data back always
takes an explicit unpack().

Pipeline:
    pack:   array -> tagged buffer (codec.tagged) -> backend.compress -> PackedArray
    unpack: PackedArray -> backend.decompress -> codec.tagged.decode -> array

All statistics are computed once, at construction, and frozen with the
instance. The source array is never referenced after packing.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

import numpy as np

from .codec.backends import get_backend
from .codec.tagged import ElementType, decode, element_type_of, encode
from .config import DEFAULT_CONFIG, MkzipConfig
from .errors import CorruptHeader, UnsupportedType

logger = logging.getLogger(__name__)


def _prepare_array(data, text_encoding: str) -> Tuple[np.ndarray, str]:
    """Normalize packable input to an ndarray. Returns (array, data_class)."""
    if isinstance(data, PackedArray):
        raise TypeError("Data is already packed; unpack() it first")

    if isinstance(data, str):
        try:
            raw = data.encode(text_encoding)
        except UnicodeEncodeError as exc:
            raise UnsupportedType(
                f"Text contains characters outside {text_encoding} "
                f"(only one byte per character is supported)"
            ) from exc
        if len(raw) != len(data):
            raise UnsupportedType(
                f"Encoding {text_encoding!r} is not one byte per character"
            )
        if not raw:
            return np.empty(0, dtype="S1"), "str"
        return np.frombuffer(raw, dtype="S1").copy(), "str"

    if isinstance(data, (bytes, bytearray)):
        # already one byte per character
        if not data:
            return np.empty(0, dtype="S1"), "bytes"
        return np.frombuffer(bytes(data), dtype="S1").copy(), "bytes"

    if isinstance(data, np.ma.MaskedArray):
        raise UnsupportedType(
            "Masked arrays are not supported (the mask would be lost); "
            "pack .filled() or .data explicitly"
        )

    arr = np.asarray(data)
    if arr.ndim == 0:
        # Scalars are stored as 1x1 matrices
        arr = arr.reshape(1, 1)
    return arr, element_type_of(arr.dtype).label


@dataclass(frozen=True)
class PackedArray:
    """Compressed array plus the metadata needed to restore it.

    Attributes:
        compressed: Opaque backend stream over the tagged buffer.
        element_type: ElementType tag of the original elements.
        data_class: Display name of the original ('int64', 'char', 'str',
            'bytes', ...).
        shape: Original shape (scalars are (1, 1)).
        original_bytes: element count * element width of the original.
        compressed_bytes: len(compressed).
        ratio: compressed_bytes / original_bytes; lower is better, may
            exceed 1.0 for tiny inputs, inf for empty arrays.
        backend: Name of the backend that produced compressed.
        text_encoding: Codec used for str input, None otherwise.
    """

    compressed: bytes = field(repr=False)
    element_type: ElementType
    data_class: str
    shape: Tuple[int, ...]
    original_bytes: int
    compressed_bytes: int
    ratio: float
    backend: str = "zlib"
    text_encoding: Optional[str] = None

    @classmethod
    def from_array(
        cls,
        data,
        backend: Optional[str] = None,
        level: Optional[int] = None,
        config: Optional[MkzipConfig] = None,
    ) -> "PackedArray":
        """Pack an array, scalar, nested list or str.

        Args:
            data: Anything np.asarray accepts with one of the 12 supported
                element types, a str of one-byte characters, or bytes.
            backend: Backend name ('zlib', 'lzma', 'zstd'); overrides
                config.backend. Backend instances are rejected with
                TypeError, since unpack() rebuilds the backend by name.
            level: Compression level/preset; overrides the config's level.
            config: MkzipConfig with defaults. None uses MkzipConfig().

        Returns:
            Frozen PackedArray.
        """
        config = config or DEFAULT_CONFIG
        arr, data_class = _prepare_array(data, config.text_encoding)
        element_type = element_type_of(arr.dtype)
        shape = tuple(int(d) for d in arr.shape)

        raw = encode(arr, element_type, shape)
        compressor = config.make_backend(backend, level)
        compressed = compressor.compress(raw)

        original_bytes = arr.size * element_type.width
        compressed_bytes = len(compressed)
        ratio = compressed_bytes / original_bytes if original_bytes else math.inf

        logger.debug(
            "packed %s %s: %d -> %d bytes (ratio %.4f, %r)",
            _shape_str(shape), data_class,
            original_bytes, compressed_bytes, ratio, compressor,
        )

        return cls(
            compressed=compressed,
            element_type=element_type,
            data_class=data_class,
            shape=shape,
            original_bytes=original_bytes,
            compressed_bytes=compressed_bytes,
            ratio=ratio,
            backend=compressor.name,
            text_encoding=config.text_encoding if data_class == "str" else None,
        )

    def unpack(self) -> Union[np.ndarray, str, bytes]:
        """Decompress and rebuild the original array (or str, or bytes).

        Each call returns a new, independent array; the PackedArray is
        left untouched and can be unpacked again.
        """
        raw = get_backend(self.backend).decompress(self.compressed)
        arr, element_type, shape = decode(raw)
        if element_type != self.element_type or shape != self.shape:
            raise CorruptHeader(
                f"Stream holds a {_shape_str(shape)} {element_type.label}-array, "
                f"expected {_shape_str(self.shape)} {self.element_type.label}"
            )
        logger.debug("unpacked %s %s", _shape_str(shape), self.data_class)

        if self.data_class == "str":
            return arr.tobytes().decode(self.text_encoding or "latin-1")
        if self.data_class == "bytes":
            return arr.tobytes()
        return arr

    @property
    def percent_compressed(self) -> float:
        """Space saved, in percent (negative when packing grew the data)."""
        return 100.0 - self.ratio * 100.0

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def size(self) -> int:
        """Number of elements in the original array."""
        return math.prod(self.shape)

    def __array__(self, *args, **kwargs):
        raise TypeError(
            "PackedArray holds compressed data; call unpack() to get the array"
        )

    def __repr__(self) -> str:
        if self.original_bytes:
            saved = f"{self.percent_compressed:.1f}% compressed"
        else:
            saved = "empty"
        return (
            f"<PackedArray holding a {_shape_str(self.shape)} {self.data_class}-array "
            f"({saved}, {self.backend})>"
        )


def _shape_str(shape) -> str:
    return "x".join(str(d) for d in shape)
