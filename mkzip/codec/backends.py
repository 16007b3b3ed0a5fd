"""General-purpose compression backends for tagged buffers.

A backend turns the raw tagged buffer into an opaque compressed stream and
back. The stream format is whatever the underlying library defines; nothing
else in mkzip looks inside it.

Backends:
    'zlib':  zlib (deflate) stream, default level 6 -- the default, stdlib only
    'lzma':  xz container, preset 6 -- stdlib, slower, usually smaller
    'zstd':  zstandard frame, level 19 -- requires the zstandard package

Small inputs can come out larger than they went in (stream framing and
checksums). That is expected and is reported through the ratio, never
treated as an error.

Usage:
    backend = get_backend("zlib")
    compressed = backend.compress(raw)
    assert backend.decompress(compressed) == raw
"""

import lzma
import zlib
from abc import ABC, abstractmethod
from typing import Optional

from ..errors import InvalidCompressedStream

try:
    import zstandard as zstd
    HAS_ZSTD = True
except ImportError:
    HAS_ZSTD = False


class CompressionBackend(ABC):
    """Lossless bytes -> bytes compressor with an exact inverse."""

    name: str = ""

    @abstractmethod
    def compress(self, data: bytes) -> bytes:
        """Compress data. Deterministic for a given backend configuration."""

    @abstractmethod
    def decompress(self, data: bytes) -> bytes:
        """Invert compress() byte-for-byte.

        Raises:
            InvalidCompressedStream: data is not a stream this backend produced.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ZlibBackend(CompressionBackend):
    """zlib/deflate stream with adler32 checksum."""

    name = "zlib"

    def __init__(self, level: int = 6):
        if not -1 <= level <= 9:
            raise ValueError(f"zlib level must be -1..9, got {level}")
        self.level = level

    def compress(self, data: bytes) -> bytes:
        return zlib.compress(data, self.level)

    def decompress(self, data: bytes) -> bytes:
        dobj = zlib.decompressobj()
        try:
            out = dobj.decompress(data) + dobj.flush()
        except zlib.error as exc:
            raise InvalidCompressedStream(f"Invalid zlib stream: {exc}") from exc
        if not dobj.eof:
            raise InvalidCompressedStream("Invalid zlib stream: truncated")
        if dobj.unused_data:
            raise InvalidCompressedStream(
                f"Invalid zlib stream: {len(dobj.unused_data)} trailing bytes"
            )
        return out

    def __repr__(self) -> str:
        return f"ZlibBackend(level={self.level})"


class LzmaBackend(CompressionBackend):
    """xz container (LZMA2) with CRC64 check."""

    name = "lzma"

    def __init__(self, preset: int = 6):
        if not 0 <= preset <= 9:
            raise ValueError(f"lzma preset must be 0..9, got {preset}")
        self.preset = preset

    def compress(self, data: bytes) -> bytes:
        return lzma.compress(data, preset=self.preset)

    def decompress(self, data: bytes) -> bytes:
        dobj = lzma.LZMADecompressor(format=lzma.FORMAT_XZ)
        try:
            out = dobj.decompress(data)
        except lzma.LZMAError as exc:
            raise InvalidCompressedStream(f"Invalid lzma stream: {exc}") from exc
        if not dobj.eof:
            raise InvalidCompressedStream("Invalid lzma stream: truncated")
        if dobj.unused_data:
            raise InvalidCompressedStream(
                f"Invalid lzma stream: {len(dobj.unused_data)} trailing bytes"
            )
        return out

    def __repr__(self) -> str:
        return f"LzmaBackend(preset={self.preset})"


class ZstdBackend(CompressionBackend):
    """Zstandard frame with content size and checksum.

    The content size is written into the frame header so decompress()
    needs no size hint.
    """

    name = "zstd"

    def __init__(self, level: int = 19):
        if not HAS_ZSTD:
            raise RuntimeError("zstandard library required: pip install zstandard")
        if not 1 <= level <= 22:
            raise ValueError(f"zstd level must be 1..22, got {level}")
        self.level = level

    def compress(self, data: bytes) -> bytes:
        cctx = zstd.ZstdCompressor(level=self.level, write_checksum=True)
        return cctx.compress(data)

    def decompress(self, data: bytes) -> bytes:
        dctx = zstd.ZstdDecompressor()
        try:
            return dctx.decompress(data)
        except zstd.ZstdError as exc:
            raise InvalidCompressedStream(f"Invalid zstd stream: {exc}") from exc

    def __repr__(self) -> str:
        return f"ZstdBackend(level={self.level})"


_BACKENDS = {
    "zlib": ZlibBackend,
    "lzma": LzmaBackend,
    "zstd": ZstdBackend,
}

BACKEND_NAMES = tuple(_BACKENDS)


def get_backend(name: str = "zlib", level: Optional[int] = None) -> CompressionBackend:
    """Build a backend by name.

    Args:
        name: 'zlib', 'lzma' or 'zstd'.
        level: Compression level (zlib/zstd) or preset (lzma).
            None uses the backend default.

    Returns:
        A configured CompressionBackend.
    """
    if not isinstance(name, str):
        # PackedArray records the backend by name, so only registered names work
        raise TypeError(
            f"Backend must be one of {list(BACKEND_NAMES)} by name, got {name!r}"
        )
    try:
        cls = _BACKENDS[name]
    except KeyError:
        raise ValueError(
            f"Unknown backend: {name!r}. Choose from: {list(BACKEND_NAMES)}"
        ) from None
    if level is None:
        return cls()
    return cls(level)
