"""Central configuration for mkzip packing."""

import codecs
from dataclasses import dataclass
from typing import Optional

from .codec.backends import BACKEND_NAMES, CompressionBackend, get_backend


@dataclass
class MkzipConfig:
    """Packing defaults in one place."""

    # --- Backend ---
    backend: str = "zlib"  # 'zlib', 'lzma', 'zstd'
    zlib_level: int = 6
    lzma_preset: int = 6
    zstd_level: int = 19

    # --- Text ---
    text_encoding: str = "latin-1"  # str -> one byte per character

    def __post_init__(self):
        if self.backend not in BACKEND_NAMES:
            raise ValueError(
                f"Unknown backend: {self.backend!r}. Choose from: {list(BACKEND_NAMES)}"
            )
        if not -1 <= self.zlib_level <= 9:
            raise ValueError(f"zlib_level must be -1..9, got {self.zlib_level}")
        if not 0 <= self.lzma_preset <= 9:
            raise ValueError(f"lzma_preset must be 0..9, got {self.lzma_preset}")
        if not 1 <= self.zstd_level <= 22:
            raise ValueError(f"zstd_level must be 1..22, got {self.zstd_level}")
        codecs.lookup(self.text_encoding)  # LookupError for unknown codecs

    def level_for(self, backend: str) -> int:
        return {
            "zlib": self.zlib_level,
            "lzma": self.lzma_preset,
            "zstd": self.zstd_level,
        }[backend]

    def make_backend(
        self, backend: Optional[str] = None, level: Optional[int] = None
    ) -> CompressionBackend:
        """Build a backend, letting explicit arguments override the config."""
        name = backend or self.backend
        if level is None and name in BACKEND_NAMES:
            level = self.level_for(name)
        return get_backend(name, level)


DEFAULT_CONFIG = MkzipConfig()
