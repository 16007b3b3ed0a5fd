"""mkzip codec subpackage.

tagged:   self-describing buffer (type tag + shape + payload), no compression
backends: general-purpose compressors the tagged buffer is run through
"""

from .tagged import ElementType, decode, element_type_of, encode
from .backends import (
    BACKEND_NAMES,
    CompressionBackend,
    LzmaBackend,
    ZlibBackend,
    ZstdBackend,
    get_backend,
)

__all__ = [
    "ElementType",
    "encode",
    "decode",
    "element_type_of",
    "BACKEND_NAMES",
    "CompressionBackend",
    "ZlibBackend",
    "LzmaBackend",
    "ZstdBackend",
    "get_backend",
]
