"""Tagged buffer codec: type tag + shape header + raw element payload.

Wire layout (all integers little-endian):
    type_tag: uint8            # ElementType value, 1-12
    ndims:    uint8            # 1-255
    shape:    ndims * uint64
    payload:  prod(shape) * element_width bytes, row-major (C order)

Booleans and characters take one byte per element. Booleans are NOT
bit-packed: the general-purpose compressor that runs over the buffer
collapses the regular 0/1 byte pattern far better than a bitmap would
survive it.

The codec is pure: no I/O, no state, no compression. See backends.py for
the compressor and packed.py for the object that ties both together.
"""

import math
import operator
import struct
from enum import IntEnum
from typing import Sequence, Tuple, Union

import numpy as np

from ..errors import CorruptHeader, PayloadSizeMismatch, TruncatedBuffer, UnsupportedType

MAX_NDIMS = 255
PREFIX_FORMAT = "<BB"    # type_tag, ndims
PREFIX_SIZE = 2
DIM_SIZE = 8             # each shape entry is a uint64

# numpy 2 builds up to 64 dimensions, numpy 1 up to 32
try:
    np.empty((0,) * 64)
    NUMPY_MAX_NDIMS = 64
except ValueError:
    NUMPY_MAX_NDIMS = 32


class ElementType(IntEnum):
    """Closed set of element kinds. The value is the on-wire tag byte."""

    FLOAT64 = 1
    FLOAT32 = 2
    BOOL = 3
    CHAR = 4
    INT8 = 5
    UINT8 = 6
    INT16 = 7
    UINT16 = 8
    INT32 = 9
    UINT32 = 10
    INT64 = 11
    UINT64 = 12

    @property
    def wire_dtype(self) -> np.dtype:
        """Little-endian dtype of one payload element."""
        return _ELEMENT_INFO[self][0]

    @property
    def dtype(self) -> np.dtype:
        """Native dtype of decoded arrays."""
        return _ELEMENT_INFO[self][1]

    @property
    def width(self) -> int:
        """Bytes per payload element."""
        return self.wire_dtype.itemsize

    @property
    def label(self) -> str:
        return _ELEMENT_INFO[self][2]


# tag -> (wire dtype, decoded dtype, display label)
_ELEMENT_INFO = {
    ElementType.FLOAT64: (np.dtype("<f8"), np.dtype(np.float64), "float64"),
    ElementType.FLOAT32: (np.dtype("<f4"), np.dtype(np.float32), "float32"),
    ElementType.BOOL: (np.dtype("u1"), np.dtype(np.bool_), "bool"),
    ElementType.CHAR: (np.dtype("S1"), np.dtype("S1"), "char"),
    ElementType.INT8: (np.dtype("i1"), np.dtype(np.int8), "int8"),
    ElementType.UINT8: (np.dtype("u1"), np.dtype(np.uint8), "uint8"),
    ElementType.INT16: (np.dtype("<i2"), np.dtype(np.int16), "int16"),
    ElementType.UINT16: (np.dtype("<u2"), np.dtype(np.uint16), "uint16"),
    ElementType.INT32: (np.dtype("<i4"), np.dtype(np.int32), "int32"),
    ElementType.UINT32: (np.dtype("<u4"), np.dtype(np.uint32), "uint32"),
    ElementType.INT64: (np.dtype("<i8"), np.dtype(np.int64), "int64"),
    ElementType.UINT64: (np.dtype("<u8"), np.dtype(np.uint64), "uint64"),
}

# (dtype.kind, itemsize) -> tag; byte order does not matter here
_DTYPE_TO_TYPE = {
    ("f", 8): ElementType.FLOAT64,
    ("f", 4): ElementType.FLOAT32,
    ("b", 1): ElementType.BOOL,
    ("S", 1): ElementType.CHAR,
    ("i", 1): ElementType.INT8,
    ("u", 1): ElementType.UINT8,
    ("i", 2): ElementType.INT16,
    ("u", 2): ElementType.UINT16,
    ("i", 4): ElementType.INT32,
    ("u", 4): ElementType.UINT32,
    ("i", 8): ElementType.INT64,
    ("u", 8): ElementType.UINT64,
}


def element_type_of(dtype) -> ElementType:
    """Return the ElementType for a numpy dtype (or anything np.dtype accepts).

    Raises:
        UnsupportedType: complex, float16, object, unicode, datetime, ...
    """
    dt = np.dtype(dtype)
    try:
        return _DTYPE_TO_TYPE[(dt.kind, dt.itemsize)]
    except KeyError:
        raise UnsupportedType(
            f"Not a valid datatype to compress: {dt}. "
            f"Supported: {', '.join(t.label for t in ElementType)}"
        ) from None


def coerce_element_type(value: Union[ElementType, int]) -> ElementType:
    """Accept an ElementType or its integer tag; reject anything else."""
    if isinstance(value, ElementType):
        return value
    if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
        try:
            return ElementType(int(value))
        except ValueError:
            pass
    raise UnsupportedType(f"Unknown element type: {value!r} (expected a tag in 1-12)")


def _to_wire(arr: np.ndarray, element_type: ElementType) -> np.ndarray:
    """Cast array data to the one-byte-or-wider wire dtype of element_type."""
    wire = element_type.wire_dtype

    if element_type is ElementType.BOOL:
        if arr.dtype.kind not in "biu":
            raise UnsupportedType(f"Cannot encode {arr.dtype} data as bool")
        return (arr != 0).astype(wire)

    if element_type is ElementType.CHAR:
        if arr.dtype.kind == "S" and arr.dtype.itemsize == 1:
            return arr
        if arr.dtype == np.uint8:
            return arr.view(wire)
        raise UnsupportedType(
            f"Cannot encode {arr.dtype} data as char (one byte per character)"
        )

    if not np.can_cast(arr.dtype, wire, casting="safe"):
        raise UnsupportedType(
            f"Cannot encode {arr.dtype} data as {element_type.label} without loss"
        )
    return arr.astype(wire, copy=False)


def encode(array, element_type: Union[ElementType, int], shape: Sequence[int]) -> bytes:
    """Build a tagged buffer from array data, its element type and shape.

    Args:
        array: Array-like holding prod(shape) elements.
        element_type: ElementType or integer tag (1-12).
        shape: Dimensions to record; 1 to 255 non-negative ints.

    Returns:
        Header bytes followed by the C-order, little-endian element bytes.

    Raises:
        UnsupportedType: unknown tag, bad dimensionality or uncastable data.
        PayloadSizeMismatch: array size differs from prod(shape).
    """
    element_type = coerce_element_type(element_type)
    try:
        shape = tuple(operator.index(d) for d in shape)
    except TypeError as exc:
        raise UnsupportedType(f"Shape entries must be integers: {exc}") from exc
    if not 1 <= len(shape) <= MAX_NDIMS:
        raise UnsupportedType(
            f"Cannot encode {len(shape)} dimensions (must be 1-{MAX_NDIMS})"
        )
    if any(d < 0 for d in shape):
        raise UnsupportedType(f"Negative dimension in shape {shape}")

    arr = np.asarray(array)
    if arr.size != math.prod(shape):
        raise PayloadSizeMismatch(
            f"Array has {arr.size} elements but shape {shape} needs {math.prod(shape)}"
        )

    payload = _to_wire(arr, element_type)
    header = struct.pack(PREFIX_FORMAT, int(element_type), len(shape))
    header += struct.pack(f"<{len(shape)}Q", *shape)
    return header + payload.tobytes(order="C")


def header_size(ndims: int) -> int:
    """Byte length of a tagged-buffer header with ndims dimensions."""
    return PREFIX_SIZE + DIM_SIZE * ndims


def decode(buffer) -> Tuple[np.ndarray, ElementType, Tuple[int, ...]]:
    """Parse a tagged buffer back into (array, element_type, shape).

    The returned array owns its memory and is writable.

    Raises:
        TruncatedBuffer: buffer ends before the declared header.
        CorruptHeader: type tag outside 1-12, zero dimensions, or a
            dimension too large for any array.
        PayloadSizeMismatch: payload is not prod(shape) whole elements.
        UnsupportedType: more dimensions than this numpy can build.
    """
    view = memoryview(buffer).cast("B")
    n = len(view)

    if n < 1:
        raise TruncatedBuffer("Empty buffer: missing type tag")
    tag = view[0]
    try:
        element_type = ElementType(tag)
    except ValueError:
        raise CorruptHeader(f"Invalid type tag: {tag} (expected 1-12)") from None

    if n < PREFIX_SIZE:
        raise TruncatedBuffer("Buffer ends before the dimension count")
    ndims = view[1]
    if ndims == 0:
        raise CorruptHeader("Dimension count is zero")

    hsize = header_size(ndims)
    if n < hsize:
        raise TruncatedBuffer(
            f"Buffer has {n} bytes but its {ndims}-d header needs {hsize}"
        )
    shape = struct.unpack_from(f"<{ndims}Q", view, PREFIX_SIZE)

    payload = view[hsize:]
    width = element_type.width
    if len(payload) % width:
        raise PayloadSizeMismatch(
            f"Payload of {len(payload)} bytes is not a multiple of "
            f"{element_type.label} width {width}"
        )
    count = len(payload) // width
    expected = math.prod(shape)
    if count != expected:
        raise PayloadSizeMismatch(
            f"Payload holds {count} elements but shape {shape} needs {expected}"
        )

    if count == 0:
        flat = np.empty(0, dtype=element_type.wire_dtype)
    else:
        flat = np.frombuffer(payload, dtype=element_type.wire_dtype)
    # astype copies, so the result never aliases the input buffer
    flat = flat.astype(element_type.dtype)
    if ndims > NUMPY_MAX_NDIMS:
        raise UnsupportedType(
            f"Cannot build a {ndims}-d array: numpy supports at most {NUMPY_MAX_NDIMS}"
        )
    try:
        arr = flat.reshape(shape)
    except (ValueError, OverflowError) as exc:
        # zero-size payloads can carry dimensions no array can have
        raise CorruptHeader(f"Unrepresentable shape {shape}: {exc}") from exc
    return arr, element_type, shape
