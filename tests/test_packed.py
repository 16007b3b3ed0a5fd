"""Tests for PackedArray: statistics, immutability and the unpack guard."""

import dataclasses
import math
import threading

import numpy as np
import pytest

from mkzip.codec.backends import get_backend
from mkzip.codec.tagged import ElementType, encode
from mkzip.config import MkzipConfig
from mkzip.errors import CorruptHeader, InvalidCompressedStream, UnsupportedType
from mkzip.packed import PackedArray


@pytest.fixture
def matrix():
    return np.array([[1, 2, 3], [4, 5, 6], [7, 8, 9]], dtype=np.int64)


class TestStatistics:
    def test_fields(self, matrix):
        packed = PackedArray.from_array(matrix)
        assert packed.element_type is ElementType.INT64
        assert packed.data_class == "int64"
        assert packed.shape == (3, 3)
        assert packed.original_bytes == 72
        assert packed.compressed_bytes == len(packed.compressed)
        assert packed.compressed_bytes > 0
        assert packed.ratio == packed.compressed_bytes / packed.original_bytes
        assert packed.backend == "zlib"

    def test_original_bytes_excludes_header(self):
        packed = PackedArray.from_array(np.zeros((10, 10), dtype=np.float32))
        assert packed.original_bytes == 400

    def test_bool_and_char_widths(self):
        assert PackedArray.from_array(np.ones(50, dtype=bool)).original_bytes == 50
        assert PackedArray.from_array("abcdefgh").original_bytes == 8

    def test_accessors_idempotent(self, matrix):
        packed = PackedArray.from_array(matrix)
        first = (packed.ratio, packed.compressed_bytes, packed.original_bytes,
                 packed.shape, packed.data_class, packed.percent_compressed)
        for _ in range(5):
            assert (packed.ratio, packed.compressed_bytes, packed.original_bytes,
                    packed.shape, packed.data_class, packed.percent_compressed) == first

    def test_repetitive_matrix_ratio(self):
        data = np.full((1000, 1000), 7, dtype=np.int64)
        packed = PackedArray.from_array(data)
        assert packed.ratio < 0.05
        assert packed.percent_compressed > 95.0

    def test_scalar_ratio_not_clamped(self):
        packed = PackedArray.from_array(np.float64(3.5))
        assert packed.shape == (1, 1)
        assert packed.ratio > 1.0
        assert packed.percent_compressed < 0.0

    def test_empty_array_ratio_is_inf(self):
        packed = PackedArray.from_array(np.zeros((0, 4), dtype=np.int16))
        assert packed.original_bytes == 0
        assert math.isinf(packed.ratio)
        assert packed.size == 0
        assert packed.unpack().shape == (0, 4)

    def test_matches_standalone_pipeline(self, matrix):
        """compressed is exactly backend.compress(encode(...))."""
        packed = PackedArray.from_array(matrix)
        raw = encode(matrix, ElementType.INT64, (3, 3))
        assert packed.compressed == get_backend("zlib").compress(raw)


class TestImmutability:
    def test_frozen(self, matrix):
        packed = PackedArray.from_array(matrix)
        with pytest.raises(dataclasses.FrozenInstanceError):
            packed.ratio = 0.5
        with pytest.raises(dataclasses.FrozenInstanceError):
            packed.compressed = b""

    def test_does_not_alias_source(self, matrix):
        packed = PackedArray.from_array(matrix)
        matrix[0, 0] = 100
        assert packed.unpack()[0, 0] == 1

    def test_unpack_returns_independent_arrays(self, matrix):
        packed = PackedArray.from_array(matrix)
        a = packed.unpack()
        a[:] = 0
        b = packed.unpack()
        np.testing.assert_array_equal(b, matrix)

    def test_no_implicit_array_conversion(self, matrix):
        packed = PackedArray.from_array(matrix)
        with pytest.raises(TypeError, match="unpack"):
            np.asarray(packed)

    def test_cannot_pack_packed(self, matrix):
        packed = PackedArray.from_array(matrix)
        with pytest.raises(TypeError):
            PackedArray.from_array(packed)

    def test_hashable_and_equal(self, matrix):
        a = PackedArray.from_array(matrix)
        b = PackedArray.from_array(matrix.copy())
        assert a == b
        assert hash(a) == hash(b)

    def test_concurrent_unpack(self):
        data = np.random.default_rng(3).integers(0, 50, size=(200, 200)).astype(np.uint16)
        packed = PackedArray.from_array(data)
        results = [None] * 8

        def worker(i):
            results[i] = packed.unpack()

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        for out in results:
            np.testing.assert_array_equal(out, data)


class TestText:
    def test_str_roundtrip(self):
        packed = PackedArray.from_array("mkzip!!!")
        assert packed.element_type is ElementType.CHAR
        assert packed.data_class == "str"
        assert packed.shape == (8,)
        assert packed.unpack() == "mkzip!!!"

    def test_empty_str(self):
        packed = PackedArray.from_array("")
        assert packed.shape == (0,)
        assert packed.unpack() == ""

    def test_latin1_str(self):
        text = "caf\xe9 \xff"
        assert PackedArray.from_array(text).unpack() == text

    def test_wide_text_rejected(self):
        with pytest.raises(UnsupportedType):
            PackedArray.from_array("snow ☃")

    def test_multibyte_encoding_rejected(self):
        config = MkzipConfig(text_encoding="utf-8")
        with pytest.raises(UnsupportedType):
            PackedArray.from_array("\xe9t\xe9", config=config)

    def test_single_byte_encoding(self):
        config = MkzipConfig(text_encoding="cp1252")
        text = "€100"   # euro sign is one byte in cp1252
        packed = PackedArray.from_array(text, config=config)
        assert packed.text_encoding == "cp1252"
        assert packed.unpack() == text

    @pytest.mark.parametrize("data", [b"abcdefgh", bytearray(b"\x00\xff\x10")])
    def test_bytes_roundtrip(self, data):
        packed = PackedArray.from_array(data)
        assert packed.element_type is ElementType.CHAR
        assert packed.data_class == "bytes"
        assert packed.shape == (len(data),)
        assert packed.text_encoding is None
        out = packed.unpack()
        assert isinstance(out, bytes)
        assert out == bytes(data)

    def test_empty_bytes(self):
        packed = PackedArray.from_array(b"")
        assert packed.shape == (0,)
        assert packed.unpack() == b""

    def test_char_array_stays_array(self):
        arr = np.frombuffer(b"abc", dtype="S1").reshape(1, 3)
        out = PackedArray.from_array(arr).unpack()
        assert isinstance(out, np.ndarray)
        assert out.dtype == np.dtype("S1")
        np.testing.assert_array_equal(out, arr)


class TestBackendsAndConfig:
    def test_backend_instance_rejected(self, matrix):
        """unpack() rebuilds backends by name, so instances cannot be packed with."""
        from mkzip.codec.backends import ZlibBackend

        class CustomZlib(ZlibBackend):
            name = "custom"

        with pytest.raises(TypeError):
            PackedArray.from_array(matrix, backend=CustomZlib())
        with pytest.raises(TypeError):
            PackedArray.from_array(matrix, backend=ZlibBackend(level=1), level=9)

    def test_level_applies_to_named_backend(self):
        data = np.arange(4096, dtype=np.int64) % 7
        packed = PackedArray.from_array(data, backend="zlib", level=9)
        assert packed.compressed[:2] == b"\x78\xda"

    def test_lzma(self, matrix):
        packed = PackedArray.from_array(matrix, backend="lzma")
        assert packed.backend == "lzma"
        np.testing.assert_array_equal(packed.unpack(), matrix)

    def test_zstd(self, matrix):
        pytest.importorskip("zstandard")
        packed = PackedArray.from_array(matrix, backend="zstd")
        assert packed.backend == "zstd"
        np.testing.assert_array_equal(packed.unpack(), matrix)

    def test_config_backend(self, matrix):
        packed = PackedArray.from_array(matrix, config=MkzipConfig(backend="lzma"))
        assert packed.backend == "lzma"

    def test_argument_overrides_config(self, matrix):
        packed = PackedArray.from_array(
            matrix, backend="zlib", config=MkzipConfig(backend="lzma")
        )
        assert packed.backend == "zlib"

    def test_level(self):
        data = np.arange(10_000, dtype=np.int32) % 17
        fast = PackedArray.from_array(data, level=1)
        best = PackedArray.from_array(data, level=9)
        assert best.compressed_bytes <= fast.compressed_bytes
        np.testing.assert_array_equal(fast.unpack(), best.unpack())

    def test_bad_config(self):
        with pytest.raises(ValueError):
            MkzipConfig(backend="rar")
        with pytest.raises(ValueError):
            MkzipConfig(zlib_level=12)
        with pytest.raises(LookupError):
            MkzipConfig(text_encoding="no-such-codec")
        assert MkzipConfig(text_encoding="cp1252").text_encoding == "cp1252"


class TestCorruption:
    def test_corrupt_stream(self, matrix):
        packed = PackedArray.from_array(matrix)
        broken = dataclasses.replace(packed, compressed=b"garbage")
        with pytest.raises(InvalidCompressedStream):
            broken.unpack()

    def test_metadata_mismatch(self, matrix):
        packed = PackedArray.from_array(matrix)
        other = PackedArray.from_array(np.zeros(4, dtype=np.int64))
        swapped = dataclasses.replace(packed, compressed=other.compressed)
        with pytest.raises(CorruptHeader):
            swapped.unpack()


class TestRepr:
    def test_repr(self, matrix):
        text = repr(PackedArray.from_array(matrix))
        assert text.startswith("<PackedArray holding a 3x3 int64-array")
        assert "% compressed" in text
        assert "zlib" in text

    def test_repr_hides_payload(self):
        packed = PackedArray.from_array(np.zeros(1000, dtype=np.uint8))
        assert "compressed=" not in repr(packed)

    def test_repr_empty(self):
        assert "empty" in repr(PackedArray.from_array(np.zeros(0)))
