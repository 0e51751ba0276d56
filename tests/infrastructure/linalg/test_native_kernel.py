import unittest
from fractions import Fraction
from unittest import TestCase

import numpy as np

from keyarray import config_context
from keyarray.infrastructure.linalg import StridedMatrix, TileConfig, tiled_matmul


def _sm(arr: np.ndarray) -> StridedMatrix:
    """Strided window over the flat buffer of a C- or F-contiguous matrix."""
    item = arr.itemsize
    rs, cs = arr.strides[0] // item, arr.strides[1] // item
    flat = np.ravel(arr, order="K")
    return StridedMatrix(flat, 0, arr.shape[0], arr.shape[1], rs, cs)


A = np.array([[1, 2, 3], [4, 5, 6]])
B = np.array([[7, 8], [9, 10], [11, 12]])
AB = np.array([[58, 64], [139, 154]])


class TestTiledMatmul(TestCase):
    def _run(self, a, b, c, tiles=None, **kw):
        tiled_matmul(_sm(a), _sm(b), _sm(c), tiles, **kw)
        return c

    def test_reference_product(self):
        c = np.zeros((2, 2), dtype=np.float64)
        res = self._run(A.astype(np.float64), B.astype(np.float64), c)
        np.testing.assert_array_equal(res, AB)

    def test_every_tile_shape_agrees(self):
        rng = np.random.default_rng(0)
        a = rng.standard_normal((7, 5))
        b = rng.standard_normal((5, 6))
        for tiles in (TileConfig(1, 1, 1), TileConfig(2, 3, 2), TileConfig(64, 64, 64)):
            c = np.zeros((7, 6))
            res = self._run(a, b, c, tiles)
            np.testing.assert_allclose(res, a @ b, rtol=1e-12, atol=1e-12)

    def test_integer_dtype(self):
        c = np.zeros((2, 2), dtype=np.int64)
        res = self._run(A.astype(np.int64), B.astype(np.int64), c, TileConfig(1, 2, 2))
        np.testing.assert_array_equal(res, AB)
        self.assertEqual(res.dtype, np.int64)

    def test_object_dtype(self):
        a = np.array([[Fraction(1, 2), Fraction(1, 3)]], dtype=object)
        b = np.array([[Fraction(2)], [Fraction(3)]], dtype=object)
        c = np.zeros((1, 1), dtype=object)
        res = self._run(a, b, c)
        self.assertEqual(res[0, 0], Fraction(2))

    def test_fortran_operands(self):
        a = np.asfortranarray(A.astype(np.float64))
        b = np.asfortranarray(B.astype(np.float64))
        c = np.zeros((2, 2))
        res = self._run(a, b, c, TileConfig(1, 1, 2))
        np.testing.assert_array_equal(res, AB)

    def test_alpha_beta(self):
        c = np.ones((2, 2))
        res = self._run(A.astype(float), B.astype(float), c, alpha=2.0, beta=3.0)
        np.testing.assert_array_equal(res, 2.0 * AB + 3.0)

    def test_beta_zero_ignores_nan(self):
        c = np.full((2, 2), np.nan)
        res = self._run(A.astype(float), B.astype(float), c, beta=0)
        np.testing.assert_array_equal(res, AB)

    def test_empty_inner_dimension(self):
        a = np.zeros((2, 0))
        b = np.zeros((0, 3))
        c = np.full((2, 3), 5.0)
        res = self._run(a, b, c, beta=0)
        np.testing.assert_array_equal(res, np.zeros((2, 3)))
        c = np.full((2, 3), 5.0)
        res = self._run(a, b, c, beta=2)
        np.testing.assert_array_equal(res, np.full((2, 3), 10.0))

    def test_offset_and_negative_stride_window(self):
        buf = np.arange(12, dtype=np.float64)
        # rows of a reversed: row i of a is buf[8 - 4 * i : 11 - 4 * i]
        a = StridedMatrix(buf, 8, 3, 3, -4, 1)
        eye = np.eye(3)
        c = np.zeros((3, 3))
        tiled_matmul(a, _sm(eye), _sm(c))
        expected = np.arange(12.0).reshape(3, 4)[::-1, :3]
        np.testing.assert_array_equal(c, expected)


class TestTileConfig(TestCase):
    def test_defaults(self):
        self.assertEqual(TileConfig(), TileConfig(64, 64, 64))

    def test_rejects_non_positive(self):
        with self.assertRaises(ValueError):
            TileConfig(0, 4, 4)

    def test_from_config(self):
        with config_context(tile_m=8, tile_n=16, tile_k=32):
            self.assertEqual(TileConfig.from_config(), TileConfig(8, 16, 32))


if __name__ == "__main__":
    unittest.main()
