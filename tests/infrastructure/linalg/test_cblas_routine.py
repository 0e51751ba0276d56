import os
import unittest

import numpy as np

try:
    from dotenv import load_dotenv
except ImportError as e:
    raise ImportError(
        "python-dotenv is required to load .env for BLAS tests. "
        "Install it with: pip install python-dotenv"
    ) from e

# KEYARRAY_BLAS_LIB may be set in repo_root/.env
_THIS_DIR = os.path.dirname(os.path.abspath(__file__))
_REPO_ROOT = os.path.abspath(os.path.join(_THIS_DIR, "..", "..", ".."))
load_dotenv(os.path.join(_REPO_ROOT, ".env"))

from keyarray import GemmOperand, MemoryOrder
from keyarray.infrastructure.linalg import CblasGemmRoutine, load_cblas, try_load_cblas
from keyarray.infrastructure.linalg._cblas_ctypes import fits_cblas_int


def _operand(arr: np.ndarray) -> GemmOperand:
    item = arr.itemsize
    if arr.flags.c_contiguous:
        return GemmOperand(arr.reshape(-1), 0, arr.shape[0], arr.shape[1],
                           MemoryOrder.ROW_MAJOR, arr.strides[0] // item)
    return GemmOperand(np.ravel(arr, order="F"), 0, arr.shape[0], arr.shape[1],
                       MemoryOrder.COL_MAJOR, arr.strides[1] // item)


class TestCblasLoader(unittest.TestCase):
    def test_missing_explicit_path(self):
        with self.assertRaises(FileNotFoundError):
            load_cblas(os.path.join(_REPO_ROOT, "no-such-dir", "libcblas.so"))

    def test_try_load_warns_for_explicit_path(self):
        with self.assertWarns(RuntimeWarning):
            self.assertIsNone(try_load_cblas("/nonexistent/libcblas.so"))

    def test_fits_cblas_int(self):
        self.assertTrue(fits_cblas_int(1, 2, 2**31 - 1))
        self.assertFalse(fits_cblas_int(2**31))
        self.assertFalse(fits_cblas_int(-1))


class TestCblasGemmRoutine(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        lib = try_load_cblas()
        if lib is None:
            raise unittest.SkipTest("no CBLAS library available")
        cls.routine = CblasGemmRoutine(lib)

    def _check(self, dtype, a, b, c, alpha=1.0, beta=0.0):
        expected = alpha * (a @ b) + beta * c
        c_op = _operand(c)
        self.routine.gemm(alpha, _operand(a), _operand(b), beta, c_op)
        tol = 1e-4 if np.dtype(dtype) in (np.float32, np.complex64) else 1e-10
        np.testing.assert_allclose(c, expected, rtol=tol, atol=tol)

    def test_supported_dtypes(self):
        self.assertTrue(self.routine.supports(np.float64))
        self.assertFalse(self.routine.supports(np.int64))

    def test_row_major(self):
        rng = np.random.default_rng(3)
        for dt in (np.float32, np.float64):
            a = rng.standard_normal((4, 5)).astype(dt)
            b = rng.standard_normal((5, 3)).astype(dt)
            c = np.zeros((4, 3), dtype=dt)
            self._check(dt, a, b, c)

    def test_mixed_orders(self):
        rng = np.random.default_rng(4)
        a = np.asfortranarray(rng.standard_normal((4, 5)))
        b = rng.standard_normal((5, 3))
        c = np.asfortranarray(rng.standard_normal((4, 3)))
        self._check(np.float64, a, b, c, alpha=2.0, beta=-1.0)

    def test_complex(self):
        if not self.routine.supports(np.complex128):
            self.skipTest("library lacks cblas_zgemm")
        rng = np.random.default_rng(5)
        a = (rng.standard_normal((3, 2)) + 1j * rng.standard_normal((3, 2))).astype(np.complex128)
        b = (rng.standard_normal((2, 4)) + 1j * rng.standard_normal((2, 4))).astype(np.complex128)
        c = np.ones((3, 4), dtype=np.complex128)
        self._check(np.complex128, a, b, c, alpha=1 - 1j, beta=0.5)

    def test_dtype_mismatch(self):
        a = np.zeros((2, 2), dtype=np.float32)
        b = np.zeros((2, 2), dtype=np.float64)
        c = np.zeros((2, 2), dtype=np.float64)
        with self.assertRaises(TypeError):
            self.routine.gemm(1.0, _operand(a), _operand(b), 0.0, _operand(c))


if __name__ == "__main__":
    unittest.main()
