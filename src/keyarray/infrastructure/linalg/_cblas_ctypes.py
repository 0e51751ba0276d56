"""
ctypes bindings for the CBLAS `?gemm` family.

`CblasGemmRoutine` implements `IGemmRoutine` on top of a loaded CBLAS
library for float32, float64, complex64 and complex128.

The output descriptor decides the CBLAS storage order; an input whose
storage convention differs from the output's is passed transposed, which
lets row- and column-major operands mix without copies.

Argument validation is strict: the dispatcher guarantees leading
dimensions, but every size must also fit the 32-bit integers of the LP64
CBLAS interface.
"""

from __future__ import annotations

import ctypes
from ctypes import POINTER, c_double, c_float, c_int, c_void_p
from typing import Any, Optional

import numpy as np

from ...domain._gemm import GemmOperand, MemoryOrder
from ._blas_loader import load_cblas

CBLAS_ROW_MAJOR = 101
CBLAS_COL_MAJOR = 102
CBLAS_NO_TRANS = 111
CBLAS_TRANS = 112

_INT_MAX = 2**31 - 1

# dtype -> (symbol, scalar ctype, scalars passed by pointer)
_SYMBOLS = {
    np.dtype(np.float32): ("cblas_sgemm", c_float, False),
    np.dtype(np.float64): ("cblas_dgemm", c_double, False),
    np.dtype(np.complex64): ("cblas_cgemm", c_float * 2, True),
    np.dtype(np.complex128): ("cblas_zgemm", c_double * 2, True),
}


def _bind(lib: ctypes.CDLL, symbol: str, scalar_t: Any, by_pointer: bool) -> Any:
    fn = getattr(lib, symbol)
    s = POINTER(scalar_t) if by_pointer else scalar_t
    fn.argtypes = [
        c_int, c_int, c_int,  # order, transa, transb
        c_int, c_int, c_int,  # m, n, k
        s, c_void_p, c_int,   # alpha, a, lda
        c_void_p, c_int,      # b, ldb
        s, c_void_p, c_int,   # beta, c, ldc
    ]
    fn.restype = None
    return fn


def _scalar(value: Any, scalar_t: Any, by_pointer: bool) -> Any:
    if not by_pointer:
        return scalar_t(float(np.real(value)))
    z = complex(value)
    buf = scalar_t(z.real, z.imag)
    return ctypes.pointer(buf)


def fits_cblas_int(*values: int) -> bool:
    """True if every size fits the 32-bit integers of the CBLAS interface."""
    return all(0 <= int(v) <= _INT_MAX for v in values)


class CblasGemmRoutine:
    """
    `IGemmRoutine` backed by a system CBLAS library.

    Parameters
    ----------
    lib : Optional[ctypes.CDLL]
        Loaded CBLAS handle. Defaults to `load_cblas()`.

    Raises
    ------
    OSError
        If no library is given and none can be loaded.
    """

    name = "cblas"

    def __init__(self, lib: Optional[ctypes.CDLL] = None) -> None:
        self._lib = lib if lib is not None else load_cblas()
        self._fns: dict = {}
        for dt, (symbol, scalar_t, by_ptr) in _SYMBOLS.items():
            if hasattr(self._lib, symbol):
                self._fns[dt] = (_bind(self._lib, symbol, scalar_t, by_ptr), scalar_t, by_ptr)

    def supports(self, dtype: Any) -> bool:
        return np.dtype(dtype) in self._fns

    def gemm(
        self,
        alpha: Any,
        a: GemmOperand,
        b: GemmOperand,
        beta: Any,
        c: GemmOperand,
    ) -> None:
        """
        Run `c = alpha * a @ b + beta * c` through `cblas_?gemm`.

        Raises
        ------
        TypeError
            If the dtypes differ or are not supported.
        ValueError
            If a size does not fit the CBLAS integer type.
        """
        dt = np.dtype(c.dtype)
        if a.dtype != dt or b.dtype != dt or dt not in self._fns:
            raise TypeError(
                f"cblas gemm needs matching float/complex dtypes, got "
                f"{a.dtype}, {b.dtype}, {c.dtype}"
            )
        m, k, n = a.rows, a.cols, b.cols
        if not fits_cblas_int(m, n, k, a.ld, b.ld, c.ld):
            raise ValueError("matrix sizes exceed the CBLAS integer range")

        fn, scalar_t, by_ptr = self._fns[dt]
        order = CBLAS_ROW_MAJOR if c.order is MemoryOrder.ROW_MAJOR else CBLAS_COL_MAJOR
        trans_a = CBLAS_NO_TRANS if a.order is c.order else CBLAS_TRANS
        trans_b = CBLAS_NO_TRANS if b.order is c.order else CBLAS_TRANS

        fn(
            c_int(order),
            c_int(trans_a),
            c_int(trans_b),
            c_int(m),
            c_int(n),
            c_int(k),
            _scalar(alpha, scalar_t, by_ptr),
            c_void_p(a.address()),
            c_int(a.ld),
            c_void_p(b.address()),
            c_int(b.ld),
            _scalar(beta, scalar_t, by_ptr),
            c_void_p(c.address()),
            c_int(c.ld),
        )
