"""
`IGemmRoutine` implemented with `numpy.matmul`.

NumPy links an optimized BLAS for float and complex matrix products, so this
routine is the always-available external path when no system CBLAS can be
loaded through ctypes. Operands are rebuilt as strided NumPy views from their
descriptors; nothing is copied on the way in.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.lib.stride_tricks import as_strided

from ...domain._gemm import GemmOperand, MemoryOrder

_SUPPORTED = (
    np.dtype(np.float32),
    np.dtype(np.float64),
    np.dtype(np.complex64),
    np.dtype(np.complex128),
)


def operand_view(op: GemmOperand, writeable: bool = False) -> np.ndarray:
    """Two-dimensional NumPy view described by `op`."""
    if op.rows == 0 or op.cols == 0:
        return np.empty((op.rows, op.cols), dtype=op.dtype)
    item = op.data.itemsize
    if op.order is MemoryOrder.ROW_MAJOR:
        strides = (op.ld * item, item)
    else:
        strides = (item, op.ld * item)
    return as_strided(
        op.data[op.offset :],
        shape=(op.rows, op.cols),
        strides=strides,
        writeable=writeable,
    )


class NumpyGemmRoutine:
    """GEMM through `numpy.matmul` on descriptor views."""

    name = "numpy"

    def supports(self, dtype: Any) -> bool:
        return np.dtype(dtype) in _SUPPORTED

    def gemm(
        self,
        alpha: Any,
        a: GemmOperand,
        b: GemmOperand,
        beta: Any,
        c: GemmOperand,
    ) -> None:
        av = operand_view(a)
        bv = operand_view(b)
        cv = operand_view(c, writeable=True)
        if cv.size == 0:
            return
        prod = np.matmul(av, bv)
        if alpha != 1:
            prod = prod * alpha
        if beta == 0:
            cv[...] = prod
        elif beta == 1:
            cv += prod
        else:
            cv[...] = prod + beta * cv
