"""
Linear algebra: matrix products with a native tiled kernel and pluggable
external GEMM routines (system CBLAS through ctypes, or NumPy's BLAS).
"""

from ._native_kernel import StridedMatrix, TileConfig, tiled_matmul
from ._numpy_gemm import NumpyGemmRoutine
from ._blas_loader import load_cblas, try_load_cblas
from ._cblas_ctypes import CblasGemmRoutine
from ._dispatch import (
    BLAS_DTYPES,
    GemmPlan,
    available_routines,
    dot,
    gemm_operand,
    general_mat_mul,
    general_mat_vec_mul,
    matmul,
    operand_layout,
    register_gemm_routine,
    select_strategy,
    unregister_gemm_routine,
)

__all__ = [
    "StridedMatrix",
    "TileConfig",
    "tiled_matmul",
    "NumpyGemmRoutine",
    "load_cblas",
    "try_load_cblas",
    "CblasGemmRoutine",
    "BLAS_DTYPES",
    "GemmPlan",
    "available_routines",
    "dot",
    "gemm_operand",
    "general_mat_mul",
    "general_mat_vec_mul",
    "matmul",
    "operand_layout",
    "register_gemm_routine",
    "select_strategy",
    "unregister_gemm_routine",
]
