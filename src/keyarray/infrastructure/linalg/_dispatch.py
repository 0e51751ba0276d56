"""
Matrix-multiplication dispatch.

Public entry points:

- `dot(a, b)`                 : 1-D·1-D (scalar), 2-D·1-D, 1-D·2-D, 2-D·2-D
- `matmul(a, b)`              : `dot` plus batched operands (rank >= 3) with
                                broadcasting of the batch axes
- `general_mat_mul(alpha, a, b, beta, c)`     : `c = alpha*a@b + beta*c`
- `general_mat_vec_mul(alpha, a, x, beta, y)` : `y = alpha*a@x + beta*y`

Every product is reduced to two-dimensional GEMM calls. For each call
`select_strategy` picks either the native tiled kernel or an external
routine (`IGemmRoutine`). The external path requires a BLAS element type and
operand layouts expressible as row- or column-major with a leading
dimension; an operand that is not (broadcast, negative or arbitrary strides)
is copied into a contiguous scratch buffer, or the call goes to the native
kernel when scratch copies are disabled.

The native kernel is always a complete fallback: the external path only ever
changes speed, not results.
"""

from __future__ import annotations

import logging
import threading
import warnings
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

import numpy as np
from typing_extensions import Literal

from ...domain._errors import RankMismatchError, ShapeMismatchError
from ...domain._gemm import GemmOperand, IGemmRoutine, MemoryOrder
from ...domain.dimension import broadcast_shapes
from .._config import KeyArrayConfig, get_config
from ..storage import Footprint, footprints_overlap
from ._blas_loader import try_load_cblas
from ._cblas_ctypes import CblasGemmRoutine, fits_cblas_int
from ._native_kernel import StridedMatrix, TileConfig, tiled_matmul
from ._numpy_gemm import NumpyGemmRoutine

logger = logging.getLogger(__name__)

Strategy = Literal["auto", "native", "blas"]

BLAS_DTYPES = (
    np.dtype(np.float32),
    np.dtype(np.float64),
    np.dtype(np.complex64),
    np.dtype(np.complex128),
)

_registry_lock = threading.Lock()
_registered: list = []
_NUMPY_ROUTINE = NumpyGemmRoutine()


# ----------------------------------------------------------------------
# routine registry
# ----------------------------------------------------------------------
def register_gemm_routine(routine: IGemmRoutine) -> None:
    """
    Add an external routine. Registered routines are tried before the
    built-in CBLAS and NumPy routines, most recent first.

    Raises
    ------
    TypeError
        If `routine` does not implement `IGemmRoutine`.
    """
    if not isinstance(routine, IGemmRoutine):
        raise TypeError(f"{routine!r} does not implement IGemmRoutine")
    with _registry_lock:
        _registered.insert(0, routine)


def unregister_gemm_routine(routine: IGemmRoutine) -> None:
    """Remove a routine added with `register_gemm_routine` (no-op if absent)."""
    with _registry_lock:
        if routine in _registered:
            _registered.remove(routine)


@lru_cache(maxsize=None)
def _cblas_routine(lib: Any) -> CblasGemmRoutine:
    return CblasGemmRoutine(lib)


def available_routines(config: Optional[KeyArrayConfig] = None) -> list:
    """
    External routines in preference order; empty when BLAS is disabled.
    """
    cfg = config if config is not None else get_config()
    if cfg.disable_blas:
        return []
    with _registry_lock:
        out = list(_registered)
    lib = try_load_cblas(cfg.blas_lib)
    if lib is not None:
        out.append(_cblas_routine(lib))
    out.append(_NUMPY_ROUTINE)
    return out


# ----------------------------------------------------------------------
# layout translation
# ----------------------------------------------------------------------
def operand_layout(
    rows: int, cols: int, row_stride: int, col_stride: int
) -> Optional[tuple[MemoryOrder, int]]:
    """
    Storage convention and leading dimension of a 2-D layout, or None if
    the layout is neither row- nor column-major with a valid leading
    dimension.

    Length-1 axes place no constraint on their stride. Zero and negative
    strides on longer axes are never expressible.
    """
    if rows == 0 or cols == 0:
        return MemoryOrder.ROW_MAJOR, max(1, cols)
    if (cols == 1 or col_stride == 1) and (rows == 1 or row_stride >= max(1, cols)):
        return MemoryOrder.ROW_MAJOR, (row_stride if rows > 1 else max(1, cols))
    if (rows == 1 or row_stride == 1) and (cols == 1 or col_stride >= max(1, rows)):
        return MemoryOrder.COL_MAJOR, (col_stride if cols > 1 else max(1, rows))
    return None


def gemm_operand(array: Any, data: np.ndarray) -> Optional[GemmOperand]:
    """Descriptor of a 2-D array over `data`, or None if not expressible."""
    rows, cols = array.shape
    rs, cs = array.strides
    lay = operand_layout(rows, cols, rs, cs)
    if lay is None:
        return None
    order, ld = lay
    return GemmOperand(data, array.offset, rows, cols, order, ld)


# ----------------------------------------------------------------------
# strategy selection
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class GemmPlan:
    """
    Outcome of `select_strategy`.

    Attributes
    ----------
    kind : str
        "native" or "blas".
    routine : IGemmRoutine or None
        The external routine for "blas".
    copy_a, copy_b : bool
        Whether the operand must be copied into a contiguous scratch buffer.
    reason : str
        Short explanation, logged at debug level.
    """

    kind: str
    routine: Optional[IGemmRoutine] = None
    copy_a: bool = False
    copy_b: bool = False
    reason: str = ""


def _pick_routine(dtype: np.dtype, sizes: tuple, cfg: KeyArrayConfig) -> Optional[IGemmRoutine]:
    for routine in available_routines(cfg):
        if not routine.supports(dtype):
            continue
        if isinstance(routine, CblasGemmRoutine) and not fits_cblas_int(*sizes):
            continue
        return routine
    return None


def select_strategy(
    a: Any,
    b: Any,
    strategy: Strategy = "auto",
    *,
    out_dtype: Any = None,
    config: Optional[KeyArrayConfig] = None,
) -> GemmPlan:
    """
    Choose how to compute the 2-D product `a @ b`.

    Parameters
    ----------
    a, b : Array
        Two-dimensional operands.
    strategy : {"auto", "native", "blas"}
        "native" always uses the tiled kernel. "blas" requires a BLAS element
        type and uses an external routine, copying operands as needed.
        "auto" uses an external routine when the element type allows it and
        the layouts are expressible (or scratch copies are enabled).
    out_dtype : optional
        Element type of the destination; must match for the external path.
    config : KeyArrayConfig, optional
        Defaults to the active configuration.

    Raises
    ------
    ValueError
        If `strategy` is unknown.
    TypeError
        If `strategy="blas"` and the element types are not BLAS kinds.
    """
    if strategy not in ("auto", "native", "blas"):
        raise ValueError(f"unknown strategy {strategy!r}")
    cfg = config if config is not None else get_config()
    if strategy == "native":
        return GemmPlan("native", reason="forced")

    dt = np.dtype(a.dtype)
    blas_dtype = (
        np.dtype(b.dtype) == dt
        and dt in BLAS_DTYPES
        and (out_dtype is None or np.dtype(out_dtype) == dt)
    )
    if not blas_dtype:
        if strategy == "blas":
            raise TypeError(
                f"BLAS gemm supports matching float32/float64/complex64/complex128 "
                f"operands, got {a.dtype} and {b.dtype}"
            )
        return GemmPlan("native", reason=f"dtype {a.dtype}/{b.dtype}")

    m, k = a.shape
    n = b.shape[1]
    if m == 0 or n == 0 or k == 0:
        return GemmPlan("native", reason="empty operand")

    sizes = (m, n, k) + tuple(abs(s) for s in a.strides + b.strides)
    routine = _pick_routine(dt, sizes, cfg)
    if routine is None:
        if strategy == "blas":
            warnings.warn(
                "BLAS gemm requested but no external routine is available; "
                "using the native kernel",
                RuntimeWarning,
                stacklevel=3,
            )
        return GemmPlan("native", reason="no external routine")

    copy_a = operand_layout(m, k, *a.strides) is None
    copy_b = operand_layout(k, n, *b.strides) is None
    if (copy_a or copy_b) and not cfg.copy_scratch and strategy == "auto":
        return GemmPlan("native", reason="unsupported strides, scratch copies disabled")
    return GemmPlan("blas", routine, copy_a, copy_b, reason=routine.name)


# ----------------------------------------------------------------------
# execution
# ----------------------------------------------------------------------
def _footprint(x: Any) -> Footprint:
    return Footprint(x.offset, x.shape, x.strides)


def _may_alias(x: Any, c: Any) -> bool:
    xb = x.storage.root_buffer()
    cb = c.storage.root_buffer()
    if xb is cb:
        return footprints_overlap(_footprint(x), _footprint(c))
    return bool(np.may_share_memory(xb, cb))


def _run_native(alpha: Any, a: Any, b: Any, beta: Any, c: Any, cfg: KeyArrayConfig) -> None:
    cbuf = c._write_buffer()
    tiled_matmul(
        StridedMatrix.of(a, a._read_buffer()),
        StridedMatrix.of(b, b._read_buffer()),
        StridedMatrix.of(c, cbuf),
        TileConfig.from_config(cfg),
        alpha=alpha,
        beta=beta,
    )


def _run_external(alpha: Any, a: Any, b: Any, beta: Any, c: Any, plan: GemmPlan) -> None:
    if gemm_operand(c, c.storage.root_buffer()) is None:
        tmp = c.to_owned()
        _run_external(alpha, a, b, beta, tmp, plan)
        c.assign(tmp)
        return

    a_src = a.to_owned() if plan.copy_a else a
    b_src = b.to_owned() if plan.copy_b else b
    cbuf = c._write_buffer()
    a_op = gemm_operand(a_src, a_src._read_buffer())
    b_op = gemm_operand(b_src, b_src._read_buffer())
    c_op = gemm_operand(c, cbuf)
    plan.routine.gemm(alpha, a_op, b_op, beta, c_op)


def _gemm_into(
    alpha: Any,
    a: Any,
    b: Any,
    beta: Any,
    c: Any,
    strategy: Strategy,
    cfg: KeyArrayConfig,
) -> None:
    plan = select_strategy(a, b, strategy, out_dtype=c.dtype, config=cfg)
    logger.debug(
        "gemm %sx%sx%s dtype=%s -> %s (%s)",
        a.shape[0], a.shape[1], b.shape[1], a.dtype, plan.kind, plan.reason,
    )
    if plan.kind == "native":
        _run_native(alpha, a, b, beta, c, cfg)
    else:
        _run_external(alpha, a, b, beta, c, plan)


def _check_array(x: Any, name: str) -> None:
    if not hasattr(x, "raw_dim") or not hasattr(x, "_derive"):
        raise TypeError(f"{name} must be an Array, got {type(x).__name__}")


def _check_inner(a_shape: tuple, b_shape: tuple, k_a: int, k_b: int) -> None:
    if k_a != k_b:
        raise ShapeMismatchError(
            f"inner dimensions do not match: {a_shape} and {b_shape}",
            a_shape,
            b_shape,
        )


def _new_product(a: Any, b: Any, shape: tuple) -> Any:
    dtype = np.result_type(a.dtype, b.dtype)
    size = int(np.prod(shape, dtype=np.int64)) if shape else 1
    return a._new_owned(np.zeros(size, dtype=dtype), shape)


def _mat_mul(a: Any, b: Any, strategy: Strategy, cfg: KeyArrayConfig) -> Any:
    m, k = a.shape
    k2, n = b.shape
    _check_inner(a.shape, b.shape, k, k2)
    out = _new_product(a, b, (m, n))
    _gemm_into(1, a, b, 0, out, strategy, cfg)
    return out


# ----------------------------------------------------------------------
# public API
# ----------------------------------------------------------------------
def dot(a: Any, b: Any, strategy: Strategy = "auto") -> Any:
    """
    Matrix/vector product of arrays of rank 1 or 2.

    Parameters
    ----------
    a, b : Array
        Operands. 1-D·1-D is the inner product, 2-D·1-D and 1-D·2-D treat the
        vector as a column/row.
    strategy : {"auto", "native", "blas"}
        See `select_strategy`.

    Returns
    -------
    Array or scalar
        A fresh owned array in standard layout, or a scalar for 1-D·1-D.

    Raises
    ------
    ShapeMismatchError
        If the inner dimensions differ.
    RankMismatchError
        If an operand has rank 0 or more than 2.
    """
    _check_array(a, "a")
    _check_array(b, "b")
    for x in (a, b):
        if x.ndim not in (1, 2):
            raise RankMismatchError(2, x.ndim)
    cfg = get_config()

    if a.ndim == 2 and b.ndim == 2:
        return _mat_mul(a, b, strategy, cfg)

    _check_inner(a.shape, b.shape, a.shape[-1], b.shape[0])
    av = a.view()
    if a.ndim == 1:
        av = av.insert_axis(0)
    try:
        bv = b.view()
        if b.ndim == 1:
            bv = bv.insert_axis(1)
        try:
            out = _mat_mul(av, bv, strategy, cfg)
        finally:
            bv.release()
    finally:
        av.release()

    if a.ndim == 1 and b.ndim == 1:
        return out[0, 0]
    if a.ndim == 1:
        return out.remove_axis(0)
    return out.remove_axis(1)


def matmul(a: Any, b: Any, strategy: Strategy = "auto") -> Any:
    """
    Matrix product with NumPy `matmul` semantics.

    Operands of rank <= 2 behave as in `dot`. For rank >= 3 the last two axes
    are the matrices and the leading (batch) axes are broadcast together; a
    1-D operand is promoted to a row (left) or column (right) matrix and the
    promoted axis is removed from the result.

    Raises
    ------
    ShapeMismatchError
        If the inner dimensions differ or the batch axes do not broadcast.
    RankMismatchError
        If an operand has rank 0.
    """
    _check_array(a, "a")
    _check_array(b, "b")
    for x in (a, b):
        if x.ndim == 0:
            raise RankMismatchError(1, 0)
    if a.ndim <= 2 and b.ndim <= 2:
        return dot(a, b, strategy)

    cfg = get_config()
    held = []
    try:
        av = a.view()
        if a.ndim == 1:
            av = av.insert_axis(0)
        held.append(av)
        bv = b.view()
        if b.ndim == 1:
            bv = bv.insert_axis(1)
        held.append(bv)

        m, k = av.shape[-2:]
        k2, n = bv.shape[-2:]
        _check_inner(a.shape, b.shape, k, k2)
        batch = broadcast_shapes(av.shape[:-2], bv.shape[:-2])

        ab = av.broadcast(batch + (m, k))
        held.append(ab)
        bb = bv.broadcast(batch + (k, n))
        held.append(bb)

        out = _new_product(a, b, batch + (m, n))
        for idx in np.ndindex(*batch):
            sa = ab.slice(idx)
            sb = bb.slice(idx)
            so = out.slice_mut(idx)
            try:
                _gemm_into(1, sa, sb, 0, so, strategy, cfg)
            finally:
                so.release()
                sb.release()
                sa.release()
    finally:
        for v in reversed(held):
            v.release()

    if a.ndim == 1:
        out = out.remove_axis(-2)
    if b.ndim == 1:
        out = out.remove_axis(-1)
    return out


def general_mat_mul(
    alpha: Any,
    a: Any,
    b: Any,
    beta: Any,
    c: Any,
    strategy: Strategy = "auto",
) -> None:
    """
    In-place `c = alpha * a @ b + beta * c` for 2-D arrays.

    `c` must be writable (owned, shared or a mutable view). If `c` may share
    memory with `a` or `b`, the product is computed into a scratch array
    first and then copied into `c`.

    Raises
    ------
    ShapeMismatchError
        If the shapes are not (m, k), (k, n) and (m, n).
    RankMismatchError
        If an operand is not two-dimensional.
    """
    for name, x in (("a", a), ("b", b), ("c", c)):
        _check_array(x, name)
        if x.ndim != 2:
            raise RankMismatchError(2, x.ndim)
    m, k = a.shape
    k2, n = b.shape
    _check_inner(a.shape, b.shape, k, k2)
    if c.shape != (m, n):
        raise ShapeMismatchError(
            f"output shape {c.shape} does not match product shape {(m, n)}",
            c.shape,
            (m, n),
        )
    cfg = get_config()
    if _may_alias(a, c) or _may_alias(b, c):
        logger.debug("general_mat_mul: output may alias an input, using scratch")
        tmp = c.to_owned()
        _gemm_into(alpha, a, b, beta, tmp, strategy, cfg)
        c.assign(tmp)
        return
    _gemm_into(alpha, a, b, beta, c, strategy, cfg)


def general_mat_vec_mul(
    alpha: Any,
    a: Any,
    x: Any,
    beta: Any,
    y: Any,
    strategy: Strategy = "auto",
) -> None:
    """
    In-place `y = alpha * a @ x + beta * y` for a 2-D `a` and 1-D `x`, `y`.

    Raises
    ------
    ShapeMismatchError
        If the shapes are not (m, k), (k,) and (m,).
    RankMismatchError
        If an operand has the wrong rank.
    """
    _check_array(a, "a")
    _check_array(x, "x")
    _check_array(y, "y")
    if a.ndim != 2:
        raise RankMismatchError(2, a.ndim)
    for v in (x, y):
        if v.ndim != 1:
            raise RankMismatchError(1, v.ndim)
    m, k = a.shape
    _check_inner(a.shape, x.shape, k, x.shape[0])
    if y.shape[0] != m:
        raise ShapeMismatchError(
            f"output length {y.shape[0]} does not match product length {m}",
            y.shape,
            (m,),
        )
    xv = x.view().insert_axis(1)
    try:
        yv = y.view_mut().insert_axis(1)
        try:
            general_mat_mul(alpha, a, xv, beta, yv, strategy)
        finally:
            yv.release()
    finally:
        xv.release()
