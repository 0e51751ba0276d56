"""
Array constructors.

Every factory returns an array with freshly owned storage unless its name
says otherwise (`shared`, `from_raw`). Factories taking `order` lay the
elements out row-major ("C", default) or column-major ("F"); the logical
shape and values are the same either way.
"""

from __future__ import annotations

import numbers
from typing import Any, Callable, Iterable, Optional, Sequence

import numpy as np

from ...domain._errors import ShapeMismatchError
from ...domain.dimension import Dim, DimLike, as_shape, into_dimension
from ..storage import OwnedStorage, RawStorage, SharedStorage
from ._array import Array


def _check_order(order: str) -> str:
    if order not in ("C", "F"):
        raise ValueError(f"order must be 'C' or 'F', got {order!r}")
    return order


def _strides_for(dim: Dim, order: str) -> Dim:
    return dim.default_strides() if order == "C" else dim.fortran_strides()


def _from_flat(flat: np.ndarray, dim: Dim, order: str, storage: Any = OwnedStorage) -> Array:
    """Wrap a flat buffer already laid out in `order`."""
    return Array(storage(flat), 0, dim, _strides_for(dim, order), check=False)


def _from_logical(values: np.ndarray, dim: Dim, order: str, storage: Any = OwnedStorage) -> Array:
    """Wrap an n-d NumPy array of logical values, laying it out in `order`."""
    flat = np.asarray(values).reshape(-1, order=order).copy()
    return _from_flat(flat, dim, order, storage)


# ----------------------------------------------------------------------
# filled
# ----------------------------------------------------------------------
def full(shape: DimLike, value: Any, dtype: Any = None, order: str = "C") -> Array:
    """
    Array of `shape` with every element set to `value`.

    Parameters
    ----------
    shape : DimLike
        Int, tuple or `Dim`.
    value : Any
        Fill value.
    dtype : optional
        Element type. Inferred from `value` when None.
    order : {"C", "F"}
        Memory layout.
    """
    _check_order(order)
    dim = as_shape(shape)
    dt = np.dtype(dtype) if dtype is not None else np.asarray(value).dtype
    flat = np.empty(dim.size(), dtype=dt)
    if dt.hasobject:
        for i in range(flat.shape[0]):
            flat[i] = value
    else:
        flat.fill(value)
    return _from_flat(flat, dim, order)


def from_elem(shape: DimLike, value: Any, dtype: Any = None, order: str = "C") -> Array:
    """Alias of `full`."""
    return full(shape, value, dtype=dtype, order=order)


def zeros(shape: DimLike, dtype: Any = np.float64, order: str = "C") -> Array:
    """Array of zeros."""
    _check_order(order)
    dim = as_shape(shape)
    return _from_flat(np.zeros(dim.size(), dtype=np.dtype(dtype)), dim, order)


def ones(shape: DimLike, dtype: Any = np.float64, order: str = "C") -> Array:
    """Array of ones."""
    _check_order(order)
    dim = as_shape(shape)
    return _from_flat(np.ones(dim.size(), dtype=np.dtype(dtype)), dim, order)


def empty(shape: DimLike, dtype: Any = np.float64, order: str = "C") -> Array:
    """
    Array with unspecified contents (zeros for object dtype).

    The elements must be written before they are read.
    """
    _check_order(order)
    dim = as_shape(shape)
    dt = np.dtype(dtype)
    flat = np.zeros(dim.size(), dtype=dt) if dt.hasobject else np.empty(dim.size(), dtype=dt)
    return _from_flat(flat, dim, order)


def eye(n: int, dtype: Any = np.float64) -> Array:
    """Square identity matrix of size `n`."""
    if n < 0:
        raise ValueError(f"eye: n must be non-negative, got {n}")
    return _from_flat(np.eye(n, dtype=np.dtype(dtype)).reshape(-1), into_dimension((n, n)), "C")


# ----------------------------------------------------------------------
# from values
# ----------------------------------------------------------------------
def from_numpy(arr: Any, order: str = "C") -> Array:
    """
    Copy a NumPy array (or anything `np.asarray` accepts) into an owned array
    with the same shape and dtype.
    """
    _check_order(order)
    values = np.asarray(arr)
    return _from_logical(values, into_dimension(values.shape), order)


def from_iterable(values: Iterable[Any], dtype: Any = None) -> Array:
    """One-dimensional owned array from an iterable."""
    items = list(values)
    if dtype is not None:
        flat = np.empty(len(items), dtype=np.dtype(dtype))
        for i, v in enumerate(items):
            flat[i] = v
    elif not items:
        flat = np.empty(0, dtype=np.float64)
    else:
        flat = np.asarray(items)
        if flat.ndim != 1:
            flat = np.empty(len(items), dtype=object)
            for i, v in enumerate(items):
                flat[i] = v
    return _from_flat(flat, into_dimension((flat.shape[0],)), "C")


def from_vec(values: Sequence[Any], dtype: Any = None) -> Array:
    """Alias of `from_iterable`."""
    return from_iterable(values, dtype=dtype)


def from_shape_vec(
    shape: DimLike,
    values: Sequence[Any],
    order: str = "C",
    dtype: Any = None,
) -> Array:
    """
    Array of `shape` taking ownership of a flat sequence of values.

    `values` is interpreted in `order`: with "F" the first axis varies
    fastest. No element is reordered; the strides describe the order.

    Raises
    ------
    ShapeMismatchError
        If `len(values)` differs from the product of `shape`.
    """
    _check_order(order)
    dim = as_shape(shape)
    flat = np.array(values, dtype=dtype).reshape(-1)
    if flat.shape[0] != dim.size():
        raise ShapeMismatchError(
            f"from_shape_vec: {flat.shape[0]} values do not fill shape {tuple(dim)}",
            (flat.shape[0],),
            tuple(dim),
        )
    return _from_flat(flat, dim, order)


def from_shape_fn(
    shape: DimLike,
    f: Callable[[tuple[int, ...]], Any],
    dtype: Any = None,
    order: str = "C",
) -> Array:
    """
    Array whose element at index `ix` is `f(ix)`.

    `f` is called once per index in row-major order.
    """
    _check_order(order)
    dim = as_shape(shape)
    values = [f(ix) for ix in np.ndindex(*dim.slice())]
    c_flat = from_iterable(values, dtype=dtype).as_slice()
    return _from_logical(c_flat.reshape(dim.slice()), dim, order)


def arange(start: Any, stop: Any = None, step: Any = 1, dtype: Any = None) -> Array:
    """One-dimensional array of evenly spaced values in `[start, stop)`."""
    if stop is None:
        start, stop = 0, start
    flat = np.arange(start, stop, step, dtype=dtype)
    return _from_flat(flat, into_dimension((flat.shape[0],)), "C")


def linspace(start: float, stop: float, num: int, endpoint: bool = True, dtype: Any = None) -> Array:
    """`num` evenly spaced values from `start` to `stop`."""
    flat = np.linspace(start, stop, num, endpoint=endpoint, dtype=dtype)
    return _from_flat(flat, into_dimension((flat.shape[0],)), "C")


# ----------------------------------------------------------------------
# other ownership modes
# ----------------------------------------------------------------------
def shared(values: Any, order: str = "C") -> Array:
    """
    Copy values into shared (reference-counted, copy-on-write) storage.

    `values` is an `Array`, a NumPy array or anything `np.asarray` accepts.
    """
    _check_order(order)
    if isinstance(values, Array):
        values = values.to_numpy()
    values = np.asarray(values)
    return _from_logical(values, into_dimension(values.shape), order, SharedStorage)


def from_raw(
    source: Any,
    shape: Optional[DimLike] = None,
    strides: Optional[Sequence[int]] = None,
    offset: int = 0,
    *,
    dtype: Any = None,
    count: Optional[int] = None,
    writable: bool = True,
) -> Array:
    """
    Untracked array over caller-owned memory.

    Parameters
    ----------
    source : np.ndarray, buffer-protocol object or int
        The memory. NumPy arrays must be C- or F-contiguous. An int is a raw
        address and needs `count` and `dtype`.
    shape : DimLike, optional
        Logical shape. Defaults to the NumPy array's shape, else to the
        element count.
    strides : Sequence[int], optional
        Element strides. Default: row-major for `shape` (or the NumPy array's
        own layout when `shape` is omitted).
    offset : int
        Element offset of index (0, ..., 0).
    dtype : optional
        Element type; required for buffers and addresses.
    count : int, optional
        Number of elements at `source` when it is an address.
    writable : bool
        Allow writes through the array (also limited by the memory itself).

    Raises
    ------
    ShapeMismatchError
        If the layout reaches outside the memory.

    Notes
    -----
    No borrow is tracked. The caller keeps the memory alive and avoids
    conflicting writes for as long as the array is used.
    """
    default_strides = None
    if isinstance(source, np.ndarray):
        if source.flags.c_contiguous:
            flat = source.reshape(-1)
            natural = "C"
        elif source.flags.f_contiguous:
            flat = source.reshape(-1, order="F")
            natural = "F"
        else:
            raise ValueError("from_raw needs a C- or F-contiguous NumPy array")
        if dtype is not None and np.dtype(dtype) != flat.dtype:
            flat = flat.view(np.dtype(dtype))
        st = RawStorage(flat, writable=writable)
        if shape is None and flat.dtype == source.dtype:
            shape = source.shape
            default_strides = _strides_for(into_dimension(source.shape), natural)
    elif isinstance(source, numbers.Integral):
        if count is None or dtype is None:
            raise TypeError("from_raw with an address needs count and dtype")
        st = RawStorage.from_address(int(source), int(count), dtype, writable=writable)
    else:
        if dtype is None:
            raise TypeError("from_raw with a buffer needs dtype")
        st = RawStorage.from_buffer(source, dtype, writable=writable)

    dim = as_shape(shape if shape is not None else (len(st),))
    if strides is None:
        strides = default_strides if default_strides is not None else dim.default_strides()
    return Array(st, offset, dim, strides)
