"""
Array iteration mixin.

Exposes the iteration engine on `Array`: element iterables, axis and lane
iterables, and the elementwise helpers built on them (`map`, `fold`, ...).
Every helper routes through `plan_offsets`, so contiguous arrays take the
flat fast path and everything else takes the strided odometer.
"""

from __future__ import annotations

from abc import ABC
from typing import Any, Callable, Iterator

import numpy as np

from ...iteration import (
    AxisChunksIter,
    AxisIter,
    ContiguousOffsets,
    IndexedIter,
    Iter,
    Lanes,
    MemoryOrderIter,
    Offsets,
    plan_offsets,
)


def _collect(values: list, dtype: Any) -> np.ndarray:
    """Flat NumPy buffer from mapped values."""
    if dtype is not None:
        out = np.empty(len(values), dtype=np.dtype(dtype))
        for i, v in enumerate(values):
            out[i] = v
        return out
    if not values:
        return np.empty(0, dtype=np.float64)
    arr = np.asarray(values)
    if arr.ndim == 1:
        return arr
    out = np.empty(len(values), dtype=object)
    for i, v in enumerate(values):
        out[i] = v
    return out


class ArrayMixinIteration(ABC):
    """
    Iteration helpers for `Array`.
    """

    # ------------------------------------------------------------------
    # iterables
    # ------------------------------------------------------------------
    def iter(self, reverse: bool = False) -> Iter:
        """Element values in logical row-major order (or reversed)."""
        return Iter(self, reverse=reverse)

    def indexed_iter(self) -> IndexedIter:
        """`(index, value)` pairs in logical row-major order."""
        return IndexedIter(self)

    def iter_memory_order(self) -> MemoryOrderIter:
        """Element values in memory order, whatever the logical order is."""
        return MemoryOrderIter(self)

    def offsets(self, force_strided: bool = False) -> Offsets:
        """Buffer offsets in logical order; see `Offsets`."""
        return Offsets(self, force_strided=force_strided)

    def outer_iter(self) -> AxisIter:
        """Read-only sub-views along axis 0."""
        return AxisIter(self, 0)

    def outer_iter_mut(self) -> AxisIter:
        """Mutable sub-views along axis 0."""
        return AxisIter(self, 0, mutable=True)

    def axis_iter(self, axis: int) -> AxisIter:
        """Read-only sub-views along `axis`."""
        return AxisIter(self, axis)

    def axis_chunks_iter(self, axis: int, size: int) -> AxisChunksIter:
        """Read-only chunks of `size` positions along `axis`."""
        return AxisChunksIter(self, axis, size)

    def lanes(self, axis: int) -> Lanes:
        """One-dimensional read-only lanes along `axis`."""
        return Lanes(self, axis)

    def rows(self) -> Lanes:
        """Lanes along the last axis (the rows of a matrix)."""
        return Lanes(self, -1)

    def columns(self) -> Lanes:
        """Lanes along the first axis (the columns of a matrix)."""
        return Lanes(self, 0)

    def __iter__(self) -> Iterator[Any]:
        """
        Iterate over axis 0 like NumPy: sub-views for rank >= 2, elements for
        rank 1.
        """
        if self.ndim == 0:
            raise TypeError("iteration over a rank-0 array")
        if self.ndim == 1:
            return iter(Iter(self))
        return iter(AxisIter(self, 0))

    # ------------------------------------------------------------------
    # elementwise helpers
    # ------------------------------------------------------------------
    def map(self, f: Callable[[Any], Any], dtype: Any = None) -> Any:
        """
        New owned array of `f(x)` for every element, same shape.

        Parameters
        ----------
        f : Callable
            Applied to each element in logical order.
        dtype : optional
            Element type of the result. Inferred from the results when None.
        """
        values = [f(v) for v in Iter(self)]
        return self._new_owned(_collect(values, dtype), self._dim)

    def mapv(self, f: Callable[[Any], Any], dtype: Any = None) -> Any:
        """Alias of `map`; elements are always passed by value."""
        return self.map(f, dtype=dtype)

    def map_inplace(self, f: Callable[[Any], Any]) -> None:
        """Replace every element `x` by `f(x)`, visiting in memory order."""
        buf = self._write_buffer()
        plan = plan_offsets(self._offset, self._dim, self._strides, memory_order=True)
        if isinstance(plan, ContiguousOffsets) and not buf.dtype.hasobject:
            block = buf[plan.start : plan.stop]
            for i in range(len(block)):
                block[i] = f(block[i])
            return
        for o in plan:
            buf[o] = f(buf[o])

    def for_each(self, f: Callable[[Any], Any]) -> None:
        """Call `f(x)` on every element in logical order."""
        for v in Iter(self):
            f(v)

    def fold(self, init: Any, f: Callable[[Any, Any], Any]) -> Any:
        """
        Reduce the elements in memory order: `f(...f(f(init, x0), x1)..., xn)`.
        """
        acc = init
        for v in MemoryOrderIter(self):
            acc = f(acc, v)
        return acc

    def sum(self) -> Any:
        """Sum of all elements (zero of the dtype for empty arrays)."""
        dt = self.dtype
        zero = 0 if dt.hasobject else dt.type(0)
        return self.fold(zero, lambda a, b: a + b)

    def zip_with(self, other: Any, f: Callable[[Any, Any], Any], dtype: Any = None) -> Any:
        """
        New owned array of `f(x, y)` over both arrays.

        `other` is broadcast to this array's shape.

        Raises
        ------
        ShapeMismatchError
            If `other` cannot be broadcast to `self.shape`.
        """
        if other.shape == self.shape:
            rhs = list(Iter(other))
        else:
            view = other.broadcast(self.shape)
            try:
                rhs = list(Iter(view))
            finally:
                view.release()
        values = [f(a, b) for a, b in zip(Iter(self), rhs)]
        return self._new_owned(_collect(values, dtype), self._dim)

    def to_list(self) -> Any:
        """
        Nested Python lists in logical order (a bare element for rank 0).
        """
        flat = list(Iter(self))
        if self.ndim == 0:
            v = flat[0]
            return v.item() if isinstance(v, np.generic) else v
        flat = [v.item() if isinstance(v, np.generic) else v for v in flat]
        dims = self.shape

        def build(level: int, start: int) -> tuple[list, int]:
            if level == len(dims) - 1:
                n = dims[level]
                return flat[start : start + n], start + n
            out = []
            for _ in range(dims[level]):
                sub, start = build(level + 1, start)
                out.append(sub)
            return out, start

        return build(0, 0)[0]

