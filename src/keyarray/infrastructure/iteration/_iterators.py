"""
Public iterables over arrays.

Each iterable is a lightweight, restartable object: it captures the array and
its layout at creation and builds a fresh traversal every time it is iterated.
The buffer is fetched (and therefore access-checked) when a traversal starts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator

from ...domain._errors import OutOfBoundsError
from ...domain.dimension import normalize_axis
from ._baseiter import Baseiter, ContiguousOffsets, plan_offsets

if TYPE_CHECKING:
    from ..array._array import Array


class _LayoutIterable:
    __slots__ = ("_array", "_offset", "_dim", "_strides")

    def __init__(self, array: "Array") -> None:
        self._array = array
        self._offset = array.offset
        self._dim = tuple(array.raw_dim)
        self._strides = tuple(array.strides)

    def __len__(self) -> int:
        n = 1
        for d in self._dim:
            n *= d
        return n


class Iter(_LayoutIterable):
    """
    Element values in logical row-major order (or its reverse).
    """

    __slots__ = ("_reverse",)

    def __init__(self, array: "Array", reverse: bool = False) -> None:
        super().__init__(array)
        self._reverse = reverse

    def __iter__(self) -> Iterator[Any]:
        buf = self._array._read_buffer()
        plan = plan_offsets(self._offset, self._dim, self._strides, reverse=self._reverse)
        if isinstance(plan, ContiguousOffsets):
            return iter(buf[plan.start : plan.stop])
        return (buf[o] for o in plan)

    def __reversed__(self) -> Iterator[Any]:
        return iter(Iter(self._array, reverse=not self._reverse))


class MemoryOrderIter(_LayoutIterable):
    """
    Element values in memory order: the fastest traversal available. For
    row-major layouts this equals logical order, for column-major layouts it
    is the transposed order.
    """

    __slots__ = ()

    def __iter__(self) -> Iterator[Any]:
        buf = self._array._read_buffer()
        plan = plan_offsets(self._offset, self._dim, self._strides, memory_order=True)
        if isinstance(plan, ContiguousOffsets):
            return iter(buf[plan.start : plan.stop])
        return (buf[o] for o in plan)


class IndexedIter(_LayoutIterable):
    """
    `(index, value)` pairs in logical row-major order.
    """

    __slots__ = ()

    def __iter__(self) -> Iterator[tuple[tuple[int, ...], Any]]:
        buf = self._array._read_buffer()
        for ix, o in Baseiter(self._offset, self._dim, self._strides, track_index=True):
            yield ix, buf[o]


class Offsets(_LayoutIterable):
    """
    Raw buffer offsets in logical order.

    `force_strided=True` bypasses the contiguous fast path, which lets tests
    compare both traversal strategies on the same layout.
    """

    __slots__ = ("_force",)

    def __init__(self, array: "Array", force_strided: bool = False) -> None:
        super().__init__(array)
        self._force = force_strided

    def __iter__(self) -> Iterator[int]:
        return iter(
            plan_offsets(self._offset, self._dim, self._strides, force_strided=self._force)
        )


class AxisIter:
    """
    Sub-views obtained by fixing successive positions along one axis.

    Each yielded view has rank one less than the source. With `mutable=True`
    the views are mutable; views of distinct positions are disjoint, so the
    caller may keep all of them alive at once.
    """

    __slots__ = ("_array", "_axis", "_mutable")

    def __init__(self, array: "Array", axis: int = 0, mutable: bool = False) -> None:
        if array.ndim == 0:
            raise TypeError("cannot iterate over axes of a rank-0 array")
        self._array = array
        self._axis = normalize_axis(axis, array.ndim)
        self._mutable = mutable

    def __len__(self) -> int:
        return self._array.raw_dim[self._axis]

    def __iter__(self) -> Iterator["Array"]:
        a = self._array
        for i in range(a.raw_dim[self._axis]):
            if self._mutable:
                yield a.index_axis_mut(self._axis, i)
            else:
                yield a.index_axis(self._axis, i)


class AxisChunksIter:
    """
    Views of at most `size` consecutive positions along `axis`; the last chunk
    may be shorter. Rank is preserved.
    """

    __slots__ = ("_array", "_axis", "_size")

    def __init__(self, array: "Array", axis: int, size: int) -> None:
        if size <= 0:
            raise ValueError(f"chunk size must be positive, got {size}")
        if array.ndim == 0:
            raise TypeError("cannot chunk a rank-0 array")
        self._array = array
        self._axis = normalize_axis(axis, array.ndim)
        self._size = size

    def __len__(self) -> int:
        n = self._array.raw_dim[self._axis]
        return -(-n // self._size)

    def __iter__(self) -> Iterator["Array"]:
        a = self._array
        n = a.raw_dim[self._axis]
        for start in range(0, n, self._size):
            info = [slice(None)] * a.ndim
            info[self._axis] = slice(start, min(start + self._size, n))
            yield a.slice(tuple(info))


class Lanes:
    """
    All one-dimensional lanes along `axis`.

    A lane fixes every other coordinate and runs the full length of `axis`;
    there are `size / len(axis)` of them, visited in row-major order of the
    remaining coordinates.
    """

    __slots__ = ("_array", "_axis")

    def __init__(self, array: "Array", axis: int) -> None:
        if array.ndim == 0:
            raise TypeError("a rank-0 array has no lanes")
        self._array = array
        self._axis = normalize_axis(axis, array.ndim)

    def __len__(self) -> int:
        dim = self._array.raw_dim
        n = 1
        for i, d in enumerate(dim):
            if i != self._axis:
                n *= d
        return n

    def __iter__(self) -> Iterator["Array"]:
        a = self._array
        dim = a.raw_dim
        strides = a.strides
        ax = self._axis
        outer_dim = tuple(d for i, d in enumerate(dim) if i != ax)
        outer_strides = tuple(s for i, s in enumerate(strides) if i != ax)
        for o in Baseiter(a.offset, outer_dim, outer_strides):
            yield a._derive(o, (dim[ax],), (strides[ax],))


def check_split_index(length: int, index: int, axis: int) -> int:
    """Resolve a split position; `length` itself is a valid position."""
    resolved = index + length if index < 0 else index
    if resolved < 0 or resolved > length:
        raise OutOfBoundsError(axis, index, length)
    return resolved
