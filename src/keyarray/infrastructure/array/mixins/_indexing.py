"""
Array indexing mixin.

Element access (`get`, `uget`, `[...]`) and every slicing flavour:

- `slice`          : read-only view, receiver unchanged
- `slice_mut`      : exclusive mutable view, receiver frozen while it lives
- `slice_move`     : consumes the receiver, result keeps its storage
- `slice_collapse` : in-place; integer indices keep their axis at length 1
- `index_axis*`, `collapse_axis`, `split_at`, `multi_slice_mut`, `select`

Slicing is O(rank) arithmetic on (offset, shape, strides) and never copies;
only `select` gathers elements into a new owned array.
"""

from __future__ import annotations

from abc import ABC
from typing import Any, Optional, Sequence

import numpy as np

from ....domain._errors import AliasingViolationError, RankMismatchError
from ....domain._slice_info import (
    Slice,
    SliceInfo,
    as_slice_info,
    do_slice,
    do_slice_collapse,
    resolve_index,
)
from ....domain._storage import StorageKind
from ....domain.dimension import normalize_axis, offset_of
from ...iteration import Baseiter, check_split_index


def _full_index(key: Any, ndim: int) -> Optional[tuple[int, ...]]:
    """
    The key as a tuple of ints if it addresses exactly one element, else None.
    """
    if isinstance(key, tuple):
        if len(key) == ndim and all(_is_int(k) for k in key):
            return tuple(int(k) for k in key)
        return None
    if ndim == 1 and _is_int(key):
        return (int(key),)
    return None


def _is_int(k: Any) -> bool:
    if isinstance(k, (bool, np.bool_)):
        return False
    return isinstance(k, (int, np.integer))


def _axis_info(ndim: int, axis: int, elem: Any) -> SliceInfo:
    elems = [Slice()] * ndim
    elems[axis] = elem
    return SliceInfo(elems)


class ArrayMixinIndexing(ABC):
    """
    Element access and slicing for `Array`.
    """

    # ------------------------------------------------------------------
    # elements
    # ------------------------------------------------------------------
    def get(self, index: Any) -> Optional[Any]:
        """
        Read one element, or return None when `index` is out of bounds.

        Parameters
        ----------
        index : int or Sequence[int]
            Non-negative coordinates, one per axis. A bare int is accepted for
            rank-1 arrays.
        """
        if _is_int(index):
            index = (int(index),)
        index = tuple(index)
        off = self._dim.stride_offset_checked(self._strides, index)
        if off is None:
            return None
        return self._read_buffer()[self._offset + off]

    def _element_offset(self, index: Sequence[int]) -> int:
        if len(index) != self.ndim:
            raise RankMismatchError(self.ndim, len(index))
        off = self._offset
        for axis, (i, d, s) in enumerate(zip(index, self._dim, self._strides)):
            off += resolve_index(d, i, axis) * s
        return off

    def uget(self, index: Sequence[int]) -> Any:
        """
        Read one element without bounds or borrow checks.

        Coordinates outside the shape produce an arbitrary element of the
        buffer, or an `IndexError` from NumPy if they leave it.
        """
        if _is_int(index):
            index = (int(index),)
        return self._storage.root_buffer()[self._offset + offset_of(index, self._strides)]

    def __getitem__(self, key: Any) -> Any:
        """
        `a[i, j]` with one integer per axis returns the element; any other
        subscript (slices, `None`, `...`, fewer integers) returns a read-only
        view, as with `slice`.
        """
        if self.ndim == 0 and (key is Ellipsis or (isinstance(key, tuple) and not key)):
            return self._read_buffer()[self._offset]
        index = _full_index(key, self.ndim)
        if index is not None:
            return self._read_buffer()[self._element_offset(index)]
        return self.slice(key)

    def __setitem__(self, key: Any, value: Any) -> None:
        """
        Write one element, or broadcast-assign `value` into the selected region.
        """
        if self.ndim == 0 and (key is Ellipsis or (isinstance(key, tuple) and not key)):
            self._write_buffer()[self._offset] = value
            return
        index = _full_index(key, self.ndim)
        if index is not None:
            off = self._element_offset(index)
            self._write_buffer()[off] = value
            return
        target = self.slice_mut(key)
        try:
            target.assign(value)
        finally:
            target.release()

    # ------------------------------------------------------------------
    # slicing
    # ------------------------------------------------------------------
    def _sliced_layout(self, info: Any):
        off, dim, strides = do_slice(self._dim, self._strides, as_slice_info(info))
        return self._offset + off, dim, strides

    def slice(self, info: Any) -> Any:
        """
        Read-only view selected by `info`.

        Parameters
        ----------
        info : SliceInfo or subscript
            For example `s[1:3, ::-1]`, or the same tuple of Python slices.

        Raises
        ------
        OutOfBoundsError
            If an index or explicit bound lies outside its axis.
        RankMismatchError
            If `info` consumes more axes than the array has.
        """
        off, dim, strides = self._sliced_layout(info)
        return self._derive(off, dim, strides, False)

    def slice_mut(self, info: Any) -> Any:
        """
        Exclusive mutable view selected by `info`.

        Raises
        ------
        AliasingViolationError
            If the region overlaps another live view that forbids it, or the
            array is read-only.
        """
        off, dim, strides = self._sliced_layout(info)
        return self._derive(off, dim, strides, True)

    def slice_move(self, info: Any) -> Any:
        """
        Consume the array and return it restricted to `info`.

        The result keeps the receiver's storage (owned stays owned, a mutable
        view stays the same borrow). The receiver can no longer be used.
        """
        off, dim, strides = self._sliced_layout(info)
        return self._relayout(off, dim, strides)

    def slice_collapse(self, info: Any) -> None:
        """
        Restrict the array in place. Integer indices keep their axis with
        length 1, so the rank never changes; `NewAxis` is rejected.
        """
        self._check_alive()
        off, dim, strides = do_slice_collapse(self._dim, self._strides, as_slice_info(info))
        self._offset += off
        self._dim = dim
        self._strides = strides

    # ------------------------------------------------------------------
    # single-axis helpers
    # ------------------------------------------------------------------
    def index_axis(self, axis: int, index: int) -> Any:
        """Read-only view with `axis` removed, fixed at `index`."""
        ax = normalize_axis(axis, self.ndim)
        return self.slice(_axis_info(self.ndim, ax, int(index)))

    def index_axis_mut(self, axis: int, index: int) -> Any:
        """Mutable view with `axis` removed, fixed at `index`."""
        ax = normalize_axis(axis, self.ndim)
        return self.slice_mut(_axis_info(self.ndim, ax, int(index)))

    def index_axis_move(self, axis: int, index: int) -> Any:
        """Consuming version of `index_axis`."""
        ax = normalize_axis(axis, self.ndim)
        return self.slice_move(_axis_info(self.ndim, ax, int(index)))

    def collapse_axis(self, axis: int, index: int) -> None:
        """Fix `axis` at `index` in place, keeping it with length 1."""
        self._check_alive()
        ax = normalize_axis(axis, self.ndim)
        i = resolve_index(self._dim[ax], int(index), ax)
        self._offset += i * self._strides[ax]
        self._dim = self._dim.set_axis(ax, 1)

    def split_at(self, axis: int, index: int) -> tuple[Any, Any]:
        """
        Split into the parts before and from `index` along `axis`.

        On a mutable view both halves are mutable and the receiver is consumed.
        On any other array both halves are read-only views and the receiver is
        left untouched. `index` may equal the axis length (empty second half).

        Raises
        ------
        OutOfBoundsError
            If `index` is outside `[0, len]`.
        """
        ax = normalize_axis(axis, self.ndim)
        n = self._dim[ax]
        i = check_split_index(n, int(index), ax)
        s = self._strides[ax]
        first = (self._offset, self._dim.set_axis(ax, i), self._strides)
        second = (
            self._offset + (i * s if i < n else 0),
            self._dim.set_axis(ax, n - i),
            self._strides,
        )

        if self.storage_kind is StorageKind.VIEW_MUT:
            a = self._derive(*first, True)
            try:
                b = self._derive(*second, True)
            except AliasingViolationError:
                a.release()
                raise
            self._move()
            return a, b
        return self._derive(*first, False), self._derive(*second, False)

    def multi_slice_mut(self, *infos: Any) -> tuple[Any, ...]:
        """
        Several mutable views at once.

        Either every view is created or none is: if any two requested regions
        overlap, or one overlaps a conflicting live view, the views already
        created are released and `AliasingViolationError` is raised.
        """
        layouts = [self._sliced_layout(info) for info in infos]
        out = []
        try:
            for off, dim, strides in layouts:
                out.append(self._derive(off, dim, strides, True))
        except AliasingViolationError:
            for v in out:
                v.release()
            raise
        return tuple(out)

    def select(self, axis: int, indices: Sequence[int]) -> Any:
        """
        Gather the given positions along `axis` into a new owned array.

        Negative positions count from the end; positions may repeat.
        """
        ax = normalize_axis(axis, self.ndim)
        n = self._dim[ax]
        picked = [resolve_index(n, int(i), ax) for i in indices]
        dim = self._dim.set_axis(ax, len(picked))
        buf = self._read_buffer()
        flat = np.empty(dim.size(), dtype=buf.dtype)
        # (outer, picked, inner) walk in row-major order of the result
        outer = self._dim.slice()[:ax]
        inner_dim = self._dim.slice()[ax + 1 :]
        inner_strides = self._strides.slice()[ax + 1 :]
        k = 0
        for o in Baseiter(self._offset, outer, self._strides.slice()[:ax]):
            for p in picked:
                for io in Baseiter(o + p * self._strides[ax], inner_dim, inner_strides):
                    flat[k] = buf[io]
                    k += 1
        return self._new_owned(flat, dim)
