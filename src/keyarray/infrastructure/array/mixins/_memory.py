"""
Array memory mixin.

This module defines `ArrayMixinMemory`, which groups the operations that move
elements between storages or change who owns them:

- conversions: `to_owned`, `to_shared`, `into_shared`, `to_numpy`,
  `as_numpy_view`, `as_slice`, `as_slice_memory_order`
- in-place writes: `fill`, `assign`, `copy_from_numpy`
- borrowing: `view`, `view_mut`, `clone`
- lifetime: `release` and the context-manager protocol

Notes
-----
- Writes always go through `storage.as_mutable()`, which performs
  copy-on-write for shared storage and refuses read-only storage.
- Source values are materialized before the destination buffer is requested,
  so an assignment from an overlapping raw alias reads consistent values.
"""

from __future__ import annotations

from abc import ABC
from typing import Any, Iterable, Optional

import numpy as np
from numpy.lib.stride_tricks import as_strided

from ....domain._errors import ShapeMismatchError
from ....domain._storage import StorageKind
from ....domain.dimension import into_dimension, upcast
from ...iteration import ContiguousOffsets, Iter, plan_offsets
from ...storage import MovedStorage, OwnedStorage, SharedStorage, is_moved


def _store(buf: np.ndarray, plan, values: list) -> None:
    """Write `values` at the offsets produced by `plan`."""
    if isinstance(plan, ContiguousOffsets) and not buf.dtype.hasobject:
        buf[plan.start : plan.stop] = values
        return
    for o, v in zip(plan, values):
        buf[o] = v


class ArrayMixinMemory(ABC):
    """
    Copies, conversions and in-place writes for `Array`.
    """

    # ------------------------------------------------------------------
    # constructors used by the other mixins
    # ------------------------------------------------------------------
    def _new_owned(self, flat: np.ndarray, dim) -> Any:
        """Wrap a fresh C-ordered flat buffer as an owned array of shape `dim`."""
        dim = into_dimension(dim) if not hasattr(dim, "default_strides") else dim
        return type(self)(OwnedStorage(flat), 0, dim, dim.default_strides(), check=False)

    # ------------------------------------------------------------------
    # numpy interop
    # ------------------------------------------------------------------
    def as_numpy_view(self) -> np.ndarray:
        """
        Zero-copy, read-only NumPy view with the same shape and strides.

        Returns
        -------
        np.ndarray
            A strided view into the buffer. For object dtype a zero-copy view
            is not expressible and a read-only copy is returned instead.

        Notes
        -----
        The returned view is not tracked as a borrow; do not keep it across
        writes through mutable views of the same memory.
        """
        buf = self._read_buffer()
        if buf.dtype.hasobject:
            out = self.to_numpy()
            out.flags.writeable = False
            return out
        if self.size == 0:
            out = np.empty(self.shape, dtype=buf.dtype)
            out.flags.writeable = False
            return out
        item = buf.itemsize
        return as_strided(
            buf[self._offset :],
            shape=self.shape,
            strides=tuple(s * item for s in self._strides),
            writeable=False,
        )

    def to_numpy(self) -> np.ndarray:
        """
        Materialize a C-ordered NumPy copy in logical order.
        """
        if self.dtype.hasobject:
            buf = self._read_buffer()
            flat = np.empty(self.size, dtype=buf.dtype)
            for i, v in enumerate(Iter(self)):
                flat[i] = v
            return flat.reshape(self.shape)
        return np.array(self.as_numpy_view(), copy=True, order="C")

    def __array__(self, dtype: Any = None, copy: Optional[bool] = None) -> np.ndarray:
        out = self.to_numpy()
        if dtype is not None:
            out = out.astype(dtype, copy=False)
        return out

    def as_slice(self) -> Optional[np.ndarray]:
        """
        Read-only flat view of the elements if the layout is standard
        (row-major contiguous), else None.
        """
        if not self.is_standard_layout():
            return None
        buf = self._read_buffer()
        out = buf[self._offset : self._offset + self.size].view()
        out.flags.writeable = False
        return out

    def as_slice_memory_order(self) -> Optional[np.ndarray]:
        """
        Read-only flat view of the elements in memory order if the layout is
        row- or column-major contiguous, else None.
        """
        if not self.is_contiguous():
            return None
        buf = self._read_buffer()
        out = buf[self._offset : self._offset + self.size].view()
        out.flags.writeable = False
        return out

    # ------------------------------------------------------------------
    # ownership conversions
    # ------------------------------------------------------------------
    def to_owned(self) -> Any:
        """Copy the elements into a new owned array in standard layout."""
        return self._new_owned(self.to_numpy().reshape(-1), self._dim)

    def to_shared(self) -> Any:
        """
        Shared-storage array with the same elements.

        For shared storage only the reference is duplicated; every other mode
        copies the elements.
        """
        if self.storage_kind is StorageKind.SHARED:
            return self.clone()
        flat = self.to_numpy().reshape(-1)
        return type(self)(
            SharedStorage(flat), 0, self._dim, self._dim.default_strides(), check=False
        )

    def into_shared(self) -> Any:
        """
        Consume the array into shared storage.

        Owned buffers are adopted without copying; views and raw arrays are
        copied. The receiver can no longer be used.
        """
        kind = self.storage_kind
        if kind is StorageKind.SHARED:
            return self._relayout(self._offset, self._dim, self._strides)
        if kind is StorageKind.OWNED:
            self._storage.tracker.check_owner_write()
            st = self._move()
            return type(self)(
                SharedStorage(st.root_buffer()), self._offset, self._dim, self._strides, check=False
            )
        out = self.to_shared()
        self._move()
        return out

    def clone(self) -> Any:
        """
        Duplicate the array according to its ownership mode.

        Owned arrays are deep-copied, shared arrays share their buffer, read
        views borrow the same region again, raw arrays alias the same memory.
        Mutable views cannot be cloned.
        """
        return type(self)(
            self._storage.clone_handle(), self._offset, self._dim, self._strides, check=False
        )

    # ------------------------------------------------------------------
    # borrowing
    # ------------------------------------------------------------------
    def view(self) -> Any:
        """Read-only view of the whole array."""
        return self._derive(self._offset, self._dim, self._strides, False, allow_overlap=True)

    def view_mut(self) -> Any:
        """
        Exclusive mutable view of the whole array.

        Raises
        ------
        AliasingViolationError
            If the array is read-only or already borrowed in a conflicting way.
        """
        return self._derive(self._offset, self._dim, self._strides, True)

    def release(self) -> None:
        """
        End this array's hold on its storage now.

        Views give their borrow back, shared handles drop their reference.
        Any further use of the array raises `AliasingViolationError`.
        """
        st = self._storage
        if is_moved(st):
            return
        release = getattr(st, "release", None)
        if release is not None:
            release()
        self._storage = MovedStorage("released")

    def __enter__(self) -> Any:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    # ------------------------------------------------------------------
    # in-place writes
    # ------------------------------------------------------------------
    def fill(self, value: Any) -> None:
        """
        Set every element to `value`.
        """
        buf = self._write_buffer()
        plan = plan_offsets(self._offset, self._dim, self._strides, memory_order=True)
        if isinstance(plan, ContiguousOffsets) and not buf.dtype.hasobject:
            buf[plan.start : plan.stop] = value
            return
        for o in plan:
            buf[o] = value

    def _broadcast_values(self, other: Any) -> Optional[list]:
        """
        Values of `other` broadcast to this array's shape, in logical order,
        or None when `other` is a scalar.
        """
        if isinstance(other, ArrayMixinMemory):
            if other.shape == self.shape:
                return list(Iter(other))
            view = other.broadcast(self.shape)
            try:
                return list(Iter(view))
            finally:
                view.release()

        if isinstance(other, np.ndarray) or isinstance(other, (list, tuple)):
            arr = np.asarray(other) if not self.dtype.hasobject else _as_object_array(other)
            if arr.ndim == 0:
                return None
            src_dim = into_dimension(arr.shape)
            if upcast(self._dim, src_dim, src_dim.default_strides()) is None:
                raise ShapeMismatchError(
                    f"cannot broadcast shape {arr.shape} to {self.shape}",
                    arr.shape,
                    self.shape,
                )
            return list(np.broadcast_to(arr, self.shape).reshape(-1))
        return None

    def assign(self, other: Any) -> None:
        """
        Copy `other` into this array, broadcasting it to this array's shape.

        Parameters
        ----------
        other : Array, np.ndarray, sequence or scalar
            Source. Scalars fill the array.

        Raises
        ------
        ShapeMismatchError
            If `other` cannot be broadcast to `self.shape`.
        """
        values = self._broadcast_values(other)
        if values is None:
            if isinstance(other, np.ndarray):
                other = other[()]
            self.fill(other)
            return
        buf = self._write_buffer()
        _store(buf, plan_offsets(self._offset, self._dim, self._strides), values)

    def copy_from_numpy(self, arr: Any) -> None:
        """
        Copy a NumPy array of exactly this shape into the array.

        Raises
        ------
        ShapeMismatchError
            If `arr.shape` differs from `self.shape`.
        """
        arr = np.asarray(arr)
        if tuple(arr.shape) != self.shape:
            raise ShapeMismatchError(
                f"copy_from_numpy expects shape {self.shape}, got {arr.shape}",
                self.shape,
                tuple(arr.shape),
            )
        self.assign(arr)


def _as_object_array(values: Iterable[Any]) -> np.ndarray:
    if isinstance(values, np.ndarray):
        return values
    return np.asarray(values, dtype=object)
