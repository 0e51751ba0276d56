"""
Concrete N-dimensional array value.

An `Array` is the product of four things:

- a storage (one of the five ownership modes, see `infrastructure.storage`),
- a base offset into the storage's flat buffer,
- a shape (`Dim`),
- a stride vector (`Dim` of the same rank, may hold negative or zero values).

The element at index `(i0, ..., in)` lives at
`buffer[offset + i0 * s0 + ... + in * sn]`. Every array built from a storage
is validated with `can_index_slice`, so no index inside the shape can reach
outside the buffer.

There is a single `Array` type; the ownership mode is carried by the storage.
The names `ArcArray`, `ArrayView`, `ArrayViewMut` and `RawArrayView` are kept
as aliases so signatures can document which mode they expect.

Operation groups are provided by mixins:

- `ArrayMixinMemory`    : copies, conversions, fill/assign, views, release
- `ArrayMixinIndexing`  : element access and slicing
- `ArrayMixinShape`     : reshape, axis permutations, broadcasting
- `ArrayMixinIteration` : iterables and elementwise traversal helpers
- `ArrayMixinLinalg`    : `dot` and `@`
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Union

import numpy as np

from ...domain._array import IArray
from ...domain._errors import AliasingViolationError, ShapeMismatchError
from ...domain._layout import Layout
from ...domain._storage import StorageKind
from ...domain.dimension import Dim, DimLike, as_shape, can_index_slice, into_dimension
from ..storage import Footprint, MovedStorage, borrow, is_moved
from .mixins import (
    ArrayMixinIndexing,
    ArrayMixinIteration,
    ArrayMixinLinalg,
    ArrayMixinMemory,
    ArrayMixinShape,
)


def _match_strides(dim: Dim, strides: Union[DimLike, Sequence[int]]) -> Dim:
    st = tuple(int(s) for s in strides)
    if len(st) != dim.ndim:
        raise ShapeMismatchError(
            f"strides {st} do not match the rank of shape {tuple(dim)}",
            tuple(dim),
            st,
        )
    return dim._like(st)


class Array(
    ArrayMixinMemory,
    ArrayMixinIndexing,
    ArrayMixinShape,
    ArrayMixinIteration,
    ArrayMixinLinalg,
    IArray,
):
    """
    N-dimensional strided array over one of five storage ownership modes.

    Parameters
    ----------
    storage : IStorage
        Backing storage. Its flat buffer is indexed by `offset` and `strides`.
    offset : int
        Buffer position of index (0, ..., 0).
    dim : DimLike
        Shape. Ints and tuples are converted with `into_dimension`.
    strides : DimLike
        Element strides; converted to the same rank family as `dim`.
    allow_overlap : bool, optional
        Accept layouts that map several indices to one element. Only
        meaningful for read-only storages (broadcast views).
    check : bool, optional
        Validate the layout against the buffer length. Internal callers that
        already validated pass False.

    Raises
    ------
    ShapeMismatchError
        If the layout reaches outside the buffer.
    AliasingViolationError
        If the layout self-overlaps and `allow_overlap` is False.

    Notes
    -----
    Prefer the factory functions (`zeros`, `from_numpy`, `from_shape_vec`,
    ...) over calling this constructor directly.
    """

    __array_priority__ = 20

    def __init__(
        self,
        storage: Any,
        offset: int,
        dim: DimLike,
        strides: DimLike,
        *,
        allow_overlap: bool = False,
        check: bool = True,
    ) -> None:
        dim = as_shape(dim)
        strides = _match_strides(dim, strides)
        offset = int(offset)
        if check:
            can_index_slice(len(storage), dim, strides, offset, allow_overlap=allow_overlap)
        self._storage = storage
        self._offset = offset
        self._dim = dim
        self._strides = strides

    # ------------------------------------------------------------------
    # descriptors
    # ------------------------------------------------------------------
    @property
    def shape(self) -> tuple[int, ...]:
        return self._dim.slice()

    @property
    def dim(self) -> Dim:
        return self._dim

    @property
    def raw_dim(self) -> Dim:
        return self._dim

    @property
    def strides(self) -> tuple[int, ...]:
        return self._strides.slice()

    @property
    def ndim(self) -> int:
        return self._dim.ndim

    @property
    def size(self) -> int:
        return self._dim.size()

    def len(self) -> int:
        """Total number of elements."""
        return self._dim.size()

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def dtype(self) -> np.dtype:
        return self._storage.root_buffer().dtype

    @property
    def storage(self) -> Any:
        return self._storage

    @property
    def storage_kind(self) -> StorageKind:
        return self._storage.kind

    @property
    def layout(self) -> Layout:
        return Layout.of(self._dim, self._strides)

    def is_standard_layout(self) -> bool:
        """Row-major contiguous."""
        return self.layout.is_(Layout.CORDER)

    def is_contiguous(self) -> bool:
        """Row- or column-major contiguous."""
        lay = self.layout
        return lay.is_(Layout.CORDER) or lay.is_(Layout.FORDER)

    def is_empty(self) -> bool:
        return self.size == 0

    @property
    def is_moved(self) -> bool:
        return is_moved(self._storage)

    def __len__(self) -> int:
        if self.ndim == 0:
            raise TypeError("len() of a rank-0 array")
        return self._dim[0]

    def __repr__(self) -> str:
        if is_moved(self._storage):
            return "Array(<moved>)"
        kind = self._storage.kind.value
        try:
            body = repr(self.to_list())
        except AliasingViolationError:
            body = "<not readable>"
        return (
            f"Array({body}, shape={self.shape}, dtype={self.dtype}, storage={kind!r})"
        )

    # ------------------------------------------------------------------
    # internal plumbing shared by the mixins
    # ------------------------------------------------------------------
    def _read_buffer(self) -> np.ndarray:
        return self._storage.buffer

    def _write_buffer(self) -> np.ndarray:
        return self._storage.as_mutable()

    def _derive(
        self,
        offset: int,
        dim: DimLike,
        strides: DimLike,
        mutable: bool = False,
        *,
        allow_overlap: Optional[bool] = None,
    ) -> "Array":
        """
        Borrow a new view of this array's storage with the given layout.

        The layout is validated before the borrow is registered, so a failed
        derivation leaves no trace in the borrow tracker.
        """
        dim = dim if isinstance(dim, Dim) else into_dimension(tuple(dim))
        strides = _match_strides(dim, strides)
        if allow_overlap is None:
            allow_overlap = not mutable
        can_index_slice(len(self._storage), dim, strides, offset, allow_overlap=allow_overlap)
        fp = Footprint(int(offset), dim.slice(), strides.slice())
        st = borrow(self._storage, fp, mutable)
        return Array(st, offset, dim, strides, check=False)

    def _move(self, reason: str = "moved") -> Any:
        """Take the storage out of this array, leaving it unusable."""
        self._check_alive()
        st = self._storage
        self._storage = MovedStorage(reason)
        return st

    def _check_alive(self) -> None:
        if is_moved(self._storage):
            self._storage.raise_moved()

    def _relayout(self, offset: int, dim: DimLike, strides: DimLike) -> "Array":
        """Consume self into a new array over the same storage."""
        dim = dim if isinstance(dim, Dim) else into_dimension(tuple(dim))
        strides = _match_strides(dim, strides)
        st = self._move()
        return Array(st, offset, dim, strides, check=False)


ArcArray = Array
ArrayView = Array
ArrayViewMut = Array
RawArrayView = Array
