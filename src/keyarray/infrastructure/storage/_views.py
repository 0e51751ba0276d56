"""
Borrowed view storages.

A view storage does not own elements: it points into the buffer of a root
storage (owned or shared) and registers a borrow in that root's tracker for
as long as it lives. It holds a strong reference to the storage it was
derived from, so the memory it reads cannot be reclaimed underneath it.

`borrow(source, footprint, mutable)` is the single entry point used by the
array layer to derive a view storage from any other storage.
"""

from __future__ import annotations

import weakref
from typing import Optional, Union

import numpy as np

from ...domain._errors import AliasingViolationError
from ...domain._storage import StorageKind
from ._borrow import READ, WRITE, Borrow, BorrowTracker, Footprint
from ._owned import OwnedStorage
from ._raw import RawStorage
from ._shared import SharedStorage

RootStorage = Union[OwnedStorage, SharedStorage]


class _BorrowedStorage:
    __slots__ = ("_source", "_data", "_tracker", "_borrow", "_finalizer", "__weakref__")

    _MODE = READ

    def __init__(
        self,
        source,
        data: np.ndarray,
        tracker: BorrowTracker,
        footprint: Footprint,
        parent: Optional[Borrow] = None,
    ) -> None:
        self._borrow = tracker.acquire(self._MODE, footprint, parent, label=type(self).__name__)
        self._source = source
        self._data = data
        self._tracker = tracker
        self._finalizer = weakref.finalize(self, tracker.release, self._borrow)

    @property
    def tracker(self) -> BorrowTracker:
        return self._tracker

    @property
    def borrow_record(self) -> Borrow:
        return self._borrow

    @property
    def source(self):
        return self._source

    def root_buffer(self) -> np.ndarray:
        return self._data

    def __len__(self) -> int:
        return int(self._data.shape[0])

    @property
    def is_released(self) -> bool:
        return not self._finalizer.alive

    def release(self) -> None:
        """
        End the borrow now. Any later access through this storage raises.
        """
        self._finalizer()

    def _check(self, write: bool) -> None:
        if not self._finalizer.alive:
            raise AliasingViolationError("view has been released")
        self._tracker.check_view_access(self._borrow, write)

    def __repr__(self) -> str:
        fp = self._borrow.footprint
        state = "released" if self.is_released else "live"
        return f"{type(self).__name__}(shape={fp.shape}, offset={fp.offset}, {state})"


class ViewStorage(_BorrowedStorage):
    """
    Read-only borrow.

    Any number of read borrows may overlap each other; none may overlap a
    live mutable borrow that is not one of its ancestors.
    """

    __slots__ = ()

    _MODE = READ

    @property
    def kind(self) -> StorageKind:
        return StorageKind.VIEW

    @property
    def buffer(self) -> np.ndarray:
        self._check(write=False)
        return self._data

    def is_writable(self) -> bool:
        return False

    def as_mutable(self) -> np.ndarray:
        raise AliasingViolationError("cannot write through a read-only view")

    def clone_handle(self) -> "ViewStorage":
        self._check(write=False)
        return ViewStorage(
            self._source, self._data, self._tracker, self._borrow.footprint, self._borrow
        )


class ViewMutStorage(_BorrowedStorage):
    """
    Exclusive read/write borrow.

    While a view derived from this one is alive, writes through this view
    are refused; while a mutable view derived from it is alive, reads are
    refused too.
    """

    __slots__ = ()

    _MODE = WRITE

    @property
    def kind(self) -> StorageKind:
        return StorageKind.VIEW_MUT

    @property
    def buffer(self) -> np.ndarray:
        self._check(write=False)
        return self._data

    def is_writable(self) -> bool:
        return True

    def as_mutable(self) -> np.ndarray:
        self._check(write=True)
        return self._data

    def clone_handle(self):
        raise AliasingViolationError("a mutable view cannot be duplicated")


def borrow(source, footprint: Footprint, mutable: bool):
    """
    Derive a view storage from `source`.

    Parameters
    ----------
    source : storage
        Any storage. Raw sources yield raw aliases (no tracking); shared
        sources are made unique before a mutable borrow is registered.
    footprint : Footprint
        Layout the new view can reach, in buffer coordinates.
    mutable : bool
        Request a mutable borrow.

    Raises
    ------
    AliasingViolationError
        If the source is read-only and `mutable` is requested, or the
        requested borrow overlaps a conflicting live borrow.

    Notes
    -----
    Sibling borrows of one source may coexist as long as their footprints
    are disjoint; the tracker decides overlap, not the source's own access
    checks.
    """
    kind = source.kind
    if kind is StorageKind.RAW:
        if mutable and not source.is_writable():
            raise AliasingViolationError("raw view is read-only")
        return source.alias(writable=mutable)

    if kind in (StorageKind.OWNED, StorageKind.SHARED):
        if mutable and kind is StorageKind.SHARED:
            # conflicts first: a refused borrow must leave the handle untouched
            source.tracker.check_available(WRITE, footprint)
            source.ensure_unique()
        cls = ViewMutStorage if mutable else ViewStorage
        return cls(source, source.root_buffer(), source.tracker, footprint, None)

    if source.is_released:
        raise AliasingViolationError("view has been released")
    if kind is StorageKind.VIEW and mutable:
        raise AliasingViolationError("cannot derive a mutable view from a read-only view")
    cls = ViewMutStorage if mutable else ViewStorage
    return cls(source, source.root_buffer(), source.tracker, footprint, source.borrow_record)
