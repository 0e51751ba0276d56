"""
Reference-counted storage with copy-on-write.

Several `SharedStorage` handles may point at one `_SharedBuffer`. Cloning a
handle only increments the count. A write request through a handle whose
buffer is still aliased first copies the elements into a fresh buffer owned by
that handle alone, so mutating through one handle is never observable through
another.
"""

from __future__ import annotations

import logging
import threading
import weakref

import numpy as np

from ...domain._errors import AliasingViolationError
from ...domain._storage import StorageKind
from ._borrow import BorrowTracker

logger = logging.getLogger(__name__)


class _SharedBuffer:
    """
    Element buffer plus an atomically-updated reference count.
    """

    __slots__ = ("data", "_count", "_lock")

    def __init__(self, data: np.ndarray) -> None:
        self.data = data
        self._count = 0
        self._lock = threading.Lock()

    def incref(self) -> int:
        with self._lock:
            self._count += 1
            return self._count

    def decref(self) -> int:
        with self._lock:
            if self._count > 0:
                self._count -= 1
            return self._count

    @property
    def count(self) -> int:
        with self._lock:
            return self._count


class SharedStorage:
    """
    One handle onto a reference-counted buffer.

    Parameters
    ----------
    data : np.ndarray or _SharedBuffer
        A one-dimensional numpy array to adopt (count starts at 1), or an
        existing shared buffer to join (count is incremented).

    Notes
    -----
    The count is decremented by `release()` or when the handle is garbage
    collected, whichever comes first.
    """

    __slots__ = ("_shared", "_tracker", "_finalizer", "__weakref__")

    def __init__(self, data) -> None:
        if isinstance(data, _SharedBuffer):
            shared = data
        else:
            if not isinstance(data, np.ndarray) or data.ndim != 1:
                raise TypeError("SharedStorage expects a one-dimensional numpy array")
            shared = _SharedBuffer(data)
        self._attach(shared)
        self._tracker = BorrowTracker()

    def _attach(self, shared: _SharedBuffer) -> None:
        shared.incref()
        self._shared = shared
        self._finalizer = weakref.finalize(self, shared.decref)

    @property
    def kind(self) -> StorageKind:
        return StorageKind.SHARED

    @property
    def buffer(self) -> np.ndarray:
        self._tracker.check_owner_read()
        return self._shared.data

    @property
    def tracker(self) -> BorrowTracker:
        return self._tracker

    @property
    def strong_count(self) -> int:
        """Number of live handles sharing this buffer."""
        return self._shared.count

    def root_buffer(self) -> np.ndarray:
        return self._shared.data

    def shares_buffer_with(self, other: "SharedStorage") -> bool:
        return isinstance(other, SharedStorage) and other._shared is self._shared

    def __len__(self) -> int:
        return int(self._shared.data.shape[0])

    def is_writable(self) -> bool:
        return True

    def ensure_unique(self) -> np.ndarray:
        """
        Make this handle the only owner of its buffer, copying if needed.

        Returns
        -------
        np.ndarray
            The (possibly new) buffer, now referenced by this handle only.
        """
        old = self._shared
        if old.count <= 1:
            return old.data
        fresh = _SharedBuffer(old.data.copy())
        self._finalizer.detach()
        old.decref()
        self._attach(fresh)
        logger.debug(
            "copy-on-write: duplicated %d elements of dtype %s",
            old.data.shape[0],
            old.data.dtype,
        )
        return fresh.data

    def as_mutable(self) -> np.ndarray:
        self._tracker.check_owner_write()
        return self.ensure_unique()

    def clone_handle(self) -> "SharedStorage":
        """
        Another handle onto the same buffer (no element copy).

        Raises
        ------
        AliasingViolationError
            If a mutable view of this handle is live, since the new handle
            would observe its writes.
        """
        if self._tracker.live_write_borrows:
            raise AliasingViolationError(
                "cannot share a buffer while a mutable view of it is alive"
            )
        return SharedStorage(self._shared)

    def release(self) -> None:
        """Drop this handle's reference now instead of at collection time."""
        self._finalizer()

    def __repr__(self) -> str:
        return (
            f"SharedStorage(len={len(self)}, dtype={self._shared.data.dtype}, "
            f"strong_count={self.strong_count})"
        )
