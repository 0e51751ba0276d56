"""
Exclusively owned storage.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ...domain._storage import StorageKind
from ._borrow import BorrowTracker


class OwnedStorage:
    """
    Exclusive element buffer, freed together with the array value.

    Parameters
    ----------
    data : np.ndarray
        One-dimensional buffer. It is adopted as-is (no copy); callers that
        pass memory they still reference must copy first.

    Notes
    -----
    Reads and writes through the owner are checked against the live borrows
    registered in `tracker`: any live view forbids owner writes, a live
    mutable view also forbids owner reads.
    """

    __slots__ = ("_data", "_tracker", "__weakref__")

    def __init__(self, data: np.ndarray) -> None:
        if not isinstance(data, np.ndarray) or data.ndim != 1:
            raise TypeError("OwnedStorage expects a one-dimensional numpy array")
        self._data = data
        self._tracker = BorrowTracker()

    @property
    def kind(self) -> StorageKind:
        return StorageKind.OWNED

    @property
    def buffer(self) -> np.ndarray:
        self._tracker.check_owner_read()
        return self._data

    @property
    def tracker(self) -> BorrowTracker:
        return self._tracker

    def root_buffer(self) -> np.ndarray:
        """Unchecked buffer access used when deriving views."""
        return self._data

    def __len__(self) -> int:
        return int(self._data.shape[0])

    def is_writable(self) -> bool:
        return True

    def as_mutable(self) -> np.ndarray:
        self._tracker.check_owner_write()
        return self._data

    def clone_handle(self) -> "OwnedStorage":
        self._tracker.check_owner_read()
        return OwnedStorage(self._data.copy())

    def __repr__(self) -> str:
        return f"OwnedStorage(len={len(self)}, dtype={self._data.dtype})"


def allocate(count: int, dtype: Any, fill: Any = None) -> OwnedStorage:
    """
    Allocate an owned buffer of `count` elements.

    If `fill` is None the contents are unspecified (zeros for object dtype).
    """
    dt = np.dtype(dtype)
    if fill is None:
        data = np.empty(count, dtype=dt) if dt != object else np.zeros(count, dtype=dt)
    else:
        data = np.full(count, fill, dtype=dt)
    return OwnedStorage(data)
