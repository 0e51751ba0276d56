"""
Storage ownership modes: owned, shared (copy-on-write), read view, mutable
view and raw, plus the borrow tracker that keeps views from aliasing.
"""

from ._borrow import Borrow, BorrowTracker, Footprint, footprints_overlap
from ._owned import OwnedStorage, allocate
from ._shared import SharedStorage
from ._raw import RawStorage
from ._views import ViewMutStorage, ViewStorage, borrow
from ._moved import MovedStorage, is_moved

__all__ = [
    "Borrow",
    "BorrowTracker",
    "Footprint",
    "footprints_overlap",
    "OwnedStorage",
    "allocate",
    "SharedStorage",
    "RawStorage",
    "ViewMutStorage",
    "ViewStorage",
    "borrow",
    "MovedStorage",
    "is_moved",
]
