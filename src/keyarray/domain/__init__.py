"""
Domain layer of KeyArray: errors, contracts and the pure layout algebra.

Nothing in this package allocates element storage; everything operates on
shapes, strides and offsets.
"""

from ._errors import (
    AliasingViolationError,
    ArrayError,
    OutOfBoundsError,
    RankMismatchError,
    ShapeMismatchError,
)
from ._layout import Layout
from ._storage import IStorage, StorageKind
from ._gemm import GemmOperand, IGemmRoutine, MemoryOrder
from ._array import IArray
from ._slice_info import NewAxis, Slice, SliceInfo, s

__all__ = [
    "AliasingViolationError",
    "ArrayError",
    "OutOfBoundsError",
    "RankMismatchError",
    "ShapeMismatchError",
    "Layout",
    "IStorage",
    "StorageKind",
    "GemmOperand",
    "IGemmRoutine",
    "MemoryOrder",
    "IArray",
    "NewAxis",
    "Slice",
    "SliceInfo",
    "s",
]
