"""
Iteration engine: contiguous fast path and strided odometer path, plus the
public iterables built on them.
"""

from ._baseiter import (
    Baseiter,
    ContiguousOffsets,
    contiguous_start,
    memory_order_layout,
    plan_offsets,
    reversed_layout,
)
from ._iterators import (
    AxisChunksIter,
    AxisIter,
    IndexedIter,
    Iter,
    Lanes,
    MemoryOrderIter,
    Offsets,
    check_split_index,
)

__all__ = [
    "Baseiter",
    "ContiguousOffsets",
    "contiguous_start",
    "memory_order_layout",
    "plan_offsets",
    "reversed_layout",
    "AxisChunksIter",
    "AxisIter",
    "IndexedIter",
    "Iter",
    "Lanes",
    "MemoryOrderIter",
    "Offsets",
    "check_split_index",
]
