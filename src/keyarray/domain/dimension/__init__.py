"""
Dimension model: shapes, stride vectors, stride arithmetic and broadcasting.
"""

from ._dimension import (
    Dim,
    DimLike,
    Ix0,
    Ix1,
    Ix2,
    Ix3,
    Ix4,
    Ix5,
    Ix6,
    IxDyn,
    as_shape,
    dim_for_rank,
    into_dimension,
    normalize_axis,
)
from ._strides import (
    abs_index,
    can_index_slice,
    dim_stride_overlap,
    max_abs_offset_check_overflow,
    offset_from_low_addr_ptr_to_logical_ptr,
    offset_of,
    reachable_bounds,
    size_of_shape_checked,
    stride_offset,
)
from ._broadcast import broadcast_shapes, co_broadcast, upcast

__all__ = [
    "Dim",
    "DimLike",
    "Ix0",
    "Ix1",
    "Ix2",
    "Ix3",
    "Ix4",
    "Ix5",
    "Ix6",
    "IxDyn",
    "as_shape",
    "dim_for_rank",
    "into_dimension",
    "normalize_axis",
    "abs_index",
    "can_index_slice",
    "dim_stride_overlap",
    "max_abs_offset_check_overflow",
    "offset_from_low_addr_ptr_to_logical_ptr",
    "offset_of",
    "reachable_bounds",
    "size_of_shape_checked",
    "stride_offset",
    "broadcast_shapes",
    "co_broadcast",
    "upcast",
]
