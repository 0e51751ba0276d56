"""
Stride arithmetic helpers.

Free functions that operate on a (shape, strides) pair without needing an
array value. They are the memory-safety checks of the engine: every array
built over a buffer passes through `can_index_slice` (or is derived from one
that did), so that no coordinate can reach outside the buffer.

Negative strides are supported. A layout with negative strides has its
lowest reachable address somewhere other than index (0, ..., 0);
`offset_from_low_addr_ptr_to_logical_ptr` gives the distance between them.
"""

from __future__ import annotations

import sys
from typing import Sequence

from .._errors import AliasingViolationError, ShapeMismatchError
from ._dimension import Dim


def stride_offset(n: int, stride: int) -> int:
    """Offset contribution of coordinate `n` along an axis with `stride`."""
    return n * stride


def offset_of(index: Sequence[int], strides: Sequence[int]) -> int:
    """
    Offset of `index` relative to index (0, ..., 0), unchecked.
    """
    offset = 0
    for i, s in zip(index, strides):
        offset += i * s
    return offset


def abs_index(length: int, index: int) -> int:
    """Resolve a negative index by adding the axis length."""
    return index + length if index < 0 else index


def size_of_shape_checked(dim: Sequence[int]) -> int:
    """
    Element count of `dim`, raising if it overflows `sys.maxsize`.

    Raises
    ------
    ShapeMismatchError
        If any axis length is negative or the product is too large.
    """
    n = 1
    for d in dim:
        if d < 0:
            raise ShapeMismatchError(f"negative axis length in shape {tuple(dim)}")
        n *= d
    if n > sys.maxsize:
        raise ShapeMismatchError(f"shape {tuple(dim)} overflows the index type")
    return n


def max_abs_offset_check_overflow(dim: Sequence[int], strides: Sequence[int]) -> int:
    """
    Largest absolute offset (relative to the lowest reachable element) that
    the layout can produce.

    Returns 0 for empty layouts.

    Raises
    ------
    ShapeMismatchError
        If the result does not fit in `sys.maxsize`.
    """
    size_of_shape_checked(dim)
    if any(d == 0 for d in dim):
        return 0
    total = 0
    for d, s in zip(dim, strides):
        total += (d - 1) * abs(s)
    if total > sys.maxsize:
        raise ShapeMismatchError(
            f"strides {tuple(strides)} overflow for shape {tuple(dim)}"
        )
    return total


def offset_from_low_addr_ptr_to_logical_ptr(
    dim: Sequence[int], strides: Sequence[int]
) -> int:
    """
    Distance from the lowest reachable element to index (0, ..., 0).

    Only axes with negative strides contribute: along them index 0 sits at
    the highest address.
    """
    offset = 0
    for d, s in zip(dim, strides):
        if s < 0 and d >= 2:
            offset -= (d - 1) * s
    return offset


def dim_stride_overlap(dim: Sequence[int], strides: Sequence[int]) -> bool:
    """
    Whether two distinct indices of the layout can map to the same element.

    Axes are visited from the smallest to the largest absolute stride. The
    layout overlaps when some axis' stride is smaller than the span already
    covered by the faster-varying axes before it. Axes of length 1 never
    cause overlap and an empty layout never overlaps.
    """
    order = sorted(range(len(dim)), key=lambda i: abs(strides[i]))
    covered = 0
    for i in order:
        d = dim[i]
        s = abs(strides[i])
        if d == 0:
            return False
        if d == 1:
            continue
        if s <= covered or s == 0:
            return True
        covered += (d - 1) * s
    return False


def reachable_bounds(
    offset: int, dim: Sequence[int], strides: Sequence[int]
) -> tuple[int, int]:
    """
    Inclusive (low, high) buffer offsets reachable from a layout starting at
    `offset`. Only meaningful for non-empty layouts.
    """
    low = high = offset
    for d, s in zip(dim, strides):
        if d <= 1:
            continue
        span = (d - 1) * s
        if span < 0:
            low += span
        else:
            high += span
    return low, high


def can_index_slice(
    data_len: int,
    dim: Dim,
    strides: Dim,
    offset: int = 0,
    *,
    allow_overlap: bool = False,
) -> None:
    """
    Validate that a layout placed at `offset` stays inside a buffer.

    Parameters
    ----------
    data_len : int
        Number of elements in the underlying buffer.
    dim, strides : Dim
        The layout being validated; must have equal rank.
    offset : int
        Buffer position of index (0, ..., 0).
    allow_overlap : bool
        If False, layouts that map two indices to one element are rejected.
        Read-only views (for example broadcast results) pass True.

    Raises
    ------
    ShapeMismatchError
        If ranks differ, the element count overflows, or an index would
        land outside `[0, data_len)`.
    AliasingViolationError
        If the layout self-overlaps and `allow_overlap` is False.
    """
    if len(dim) != len(strides):
        raise ShapeMismatchError(
            f"shape {tuple(dim)} and strides {tuple(strides)} have different rank",
            tuple(dim),
            tuple(strides),
        )
    size = size_of_shape_checked(dim)
    if size == 0:
        return
    max_abs_offset_check_overflow(dim, strides)
    low, high = reachable_bounds(offset, dim, strides)
    if low < 0 or high >= data_len:
        raise ShapeMismatchError(
            f"layout shape={tuple(dim)} strides={tuple(strides)} offset={offset} "
            f"reaches [{low}, {high}] outside a buffer of length {data_len}",
            tuple(dim),
        )
    if not allow_overlap and dim_stride_overlap(dim, strides):
        raise AliasingViolationError(
            f"strides {tuple(strides)} make distinct indices of shape "
            f"{tuple(dim)} alias the same element"
        )
