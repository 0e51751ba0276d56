"""
Slice specifications and slicing arithmetic.

A slice specification lists, per axis, one of:

- an integer index (selects one position and removes the axis),
- a `Slice(start, end, step)` range,
- `NewAxis` (inserts a length-1 axis, consumes no input axis),
- a full-axis passthrough (`Slice()`, also produced by `...`).

`do_slice` turns a layout plus a specification into a new (offset, shape,
strides) triple in O(rank). It never touches element memory.

The `s` helper converts Python subscripts into a `SliceInfo`::

    s[1:3, ::-1, None, 2]
    s[..., 0]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

from ._errors import OutOfBoundsError, RankMismatchError
from .dimension import Dim, IxDyn, dim_for_rank


@dataclass(frozen=True)
class Slice:
    """
    Range selection along one axis.

    Attributes
    ----------
    start : Optional[int]
        First position (negative counts from the end). None means the
        beginning for positive steps and the last element for negative steps.
    end : Optional[int]
        Exclusive end (negative counts from the end). None means "run off the
        axis" in the direction of `step`.
    step : int
        Non-zero step. A negative step walks the axis backwards.
    """

    start: Optional[int] = None
    end: Optional[int] = None
    step: int = 1

    @classmethod
    def from_py(cls, sl: slice) -> "Slice":
        step = 1 if sl.step is None else int(sl.step)
        start = None if sl.start is None else int(sl.start)
        end = None if sl.stop is None else int(sl.stop)
        return cls(start, end, step)


class _NewAxisType:
    _instance: Optional["_NewAxisType"] = None

    def __new__(cls) -> "_NewAxisType":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NewAxis"


NewAxis = _NewAxisType()

SliceInfoElem = Union[int, Slice, _NewAxisType]


class SliceInfo:
    """
    Ordered tuple of per-axis selections, possibly containing one Ellipsis.

    Use `expand(ndim)` to obtain the fully explicit element list for an array
    of a given rank.
    """

    __slots__ = ("elems",)

    def __init__(self, elems: Sequence[Any]) -> None:
        normalized = []
        seen_ellipsis = False
        for e in elems:
            if e is Ellipsis:
                if seen_ellipsis:
                    raise ValueError("a slice specification may hold at most one '...'")
                seen_ellipsis = True
                normalized.append(Ellipsis)
            elif e is None or e is NewAxis:
                normalized.append(NewAxis)
            elif isinstance(e, slice):
                normalized.append(Slice.from_py(e))
            elif isinstance(e, Slice):
                normalized.append(e)
            elif hasattr(e, "__index__"):
                normalized.append(int(e.__index__()))
            else:
                raise TypeError(f"unsupported slice element {e!r}")
        self.elems = tuple(normalized)

    def __repr__(self) -> str:
        return f"SliceInfo{self.elems!r}"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SliceInfo) and self.elems == other.elems

    def __hash__(self) -> int:
        return hash(self.elems)

    def in_ndim(self) -> int:
        """Number of input axes consumed (Ellipsis excluded)."""
        return sum(1 for e in self.elems if e is not NewAxis and e is not Ellipsis)

    def expand(self, ndim: int) -> tuple[SliceInfoElem, ...]:
        """
        Explicit element list for an input of rank `ndim`.

        The Ellipsis (or, without one, the tail) is filled with full-axis
        passthroughs.

        Raises
        ------
        RankMismatchError
            If the specification consumes more axes than `ndim`.
        """
        used = self.in_ndim()
        if used > ndim:
            raise RankMismatchError(ndim, used)
        fill = (Slice(),) * (ndim - used)
        out: list[SliceInfoElem] = []
        filled = False
        for e in self.elems:
            if e is Ellipsis:
                out.extend(fill)
                filled = True
            else:
                out.append(e)
        if not filled:
            out.extend(fill)
        return tuple(out)

    def out_ndim(self, ndim: int) -> int:
        return sum(1 for e in self.expand(ndim) if not isinstance(e, int))


class _SliceBuilder:
    """Subscript-to-SliceInfo helper exported as `s`."""

    def __getitem__(self, key: Any) -> SliceInfo:
        if not isinstance(key, tuple):
            key = (key,)
        return SliceInfo(key)


s = _SliceBuilder()


def as_slice_info(key: Any) -> SliceInfo:
    """Accept a SliceInfo or any raw subscript and return a SliceInfo."""
    if isinstance(key, SliceInfo):
        return key
    if not isinstance(key, tuple):
        key = (key,)
    return SliceInfo(key)


# ----------------------------------------------------------------------
# arithmetic
# ----------------------------------------------------------------------


def resolve_index(length: int, index: int, axis: int) -> int:
    """
    Resolve a single index (negative counts from the end).

    Raises
    ------
    OutOfBoundsError
        Unless `0 <= resolved < length`.
    """
    resolved = index + length if index < 0 else index
    if resolved < 0 or resolved >= length:
        raise OutOfBoundsError(axis, index, length)
    return resolved


def _resolve_bound(length: int, value: int, axis: int) -> int:
    resolved = value + length if value < 0 else value
    if resolved < 0 or resolved > length:
        raise OutOfBoundsError(axis, value, length)
    return resolved


def resolve_slice(length: int, sl: Slice, axis: int) -> tuple[int, int, int]:
    """
    Resolve a range over an axis of `length`.

    Returns
    -------
    (start, out_len, step)
        `start` is the first visited position (0 when `out_len` is 0).

    Raises
    ------
    ValueError
        If the step is 0.
    OutOfBoundsError
        If an explicit bound lies outside `[-length, length]`, or, for
        negative steps, an explicit start does not name an existing element.
    """
    step = sl.step
    if step == 0:
        raise ValueError(f"slice step must be non-zero (axis {axis})")

    if step > 0:
        lo = 0 if sl.start is None else _resolve_bound(length, sl.start, axis)
        hi = length if sl.end is None else _resolve_bound(length, sl.end, axis)
        if hi <= lo:
            return 0, 0, step
        return lo, -(-(hi - lo) // step), step

    if sl.start is None:
        lo = length - 1
    elif length == 0:
        _resolve_bound(length, sl.start, axis)
        return 0, 0, step
    else:
        lo = resolve_index(length, sl.start, axis)
    hi = -1 if sl.end is None else _resolve_bound(length, sl.end, axis)
    if lo <= hi or lo < 0:
        return 0, 0, step
    return lo, -(-(lo - hi) // -step), step


def do_slice(
    dim: Dim, strides: Dim, info: Union[SliceInfo, Sequence[Any]]
) -> tuple[int, Dim, Dim]:
    """
    Apply a slice specification to a layout.

    Parameters
    ----------
    dim, strides : Dim
        Layout of the source.
    info : SliceInfo or raw subscript elements

    Returns
    -------
    (offset, new_dim, new_strides)
        `offset` is the change of base offset. The result rank family follows
        the input: fixed in, fixed out (when the rank fits), dynamic in,
        dynamic out.
    """
    info = as_slice_info(tuple(info)) if not isinstance(info, SliceInfo) else info
    elems = info.expand(dim.ndim)

    offset = 0
    out_dim: list[int] = []
    out_strides: list[int] = []
    axis = 0
    for e in elems:
        if e is NewAxis:
            out_dim.append(1)
            out_strides.append(0)
            continue
        length = dim[axis]
        stride = strides[axis]
        if isinstance(e, int):
            i = resolve_index(length, e, axis)
            offset += stride * i
        else:
            start, n, step = resolve_slice(length, e, axis)
            if n > 0:
                offset += stride * start
            out_dim.append(n)
            out_strides.append(stride * step)
        axis += 1

    if dim.is_dynamic:
        return offset, IxDyn(out_dim), IxDyn(out_strides)
    cls = dim_for_rank(len(out_dim))
    return offset, cls(out_dim), cls(out_strides)


def do_slice_collapse(
    dim: Dim, strides: Dim, info: Union[SliceInfo, Sequence[Any]]
) -> tuple[int, Dim, Dim]:
    """
    Like `do_slice`, but integer indices keep their axis with length 1 and
    `NewAxis` is rejected, so the rank never changes.
    """
    info = as_slice_info(tuple(info)) if not isinstance(info, SliceInfo) else info
    elems = info.expand(dim.ndim)
    if any(e is NewAxis for e in elems):
        raise ValueError("slice_collapse does not accept NewAxis")

    offset = 0
    out_dim = list(dim)
    out_strides = list(strides)
    for axis, e in enumerate(elems):
        length = dim[axis]
        stride = strides[axis]
        if isinstance(e, int):
            i = resolve_index(length, e, axis)
            offset += stride * i
            out_dim[axis] = 1
        else:
            start, n, step = resolve_slice(length, e, axis)
            if n > 0:
                offset += stride * start
            out_dim[axis] = n
            out_strides[axis] = stride * step
    return offset, dim._like(out_dim), strides._like(out_strides)
