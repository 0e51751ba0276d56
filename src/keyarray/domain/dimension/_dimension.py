"""
Dimension (shape / stride vector) model.

A `Dim` is an immutable ordered sequence of integers. The same type carries
both shapes (non-negative axis lengths) and stride vectors (signed element
steps), exactly like the two halves of an array's layout.

Two families of ranks exist:

- fixed ranks `Ix0` .. `Ix6`, whose length is part of the type, and
- the dynamic rank `IxDyn`, whose length is only known at run time.

The algebra is written once against the `Dim` base class; subclasses only
pin `RANK`. Conversions follow a single rule: fixed -> dynamic always
succeeds, dynamic -> fixed raises `RankMismatchError` when the ranks differ.
"""

from __future__ import annotations

import sys
from typing import Iterable, Iterator, Optional, Sequence, Type, Union

from .._errors import OutOfBoundsError, RankMismatchError

DimLike = Union[int, Sequence[int], "Dim"]


def normalize_axis(axis: int, ndim: int) -> int:
    """
    Resolve a possibly negative axis number against `ndim`.

    Raises
    ------
    ValueError
        If the axis does not exist.
    """
    ax = int(axis)
    if ax < 0:
        ax += ndim
    if ax < 0 or ax >= ndim:
        raise ValueError(f"axis {axis} is out of range for rank {ndim}")
    return ax


class Dim:
    """
    Ordered small-integer sequence used for shapes and strides.

    Parameters
    ----------
    *values : int or Sequence[int]
        Either the integers themselves (`Ix2(3, 4)`) or a single sequence
        (`IxDyn([3, 4, 5])`).

    Raises
    ------
    RankMismatchError
        If a fixed-rank class receives a different number of values.

    Notes
    -----
    `Dim` values are hashable and compare equal to any other `Dim` (fixed or
    dynamic) or tuple holding the same integers.
    """

    __slots__ = ("_ix",)

    RANK: Optional[int] = None

    def __init__(self, *values: Union[int, Iterable[int]]) -> None:
        if len(values) == 1 and hasattr(values[0], "__iter__"):
            ix = tuple(int(v) for v in values[0])
        else:
            ix = tuple(int(v) for v in values)

        if self.RANK is not None and len(ix) != self.RANK:
            raise RankMismatchError(self.RANK, len(ix))
        self._ix = ix

    # ------------------------------------------------------------------
    # sequence protocol
    # ------------------------------------------------------------------
    @property
    def ndim(self) -> int:
        return len(self._ix)

    @property
    def is_dynamic(self) -> bool:
        return self.RANK is None

    def slice(self) -> tuple[int, ...]:
        """Return the values as a plain tuple."""
        return self._ix

    def into_pattern(self) -> tuple[int, ...]:
        return self._ix

    def __len__(self) -> int:
        return len(self._ix)

    def __iter__(self) -> Iterator[int]:
        return iter(self._ix)

    def __getitem__(self, i):
        return self._ix[i]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Dim):
            return self._ix == other._ix
        if isinstance(other, tuple):
            return self._ix == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._ix)

    def __repr__(self) -> str:
        return f"{type(self).__name__}{self._ix!r}"

    def equal(self, rhs: "Dim") -> bool:
        return self._ix == tuple(rhs)

    def _like(self, values: Iterable[int]) -> "Dim":
        """
        Build a Dim of the same family with (possibly) different rank.

        Fixed ranks stay fixed when the new rank is still <= 6, dynamic ranks
        stay dynamic.
        """
        values = tuple(values)
        if self.RANK is None:
            return IxDyn(values)
        return dim_for_rank(len(values))(values)

    # ------------------------------------------------------------------
    # element counts
    # ------------------------------------------------------------------
    def size(self) -> int:
        """
        Total number of elements (product of axis lengths).

        Returns 1 for rank 0 and 0 whenever any axis has length 0.
        """
        n = 1
        for d in self._ix:
            n *= d
        return n

    def size_checked(self) -> Optional[int]:
        """
        Like `size()` but returns None if the product exceeds `sys.maxsize`
        or if any axis length is negative.
        """
        n = 1
        for d in self._ix:
            if d < 0:
                return None
            n *= d
        if n > sys.maxsize:
            return None
        return n

    # ------------------------------------------------------------------
    # strides
    # ------------------------------------------------------------------
    def default_strides(self) -> "Dim":
        """
        Row-major (C order) strides for this shape.

        Shape (a, b, c) gives strides (b * c, c, 1). If the shape holds no
        elements every stride is 0.
        """
        if any(d == 0 for d in self._ix):
            return self._like((0,) * self.ndim)
        strides = [0] * self.ndim
        cum = 1
        for i in range(self.ndim - 1, -1, -1):
            strides[i] = cum
            cum *= self._ix[i]
        return self._like(strides)

    def fortran_strides(self) -> "Dim":
        """
        Column-major (F order) strides for this shape.

        Shape (a, b, c) gives strides (1, a, a * b).
        """
        if any(d == 0 for d in self._ix):
            return self._like((0,) * self.ndim)
        strides = [0] * self.ndim
        cum = 1
        for i in range(self.ndim):
            strides[i] = cum
            cum *= self._ix[i]
        return self._like(strides)

    def fastest_varying_stride_order(self) -> "Dim":
        """
        Axis numbers sorted by ascending absolute stride (self are strides).
        """
        order = sorted(range(self.ndim), key=lambda i: abs(self._ix[i]))
        return self._like(order)

    def min_stride_axis(self, strides: "Dim") -> int:
        """
        Return the axis with the smallest absolute stride, ignoring axes of
        length <= 1 unless every axis is that short. Ties favour the last
        axis, matching row-major preference.
        """
        n = self.ndim
        if n == 0:
            raise ValueError("min_stride_axis: rank 0 has no axes")
        best = n - 1
        best_stride = None
        for i in range(n - 1, -1, -1):
            if self._ix[i] <= 1:
                continue
            s = abs(strides[i])
            if best_stride is None or s < best_stride:
                best, best_stride = i, s
        return best

    def max_stride_axis(self, strides: "Dim") -> int:
        """
        Return the axis with the largest absolute stride among axes of length
        > 1 (axis 0 if there is none). Ties favour the first axis.
        """
        n = self.ndim
        if n == 0:
            raise ValueError("max_stride_axis: rank 0 has no axes")
        best = 0
        best_stride = None
        for i in range(n):
            if self._ix[i] <= 1:
                continue
            s = abs(strides[i])
            if best_stride is None or s > best_stride:
                best, best_stride = i, s
        return best

    # ------------------------------------------------------------------
    # index enumeration
    # ------------------------------------------------------------------
    def first_index(self) -> Optional["Dim"]:
        """
        The all-zeros index, or None if the shape holds no elements.
        """
        if any(d == 0 for d in self._ix):
            return None
        return self._like((0,) * self.ndim)

    def next_for(self, index: "Dim") -> Optional["Dim"]:
        """
        Row-major successor of `index` using self as the shape.

        The last axis varies fastest; when it wraps the next outer axis is
        incremented, odometer style. Returns None after the last index.
        """
        ix = list(index)
        for axis in range(self.ndim - 1, -1, -1):
            ix[axis] += 1
            if ix[axis] == self._ix[axis]:
                ix[axis] = 0
            else:
                return self._like(ix)
        return None

    def stride_offset_checked(
        self, strides: "Dim", index: Sequence[int]
    ) -> Optional[int]:
        """
        Offset of `index` under `strides`, or None if any coordinate is not
        within `[0, len)` for its axis.
        """
        if len(index) != self.ndim:
            return None
        offset = 0
        for d, i, s in zip(self._ix, index, strides):
            if i < 0 or i >= d:
                return None
            offset += i * s
        return offset

    def ravel_index(self, index: Sequence[int]) -> int:
        """
        Row-major flat position of a coordinate tuple.

        Raises
        ------
        RankMismatchError
            If `index` has the wrong number of coordinates.
        OutOfBoundsError
            If a coordinate is outside its axis.
        """
        if len(index) != self.ndim:
            raise RankMismatchError(self.ndim, len(index))
        flat = 0
        for axis, (d, i) in enumerate(zip(self._ix, index)):
            if i < 0 or i >= d:
                raise OutOfBoundsError(axis, i, d)
            flat = flat * d + i
        return flat

    def unravel_index(self, flat: int) -> "Dim":
        """
        Row-major coordinate tuple of a flat position.

        Raises
        ------
        OutOfBoundsError
            If `flat` is not within `[0, size)`; reported against axis 0.
        """
        size = self.size()
        if flat < 0 or flat >= size:
            raise OutOfBoundsError(0, flat, size)
        ix = [0] * self.ndim
        rem = flat
        for axis in range(self.ndim - 1, -1, -1):
            d = self._ix[axis]
            ix[axis] = rem % d
            rem //= d
        return self._like(ix)

    # ------------------------------------------------------------------
    # axis editing
    # ------------------------------------------------------------------
    def axis(self, axis: int) -> int:
        return self._ix[normalize_axis(axis, self.ndim)]

    def set_axis(self, axis: int, value: int) -> "Dim":
        ax = normalize_axis(axis, self.ndim)
        ix = list(self._ix)
        ix[ax] = int(value)
        return self._like(ix)

    def remove_axis(self, axis: int) -> "Dim":
        """Return a Dim one rank smaller, without `axis`."""
        ax = normalize_axis(axis, self.ndim)
        return self._like(self._ix[:ax] + self._ix[ax + 1 :])

    def insert_axis(self, axis: int, value: int = 1) -> "Dim":
        """Return a Dim one rank larger, with `value` inserted at `axis`."""
        ax = normalize_axis(axis, self.ndim + 1)
        if self.RANK is not None and self.ndim + 1 > 6:
            return IxDyn(self._ix[:ax] + (int(value),) + self._ix[ax:])
        return self._like(self._ix[:ax] + (int(value),) + self._ix[ax:])

    def permuted(self, axes: Sequence[int]) -> "Dim":
        return self._like(self._ix[a] for a in axes)

    # ------------------------------------------------------------------
    # rank conversions
    # ------------------------------------------------------------------
    def into_dyn(self) -> "IxDyn":
        return IxDyn(self._ix)

    def into_dimensionality(self, target: Union[int, Type["Dim"]]) -> "Dim":
        """
        Convert to another rank family.

        Parameters
        ----------
        target : int or Dim subclass
            A fixed rank (int or `Ix0`..`Ix6`) or `IxDyn`.

        Raises
        ------
        RankMismatchError
            If a fixed rank is requested that differs from `self.ndim`.
        """
        if isinstance(target, int):
            target = dim_for_rank(target)
        if target.RANK is None:
            return IxDyn(self._ix)
        if target.RANK != self.ndim:
            raise RankMismatchError(target.RANK, self.ndim)
        return target(self._ix)


class Ix0(Dim):
    __slots__ = ()
    RANK = 0


class Ix1(Dim):
    __slots__ = ()
    RANK = 1


class Ix2(Dim):
    __slots__ = ()
    RANK = 2


class Ix3(Dim):
    __slots__ = ()
    RANK = 3


class Ix4(Dim):
    __slots__ = ()
    RANK = 4


class Ix5(Dim):
    __slots__ = ()
    RANK = 5


class Ix6(Dim):
    __slots__ = ()
    RANK = 6


class IxDyn(Dim):
    """Dynamic-rank dimension; any number of axes."""

    __slots__ = ()
    RANK = None


_FIXED: tuple[Type[Dim], ...] = (Ix0, Ix1, Ix2, Ix3, Ix4, Ix5, Ix6)


def dim_for_rank(rank: int) -> Type[Dim]:
    """
    Fixed-rank class for `rank` (0..6), or `IxDyn` for larger ranks.
    """
    if rank < 0:
        raise ValueError(f"rank must be non-negative, got {rank}")
    if rank < len(_FIXED):
        return _FIXED[rank]
    return IxDyn


def into_dimension(value: DimLike) -> Dim:
    """
    Normalize an int, a sequence of ints or a `Dim` into a `Dim`.

    An int becomes `Ix1`; a sequence of length <= 6 becomes the matching
    fixed rank; anything longer becomes `IxDyn`. `Dim` inputs are returned
    unchanged.
    """
    if isinstance(value, Dim):
        return value
    if isinstance(value, int):
        return Ix1(value)
    values = tuple(int(v) for v in value)
    return dim_for_rank(len(values))(values)


def as_shape(value: DimLike) -> Dim:
    """
    Like `into_dimension` but rejects negative axis lengths.
    """
    dim = into_dimension(value)
    for axis, d in enumerate(dim):
        if d < 0:
            raise ValueError(f"axis {axis} has negative length {d}")
    return dim
