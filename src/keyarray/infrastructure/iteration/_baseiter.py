"""
Offset enumeration: the two traversal strategies of the iteration engine.

- `ContiguousOffsets` is the fast path. When the requested traversal order
  coincides with memory order on a contiguous layout, the visited offsets are
  simply `start, start + 1, ..., start + size - 1`, and element access can be
  done with one flat slice of the buffer.
- `Baseiter` is the general path: an odometer over the multi-dimensional
  index that keeps a running offset and adjusts it by whole strides as each
  axis advances or wraps. It handles any stride pattern, including negative
  and zero strides.

Both produce identical offset sequences for every layout where the fast path
applies; `plan_offsets` picks between them.
"""

from __future__ import annotations

from typing import Iterator, Optional, Sequence, Union

from ...domain._layout import Layout


class Baseiter:
    """
    Odometer over the offsets of a strided layout, in row-major index order.

    Parameters
    ----------
    offset : int
        Buffer offset of index (0, ..., 0).
    dim, strides : Sequence[int]
        Layout to walk.
    track_index : bool, optional
        When True, `__next__` yields `(index, offset)` pairs.

    Notes
    -----
    - Empty layouts yield nothing; rank-0 layouts yield exactly one offset.
    - `len()` reports the number of remaining positions.
    """

    __slots__ = ("_dim", "_strides", "_ix", "_cur", "_remaining", "_track")

    def __init__(
        self,
        offset: int,
        dim: Sequence[int],
        strides: Sequence[int],
        track_index: bool = False,
    ) -> None:
        self._dim = tuple(dim)
        self._strides = tuple(strides)
        self._track = track_index
        size = 1
        for d in self._dim:
            size *= d
        self._remaining = size
        self._ix = [0] * len(self._dim) if size else None
        self._cur = offset

    def __iter__(self) -> "Baseiter":
        return self

    def __len__(self) -> int:
        return self._remaining

    def __next__(self) -> Union[int, tuple[tuple[int, ...], int]]:
        ix = self._ix
        if ix is None:
            raise StopIteration
        cur = self._cur
        out = (tuple(ix), cur) if self._track else cur

        dim = self._dim
        strides = self._strides
        axis = len(dim) - 1
        while axis >= 0:
            i = ix[axis] + 1
            if i < dim[axis]:
                ix[axis] = i
                self._cur = cur + strides[axis]
                break
            cur -= (dim[axis] - 1) * strides[axis]
            ix[axis] = 0
            axis -= 1
        else:
            self._ix = None

        self._remaining -= 1
        return out


class ContiguousOffsets:
    """
    Fast-path offsets of a contiguous block: `range(start, start + size)`.
    """

    __slots__ = ("start", "size", "_it")

    def __init__(self, start: int, size: int) -> None:
        self.start = start
        self.size = size
        self._it = iter(range(start, start + size))

    @property
    def stop(self) -> int:
        return self.start + self.size

    def __iter__(self) -> "ContiguousOffsets":
        return self

    def __len__(self) -> int:
        return self._it.__length_hint__()

    def __next__(self) -> int:
        return next(self._it)


def reversed_layout(
    offset: int, dim: Sequence[int], strides: Sequence[int]
) -> tuple[int, tuple[int, ...], tuple[int, ...]]:
    """
    Layout whose row-major walk visits the elements of the input in exactly
    the reverse order: every axis is inverted.
    """
    if any(d == 0 for d in dim):
        return offset, tuple(dim), tuple(strides)
    new_offset = offset
    for d, s in zip(dim, strides):
        new_offset += (d - 1) * s
    return new_offset, tuple(dim), tuple(-s for s in strides)


def memory_order_layout(
    offset: int, dim: Sequence[int], strides: Sequence[int]
) -> tuple[int, tuple[int, ...], tuple[int, ...]]:
    """
    Layout whose row-major walk visits elements in increasing address order
    where the strides allow it.

    Negative-stride axes are inverted, then axes are sorted from the largest
    to the smallest stride. Axes of length 1 are dropped from consideration.
    """
    if any(d == 0 for d in dim):
        return offset, tuple(dim), tuple(strides)
    pairs = []
    for d, s in zip(dim, strides):
        if d == 1:
            continue
        if s < 0:
            offset += (d - 1) * s
            s = -s
        pairs.append((d, s))
    pairs.sort(key=lambda p: p[1], reverse=True)
    return offset, tuple(p[0] for p in pairs), tuple(p[1] for p in pairs)


def plan_offsets(
    offset: int,
    dim: Sequence[int],
    strides: Sequence[int],
    *,
    memory_order: bool = False,
    reverse: bool = False,
    force_strided: bool = False,
) -> Union[ContiguousOffsets, Baseiter]:
    """
    Choose the traversal strategy for a layout.

    Parameters
    ----------
    memory_order : bool
        Visit elements in memory order rather than logical row-major order.
    reverse : bool
        Visit elements in reverse logical order. Ignored with `memory_order`.
    force_strided : bool
        Always use the general odometer (used to cross-check the fast path).
    """
    if memory_order:
        offset, dim, strides = memory_order_layout(offset, dim, strides)
    elif reverse:
        offset, dim, strides = reversed_layout(offset, dim, strides)

    if not force_strided:
        start = contiguous_start(offset, dim, strides)
        if start is not None:
            size = 1
            for d in dim:
                size *= d
            return ContiguousOffsets(start, size)
    return Baseiter(offset, dim, strides)


def contiguous_start(
    offset: int, dim: Sequence[int], strides: Sequence[int]
) -> Optional[int]:
    """
    First offset of the flat block if a row-major walk of the layout visits
    consecutive addresses, else None.
    """
    if Layout.of(dim, strides).is_(Layout.CORDER):
        return offset
    return None


def iter_offsets(offset: int, dim: Sequence[int], strides: Sequence[int]) -> Iterator[int]:
    """Plain row-major offsets through the general path."""
    return Baseiter(offset, dim, strides)
