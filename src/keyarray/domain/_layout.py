"""
Layout descriptor.

`Layout` classifies a (shape, strides) pair so that kernels can pick fast
paths. It is always derived, never stored: recompute it whenever the shape
or strides change.

Flags
-----
CORDER
    Row-major contiguous: ascending logical order is ascending, unit-step
    memory order.
FORDER
    Column-major contiguous: the same with the axis order reversed.
CPREFER / FPREFER
    Tendencies for non-contiguous layouts (the innermost, respectively
    outermost, axis has unit stride). Used to choose memory-order traversal.

Rank <= 1 unit-stride layouts, layouts where every axis has length <= 1, and
empty layouts carry all four flags.
"""

from __future__ import annotations

from enum import IntFlag
from typing import Sequence


class Layout(IntFlag):
    NONE = 0
    CORDER = 0b0001
    FORDER = 0b0010
    CPREFER = 0b0100
    FPREFER = 0b1000

    @classmethod
    def one_dimensional(cls) -> "Layout":
        return cls.CORDER | cls.FORDER | cls.CPREFER | cls.FPREFER

    @classmethod
    def c(cls) -> "Layout":
        return cls.CORDER | cls.CPREFER

    @classmethod
    def f(cls) -> "Layout":
        return cls.FORDER | cls.FPREFER

    @classmethod
    def of(cls, dim: Sequence[int], strides: Sequence[int]) -> "Layout":
        """
        Classify a shape/stride pair.

        Parameters
        ----------
        dim : Sequence[int]
            Axis lengths.
        strides : Sequence[int]
            Element strides, same rank as `dim`.
        """
        if any(d == 0 for d in dim):
            return cls.one_dimensional()

        is_c = _is_c_contiguous(dim, strides)
        is_f = _is_f_contiguous(dim, strides)

        if is_c and is_f:
            return cls.one_dimensional()
        if is_c:
            return cls.c()
        if is_f:
            return cls.f()

        n = len(dim)
        if n > 1:
            if dim[n - 1] > 1 and strides[n - 1] == 1:
                return cls.CPREFER
            if dim[0] > 1 and strides[0] == 1:
                return cls.FPREFER
        return cls.NONE

    def is_(self, flag: "Layout") -> bool:
        """True if every bit of `flag` is set."""
        return (self & flag) == flag

    def tendency(self) -> int:
        """
        Signed preference score: positive favours C order, negative F order.
        """
        return (
            int(self.is_(Layout.CORDER))
            - int(self.is_(Layout.FORDER))
            + int(self.is_(Layout.CPREFER))
            - int(self.is_(Layout.FPREFER))
        )

    @property
    def is_c_contiguous(self) -> bool:
        return self.is_(Layout.CORDER)

    @property
    def is_f_contiguous(self) -> bool:
        return self.is_(Layout.FORDER)


def _is_c_contiguous(dim: Sequence[int], strides: Sequence[int]) -> bool:
    expected = 1
    for i in range(len(dim) - 1, -1, -1):
        d = dim[i]
        if d == 1:
            continue
        if strides[i] != expected:
            return False
        expected *= d
    return True


def _is_f_contiguous(dim: Sequence[int], strides: Sequence[int]) -> bool:
    expected = 1
    for i in range(len(dim)):
        d = dim[i]
        if d == 1:
            continue
        if strides[i] != expected:
            return False
        expected *= d
    return True
