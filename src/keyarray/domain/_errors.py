"""
Array layout and ownership exceptions for KeyArray.

This module defines the error kinds raised by the layout, indexing and
ownership engine. Every error is detected synchronously at the point of the
offending operation and reported to the immediate caller; none of them is a
transient condition, so nothing in the library retries on them.

Each concrete error also derives from the closest built-in exception
(`ValueError`, `IndexError`, `RuntimeError`) so that callers who only know the
built-in hierarchy can still catch them.
"""

from __future__ import annotations

from typing import Optional, Sequence


class ArrayError(Exception):
    """
    Base class for all KeyArray layout/ownership errors.
    """


class ShapeMismatchError(ArrayError, ValueError):
    """
    Raised when two shapes are required to agree (or to be broadcast
    compatible) and do not.

    Attributes
    ----------
    shape_a : tuple[int, ...] or None
        The first offending shape, if known.
    shape_b : tuple[int, ...] or None
        The second offending shape, if known.
    """

    def __init__(
        self,
        message: str,
        shape_a: Optional[Sequence[int]] = None,
        shape_b: Optional[Sequence[int]] = None,
    ) -> None:
        """
        Initialize the ShapeMismatchError.

        Parameters
        ----------
        message : str
            Human readable description of the mismatch.
        shape_a : Optional[Sequence[int]]
            First shape involved in the mismatch.
        shape_b : Optional[Sequence[int]]
            Second shape involved in the mismatch.
        """
        super().__init__(message)
        self.shape_a = None if shape_a is None else tuple(shape_a)
        self.shape_b = None if shape_b is None else tuple(shape_b)


class OutOfBoundsError(ArrayError, IndexError):
    """
    Raised when a resolved coordinate or slice bound falls outside an axis.

    Attributes
    ----------
    axis : int
        The axis on which the violation happened.
    index : int
        The requested (unresolved) index or bound.
    length : int
        The length of the axis.
    """

    def __init__(self, axis: int, index: int, length: int) -> None:
        """
        Initialize the OutOfBoundsError.

        Parameters
        ----------
        axis : int
            Axis position of the invalid index.
        index : int
            The index value as requested by the caller.
        length : int
            The length of the indexed axis.
        """
        super().__init__(
            f"index {index} is out of bounds for axis {axis} with length {length}"
        )
        self.axis = axis
        self.index = index
        self.length = length


class RankMismatchError(ArrayError, ValueError):
    """
    Raised when a fixed rank is requested from a value of a different rank.
    """

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"rank mismatch: expected {expected} dimension(s), got {actual}"
        )
        self.expected = expected
        self.actual = actual


class AliasingViolationError(ArrayError, RuntimeError):
    """
    Raised when a mutable path would overlap another live view of the same
    storage.

    This covers constructing a mutable view over memory reachable from a live
    view, constructing any view over memory held by a live mutable view,
    writing through a read-only (borrowed or broadcast) view, and writing
    through an owner while borrows of its storage are alive.
    """
