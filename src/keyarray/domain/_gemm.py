"""
External matrix-multiplication routine contract.

The linear-algebra dispatch talks to optimized routines (BLAS and friends)
through a narrow descriptor interface: each operand is a pointer into a flat
buffer, a two-dimensional shape, a storage convention (row- or column-major)
and a leading-dimension value. Translating an array's shape/stride model
into this format is the dispatcher's job; routines never see strides.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class MemoryOrder(Enum):
    """
    Storage convention of a two-dimensional operand.

    ROW_MAJOR: element (i, j) at `offset + i * ld + j`.
    COL_MAJOR: element (i, j) at `offset + i + j * ld`.
    """

    ROW_MAJOR = "C"
    COL_MAJOR = "F"


@dataclass(frozen=True)
class GemmOperand:
    """
    Descriptor of one GEMM operand.

    Attributes
    ----------
    data : Any
        Flat one-dimensional NumPy buffer holding the operand.
    offset : int
        Element offset of (0, 0) inside `data`.
    rows, cols : int
        Logical shape.
    order : MemoryOrder
        Storage convention.
    ld : int
        Leading dimension in elements: the row stride for ROW_MAJOR, the
        column stride for COL_MAJOR. Always >= max(1, cols) for ROW_MAJOR
        and >= max(1, rows) for COL_MAJOR.
    """

    data: Any
    offset: int
    rows: int
    cols: int
    order: MemoryOrder
    ld: int

    @property
    def dtype(self) -> Any:
        return self.data.dtype

    def address(self) -> int:
        """Byte address of element (0, 0)."""
        return int(self.data.ctypes.data) + self.offset * self.data.itemsize


@runtime_checkable
class IGemmRoutine(Protocol):
    """
    Pluggable optimized GEMM routine.

    Computes `c = alpha * a @ b + beta * c` in place on descriptor `c`.
    The routine is a black box: synchronous and non-reentrant.
    """

    name: str

    def supports(self, dtype: Any) -> bool:
        """Whether this routine handles the given element type."""
        ...

    def gemm(
        self,
        alpha: Any,
        a: GemmOperand,
        b: GemmOperand,
        beta: Any,
        c: GemmOperand,
    ) -> None:
        """Run the product. Shapes are already validated by the caller."""
        ...
