"""
Array linear-algebra mixin: `dot` and the `@` operator.

The dispatch lives in `infrastructure.linalg`; it is imported lazily because
it builds its results through `Array` itself.
"""

from __future__ import annotations

from abc import ABC
from typing import Any


class ArrayMixinLinalg(ABC):
    """
    Matrix products for `Array`.
    """

    def dot(self, other: Any, strategy: str = "auto") -> Any:
        """
        Matrix/vector product with `other`; see `keyarray.dot`.

        Parameters
        ----------
        other : Array
            Right operand of rank 1 or 2.
        strategy : {"auto", "native", "blas"}
            Kernel selection.
        """
        from ...linalg import dot

        return dot(self, other, strategy=strategy)

    def __matmul__(self, other: Any) -> Any:
        from ...linalg import matmul

        if not isinstance(other, ArrayMixinLinalg):
            return NotImplemented
        return matmul(self, other)
