"""
Broadcasting algebra.

Shapes are right-aligned; the shorter one is conceptually padded on the left
with length-1 axes. Each aligned pair (a, b) is compatible iff a == b, a == 1
or b == 1, and the result length is max(a, b).

Broadcasting never allocates: `upcast` only derives a stride vector in which
every virtually repeated axis has stride 0.
"""

from __future__ import annotations

from typing import Optional, Sequence

from .._errors import ShapeMismatchError
from ._dimension import Dim, IxDyn, dim_for_rank, into_dimension


def co_broadcast(a: Sequence[int], b: Sequence[int]) -> Dim:
    """
    Common broadcast shape of `a` and `b`.

    The result is dynamic if either input is an `IxDyn`, fixed otherwise.

    Raises
    ------
    ShapeMismatchError
        If an aligned axis pair is incompatible. The error names both shapes.
    """
    a_t = tuple(a)
    b_t = tuple(b)
    n = max(len(a_t), len(b_t))
    pa = (1,) * (n - len(a_t)) + a_t
    pb = (1,) * (n - len(b_t)) + b_t

    out = []
    for x, y in zip(pa, pb):
        if x == y or y == 1:
            out.append(x)
        elif x == 1:
            out.append(y)
        else:
            raise ShapeMismatchError(
                f"shapes {a_t} and {b_t} cannot be broadcast together", a_t, b_t
            )

    dynamic = (isinstance(a, Dim) and a.is_dynamic) or (
        isinstance(b, Dim) and b.is_dynamic
    )
    if dynamic:
        return IxDyn(out)
    return dim_for_rank(n)(out)


def broadcast_shapes(*shapes: Sequence[int]) -> tuple[int, ...]:
    """
    Fold `co_broadcast` over any number of shapes and return a tuple.
    """
    if not shapes:
        return ()
    result: Sequence[int] = into_dimension(shapes[0])
    for shape in shapes[1:]:
        result = co_broadcast(result, into_dimension(shape))
    return tuple(result)


def upcast(
    to_dim: Sequence[int], from_dim: Sequence[int], from_strides: Sequence[int]
) -> Optional[Dim]:
    """
    Strides that let a `from_dim` layout be read as `to_dim`.

    Returns None if `from_dim` cannot be broadcast to `to_dim` (note the
    direction: only `from_dim` may be stretched).

    Axes prepended on the left and axes stretched from length 1 get stride 0;
    all other axes keep their original stride.
    """
    to_t = tuple(to_dim)
    from_t = tuple(from_dim)
    if len(from_t) > len(to_t):
        return None

    pad = len(to_t) - len(from_t)
    new_strides = [0] * len(to_t)
    for i in range(len(from_t)):
        target = to_t[pad + i]
        src = from_t[i]
        if src == target:
            new_strides[pad + i] = from_strides[i]
        elif src == 1:
            new_strides[pad + i] = 0
        else:
            return None

    if isinstance(to_dim, Dim):
        return to_dim._like(new_strides)
    return into_dimension(new_strides)
