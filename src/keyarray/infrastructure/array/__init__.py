"""
The `Array` value and its constructors.
"""

from ._array import Array, ArcArray, ArrayView, ArrayViewMut, RawArrayView
from ._factories import (
    arange,
    empty,
    eye,
    from_elem,
    from_iterable,
    from_numpy,
    from_raw,
    from_shape_fn,
    from_shape_vec,
    from_vec,
    full,
    linspace,
    ones,
    shared,
    zeros,
)

__all__ = [
    "Array",
    "ArcArray",
    "ArrayView",
    "ArrayViewMut",
    "RawArrayView",
    "arange",
    "empty",
    "eye",
    "from_elem",
    "from_iterable",
    "from_numpy",
    "from_raw",
    "from_shape_fn",
    "from_shape_vec",
    "from_vec",
    "full",
    "linspace",
    "ones",
    "shared",
    "zeros",
]
