"""
KeyArray: N-dimensional strided arrays with explicit storage ownership.

Quick tour::

    import keyarray as ka
    from keyarray import s

    a = ka.from_shape_vec((2, 3), [1, 2, 3, 4, 5, 6], dtype="float64")
    b = a.slice(s[:, ::-1])      # read-only view, no copy
    c = a.t() @ a                # fresh owned (3, 3) array
"""

from .domain import (
    AliasingViolationError,
    ArrayError,
    GemmOperand,
    IGemmRoutine,
    Layout,
    MemoryOrder,
    NewAxis,
    OutOfBoundsError,
    RankMismatchError,
    ShapeMismatchError,
    Slice,
    SliceInfo,
    StorageKind,
    s,
)
from .domain.dimension import (
    Dim,
    Ix0,
    Ix1,
    Ix2,
    Ix3,
    Ix4,
    Ix5,
    Ix6,
    IxDyn,
    broadcast_shapes,
    co_broadcast,
    into_dimension,
)
from .infrastructure._config import (
    KeyArrayConfig,
    config,
    config_context,
    get_config,
    reset_config,
    set_config,
)
from .infrastructure.array import (
    ArcArray,
    Array,
    ArrayView,
    ArrayViewMut,
    RawArrayView,
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
from .infrastructure.linalg import (
    TileConfig,
    dot,
    general_mat_mul,
    general_mat_vec_mul,
    matmul,
    register_gemm_routine,
    unregister_gemm_routine,
)

__version__ = "0.1.0"

__all__ = [
    "AliasingViolationError",
    "ArrayError",
    "GemmOperand",
    "IGemmRoutine",
    "Layout",
    "MemoryOrder",
    "NewAxis",
    "OutOfBoundsError",
    "RankMismatchError",
    "ShapeMismatchError",
    "Slice",
    "SliceInfo",
    "StorageKind",
    "s",
    "Dim",
    "Ix0",
    "Ix1",
    "Ix2",
    "Ix3",
    "Ix4",
    "Ix5",
    "Ix6",
    "IxDyn",
    "broadcast_shapes",
    "co_broadcast",
    "into_dimension",
    "KeyArrayConfig",
    "config",
    "config_context",
    "get_config",
    "reset_config",
    "set_config",
    "ArcArray",
    "Array",
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
    "TileConfig",
    "dot",
    "general_mat_mul",
    "general_mat_vec_mul",
    "matmul",
    "register_gemm_routine",
    "unregister_gemm_routine",
]
