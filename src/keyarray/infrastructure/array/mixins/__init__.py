from ._memory import ArrayMixinMemory
from ._indexing import ArrayMixinIndexing
from ._shape import ArrayMixinShape
from ._iteration import ArrayMixinIteration
from ._linalg import ArrayMixinLinalg

__all__ = [
    "ArrayMixinMemory",
    "ArrayMixinIndexing",
    "ArrayMixinShape",
    "ArrayMixinIteration",
    "ArrayMixinLinalg",
]
