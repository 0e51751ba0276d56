"""
Array interface definitions.

This module defines the domain-level contract of an N-dimensional array value
using structural typing. Collaborators outside the core (serialization,
elementwise arithmetic, random generation) only rely on this surface: locate
an element, read it, write it where ownership permits, and iterate.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol, Sequence, runtime_checkable

from ._layout import Layout
from ._storage import StorageKind


@runtime_checkable
class IArray(Protocol):
    """
    N-dimensional array interface.

    An `IArray` is the product of a storage, a base offset, a shape and a
    stride vector. Its element count and rank are always consistent with
    its shape.
    """

    @property
    def shape(self) -> tuple[int, ...]:
        """Axis lengths."""
        ...

    @property
    def strides(self) -> tuple[int, ...]:
        """Per-axis element strides, same rank as `shape`."""
        ...

    @property
    def ndim(self) -> int:
        """Number of axes."""
        ...

    @property
    def size(self) -> int:
        """Total number of elements."""
        ...

    @property
    def dtype(self) -> Any:
        """NumPy dtype of the elements."""
        ...

    @property
    def layout(self) -> Layout:
        """Contiguity classification derived from shape and strides."""
        ...

    @property
    def storage_kind(self) -> StorageKind:
        """Ownership mode of the backing storage."""
        ...

    def get(self, index: Sequence[int]) -> Optional[Any]:
        """
        Read one element, or return None if `index` is out of bounds.
        """
        ...

    def iter(self) -> Iterable[Any]:
        """Elements in logical row-major order."""
        ...

    def to_numpy(self) -> Any:
        """Materialize a NumPy copy in logical order."""
        ...
