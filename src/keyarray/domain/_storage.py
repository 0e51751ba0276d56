"""
Storage ownership contracts.

A storage is "where the elements live and who may mutate them". Every array
value carries exactly one storage, and exactly one of five ownership modes:

- OWNED     : exclusive buffer, freed with the array value
- SHARED    : reference-counted buffer, copy-on-write on mutation if aliased
- VIEW      : read-only borrow of storage owned elsewhere
- VIEW_MUT  : exclusive read/write borrow of storage owned elsewhere
- RAW       : unchecked window over externally managed memory

Generic algorithms (slicing, iteration, linear algebra) are written once
against the `IStorage` capability surface: obtain the readable buffer, or
ask for the writable buffer (which may fail, or trigger a copy for SHARED).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


class StorageKind(Enum):
    """
    Ownership mode of a storage.
    """

    OWNED = "owned"
    SHARED = "shared"
    VIEW = "view"
    VIEW_MUT = "view_mut"
    RAW = "raw"


@runtime_checkable
class IStorage(Protocol):
    """
    Minimal capability surface shared by all ownership modes.

    Notes
    -----
    - `buffer` is always a one-dimensional NumPy array. Offsets and strides
      held by the array value index into it, in elements.
    - `as_mutable()` is the sole way to obtain write access. It must be
      called before every mutating operation.
    """

    @property
    def kind(self) -> StorageKind:
        """Ownership mode of this storage."""
        ...

    @property
    def buffer(self) -> Any:
        """
        Return the flat element buffer for reading.

        Raises
        ------
        AliasingViolationError
            If reading would race a live mutable borrow of the same memory.
        """
        ...

    def __len__(self) -> int:
        """Number of elements in the flat buffer."""
        ...

    def is_writable(self) -> bool:
        """Whether `as_mutable()` can succeed (ignoring live borrows)."""
        ...

    def as_mutable(self) -> Any:
        """
        Return the flat element buffer for writing.

        For SHARED storage this performs copy-on-write when the buffer is
        aliased. For read-only storage this raises.

        Raises
        ------
        AliasingViolationError
            If the storage is read-only or a live borrow forbids mutation.
        """
        ...

    @property
    def tracker(self) -> Optional[Any]:
        """Borrow tracker of the root region, or None for RAW storage."""
        ...

    def clone_handle(self) -> "IStorage":
        """
        Duplicate the handle according to the ownership mode.

        OWNED deep-copies, SHARED increments the reference count, views
        return a new borrow of the same region, RAW returns an alias.
        """
        ...
