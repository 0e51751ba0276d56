"""
Unchecked storage over externally managed memory.

`RawStorage` exists to interoperate with foreign code. No borrow is tracked
and no lifetime relation is enforced: the caller guarantees that the memory
stays valid, and exclusively accessible for writes, for as long as the array
value exists.
"""

from __future__ import annotations

import ctypes
from typing import Any

import numpy as np

from ...domain._errors import AliasingViolationError
from ...domain._storage import StorageKind


class RawStorage:
    """
    Window over caller-supplied memory.

    Parameters
    ----------
    data : np.ndarray
        One-dimensional buffer. Writability follows `data.flags.writeable`
        unless `writable=False` is passed.
    writable : bool, optional
        Restrict the window to reads.
    """

    __slots__ = ("_data", "_writable", "_keepalive", "__weakref__")

    def __init__(self, data: np.ndarray, writable: bool = True, keepalive: Any = None) -> None:
        if not isinstance(data, np.ndarray):
            raise TypeError("RawStorage expects a numpy array")
        if data.ndim != 1:
            data = data.reshape(-1)
        self._data = data
        self._writable = bool(writable) and bool(data.flags.writeable)
        self._keepalive = keepalive

    @classmethod
    def from_buffer(cls, obj: Any, dtype: Any, writable: bool = True) -> "RawStorage":
        """
        Wrap any object exporting the buffer protocol (bytearray, memoryview,
        mmap, array.array, ...).
        """
        data = np.frombuffer(obj, dtype=np.dtype(dtype))
        return cls(data, writable=writable, keepalive=obj)

    @classmethod
    def from_address(
        cls, address: int, count: int, dtype: Any, writable: bool = True
    ) -> "RawStorage":
        """
        Wrap `count` elements of `dtype` starting at a raw memory address.

        The address is not validated. Passing an address that is not valid
        for `count * itemsize` bytes is undefined behaviour.
        """
        dt = np.dtype(dtype)
        if dt.hasobject:
            raise TypeError("raw memory cannot hold Python object elements")
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        if count == 0:
            return cls(np.empty(0, dtype=dt), writable=writable)
        holder = (ctypes.c_char * (count * dt.itemsize)).from_address(int(address))
        data = np.frombuffer(holder, dtype=dt, count=count)
        return cls(data, writable=writable, keepalive=holder)

    @property
    def kind(self) -> StorageKind:
        return StorageKind.RAW

    @property
    def buffer(self) -> np.ndarray:
        return self._data

    @property
    def tracker(self) -> None:
        return None

    def root_buffer(self) -> np.ndarray:
        return self._data

    def __len__(self) -> int:
        return int(self._data.shape[0])

    def is_writable(self) -> bool:
        return self._writable

    def as_mutable(self) -> np.ndarray:
        if not self._writable:
            raise AliasingViolationError("raw view is read-only")
        return self._data

    def alias(self, writable: bool = True) -> "RawStorage":
        """Another raw window over the same memory."""
        return RawStorage(self._data, writable=self._writable and writable, keepalive=self._keepalive)

    def clone_handle(self) -> "RawStorage":
        return self.alias()

    def __repr__(self) -> str:
        mode = "rw" if self._writable else "r"
        return f"RawStorage(len={len(self)}, dtype={self._data.dtype}, mode={mode!r})"
