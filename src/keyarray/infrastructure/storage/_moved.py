"""
Placeholder storage left behind by consuming operations.

Operations such as `slice_move`, `into_shape` or `split_at` on a mutable view
transfer the storage of their receiver into the result. The receiver keeps a
`MovedStorage` so that any later use of it fails loudly instead of aliasing
the storage it gave away.
"""

from __future__ import annotations

from ...domain._errors import AliasingViolationError


class MovedStorage:
    __slots__ = ("_reason",)

    def __init__(self, reason: str = "moved") -> None:
        self._reason = reason

    def raise_moved(self):
        """Raise the error describing why the array is unusable."""
        raise AliasingViolationError(f"array was {self._reason} and can no longer be used")

    @property
    def kind(self):
        self.raise_moved()

    @property
    def buffer(self):
        self.raise_moved()

    @property
    def tracker(self):
        self.raise_moved()

    def root_buffer(self):
        self.raise_moved()

    def __len__(self) -> int:
        self.raise_moved()

    def is_writable(self) -> bool:
        return False

    def as_mutable(self):
        self.raise_moved()

    def clone_handle(self):
        self.raise_moved()

    def __repr__(self) -> str:
        return "MovedStorage()"


def is_moved(storage) -> bool:
    return isinstance(storage, MovedStorage)
