"""
Borrow tracking for view storages.

Every owned or shared storage handle owns one `BorrowTracker`. Each live view
derived from it (directly or through other views) holds a `Borrow` record in
that tracker describing:

- its mode (read or write),
- its footprint: the (offset, shape, strides) layout it can reach,
- its parent borrow, when it was derived from another view.

Rules enforced at construction time
-----------------------------------
- A write borrow may not overlap any other live borrow, except its own
  ancestors (reborrowing from a mutable view is allowed, and freezes the
  parent until the child is released).
- A read borrow may not overlap any live write borrow other than its own
  ancestors.

Rules enforced at access time
-----------------------------
- The owner may not write while any borrow is live.
- The owner may not read while any write borrow is live.
- A mutable view may not write while it has live children, and may not read
  while it has live write children.

Overlap is decided from the layouts: an interval pre-check on the reachable
address range, then a bounded search for a common element over the strides
(see `footprints_overlap`). No per-element work is done. Disjoint
interleaved views (e.g. the even and odd columns of a row-major matrix) are
therefore allowed to coexist.

Releasing a borrow that still has live children only marks it consumed; it is
removed once its last child goes away, so a parent region stays reserved for
as long as anything derived from it is alive.
"""

from __future__ import annotations

import itertools
import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Optional

from ...domain._errors import AliasingViolationError
from ...domain.dimension import reachable_bounds

logger = logging.getLogger(__name__)

READ = "read"
WRITE = "write"


@dataclass(frozen=True)
class Footprint:
    """
    Layout a borrow can reach inside its buffer.
    """

    offset: int
    shape: tuple[int, ...]
    strides: tuple[int, ...]

    def is_empty(self) -> bool:
        return any(d == 0 for d in self.shape)

    def bounds(self) -> tuple[int, int]:
        return reachable_bounds(self.offset, self.shape, self.strides)


# Upper bound on the search nodes `footprints_overlap` visits before it
# answers "may overlap".
_MAX_WORK = 4096


def _overlap_terms(a: Footprint, b: Footprint) -> list[tuple[int, int, int]]:
    """
    Terms `(coef, lo, hi)` of `sum(coef * e) == b.offset - a.offset`, one per
    distinct absolute stride, sorted by decreasing coefficient.

    An element is reachable from both footprints exactly when the equation
    has an integer solution with every `e` in `[lo, hi]`.
    """
    merged: dict[int, list[int]] = {}
    for sign, fp in ((1, a), (-1, b)):
        for d, s in zip(fp.shape, fp.strides):
            c = sign * s
            if d <= 1 or c == 0:
                continue
            lo, hi = (0, d - 1) if c > 0 else (-(d - 1), 0)
            slot = merged.setdefault(abs(c), [0, 0])
            slot[0] += lo
            slot[1] += hi
    return sorted(((c, lo, hi) for c, (lo, hi) in merged.items()), reverse=True)


def footprints_overlap(a: Footprint, b: Footprint) -> bool:
    """
    Whether two footprints can reach a common element.

    The answer is computed from the layouts alone: the difference of the two
    base offsets is decomposed over the strides, largest first, pruning by
    the range the remaining axes can still cover and by their gcd. The work
    depends on the rank, never on the number of elements. When the search
    exceeds a fixed budget the footprints are reported as overlapping.
    """
    if a.is_empty() or b.is_empty():
        return False
    lo_a, hi_a = a.bounds()
    lo_b, hi_b = b.bounds()
    if hi_a < lo_b or hi_b < lo_a:
        return False

    terms = _overlap_terms(a, b)
    n = len(terms)
    # suffix ranges and gcds of terms[k:]
    rlo = [0] * (n + 1)
    rhi = [0] * (n + 1)
    rg = [0] * (n + 1)
    for k in range(n - 1, -1, -1):
        c, lo, hi = terms[k]
        rlo[k] = rlo[k + 1] + c * lo
        rhi[k] = rhi[k + 1] + c * hi
        rg[k] = math.gcd(rg[k + 1], c)

    budget = [_MAX_WORK]

    def solve(k: int, target: int) -> bool:
        if k == n:
            return target == 0
        if target < rlo[k] or target > rhi[k] or target % rg[k]:
            return False
        c, lo, hi = terms[k]
        first = max(lo, -((rhi[k + 1] - target) // c))
        last = min(hi, (target - rlo[k + 1]) // c)
        for e in range(first, last + 1):
            budget[0] -= 1
            if budget[0] < 0 or solve(k + 1, target - c * e):
                return True
        return False

    return solve(0, b.offset - a.offset)


@dataclass(eq=False)
class Borrow:
    """
    One live view registered in a tracker.
    """

    id: int
    mode: str
    footprint: Footprint
    parent: Optional["Borrow"] = None
    live_children: int = 0
    live_write_children: int = 0
    consumed: bool = False
    released: bool = False
    label: str = field(default="", repr=False)

    def ancestors(self) -> set[int]:
        out = set()
        p = self.parent
        while p is not None:
            out.add(p.id)
            p = p.parent
        return out

    @property
    def is_write(self) -> bool:
        return self.mode == WRITE


class BorrowTracker:
    """
    Registry of live borrows over one root region.

    Thread safety
    -------------
    Registration and release are serialized by an internal lock. Access-time
    checks read counters under the same lock.
    """

    _ids = itertools.count(1)

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._live: dict[int, Borrow] = {}
        self._write_count = 0

    def __len__(self) -> int:
        return len(self._live)

    @property
    def live_borrows(self) -> int:
        return len(self._live)

    @property
    def live_write_borrows(self) -> int:
        return self._write_count

    # ------------------------------------------------------------------
    # registration
    # ------------------------------------------------------------------
    def acquire(
        self,
        mode: str,
        footprint: Footprint,
        parent: Optional[Borrow] = None,
        label: str = "",
    ) -> Borrow:
        """
        Register a new borrow.

        Raises
        ------
        AliasingViolationError
            If the requested borrow conflicts with a live borrow, or if the
            parent is itself released or read-only while a write is requested.
        """
        with self._lock:
            self._check_conflicts_locked(mode, footprint, parent)
            borrow = Borrow(
                id=next(self._ids),
                mode=mode,
                footprint=footprint,
                parent=parent,
                label=label,
            )
            self._live[borrow.id] = borrow
            if borrow.is_write:
                self._write_count += 1
            if parent is not None:
                parent.live_children += 1
                if borrow.is_write:
                    parent.live_write_children += 1

        logger.debug("acquired %s borrow #%d %s", mode, borrow.id, label)
        return borrow

    def check_available(
        self,
        mode: str,
        footprint: Footprint,
        parent: Optional[Borrow] = None,
    ) -> None:
        """
        Run the checks of `acquire` without registering anything.

        Raises
        ------
        AliasingViolationError
            If `acquire` with the same arguments would raise.
        """
        with self._lock:
            self._check_conflicts_locked(mode, footprint, parent)

    def _check_conflicts_locked(
        self, mode: str, footprint: Footprint, parent: Optional[Borrow]
    ) -> None:
        if parent is not None:
            if parent.released or parent.consumed:
                raise AliasingViolationError(
                    "cannot derive a view from a released or consumed view"
                )
            if mode == WRITE and not parent.is_write:
                raise AliasingViolationError(
                    "cannot derive a mutable view from a read-only view"
                )

        skip = set()
        p = parent
        while p is not None:
            skip.add(p.id)
            p = p.parent

        for other in self._live.values():
            if other.id in skip:
                continue
            if mode == READ and not other.is_write:
                continue
            if footprints_overlap(footprint, other.footprint):
                raise AliasingViolationError(
                    f"{mode} view {_describe(footprint)} overlaps a live "
                    f"{other.mode} view {_describe(other.footprint)}"
                )

    def release(self, borrow: Borrow) -> None:
        """
        Release a borrow. Idempotent.

        A borrow with live children is only marked consumed and disappears
        when its last child is released.
        """
        with self._lock:
            self._release_locked(borrow)

    def _release_locked(self, borrow: Borrow) -> None:
        if borrow.released:
            return
        if borrow.live_children > 0:
            borrow.consumed = True
            return
        borrow.released = True
        self._live.pop(borrow.id, None)
        if borrow.is_write:
            self._write_count -= 1
        logger.debug("released %s borrow #%d", borrow.mode, borrow.id)
        parent = borrow.parent
        if parent is not None:
            parent.live_children -= 1
            if borrow.is_write:
                parent.live_write_children -= 1
            if parent.consumed and parent.live_children == 0:
                self._release_locked(parent)

    # ------------------------------------------------------------------
    # access checks
    # ------------------------------------------------------------------
    def check_owner_write(self) -> None:
        """
        Raises
        ------
        AliasingViolationError
            If any borrow of this region is live.
        """
        with self._lock:
            n = len(self._live)
        if n:
            raise AliasingViolationError(
                f"cannot mutate through the owner while {n} view(s) of it are alive"
            )

    def check_owner_read(self) -> None:
        """
        Raises
        ------
        AliasingViolationError
            If a mutable view of this region is live.
        """
        with self._lock:
            n = self._write_count
        if n:
            raise AliasingViolationError(
                f"cannot read through the owner while {n} mutable view(s) of it are alive"
            )

    def check_view_access(self, borrow: Borrow, write: bool) -> None:
        """
        Validate an access through the view owning `borrow`.
        """
        with self._lock:
            released = borrow.released or borrow.consumed
            children = borrow.live_children
            write_children = borrow.live_write_children
        if released:
            raise AliasingViolationError("view has been released or consumed")
        if write and children:
            raise AliasingViolationError(
                f"cannot write through a view while {children} view(s) derived from it are alive"
            )
        if write_children:
            raise AliasingViolationError(
                "cannot access a view while a mutable view derived from it is alive"
            )


def _describe(fp: Footprint) -> str:
    return f"(offset={fp.offset}, shape={fp.shape}, strides={fp.strides})"
