import itertools
import unittest
from unittest import TestCase, mock

import numpy as np

from keyarray.domain._errors import AliasingViolationError
from keyarray.domain.dimension import reachable_bounds
from keyarray.infrastructure.storage import BorrowTracker, Footprint, footprints_overlap
from keyarray.infrastructure.storage import _borrow
from keyarray.infrastructure.storage._borrow import READ, WRITE


def _row(r: int) -> Footprint:
    # row r of a 4x4 row-major matrix
    return Footprint(4 * r, (4,), (1,))


def _col(c: int) -> Footprint:
    return Footprint(c, (4,), (4,))


class TestFootprints(TestCase):
    def test_disjoint_rows(self):
        self.assertFalse(footprints_overlap(_row(0), _row(1)))

    def test_row_and_column_cross(self):
        self.assertTrue(footprints_overlap(_row(2), _col(3)))

    def test_interleaved_but_disjoint(self):
        evens = Footprint(0, (4,), (2,))
        odds = Footprint(1, (4,), (2,))
        self.assertFalse(footprints_overlap(evens, odds))

    def test_empty_never_overlaps(self):
        self.assertFalse(footprints_overlap(Footprint(0, (0, 4), (4, 1)), _row(0)))

    def test_negative_strides(self):
        rev = Footprint(3, (4,), (-1,))
        self.assertTrue(footprints_overlap(rev, _row(0)))
        self.assertFalse(footprints_overlap(rev, _row(1)))

    def test_huge_interleaved_columns(self):
        # no buffer this size could exist; the answer must come from the strides
        n = 10**9
        evens = Footprint(0, (n, n // 2), (n, 2))
        odds = Footprint(1, (n, n // 2), (n, 2))
        self.assertFalse(footprints_overlap(evens, odds))

    def test_huge_interleaved_columns_odd_width(self):
        n = 10**9 - 1
        evens = Footprint(0, (n, (n + 1) // 2), (n, 2))
        odds = Footprint(1, (n, (n - 1) // 2), (n, 2))
        self.assertFalse(footprints_overlap(evens, odds))

    def test_huge_column_halves(self):
        n = 10**9
        left = Footprint(0, (n, n // 2), (n, 1))
        right = Footprint(n // 2, (n, n // 2), (n, 1))
        self.assertFalse(footprints_overlap(left, right))
        self.assertTrue(footprints_overlap(left, Footprint(n // 2 - 1, (n,), (n,))))

    def test_huge_matrix_and_column(self):
        n = 10**9
        whole = Footprint(0, (n, n), (n, 1))
        self.assertTrue(footprints_overlap(whole, Footprint(5, (n,), (n,))))

    def test_budget_exhaustion_reports_overlap(self):
        n = 10**9 - 1
        evens = Footprint(0, (n, (n + 1) // 2), (n, 2))
        odds = Footprint(1, (n, (n - 1) // 2), (n, 2))
        with mock.patch.object(_borrow, "_MAX_WORK", 0):
            self.assertTrue(footprints_overlap(evens, odds))

    def test_matches_enumeration(self):
        rng = np.random.default_rng(0)

        def random_footprint():
            rank = int(rng.integers(1, 4))
            shape = tuple(int(d) for d in rng.integers(0, 5, size=rank))
            strides = tuple(int(st) for st in rng.integers(-7, 8, size=rank))
            low, _ = reachable_bounds(0, shape, strides)
            return Footprint(-low + int(rng.integers(0, 6)), shape, strides)

        def reachable(fp):
            return {
                fp.offset + sum(i * st for i, st in zip(ix, fp.strides))
                for ix in itertools.product(*(range(d) for d in fp.shape))
            }

        with mock.patch.object(_borrow, "_MAX_WORK", 10**7):
            for _ in range(400):
                a, b = random_footprint(), random_footprint()
                expected = bool(reachable(a) & reachable(b))
                self.assertEqual(footprints_overlap(a, b), expected, (a, b))


class TestBorrowTracker(TestCase):
    def test_reads_share(self):
        t = BorrowTracker()
        t.acquire(READ, _row(0))
        t.acquire(READ, _row(0))
        self.assertEqual(t.live_borrows, 2)
        t.check_owner_read()

    def test_write_excludes_overlapping_read(self):
        t = BorrowTracker()
        t.acquire(READ, _row(0))
        with self.assertRaises(AliasingViolationError):
            t.acquire(WRITE, _col(0))

    def test_disjoint_writes_coexist(self):
        t = BorrowTracker()
        t.acquire(WRITE, _row(0))
        t.acquire(WRITE, _row(1))
        self.assertEqual(t.live_write_borrows, 2)

    def test_failed_acquire_leaves_no_trace(self):
        t = BorrowTracker()
        w = t.acquire(WRITE, _row(0))
        with self.assertRaises(AliasingViolationError):
            t.acquire(READ, _row(0))
        self.assertEqual(t.live_borrows, 1)
        t.release(w)
        self.assertEqual(t.live_borrows, 0)

    def test_owner_checks(self):
        t = BorrowTracker()
        r = t.acquire(READ, _row(0))
        with self.assertRaises(AliasingViolationError):
            t.check_owner_write()
        t.check_owner_read()
        t.release(r)
        w = t.acquire(WRITE, _row(0))
        with self.assertRaises(AliasingViolationError):
            t.check_owner_read()
        t.release(w)
        t.check_owner_write()

    def test_child_skips_ancestors(self):
        t = BorrowTracker()
        parent = t.acquire(WRITE, _row(0))
        child = t.acquire(WRITE, Footprint(0, (2,), (1,)), parent)
        self.assertEqual(parent.live_children, 1)
        # the parent is frozen while its mutable child lives
        with self.assertRaises(AliasingViolationError):
            t.check_view_access(parent, write=False)
        t.release(child)
        t.check_view_access(parent, write=True)

    def test_write_child_of_read_parent_rejected(self):
        t = BorrowTracker()
        parent = t.acquire(READ, _row(0))
        with self.assertRaises(AliasingViolationError):
            t.acquire(WRITE, _row(0), parent)

    def test_release_is_deferred_until_children_end(self):
        t = BorrowTracker()
        parent = t.acquire(WRITE, _row(0))
        child = t.acquire(READ, _row(0), parent)
        t.release(parent)
        self.assertTrue(parent.consumed)
        self.assertFalse(parent.released)
        with self.assertRaises(AliasingViolationError):
            t.acquire(READ, _row(0))
        t.release(child)
        self.assertTrue(parent.released)
        self.assertEqual(t.live_borrows, 0)

    def test_release_idempotent(self):
        t = BorrowTracker()
        b = t.acquire(WRITE, _row(0))
        t.release(b)
        t.release(b)
        self.assertEqual(t.live_write_borrows, 0)

    def test_check_available_registers_nothing(self):
        t = BorrowTracker()
        t.check_available(WRITE, _row(0))
        self.assertEqual(t.live_borrows, 0)
        r = t.acquire(READ, _row(0))
        with self.assertRaises(AliasingViolationError):
            t.check_available(WRITE, _col(0))
        t.check_available(WRITE, _row(1))
        self.assertEqual(t.live_borrows, 1)
        t.release(r)

    def test_consumed_parent_cannot_derive(self):
        t = BorrowTracker()
        parent = t.acquire(WRITE, _row(0))
        t.acquire(READ, _row(0), parent)
        t.release(parent)
        with self.assertRaises(AliasingViolationError):
            t.acquire(READ, _row(0), parent)


if __name__ == "__main__":
    unittest.main()
