import unittest
from unittest import TestCase

import numpy as np

from keyarray import (
    AliasingViolationError,
    ShapeMismatchError,
    StorageKind,
    from_raw,
    from_shape_vec,
    s,
    shared,
    zeros,
)


def _grid():
    return from_shape_vec((2, 3), [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])


class TestViews(TestCase):
    def test_view_and_view_mut(self):
        a = _grid()
        v = a.view()
        self.assertIs(v.storage_kind, StorageKind.VIEW)
        with self.assertRaises(AliasingViolationError):
            a.view_mut()
        v.release()
        with a.view_mut() as m:
            self.assertIs(m.storage_kind, StorageKind.VIEW_MUT)
            m[0, 0] = 10.0
        self.assertEqual(a[0, 0], 10.0)

    def test_owner_write_refused_while_read_view_lives(self):
        a = _grid()
        v = a.view()
        self.assertEqual(a[1, 1], 5.0)
        with self.assertRaises(AliasingViolationError):
            a[1, 1] = 0.0
        v.release()
        a[1, 1] = 0.0

    def test_released_array_unusable(self):
        a = _grid()
        v = a.view()
        v.release()
        self.assertTrue(v.is_moved)
        with self.assertRaises(AliasingViolationError):
            v[0, 0]
        v.release()

    def test_nested_mutable_view(self):
        a = _grid()
        outer = a.view_mut()
        inner = outer.slice_mut(s[0])
        with self.assertRaises(AliasingViolationError):
            outer[1, 0]
        inner.fill(0.0)
        inner.release()
        self.assertEqual(outer[0, 2], 0.0)
        outer.release()

    def test_read_view_cannot_derive_mutable(self):
        v = _grid().view()
        with self.assertRaises(AliasingViolationError):
            v.slice_mut(s[0])

    def test_clone_of_mutable_view_refused(self):
        m = _grid().view_mut()
        with self.assertRaises(AliasingViolationError):
            m.clone()


class TestConversions(TestCase):
    def test_to_numpy_logical_order(self):
        a = _grid().slice(s[:, ::-1])
        np.testing.assert_array_equal(a.to_numpy(), [[3, 2, 1], [6, 5, 4]])
        np.testing.assert_array_equal(np.asarray(a), [[3, 2, 1], [6, 5, 4]])

    def test_as_numpy_view_zero_copy(self):
        a = _grid()
        v = a.as_numpy_view()
        self.assertFalse(v.flags.writeable)
        self.assertTrue(np.shares_memory(v, a.storage.root_buffer()))
        np.testing.assert_array_equal(v, [[1, 2, 3], [4, 5, 6]])

    def test_as_slice(self):
        a = _grid()
        np.testing.assert_array_equal(a.as_slice(), [1, 2, 3, 4, 5, 6])
        self.assertIsNone(a.t().as_slice())
        np.testing.assert_array_equal(a.t().as_slice_memory_order(), [1, 2, 3, 4, 5, 6])
        self.assertIsNone(a.slice(s[:, ::2]).as_slice_memory_order())

    def test_to_owned_standard_layout(self):
        o = _grid().t().to_owned()
        self.assertIs(o.storage_kind, StorageKind.OWNED)
        self.assertTrue(o.is_standard_layout())
        self.assertEqual(o.to_list(), [[1.0, 4.0], [2.0, 5.0], [3.0, 6.0]])

    def test_clone_owned_is_deep(self):
        a = _grid()
        b = a.clone()
        b[0, 0] = -1.0
        self.assertEqual(a[0, 0], 1.0)

    def test_into_shared_adopts_buffer(self):
        a = _grid()
        buf = a.storage.root_buffer()
        sh = a.into_shared()
        self.assertTrue(a.is_moved)
        self.assertIs(sh.storage_kind, StorageKind.SHARED)
        self.assertIs(sh.storage.root_buffer(), buf)

    def test_into_shared_refused_while_borrowed(self):
        a = _grid()
        v = a.view()
        with self.assertRaises(AliasingViolationError):
            a.into_shared()
        v.release()

    def test_to_shared_shares_reference(self):
        a = shared([1.0, 2.0])
        b = a.to_shared()
        self.assertTrue(a.storage.shares_buffer_with(b.storage))
        c = _grid().to_shared()
        self.assertIs(c.storage_kind, StorageKind.SHARED)

    def test_shared_release_drops_count(self):
        a = shared([1.0, 2.0])
        b = a.clone()
        self.assertEqual(a.storage.strong_count, 2)
        b.release()
        self.assertEqual(a.storage.strong_count, 1)


class TestWrites(TestCase):
    def test_fill_strided(self):
        a = _grid()
        with a.slice_mut(s[:, ::2]) as v:
            v.fill(0.0)
        self.assertEqual(a.to_list(), [[0.0, 2.0, 0.0], [0.0, 5.0, 0.0]])

    def test_assign_broadcasts(self):
        a = zeros((2, 3))
        a.assign(from_shape_vec(3, [1.0, 2.0, 3.0]))
        self.assertEqual(a.to_list(), [[1.0, 2.0, 3.0], [1.0, 2.0, 3.0]])
        a.assign(np.array([[7.0], [8.0]]))
        self.assertEqual(a.to_list(), [[7.0, 7.0, 7.0], [8.0, 8.0, 8.0]])
        a.assign(0.5)
        self.assertEqual(a.sum(), 3.0)

    def test_assign_shape_mismatch(self):
        with self.assertRaises(ShapeMismatchError):
            zeros((2, 3)).assign([1.0, 2.0])
        with self.assertRaises(ShapeMismatchError):
            zeros((2, 3)).assign(zeros(2))

    def test_assign_into_reversed_view(self):
        a = zeros(4)
        with a.slice_mut(s[::-1]) as v:
            v.assign([1.0, 2.0, 3.0, 4.0])
        self.assertEqual(a.to_list(), [4.0, 3.0, 2.0, 1.0])

    def test_copy_from_numpy(self):
        a = zeros((2, 2), order="F")
        a.copy_from_numpy(np.array([[1.0, 2.0], [3.0, 4.0]]))
        self.assertEqual(a.to_list(), [[1.0, 2.0], [3.0, 4.0]])
        with self.assertRaises(ShapeMismatchError):
            a.copy_from_numpy(np.zeros((2, 3)))

    def test_write_to_shared_copies(self):
        a = shared([1.0, 2.0, 3.0])
        b = a.clone()
        b.fill(0.0)
        self.assertEqual(a.to_list(), [1.0, 2.0, 3.0])
        self.assertFalse(a.storage.shares_buffer_with(b.storage))

    def test_raw_overlapping_assign(self):
        backing = np.arange(5.0)
        r = from_raw(backing)
        dst = r.slice_mut(s[1:])
        src = r.slice(s[:4])
        dst.assign(src)
        np.testing.assert_array_equal(backing, [0.0, 0.0, 1.0, 2.0, 3.0])


if __name__ == "__main__":
    unittest.main()
