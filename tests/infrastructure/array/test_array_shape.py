import unittest
from unittest import TestCase

from keyarray import (
    AliasingViolationError,
    Ix2,
    IxDyn,
    RankMismatchError,
    ShapeMismatchError,
    StorageKind,
    from_shape_vec,
    s,
    zeros,
)


def _grid():
    return from_shape_vec((3, 4), list(range(12)))


class TestReshape(TestCase):
    def test_contiguous_reshape_is_view(self):
        a = _grid()
        r = a.reshape((4, 3))
        self.assertIs(r.storage_kind, StorageKind.VIEW)
        self.assertEqual(r.to_list()[1], [3, 4, 5])

    def test_non_contiguous_reshape_copies(self):
        t = _grid().t()
        r = t.reshape(12)
        self.assertIs(r.storage_kind, StorageKind.OWNED)
        self.assertEqual(r.to_list()[:6], [0, 4, 8, 1, 5, 9])

    def test_fortran_reshape_of_transpose_is_view(self):
        t = _grid().t()
        r = t.reshape(12, order="F")
        self.assertIs(r.storage_kind, StorageKind.VIEW)
        self.assertEqual(r.to_list(), list(range(12)))

    def test_size_mismatch(self):
        with self.assertRaises(ShapeMismatchError):
            _grid().reshape((5, 2))

    def test_into_shape_consumes(self):
        a = _grid()
        b = a.into_shape((2, 6))
        self.assertTrue(a.is_moved)
        self.assertIs(b.storage_kind, StorageKind.OWNED)
        self.assertEqual(b.to_list()[1], [6, 7, 8, 9, 10, 11])

    def test_into_shape_rejects_strided_layout(self):
        v = _grid().slice(s[:, ::2])
        with self.assertRaises(ShapeMismatchError):
            v.into_shape(6)
        self.assertFalse(v.is_moved)


class TestAxes(TestCase):
    def test_transpose(self):
        a = _grid()
        t = a.t()
        self.assertEqual(t.shape, (4, 3))
        self.assertEqual(t.strides, (1, 4))
        self.assertEqual(t[3, 2], 11)
        self.assertEqual(a.T.shape, (4, 3))

    def test_permuted_axes(self):
        a = zeros((2, 3, 4))
        b = a.permuted_axes([2, 0, 1])
        self.assertEqual(b.shape, (4, 2, 3))
        self.assertEqual(b.strides, (1, 12, 4))
        with self.assertRaises(ValueError):
            zeros((2, 3)).permuted_axes([0, 0])

    def test_swap_and_invert(self):
        a = _grid()
        a.swap_axes(0, 1)
        self.assertEqual(a.shape, (4, 3))
        v = from_shape_vec(3, [1, 2, 3])
        v.invert_axis(0)
        self.assertEqual(v.to_list(), [3, 2, 1])
        self.assertEqual(v.offset, 2)

    def test_merge_axes(self):
        a = _grid()
        self.assertFalse(a.merge_axes(1, 0))
        self.assertTrue(a.merge_axes(0, 1))
        self.assertEqual(a.shape, (1, 12))
        self.assertEqual(a.to_list(), [list(range(12))])

    def test_insert_remove_axis(self):
        a = _grid().insert_axis(0)
        self.assertEqual(a.shape, (1, 3, 4))
        b = a.remove_axis(0)
        self.assertEqual(b.shape, (3, 4))
        with self.assertRaises(ShapeMismatchError):
            b.remove_axis(0)

    def test_rank_conversions(self):
        d = _grid().into_dyn()
        self.assertIsInstance(d.dim, IxDyn)
        f = d.into_dimensionality(2)
        self.assertIsInstance(f.dim, Ix2)
        with self.assertRaises(RankMismatchError):
            _grid().into_dimensionality(3)

    def test_is_square(self):
        self.assertTrue(zeros((3, 3)).is_square())
        self.assertFalse(_grid().is_square())


class TestBroadcast(TestCase):
    def test_broadcast_row(self):
        v = from_shape_vec(3, [1, 2, 3])
        b = v.broadcast((2, 3))
        self.assertEqual(b.strides, (0, 1))
        self.assertEqual(b.to_list(), [[1, 2, 3], [1, 2, 3]])

    def test_broadcast_is_read_only(self):
        b = from_shape_vec(3, [1, 2, 3]).broadcast((2, 3))
        with self.assertRaises(AliasingViolationError):
            b[0, 0] = 5

    def test_incompatible(self):
        with self.assertRaises(ShapeMismatchError):
            from_shape_vec(3, [1, 2, 3]).broadcast((2, 4))

    def test_broadcast_with(self):
        col = zeros((3, 1))
        row = zeros((1, 4))
        x, y = col.broadcast_with(row)
        self.assertEqual(x.shape, (3, 4))
        self.assertEqual(y.shape, (3, 4))


if __name__ == "__main__":
    unittest.main()
