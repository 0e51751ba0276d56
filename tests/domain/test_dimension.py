import unittest
from unittest import TestCase

from keyarray.domain._errors import (
    AliasingViolationError,
    OutOfBoundsError,
    RankMismatchError,
    ShapeMismatchError,
)
from keyarray.domain.dimension import (
    Ix0,
    Ix1,
    Ix2,
    Ix3,
    IxDyn,
    abs_index,
    can_index_slice,
    dim_for_rank,
    dim_stride_overlap,
    into_dimension,
    max_abs_offset_check_overflow,
    offset_from_low_addr_ptr_to_logical_ptr,
    size_of_shape_checked,
)


class TestDimConstruction(TestCase):
    def test_fixed_and_dynamic_compare_equal(self):
        self.assertEqual(Ix2(3, 4), IxDyn([3, 4]))
        self.assertTrue(Ix2(3, 4).equal(IxDyn([3, 4])))
        self.assertEqual(Ix2(3, 4), (3, 4))
        self.assertEqual(hash(Ix2(3, 4)), hash(IxDyn([3, 4])))

    def test_fixed_rank_rejects_wrong_count(self):
        with self.assertRaises(RankMismatchError):
            Ix2(1, 2, 3)

    def test_into_dimension(self):
        self.assertIsInstance(into_dimension(5), Ix1)
        self.assertIsInstance(into_dimension((2, 3, 4)), Ix3)
        self.assertIsInstance(into_dimension(()), Ix0)
        self.assertIsInstance(into_dimension((1,) * 7), IxDyn)
        d = Ix2(1, 2)
        self.assertIs(into_dimension(d), d)

    def test_dim_for_rank(self):
        self.assertIs(dim_for_rank(0), Ix0)
        self.assertIs(dim_for_rank(3), Ix3)
        self.assertIs(dim_for_rank(9), IxDyn)
        with self.assertRaises(ValueError):
            dim_for_rank(-1)


class TestDimArithmetic(TestCase):
    def test_size(self):
        self.assertEqual(Ix3(2, 3, 4).size(), 24)
        self.assertEqual(Ix0().size(), 1)
        self.assertEqual(Ix2(0, 5).size(), 0)

    def test_size_checked_overflow(self):
        self.assertIsNone(IxDyn([2**40, 2**40]).size_checked())
        self.assertEqual(Ix2(3, 4).size_checked(), 12)

    def test_default_and_fortran_strides(self):
        self.assertEqual(Ix3(2, 3, 4).default_strides(), (12, 4, 1))
        self.assertEqual(Ix3(2, 3, 4).fortran_strides(), (1, 2, 6))
        self.assertEqual(Ix2(0, 3).default_strides(), (0, 0))

    def test_strides_keep_rank_family(self):
        self.assertIsInstance(Ix2(2, 3).default_strides(), Ix2)
        self.assertIsInstance(IxDyn([2, 3]).default_strides(), IxDyn)

    def test_first_and_next_index(self):
        dim = Ix2(2, 2)
        seen = []
        ix = dim.first_index()
        while ix is not None:
            seen.append(tuple(ix))
            ix = dim.next_for(ix)
        self.assertEqual(seen, [(0, 0), (0, 1), (1, 0), (1, 1)])
        self.assertIsNone(Ix2(0, 3).first_index())

    def test_stride_offset_checked(self):
        dim = Ix2(3, 4)
        strides = dim.default_strides()
        self.assertEqual(dim.stride_offset_checked(strides, (2, 1)), 9)
        self.assertIsNone(dim.stride_offset_checked(strides, (3, 0)))
        self.assertIsNone(dim.stride_offset_checked(strides, (0,)))

    def test_ravel_and_unravel(self):
        dim = Ix3(2, 3, 4)
        self.assertEqual(dim.ravel_index((1, 2, 3)), 23)
        self.assertEqual(dim.unravel_index(23), (1, 2, 3))
        with self.assertRaises(OutOfBoundsError):
            dim.unravel_index(24)
        with self.assertRaises(OutOfBoundsError):
            dim.ravel_index((0, 3, 0))

    def test_axis_editing(self):
        dim = Ix3(2, 3, 4)
        self.assertEqual(dim.remove_axis(1), (2, 4))
        self.assertIsInstance(dim.remove_axis(1), Ix2)
        self.assertEqual(dim.insert_axis(0), (1, 2, 3, 4))
        self.assertEqual(dim.set_axis(-1, 7), (2, 3, 7))
        self.assertEqual(dim.permuted([2, 0, 1]), (4, 2, 3))
        self.assertEqual(dim.axis(-1), 4)

    def test_stride_axis_queries(self):
        dim = Ix3(2, 3, 4)
        strides = Ix3(1, -8, 2)
        self.assertEqual(dim.min_stride_axis(strides), 0)
        self.assertEqual(dim.max_stride_axis(strides), 1)

    def test_rank_conversions(self):
        d = Ix2(3, 4).into_dyn()
        self.assertIsInstance(d, IxDyn)
        back = d.into_dimensionality(Ix2)
        self.assertIsInstance(back, Ix2)
        self.assertEqual(back, (3, 4))
        self.assertIsInstance(d.into_dimensionality(2), Ix2)
        with self.assertRaises(RankMismatchError):
            d.into_dimensionality(Ix3)


class TestStrideHelpers(TestCase):
    def test_abs_index(self):
        self.assertEqual(abs_index(5, -1), 4)
        self.assertEqual(abs_index(5, 2), 2)

    def test_size_of_shape_checked(self):
        self.assertEqual(size_of_shape_checked((2, 3)), 6)
        with self.assertRaises(ShapeMismatchError):
            size_of_shape_checked((-1, 3))

    def test_max_abs_offset(self):
        self.assertEqual(max_abs_offset_check_overflow((3, 4), (4, 1)), 11)
        self.assertEqual(max_abs_offset_check_overflow((3, 4), (-4, 1)), 11)
        self.assertEqual(max_abs_offset_check_overflow((0, 4), (4, 1)), 0)

    def test_low_addr_offset(self):
        self.assertEqual(offset_from_low_addr_ptr_to_logical_ptr((3, 4), (4, 1)), 0)
        self.assertEqual(offset_from_low_addr_ptr_to_logical_ptr((3, 4), (-4, 1)), 8)

    def test_dim_stride_overlap(self):
        self.assertFalse(dim_stride_overlap((3, 4), (4, 1)))
        self.assertTrue(dim_stride_overlap((3, 4), (0, 1)))
        self.assertTrue(dim_stride_overlap((3, 4), (2, 1)))
        self.assertFalse(dim_stride_overlap((1, 4), (0, 1)))
        self.assertFalse(dim_stride_overlap((0, 4), (0, 0)))

    def test_can_index_slice(self):
        can_index_slice(12, Ix2(3, 4), Ix2(4, 1))
        can_index_slice(12, Ix2(3, 4), Ix2(-4, 1), 8)
        with self.assertRaises(ShapeMismatchError):
            can_index_slice(11, Ix2(3, 4), Ix2(4, 1))
        with self.assertRaises(ShapeMismatchError):
            can_index_slice(12, Ix2(3, 4), Ix2(-4, 1), 0)

    def test_can_index_slice_overlap(self):
        with self.assertRaises(AliasingViolationError):
            can_index_slice(4, Ix2(3, 4), Ix2(0, 1))
        can_index_slice(4, Ix2(3, 4), Ix2(0, 1), allow_overlap=True)


if __name__ == "__main__":
    unittest.main()
