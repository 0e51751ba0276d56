import ctypes
import gc
import unittest
from unittest import TestCase

import numpy as np

from keyarray.domain._errors import AliasingViolationError
from keyarray.domain._storage import StorageKind
from keyarray.infrastructure.storage import (
    Footprint,
    MovedStorage,
    OwnedStorage,
    RawStorage,
    SharedStorage,
    ViewStorage,
    allocate,
    borrow,
    is_moved,
)


def _whole(n: int) -> Footprint:
    return Footprint(0, (n,), (1,))


class TestOwnedStorage(TestCase):
    def test_requires_flat_numpy(self):
        with self.assertRaises(TypeError):
            OwnedStorage(np.zeros((2, 2)))

    def test_clone_is_deep(self):
        st = OwnedStorage(np.arange(4.0))
        other = st.clone_handle()
        other.as_mutable()[0] = 99.0
        self.assertEqual(st.buffer[0], 0.0)

    def test_owner_frozen_while_borrowed(self):
        st = OwnedStorage(np.arange(4.0))
        view = borrow(st, _whole(4), mutable=False)
        self.assertIs(view.kind, StorageKind.VIEW)
        with self.assertRaises(AliasingViolationError):
            st.as_mutable()
        st.buffer  # reads are fine alongside read views
        view.release()
        st.as_mutable()[0] = 1.0

    def test_allocate(self):
        st = allocate(3, np.int32, fill=7)
        np.testing.assert_array_equal(st.buffer, [7, 7, 7])
        self.assertEqual(st.buffer.dtype, np.int32)


class TestSharedStorage(TestCase):
    def test_clone_shares_buffer(self):
        a = SharedStorage(np.arange(4.0))
        b = a.clone_handle()
        self.assertTrue(a.shares_buffer_with(b))
        self.assertEqual(a.strong_count, 2)

    def test_copy_on_write(self):
        a = SharedStorage(np.arange(4.0))
        b = a.clone_handle()
        buf = b.as_mutable()
        buf[0] = 42.0
        self.assertFalse(a.shares_buffer_with(b))
        self.assertEqual(a.buffer[0], 0.0)
        self.assertEqual(b.buffer[0], 42.0)
        self.assertEqual(a.strong_count, 1)
        self.assertEqual(b.strong_count, 1)

    def test_unique_handle_writes_in_place(self):
        a = SharedStorage(np.arange(4.0))
        before = a.root_buffer()
        self.assertIs(a.as_mutable(), before)

    def test_release_and_collection_decrement(self):
        a = SharedStorage(np.arange(4.0))
        b = a.clone_handle()
        c = a.clone_handle()
        self.assertEqual(a.strong_count, 3)
        b.release()
        self.assertEqual(a.strong_count, 2)
        del c
        gc.collect()
        self.assertEqual(a.strong_count, 1)

    def test_clone_refused_while_mutably_borrowed(self):
        a = SharedStorage(np.arange(4.0))
        view = borrow(a, _whole(4), mutable=True)
        with self.assertRaises(AliasingViolationError):
            a.clone_handle()
        view.release()
        a.clone_handle()

    def test_mutable_borrow_makes_unique_first(self):
        a = SharedStorage(np.arange(4.0))
        b = a.clone_handle()
        view = borrow(b, _whole(4), mutable=True)
        view.as_mutable()[1] = -1.0
        self.assertEqual(a.buffer[1], 1.0)
        view.release()
        self.assertEqual(b.buffer[1], -1.0)

    def test_refused_mutable_borrow_keeps_buffer_shared(self):
        a = SharedStorage(np.arange(4.0))
        b = a.clone_handle()
        reader = borrow(b, _whole(4), mutable=False)
        with self.assertRaises(AliasingViolationError):
            borrow(b, _whole(4), mutable=True)
        self.assertEqual(b.strong_count, 2)
        self.assertTrue(a.shares_buffer_with(b))
        self.assertIs(reader.buffer, b.root_buffer())
        reader.release()


class TestViewStorage(TestCase):
    def test_read_view_refuses_writes(self):
        st = OwnedStorage(np.arange(4.0))
        view = borrow(st, _whole(4), mutable=False)
        with self.assertRaises(AliasingViolationError):
            view.as_mutable()
        with self.assertRaises(AliasingViolationError):
            borrow(view, _whole(4), mutable=True)

    def test_view_released_on_collection(self):
        st = OwnedStorage(np.arange(4.0))
        view = borrow(st, _whole(4), mutable=True)
        self.assertEqual(st.tracker.live_borrows, 1)
        del view
        gc.collect()
        self.assertEqual(st.tracker.live_borrows, 0)

    def test_released_view_unusable(self):
        st = OwnedStorage(np.arange(4.0))
        view = borrow(st, _whole(4), mutable=False)
        view.release()
        self.assertTrue(view.is_released)
        with self.assertRaises(AliasingViolationError):
            view.buffer

    def test_read_view_clone_is_new_child(self):
        st = OwnedStorage(np.arange(4.0))
        view = borrow(st, _whole(4), mutable=False)
        dup = view.clone_handle()
        self.assertIsInstance(dup, ViewStorage)
        self.assertEqual(st.tracker.live_borrows, 2)

    def test_mutable_view_cannot_be_cloned(self):
        st = OwnedStorage(np.arange(4.0))
        view = borrow(st, _whole(4), mutable=True)
        with self.assertRaises(AliasingViolationError):
            view.clone_handle()


class TestRawStorage(TestCase):
    def test_from_buffer_aliases_memory(self):
        raw_bytes = bytearray(8 * 4)
        st = RawStorage.from_buffer(raw_bytes, np.float64)
        st.as_mutable()[2] = 1.5
        self.assertEqual(np.frombuffer(raw_bytes, dtype=np.float64)[2], 1.5)

    def test_read_only_memory(self):
        st = RawStorage.from_buffer(bytes(16), np.float64)
        self.assertFalse(st.is_writable())
        with self.assertRaises(AliasingViolationError):
            st.as_mutable()

    def test_from_address(self):
        backing = (ctypes.c_double * 4)(1.0, 2.0, 3.0, 4.0)
        st = RawStorage.from_address(ctypes.addressof(backing), 4, np.float64)
        np.testing.assert_array_equal(st.buffer, [1.0, 2.0, 3.0, 4.0])
        st.as_mutable()[0] = 10.0
        self.assertEqual(backing[0], 10.0)

    def test_raw_borrow_is_untracked_alias(self):
        data = np.arange(4.0)
        st = RawStorage(data)
        a = borrow(st, _whole(4), mutable=True)
        b = borrow(st, _whole(4), mutable=True)
        self.assertIs(a.kind, StorageKind.RAW)
        self.assertIs(a.root_buffer(), b.root_buffer())
        self.assertIsNone(st.tracker)


class TestMovedStorage(TestCase):
    def test_every_access_raises(self):
        st = MovedStorage("consumed")
        self.assertTrue(is_moved(st))
        with self.assertRaises(AliasingViolationError):
            st.buffer
        with self.assertRaises(AliasingViolationError):
            st.as_mutable()


if __name__ == "__main__":
    unittest.main()
