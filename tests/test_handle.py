"""Tests for shared native handles."""

import copy
import ctypes
import threading

import pytest

from open_crypto_handles import AllocationError, HandleReleasedError, NativeHandle
from open_crypto_handles.core import address_of

POINTER = 0x7F00DEAD0000


def test_owning_handle_destroys_once_after_last_copy(destroyed):
    """Copying N times then dropping every reference runs the destructor once."""
    handle = NativeHandle.owning(POINTER, destroyed.destructor, "test")
    copies = [handle.copy() for _ in range(10)]
    assert handle.references == 11

    del handle
    assert destroyed == []

    copies.pop().release()
    assert destroyed == []

    copies.clear()
    assert destroyed == [POINTER]


def test_copy_module_shares_the_handle(destroyed):
    """copy.copy() returns a new reference to the same pointer."""
    handle = NativeHandle.owning(POINTER, destroyed.destructor, "test")
    other = copy.copy(handle)

    assert other is not handle
    assert other == handle
    assert other.references == 2


def test_release_is_idempotent(destroyed):
    """Releasing the same reference twice only counts once."""
    handle = NativeHandle.owning(POINTER, destroyed.destructor, "test")
    other = handle.copy()

    handle.release()
    handle.release()
    assert destroyed == []
    assert other.references == 1

    other.release()
    assert destroyed == [POINTER]


def test_released_reference_refuses_access(destroyed):
    """A released reference no longer exposes its pointer."""
    handle = NativeHandle.owning(POINTER, destroyed.destructor, "test")
    handle.release()

    assert handle.released
    with pytest.raises(HandleReleasedError):
        handle.raw()
    with pytest.raises(HandleReleasedError):
        handle.copy()


def test_context_manager_releases(destroyed):
    """Leaving a with block releases the reference."""
    with NativeHandle.owning(POINTER, destroyed.destructor, "test") as handle:
        assert handle.raw() == POINTER
    assert destroyed == [POINTER]


def test_null_pointer_raises_allocation_error(destroyed):
    """A handle can never hold a null pointer."""
    for null in (None, 0, ctypes.c_void_p()):
        with pytest.raises(AllocationError):
            NativeHandle.owning(null, destroyed.destructor, "test")
        with pytest.raises(AllocationError):
            NativeHandle.view(null)
    assert destroyed == []


def test_view_never_destroys():
    """Views have no destructor."""
    view = NativeHandle.view(POINTER, kind="test")
    assert not view.owning_reference
    view.release()
    assert view.released


def test_view_keeps_parent_alive(destroyed):
    """The parent of a view is destroyed only after the view is released."""
    parent = NativeHandle.owning(POINTER, destroyed.destructor, "parent")
    view = NativeHandle.view(POINTER + 0x40, parent=parent, kind="child")

    parent.release()
    assert destroyed == []

    view.release()
    assert destroyed == [POINTER]


def test_equality_is_pointer_identity(destroyed):
    """Handles compare by pointer value, whatever their reference counts."""
    first = NativeHandle.owning(POINTER, destroyed.destructor, "test")
    same_pointer_view = NativeHandle.view(POINTER)
    other = NativeHandle.owning(POINTER + 8, destroyed.destructor, "test")

    assert first == first.copy()
    assert first == same_pointer_view
    assert first != other
    assert hash(first) == hash(same_pointer_view)
    assert len({first, first.copy(), same_pointer_view}) == 1


def test_concurrent_copy_and_release(destroyed):
    """Reference counting stays exact when threads share a handle."""
    handle = NativeHandle.owning(POINTER, destroyed.destructor, "test")

    def churn():
        for _ in range(500):
            handle.copy().release()

    threads = [threading.Thread(target=churn) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert destroyed == []
    assert handle.references == 1
    handle.release()
    assert destroyed == [POINTER]


def test_copy_racing_the_last_release(destroyed):
    """A copy made while the last reference is released is never left dangling."""
    for _ in range(50):
        destroyed.clear()
        handle = NativeHandle.owning(POINTER, destroyed.destructor, "test")
        barrier = threading.Barrier(5)
        dangling = []

        def copier():
            barrier.wait()
            for _ in range(100):
                try:
                    other = handle.copy()
                except HandleReleasedError:
                    return
                if destroyed:
                    dangling.append(other)
                other.release()

        def releaser():
            barrier.wait()
            handle.release()

        threads = [threading.Thread(target=copier) for _ in range(4)]
        threads.append(threading.Thread(target=releaser))
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert dangling == []
        assert destroyed == [POINTER]


def test_address_of_normalizes_pointers():
    """Integers, None and c_void_p are accepted."""
    assert address_of(None) is None
    assert address_of(0) is None
    assert address_of(ctypes.c_void_p(POINTER)) == POINTER
    assert address_of(POINTER) == POINTER


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
