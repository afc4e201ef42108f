"""Shared ownership of raw libcrypto pointers.

A :class:`NativeHandle` turns an opaque native pointer into a copyable value.
Copies share one reference count; the destructor runs exactly once, when the
last copy is released. Views carry no destructor: they alias memory owned by
another structure and keep that structure's handle alive for as long as they
exist.

Handles compare by pointer value, never by the contents of the structure.
"""

import ctypes
import threading
from typing import Any, Callable, Iterable, Optional

from .errors import AllocationError, HandleReleasedError, InvalidArgument
from .logging import get_logger
from .translator import drain_error_queue

logger = get_logger(__name__)

Destructor = Callable[[int], Any]


def address_of(pointer: Any) -> Optional[int]:
    """Normalize a native pointer to an integer address, or None for null.

    Accepts integers (as returned by ctypes ``c_void_p`` functions), ``None``,
    and ``ctypes.c_void_p`` instances.
    """
    if isinstance(pointer, ctypes.c_void_p):
        pointer = pointer.value
    if not pointer:
        return None
    return int(pointer)


class _SharedState:
    """State shared by every copy of one handle."""

    __slots__ = ("pointer", "destructor", "kind", "references", "keepalive", "lock")

    def __init__(
        self,
        pointer: int,
        destructor: Optional[Destructor],
        kind: str,
        keepalive: Iterable[Any] = (),
    ):
        self.pointer = pointer
        self.destructor = destructor
        self.kind = kind
        self.references = 0
        self.keepalive = tuple(keepalive)
        self.lock = threading.Lock()

    def destroy(self) -> None:
        # Called once, after the count reached zero
        keepalive, self.keepalive = self.keepalive, ()
        if self.destructor is not None:
            self.destructor(self.pointer)
            logger.debug("handle.destroyed", kind=self.kind, pointer=hex(self.pointer))
        for item in keepalive:
            if isinstance(item, NativeHandle):
                item.release()


class NativeHandle:
    """A reference-counted, copyable reference to a native pointer."""

    __slots__ = ("_shared", "_released", "__weakref__")

    def __init__(self, shared: _SharedState):
        with shared.lock:
            shared.references += 1
        self._shared = shared
        self._released = False

    @classmethod
    def owning(
        cls,
        pointer: Any,
        destructor: Destructor,
        kind: str = "native",
        keepalive: Iterable[Any] = (),
    ) -> "NativeHandle":
        """Take ownership of ``pointer``; ``destructor`` runs on last release.

        Objects in ``keepalive`` (buffers, files) are dropped only after the
        destructor ran.

        Raises:
            AllocationError: If pointer is null
        """
        address = address_of(pointer)
        if address is None:
            raise AllocationError(drain_error_queue(f"{kind} allocation"))
        return cls(_SharedState(address, destructor, kind, keepalive))

    @classmethod
    def view(
        cls,
        pointer: Any,
        parent: Optional["NativeHandle"] = None,
        kind: str = "native",
        keepalive: Iterable[Any] = (),
    ) -> "NativeHandle":
        """Reference ``pointer`` without ever destroying it.

        Args:
            pointer: Native pointer owned elsewhere
            parent: Handle of the owner; it stays alive while the view exists
            kind: Structure name used in logs and errors
            keepalive: Extra objects (buffers, files) the pointer depends on

        Raises:
            AllocationError: If pointer is null
        """
        address = address_of(pointer)
        if address is None:
            raise AllocationError(drain_error_queue(f"{kind} view"))

        dependencies = list(keepalive)
        if parent is not None:
            dependencies.append(parent.copy())
        return cls(_SharedState(address, None, kind, dependencies))

    def raw(self) -> int:
        """Return the pointer without transferring ownership.

        The handle keeps ownership: freeing the returned pointer directly
        results in undefined behavior.

        Raises:
            HandleReleasedError: If this reference was released
        """
        if self._released:
            raise HandleReleasedError(f"{self._shared.kind} handle has been released")
        return self._shared.pointer

    def copy(self) -> "NativeHandle":
        """Return a new reference sharing this handle's pointer and count.

        Raises:
            HandleReleasedError: If this reference was released, including
                concurrently with the copy
        """
        shared = self._shared
        with shared.lock:
            if self._released:
                raise HandleReleasedError(f"{shared.kind} handle has been released")
            shared.references += 1
        clone = NativeHandle.__new__(NativeHandle)
        clone._shared = shared
        clone._released = False
        return clone

    __copy__ = copy

    def release(self) -> None:
        """Drop this reference. Safe to call more than once."""
        shared = self._shared
        with shared.lock:
            if self._released:
                return
            self._released = True
            shared.references -= 1
            last = shared.references == 0
        if last:
            shared.destroy()

    @property
    def owning_reference(self) -> bool:
        """Whether the last release runs a destructor."""
        return self._shared.destructor is not None

    @property
    def references(self) -> int:
        """Number of live references sharing this pointer."""
        return self._shared.references

    @property
    def released(self) -> bool:
        return self._released

    @property
    def kind(self) -> str:
        return self._shared.kind

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NativeHandle):
            return NotImplemented
        return self._shared.pointer == other._shared.pointer

    def __hash__(self) -> int:
        return hash(self._shared.pointer)

    def __enter__(self) -> "NativeHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    def __del__(self):
        if hasattr(self, "_shared"):
            self.release()

    def __repr__(self) -> str:
        policy = "owning" if self.owning_reference else "view"
        state = "released" if self._released else f"refs={self.references}"
        return f"<NativeHandle {self.kind} {policy} 0x{self._shared.pointer:x} {state}>"


class NativeObject:
    """Base class for entities backed by a single :class:`NativeHandle`.

    Subclasses name their libcrypto allocation and free functions; instances
    built with the default constructor own a fresh, empty structure. Copies
    share the native structure, and ``==`` compares pointers.
    """

    _kind = "native"
    _new_function: str = ""
    _free_function: str = ""

    _handle: NativeHandle

    def __init__(self):
        from .library import get_library

        lib = get_library()
        self._handle = NativeHandle.owning(
            getattr(lib, self._new_function)(),
            getattr(lib, self._free_function),
            self._kind,
        )

    @classmethod
    def _from_handle(cls, handle: NativeHandle):
        instance = cls.__new__(cls)
        instance._handle = handle
        return instance

    @classmethod
    def _destructor(cls) -> Destructor:
        from .library import get_library

        return getattr(get_library(), cls._free_function)

    @classmethod
    def _adopt(cls, pointer: Any):
        """Wrap a pointer freshly returned by libcrypto, taking ownership."""
        return cls._from_handle(NativeHandle.owning(pointer, cls._destructor(), cls._kind))

    @classmethod
    def take_ownership(cls, pointer: Any):
        """Wrap an existing native pointer, taking ownership of it.

        Raises:
            InvalidArgument: If pointer is null. Nothing is allocated.
        """
        if address_of(pointer) is None:
            raise InvalidArgument(f"{cls.__name__} requires a non-null {cls._kind} pointer")
        return cls._adopt(pointer)

    @classmethod
    def view(cls, pointer: Any, parent: Optional["NativeObject"] = None):
        """Wrap a native pointer owned elsewhere.

        When ``parent`` is given the view keeps it alive; otherwise the caller
        must guarantee the owner outlives the view.
        """
        parent_handle = parent.handle if parent is not None else None
        return cls._from_handle(NativeHandle.view(pointer, parent_handle, cls._kind))

    @property
    def handle(self) -> NativeHandle:
        return self._handle

    def raw(self) -> int:
        """Return the native pointer. The instance keeps ownership of it."""
        return self._handle.raw()

    def copy(self):
        """Return a new reference to the same native structure."""
        return self._from_handle(self._handle.copy())

    def __copy__(self):
        return self.copy()

    def close(self) -> None:
        """Release this reference; the structure is freed with its last reference."""
        self._handle.release()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NativeObject):
            return NotImplemented
        return self._handle == other._handle

    def __hash__(self) -> int:
        return hash(self._handle)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._handle!r}>"
