"""Byte streams over libcrypto BIO objects."""

import ctypes
import os
from pathlib import Path
from typing import IO, Any, Optional

from ..core.errors import CryptographicOperationError
from ..core.handle import NativeHandle, NativeObject
from ..core.library import (
    BIO_CTRL_FLUSH,
    BIO_CTRL_INFO,
    BIO_CTRL_PENDING,
    BIO_NOCLOSE,
    get_library,
)
from ..core.translator import check_success

_READ_CHUNK = 4096


class ByteStream(NativeObject):
    """A libcrypto BIO used to read and write encoded data.

    The default constructor creates a growable in-memory buffer. Other
    backings are available through the ``from_*`` factories. A ByteStream
    instance has the same semantic as a ``BIO*`` pointer: copies share the
    same underlying stream.
    """

    _kind = "BIO"
    _free_function = "BIO_free_all"

    def __init__(self):
        lib = get_library()
        self._handle = NativeHandle.owning(
            lib.BIO_new(lib.BIO_s_mem()), lib.BIO_free_all, self._kind
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "ByteStream":
        """Create a read-only stream over ``data``.

        The bytes are copied once into a buffer that lives as long as the
        stream; writing to the stream fails.
        """
        data = bytes(data)
        buffer = ctypes.create_string_buffer(data, len(data))
        lib = get_library()
        pointer = lib.BIO_new_mem_buf(buffer, len(data))
        # The memory BIO reads the Python buffer in place
        return cls._from_handle(
            NativeHandle.owning(pointer, lib.BIO_free_all, cls._kind, keepalive=(buffer,))
        )

    @classmethod
    def from_file(cls, path: str | Path, mode: str = "rb") -> "ByteStream":
        """Open ``path`` as a file-backed stream closed with the stream.

        Raises:
            CryptographicOperationError: If the file cannot be opened
        """
        lib = get_library()
        pointer = lib.BIO_new_file(os.fsencode(path), mode.encode("ascii"))
        return cls._adopt(pointer)

    @classmethod
    def from_fileobj(cls, fileobj: IO[Any]) -> "ByteStream":
        """Wrap an open host file object by descriptor.

        The file object is flushed first, stays open when the stream is
        released, and is kept alive by the stream. Python-level buffering is
        bypassed: flush the file object before reading back what was written.
        """
        fileobj.flush()
        lib = get_library()
        pointer = lib.BIO_new_fd(fileobj.fileno(), BIO_NOCLOSE)
        return cls._from_handle(
            NativeHandle.owning(pointer, lib.BIO_free_all, cls._kind, keepalive=(fileobj,))
        )

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, or everything available if negative."""
        lib = get_library()
        chunks: list[bytes] = []
        remaining = size
        while remaining != 0:
            want = _READ_CHUNK if remaining < 0 else min(remaining, _READ_CHUNK)
            buf = ctypes.create_string_buffer(want)
            count = lib.BIO_read(self.raw(), buf, want)
            if count <= 0:
                break
            chunks.append(buf.raw[:count])
            if remaining > 0:
                remaining -= count
        return b"".join(chunks)

    def write(self, data: bytes) -> int:
        """Write ``data`` to the stream.

        Returns:
            Number of bytes written

        Raises:
            CryptographicOperationError: If the stream refuses the write
        """
        if not data:
            return 0
        written = get_library().BIO_write(self.raw(), data, len(data))
        return check_success(written, "BIO_write", CryptographicOperationError)

    def getvalue(self) -> bytes:
        """Return the unread content of a memory stream without consuming it."""
        data = ctypes.c_void_p()
        length = get_library().BIO_ctrl(self.raw(), BIO_CTRL_INFO, 0, ctypes.byref(data))
        if length <= 0 or not data.value:
            return b""
        return ctypes.string_at(data.value, length)

    def pending(self) -> int:
        """Number of bytes buffered and not yet read."""
        return get_library().BIO_ctrl(self.raw(), BIO_CTRL_PENDING, 0, None)

    def flush(self) -> None:
        check_success(
            get_library().BIO_ctrl(self.raw(), BIO_CTRL_FLUSH, 0, None), "BIO_flush"
        )

    @classmethod
    def memory(cls, data: Optional[bytes] = None) -> "ByteStream":
        """Create a growable memory stream, optionally pre-filled with ``data``."""
        stream = cls()
        if data:
            stream.write(data)
        return stream
