"""Tests for byte streams."""

import pytest

from open_crypto_handles import ByteStream, CryptographicOperationError, InvalidArgument
from open_crypto_handles.core import get_library


def test_memory_stream_write_and_read():
    """A growable memory stream returns what was written."""
    with ByteStream() as stream:
        assert stream.write(b"hello ") == 6
        stream.write(b"world")
        assert stream.pending() == 11
        assert stream.getvalue() == b"hello world"
        assert stream.read(5) == b"hello"
        assert stream.read() == b" world"
        assert stream.read() == b""


def test_memory_stream_prefilled():
    """ByteStream.memory() starts with the given content and stays writable."""
    stream = ByteStream.memory(b"abc")
    stream.write(b"def")
    assert stream.read() == b"abcdef"


def test_read_only_stream_from_bytes():
    """A stream over caller bytes can be read but not written."""
    data = b"x" * 10000
    stream = ByteStream.from_bytes(data)

    assert stream.read() == data
    with pytest.raises(CryptographicOperationError):
        stream.write(b"more")


def test_empty_write_is_a_no_op():
    """Writing nothing succeeds without calling libcrypto."""
    assert ByteStream.from_bytes(b"").write(b"") == 0


def test_file_stream(tmp_path):
    """File-backed streams read and write host files."""
    path = tmp_path / "data.bin"

    with ByteStream.from_file(path, "wb") as stream:
        stream.write(b"\x00\x01binary")
        stream.flush()

    assert path.read_bytes() == b"\x00\x01binary"
    with ByteStream.from_file(path) as stream:
        assert stream.read() == b"\x00\x01binary"


def test_missing_file_raises(tmp_path):
    """Opening a missing file raises with the native diagnostic."""
    with pytest.raises(CryptographicOperationError, match="BIO_new_file"):
        ByteStream.from_file(tmp_path / "missing.pem")


def test_fileobj_stream_does_not_close_the_file(tmp_path):
    """A stream over an open file object leaves the file open."""
    path = tmp_path / "shared.bin"
    with open(path, "wb") as fileobj:
        fileobj.write(b"python:")
        stream = ByteStream.from_fileobj(fileobj)
        stream.write(b"native")
        stream.close()
        assert not fileobj.closed

    assert path.read_bytes() == b"python:native"


def test_existing_native_stream():
    """Streams can adopt or view an existing BIO pointer."""
    lib = get_library()
    owned = ByteStream.take_ownership(lib.BIO_new(lib.BIO_s_mem()))
    owned.write(b"adopted")

    view = ByteStream.view(owned.raw(), parent=owned)
    assert view == owned
    assert view.read() == b"adopted"

    with pytest.raises(InvalidArgument):
        ByteStream.take_ownership(None)


def test_copies_share_the_stream():
    """Copies read from the same underlying BIO."""
    stream = ByteStream.memory(b"shared")
    other = stream.copy()

    assert other == stream
    assert other.read(3) == b"sha"
    assert stream.read() == b"red"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
