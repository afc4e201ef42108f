"""X509 distinguished names."""

import ctypes
from typing import Iterator

from ..bio.stream import ByteStream
from ..core.handle import NativeObject
from ..core.library import MBSTRING_UTF8, NID_UNDEF, XN_FLAG_RFC2253, get_library

_OID_BUFFER_SIZE = 128


class DistinguishedName(NativeObject):
    """A X509 name: an ordered sequence of attribute entries.

    A name is either owning (built with the default constructor or
    :meth:`duplicate`) or a view into a structure owned by a certificate.
    Views returned by :class:`Certificate` keep that certificate alive.

    ``==`` compares the underlying ``X509_NAME*`` pointers; use
    :meth:`equivalent` to compare contents.
    """

    _kind = "X509_NAME"
    _new_function = "X509_NAME_new"
    _free_function = "X509_NAME_free"

    def duplicate(self) -> "DistinguishedName":
        """Return an owning deep copy of this name."""
        return self._adopt(get_library().X509_NAME_dup(self.raw()))

    def add_entry(self, field: str, value: str) -> None:
        """Append an entry, e.g. ``add_entry("CN", "example.com")``.

        Raises:
            CryptographicOperationError: If the field is unknown or the value
                is invalid for it
        """
        get_library().X509_NAME_add_entry_by_txt(
            self.raw(),
            field.encode("ascii"),
            MBSTRING_UTF8,
            value.encode("utf-8"),
            -1,
            -1,
            0,
        )

    def entries(self) -> list[tuple[str, str]]:
        """Return the (field, value) pairs, in order.

        Fields use their short name ("CN", "O") or, for attributes unknown to
        libcrypto, their dotted OID.
        """
        lib = get_library()
        result = []
        for index in range(len(self)):
            entry = lib.X509_NAME_get_entry(self.raw(), index)
            field = object_name(lib.X509_NAME_ENTRY_get_object(entry))
            result.append((field, _utf8(lib.X509_NAME_ENTRY_get_data(entry))))
        return result

    def get(self, field: str) -> list[str]:
        """Return every value of ``field``."""
        return [value for name, value in self.entries() if name == field]

    def equivalent(self, other: "DistinguishedName") -> bool:
        """Whether both names have the same content (``X509_NAME_cmp``)."""
        return get_library().X509_NAME_cmp(self.raw(), other.raw()) == 0

    def one_line(self) -> str:
        """Render the name following RFC 2253, e.g. ``CN=example.com,O=Example``."""
        with ByteStream() as stream:
            get_library().X509_NAME_print_ex(stream.raw(), self.raw(), 0, XN_FLAG_RFC2253)
            return stream.getvalue().decode("utf-8")

    def __len__(self) -> int:
        return get_library().X509_NAME_entry_count(self.raw())

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self.entries())

    def __str__(self) -> str:
        return self.one_line()


def object_name(obj: int) -> str:
    """Short name of an ASN1_OBJECT, or its dotted OID when libcrypto has none."""
    lib = get_library()
    nid = lib.OBJ_obj2nid(obj)
    if nid != NID_UNDEF:
        short_name = lib.OBJ_nid2sn(nid)
        if short_name:
            return short_name.decode("ascii")

    buf = ctypes.create_string_buffer(_OID_BUFFER_SIZE)
    lib.OBJ_obj2txt(buf, len(buf), obj, 1)
    return buf.value.decode("ascii")


def _utf8(asn1_string: int) -> str:
    lib = get_library()
    out = ctypes.c_void_p()
    length = lib.ASN1_STRING_to_UTF8(ctypes.byref(out), asn1_string)
    if not out.value:
        return ""
    try:
        return ctypes.string_at(out.value, length).decode("utf-8")
    finally:
        lib.CRYPTO_free(out.value, None, 0)
