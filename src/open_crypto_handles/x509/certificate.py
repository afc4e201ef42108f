"""X509 certificates."""

import ctypes
from typing import Any, Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from ..bio.stream import ByteStream
from ..core.callbacks import PassphraseCallback, PassphraseProvider
from ..core.errors import CryptographicOperationError
from ..core.handle import NativeHandle, NativeObject
from ..core.library import get_library
from ..pkey.pkey import AsymmetricKey
from .name import DistinguishedName, object_name


class Certificate(NativeObject):
    """A X509 certificate.

    A Certificate instance has the same semantic as a ``X509*`` pointer:
    copies share the same underlying structure, and two certificates parsed
    independently from identical bytes compare unequal.
    """

    _kind = "X509"
    _new_function = "X509_new"
    _free_function = "X509_free"

    @classmethod
    def parse(
        cls,
        stream: ByteStream,
        callback: Optional[PassphraseProvider] = None,
        callback_arg: Any = None,
    ) -> "Certificate":
        """Load a PEM certificate from a stream.

        A trusted certificate is accepted too, but its trust information is
        ignored.

        Args:
            stream: The stream
            callback: ``callback(max_length, encrypting, callback_arg)`` called
                when the PEM block is encrypted. Returning None or an empty
                passphrase fails the parse. Without a callback, encrypted
                blocks always fail.
            callback_arg: Value passed back to callback

        Returns:
            The certificate

        Raises:
            CryptographicOperationError: If no certificate can be decoded
        """
        certificate = cls._read(
            get_library().PEM_read_bio_X509_AUX, stream, callback, callback_arg
        )
        certificate._strip_trust()
        return certificate

    @classmethod
    def parse_trusted(
        cls,
        stream: ByteStream,
        callback: Optional[PassphraseProvider] = None,
        callback_arg: Any = None,
    ) -> "Certificate":
        """Load a PEM certificate and its trust information from a stream.

        See :meth:`parse` for the arguments.
        """
        return cls._read(
            get_library().PEM_read_bio_X509_AUX, stream, callback, callback_arg
        )

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        callback: Optional[PassphraseProvider] = None,
        callback_arg: Any = None,
        trusted: bool = False,
    ) -> "Certificate":
        """Load a PEM certificate from a buffer."""
        with ByteStream.from_bytes(data) as stream:
            if trusted:
                return cls.parse_trusted(stream, callback, callback_arg)
            return cls.parse(stream, callback, callback_arg)

    @classmethod
    def parse_der(cls, stream: ByteStream) -> "Certificate":
        """Load a DER certificate from a stream."""
        return cls._adopt(get_library().d2i_X509_bio(stream.raw(), None))

    @classmethod
    def _read(cls, reader, stream, callback, callback_arg) -> "Certificate":
        passphrase = PassphraseCallback(callback, callback_arg)
        try:
            pointer = reader(stream.raw(), None, passphrase.function, None)
        except CryptographicOperationError as exc:
            passphrase.reraise(exc)
            raise
        return cls._adopt(pointer)

    @classmethod
    def from_owned_pointer(cls, pointer: Any) -> "Certificate":
        """Take ownership of an existing ``X509*`` pointer.

        Raises:
            InvalidArgument: If pointer is null
        """
        return cls.take_ownership(pointer)

    def serialize(self, stream: ByteStream) -> None:
        """Write the certificate as PEM, without trust information."""
        get_library().PEM_write_bio_X509(stream.raw(), self.raw())

    def serialize_trusted(self, stream: ByteStream) -> None:
        """Write the certificate as a PEM ``TRUSTED CERTIFICATE``."""
        get_library().PEM_write_bio_X509_AUX(stream.raw(), self.raw())

    def serialize_der(self, stream: ByteStream) -> None:
        """Write the certificate as DER."""
        get_library().i2d_X509_bio(stream.raw(), self.raw())

    def to_bytes(self, trusted: bool = False) -> bytes:
        """Return the PEM encoding of the certificate."""
        with ByteStream() as stream:
            if trusted:
                self.serialize_trusted(stream)
            else:
                self.serialize(stream)
            return stream.getvalue()

    def public_key(self) -> AsymmetricKey:
        """Get the public key.

        The returned key holds its own reference and may outlive the
        certificate.
        """
        return AsymmetricKey._adopt(get_library().X509_get_pubkey(self.raw()))

    def set_public_key(self, key: AsymmetricKey) -> None:
        get_library().X509_set_pubkey(self.raw(), key.raw())

    def subject(self) -> DistinguishedName:
        """Get the subject name, a view that keeps this certificate alive."""
        return DistinguishedName.view(get_library().X509_get_subject_name(self.raw()), self)

    def issuer(self) -> DistinguishedName:
        """Get the issuer name, a view that keeps this certificate alive."""
        return DistinguishedName.view(get_library().X509_get_issuer_name(self.raw()), self)

    def set_subject(self, name: DistinguishedName) -> None:
        """Replace the subject name with a copy of ``name``.

        Views returned earlier by :meth:`subject` must not be used afterwards.
        """
        get_library().X509_set_subject_name(self.raw(), name.raw())

    def set_issuer(self, name: DistinguishedName) -> None:
        """Replace the issuer name with a copy of ``name``.

        Views returned earlier by :meth:`issuer` must not be used afterwards.
        """
        get_library().X509_set_issuer_name(self.raw(), name.raw())

    # Trust information, written by serialize_trusted only

    @property
    def alias(self) -> Optional[str]:
        """Friendly name stored with the trust information."""
        length = ctypes.c_int()
        data = get_library().X509_alias_get0(self.raw(), ctypes.byref(length))
        if not data:
            return None
        return ctypes.string_at(data, length.value).decode("utf-8")

    @alias.setter
    def alias(self, value: Optional[str]) -> None:
        if value is None:
            get_library().X509_alias_set1(self.raw(), None, -1)
            return
        encoded = value.encode("utf-8")
        get_library().X509_alias_set1(self.raw(), encoded, len(encoded))

    def add_trust_object(self, purpose: str) -> None:
        """Mark the certificate as trusted for ``purpose``.

        Args:
            purpose: Object name or dotted OID, e.g. "serverAuth" or
                "1.3.6.1.5.5.7.3.1"
        """
        lib = get_library()
        obj = lib.OBJ_txt2obj(purpose.encode("ascii"), 0)
        with NativeHandle.owning(obj, lib.ASN1_OBJECT_free, "ASN1_OBJECT") as handle:
            lib.X509_add1_trust_object(self.raw(), handle.raw())

    def trust_objects(self) -> list[str]:
        """Names of the purposes the certificate is trusted for."""
        lib = get_library()
        stack = lib.X509_get0_trust_objects(self.raw())
        if not stack:
            return []
        return [
            object_name(lib.OPENSSL_sk_value(stack, index))
            for index in range(lib.OPENSSL_sk_num(stack))
        ]

    def clear_trust(self) -> None:
        """Remove every trusted purpose."""
        get_library().X509_trust_clear(self.raw())

    def _strip_trust(self) -> None:
        lib = get_library()
        lib.X509_trust_clear(self.raw())
        lib.X509_reject_clear(self.raw())
        lib.X509_alias_set1(self.raw(), None, -1)
        lib.X509_keyid_set1(self.raw(), None, -1)

    def to_cryptography(self) -> x509.Certificate:
        """Return the certificate as a ``cryptography`` object."""
        return x509.load_pem_x509_certificate(self.to_bytes())

    @classmethod
    def from_cryptography(cls, certificate: x509.Certificate) -> "Certificate":
        """Build a native certificate from a ``cryptography`` object."""
        return cls.from_bytes(certificate.public_bytes(serialization.Encoding.PEM))
