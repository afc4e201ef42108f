"""Asymmetric keys (EVP_PKEY)."""

from typing import Any, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import (
    PrivateKeyTypes,
    PublicKeyTypes,
)

from ..bio.stream import ByteStream
from ..core.callbacks import PassphraseCallback, PassphraseProvider, ProgressListener
from ..core.errors import CryptographicOperationError
from ..core.handle import NativeObject
from ..core.library import EVP_PKEY_RSA, get_library
from .rsa_key import RSAKey

DEFAULT_CIPHER = "aes-256-cbc"


class AsymmetricKey(NativeObject):
    """An asymmetric key, public only or with its private part.

    AsymmetricKey offers no way to tell a public key from a private one:
    callers must only use private key operations on keys that carry private
    material. Copies share the same underlying ``EVP_PKEY*`` pointer, and
    ``==`` compares that pointer, not the key material.
    """

    _kind = "EVP_PKEY"
    _new_function = "EVP_PKEY_new"
    _free_function = "EVP_PKEY_free"

    @classmethod
    def generate(
        cls,
        modulus_bits: int,
        public_exponent: int = 65537,
        callback: Optional[ProgressListener] = None,
        callback_arg: Any = None,
    ) -> "AsymmetricKey":
        """Generate a new RSA key pair.

        See :meth:`RSAKey.generate` for the arguments and the progress
        callback convention.
        """
        with RSAKey.generate(modulus_bits, public_exponent, callback, callback_arg) as rsa:
            return cls.from_rsa_key(rsa)

    @classmethod
    def from_rsa_key(cls, rsa_key: RSAKey) -> "AsymmetricKey":
        """Create a key referencing ``rsa_key``; both share the RSA structure."""
        key = cls()
        get_library().EVP_PKEY_set1_RSA(key.raw(), rsa_key.raw())
        return key

    @classmethod
    def from_public_key(
        cls,
        stream: ByteStream,
        callback: Optional[PassphraseProvider] = None,
        callback_arg: Any = None,
    ) -> "AsymmetricKey":
        """Load a PEM ``PUBLIC KEY`` from ``stream``."""
        return cls._read(
            get_library().PEM_read_bio_PUBKEY, stream, callback, callback_arg
        )

    @classmethod
    def from_private_key(
        cls,
        stream: ByteStream,
        callback: Optional[PassphraseProvider] = None,
        callback_arg: Any = None,
    ) -> "AsymmetricKey":
        """Load a PEM private key from ``stream``.

        Args:
            stream: Stream positioned on the PEM block
            callback: ``callback(max_length, encrypting, callback_arg)``
                returning the passphrase of an encrypted key
            callback_arg: Value passed back to callback
        """
        return cls._read(
            get_library().PEM_read_bio_PrivateKey, stream, callback, callback_arg
        )

    @classmethod
    def _read(cls, reader, stream, callback, callback_arg) -> "AsymmetricKey":
        passphrase = PassphraseCallback(callback, callback_arg)
        try:
            pointer = reader(stream.raw(), None, passphrase.function, None)
        except CryptographicOperationError as exc:
            passphrase.reraise(exc)
            raise
        return cls._adopt(pointer)

    def write_public_key(self, stream: ByteStream) -> None:
        """Write the public part as a PEM ``PUBLIC KEY``."""
        get_library().PEM_write_bio_PUBKEY(stream.raw(), self.raw())

    def write_private_key(
        self,
        stream: ByteStream,
        callback: Optional[PassphraseProvider] = None,
        callback_arg: Any = None,
        cipher: str = DEFAULT_CIPHER,
    ) -> None:
        """Write the private key as PEM, encrypted when a callback is given.

        Args:
            stream: Destination stream
            callback: Passphrase provider; None writes the key unencrypted
            callback_arg: Value passed back to callback
            cipher: libcrypto cipher name used for encryption
        """
        lib = get_library()
        passphrase = PassphraseCallback(callback, callback_arg)
        encryption = lib.EVP_get_cipherbyname(cipher.encode("ascii")) if callback else None
        try:
            lib.PEM_write_bio_PrivateKey(
                stream.raw(), self.raw(), encryption, None, 0, passphrase.function, None
            )
        except CryptographicOperationError as exc:
            passphrase.reraise(exc)
            raise

    def get_rsa_key(self) -> RSAKey:
        """Return the RSA structure of this key as an owning reference.

        Raises:
            CryptographicOperationError: If this is not an RSA key
        """
        return RSAKey._adopt(get_library().EVP_PKEY_get1_RSA(self.raw()))

    def enable_blinding(self, context: Optional[int] = None) -> None:
        """Enable RSA blinding; see :meth:`RSAKey.enable_blinding`.

        On OpenSSL 3, keys loaded from PEM or taken from a certificate are
        held by a provider, and blinding only reaches a cached legacy copy of
        the RSA structure: operations on this key are not affected. Keys built
        by :meth:`generate` or :meth:`from_rsa_key` are not subject to this.
        """
        with self.get_rsa_key() as rsa:
            rsa.enable_blinding(context)

    def disable_blinding(self) -> None:
        """Disable RSA blinding; see :meth:`RSAKey.disable_blinding`.

        Subject to the same OpenSSL 3 limitation as :meth:`enable_blinding`.
        """
        with self.get_rsa_key() as rsa:
            rsa.disable_blinding()

    @property
    def bits(self) -> int:
        """Size of the key in bits."""
        return get_library().EVP_PKEY_get_bits(self.raw())

    @property
    def key_type(self) -> int:
        """libcrypto base type identifier (``EVP_PKEY_RSA`` is 6)."""
        return get_library().EVP_PKEY_get_base_id(self.raw())

    @property
    def is_rsa(self) -> bool:
        return self.key_type == EVP_PKEY_RSA

    def to_cryptography_public_key(self) -> PublicKeyTypes:
        """Return the public part as a ``cryptography`` key object."""
        with ByteStream() as stream:
            self.write_public_key(stream)
            return serialization.load_pem_public_key(stream.getvalue())

    def to_cryptography_private_key(self) -> PrivateKeyTypes:
        """Return the private key as a ``cryptography`` key object."""
        with ByteStream() as stream:
            self.write_private_key(stream)
            return serialization.load_pem_private_key(stream.getvalue(), password=None)

    @classmethod
    def from_cryptography(cls, key: PrivateKeyTypes | PublicKeyTypes) -> "AsymmetricKey":
        """Build a native key from a ``cryptography`` private or public key."""
        if hasattr(key, "private_bytes"):
            pem = key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
            with ByteStream.from_bytes(pem) as stream:
                return cls.from_private_key(stream)

        pem = key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        with ByteStream.from_bytes(pem) as stream:
            return cls.from_public_key(stream)
