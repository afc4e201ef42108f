"""RSA keys."""

from typing import Any, Optional

from ..core.callbacks import ProgressCallback, ProgressListener
from ..core.errors import CryptographicOperationError
from ..core.handle import NativeHandle, NativeObject
from ..core.library import get_library


class RSAKey(NativeObject):
    """An RSA key, with or without its private part.

    RSAKey offers no way to tell a public key from a private one: callers
    must only use private key operations on keys that carry private
    material. Copies share the same underlying ``RSA*`` pointer.
    """

    _kind = "RSA"
    _new_function = "RSA_new"
    _free_function = "RSA_free"

    @classmethod
    def generate(
        cls,
        modulus_bits: int,
        public_exponent: int = 65537,
        callback: Optional[ProgressListener] = None,
        callback_arg: Any = None,
    ) -> "RSAKey":
        """Generate a new RSA key.

        Generation blocks the calling thread until it completes. Moduli below
        1024 bits should be considered insecure; no minimum is enforced here.

        Args:
            modulus_bits: Size of the modulus, in bits
            public_exponent: Odd public exponent, typically 3, 17 or 65537
            callback: Optional ``callback(p, n, callback_arg)`` receiving the
                generation progress codes, called on the calling thread
            callback_arg: Value passed back to callback

        Returns:
            The generated key

        Raises:
            AllocationError: If a structure cannot be allocated
            CryptographicOperationError: If generation fails
            Exception: Whatever ``callback`` raised, which aborts generation
        """
        key = cls()
        _generate_into(key.raw(), modulus_bits, public_exponent, callback, callback_arg)
        return key

    def enable_blinding(self, context: Optional[int] = None) -> None:
        """Enable blinding of private key operations against timing attacks.

        The process random generator must be seeded beforehand; this is not
        checked.

        Args:
            context: A ``BN_CTX*`` to use, or None to let libcrypto create one
        """
        get_library().RSA_blinding_on(self.raw(), context)

    def disable_blinding(self) -> None:
        """Disable blinding enabled by :meth:`enable_blinding`."""
        get_library().RSA_blinding_off(self.raw())

    @property
    def bits(self) -> int:
        """Size of the modulus in bits."""
        return get_library().RSA_bits(self.raw())

    @property
    def size(self) -> int:
        """Size of the modulus in bytes."""
        return get_library().RSA_size(self.raw())


def _generate_into(
    rsa: int,
    modulus_bits: int,
    public_exponent: int,
    callback: Optional[ProgressListener],
    callback_arg: Any,
) -> None:
    lib = get_library()
    with NativeHandle.owning(lib.BN_new(), lib.BN_free, "BIGNUM") as exponent:
        lib.BN_set_word(exponent.raw(), public_exponent)

        if callback is None:
            lib.RSA_generate_key_ex(rsa, modulus_bits, exponent.raw(), None)
            return

        progress = ProgressCallback(callback, callback_arg)
        with NativeHandle.owning(lib.BN_GENCB_new(), lib.BN_GENCB_free, "BN_GENCB") as gencb:
            lib.BN_GENCB_set(gencb.raw(), progress.function, None)
            try:
                lib.RSA_generate_key_ex(rsa, modulus_bits, exponent.raw(), gencb.raw())
            except CryptographicOperationError as exc:
                progress.reraise(exc)
                raise
