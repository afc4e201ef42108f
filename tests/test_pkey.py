"""Tests for asymmetric and RSA keys."""

import copy

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from open_crypto_handles import (
    AsymmetricKey,
    ByteStream,
    CryptographicOperationError,
    InvalidArgument,
    RSAKey,
    static_passphrase,
)
from open_crypto_handles import random


@pytest.mark.parametrize("modulus_bits,exponent", [(512, 3), (768, 17), (1024, 65537)])
def test_generate_matches_requested_size(modulus_bits, exponent):
    """Generated keys have the requested modulus size and exponent."""
    key = AsymmetricKey.generate(modulus_bits, exponent)

    assert key.raw()
    assert key.bits == modulus_bits
    assert key.is_rsa
    assert key.to_cryptography_public_key().public_numbers().e == exponent


def test_generate_reports_progress():
    """The progress callback runs synchronously with the callback argument."""
    calls = []

    def progress(p, n, arg):
        calls.append((p, n, arg))

    key = RSAKey.generate(1024, 65537, progress, "context")

    assert key.bits == 1024
    assert key.size == 128
    assert calls
    assert {arg for _, _, arg in calls} == {"context"}
    assert 3 in {p for p, _, _ in calls}


def test_progress_callback_exception_aborts_generation():
    """An exception from the callback stops generation and propagates."""

    def progress(p, n, arg):
        raise RuntimeError("stop")

    with pytest.raises(RuntimeError, match="stop") as exc_info:
        AsymmetricKey.generate(1024, 65537, progress)

    assert isinstance(exc_info.value.__cause__, CryptographicOperationError)


def test_blinding_after_seeding():
    """Blinding can be toggled on a generated key once the generator is seeded."""
    random.poll()
    assert random.status()

    key = AsymmetricKey.generate(1024, 65537)
    key.enable_blinding()
    key.disable_blinding()

    rsa_key = RSAKey.generate(1024)
    rsa_key.enable_blinding()
    rsa_key.disable_blinding()


def test_blinding_on_loaded_key():
    """Blinding calls on a PEM-loaded key succeed and leave the key usable."""
    random.poll()
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=1024)
    key = AsymmetricKey.from_cryptography(private_key)

    key.enable_blinding()
    key.disable_blinding()

    assert key.to_cryptography_private_key().private_numbers() == private_key.private_numbers()
    assert "legacy copy" in AsymmetricKey.enable_blinding.__doc__


def test_identity_semantics():
    """Independent keys differ; copies are equal."""
    first = AsymmetricKey.generate(512, 65537)
    second = AsymmetricKey.generate(512, 65537)

    assert first != second
    assert first == first.copy()
    assert first == copy.copy(first)


def test_empty_key():
    """The default constructor allocates an empty structure."""
    assert AsymmetricKey().raw()
    assert RSAKey().raw()


def test_take_ownership_rejects_null():
    """Adopting a null pointer is a caller error."""
    with pytest.raises(InvalidArgument):
        AsymmetricKey.take_ownership(None)
    with pytest.raises(InvalidArgument):
        RSAKey.take_ownership(0)


def test_rsa_key_is_shared_with_asymmetric_key():
    """A key built from an RSA key references the same RSA structure."""
    rsa_key = RSAKey.generate(512)
    key = AsymmetricKey.from_rsa_key(rsa_key)

    with key.get_rsa_key() as extracted:
        assert extracted == rsa_key
    assert key.bits == 512


def test_get_rsa_key_of_other_key_type_fails():
    """Only RSA keys expose an RSA structure."""
    key = AsymmetricKey.from_cryptography(ec.generate_private_key(ec.SECP256R1()))

    assert not key.is_rsa
    with pytest.raises(CryptographicOperationError):
        key.get_rsa_key()


def test_public_key_pem_round_trip():
    """Public keys survive a PEM round trip through a memory stream."""
    key = AsymmetricKey.generate(1024)

    with ByteStream() as stream:
        key.write_public_key(stream)
        loaded = AsymmetricKey.from_public_key(stream)

    assert loaded != key
    assert loaded.bits == 1024
    assert (
        loaded.to_cryptography_public_key().public_numbers()
        == key.to_cryptography_public_key().public_numbers()
    )


def test_encrypted_private_key_round_trip():
    """Encrypted private keys need the passphrase to load."""
    key = AsymmetricKey.generate(1024)
    with ByteStream() as stream:
        key.write_private_key(stream, static_passphrase("s3cret"))
        pem = stream.getvalue()

    assert b"ENCRYPTED" in pem

    with pytest.raises(CryptographicOperationError):
        AsymmetricKey.from_private_key(ByteStream.from_bytes(pem))

    loaded = AsymmetricKey.from_private_key(
        ByteStream.from_bytes(pem), static_passphrase(b"s3cret")
    )
    assert (
        loaded.to_cryptography_private_key().private_numbers()
        == key.to_cryptography_private_key().private_numbers()
    )


def test_cryptography_interop():
    """Keys convert from and to cryptography objects."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=1024)

    native = AsymmetricKey.from_cryptography(private_key)
    assert native.bits == 1024
    assert native.to_cryptography_private_key().private_numbers() == private_key.private_numbers()

    public_only = AsymmetricKey.from_cryptography(private_key.public_key())
    assert public_only.to_cryptography_public_key().public_numbers() == (
        private_key.public_key().public_numbers()
    )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
