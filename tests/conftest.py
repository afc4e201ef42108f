"""Shared fixtures: test certificates built with cryptography's X.509 builder."""

import base64
import hashlib
import os
import textwrap
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, padding, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.x509.oid import NameOID

PASSPHRASE = b"correct horse battery staple"


def build_name(common_name: str, organization: str) -> x509.Name:
    return x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, "FR"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ]
    )


def encrypt_pem(der: bytes, label: str, passphrase: bytes) -> bytes:
    """Encode ``der`` as a legacy encrypted PEM block (AES-128-CBC, RFC 1421 headers)."""
    iv = os.urandom(16)
    # EVP_BytesToKey(MD5, salt=iv[:8], count=1) for a 16-byte key
    key = hashlib.md5(passphrase + iv[:8]).digest()

    padder = padding.PKCS7(128).padder()
    plaintext = padder.update(der) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(plaintext) + encryptor.finalize()

    body = "\n".join(textwrap.wrap(base64.b64encode(ciphertext).decode("ascii"), 64))
    return (
        f"-----BEGIN {label}-----\n"
        "Proc-Type: 4,ENCRYPTED\n"
        f"DEK-Info: AES-128-CBC,{iv.hex().upper()}\n"
        "\n"
        f"{body}\n"
        f"-----END {label}-----\n"
    ).encode("ascii")


@pytest.fixture(scope="session")
def ca_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def leaf_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def leaf_certificate(ca_private_key, leaf_private_key):
    """A certificate for leaf.example.com issued by Example CA."""
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(build_name("leaf.example.com", "Example Leaf"))
        .issuer_name(build_name("Example CA", "Example Authority"))
        .public_key(leaf_private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .sign(ca_private_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def certificate_pem(leaf_certificate) -> bytes:
    return leaf_certificate.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope="session")
def certificate_der(leaf_certificate) -> bytes:
    return leaf_certificate.public_bytes(serialization.Encoding.DER)


@pytest.fixture(scope="session")
def encrypted_certificate_pem(certificate_der) -> bytes:
    return encrypt_pem(certificate_der, "CERTIFICATE", PASSPHRASE)


@pytest.fixture(scope="session")
def passphrase() -> bytes:
    return PASSPHRASE


@pytest.fixture
def destroyed():
    """A list recording every pointer passed to ``destroyed.destructor``."""

    class Recorder(list):
        def destructor(self, pointer):
            self.append(pointer)

    return Recorder()
