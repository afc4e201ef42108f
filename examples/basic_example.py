#!/usr/bin/env python3
"""
Basic example demonstrating the open-crypto-handles workflow:
1. Generate an RSA key and build a certificate around it
2. Save it as a trusted certificate with an alias
3. Load it back and inspect names and key
"""

from open_crypto_handles import (
    AsymmetricKey,
    ByteStream,
    Certificate,
    DistinguishedName,
    static_passphrase,
)
from open_crypto_handles import random
from open_crypto_handles.core import version


def main():
    print("=== Open Crypto Handles - Basic Example ===\n")
    print(f"Using {version()}\n")

    # ============================================================================
    # STEP 1: Generate a key
    # ============================================================================
    print("1. Generating a 2048-bit RSA key...")
    random.poll()
    primes = []
    key = AsymmetricKey.generate(
        2048, 65537, lambda p, n, arg: arg.append(n) if p == 3 else None, primes
    )
    key.enable_blinding()
    print(f"   ✓ Key: {key.bits} bits ({len(primes)} primes found)\n")

    # ============================================================================
    # STEP 2: Build a certificate
    # ============================================================================
    print("2. Building a certificate...")
    name = DistinguishedName()
    name.add_entry("C", "FR")
    name.add_entry("O", "Example")
    name.add_entry("CN", "example.com")

    certificate = Certificate()
    certificate.set_subject(name)
    certificate.set_issuer(name)
    certificate.set_public_key(key)
    certificate.alias = "example"
    certificate.add_trust_object("serverAuth")
    print(f"   ✓ Subject: {certificate.subject().one_line()}\n")

    # ============================================================================
    # STEP 3: Serialize
    # ============================================================================
    print("3. Serializing...")
    with ByteStream() as stream:
        certificate.serialize_trusted(stream)
        trusted_pem = stream.getvalue()
    with ByteStream() as stream:
        key.write_private_key(stream, static_passphrase("example passphrase"))
        key_pem = stream.getvalue()
    print(f"   ✓ Trusted certificate: {len(trusted_pem)} bytes")
    print(f"   ✓ Encrypted private key: {len(key_pem)} bytes\n")

    # ============================================================================
    # STEP 4: Load back
    # ============================================================================
    print("4. Loading back...")
    loaded = Certificate.parse_trusted(ByteStream.from_bytes(trusted_pem))
    loaded_key = AsymmetricKey.from_private_key(
        ByteStream.from_bytes(key_pem), static_passphrase("example passphrase")
    )
    print(f"   ✓ Alias: {loaded.alias}")
    print(f"   ✓ Trusted for: {', '.join(loaded.trust_objects())}")
    print(f"   ✓ Same subject: {loaded.subject().equivalent(certificate.subject())}")
    print(f"   ✓ Same structure: {loaded == certificate}")
    print(f"   ✓ Key loaded: {loaded_key.bits} bits")

    print("\n=== Example Complete ===")


if __name__ == "__main__":
    main()
