"""Open Crypto Handles - shared-ownership wrappers around libcrypto handles."""

from .bio import ByteStream
from .core import (
    AllocationError,
    ConfigurationError,
    CryptographicOperationError,
    HandleReleasedError,
    InvalidArgument,
    LibraryConfig,
    LibraryLoadError,
    NativeHandle,
    OpenCryptoHandlesError,
    configure,
    static_passphrase,
)
from .pkey import AsymmetricKey, RSAKey
from .x509 import Certificate, DistinguishedName

__version__ = "0.1.0"

__all__ = [
    # Entities
    "AsymmetricKey",
    "ByteStream",
    "Certificate",
    "DistinguishedName",
    "NativeHandle",
    "RSAKey",
    # Configuration
    "LibraryConfig",
    "configure",
    "static_passphrase",
    # Errors
    "OpenCryptoHandlesError",
    "AllocationError",
    "ConfigurationError",
    "CryptographicOperationError",
    "HandleReleasedError",
    "InvalidArgument",
    "LibraryLoadError",
]
