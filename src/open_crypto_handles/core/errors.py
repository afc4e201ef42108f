"""Exception hierarchy for open-crypto-handles."""


class OpenCryptoHandlesError(Exception):
    """Base exception for all open-crypto-handles errors."""

    pass


# Native errors
class AllocationError(OpenCryptoHandlesError):
    """A native allocation returned a failure sentinel."""

    pass


class CryptographicOperationError(OpenCryptoHandlesError):
    """A native cryptographic operation (parse, generate, write, blind) failed."""

    pass


# Caller errors
class InvalidArgument(OpenCryptoHandlesError, ValueError):
    """A null pointer was supplied where ownership transfer was requested."""

    pass


class HandleReleasedError(InvalidArgument):
    """A handle was used after this reference was released."""

    pass


# Configuration errors
class ConfigurationError(OpenCryptoHandlesError):
    """Base exception for configuration errors."""

    pass


class LibraryLoadError(ConfigurationError):
    """The native libcrypto library could not be loaded."""

    pass
