"""Core functionality for open-crypto-handles."""

from .callbacks import PassphraseCallback, ProgressCallback, static_passphrase
from .config import LibraryConfig, configure, get_config
from .errors import (
    OpenCryptoHandlesError,
    AllocationError,
    CryptographicOperationError,
    InvalidArgument,
    HandleReleasedError,
    ConfigurationError,
    LibraryLoadError,
)
from .handle import NativeHandle, NativeObject, address_of
from .library import get_library, reset_library, version
from .translator import (
    check_non_negative,
    check_pointer,
    check_success,
    clear_error_queue,
    drain_error_queue,
    error_queue_messages,
)

__all__ = [
    # Callbacks
    "PassphraseCallback",
    "ProgressCallback",
    "static_passphrase",
    # Config
    "LibraryConfig",
    "configure",
    "get_config",
    # Errors
    "OpenCryptoHandlesError",
    "AllocationError",
    "CryptographicOperationError",
    "InvalidArgument",
    "HandleReleasedError",
    "ConfigurationError",
    "LibraryLoadError",
    # Handles
    "NativeHandle",
    "NativeObject",
    "address_of",
    # Library
    "get_library",
    "reset_library",
    "version",
    # Error translation
    "check_non_negative",
    "check_pointer",
    "check_success",
    "clear_error_queue",
    "drain_error_queue",
    "error_queue_messages",
]
