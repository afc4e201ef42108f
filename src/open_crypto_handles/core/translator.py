"""Translation of libcrypto failure sentinels into exceptions.

libcrypto reports failure through a sentinel return value (null pointer,
zero, or a negative integer depending on the function) and pushes the
details onto an error queue local to the calling thread. The queue must be
read right after the failing call, before any other native call on the
same thread. The checks below are installed as ctypes ``errcheck`` hooks
by :mod:`open_crypto_handles.core.library`, so they run inside the call
boundary of the foreign function itself.
"""

import ctypes
from typing import Any, Callable, Optional, TypeVar

from .errors import CryptographicOperationError, OpenCryptoHandlesError
from .logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

ErrorType = type[OpenCryptoHandlesError]

_ERROR_STRING_SIZE = 256


def error_queue_messages() -> list[str]:
    """Drain the current thread's libcrypto error queue.

    Returns:
        Queued messages, oldest first. The queue is empty afterwards.
    """
    from .library import get_library

    lib = get_library()
    messages: list[str] = []
    while True:
        code = lib.ERR_get_error()
        if code == 0:
            break
        buf = ctypes.create_string_buffer(_ERROR_STRING_SIZE)
        lib.ERR_error_string_n(code, buf, len(buf))
        messages.append(buf.value.decode("utf-8", "replace") or f"0x{code:x}")
    return messages


def drain_error_queue(operation: str) -> str:
    """Drain the error queue into a message suitable for display.

    Args:
        operation: Name of the failing operation

    Returns:
        "<operation> failed: <cause>; <cause>..." or a fixed text when the
        library queued nothing
    """
    messages = error_queue_messages()
    if not messages:
        return f"{operation} failed without libcrypto error information"
    return f"{operation} failed: {'; '.join(messages)}"


def clear_error_queue() -> None:
    """Discard every error queued on the current thread."""
    from .library import get_library

    get_library().ERR_clear_error()


def _raise(operation: str, error: ErrorType) -> None:
    message = drain_error_queue(operation)
    logger.debug("native.call_failed", operation=operation, error=message)
    raise error(message)


def check_pointer(
    result: Optional[T], operation: str, error: ErrorType = CryptographicOperationError
) -> T:
    """Raise if a pointer-returning call returned null.

    Args:
        result: Return value of the native call
        operation: Name used in the error message
        error: Exception class to raise

    Returns:
        result, unchanged
    """
    if not result:
        _raise(operation, error)
    return result


def check_success(
    result: int, operation: str, error: ErrorType = CryptographicOperationError
) -> int:
    """Raise if an int-returning call returned zero or a negative value."""
    if result <= 0:
        _raise(operation, error)
    return result


def check_non_negative(
    result: int, operation: str, error: ErrorType = CryptographicOperationError
) -> int:
    """Raise if an int-returning call returned a negative value."""
    if result < 0:
        _raise(operation, error)
    return result


Check = Callable[[Any, str, ErrorType], Any]


def errcheck(check: Check, error: ErrorType = CryptographicOperationError):
    """Build a ctypes ``errcheck`` hook applying ``check`` to each call.

    Args:
        check: One of check_pointer, check_success or check_non_negative
        error: Exception class raised on failure

    Returns:
        A function suitable for ``foreign_function.errcheck``
    """

    def hook(result, func, _args):
        return check(result, func.__name__, error)

    return hook
