"""Adapters from Python callables to libcrypto callback conventions.

libcrypto invokes these synchronously, on the calling thread, from inside
the native call that received them. An exception raised by the Python
callable cannot cross the native frames: it is recorded, the native routine
is told to abort, and the exception is raised again once the call returns.
"""

import ctypes
from typing import Any, Callable, Optional, Union

from .library import BN_GENCB_CALLBACK, PEM_PASSWORD_CALLBACK

Passphrase = Union[bytes, str, None]

# callback(max_length, encrypting, callback_arg) -> passphrase
PassphraseProvider = Callable[[int, bool, Any], Passphrase]

# callback(p, n, callback_arg)
ProgressListener = Callable[[int, int, Any], Any]


class _Trampoline:
    function: Any

    def __init__(self):
        self.error: Optional[Exception] = None

    def reraise(self, cause: Exception) -> None:
        """Raise the callback's own exception, if it raised one."""
        if self.error is not None:
            raise self.error from cause


class PassphraseCallback(_Trampoline):
    """A ``pem_password_cb`` backed by a Python callable.

    Without a callable, every passphrase request is refused: encrypted data
    then fails to decode instead of prompting on the terminal.
    """

    def __init__(
        self, callback: Optional[PassphraseProvider] = None, callback_arg: Any = None
    ):
        super().__init__()
        self._callback = callback
        self._callback_arg = callback_arg
        self.function = PEM_PASSWORD_CALLBACK(self._invoke)

    def _invoke(self, buf, size, rwflag, _userdata) -> int:
        if self._callback is None:
            return -1
        try:
            passphrase = self._callback(size, bool(rwflag), self._callback_arg)
        except Exception as exc:
            self.error = exc
            return -1

        if isinstance(passphrase, str):
            passphrase = passphrase.encode("utf-8")
        if not passphrase:
            return -1
        if len(passphrase) > size:
            self.error = ValueError(f"Passphrase longer than {size} bytes")
            return -1

        ctypes.memmove(buf, passphrase, len(passphrase))
        return len(passphrase)


class ProgressCallback(_Trampoline):
    """A ``BN_GENCB`` callback backed by a Python callable.

    Progress codes follow BN_generate_prime(3): ``p`` is 0 while testing a
    candidate prime, 1 after each primality round, 2 when a candidate is
    rejected and 3 when a prime is found; ``n`` is the counter or prime index.
    """

    def __init__(self, callback: ProgressListener, callback_arg: Any = None):
        super().__init__()
        self._callback = callback
        self._callback_arg = callback_arg
        self.function = BN_GENCB_CALLBACK(self._invoke)

    def _invoke(self, p, n, _gencb) -> int:
        try:
            self._callback(p, n, self._callback_arg)
        except Exception as exc:
            self.error = exc
            return 0
        return 1


def static_passphrase(passphrase: Union[bytes, str]) -> PassphraseProvider:
    """Return a passphrase provider that always answers ``passphrase``."""

    def provide(_max_length: int, _encrypting: bool, _arg: Any) -> Passphrase:
        return passphrase

    return provide
