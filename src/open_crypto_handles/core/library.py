"""Loading of the native libcrypto library and its ctypes prototypes.

Every fallible function gets an ``errcheck`` hook from
:mod:`open_crypto_handles.core.translator`, so a failing call raises before
control returns to Python code. Functions whose null or zero result is not
a failure (getters that may legitimately return nothing, void frees) are
declared without a hook and checked at the call site when needed.
"""

import ctypes
import ctypes.util
import sys
import threading
from ctypes import CFUNCTYPE, POINTER, c_char_p, c_int, c_long, c_size_t, c_ulong, c_void_p
from typing import Optional

from .config import get_config
from .errors import AllocationError, CryptographicOperationError, LibraryLoadError
from .logging import get_logger
from .translator import check_non_negative, check_pointer, check_success, errcheck

logger = get_logger(__name__)

# int (*pem_password_cb)(char *buf, int size, int rwflag, void *u)
PEM_PASSWORD_CALLBACK = CFUNCTYPE(c_int, c_void_p, c_int, c_int, c_void_p)

# int (*callback)(int p, int n, BN_GENCB *cb)
BN_GENCB_CALLBACK = CFUNCTYPE(c_int, c_int, c_int, c_void_p)

# Constants from the public OpenSSL headers
OPENSSL_VERSION = 0
EVP_PKEY_RSA = 6
NID_UNDEF = 0
MBSTRING_UTF8 = 0x1000
BIO_NOCLOSE = 0
BIO_CTRL_INFO = 3
BIO_CTRL_PENDING = 10
BIO_CTRL_FLUSH = 11
XN_FLAG_RFC2253 = 0x1110317

_ALLOC = errcheck(check_pointer, AllocationError)
_POINTER = errcheck(check_pointer, CryptographicOperationError)
_SUCCESS = errcheck(check_success, CryptographicOperationError)
_NON_NEGATIVE = errcheck(check_non_negative, CryptographicOperationError)

# name: (restype, argtypes, errcheck hook, fallback names for older releases)
_PROTOTYPES = {
    # Error queue
    "ERR_get_error": (c_ulong, [], None),
    "ERR_error_string_n": (None, [c_ulong, c_char_p, c_size_t], None),
    "ERR_clear_error": (None, [], None),
    "OpenSSL_version": (c_char_p, [c_int], None),
    # Random generator
    "RAND_status": (c_int, [], None),
    "RAND_poll": (c_int, [], _SUCCESS),
    # Byte streams
    "BIO_s_mem": (c_void_p, [], _ALLOC),
    "BIO_new": (c_void_p, [c_void_p], _ALLOC),
    "BIO_new_mem_buf": (c_void_p, [c_void_p, c_int], _ALLOC),
    "BIO_new_file": (c_void_p, [c_char_p, c_char_p], _POINTER),
    "BIO_new_fd": (c_void_p, [c_int, c_int], _ALLOC),
    "BIO_free_all": (None, [c_void_p], None),
    "BIO_read": (c_int, [c_void_p, c_void_p, c_int], None),
    "BIO_write": (c_int, [c_void_p, c_void_p, c_int], None),
    "BIO_ctrl": (c_long, [c_void_p, c_int, c_long, c_void_p], None),
    # Big numbers and generation callbacks
    "BN_new": (c_void_p, [], _ALLOC),
    "BN_free": (None, [c_void_p], None),
    "BN_set_word": (c_int, [c_void_p, c_ulong], _SUCCESS),
    "BN_GENCB_new": (c_void_p, [], _ALLOC),
    "BN_GENCB_free": (None, [c_void_p], None),
    "BN_GENCB_set": (None, [c_void_p, BN_GENCB_CALLBACK, c_void_p], None),
    "BN_CTX_new": (c_void_p, [], _ALLOC),
    "BN_CTX_free": (None, [c_void_p], None),
    # RSA keys
    "RSA_new": (c_void_p, [], _ALLOC),
    "RSA_free": (None, [c_void_p], None),
    "RSA_generate_key_ex": (c_int, [c_void_p, c_int, c_void_p, c_void_p], _SUCCESS),
    "RSA_blinding_on": (c_int, [c_void_p, c_void_p], _SUCCESS),
    "RSA_blinding_off": (None, [c_void_p], None),
    "RSA_bits": (c_int, [c_void_p], None),
    "RSA_size": (c_int, [c_void_p], None),
    # Generic keys
    "EVP_PKEY_new": (c_void_p, [], _ALLOC),
    "EVP_PKEY_free": (None, [c_void_p], None),
    "EVP_PKEY_set1_RSA": (c_int, [c_void_p, c_void_p], _SUCCESS),
    "EVP_PKEY_get1_RSA": (c_void_p, [c_void_p], _POINTER),
    "EVP_PKEY_get_bits": (c_int, [c_void_p], None, ("EVP_PKEY_bits",)),
    "EVP_PKEY_get_base_id": (c_int, [c_void_p], None, ("EVP_PKEY_base_id",)),
    "EVP_get_cipherbyname": (c_void_p, [c_char_p], _POINTER),
    "PEM_read_bio_PUBKEY": (
        c_void_p,
        [c_void_p, c_void_p, PEM_PASSWORD_CALLBACK, c_void_p],
        _POINTER,
    ),
    "PEM_read_bio_PrivateKey": (
        c_void_p,
        [c_void_p, c_void_p, PEM_PASSWORD_CALLBACK, c_void_p],
        _POINTER,
    ),
    "PEM_write_bio_PUBKEY": (c_int, [c_void_p, c_void_p], _SUCCESS),
    "PEM_write_bio_PrivateKey": (
        c_int,
        [c_void_p, c_void_p, c_void_p, c_void_p, c_int, PEM_PASSWORD_CALLBACK, c_void_p],
        _SUCCESS,
    ),
    # Certificates
    "X509_new": (c_void_p, [], _ALLOC),
    "X509_free": (None, [c_void_p], None),
    "X509_get_pubkey": (c_void_p, [c_void_p], _POINTER),
    "X509_get_subject_name": (c_void_p, [c_void_p], _POINTER),
    "X509_get_issuer_name": (c_void_p, [c_void_p], _POINTER),
    "X509_set_subject_name": (c_int, [c_void_p, c_void_p], _SUCCESS),
    "X509_set_issuer_name": (c_int, [c_void_p, c_void_p], _SUCCESS),
    "X509_set_pubkey": (c_int, [c_void_p, c_void_p], _SUCCESS),
    "X509_alias_set1": (c_int, [c_void_p, c_char_p, c_int], _SUCCESS),
    "X509_alias_get0": (c_void_p, [c_void_p, POINTER(c_int)], None),
    "X509_add1_trust_object": (c_int, [c_void_p, c_void_p], _SUCCESS),
    "X509_trust_clear": (None, [c_void_p], None),
    "X509_reject_clear": (None, [c_void_p], None),
    "X509_keyid_set1": (c_int, [c_void_p, c_char_p, c_int], _SUCCESS),
    "X509_get0_trust_objects": (c_void_p, [c_void_p], None),
    "PEM_read_bio_X509": (
        c_void_p,
        [c_void_p, c_void_p, PEM_PASSWORD_CALLBACK, c_void_p],
        _POINTER,
    ),
    "PEM_read_bio_X509_AUX": (
        c_void_p,
        [c_void_p, c_void_p, PEM_PASSWORD_CALLBACK, c_void_p],
        _POINTER,
    ),
    "PEM_write_bio_X509": (c_int, [c_void_p, c_void_p], _SUCCESS),
    "PEM_write_bio_X509_AUX": (c_int, [c_void_p, c_void_p], _SUCCESS),
    "d2i_X509_bio": (c_void_p, [c_void_p, c_void_p], _POINTER),
    "i2d_X509_bio": (c_int, [c_void_p, c_void_p], _SUCCESS),
    # Names
    "X509_NAME_new": (c_void_p, [], _ALLOC),
    "X509_NAME_free": (None, [c_void_p], None),
    "X509_NAME_dup": (c_void_p, [c_void_p], _ALLOC),
    "X509_NAME_cmp": (c_int, [c_void_p, c_void_p], None),
    "X509_NAME_entry_count": (c_int, [c_void_p], None),
    "X509_NAME_get_entry": (c_void_p, [c_void_p, c_int], _POINTER),
    "X509_NAME_ENTRY_get_object": (c_void_p, [c_void_p], _POINTER),
    "X509_NAME_ENTRY_get_data": (c_void_p, [c_void_p], _POINTER),
    "X509_NAME_add_entry_by_txt": (
        c_int,
        [c_void_p, c_char_p, c_int, c_char_p, c_int, c_int, c_int],
        _SUCCESS,
    ),
    "X509_NAME_print_ex": (c_int, [c_void_p, c_void_p, c_int, c_ulong], _NON_NEGATIVE),
    "ASN1_STRING_to_UTF8": (c_int, [POINTER(c_void_p), c_void_p], _NON_NEGATIVE),
    "CRYPTO_free": (None, [c_void_p, c_char_p, c_int], None),
    # Object identifiers and stacks
    "OBJ_obj2nid": (c_int, [c_void_p], None),
    "OBJ_nid2sn": (c_char_p, [c_int], None),
    "OBJ_obj2txt": (c_int, [c_char_p, c_int, c_void_p, c_int], _NON_NEGATIVE),
    "OBJ_txt2obj": (c_void_p, [c_char_p, c_int], _POINTER),
    "ASN1_OBJECT_free": (None, [c_void_p], None),
    "OPENSSL_sk_num": (c_int, [c_void_p], None),
    "OPENSSL_sk_value": (c_void_p, [c_void_p, c_int], None),
}


def _candidate_names() -> list[str]:
    configured = get_config().libcrypto_path
    candidates: list[str] = []
    if configured:
        candidates.append(configured)
        return candidates

    found = ctypes.util.find_library("crypto")
    if found:
        candidates.append(found)

    if sys.platform in ("win32", "cygwin", "msys"):
        candidates += ["libcrypto-3-x64.dll", "libcrypto-3.dll", "libcrypto-1_1-x64.dll"]
    elif sys.platform == "darwin":
        candidates += ["libcrypto.3.dylib", "libcrypto.1.1.dylib", "libcrypto.dylib"]
    else:
        candidates += ["libcrypto.so.3", "libcrypto.so.1.1", "libcrypto.so"]
    return candidates


def _set_prototypes(dll: ctypes.CDLL) -> None:
    for name, prototype in _PROTOTYPES.items():
        restype, argtypes, hook = prototype[:3]
        aliases = prototype[3] if len(prototype) > 3 else ()

        fn = None
        for symbol in (name, *aliases):
            try:
                fn = getattr(dll, symbol)
                break
            except AttributeError:
                continue
        if fn is None:
            raise LibraryLoadError(f"libcrypto does not export {name}")

        fn.restype = restype
        fn.argtypes = argtypes
        if hook is not None:
            fn.errcheck = hook
        if fn.__name__ != name:
            setattr(dll, name, fn)


def load_library() -> ctypes.CDLL:
    """Load libcrypto and declare the prototypes used by this package.

    Returns:
        The loaded library

    Raises:
        LibraryLoadError: If no candidate can be loaded or a symbol is missing
    """
    last_error: Optional[Exception] = None
    for candidate in _candidate_names():
        try:
            dll = ctypes.CDLL(candidate)
        except OSError as exc:
            last_error = exc
            continue

        _set_prototypes(dll)
        logger.info(
            "library.loaded",
            path=candidate,
            version=dll.OpenSSL_version(OPENSSL_VERSION).decode("ascii", "replace"),
        )
        return dll

    raise LibraryLoadError(
        "Unable to load libcrypto. Set OPEN_CRYPTO_HANDLES_LIBCRYPTO to the "
        "shared object path (e.g. /usr/lib/x86_64-linux-gnu/libcrypto.so.3)."
    ) from last_error


_library: Optional[ctypes.CDLL] = None
_library_lock = threading.Lock()


def get_library() -> ctypes.CDLL:
    """Return the process-wide libcrypto, loading it on first use."""
    global _library
    if _library is None:
        with _library_lock:
            if _library is None:
                _library = load_library()
    return _library


def reset_library() -> None:
    """Forget the loaded library so the next call reloads it from configuration."""
    global _library
    with _library_lock:
        _library = None


def version() -> str:
    """Return the libcrypto version string."""
    return get_library().OpenSSL_version(OPENSSL_VERSION).decode("ascii", "replace")
