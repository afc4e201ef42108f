"""Asymmetric keys."""

from .pkey import AsymmetricKey
from .rsa_key import RSAKey

__all__ = ["AsymmetricKey", "RSAKey"]
