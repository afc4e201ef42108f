"""Byte streams backed by libcrypto BIO objects."""

from .stream import ByteStream

__all__ = ["ByteStream"]
