"""Crypto utility helpers."""
from .encoding import Base64Encoder, int_to_bytes, bytes_to_int

__all__ = [
    'Base64Encoder',
    'int_to_bytes',
    'bytes_to_int',
]
