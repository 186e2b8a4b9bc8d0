"""Crypto module: s2k password derivation and the SRP-6a handshake."""
from .utils import Base64Encoder, int_to_bytes, bytes_to_int
from .key_derivation import (
    PasswordKeyDeriver,
    S2KDeriver,
    S2KFODeriver,
    get_deriver,
    derive_password,
)
from .srp import SRPClient, SRPProofs, SRPState

__all__ = [
    'Base64Encoder',
    'int_to_bytes',
    'bytes_to_int',
    'PasswordKeyDeriver',
    'S2KDeriver',
    'S2KFODeriver',
    'get_deriver',
    'derive_password',
    'SRPClient',
    'SRPProofs',
    'SRPState',
]
