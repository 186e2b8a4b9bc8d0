"""
Key derivation from passwords.
"""
from .password_key_deriver import (
    PasswordKeyDeriver,
    S2KDeriver,
    S2KFODeriver,
    get_deriver,
    derive_password,
    KEY_LENGTH,
    S2K,
    S2K_FO,
    SUPPORTED_PROTOCOLS,
)

__all__ = [
    'PasswordKeyDeriver',
    'S2KDeriver',
    'S2KFODeriver',
    'get_deriver',
    'derive_password',
    'KEY_LENGTH',
    'S2K',
    'S2K_FO',
    'SUPPORTED_PROTOCOLS',
]
