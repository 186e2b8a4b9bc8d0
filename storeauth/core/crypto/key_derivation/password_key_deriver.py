"""Password-based key derivation for the s2k / s2k_fo protocols using Strategy Pattern."""
from abc import ABC, abstractmethod
import hashlib

from ...exceptions import InputError

KEY_LENGTH = 32

S2K = 's2k'
S2K_FO = 's2k_fo'
SUPPORTED_PROTOCOLS = (S2K, S2K_FO)


class PasswordKeyDeriver(ABC):
    """
    Abstract base class for password-based key derivation.
    
    Subclasses decide how the SHA-256 digest of the password is presented
    to PBKDF2-HMAC-SHA256.
    """
    
    protocol: str = ''
    
    def derive(self, password: str, salt: bytes, iterations: int) -> bytes:
        """
        Derives the 32-byte key consumed by SRP.
        
        Args:
            password: User passphrase
            salt: Server-supplied salt
            iterations: Server-supplied PBKDF2 iteration count
            
        Returns:
            32-byte derived key
            
        Raises:
            InputError: If iterations is not a positive integer
        """
        if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations <= 0:
            raise InputError(f"Invalid iteration count: {iterations!r}")
        
        password_hash = hashlib.sha256(password.encode('utf-8')).digest()
        
        return hashlib.pbkdf2_hmac(
            'sha256',
            self._prepare(password_hash),
            bytes(salt),
            iterations,
            KEY_LENGTH
        )
    
    @abstractmethod
    def _prepare(self, password_hash: bytes) -> bytes:
        """Turns the password digest into PBKDF2 input key material."""
        pass


class S2KDeriver(PasswordKeyDeriver):
    """s2k: PBKDF2(SHA256(password), salt, iterations, 32)."""
    
    protocol = S2K
    
    def _prepare(self, password_hash: bytes) -> bytes:
        return password_hash


class S2KFODeriver(PasswordKeyDeriver):
    """s2k_fo: PBKDF2(UTF8(hex(SHA256(password))), salt, iterations, 32)."""
    
    protocol = S2K_FO
    
    def _prepare(self, password_hash: bytes) -> bytes:
        return password_hash.hex().encode('utf-8')


_DERIVERS = {
    S2K: S2KDeriver,
    S2K_FO: S2KFODeriver,
}


def get_deriver(protocol: str) -> PasswordKeyDeriver:
    """
    Returns the deriver for a protocol tag.
    
    Raises:
        InputError: If the protocol tag is not s2k or s2k_fo
    """
    try:
        return _DERIVERS[protocol]()
    except KeyError:
        raise InputError(f"Unsupported password protocol: {protocol!r}") from None


def derive_password(protocol: str, password: str, salt: bytes, iterations: int) -> bytes:
    """Derives the SRP password key for the given protocol tag."""
    return get_deriver(protocol).derive(password, salt, iterations)
