"""
SRP-6a client in the provider's "GSA" variant.

Differences from textbook SRP-6a:
- x = H(s | H(":" | P)): the identity is not part of x.
- The password P is the s2k/s2k_fo derived key, which is only known after
  the server has answered the first request, so the client is created
  unkeyed and receives the key later through set_derived_key().
- The client computes M2 = H(A | M1 | K) itself and sends it with M1.

Hash operands follow RFC 5054: k and u hash N-width padded values, while
s, A and B in M1 are minimal big-endian encodings.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from Crypto.Random import get_random_bytes

from .group import N, G, N_LEN, PRIVATE_EPHEMERAL_LEN, sha256
from ..utils.encoding import int_to_bytes, bytes_to_int
from ...exceptions import InputError, ProtocolError, InvalidEphemeral


class SRPState(Enum):
    """Handshake lifecycle."""
    UNKEYED = 'unkeyed'
    KEYED = 'keyed'
    PROVEN = 'proven'


@dataclass(frozen=True)
class SRPProofs:
    """Proof values sent to the provider's signin/complete endpoint."""
    m1: bytes
    m2: bytes


def _hash_int(data: bytes) -> int:
    return bytes_to_int(sha256(data))


def _xor(left: bytes, right: bytes) -> bytes:
    return bytes(a ^ b for a, b in zip(left, right))


_K = _hash_int(int_to_bytes(N, N_LEN) + int_to_bytes(G, N_LEN))
_HN_XOR_HG = _xor(sha256(int_to_bytes(N)), sha256(int_to_bytes(G, N_LEN)))


class SRPClient:
    """
    One SRP handshake, owned by a single login attempt.
    
    Example:
        >>> client = SRPClient(b'user@example.com')
        >>> a = client.compute_client_public()   # send to server
        >>> client.set_derived_key(key)           # once salt/iterations are known
        >>> proofs = client.generate_proofs(salt, b)
    """
    
    def __init__(
        self,
        identity: bytes,
        random_bytes: Callable[[int], bytes] = get_random_bytes
    ):
        """
        Initialize a handshake context with the password unset.
        
        Args:
            identity: Account name as UTF-8 bytes
            random_bytes: Randomness source for the private ephemeral
        """
        if not identity:
            raise InputError("SRP identity must not be empty")
        
        self._identity = bytes(identity)
        self._state = SRPState.UNKEYED
        self._derived_key: Optional[bytes] = None
        
        a = bytes_to_int(random_bytes(PRIVATE_EPHEMERAL_LEN)) % N
        # a must be non-zero
        while a == 0:
            a = bytes_to_int(random_bytes(PRIVATE_EPHEMERAL_LEN)) % N
        self._a = a
        self._A = pow(G, a, N)
        
        self._B: Optional[int] = None
        self._proofs: Optional[SRPProofs] = None
    
    @property
    def state(self) -> SRPState:
        return self._state
    
    @property
    def identity(self) -> bytes:
        return self._identity
    
    @property
    def proofs(self) -> Optional[SRPProofs]:
        return self._proofs
    
    def compute_client_public(self) -> bytes:
        """Returns A, available before the derived key is known."""
        return int_to_bytes(self._A)
    
    def set_derived_key(self, key: bytes) -> None:
        """
        Moves the handshake from UNKEYED to KEYED.
        
        Raises:
            InputError: If the key is empty or a key was already set
        """
        if self._state is not SRPState.UNKEYED:
            raise InputError("Derived key has already been set for this handshake")
        if not key:
            raise InputError("Derived key must not be empty")
        
        self._derived_key = bytes(key)
        self._state = SRPState.KEYED
    
    def generate_proofs(self, salt: bytes, server_public: bytes) -> SRPProofs:
        """
        Computes M1 and M2 from the server's salt and public ephemeral B.
        
        Args:
            salt: Decoded salt from signin/init
            server_public: Decoded B from signin/init
            
        Returns:
            SRPProofs with m1 and m2
            
        Raises:
            InputError: If the derived key has not been set, or proofs were
                already generated
            ProtocolError: If salt or B is malformed
            InvalidEphemeral: If B mod N == 0 or the scrambler u is zero
        """
        if self._state is SRPState.UNKEYED:
            raise InputError("Derived key must be set before generating proofs")
        if self._state is SRPState.PROVEN:
            raise InputError("Proofs have already been generated for this handshake")
        
        if not salt:
            raise ProtocolError("Server salt is empty")
        if not server_public or len(server_public) > N_LEN:
            raise ProtocolError(
                f"Server public ephemeral has invalid length: {len(server_public or b'')}"
            )
        
        B = bytes_to_int(server_public)
        if B % N == 0:
            raise InvalidEphemeral("Server public ephemeral is zero modulo N")
        
        A = self._A
        u = _hash_int(int_to_bytes(A, N_LEN) + int_to_bytes(B, N_LEN))
        if u == 0:
            raise InvalidEphemeral("Scrambling parameter u is zero")
        
        s = bytes_to_int(salt)
        inner = _hash_int(b':' + self._derived_key)
        x = _hash_int(int_to_bytes(s) + int_to_bytes(inner))
        
        v = pow(G, x, N)
        S = pow((B - _K * v) % N, self._a + u * x, N)
        K = sha256(int_to_bytes(S))
        
        m1 = sha256(
            _HN_XOR_HG
            + sha256(self._identity)
            + int_to_bytes(s)
            + int_to_bytes(A)
            + int_to_bytes(B)
            + K
        )
        m2 = sha256(int_to_bytes(A) + m1 + K)
        
        self._B = B
        self._proofs = SRPProofs(m1=m1, m2=m2)
        self._state = SRPState.PROVEN
        return self._proofs
