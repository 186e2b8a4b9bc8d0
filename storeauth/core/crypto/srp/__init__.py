"""SRP-6a handshake engine (GSA variant)."""
from .group import N, G, N_LEN
from .srp_client import SRPClient, SRPProofs, SRPState

__all__ = [
    'SRPClient',
    'SRPProofs',
    'SRPState',
    'N',
    'G',
    'N_LEN',
]
