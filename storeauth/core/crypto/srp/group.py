"""Fixed SRP-6a group: RFC 5054 2048-bit safe prime, generator 2, SHA-256."""
import hashlib
from typing import Final

N: Final = int(
    "ac6bdb41324a9a9bf166de5e1389582faf72b6651987ee07fc3192943db56050"
    "a37329cbb4a099ed8193e0757767a13dd52312ab4b03310dcd7f48a9da04fd50"
    "e8083969edb767b0cf6095179a163ab3661a05fbd5faaae82918a9962f0b93b8"
    "55f97993ec975eeaa80d740adbf4ff747359d041d5c33ea71d281e446b14773b"
    "ca97b43a23fb801676bd207a436c6481f1d2b9078717461a5b9d32e688f87748"
    "544523b524b0d57d5ea77a2775d2ecfa032cfbdbf52fb3786160279004e57ae6"
    "af874e7303ce53299ccc041c7bc308d82a5698f3a8d0c38271ae35f8e9dbfbb6"
    "94b5c803d89f7ae435de236d525f54759b65e372fcd68ef20fa7111f9e4aff73",
    16,
)
G: Final = 2

# Byte length of the modulus N
N_LEN: Final = 256

# Size of the client private ephemeral in bytes
PRIVATE_EPHEMERAL_LEN: Final = 32


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()
