"""Encoding utilities."""
import base64
import binascii

from Crypto.Util.number import bytes_to_long, long_to_bytes

from ...exceptions import ProtocolError


class Base64Encoder:
    """Standard (padded) Base64 encoder/decoder used by the idmsa JSON API."""
    
    @staticmethod
    def encode(data: bytes) -> str:
        """Encodes bytes to standard Base64."""
        return base64.b64encode(data).decode('ascii')
    
    @staticmethod
    def decode(data: str) -> bytes:
        """
        Decodes standard Base64.
        
        Raises:
            ProtocolError: If the input is not valid Base64
        """
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise ProtocolError(f"Invalid base64 value: {e}") from e


def int_to_bytes(value: int, width: int = 0) -> bytes:
    """
    Big-endian encoding of a non-negative integer.
    
    Without width the result is minimal (0 encodes to b''); with width it
    is left-padded with zero bytes.
    """
    if value == 0 and not width:
        return b''
    return long_to_bytes(value, width)


def bytes_to_int(data: bytes) -> int:
    """Big-endian decoding; b'' decodes to 0."""
    if not data:
        return 0
    return bytes_to_long(data)
