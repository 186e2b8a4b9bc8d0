"""
Identity-provider (idmsa) data models.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class IdmsaSession:
    """
    Session identifiers returned by signin/complete.
    
    Attributes:
        session_id: X-Apple-ID-Session-Id response header
        sequence_token: scnt response header
    """
    session_id: str
    sequence_token: str


@dataclass(frozen=True)
class TrustedPhoneNumber:
    """A destination for SMS security codes."""
    id: int
    dialed_number: str
    delivery_mode: str
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrustedPhoneNumber':
        return cls(
            id=int(data.get('id', 0)),
            dialed_number=str(data.get('numberWithDialCode', '')),
            delivery_mode=str(data.get('pushMode', '')),
        )


@dataclass(frozen=True)
class PhoneEnumerationResult:
    """
    Snapshot of trusted phones and security-code rate-limit state.
    
    cooldown_active is set whenever too_many_codes_sent is, since the
    provider reports the cooldown as a superset signal.
    """
    phones: List[TrustedPhoneNumber] = field(default_factory=list)
    cooldown_active: bool = False
    too_many_codes_sent: bool = False
    code_delivery_locked: bool = False
    
    @property
    def can_send(self) -> bool:
        return not (self.cooldown_active or self.too_many_codes_sent or self.code_delivery_locked)
    
    def find(self, phone_id: int):
        """Return the phone with phone_id, or None."""
        for phone in self.phones:
            if phone.id == phone_id:
                return phone
        return None
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PhoneEnumerationResult':
        security_code = data.get('securityCode') or {}
        too_many = security_code.get('tooManyCodesSent') is True
        cooldown = security_code.get('securityCodeCooldown') is True
        return cls(
            phones=[TrustedPhoneNumber.from_dict(p) for p in data.get('trustedPhoneNumbers') or []],
            cooldown_active=too_many or cooldown,
            too_many_codes_sent=too_many,
            code_delivery_locked=security_code.get('securityCodeLocked') is True,
        )
