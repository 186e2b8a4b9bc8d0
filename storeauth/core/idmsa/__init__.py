"""Identity-provider (idmsa) client and SMS second-factor flow."""
from .models import IdmsaSession, TrustedPhoneNumber, PhoneEnumerationResult
from .session_client import IdmsaClient, default_state_factory
from .sms_flow import SmsVerificationFlow

__all__ = [
    'IdmsaClient',
    'IdmsaSession',
    'TrustedPhoneNumber',
    'PhoneEnumerationResult',
    'SmsVerificationFlow',
    'default_state_factory',
]
