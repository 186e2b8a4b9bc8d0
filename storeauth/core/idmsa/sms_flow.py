"""
SMS second-factor orchestration.

Holds the idmsa session and phone selection for one verification attempt:
sign in, enumerate phones, send the code, verify it, then fetch a trust
token on a best-effort basis.
"""
from typing import List, Optional

from .models import IdmsaSession, PhoneEnumerationResult, TrustedPhoneNumber
from .session_client import IdmsaClient
from ..exceptions import AuthError, InputError, StoreAuthError
from ..logging import get_logger


class SmsVerificationFlow:
    """
    One SMS verification attempt.
    
    Example:
        >>> flow = SmsVerificationFlow(idmsa, email, password)
        >>> result = await flow.start()
        >>> if not flow.sms_sent:
        ...     await flow.send(result.phones[1].id)
        >>> await flow.verify('123456')
    """
    
    def __init__(self, client: IdmsaClient, email: str, password: str):
        self._client = client
        self._email = email
        self._password = password
        self._logger = get_logger('storeauth.idmsa')
        self._reset_state()
    
    def _reset_state(self):
        self._session: Optional[IdmsaSession] = None
        self._result: Optional[PhoneEnumerationResult] = None
        self._selected_phone_id: Optional[int] = None
        self._sms_sent = False
        self._sent_to: Optional[str] = None
    
    # Read-only state
    
    @property
    def email(self) -> str:
        return self._email
    
    @property
    def password(self) -> str:
        return self._password
    
    @property
    def session(self) -> Optional[IdmsaSession]:
        return self._session
    
    @property
    def phones(self) -> List[TrustedPhoneNumber]:
        return list(self._result.phones) if self._result else []
    
    @property
    def result(self) -> Optional[PhoneEnumerationResult]:
        return self._result
    
    @property
    def selected_phone_id(self) -> Optional[int]:
        return self._selected_phone_id
    
    @property
    def sms_sent(self) -> bool:
        return self._sms_sent
    
    @property
    def sent_to(self) -> Optional[str]:
        """Dialed number the last code was sent to."""
        return self._sent_to
    
    async def start(self) -> PhoneEnumerationResult:
        """
        Signs in to idmsa and enumerates trusted phones.
        
        Nothing is sent while the provider reports a lock, too many codes
        or a cooldown; the caller reads those flags from the result. A
        single phone is sent to immediately; with several, the first is
        preselected and the caller decides.
        
        Raises:
            AuthError: If the account has no trusted phone numbers
        """
        self._reset_state()
        self._session = await self._client.sign_in(self._email, self._password)
        result = await self._client.list_trusted_phones(self._session)
        self._result = result
        
        if result.code_delivery_locked or result.too_many_codes_sent or result.cooldown_active:
            self._logger.info("SMS delivery unavailable (locked, too many codes or cooldown)")
            return result
        
        if not result.phones:
            raise AuthError("No trusted phone numbers on this account")
        
        self._selected_phone_id = result.phones[0].id
        if len(result.phones) == 1:
            await self.send()
        
        return result
    
    def select_phone(self, phone_id: int) -> None:
        """
        Selects the phone to send to.
        
        Raises:
            InputError: If phone_id is not one of the enumerated phones
        """
        if self._result is None or self._result.find(phone_id) is None:
            raise InputError(f"Unknown trusted phone id: {phone_id}")
        self._selected_phone_id = phone_id
    
    async def send(self, phone_id: Optional[int] = None) -> None:
        """
        Sends an SMS code to phone_id, or to the selected phone.
        
        Raises:
            InputError: Without a session or a phone to send to
        """
        if self._session is None:
            raise InputError("No active idmsa session; call start() first")
        
        target = phone_id if phone_id is not None else self._selected_phone_id
        if target is None:
            raise InputError("No trusted phone selected")
        
        await self._client.send_sms(self._session, target)
        self._selected_phone_id = target
        self._sms_sent = True
        phone = self._result.find(target) if self._result else None
        self._sent_to = phone.dialed_number if phone else None
    
    async def verify(self, code: str) -> str:
        """
        Verifies the SMS code, then requests a trust token.
        
        A trust-token failure is logged and yields ''; it only affects
        whether a future login can skip the second factor.
        
        Returns:
            Trust token, possibly empty
            
        Raises:
            InputError: Without a session or selected phone
            TransportError: If the provider rejects the code
        """
        if self._session is None or self._selected_phone_id is None:
            raise InputError("No active idmsa session or phone selection")
        
        await self._client.verify_sms_code(self._session, self._selected_phone_id, code)
        
        try:
            return await self._client.fetch_trust_token(self._session)
        except StoreAuthError as e:
            self._logger.warning(f"Trust token request failed (non-fatal): {e}")
            return ''
    
    def reset(self) -> None:
        """Drops the session and phone selection."""
        self._reset_state()
