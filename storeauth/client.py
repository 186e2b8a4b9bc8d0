"""
StoreAuthClient - High-level async client tying the identity provider and
the account service together.

Example:
    >>> async with StoreAuthClient() as client:
    ...     try:
    ...         account = await client.authenticate(email, password, device_id=guid)
    ...     except VerificationRequired:
    ...         flow = client.sms_flow(email, password)
    ...         await flow.start()
    ...         account = await client.complete_sms_sign_in(flow, code, device_id=guid)
"""
from typing import Optional

from .core.api import AuthConfig, AiohttpTransport, CookieSet, Transport
from .core.idmsa import IdmsaClient, SmsVerificationFlow
from .core.logging import get_logger
from .core.store import AuthenticatedAccount, StoreAuthenticator


class StoreAuthClient:
    """
    Facade over IdmsaClient and StoreAuthenticator sharing one transport.
    
    The client owns an AiohttpTransport unless one is injected, in which
    case closing the client leaves the injected transport open.
    """
    
    def __init__(
        self,
        config: Optional[AuthConfig] = None,
        transport: Optional[Transport] = None
    ):
        """
        Initialize client.
        
        Args:
            config: Configuration (uses defaults if not provided)
            transport: Optional transport to use instead of aiohttp
        """
        self._config = config or AuthConfig.default()
        self._owns_transport = transport is None
        self._transport = transport or AiohttpTransport(self._config)
        self._idmsa = IdmsaClient(self._transport, self._config)
        self._store = StoreAuthenticator(self._transport, self._config)
        self._logger = get_logger('storeauth.client')
    
    @property
    def config(self) -> AuthConfig:
        return self._config
    
    @property
    def idmsa(self) -> IdmsaClient:
        return self._idmsa
    
    @property
    def store(self) -> StoreAuthenticator:
        return self._store
    
    async def __aenter__(self) -> 'StoreAuthClient':
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
    
    async def close(self):
        """Close the owned transport."""
        if self._owns_transport:
            await self._transport.close()
    
    async def authenticate(
        self,
        email: str,
        password: str,
        code: Optional[str] = None,
        cookies: Optional[CookieSet] = None,
        device_id: str = '',
        second_factor_satisfied: bool = False
    ) -> AuthenticatedAccount:
        """Signs in to the account service. See StoreAuthenticator.sign_in."""
        return await self._store.sign_in(
            email,
            password,
            code=code,
            existing_cookies=cookies,
            device_id=device_id,
            second_factor_satisfied=second_factor_satisfied,
        )
    
    def sms_flow(self, email: str, password: str) -> SmsVerificationFlow:
        """Creates an SMS verification flow for this account."""
        return SmsVerificationFlow(self._idmsa, email, password)
    
    async def complete_sms_sign_in(
        self,
        flow: SmsVerificationFlow,
        code: str,
        device_id: str,
        cookies: Optional[CookieSet] = None
    ) -> AuthenticatedAccount:
        """
        Verifies the SMS code through the identity provider, then signs in
        to the account service with the second factor marked satisfied.
        
        Args:
            flow: Flow that has sent an SMS
            code: Code the user received
            device_id: Device identifier
            cookies: Cookies from earlier attempts
            
        Returns:
            AuthenticatedAccount
        """
        await flow.verify(code)
        self._logger.info("SMS verified; signing in to the account service")
        return await self.authenticate(
            flow.email,
            flow.password,
            code=code,
            cookies=cookies,
            device_id=device_id,
            second_factor_satisfied=True,
        )
