"""
storeauth - Async Python library for App Store account authentication.

Implements the identity provider's SRP-6a (GSA) sign-in with SMS second
factor, and the account-service sign-in state machine.

Usage:
    >>> from storeauth import StoreAuthClient, VerificationRequired
    >>> 
    >>> async with StoreAuthClient() as client:
    ...     account = await client.authenticate(email, password, device_id=guid)
"""
import logging
from .client import StoreAuthClient

from .core.api import (
    AuthConfig,
    IdmsaConfig,
    StoreConfig,
    ProxyConfig,
    SSLConfig,
    TimeoutConfig,
    AiohttpTransport,
    HttpRequest,
    HttpResponse,
    Transport,
    Cookie,
    CookieSet,
    merge_cookies,
)
from .core.crypto import SRPClient, SRPProofs, SRPState, derive_password
from .core.idmsa import (
    IdmsaClient,
    IdmsaSession,
    TrustedPhoneNumber,
    PhoneEnumerationResult,
    SmsVerificationFlow,
)
from .core.store import AuthenticatedAccount, StoreAuthenticator, SignInState
from .core.exceptions import (
    StoreAuthError,
    InputError,
    ProtocolError,
    InvalidEphemeral,
    AuthError,
    TransportError,
    AccountLocked,
    VerificationRequired,
)

__version__ = '1.0.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for storeauth modules.
    
    Args:
        level: Logging level (default: logging.INFO)
    """
    loggers = [
        'storeauth',
        'storeauth.client',
        'storeauth.idmsa',
        'storeauth.store',
        'storeauth.transport',
    ]
    
    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'StoreAuthClient',
    'AuthConfig',
    'IdmsaConfig',
    'StoreConfig',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',
    'AiohttpTransport',
    'HttpRequest',
    'HttpResponse',
    'Transport',
    'Cookie',
    'CookieSet',
    'merge_cookies',
    'SRPClient',
    'SRPProofs',
    'SRPState',
    'derive_password',
    'IdmsaClient',
    'IdmsaSession',
    'TrustedPhoneNumber',
    'PhoneEnumerationResult',
    'SmsVerificationFlow',
    'AuthenticatedAccount',
    'StoreAuthenticator',
    'SignInState',
    'StoreAuthError',
    'InputError',
    'ProtocolError',
    'InvalidEphemeral',
    'AuthError',
    'TransportError',
    'AccountLocked',
    'VerificationRequired',
    'setup_logging',
]
