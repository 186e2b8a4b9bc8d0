"""Account-service sign-in."""
from .models import AuthenticatedAccount
from .authenticator import StoreAuthenticator, SignInAttempt, SignInState
from .bag import BagClient
from .plist import parse_plist

__all__ = [
    'StoreAuthenticator',
    'SignInAttempt',
    'SignInState',
    'AuthenticatedAccount',
    'BagClient',
    'parse_plist',
]
