"""
Custom exceptions for storeauth authentication operations.

This module defines the exception taxonomy shared by the identity-provider
client and the account-service sign-in state machine.
"""
from typing import Optional


class StoreAuthError(Exception):
    """Base exception for all storeauth errors."""
    
    def __init__(self, message: str, error_code: Optional[str] = None) -> None:
        """
        Initialize the exception.
        
        Args:
            message: Error message
            error_code: Provider or internal error code (if available)
        """
        self.error_code = error_code
        self.message = message
        super().__init__(message)


class InputError(StoreAuthError, ValueError):
    """Exception raised for malformed caller input. Never retried."""
    pass


class ProtocolError(StoreAuthError):
    """Exception raised when SRP math receives an invalid server value."""
    pass


class InvalidEphemeral(ProtocolError):
    """Exception raised for a zero or group-order-multiple ephemeral."""
    pass


class AuthError(StoreAuthError):
    """Exception raised when authentication fails."""
    
    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        failure_type: Optional[str] = None
    ) -> None:
        """
        Initialize the exception.
        
        Args:
            message: Error message
            status: HTTP status of the failing exchange (if any)
            failure_type: Provider failureType value (if any)
        """
        self.status = status
        self.failure_type = failure_type
        super().__init__(message, failure_type)


class TransportError(AuthError):
    """Exception raised for unexpected HTTP outcomes or unparseable bodies."""
    pass


class AccountLocked(AuthError):
    """Exception raised when the provider reports the account as locked."""
    pass


class VerificationRequired(StoreAuthError):
    """
    Signal that a second factor is needed before sign-in can succeed.
    
    Not an AuthError: callers run the SMS (or device code) sub-flow and
    invoke sign-in again.
    """
    
    code_required = True
    
    def __init__(self, message: str = 'Two-factor verification required') -> None:
        super().__init__(message, 'verification_required')
