"""
Account-service (MZFinance) sign-in state machine.

Posts credentials to the authenticate endpoint, follows redirects,
classifies provider failure payloads and retries exactly once on the
known first-request -5000 flake.

Bounds: at most max_credential_attempts credential submissions, and at
most max_redirects redirects followed; a redirect does not consume a
credential attempt.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode, urljoin

from ..api.config import AuthConfig, StoreConfig
from ..api.cookies import CookieSet, merge_cookies
from ..api.transport import HttpRequest, HttpResponse, Transport
from ..exceptions import (
    AccountLocked,
    AuthError,
    InputError,
    StoreAuthError,
    TransportError,
    VerificationRequired,
)
from ..logging import get_logger
from .bag import BagClient, split_target, with_query
from .models import AuthenticatedAccount
from .plist import parse_plist

STORE_FRONT_HEADER = 'x-set-apple-store-front'
POD_HEADER = 'pod'

FAILURE_ACCOUNT_LOCKED = '5020'
FAILURE_TRANSIENT = '-5000'

# attempt marker: password+code vs password only
ATTEMPT_WITH_CODE = '2'
ATTEMPT_PASSWORD_ONLY = '4'


class SignInState(Enum):
    """States of one account-service sign-in."""
    SENDING = 'sending'
    REDIRECTING = 'redirecting'
    RETRYING_TRANSIENT = 'retrying_transient'
    NEEDS_VERIFICATION = 'needs_verification'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


TERMINAL_STATES = frozenset({
    SignInState.NEEDS_VERIFICATION,
    SignInState.SUCCEEDED,
    SignInState.FAILED,
})

# Allowed transitions
TRANSITIONS: Dict[SignInState, frozenset] = {
    SignInState.SENDING: frozenset({
        SignInState.REDIRECTING,
        SignInState.RETRYING_TRANSIENT,
        SignInState.NEEDS_VERIFICATION,
        SignInState.SUCCEEDED,
        SignInState.FAILED,
    }),
    SignInState.REDIRECTING: frozenset({SignInState.SENDING, SignInState.FAILED}),
    SignInState.RETRYING_TRANSIENT: frozenset({SignInState.SENDING, SignInState.FAILED}),
    SignInState.NEEDS_VERIFICATION: frozenset(),
    SignInState.SUCCEEDED: frozenset(),
    SignInState.FAILED: frozenset(),
}


@dataclass
class SignInAttempt:
    """
    Mutable state of one sign_in() call.
    
    Attributes:
        host: Current request host
        path: Current request path (with query)
        cookies: Cookies accumulated so far
        store_front: Store-front code captured so far
        credential_attempts: Credential submissions counted against the budget
        redirect_hops: Redirects followed
        requests_sent: Total requests sent
        last_error: Most recent recorded failure
        history: Every state entered, in order
    """
    host: str
    path: str
    cookies: CookieSet
    store_front: str = ''
    credential_attempts: int = 0
    redirect_hops: int = 0
    requests_sent: int = 0
    last_error: Optional[StoreAuthError] = None
    history: List[SignInState] = field(default_factory=lambda: [SignInState.SENDING])
    
    @property
    def state(self) -> SignInState:
        return self.history[-1]
    
    def transition(self, new_state: SignInState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal sign-in transition {self.state.value} -> {new_state.value}")
        self.history.append(new_state)
    
    def fail(self, error: StoreAuthError) -> StoreAuthError:
        """Records error, enters FAILED and returns error for raising."""
        self.last_error = error
        if self.state is not SignInState.FAILED:
            self.transition(SignInState.FAILED)
        return error


class StoreAuthenticator:
    """
    Account-service sign-in.
    
    Example:
        >>> authenticator = StoreAuthenticator(transport)
        >>> try:
        ...     account = await authenticator.sign_in(email, password, device_id=guid)
        ... except VerificationRequired:
        ...     ...  # run the SMS flow, then sign in again
    """
    
    def __init__(
        self,
        transport: Transport,
        config: Optional[AuthConfig] = None,
        bag: Optional[BagClient] = None
    ):
        """
        Initialize authenticator.
        
        Args:
            transport: HTTP transport
            config: Configuration (uses defaults if not provided)
            bag: Service-discovery client (built on transport if not provided)
        """
        config = config or AuthConfig.default()
        self._transport = transport
        self._config: StoreConfig = config.store
        self._bag = bag or BagClient(transport, config)
        self._logger = get_logger('storeauth.store')
        self.last_attempt: Optional[SignInAttempt] = None
    
    async def sign_in(
        self,
        email: str,
        password: str,
        code: Optional[str] = None,
        existing_cookies: Optional[CookieSet] = None,
        device_id: str = '',
        second_factor_satisfied: bool = False
    ) -> AuthenticatedAccount:
        """
        Signs in to the account service.
        
        Args:
            email: Account email
            password: Account password
            code: Device 2FA code, appended to the password unless
                second_factor_satisfied is set
            existing_cookies: Cookies from earlier sessions
            device_id: Device identifier (guid), required
            second_factor_satisfied: SMS verification already completed
                through the identity provider
            
        Returns:
            AuthenticatedAccount
            
        Raises:
            InputError: If email or device_id is missing
            VerificationRequired: If the provider asks for a second factor
            AccountLocked: If the provider reports the account locked
            AuthError: For any other failure
        """
        if not device_id:
            raise InputError("Device identifier is required")
        if not email:
            raise InputError("Email is required")
        
        auth_url = await self._bag.fetch_auth_url(device_id)
        host, path = split_target(with_query(auth_url, guid=device_id))
        attempt = SignInAttempt(
            host=host,
            path=path,
            cookies=existing_cookies if existing_cookies is not None else CookieSet(),
        )
        self.last_attempt = attempt
        
        use_code = bool(code) and not second_factor_satisfied
        body = urlencode({
            'appleId': email,
            'attempt': ATTEMPT_WITH_CODE if use_code else ATTEMPT_PASSWORD_ONLY,
            'guid': device_id,
            'password': f"{password}{code}" if use_code else password,
            'rmp': '0',
            'why': 'signIn',
        })
        headers = {
            'Content-Type': 'application/x-www-form-urlencoded',
            'User-Agent': self._config.user_agent,
        }
        
        mode = 'password+code' if use_code else (
            'password only (second factor satisfied)' if second_factor_satisfied else 'password only'
        )
        self._logger.info(f"Starting account-service sign-in: host={host}, mode={mode}")
        
        while (attempt.credential_attempts < self._config.max_credential_attempts
               and attempt.redirect_hops <= self._config.max_redirects):
            attempt.credential_attempts += 1
            if attempt.state is not SignInState.SENDING:
                attempt.transition(SignInState.SENDING)
            
            self._logger.debug(
                f"POST {attempt.host}{attempt.path} "
                f"(attempt={attempt.credential_attempts}, redirect={attempt.redirect_hops})"
            )
            response = await self._transport.request(HttpRequest(
                host=attempt.host,
                path=attempt.path,
                method='POST',
                headers=headers,
                body=body,
                cookies=attempt.cookies,
            ))
            attempt.requests_sent += 1
            self._logger.debug(f"-> HTTP {response.status} {response.status_text}")
            
            # Cookies accumulate even on failure
            attempt.cookies = merge_cookies(attempt.cookies, response.raw_headers, attempt.host)
            self._capture_store_front(attempt, response)
            
            account = self._handle_response(attempt, response, email, password, code, device_id)
            if account is not None:
                return account
        
        error = attempt.last_error or AuthError("Sign-in failed for an unknown reason")
        self._logger.error(f"Account-service sign-in exhausted: {error}")
        raise attempt.fail(error)
    
    @staticmethod
    def _capture_store_front(attempt: SignInAttempt, response: HttpResponse) -> None:
        header = response.header(STORE_FRONT_HEADER)
        if header:
            store_front = header.split('-')[0]
            if store_front:
                attempt.store_front = store_front
    
    def _handle_response(
        self,
        attempt: SignInAttempt,
        response: HttpResponse,
        email: str,
        password: str,
        code: Optional[str],
        device_id: str
    ) -> Optional[AuthenticatedAccount]:
        """
        Classifies one response.
        
        Returns an account on success and None to keep looping; every other
        outcome raises.
        """
        if response.status == 302:
            self._follow_redirect(attempt, response)
            return None
        
        if response.status == 404 and not code:
            self._logger.info("HTTP 404 without code: second factor required")
            attempt.transition(SignInState.NEEDS_VERIFICATION)
            raise VerificationRequired()
        
        if not response.body.strip():
            raise attempt.fail(TransportError(
                f"Empty response body (HTTP {response.status})", status=response.status
            ))
        
        try:
            document = parse_plist(response.body)
        except TransportError as e:
            e.status = response.status
            raise attempt.fail(e)
        
        failure_type = document.get('failureType')
        customer_message = document.get('customerMessage')
        failure_message = self._failure_message(document)
        self._logger.debug(
            f"failureType={failure_type!r}, customerMessage={customer_message!r}, "
            f"hasAccountInfo={'accountInfo' in document}"
        )
        
        if failure_type == FAILURE_ACCOUNT_LOCKED:
            # Repeating the request extends the lockout
            self._logger.error("Account locked (5020); not retrying")
            raise attempt.fail(AccountLocked(
                failure_message or 'Account locked',
                status=response.status,
                failure_type=failure_type,
            ))
        
        if failure_type == FAILURE_TRANSIENT and attempt.credential_attempts == 1:
            self._logger.warning("Got -5000 on first attempt; retrying once with the same request")
            attempt.last_error = AuthError(
                failure_message or 'Invalid credentials',
                status=response.status,
                failure_type=failure_type,
            )
            attempt.transition(SignInState.RETRYING_TRANSIENT)
            return None
        
        if (failure_type == '' and not code
                and customer_message == self._config.verification_sentinel):
            self._logger.info("Provider asked for a second factor")
            attempt.transition(SignInState.NEEDS_VERIFICATION)
            raise VerificationRequired()
        
        account_info = document.get('accountInfo')
        if not isinstance(account_info, dict):
            raise attempt.fail(AuthError(
                failure_message or 'Response has no account information',
                status=response.status,
                failure_type=failure_type,
            ))
        
        address = account_info.get('address')
        if not isinstance(address, dict):
            raise attempt.fail(AuthError(
                failure_message or 'Response has no account address',
                status=response.status,
                failure_type=failure_type,
            ))
        
        account = AuthenticatedAccount(
            email=email,
            password=password,
            provider_account_id=str(account_info.get('appleId') or ''),
            store_region_code=attempt.store_front,
            first_name=str(address.get('firstName') or ''),
            last_name=str(address.get('lastName') or ''),
            password_token=str(document.get('passwordToken') or ''),
            directory_services_id=_stringify(document.get('dsPersonId')),
            cookies=attempt.cookies,
            device_identifier=device_id,
            pod_hint=response.header(POD_HEADER) or None,
        )
        attempt.transition(SignInState.SUCCEEDED)
        self._logger.info(
            f"Account-service sign-in succeeded: dsid={account.directory_services_id}, "
            f"store={account.store_region_code or '(none)'}, pod={account.pod_hint or '(none)'}"
        )
        return account
    
    def _follow_redirect(self, attempt: SignInAttempt, response: HttpResponse) -> None:
        location = response.header('location')
        if not location:
            raise attempt.fail(AuthError("Redirect response has no Location header", status=302))
        
        current = f"https://{attempt.host}{attempt.path}"
        attempt.host, attempt.path = split_target(urljoin(current, location))
        # A redirect does not consume a credential attempt
        attempt.credential_attempts -= 1
        attempt.redirect_hops += 1
        self._logger.info(f"302 redirect -> {attempt.host}{attempt.path}")
        
        if attempt.redirect_hops > self._config.max_redirects:
            attempt.last_error = TransportError(
                f"Too many redirects ({attempt.redirect_hops})", status=302
            )
        else:
            attempt.transition(SignInState.REDIRECTING)
    
    @staticmethod
    def _failure_message(document: Dict[str, Any]) -> Optional[str]:
        """dialog.explanation, else customerMessage, else None."""
        dialog = document.get('dialog')
        if isinstance(dialog, dict) and dialog.get('explanation'):
            return str(dialog['explanation'])
        if document.get('customerMessage'):
            return str(document['customerMessage'])
        return None


def _stringify(value: Any) -> str:
    if value is None:
        return ''
    return str(value)
