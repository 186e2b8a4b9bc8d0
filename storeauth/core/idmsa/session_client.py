"""
Identity-provider (idmsa) session client.

Signs in with the SRP-6a GSA handshake (signin/init + signin/complete) and
drives the SMS second-factor calls against the resulting session.
"""
import json
import uuid
from typing import Any, Callable, Dict, Optional

from Crypto.Random import get_random_bytes

from ..api.config import AuthConfig, IdmsaConfig
from ..api.transport import HttpRequest, HttpResponse, Transport
from ..crypto import Base64Encoder, SRPClient, derive_password
from ..crypto.key_derivation import SUPPORTED_PROTOCOLS
from ..exceptions import AuthError, ProtocolError, TransportError
from ..logging import get_logger, mask
from .models import IdmsaSession, PhoneEnumerationResult

SIGNIN_INIT_PATH = '/appleauth/auth/signin/init'
SIGNIN_COMPLETE_PATH = '/appleauth/auth/signin/complete?isRememberMeEnabled=true'
AUTH_INFO_PATH = '/appleauth/auth'
VERIFY_PHONE_PATH = '/appleauth/auth/verify/phone'
VERIFY_CODE_PATH = '/appleauth/auth/verify/phone/securitycode'
TRUST_PATH = '/appleauth/auth/2sv/trust'

SESSION_ID_HEADER = 'X-Apple-ID-Session-Id'
SEQUENCE_TOKEN_HEADER = 'scnt'
TRUST_TOKEN_HEADER = 'X-Apple-TwoSV-Trust-Token'


def default_state_factory() -> str:
    """Fresh opaque OAuth state value."""
    return f"auth-{uuid.uuid4()}"


class IdmsaClient:
    """
    Client for the identity provider's SRP sign-in and SMS 2FA endpoints.
    
    One instance may serve several sessions, but a single session must not
    be used by two calls at once.
    """
    
    def __init__(
        self,
        transport: Transport,
        config: Optional[AuthConfig] = None,
        state_factory: Callable[[], str] = default_state_factory,
        random_bytes: Callable[[int], bytes] = get_random_bytes
    ):
        """
        Initialize idmsa client.
        
        Args:
            transport: HTTP transport
            config: Configuration (uses defaults if not provided)
            state_factory: Source of per-call OAuth state values
            random_bytes: Randomness source for SRP ephemerals
        """
        self._transport = transport
        self._config: IdmsaConfig = (config or AuthConfig.default()).idmsa
        self._state_factory = state_factory
        self._random_bytes = random_bytes
        self._encoder = Base64Encoder()
        self._logger = get_logger('storeauth.idmsa')
    
    def _headers(self, session: Optional[IdmsaSession] = None) -> Dict[str, str]:
        """Builds the fixed idmsa header set, plus session headers if given."""
        cfg = self._config
        headers = {
            'User-Agent': cfg.user_agent,
            'Content-Type': 'application/json',
            'Accept': 'application/json',
            'X-Apple-Widget-Key': cfg.widget_key,
            'X-Apple-OAuth-Client-Id': cfg.widget_key,
            'X-Apple-OAuth-Client-Type': 'firstPartyAuth',
            'X-Apple-OAuth-Redirect-URI': cfg.redirect_uri,
            'X-Apple-OAuth-Require-Grant-Code': 'true',
            'X-Apple-OAuth-Response-Mode': 'web_message',
            'X-Apple-OAuth-Response-Type': 'code',
            'X-Apple-OAuth-State': self._state_factory(),
            'Origin': cfg.origin,
            'Referer': f"{cfg.origin}/",
        }
        if session is not None:
            headers[SESSION_ID_HEADER] = session.session_id
            headers[SEQUENCE_TOKEN_HEADER] = session.sequence_token
        return headers
    
    async def _send(
        self,
        method: str,
        path: str,
        session: Optional[IdmsaSession] = None,
        payload: Optional[Dict[str, Any]] = None
    ) -> HttpResponse:
        request = HttpRequest(
            host=self._config.host,
            path=path,
            method=method,
            headers=self._headers(session),
            body=json.dumps(payload) if payload is not None else None,
        )
        response = await self._transport.request(request)
        self._logger.debug(f"{method} {path} -> HTTP {response.status}")
        return response
    
    @staticmethod
    def _parse_json(response: HttpResponse, what: str) -> Dict[str, Any]:
        try:
            data = json.loads(response.body)
        except ValueError as e:
            raise TransportError(f"IDMSA {what}: unparseable response body", status=response.status) from e
        if not isinstance(data, dict):
            raise TransportError(f"IDMSA {what}: unexpected response body", status=response.status)
        return data
    
    @staticmethod
    def _failed(what: str, response: HttpResponse) -> TransportError:
        return TransportError(
            f"IDMSA {what} failed: HTTP {response.status} {response.status_text}".rstrip(),
            status=response.status
        )
    
    async def sign_in(self, email: str, password: str) -> IdmsaSession:
        """
        Signs in with SRP and returns the session identifiers.
        
        Both HTTP 200 (no second factor needed) and HTTP 409 (second factor
        needed) from signin/complete count as success.
        
        Args:
            email: Account name
            password: Account password
            
        Returns:
            IdmsaSession with session id and sequence token
            
        Raises:
            TransportError: If init or complete returns an unexpected status
            ProtocolError: If the init response is malformed or degenerate
            AuthError: If the session headers are missing
        """
        srp = SRPClient(email.encode('utf-8'), random_bytes=self._random_bytes)
        client_public = srp.compute_client_public()
        
        # Step 1: signin/init with A
        init_resp = await self._send('POST', SIGNIN_INIT_PATH, payload={
            'a': self._encoder.encode(client_public),
            'accountName': email,
            'protocols': list(SUPPORTED_PROTOCOLS),
        })
        if init_resp.status != 200:
            raise self._failed('signin/init', init_resp)
        
        init_data = self._parse_json(init_resp, 'signin/init')
        try:
            iterations = init_data['iteration']
            salt = self._encoder.decode(init_data['salt'])
            protocol = init_data['protocol']
            server_public = self._encoder.decode(init_data['b'])
            challenge = init_data['c']
        except KeyError as e:
            raise ProtocolError(f"IDMSA signin/init response missing field {e}") from None
        
        if protocol not in SUPPORTED_PROTOCOLS:
            raise ProtocolError(f"IDMSA signin/init returned unsupported protocol {protocol!r}")
        
        # Step 2: derive key, then proofs
        self._logger.debug(f"signin/init ok: protocol={protocol}, iterations={iterations}")
        srp.set_derived_key(derive_password(protocol, password, salt, iterations))
        proofs = srp.generate_proofs(salt, server_public)
        
        # Step 3: signin/complete with M1 and the client-computed M2
        complete_resp = await self._send('POST', SIGNIN_COMPLETE_PATH, payload={
            'accountName': email,
            'c': challenge,
            'm1': self._encoder.encode(proofs.m1),
            'm2': self._encoder.encode(proofs.m2),
            'rememberMe': False,
            'trustTokens': [],
        })
        if complete_resp.status not in (200, 409):
            raise self._failed('signin/complete', complete_resp)
        
        session_id = complete_resp.header(SESSION_ID_HEADER)
        sequence_token = complete_resp.header(SEQUENCE_TOKEN_HEADER)
        if not session_id or not sequence_token:
            raise AuthError("IDMSA signin: missing session headers", status=complete_resp.status)
        
        self._logger.info(
            f"IDMSA signin complete (HTTP {complete_resp.status}, "
            f"second factor {'required' if complete_resp.status == 409 else 'not required'})"
        )
        return IdmsaSession(session_id=session_id, sequence_token=sequence_token)
    
    async def list_trusted_phones(self, session: IdmsaSession) -> PhoneEnumerationResult:
        """
        Fetches trusted phone numbers and security-code rate-limit flags.
        
        Raises:
            TransportError: If the status is not 200 or the body is unparseable
        """
        resp = await self._send('GET', AUTH_INFO_PATH, session)
        if resp.status != 200:
            raise self._failed('get auth info', resp)
        
        result = PhoneEnumerationResult.from_dict(self._parse_json(resp, 'get auth info'))
        self._logger.info(
            f"IDMSA trusted phones: {len(result.phones)} "
            f"(cooldown={result.cooldown_active}, tooManyCodes={result.too_many_codes_sent}, "
            f"locked={result.code_delivery_locked})"
        )
        return result
    
    async def send_sms(self, session: IdmsaSession, phone_id: int) -> None:
        """
        Requests an SMS security code to the given phone.
        
        Raises:
            TransportError: Unless the status is 200 or 202
        """
        resp = await self._send('PUT', VERIFY_PHONE_PATH, session, {
            'phoneNumber': {'id': phone_id},
            'mode': 'sms',
        })
        if resp.status not in (200, 202):
            raise self._failed('SMS request', resp)
        self._logger.info(f"IDMSA SMS sent to phone id {phone_id}")
    
    async def verify_sms_code(self, session: IdmsaSession, phone_id: int, code: str) -> None:
        """
        Verifies an SMS security code.
        
        Must succeed before the account-service sign-in is attempted with
        the second factor marked as satisfied.
        
        Raises:
            TransportError: Unless the status is 200 or 204
        """
        self._logger.debug(f"Verifying SMS code for phone id {phone_id}")
        resp = await self._send('POST', VERIFY_CODE_PATH, session, {
            'phoneNumber': {'id': phone_id},
            'securityCode': {'code': code},
            'mode': 'sms',
        })
        if resp.status not in (200, 204):
            raise self._failed('SMS verify', resp)
        self._logger.info("IDMSA SMS code verified")
    
    async def fetch_trust_token(self, session: IdmsaSession) -> str:
        """
        Requests a trust token after a successful second factor.
        
        Returns:
            The token, or '' if the response carries none
            
        Raises:
            TransportError: Unless the status is 200 or 204
        """
        resp = await self._send('GET', TRUST_PATH, session)
        if resp.status not in (200, 204):
            raise self._failed('trust token request', resp)
        
        token = resp.header(TRUST_TOKEN_HEADER, '') or ''
        self._logger.info(f"IDMSA trust token: {mask(token)}")
        return token
