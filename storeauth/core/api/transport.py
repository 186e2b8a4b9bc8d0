"""
HTTP transport for the authentication core.

The core only specifies what is sent and how responses are read. Requests
and responses are plain dataclasses so any Transport implementation (the
aiohttp one below, or a scripted fake in tests) can carry them.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

import aiohttp

from .config import AuthConfig
from .cookies import CookieSet, cookie_header
from ..exceptions import TransportError
from ..logging import get_logger


@dataclass
class HttpRequest:
    """A single outbound HTTP exchange."""
    host: str
    path: str
    method: str = 'GET'
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    cookies: Optional[CookieSet] = None
    scheme: str = 'https'
    
    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}{self.path}"


@dataclass
class HttpResponse:
    """
    Response to an HttpRequest.
    
    Attributes:
        status: HTTP status code
        status_text: Reason phrase
        headers: Header mapping with lowercased names
        raw_headers: Headers as (name, value) pairs in original form,
            including every Set-Cookie line
        body: Decoded response body
    """
    status: int
    status_text: str = ''
    headers: Dict[str, str] = field(default_factory=dict)
    raw_headers: List[Tuple[str, str]] = field(default_factory=list)
    body: str = ''
    
    def __post_init__(self):
        self.headers = {k.lower(): v for k, v in self.headers.items()}
    
    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


@runtime_checkable
class Transport(Protocol):
    """Protocol for HTTP transports used by the authentication clients."""
    
    async def request(self, request: HttpRequest) -> HttpResponse:
        """
        Perform one HTTP exchange.
        
        Args:
            request: Request to send
            
        Returns:
            Response (any status; redirects are not followed)
            
        Raises:
            TransportError: If the exchange could not be completed
        """
        ...


class AiohttpTransport:
    """
    aiohttp-backed Transport.
    
    Example:
        >>> async with AiohttpTransport(AuthConfig.default()) as transport:
        ...     resp = await transport.request(HttpRequest('idmsa.apple.com', '/'))
    """
    
    def __init__(self, config: Optional[AuthConfig] = None):
        """
        Initialize transport.
        
        Args:
            config: Configuration (uses defaults if not provided)
        """
        self._config = config or AuthConfig.default()
        self._session: Optional[aiohttp.ClientSession] = None
        self._connector: Optional[aiohttp.TCPConnector] = None
        
        self._logger = get_logger('storeauth.transport')
        root_logger = logging.getLogger()
        if not root_logger.handlers:
            self._logger.setLevel(self._config.log_level)
    
    @property
    def config(self) -> AuthConfig:
        return self._config
    
    async def __aenter__(self) -> 'AiohttpTransport':
        await self._ensure_session()
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
    
    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session is created and open."""
        if self._session is None or self._session.closed:
            self._connector = aiohttp.TCPConnector(
                **self._config.get_connector_kwargs()
            )
            # Cookies are carried explicitly in HttpRequest.cookies
            self._session = aiohttp.ClientSession(
                connector=self._connector,
                cookie_jar=aiohttp.DummyCookieJar(),
                **self._config.get_session_kwargs()
            )
        return self._session
    
    async def close(self):
        """Close transport and release resources."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
        
        if self._connector and not self._connector.closed:
            await self._connector.close()
            self._connector = None
    
    async def request(self, request: HttpRequest) -> HttpResponse:
        session = await self._ensure_session()
        
        headers = dict(request.headers)
        cookie_value = cookie_header(request.cookies, request.host, request.path)
        if cookie_value:
            headers['Cookie'] = cookie_value
        
        self._logger.debug(f"{request.method} {request.url}")
        
        try:
            async with session.request(
                request.method,
                request.url,
                data=request.body.encode('utf-8') if request.body is not None else None,
                headers=headers,
                allow_redirects=False,
                **self._config.get_request_kwargs()
            ) as response:
                body = await response.text(errors='replace')
                raw_headers = [
                    (name.decode('latin-1'), value.decode('latin-1'))
                    for name, value in response.raw_headers
                ]
                result = HttpResponse(
                    status=response.status,
                    status_text=response.reason or '',
                    headers={k: v for k, v in response.headers.items()},
                    raw_headers=raw_headers,
                    body=body,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._logger.error(f"Network error on {request.method} {request.host}{request.path}: {e}")
            raise TransportError(f"Network error: {e}") from e
        
        self._logger.debug(f"{request.method} {request.url} -> HTTP {result.status}")
        return result
