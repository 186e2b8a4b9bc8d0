"""
Service discovery through the store's URL bag.

The authenticate endpoint can move server-side, so it is looked up on
every sign-in instead of being cached.
"""
from typing import Optional
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

from ..api.config import AuthConfig, StoreConfig
from ..api.transport import HttpRequest, Transport
from ..exceptions import TransportError
from ..logging import get_logger
from .plist import parse_plist

AUTH_URL_KEY = 'authenticateAccount'


def with_query(url: str, **params: str) -> str:
    """Returns url with params set in its query string (replacing existing values)."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in params]
    query.extend(params.items())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def split_target(url: str):
    """Splits a URL into (host, path-with-query)."""
    parts = urlsplit(url)
    path = parts.path or '/'
    if parts.query:
        path = f"{path}?{parts.query}"
    return parts.hostname or '', path


class BagClient:
    """Looks up the current account-service authenticate URL."""
    
    def __init__(self, transport: Transport, config: Optional[AuthConfig] = None):
        self._transport = transport
        self._config: StoreConfig = (config or AuthConfig.default()).store
        self._logger = get_logger('storeauth.store')
    
    async def fetch_auth_url(self, device_id: str) -> str:
        """
        Fetches the bag and returns the authenticate URL.
        
        Falls back to the configured default when the bag has no
        authenticateAccount entry.
        
        Args:
            device_id: Device identifier, sent as guid
            
        Returns:
            Authenticate URL (without the guid parameter)
            
        Raises:
            TransportError: If the bag cannot be fetched or parsed
        """
        host, path = split_target(with_query(self._config.bag_url, guid=device_id))
        response = await self._transport.request(HttpRequest(
            host=host,
            path=path,
            method='GET',
            headers={'User-Agent': self._config.user_agent, 'Accept': 'application/xml'},
        ))
        if response.status != 200:
            raise TransportError(
                f"Bag request failed: HTTP {response.status} {response.status_text}".rstrip(),
                status=response.status
            )
        
        bag = parse_plist(response.body)
        url_bag = bag.get('urlBag')
        auth_url = None
        if isinstance(url_bag, dict):
            auth_url = url_bag.get(AUTH_URL_KEY)
        if not auth_url:
            auth_url = bag.get(AUTH_URL_KEY)
        
        if not auth_url:
            self._logger.info("Bag has no authenticateAccount entry; using default endpoint")
            return self._config.default_auth_url
        return str(auth_url)
