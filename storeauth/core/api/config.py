"""
Configuration for the identity-provider and account-service clients.

Endpoints and client metadata live in IdmsaConfig and StoreConfig; the
remaining dataclasses shape the aiohttp session used by AiohttpTransport.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union
import ssl

import aiohttp


@dataclass
class ProxyConfig:
    """
    Outbound proxy.
    
    Credentials are sent as proxy basic auth, never embedded in the URL.
    """
    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    
    def request_kwargs(self) -> Dict[str, Any]:
        """proxy/proxy_auth keyword arguments for ClientSession.request."""
        if not self.url:
            return {}
        kwargs: Dict[str, Any] = {'proxy': self.url}
        if self.username:
            kwargs['proxy_auth'] = aiohttp.BasicAuth(self.username, self.password or '')
        return kwargs


@dataclass
class SSLConfig:
    """TLS settings for the connector."""
    verify: bool = True
    ca_file: Optional[str] = None
    check_hostname: bool = True
    
    def create_ssl_context(self) -> Union[ssl.SSLContext, bool]:
        """SSLContext for the connector, or False to skip verification."""
        if not self.verify:
            return False
        context = ssl.create_default_context(cafile=self.ca_file)
        context.check_hostname = self.check_hostname
        return context


@dataclass
class TimeoutConfig:
    """
    Per-exchange timeouts in seconds.
    
    The sign-in flows set no deadlines of their own; these bound each
    HTTP exchange the transport performs.
    """
    total: float = 60.0
    connect: float = 15.0
    sock_read: float = 30.0
    
    def to_aiohttp_timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.total, connect=self.connect, sock_read=self.sock_read)


@dataclass
class IdmsaConfig:
    """Identity-provider (idmsa) endpoint and client metadata."""
    host: str = 'idmsa.apple.com'
    # Public iCloud web widget key
    widget_key: str = 'd39ba9916b7251055b22c7f910e2ea796ee65e98b2ddecea8f5dde8d9d1a815d'
    redirect_uri: str = 'https://www.icloud.com'
    origin: str = 'https://www.icloud.com'
    # idmsa rejects non-browser user agents
    user_agent: str = (
        'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 '
        '(KHTML, like Gecko) Version/17.6 Safari/605.1.15'
    )


@dataclass
class StoreConfig:
    """Account-service (MZFinance) endpoint configuration."""
    bag_url: str = 'https://init.itunes.apple.com/bag.xml'
    default_auth_url: str = 'https://buy.itunes.apple.com/WebObjects/MZFinance.woa/wa/authenticate'
    user_agent: str = 'Configurator/2.17 (Macintosh; OS X 15.2; 24C5089c) AppleWebKit/0620.1.16.11.6'
    verification_sentinel: str = 'MZFinance.BadLogin.Configurator_message'
    max_credential_attempts: int = 2
    max_redirects: int = 3


@dataclass
class AuthConfig:
    """
    Top-level configuration handed to StoreAuthClient and its collaborators.
    
    Attributes:
        idmsa: Identity-provider endpoint settings
        store: Account-service endpoint settings and loop bounds
        proxy: Optional outbound proxy
        ssl: TLS settings
        timeout: Per-exchange timeouts
        extra_headers: Headers added to every request
        log_level: Level applied to the transport logger when logging is unconfigured
        limit: Connector pool size
        limit_per_host: Connector pool size per host
    """
    idmsa: IdmsaConfig = field(default_factory=IdmsaConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    proxy: Optional[ProxyConfig] = None
    ssl: SSLConfig = field(default_factory=SSLConfig)
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    extra_headers: Dict[str, str] = field(default_factory=dict)
    log_level: int = 20  # logging.INFO
    limit: int = 16
    limit_per_host: int = 4
    
    @classmethod
    def default(cls) -> 'AuthConfig':
        return cls()
    
    @classmethod
    def with_proxy(
        cls,
        proxy_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        **kwargs
    ) -> 'AuthConfig':
        """Configuration routed through an HTTP(S) proxy."""
        return cls(proxy=ProxyConfig(proxy_url, username, password), **kwargs)
    
    @classmethod
    def insecure(cls, **kwargs) -> 'AuthConfig':
        """Configuration that skips TLS verification (debugging proxies only)."""
        return cls(ssl=SSLConfig(verify=False, check_hostname=False), **kwargs)
    
    def get_connector_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for aiohttp.TCPConnector."""
        return dict(
            limit=self.limit,
            limit_per_host=self.limit_per_host,
            ssl=self.ssl.create_ssl_context(),
        )
    
    def get_session_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for aiohttp.ClientSession."""
        return dict(
            headers=dict(self.extra_headers),
            timeout=self.timeout.to_aiohttp_timeout(),
        )
    
    def get_request_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments added to each ClientSession.request call."""
        return self.proxy.request_kwargs() if self.proxy else {}
