"""HTTP transport, cookies and configuration."""
from .config import AuthConfig, IdmsaConfig, StoreConfig, ProxyConfig, SSLConfig, TimeoutConfig
from .cookies import Cookie, CookieSet, merge_cookies, cookie_header
from .transport import HttpRequest, HttpResponse, Transport, AiohttpTransport

__all__ = [
    'AuthConfig',
    'IdmsaConfig',
    'StoreConfig',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',
    'Cookie',
    'CookieSet',
    'merge_cookies',
    'cookie_header',
    'HttpRequest',
    'HttpResponse',
    'Transport',
    'AiohttpTransport',
]
