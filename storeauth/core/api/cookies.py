"""
Cookie set merged across every HTTP exchange of a login attempt.

Cookies are keyed by (name, domain); a later Set-Cookie for the same key
replaces the earlier value. Sets are immutable: merging returns a new set.
"""
from dataclasses import dataclass
from http.cookiejar import parse_ns_headers
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from ..logging import get_logger

logger = get_logger('storeauth.transport')

CookieKey = Tuple[str, str]


@dataclass(frozen=True)
class Cookie:
    """
    A single cookie as received from a Set-Cookie header.
    
    Attributes:
        name: Cookie name
        value: Cookie value as received
        domain: Normalized domain (no leading dot, lowercase)
        path: Path prefix the cookie applies to
        expires: Expiry as epoch seconds, None for a session cookie
        max_age: Max-Age in seconds, relative to receipt
    """
    name: str
    value: str
    domain: str
    path: str = '/'
    expires: Optional[int] = None
    max_age: Optional[int] = None
    
    @property
    def key(self) -> CookieKey:
        return (self.name, self.domain)
    
    def matches(self, host: str, path: str = '/') -> bool:
        """Check whether this cookie should be sent to host and path."""
        host = host.lower()
        if host != self.domain and not host.endswith('.' + self.domain):
            return False
        return _path_matches(path or '/', self.path)
    
    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'value': self.value,
            'domain': self.domain,
            'path': self.path,
            'expires': self.expires,
            'max_age': self.max_age,
        }
    
    @classmethod
    def from_dict(cls, data: dict) -> 'Cookie':
        return cls(
            name=data['name'],
            value=data['value'],
            domain=_normalize_domain(data['domain']),
            path=data.get('path') or '/',
            expires=data.get('expires'),
            max_age=data.get('max_age'),
        )


class CookieSet(Mapping[CookieKey, Cookie]):
    """Immutable mapping from (name, domain) to Cookie."""
    
    def __init__(self, cookies: Iterable[Cookie] = ()):
        self._cookies: Dict[CookieKey, Cookie] = {}
        for cookie in cookies:
            self._cookies[cookie.key] = cookie
    
    def __getitem__(self, key: CookieKey) -> Cookie:
        return self._cookies[key]
    
    def __iter__(self) -> Iterator[CookieKey]:
        return iter(self._cookies)
    
    def __len__(self) -> int:
        return len(self._cookies)
    
    def __eq__(self, other) -> bool:
        if isinstance(other, CookieSet):
            return self._cookies == other._cookies
        return NotImplemented
    
    def __repr__(self) -> str:
        names = ', '.join(f"{n}@{d}" for n, d in self._cookies)
        return f"CookieSet({names})"
    
    def value(self, name: str, domain: Optional[str] = None) -> Optional[str]:
        """Return the value of a cookie by name (and optionally domain)."""
        for cookie in self._cookies.values():
            if cookie.name == name and (domain is None or cookie.domain == _normalize_domain(domain)):
                return cookie.value
        return None
    
    def for_host(self, host: str, path: str = '/') -> List[Cookie]:
        """Cookies that should accompany a request to host and path."""
        return [c for c in self._cookies.values() if c.matches(host, path)]
    
    def updated(self, cookies: Iterable[Cookie]) -> 'CookieSet':
        """Return a new set with cookies added or replaced."""
        return CookieSet(list(self._cookies.values()) + list(cookies))
    
    def to_list(self) -> List[dict]:
        """Serialize for caller-side persistence."""
        return [c.to_dict() for c in self._cookies.values()]
    
    @classmethod
    def from_list(cls, data: Iterable[dict]) -> 'CookieSet':
        return cls(Cookie.from_dict(item) for item in data)


def _normalize_domain(domain: str) -> str:
    return domain.strip().lstrip('.').lower()


def _path_matches(request_path: str, cookie_path: str) -> bool:
    # RFC 6265 5.1.4
    request_path = request_path.split('?', 1)[0] or '/'
    if request_path == cookie_path:
        return True
    if not request_path.startswith(cookie_path):
        return False
    return cookie_path.endswith('/') or request_path[len(cookie_path)] == '/'


def parse_set_cookie(header_value: str, default_domain: str) -> List[Cookie]:
    """
    Parse one Set-Cookie header value.
    
    The leading name=value pair is the cookie; domain, path, expires and
    max-age are read case-insensitively and every other attribute or flag
    (Secure, HttpOnly, SameSite, Priority, Partitioned, ...) is ignored.
    
    Args:
        header_value: Raw header value
        default_domain: Domain to use when the cookie carries none
    
    Returns:
        The parsed cookie as a one-element list, or [] if the header has no
        name=value pair
    """
    parsed = parse_ns_headers([header_value])
    if not parsed:
        return []
    
    (name, value), attributes = parsed[0][0], dict(parsed[0][1:])
    if not name or value is None:
        logger.debug(f"Ignoring Set-Cookie header without name=value: {header_value[:40]!r}")
        return []
    
    expires = attributes.get('expires')
    max_age = attributes.get('max-age')
    try:
        max_age = int(max_age) if max_age is not None else None
    except ValueError:
        logger.debug(f"Ignoring malformed Max-Age {max_age!r} on cookie {name}")
        max_age = None
    
    return [Cookie(
        name=name,
        value=value,
        domain=_normalize_domain(attributes.get('domain') or default_domain),
        path=attributes.get('path') or '/',
        expires=int(expires) if expires is not None else None,
        max_age=max_age,
    )]


def merge_cookies(
    existing: Optional[CookieSet],
    raw_headers: Iterable[Tuple[str, str]],
    default_domain: str
) -> CookieSet:
    """
    Merge Set-Cookie headers from a response into a cookie set.
    
    Applying the same response twice yields the same set.
    
    Args:
        existing: Cookies accumulated so far (None for an empty set)
        raw_headers: Response headers as (name, value) pairs, original form
        default_domain: Request host, used for cookies without a domain
    
    Returns:
        New CookieSet
    """
    received: List[Cookie] = []
    for name, value in raw_headers:
        if name.lower() == 'set-cookie':
            received.extend(parse_set_cookie(value, default_domain))
    
    base = existing if existing is not None else CookieSet()
    if not received:
        return base
    return base.updated(received)


def cookie_header(cookies: Optional[CookieSet], host: str, path: str = '/') -> Optional[str]:
    """Build a Cookie request header value for host and path, or None if nothing matches."""
    if not cookies:
        return None
    matching = cookies.for_host(host, path)
    if not matching:
        return None
    return '; '.join(f"{c.name}={c.value}" for c in matching)
