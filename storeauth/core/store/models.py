"""
Account-service data models.
"""
from dataclasses import dataclass, field
from typing import Optional

from ..api.cookies import CookieSet


@dataclass
class AuthenticatedAccount:
    """
    Result of a successful account-service sign-in.
    
    Attributes:
        email: Account email used to sign in
        password: Account password (caller-owned, never persisted here)
        provider_account_id: accountInfo.appleId
        store_region_code: Store-front id from x-set-apple-store-front
        first_name: accountInfo.address.firstName
        last_name: accountInfo.address.lastName
        password_token: passwordToken
        directory_services_id: dsPersonId, stringified
        cookies: Cookies accumulated over the attempt
        device_identifier: Device id (guid) the sign-in used
        pod_hint: pod response header, if present
    """
    email: str
    password: str = field(repr=False)
    provider_account_id: str
    store_region_code: str
    first_name: str
    last_name: str
    password_token: str = field(repr=False)
    directory_services_id: str
    cookies: CookieSet = field(default_factory=CookieSet, repr=False)
    device_identifier: str = ''
    pod_hint: Optional[str] = None
    
    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
