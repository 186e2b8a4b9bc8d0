"""Pytest fixtures for storeauth tests."""
import json
import plistlib
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from storeauth.core.api.config import AuthConfig
from storeauth.core.api.transport import HttpRequest, HttpResponse

AUTH_URL = 'https://p25-buy.itunes.apple.com/WebObjects/MZFinance.woa/wa/authenticate'
DEVICE_ID = 'AABBCCDDEEFF'


class FakeTransport:
    """Replays scripted responses in order and records every request."""
    
    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.requests: List[HttpRequest] = []
    
    def queue(self, *responses):
        self.responses.extend(responses)
    
    @property
    def call_count(self) -> int:
        return len(self.requests)
    
    async def request(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def json_response(status: int, data: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> HttpResponse:
    return HttpResponse(status=status, headers=headers or {}, body=json.dumps(data))


def plist_response(
    data: Dict[str, Any],
    status: int = 200,
    headers: Optional[Dict[str, str]] = None,
    raw_headers=None
) -> HttpResponse:
    return HttpResponse(
        status=status,
        headers=headers or {},
        raw_headers=raw_headers or [],
        body=plistlib.dumps(data).decode('utf-8'),
    )


def success_document(ds_person_id=123456789) -> Dict[str, Any]:
    return {
        'accountInfo': {
            'appleId': 'user@example.com',
            'address': {'firstName': 'Jane', 'lastName': 'Appleseed'},
        },
        'passwordToken': 'token-abc',
        'dsPersonId': ds_person_id,
    }


@pytest.fixture
def config():
    """Default configuration."""
    return AuthConfig.default()


@pytest.fixture
def transport():
    """Empty scripted transport."""
    return FakeTransport()


@pytest.fixture
def bag():
    """Service-discovery stub returning a fixed authenticate URL."""
    stub = Mock()
    stub.fetch_auth_url = AsyncMock(return_value=AUTH_URL)
    return stub


@pytest.fixture
def fixed_random():
    """Deterministic randomness source."""
    return lambda n: bytes([0x5A]) * n
