"""Tests for the account-service sign-in state machine."""
from urllib.parse import parse_qs

import pytest

from conftest import AUTH_URL, DEVICE_ID, plist_response, success_document
from storeauth.core.api.cookies import Cookie, CookieSet
from storeauth.core.api.transport import HttpResponse
from storeauth.core.exceptions import (
    AccountLocked,
    AuthError,
    InputError,
    TransportError,
    VerificationRequired,
)
from storeauth.core.store import SignInState, StoreAuthenticator


EMAIL = 'user@example.com'
PASSWORD = 'hunter2'
SENTINEL = 'MZFinance.BadLogin.Configurator_message'


def redirect(location='https://p26-buy.itunes.apple.com/WebObjects/MZFinance.woa/wa/authenticate'):
    return HttpResponse(status=302, headers={'Location': location})


def failure(failure_type, message='Your Apple ID or password was entered incorrectly.'):
    return plist_response({'failureType': failure_type, 'customerMessage': message})


def form(request):
    return {k: v[0] for k, v in parse_qs(request.body).items()}


@pytest.fixture
def authenticator(transport, bag):
    """Authenticator over the scripted transport and bag stub."""
    return StoreAuthenticator(transport, bag=bag)


class TestSuccess:
    """Test suite for successful sign-in."""
    
    @pytest.mark.asyncio
    async def test_account_fields(self, transport, authenticator):
        """Test account fields are read from the success document."""
        transport.queue(plist_response(
            success_document(),
            headers={'x-set-apple-store-front': '143441-1,29', 'pod': '25'},
        ))
        
        account = await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert account.email == EMAIL
        assert account.password == PASSWORD
        assert account.provider_account_id == 'user@example.com'
        assert account.first_name == 'Jane'
        assert account.last_name == 'Appleseed'
        assert account.display_name == 'Jane Appleseed'
        assert account.password_token == 'token-abc'
        assert account.directory_services_id == '123456789'
        assert account.store_region_code == '143441'
        assert account.device_identifier == DEVICE_ID
        assert account.pod_hint == '25'
        assert transport.call_count == 1
    
    @pytest.mark.asyncio
    async def test_string_ds_person_id(self, transport, authenticator):
        """Test a string dsPersonId is kept as-is."""
        transport.queue(plist_response(success_document(ds_person_id='987')))
        
        account = await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert account.directory_services_id == '987'
    
    @pytest.mark.asyncio
    async def test_secrets_not_in_repr(self, transport, authenticator):
        """Test password and token are left out of repr."""
        transport.queue(plist_response(success_document()))
        
        account = await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert PASSWORD not in repr(account)
        assert 'token-abc' not in repr(account)
    
    @pytest.mark.asyncio
    async def test_missing_store_front_is_lenient(self, transport, authenticator):
        """Test a missing store-front header leaves the region empty."""
        transport.queue(plist_response(success_document()))
        
        account = await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert account.store_region_code == ''
        assert account.pod_hint is None
    
    @pytest.mark.asyncio
    async def test_store_front_kept_across_redirect(self, transport, authenticator):
        """Test a store front seen on a redirect survives a success without one."""
        transport.queue(
            HttpResponse(status=302, headers={
                'Location': 'https://p26-buy.itunes.apple.com/WebObjects/MZFinance.woa/wa/authenticate',
                'x-set-apple-store-front': '143441-1,29',
            }),
            plist_response(success_document()),
        )
        
        account = await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert account.store_region_code == '143441'
        assert transport.call_count == 2
    
    @pytest.mark.asyncio
    async def test_empty_store_front_does_not_overwrite(self, transport, authenticator):
        """Test a store front with an empty country part keeps the earlier one."""
        transport.queue(
            HttpResponse(status=302, headers={
                'Location': 'https://p26-buy.itunes.apple.com/WebObjects/MZFinance.woa/wa/authenticate',
                'x-set-apple-store-front': '143441-1,29',
            }),
            plist_response(success_document(), headers={'x-set-apple-store-front': '-1,29'}),
        )
        
        account = await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert account.store_region_code == '143441'
    
    @pytest.mark.asyncio
    async def test_empty_store_front_alone(self, transport, authenticator):
        """Test a store front with an empty country part yields no region."""
        transport.queue(plist_response(success_document(), headers={'x-set-apple-store-front': '-1,29'}))
        
        account = await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert account.store_region_code == ''
    
    @pytest.mark.asyncio
    async def test_history(self, transport, authenticator):
        """Test a direct success passes through SENDING to SUCCEEDED."""
        transport.queue(plist_response(success_document()))
        
        await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert authenticator.last_attempt.history == [SignInState.SENDING, SignInState.SUCCEEDED]


class TestRequest:
    """Test suite for the credential request itself."""
    
    @pytest.mark.asyncio
    async def test_target_and_headers(self, transport, authenticator, bag):
        """Test the POST goes to the bag URL with guid in the query."""
        transport.queue(plist_response(success_document()))
        
        await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        request = transport.requests[0]
        bag.fetch_auth_url.assert_awaited_once_with(DEVICE_ID)
        assert request.method == 'POST'
        assert request.host == 'p25-buy.itunes.apple.com'
        assert request.path == f'/WebObjects/MZFinance.woa/wa/authenticate?guid={DEVICE_ID}'
        assert request.headers['Content-Type'] == 'application/x-www-form-urlencoded'
        assert request.headers['User-Agent'].startswith('Configurator/')
    
    @pytest.mark.asyncio
    async def test_password_only_form(self, transport, authenticator):
        """Test the form without a code uses attempt marker 4."""
        transport.queue(plist_response(success_document()))
        
        await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert form(transport.requests[0]) == {
            'appleId': EMAIL,
            'attempt': '4',
            'guid': DEVICE_ID,
            'password': PASSWORD,
            'rmp': '0',
            'why': 'signIn',
        }
    
    @pytest.mark.asyncio
    async def test_code_appended_to_password(self, transport, authenticator):
        """Test a device code is appended and uses attempt marker 2."""
        transport.queue(plist_response(success_document()))
        
        await authenticator.sign_in(EMAIL, PASSWORD, code='123456', device_id=DEVICE_ID)
        
        body = form(transport.requests[0])
        assert body['password'] == 'hunter2123456'
        assert body['attempt'] == '2'
    
    @pytest.mark.asyncio
    async def test_second_factor_satisfied_sends_plain_password(self, transport, authenticator):
        """Test an SMS-verified sign-in does not append the code."""
        transport.queue(plist_response(success_document()))
        
        await authenticator.sign_in(
            EMAIL, PASSWORD, code='123456', device_id=DEVICE_ID, second_factor_satisfied=True
        )
        
        body = form(transport.requests[0])
        assert body['password'] == PASSWORD
        assert body['attempt'] == '4'
    
    @pytest.mark.asyncio
    async def test_missing_device_id(self, transport, authenticator, bag):
        """Test an empty device id is rejected before any request."""
        with pytest.raises(InputError):
            await authenticator.sign_in(EMAIL, PASSWORD, device_id='')
        
        bag.fetch_auth_url.assert_not_awaited()
        assert transport.call_count == 0
    
    @pytest.mark.asyncio
    async def test_missing_email(self, transport, authenticator):
        """Test an empty email is rejected."""
        with pytest.raises(InputError):
            await authenticator.sign_in('', PASSWORD, device_id=DEVICE_ID)


class TestCookies:
    """Test suite for cookie accumulation."""
    
    @pytest.mark.asyncio
    async def test_existing_cookies_sent(self, transport, authenticator):
        """Test caller cookies accompany the first request."""
        existing = CookieSet([Cookie(name='mz_at_ssl', value='X', domain='apple.com')])
        transport.queue(plist_response(success_document()))
        
        account = await authenticator.sign_in(
            EMAIL, PASSWORD, existing_cookies=existing, device_id=DEVICE_ID
        )
        
        assert transport.requests[0].cookies == existing
        assert account.cookies.value('mz_at_ssl') == 'X'
    
    @pytest.mark.asyncio
    async def test_cookies_accumulate_across_redirect(self, transport, authenticator):
        """Test cookies from a redirect are sent on and returned."""
        transport.queue(
            HttpResponse(
                status=302,
                headers={'Location': 'https://p26-buy.itunes.apple.com/auth'},
                raw_headers=[('Set-Cookie', 'itspod=26; Domain=.apple.com; Path=/')],
            ),
            plist_response(
                success_document(),
                raw_headers=[('Set-Cookie', 'mz_at0=ABC; Path=/')],
            ),
        )
        
        account = await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert transport.requests[1].cookies.value('itspod') == '26'
        assert account.cookies.value('itspod') == '26'
        assert account.cookies.value('mz_at0', domain='p26-buy.itunes.apple.com') == 'ABC'


class TestRedirects:
    """Test suite for redirect handling."""
    
    @pytest.mark.asyncio
    async def test_follows_location(self, transport, authenticator):
        """Test the next request goes to the Location target with the same body."""
        transport.queue(redirect(), plist_response(success_document()))
        
        await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert transport.requests[1].host == 'p26-buy.itunes.apple.com'
        assert transport.requests[1].path == '/WebObjects/MZFinance.woa/wa/authenticate'
        assert transport.requests[1].body == transport.requests[0].body
    
    @pytest.mark.asyncio
    async def test_relative_location(self, transport, authenticator):
        """Test a relative Location is resolved against the current URL."""
        transport.queue(redirect('/WebObjects/MZFinance.woa/wa/authenticateV2'), plist_response(success_document()))
        
        await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert transport.requests[1].host == 'p25-buy.itunes.apple.com'
        assert transport.requests[1].path == '/WebObjects/MZFinance.woa/wa/authenticateV2'
    
    @pytest.mark.asyncio
    async def test_redirect_does_not_consume_attempt(self, transport, authenticator):
        """Test a -5000 after a redirect still gets its one retry."""
        transport.queue(redirect(), failure('-5000'), plist_response(success_document()))
        
        account = await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert account.directory_services_id == '123456789'
        assert transport.call_count == 3
    
    @pytest.mark.asyncio
    async def test_three_redirects_allowed(self, transport, authenticator):
        """Test up to three redirects are followed."""
        transport.queue(redirect(), redirect(), redirect(), plist_response(success_document()))
        
        await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert transport.call_count == 4
        assert authenticator.last_attempt.redirect_hops == 3
    
    @pytest.mark.asyncio
    async def test_fourth_redirect_fails(self, transport, authenticator):
        """Test a fourth redirect stops the attempt."""
        transport.queue(redirect(), redirect(), redirect(), redirect())
        
        with pytest.raises(TransportError, match='Too many redirects'):
            await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert transport.call_count == 4
        assert authenticator.last_attempt.state is SignInState.FAILED
    
    @pytest.mark.asyncio
    async def test_missing_location(self, transport, authenticator):
        """Test a 302 without Location fails."""
        transport.queue(HttpResponse(status=302))
        
        with pytest.raises(AuthError, match='Location'):
            await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)


class TestFailures:
    """Test suite for failure classification."""
    
    @pytest.mark.asyncio
    async def test_not_found_without_code_requires_verification(self, transport, authenticator):
        """Test HTTP 404 without a code asks for a second factor, with no retry."""
        transport.queue(HttpResponse(status=404))
        
        with pytest.raises(VerificationRequired) as exc_info:
            await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert exc_info.value.code_required
        assert transport.call_count == 1
        assert authenticator.last_attempt.state is SignInState.NEEDS_VERIFICATION
    
    @pytest.mark.asyncio
    async def test_sentinel_requires_verification(self, transport, authenticator):
        """Test the 2FA sentinel message asks for a second factor."""
        transport.queue(failure('', SENTINEL))
        
        with pytest.raises(VerificationRequired):
            await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert transport.call_count == 1
    
    @pytest.mark.asyncio
    async def test_sentinel_with_code_is_failure(self, transport, authenticator):
        """Test the sentinel with a code supplied is a plain failure."""
        transport.queue(failure('', SENTINEL))
        
        with pytest.raises(AuthError) as exc_info:
            await authenticator.sign_in(EMAIL, PASSWORD, code='123456', device_id=DEVICE_ID)
        
        assert not isinstance(exc_info.value, VerificationRequired)
        assert exc_info.value.message == SENTINEL
    
    @pytest.mark.asyncio
    async def test_account_locked_not_retried(self, transport, authenticator):
        """Test 5020 raises AccountLocked after a single request."""
        transport.queue(failure('5020', 'This Apple ID has been locked for security reasons.'))
        
        with pytest.raises(AccountLocked) as exc_info:
            await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert transport.call_count == 1
        assert exc_info.value.failure_type == '5020'
        assert 'locked' in exc_info.value.message
    
    @pytest.mark.asyncio
    async def test_transient_retried_once(self, transport, authenticator):
        """Test -5000 on the first attempt is retried with the identical request."""
        transport.queue(failure('-5000'), plist_response(success_document()))
        
        account = await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert account.directory_services_id == '123456789'
        assert transport.call_count == 2
        first, second = transport.requests
        assert (first.host, first.path, first.body) == (second.host, second.path, second.body)
        assert authenticator.last_attempt.history == [
            SignInState.SENDING,
            SignInState.RETRYING_TRANSIENT,
            SignInState.SENDING,
            SignInState.SUCCEEDED,
        ]
    
    @pytest.mark.asyncio
    async def test_transient_twice_fails(self, transport, authenticator):
        """Test -5000 on both attempts surfaces the failure."""
        transport.queue(failure('-5000'), failure('-5000'))
        
        with pytest.raises(AuthError) as exc_info:
            await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert transport.call_count == 2
        assert exc_info.value.failure_type == '-5000'
        assert 'incorrectly' in exc_info.value.message
    
    @pytest.mark.asyncio
    async def test_other_failure_not_retried(self, transport, authenticator):
        """Test other failure types are surfaced without retry."""
        transport.queue(failure('2002', 'Your account information was entered incorrectly.'))
        
        with pytest.raises(AuthError) as exc_info:
            await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert transport.call_count == 1
        assert exc_info.value.failure_type == '2002'
    
    @pytest.mark.asyncio
    async def test_dialog_explanation_preferred(self, transport, authenticator):
        """Test dialog.explanation wins over customerMessage."""
        transport.queue(plist_response({
            'failureType': '2002',
            'customerMessage': 'Generic',
            'dialog': {'explanation': 'Specific explanation'},
        }))
        
        with pytest.raises(AuthError, match='Specific explanation'):
            await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
    
    @pytest.mark.asyncio
    async def test_missing_address(self, transport, authenticator):
        """Test accountInfo without address is a failure."""
        transport.queue(plist_response({'accountInfo': {'appleId': EMAIL}, 'dsPersonId': 1}))
        
        with pytest.raises(AuthError):
            await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
    
    @pytest.mark.asyncio
    async def test_empty_body(self, transport, authenticator):
        """Test an empty body raises TransportError."""
        transport.queue(HttpResponse(status=200, body=''))
        
        with pytest.raises(TransportError):
            await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
    
    @pytest.mark.asyncio
    async def test_not_found_with_code_is_not_verification(self, transport, authenticator):
        """Test HTTP 404 with a code supplied is a transport failure."""
        transport.queue(HttpResponse(status=404))
        
        with pytest.raises(TransportError) as exc_info:
            await authenticator.sign_in(EMAIL, PASSWORD, code='123456', device_id=DEVICE_ID)
        
        assert exc_info.value.status == 404
    
    @pytest.mark.asyncio
    async def test_unparseable_body(self, transport, authenticator):
        """Test a non-plist body raises TransportError."""
        transport.queue(HttpResponse(status=200, body='<html><body>Oops</body></html>'))
        
        with pytest.raises(TransportError):
            await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
    
    @pytest.mark.asyncio
    async def test_network_error_propagates(self, transport, authenticator):
        """Test a transport failure surfaces unchanged."""
        transport.queue(TransportError("Network error: connection reset"))
        
        with pytest.raises(TransportError, match='connection reset'):
            await authenticator.sign_in(EMAIL, PASSWORD, device_id=DEVICE_ID)
        
        assert transport.call_count == 1
