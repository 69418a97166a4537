import httpx
import pytest

from app.amadeus.auth import TokenManager
from app.errors import AuthError
from app.infrastructure.resilience import ResilientCaller
from tests.helpers import no_sleep


class Clock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_manager(http, clock, client_id="client-id", client_secret="client-secret"):
    caller = ResilientCaller(http, timeout_ms=1000, max_retries=0, sleep=no_sleep)
    return TokenManager(caller, host="https://test.api.amadeus.com",
                        client_id=client_id, client_secret=client_secret, clock=clock)


async def test_token_is_reused_while_valid(fake_amadeus):
    clock = Clock()
    async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
        tokens = make_manager(http, clock)

        first = await tokens.acquire()
        clock.now += 600
        second = await tokens.acquire()

    assert fake_amadeus.token_calls == 1
    assert first.value == second.value
    assert first.host == "https://test.api.amadeus.com"


async def test_token_refreshes_once_after_expiry(fake_amadeus):
    clock = Clock()
    async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
        tokens = make_manager(http, clock)

        first = await tokens.acquire()
        await tokens.acquire()
        clock.now += 1799
        refreshed = await tokens.acquire()
        await tokens.acquire()

    assert fake_amadeus.token_calls == 2
    assert refreshed.value != first.value


async def test_token_refreshes_inside_safety_margin(fake_amadeus):
    clock = Clock()
    async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
        tokens = make_manager(http, clock)
        cred = await tokens.acquire()

        clock.now = cred.expires_at - 31
        await tokens.acquire()
        assert fake_amadeus.token_calls == 1

        clock.now = cred.expires_at - 30
        await tokens.acquire()
        assert fake_amadeus.token_calls == 2


async def test_missing_expiry_uses_default_lifetime(fake_amadeus):
    fake_amadeus.expires_in = None
    clock = Clock()
    async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
        tokens = make_manager(http, clock)
        cred = await tokens.acquire()

    assert cred.expires_at == clock.now + 1700


async def test_missing_credentials_raise_without_network(fake_amadeus):
    async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
        tokens = make_manager(http, Clock(), client_id="", client_secret=None)
        with pytest.raises(AuthError):
            await tokens.acquire()

    assert fake_amadeus.token_calls == 0


async def test_rejected_exchange_raises_auth_error(fake_amadeus):
    fake_amadeus.token_status = 401
    async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
        tokens = make_manager(http, Clock())
        with pytest.raises(AuthError, match="401"):
            await tokens.acquire()


async def test_invalidate_forces_new_exchange(fake_amadeus):
    async with httpx.AsyncClient(transport=fake_amadeus.transport) as http:
        tokens = make_manager(http, Clock())
        await tokens.acquire()
        tokens.invalidate()
        await tokens.acquire()

    assert fake_amadeus.token_calls == 2


async def test_token_request_is_client_credentials_form(fake_amadeus):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["content_type"] = request.headers["content-type"]
        seen["body"] = request.content.decode()
        return httpx.Response(200, json={"access_token": "abc123456789", "expires_in": 1799})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        tokens = make_manager(http, Clock())
        await tokens.acquire()

    assert seen["content_type"] == "application/x-www-form-urlencoded"
    assert "grant_type=client_credentials" in seen["body"]
    assert "client_id=client-id" in seen["body"]
