from datetime import datetime, timedelta, timezone

import httpx
import pytest

from vuesync.core.exceptions import AuthenticationError
from vuesync.infrastructure.auth.token_source import AUTH_HEADER, CredentialProvider, TokenSource, VueTokenAuth
from vuesync.schemas.auth import Token
from vuesync.utils.atom import Atom


def _future(hours: int = 1) -> datetime:
    return datetime.now(timezone.utc) + timedelta(hours=hours)


def _past() -> datetime:
    return datetime.now(timezone.utc) - timedelta(hours=1)


class FakeProvider(CredentialProvider):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.logins = []
        self.refreshes = []

    def authenticate(self, username, password):
        self.logins.append((username, password))
        if self.fail:
            raise RuntimeError("bad password")
        return Token(id_token="login-id", refresh_token="login-refresh", expiry=_future())

    def refresh(self, refresh_token):
        self.refreshes.append(refresh_token)
        if self.fail:
            raise RuntimeError("refresh rejected")
        return Token(id_token="refreshed-id", refresh_token=refresh_token, expiry=_future())


def test_token_validity():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    assert Token(id_token="x").valid(now)
    assert not Token().valid(now)
    assert not Token(id_token="x", expiry=now + timedelta(seconds=5)).valid(now)
    assert Token(id_token="x", expiry=now + timedelta(seconds=30)).valid(now)
    assert not Token(id_token="x", expiry=datetime(2023, 12, 31)).valid(now)


@pytest.mark.asyncio
async def test_valid_token_is_returned_as_is():
    provider = FakeProvider()
    current = Token(id_token="current", expiry=_future())
    source = TokenSource(provider, Atom(current))

    assert await source.token() is current
    assert provider.logins == [] and provider.refreshes == []


@pytest.mark.asyncio
async def test_expired_token_is_refreshed_and_published():
    provider = FakeProvider()
    holder = Atom(Token(id_token="old", refresh_token="r1", expiry=_past()))
    published = []
    holder.watch(lambda old, new: published.append(new.id_token))
    source = TokenSource(provider, holder)

    token = await source.token()

    assert token.id_token == "refreshed-id"
    assert provider.refreshes == ["r1"]
    assert holder.load() is token
    assert published == ["refreshed-id"]


@pytest.mark.asyncio
async def test_missing_token_logs_in_with_credentials():
    provider = FakeProvider()
    holder = Atom(None)
    source = TokenSource(provider, holder, credentials=lambda: ("me@example.com", "hunter2"))

    token = await source.token()

    assert token.id_token == "login-id"
    assert provider.logins == [("me@example.com", "hunter2")]
    assert holder.load() is token


@pytest.mark.asyncio
async def test_no_credentials_function_fails():
    source = TokenSource(FakeProvider(), Atom(None))

    with pytest.raises(AuthenticationError):
        await source.token()


@pytest.mark.asyncio
async def test_provider_failure_is_wrapped():
    source = TokenSource(FakeProvider(fail=True), Atom(None), credentials=lambda: ("u", "p"))

    with pytest.raises(AuthenticationError, match="bad password"):
        await source.token()


@pytest.mark.asyncio
async def test_auth_header_added_to_requests():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get(AUTH_HEADER))
        return httpx.Response(200, json={"devices": []})

    source = TokenSource(FakeProvider(), Atom(Token(id_token="jwt", expiry=_future())))
    async with httpx.AsyncClient(auth=VueTokenAuth(source), transport=httpx.MockTransport(handler)) as client:
        await client.get("https://api.example.test/customers/devices")

    assert seen == ["jwt"]
