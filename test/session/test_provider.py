import pytest
from unittest.mock import AsyncMock, MagicMock

from auth.schema import AuthSession
from session.provider import (
    InMemorySessionProvider,
    SessionProviderError,
    SupabaseSessionProvider,
    to_auth_session,
)


class FakeEvent:
    value = "TOKEN_REFRESHED"


def supabase_session_payload(token="sb-tok"):
    return {
        "access_token": token,
        "refresh_token": "refresh",
        "expires_in": 3600,
        "expires_at": 1900000000,
        "token_type": "bearer",
        "provider_token": None,
        "user": {"id": "u-1", "email": "ada@example.com", "aud": "authenticated", "role": "authenticated"},
    }


class TestInMemorySessionProvider:

    @pytest.mark.asyncio
    async def test_set_session_notifies_subscribers(self, make_session):
        provider = InMemorySessionProvider()
        events = []
        subscription = provider.on_auth_state_change(lambda event, session: events.append((event, session)))

        session = make_session()
        provider.set_session(session)
        subscription.unsubscribe()
        subscription.unsubscribe()
        provider.set_session(None)

        assert events == [("SIGNED_IN", session)]
        assert provider.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_unavailable_store_raises(self):
        provider = InMemorySessionProvider()
        provider.available = False
        with pytest.raises(SessionProviderError):
            await provider.get_session()

    @pytest.mark.asyncio
    async def test_sign_out_clears_session(self, make_session):
        provider = InMemorySessionProvider(make_session())
        await provider.sign_out()
        assert await provider.get_session() is None
        assert provider.sign_out_calls == 1


class TestToAuthSession:

    def test_from_dict_ignores_unknown_fields(self):
        session = to_auth_session(supabase_session_payload())
        assert isinstance(session, AuthSession)
        assert session.access_token == "sb-tok"
        assert session.user.email == "ada@example.com"

    def test_from_model_dump(self):
        raw = MagicMock()
        raw.model_dump.return_value = supabase_session_payload("dumped")
        assert to_auth_session(raw).access_token == "dumped"

    def test_none(self):
        assert to_auth_session(None) is None


class TestSupabaseSessionProvider:

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.auth.get_session = AsyncMock(return_value=supabase_session_payload())
        client.auth.sign_out = AsyncMock()
        return client

    @pytest.mark.asyncio
    async def test_get_session(self, client):
        provider = SupabaseSessionProvider(client)
        session = await provider.get_session()
        assert session.access_token == "sb-tok"

    @pytest.mark.asyncio
    async def test_get_session_failure_is_wrapped(self, client):
        client.auth.get_session = AsyncMock(side_effect=RuntimeError("storage unavailable"))
        provider = SupabaseSessionProvider(client)
        with pytest.raises(SessionProviderError, match="storage unavailable"):
            await provider.get_session()

    @pytest.mark.asyncio
    async def test_malformed_session_payload_is_wrapped(self, client):
        client.auth.get_session = AsyncMock(return_value={"refresh_token": "no access token"})
        provider = SupabaseSessionProvider(client)
        with pytest.raises(SessionProviderError):
            await provider.get_session()

    def test_change_stream_is_forwarded(self, client):
        upstream = MagicMock()
        client.auth.on_auth_state_change.return_value = upstream
        provider = SupabaseSessionProvider(client)
        events = []

        subscription = provider.on_auth_state_change(lambda event, session: events.append((event, session)))
        forward = client.auth.on_auth_state_change.call_args.args[0]
        forward(FakeEvent(), supabase_session_payload("refreshed"))
        forward("SIGNED_OUT", None)
        subscription.unsubscribe()

        assert events[0][0] == "TOKEN_REFRESHED"
        assert events[0][1].access_token == "refreshed"
        assert events[1] == ("SIGNED_OUT", None)
        upstream.unsubscribe.assert_called_once()

    @pytest.mark.asyncio
    async def test_sign_out(self, client):
        await SupabaseSessionProvider(client).sign_out()
        client.auth.sign_out.assert_awaited_once()
