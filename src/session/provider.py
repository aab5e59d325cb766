"""
Session provider capability.

The provider owns the authoritative client session (storage, refresh, sign-in
flows). This package only reads it, subscribes to its change stream and, on
credential rejection, asks it to sign out. Providers are constructed
explicitly and injected, so tests can pass a substitute.
"""

import logging
from itertools import count
from typing import Any, Callable, Dict, Optional

from supabase import AsyncClient, acreate_client

from auth.schema import AuthSession

logger = logging.getLogger(__name__)

AuthChangeCallback = Callable[[str, Optional[AuthSession]], None]


class SessionProviderError(Exception):
    """The session store could not be read (unavailable, no client context, network)."""
    pass


class Subscription:
    """Handle for one change-stream registration."""

    def __init__(self, unsubscribe: Callable[[], None]):
        self._unsubscribe = unsubscribe
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._unsubscribe()


class BaseSessionProvider():

    async def get_session(self) -> Optional[AuthSession]:
        """
        Return the current session, or None when signed out.

        Raises:
            SessionProviderError: If the store cannot be read.
        """
        raise NotImplementedError

    def on_auth_state_change(self, callback: AuthChangeCallback) -> Subscription:
        """
        Register `callback(event, session)` for every authentication change.
        """
        raise NotImplementedError

    async def sign_out(self) -> None:
        raise NotImplementedError


class InMemorySessionProvider(BaseSessionProvider):
    """Session provider backed by process memory. Used for local runs and tests."""

    def __init__(self, session: Optional[AuthSession] = None):
        self._session = session
        self._callbacks: Dict[int, AuthChangeCallback] = {}
        self._ids = count()
        self.available = True
        self.sign_out_calls = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    async def get_session(self) -> Optional[AuthSession]:
        if not self.available:
            raise SessionProviderError("Session store is unavailable")
        return self._session

    def on_auth_state_change(self, callback: AuthChangeCallback) -> Subscription:
        callback_id = next(self._ids)
        self._callbacks[callback_id] = callback
        return Subscription(lambda: self._callbacks.pop(callback_id, None))

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        self.set_session(None, event="SIGNED_OUT")

    def set_session(self, session: Optional[AuthSession], event: Optional[str] = None) -> None:
        """Replace the stored session and notify subscribers."""
        if event is None:
            event = "SIGNED_IN" if session else "SIGNED_OUT"
        self._session = session
        for callback in list(self._callbacks.values()):
            callback(event, session)


def to_auth_session(raw: Any) -> Optional[AuthSession]:
    """Convert a provider session object (pydantic model or dict) to AuthSession."""
    if raw is None:
        return None
    if isinstance(raw, AuthSession):
        return raw
    if hasattr(raw, "model_dump"):
        raw = raw.model_dump()
    return AuthSession.model_validate(raw)


class SupabaseSessionProvider(BaseSessionProvider):
    """Session provider backed by a supabase-py async client."""

    def __init__(self, client: AsyncClient):
        self.client = client

    @classmethod
    async def create(cls, supabase_url: str, supabase_key: str) -> "SupabaseSessionProvider":
        client = await acreate_client(supabase_url, supabase_key)
        logger.info(f"Supabase session provider created for {supabase_url}")
        return cls(client)

    async def get_session(self) -> Optional[AuthSession]:
        try:
            raw = await self.client.auth.get_session()
            return to_auth_session(raw)
        except Exception as e:
            logger.error(f"Error reading Supabase session: {e}")
            raise SessionProviderError(f"Could not read Supabase session: {e}") from e

    def on_auth_state_change(self, callback: AuthChangeCallback) -> Subscription:
        def forward(event: Any, raw_session: Any) -> None:
            callback(str(getattr(event, "value", event)), to_auth_session(raw_session))

        subscription = self.client.auth.on_auth_state_change(forward)
        return Subscription(subscription.unsubscribe)

    async def sign_out(self) -> None:
        await self.client.auth.sign_out()
