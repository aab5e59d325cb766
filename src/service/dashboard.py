"""
Runtime wiring of the session layer.

DashboardSession owns one SessionWatcher and one LivenessHeartbeat and keeps
the auth cookie in sync:

- session established: mirror the token into the cookie, (re)start the heartbeat
- session lost: stop the heartbeat and clear the cookie, in the same callback
"""

import logging
from typing import Any, Callable, Optional

from auth.cookies import CookieMirror
from auth.schema import AuthSession
from auth.token import resolve_auth_token
from client.time_client import TimeClient
from session.heartbeat import LivenessHeartbeat
from session.models import RedirectIntent, SessionState
from session.provider import BaseSessionProvider
from session.watcher import SessionWatcher

from .config import DashboardConfig

logger = logging.getLogger(__name__)


class DashboardSession:

    def __init__(
        self,
        provider: BaseSessionProvider,
        time_client: TimeClient,
        navigate: Callable[[RedirectIntent], None],
        *,
        config: DashboardConfig,
        cookie_mirror: Optional[CookieMirror] = None,
        current_path: str = "/",
    ):
        self.provider = provider
        self.config = config
        self.cookie_mirror = cookie_mirror or CookieMirror()
        self.watcher = SessionWatcher(
            provider,
            navigate,
            login_path=config.login_path,
            current_path=current_path,
        )
        self.heartbeat = LivenessHeartbeat(
            time_client,
            provider,
            navigate,
            interval=config.heartbeat_interval,
            request_timeout=config.request_timeout,
            login_path=config.login_path,
            current_path=current_path,
        )
        self._dispose_listener: Optional[Callable[[], None]] = None

    @property
    def checking(self) -> bool:
        return self.watcher.checking

    @property
    def session(self) -> Optional[AuthSession]:
        return self.watcher.session

    @property
    def is_clocked_in(self) -> bool:
        return self.heartbeat.is_clocked_in

    def set_current_path(self, path: str) -> None:
        """Record where the user is, so redirects can send them back."""
        self.watcher.current_path = path
        self.heartbeat.current_path = path

    async def auth_token(self, request: Any = None) -> Optional[str]:
        return await resolve_auth_token(request, self.provider)

    async def start(self) -> None:
        self._dispose_listener = self.watcher.add_listener(self._on_session_change)
        await self.watcher.start()

    async def close(self) -> None:
        if self._dispose_listener is not None:
            self._dispose_listener()
            self._dispose_listener = None
        self.watcher.close()
        self.heartbeat.stop()

    async def __aenter__(self) -> "DashboardSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _on_session_change(self, state: SessionState, session: Optional[AuthSession]) -> None:
        if session is None:
            self.heartbeat.stop()
            self.cookie_mirror.set(None)
            return

        self.cookie_mirror.set(session.access_token)
        current = self.heartbeat.session
        if current is None or current.access_token != session.access_token:
            self.heartbeat.start(session)
