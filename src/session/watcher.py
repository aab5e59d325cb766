"""
Authoritative session state for the dashboard.

SessionWatcher takes one snapshot of the provider's session on start, then
follows the provider's change stream until closed. Losing the session (or
never having one) produces a RedirectIntent to the login page.
"""

import logging
from typing import Callable, List, Optional

from auth.schema import AuthSession

from .models import RedirectIntent, SessionState
from .provider import BaseSessionProvider, Subscription

logger = logging.getLogger(__name__)

Navigate = Callable[[RedirectIntent], None]
StateListener = Callable[[SessionState, Optional[AuthSession]], None]


class SessionWatcher:

    def __init__(
        self,
        provider: BaseSessionProvider,
        navigate: Navigate,
        *,
        login_path: str = "/login",
        current_path: str = "/",
    ):
        self.provider = provider
        self.navigate = navigate
        self.login_path = login_path
        self.current_path = current_path

        self._state = SessionState.CHECKING
        self._session: Optional[AuthSession] = None
        self._checking = False
        self._closed = False
        self._started = False
        self._subscription: Optional[Subscription] = None
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    @property
    def checking(self) -> bool:
        return self._checking

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """
        Observe state transitions. `listener(state, session)` runs synchronously
        inside the transition.

        Returns:
            A disposer removing the listener.
        """
        self._listeners.append(listener)

        def dispose() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return dispose

    async def start(self) -> None:
        """Subscribe to the change stream and resolve the initial session snapshot."""
        if self._started:
            raise RuntimeError("SessionWatcher has already been started")
        if self._closed:
            raise RuntimeError("SessionWatcher has been closed")
        self._started = True
        self._checking = True

        self._subscription = self.provider.on_auth_state_change(self._on_auth_change)

        try:
            session = await self.provider.get_session()
        except Exception as e:
            if self._closed:
                return
            logger.warning(f"Initial session check failed: {e!r}")
            self._checking = False
            if self._state is SessionState.CHECKING:
                self._transition(SessionState.UNAUTHENTICATED, None)
            return

        if self._closed:
            logger.debug("Session snapshot resolved after close; ignoring")
            return

        self._checking = False
        self._apply(session)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._listeners.clear()

    async def __aenter__(self) -> "SessionWatcher":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _on_auth_change(self, event: str, session: Optional[AuthSession]) -> None:
        if self._closed:
            return
        logger.debug(f"Auth state change: {event} (session present: {session is not None})")
        self._apply(session)

    def _apply(self, session: Optional[AuthSession]) -> None:
        if session is not None:
            self._transition(SessionState.AUTHENTICATED, session)
            return

        self._transition(SessionState.UNAUTHENTICATED, None)
        intent = RedirectIntent(path=self.login_path, from_path=self.current_path)
        logger.info(f"No active session, redirecting to {intent.path} (from {intent.from_path})")
        self.navigate(intent)

    def _transition(self, state: SessionState, session: Optional[AuthSession]) -> None:
        self._state = state
        self._session = session
        for listener in list(self._listeners):
            try:
                listener(state, session)
            except Exception as e:
                logger.error(f"Session state listener {listener!r} raised: {e}", exc_info=True)
