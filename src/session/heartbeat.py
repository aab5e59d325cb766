"""
Clock-in liveness polling.

While a session is authoritative the heartbeat asks the backend for the time
summary on a fixed period and keeps a LivenessRecord of whether the user is
currently clocked in. A 401 means the access token was rejected: the
heartbeat stops, signs the user out and redirects to login. Every other
failure is ignored until the next tick.

Ticks are not serialized. If a slow response lands after a newer one, the
slow one wins.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Set

import httpx

from auth.schema import AuthSession
from client.time_client import CredentialRejectedError, TimeClient, TimeClientError
from utils.schedule import IntervalHandle, set_interval
from utils.signals import AbortController, AbortError, any_signal, timeout_signal

from .models import LivenessRecord, RedirectIntent
from .provider import BaseSessionProvider

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0
DEFAULT_REQUEST_TIMEOUT = 10.0

LivenessListener = Callable[[bool], None]


class _Run:
    """State of one heartbeat run (one session)."""

    def __init__(self, session: AuthSession):
        self.session = session
        self.controller = AbortController()
        self.cancelled = False
        self.handle: Optional[IntervalHandle] = None

    def cancel(self) -> None:
        self.cancelled = True
        if self.handle is not None:
            self.handle.cancel()
        self.controller.abort(AbortError("Heartbeat stopped"))


class LivenessHeartbeat:

    def __init__(
        self,
        time_client: TimeClient,
        provider: BaseSessionProvider,
        navigate: Callable[[RedirectIntent], None],
        *,
        interval: float = DEFAULT_INTERVAL,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        login_path: str = "/login",
        current_path: str = "/",
    ):
        self.time_client = time_client
        self.provider = provider
        self.navigate = navigate
        self.interval = interval
        self.request_timeout = request_timeout
        self.login_path = login_path
        self.current_path = current_path

        self.record = LivenessRecord()
        self._run: Optional[_Run] = None
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[LivenessListener] = []

    @property
    def running(self) -> bool:
        return self._run is not None

    @property
    def session(self) -> Optional[AuthSession]:
        return self._run.session if self._run else None

    @property
    def is_clocked_in(self) -> bool:
        return self.record.active

    def add_listener(self, listener: LivenessListener) -> Callable[[], None]:
        """Observe changes of the clocked-in flag. Returns a disposer."""
        self._listeners.append(listener)

        def dispose() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return dispose

    def set_clocked_in(self, active: bool) -> None:
        """Override the flag locally, e.g. right after a clock-in action."""
        self._write(active)

    def start(self, session: AuthSession) -> None:
        """Begin polling for `session`. Any previous run is stopped first."""
        self.stop()
        run = _Run(session)
        self._run = run
        logger.info(f"Liveness heartbeat started (every {self.interval}s)")
        run.handle = set_interval(lambda: self._spawn_tick(run), self.interval, immediate=True)

    def stop(self) -> None:
        """Stop polling. Ticks still in flight are aborted and their results dropped."""
        run, self._run = self._run, None
        if run is None:
            return
        run.cancel()
        logger.info("Liveness heartbeat stopped")

    def _spawn_tick(self, run: _Run) -> None:
        if run.cancelled:
            return
        task = asyncio.get_running_loop().create_task(self._tick(run))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _tick(self, run: _Run) -> None:
        signal = any_signal([run.controller.signal, timeout_signal(self.request_timeout)])
        try:
            summary = await self.time_client.get_summary(run.session.access_token, signal=signal)
        except CredentialRejectedError:
            if run.cancelled:
                return
            await self._handle_rejection()
            return
        except (httpx.HTTPError, TimeClientError, AbortError, TimeoutError) as e:
            logger.debug(f"Ignoring failed heartbeat tick: {e!r}")
            return
        except Exception as e:
            logger.warning(f"Unexpected error in heartbeat tick: {e!r}")
            return

        if run.cancelled:
            logger.debug("Heartbeat tick completed after stop; result dropped")
            return

        self._write(summary.is_clocked_in)

    async def _handle_rejection(self) -> None:
        logger.warning("Access token rejected by backend; signing out")
        self.stop()
        try:
            await self.provider.sign_out()
        except Exception as e:
            logger.error(f"Sign-out after credential rejection failed: {e}")
        self.navigate(RedirectIntent(path=self.login_path, from_path=self.current_path))

    def _write(self, active: bool) -> None:
        if not self.record.update(active):
            return
        for listener in list(self._listeners):
            try:
                listener(active)
            except Exception as e:
                logger.error(f"Liveness listener {listener!r} raised: {e}", exc_info=True)
