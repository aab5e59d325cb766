"""
Tests for the clock-in liveness heartbeat.
"""

import asyncio

import httpx
import pytest
import pytest_asyncio

from client.schema import TimeSummary
from client.time_client import TimeClient
from session.heartbeat import LivenessHeartbeat
from session.models import RedirectIntent

INTERVAL = 0.2


class Backend:
    """Scripted /api/time/summary endpoint for httpx.MockTransport"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest_asyncio.fixture
async def make_heartbeat(provider, redirects):
    created = []

    def _make(backend, **kwargs) -> LivenessHeartbeat:
        http = httpx.AsyncClient(transport=httpx.MockTransport(backend))
        heartbeat = LivenessHeartbeat(
            TimeClient("http://api.test", client=http),
            provider,
            redirects.append,
            interval=kwargs.pop("interval", INTERVAL),
            **kwargs,
        )
        created.append((heartbeat, http))
        return heartbeat

    yield _make

    for heartbeat, _ in created:
        heartbeat.stop()
    await asyncio.sleep(0.01)
    for _, http in created:
        await http.aclose()


class TestLiveness:

    @pytest.mark.asyncio
    async def test_active_entry_sets_liveness(self, make_heartbeat, make_session, wait_until):
        backend = Backend(httpx.Response(200, json={"activeEntry": {"id": "e1", "clock_in_at": "2024-05-01T08:00:00Z"}}))
        heartbeat = make_heartbeat(backend)

        heartbeat.start(make_session("tok1"))
        await wait_until(lambda: heartbeat.is_clocked_in, timeout=INTERVAL)

        assert heartbeat.record.last_checked is not None
        request = backend.requests[0]
        assert request.url.path == "/api/time/summary"
        assert request.headers["Authorization"] == "Bearer tok1"

    @pytest.mark.asyncio
    async def test_null_active_entry_clears_liveness(self, make_heartbeat, make_session, wait_until):
        heartbeat = make_heartbeat(Backend(httpx.Response(200, json={"activeEntry": None, "hoursThisWeek": 12})))
        heartbeat.set_clocked_in(True)

        heartbeat.start(make_session())
        await wait_until(lambda: not heartbeat.is_clocked_in)

    @pytest.mark.asyncio
    async def test_polls_on_fixed_period(self, make_heartbeat, make_session, wait_until):
        backend = Backend(httpx.Response(200, json={}))
        heartbeat = make_heartbeat(backend, interval=0.02)

        heartbeat.start(make_session())
        await wait_until(lambda: len(backend.requests) >= 3)

    @pytest.mark.asyncio
    async def test_listeners_notified_on_change_only(self, make_heartbeat, make_session, wait_until):
        backend = Backend(httpx.Response(200, json={"activeEntry": {"id": "e1"}}))
        heartbeat = make_heartbeat(backend, interval=0.02)
        changes = []
        heartbeat.add_listener(changes.append)

        heartbeat.start(make_session())
        await wait_until(lambda: len(backend.requests) >= 3)

        assert changes == [True]


class TestFailures:

    @pytest.mark.asyncio
    async def test_401_signs_out_redirects_and_stops(self, make_heartbeat, make_session, provider, redirects, wait_until):
        provider.set_session(make_session())
        backend = Backend(httpx.Response(401, json={"error": "invalid token"}))
        heartbeat = make_heartbeat(backend, current_path="/time/entries")

        heartbeat.start(make_session())
        await wait_until(lambda: provider.sign_out_calls == 1)

        assert not heartbeat.running
        assert redirects == [RedirectIntent(path="/login", from_path="/time/entries")]
        assert await provider.get_session() is None

        await asyncio.sleep(INTERVAL * 2.5)
        assert len(backend.requests) == 1

    @pytest.mark.asyncio
    async def test_transient_failures_leave_record_unchanged(self, make_heartbeat, make_session, wait_until):
        backend = Backend(
            httpx.Response(503),
            httpx.ConnectError("connection refused"),
            httpx.Response(200, content=b"<html>not json</html>"),
            httpx.Response(200, json=["not", "an", "object"]),
            httpx.Response(200, json={"activeEntry": False}),
        )
        heartbeat = make_heartbeat(backend, interval=0.05)
        heartbeat.set_clocked_in(True)
        checked_at = heartbeat.record.last_checked

        heartbeat.start(make_session())
        await wait_until(lambda: len(backend.requests) >= 4)
        assert heartbeat.is_clocked_in
        assert heartbeat.record.last_checked == checked_at

        await wait_until(lambda: not heartbeat.is_clocked_in)
        assert heartbeat.running


    @pytest.mark.asyncio
    async def test_closed_http_client_does_not_break_tick(self, provider, redirects, make_session):
        http = httpx.AsyncClient(transport=httpx.MockTransport(Backend(httpx.Response(200, json={}))))
        await http.aclose()
        heartbeat = LivenessHeartbeat(TimeClient("http://api.test", client=http), provider, redirects.append, interval=10)
        heartbeat.set_clocked_in(True)

        heartbeat.start(make_session())
        await heartbeat._tick(heartbeat._run)
        heartbeat.stop()

        assert heartbeat.is_clocked_in
        assert redirects == []


class TestStop:

    @pytest.mark.asyncio
    async def test_stop_halts_ticks(self, make_heartbeat, make_session, wait_until):
        backend = Backend(httpx.Response(200, json={}))
        heartbeat = make_heartbeat(backend, interval=0.02)

        heartbeat.start(make_session())
        await wait_until(lambda: len(backend.requests) >= 1)
        heartbeat.stop()
        heartbeat.stop()
        count = len(backend.requests)
        await asyncio.sleep(0.1)

        assert len(backend.requests) == count
        assert not heartbeat.running

    @pytest.mark.asyncio
    async def test_late_completion_after_stop_is_dropped(self, provider, redirects, make_session):
        gate = asyncio.Event()

        class SlowTimeClient:
            calls = 0

            async def get_summary(self, token, signal=None):
                # Ignores the signal so only the cancelled guard protects the record.
                SlowTimeClient.calls += 1
                await gate.wait()
                return TimeSummary.model_validate({"activeEntry": {"id": "late"}})

        heartbeat = LivenessHeartbeat(SlowTimeClient(), provider, redirects.append, interval=10)
        heartbeat.start(make_session())
        await asyncio.sleep(0.01)
        assert SlowTimeClient.calls == 1

        heartbeat.stop()
        gate.set()
        await asyncio.sleep(0.01)

        assert not heartbeat.is_clocked_in
        assert heartbeat.record.last_checked is None

    @pytest.mark.asyncio
    async def test_stop_aborts_in_flight_request(self, make_heartbeat, make_session):
        started = asyncio.Event()

        async def hanging(request):
            started.set()
            await asyncio.sleep(10)
            return httpx.Response(200, json={"activeEntry": {"id": "e1"}})

        heartbeat = make_heartbeat(hanging, interval=10)
        heartbeat.start(make_session())
        await asyncio.wait_for(started.wait(), timeout=1)

        heartbeat.stop()
        await asyncio.sleep(0.01)

        assert not heartbeat._tasks
        assert not heartbeat.is_clocked_in

    @pytest.mark.asyncio
    async def test_restart_with_new_session_uses_new_token(self, make_heartbeat, make_session, wait_until):
        backend = Backend(httpx.Response(200, json={}))
        heartbeat = make_heartbeat(backend, interval=10)

        heartbeat.start(make_session("old"))
        heartbeat.start(make_session("new"))
        await wait_until(lambda: len(backend.requests) >= 1)
        await asyncio.sleep(0.02)

        # the first run was stopped before its tick ran, so it never reached the network
        tokens = [r.headers["Authorization"] for r in backend.requests]
        assert tokens == ["Bearer new"]
        assert heartbeat.session.access_token == "new"
