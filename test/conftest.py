import sys
import asyncio
import logging
from pathlib import Path

import pytest

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from auth.schema import AuthSession, AuthUser
from session.provider import InMemorySessionProvider


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Configure logging for tests."""
    logging.basicConfig(level=logging.INFO)


@pytest.fixture
def make_session():
    """Factory for AuthSession objects"""
    def _make(token: str = "tok1", user_id: str = "user-1", email: str = "ada@example.com") -> AuthSession:
        return AuthSession(
            access_token=token,
            refresh_token=f"refresh-{token}",
            expires_in=3600,
            user=AuthUser(id=user_id, email=email),
        )
    return _make


@pytest.fixture
def provider():
    return InMemorySessionProvider()


@pytest.fixture
def redirects():
    """Collects RedirectIntents handed to the navigation layer"""
    return []


@pytest.fixture
def wait_until():
    """Poll a predicate on the event loop until it is true, failing after `timeout` seconds."""
    async def _wait(predicate, timeout: float = 1.0, step: float = 0.005) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(step)
    return _wait
