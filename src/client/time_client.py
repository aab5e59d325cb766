import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from auth.token import bearer_headers
from utils.signals import AbortSignal, race_signal

from .schema import TimeSummary

logger = logging.getLogger(__name__)

TIME_SUMMARY_PATH = "/api/time/summary"


class TimeClientError(Exception):
    """The time summary could not be fetched or understood. Transient from the caller's point of view."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CredentialRejectedError(TimeClientError):
    """The backend answered 401: the bearer token is no longer accepted."""

    def __init__(self, message: str = "Credential rejected by backend"):
        super().__init__(message, status_code=401)


class TimeClient:
    """HTTP client for the time-tracking endpoints of the HR backend."""

    def __init__(self, base_url: str, timeout: float | None = 10.0, client: httpx.AsyncClient | None = None) -> None:
        """
        Args:
            base_url (str): Backend base URL, e.g. "https://api.example.com".
            timeout (float, optional): Per-request timeout in seconds for the owned client.
            client (httpx.AsyncClient, optional): Client to use instead of creating one.
                A passed-in client is not closed by `aclose()`.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "TimeClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def get_summary(self, token: str, signal: AbortSignal | None = None) -> TimeSummary:
        """
        Fetch the caller's time summary.

        Args:
            token (str): Bearer access token.
            signal (AbortSignal, optional): Aborts the in-flight request when fired.

        Returns:
            TimeSummary: Parsed summary; missing fields are None.

        Raises:
            CredentialRejectedError: On HTTP 401.
            TimeClientError: On any other non-2xx status or an unusable body.
            httpx.HTTPError: On transport failures.
            AbortError: If `signal` aborts first (or the signal's own reason, e.g. TimeoutError).
        """
        url = f"{self.base_url}{TIME_SUMMARY_PATH}"
        response = await race_signal(self._client.get(url, headers=bearer_headers(token)), signal)

        if response.status_code == 401:
            logger.warning(f"Time summary request rejected with 401 from {url}")
            raise CredentialRejectedError()
        if not response.is_success:
            raise TimeClientError(
                f"Time summary request failed with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TimeClientError(f"Time summary response is not JSON: {e}", response.status_code) from e

        if not isinstance(payload, dict):
            raise TimeClientError(
                f"Time summary response is not an object: {type(payload).__name__}", response.status_code
            )

        try:
            return TimeSummary.model_validate(payload)
        except ValidationError as e:
            raise TimeClientError(f"Time summary response is malformed: {e}", response.status_code) from e
