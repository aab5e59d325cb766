from .schema import TimeSummary
from .time_client import CredentialRejectedError, TimeClient, TimeClientError

__all__ = [
    "TimeSummary",
    "TimeClient",
    "TimeClientError",
    "CredentialRejectedError",
]
