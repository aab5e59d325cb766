from .signals import (
    AbortController,
    AbortError,
    AbortSignal,
    ConfigurationError,
    any_signal,
    race_signal,
    timeout_signal,
)
from .schedule import IntervalHandle, set_interval

__all__ = [
    "AbortController",
    "AbortError",
    "AbortSignal",
    "ConfigurationError",
    "any_signal",
    "race_signal",
    "timeout_signal",
    "IntervalHandle",
    "set_interval",
]
