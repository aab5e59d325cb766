from .provider import (
    BaseSessionProvider,
    InMemorySessionProvider,
    SessionProviderError,
    SupabaseSessionProvider,
    Subscription,
)

__all__ = [
    "BaseSessionProvider",
    "InMemorySessionProvider",
    "SessionProviderError",
    "SupabaseSessionProvider",
    "Subscription",
]
