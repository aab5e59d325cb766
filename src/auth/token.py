"""
Bearer token resolution for server-rendered and client-side code paths.

Priority:
1. `sb-access-token` cookie on the request
2. `Authorization: Bearer <token>` header on the request
3. the client session store (only when no request is given)
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import unquote

from session.provider import BaseSessionProvider

from .cookies import AUTH_COOKIE_NAME

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def parse_cookie_header(cookie_header: str) -> Dict[str, str]:
    """
    Parse a `Cookie` request header into a dict.

    Segments are separated by "; " and split on their first "=". Values are
    percent-decoded. Segments without "=" or without a name are skipped.
    """
    cookies: Dict[str, str] = {}
    if not cookie_header:
        return cookies
    for segment in cookie_header.split("; "):
        name, sep, value = segment.partition("=")
        if not sep or not name:
            continue
        try:
            cookies[name] = unquote(value, errors="strict")
        except UnicodeDecodeError:
            logger.debug(f"Skipping cookie {name!r} with undecodable value")
    return cookies


def bearer_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"{BEARER_PREFIX}{token}"}


def get_token_from_request(request: Any) -> Optional[str]:
    """Return the token carried by the request's auth cookie or Authorization header."""
    headers = request.headers

    cookies = parse_cookie_header(headers.get("Cookie") or "")
    token = cookies.get(AUTH_COOKIE_NAME)
    if token:
        return token

    auth_header = headers.get("Authorization") or ""
    if auth_header.startswith(BEARER_PREFIX):
        return auth_header[len(BEARER_PREFIX):] or None

    return None


async def resolve_auth_token(
    request: Any = None,
    provider: Optional[BaseSessionProvider] = None,
) -> Optional[str]:
    """
    Resolve the current bearer token.

    Args:
        request: Incoming request (anything with a `headers` mapping). When
            given, only its cookie and Authorization header are consulted.
        provider: Client session store, used when no request is given.

    Returns:
        The token, or None when no credential is available. Never raises for a
        missing or unreadable session store.
    """
    if request is not None:
        return get_token_from_request(request)

    if provider is None:
        logger.debug("No request and no session provider; no token available")
        return None

    try:
        session = await provider.get_session()
    except Exception as e:
        logger.debug(f"Session store unavailable while resolving token: {e!r}")
        return None

    return session.access_token if session else None
