"""
Cookie copy of the access token.

Server-rendered requests cannot see the client session store, so the current
access token is mirrored into the `sb-access-token` cookie. `AUTH_COOKIE_NAME`
is the one key shared by the writer here and the reader in `auth.token`.
"""

import logging
import time
from http.cookies import CookieError, SimpleCookie
from typing import Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)

AUTH_COOKIE_NAME = "sb-access-token"
AUTH_COOKIE_PATH = "/"
AUTH_COOKIE_MAX_AGE = 7 * 24 * 60 * 60
AUTH_COOKIE_SAMESITE = "Lax"


class CookieDocument:
    """
    In-memory browser-like cookie store.

    Assigning to `cookie` behaves like `document.cookie = "..."` in a browser:
    one cookie string per assignment, `Max-Age=0` removes the cookie. Reading
    `cookie` returns the live cookies as a request `Cookie` header value.
    """

    def __init__(self):
        # name -> (value, expiry timestamp or None for a session cookie)
        self._jar: dict[str, tuple[str, Optional[float]]] = {}

    def _purge_expired(self) -> None:
        now = time.time()
        for name in [n for n, (_, expires) in self._jar.items() if expires is not None and expires <= now]:
            del self._jar[name]

    @property
    def cookie(self) -> str:
        self._purge_expired()
        return "; ".join(f"{name}={value}" for name, (value, _) in self._jar.items())

    @cookie.setter
    def cookie(self, cookie_string: str) -> None:
        parsed = SimpleCookie()
        try:
            parsed.load(cookie_string)
        except CookieError as e:
            logger.warning(f"Ignoring unparsable cookie string: {e}")
            return

        for name, morsel in parsed.items():
            max_age = morsel["max-age"]
            if max_age == "":
                self._jar[name] = (morsel.value, None)
            elif int(max_age) <= 0:
                self._jar.pop(name, None)
            else:
                self._jar[name] = (morsel.value, time.time() + int(max_age))

    def get(self, name: str) -> Optional[str]:
        self._purge_expired()
        entry = self._jar.get(name)
        return entry[0] if entry else None


def format_auth_cookie(token: Optional[str]) -> str:
    """Build the cookie string that sets (or, for None, clears) the auth cookie."""
    if token:
        return (
            f"{AUTH_COOKIE_NAME}={quote(token, safe='')}; Path={AUTH_COOKIE_PATH}; "
            f"Max-Age={AUTH_COOKIE_MAX_AGE}; SameSite={AUTH_COOKIE_SAMESITE}"
        )
    return f"{AUTH_COOKIE_NAME}=; Path={AUTH_COOKIE_PATH}; Max-Age=0"


class CookieMirror:
    """Keeps the auth cookie of a browser-like document in step with the session token."""

    def __init__(self, document: Optional[CookieDocument] = None):
        self.document = document

    def set(self, token: Optional[str]) -> None:
        """
        Write the token to the auth cookie, or clear the cookie when token is None.

        Without a document (no browser-like context) this does nothing.
        """
        if self.document is None:
            return
        self.document.cookie = format_auth_cookie(token)
        logger.debug(f"Auth cookie {'set' if token else 'cleared'}")
