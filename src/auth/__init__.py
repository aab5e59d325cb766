from .schema import AuthSession, AuthUser
from .cookies import AUTH_COOKIE_NAME, CookieDocument, CookieMirror, format_auth_cookie

__all__ = [
    "AuthSession",
    "AuthUser",
    "AUTH_COOKIE_NAME",
    "CookieDocument",
    "CookieMirror",
    "format_auth_cookie",
]
