"""
JUSTDOIT - Route Guard
======================
Decides, for every navigation, whether the requested path may be shown.

    no session + /dashboard/...   -> /login?redirectedFrom=<path>
    session    + /login|/register -> /dashboard
    anything else                 -> allow

The decision is a pure function of (path, session) and is never cached.
"""

from typing import Any, Optional, Union
from urllib.parse import urlencode, urlsplit

from pydantic import BaseModel, ConfigDict

PROTECTED_PREFIX = "/dashboard"
LOGIN_PATH = "/login"
REGISTER_PATH = "/register"
DASHBOARD_PATH = "/dashboard"
AUTH_PAGES = (LOGIN_PATH, REGISTER_PATH)
REDIRECT_PARAM = "redirectedFrom"


class Allow(BaseModel):
    model_config = ConfigDict(frozen=True)


class RedirectTo(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: str


RouteDecision = Union[Allow, RedirectTo]


def is_protected(path: str) -> bool:
    return path == PROTECTED_PREFIX or path.startswith(PROTECTED_PREFIX + "/")


class RouteGuard:
    """Navigation interceptor bound to a SessionGuard"""

    def __init__(self, session_guard: Optional[Any] = None):
        self.session_guard = session_guard

    @staticmethod
    def matches(path: str) -> bool:
        """Whether the guard intercepts this path at all"""
        pathname = urlsplit(path).path
        return is_protected(pathname) or pathname in AUTH_PAGES

    @staticmethod
    def evaluate(path: str, session: Optional[Any]) -> RouteDecision:
        pathname = urlsplit(path).path or "/"

        if session is None and is_protected(pathname):
            query = urlencode({REDIRECT_PARAM: pathname}, safe="/")
            return RedirectTo(location=f"{LOGIN_PATH}?{query}")

        if session is not None and pathname in AUTH_PAGES:
            return RedirectTo(location=DASHBOARD_PATH)

        return Allow()

    def navigate(self, path: str) -> RouteDecision:
        """Evaluate against the guard's session as it is right now"""
        session = self.session_guard.session if self.session_guard else None
        return self.evaluate(path, session)
