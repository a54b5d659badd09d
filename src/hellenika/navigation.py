"""Route table and auth guards for the bot's views."""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
from urllib.parse import quote

from hellenika.security import is_valid_internal_url

logger = logging.getLogger(__name__)

HOME_PATH = "/dashboard"
AUTH_PATH = "/auth"


@dataclass(frozen=True)
class Route:
    """A view reachable by path. ``:name`` segments capture parameters."""
    name: str
    pattern: str
    protected: bool = True

    @property
    def segments(self) -> List[str]:
        return [s for s in self.pattern.split("/") if s]

    def match(self, segments: Sequence[str]) -> Optional[Dict[str, str]]:
        own = self.segments
        if len(own) != len(segments):
            return None
        params: Dict[str, str] = {}
        for expected, actual in zip(own, segments):
            if expected.startswith(":"):
                params[expected[1:]] = actual
            elif expected != actual:
                return None
        return params


ROUTES = [
    Route("dashboard", "/dashboard"),
    Route("activities", "/activities"),
    Route("activity", "/activities/:activityId"),
    Route("activity", "/activities/:activityId/:groupId"),
    Route("words", "/words"),
    Route("groups", "/groups"),
    Route("group", "/groups/:groupId"),
    Route("sessions", "/sessions"),
    Route("settings", "/settings"),
    Route("auth", AUTH_PATH, protected=False),
]

REDIRECTS = {"/": HOME_PATH}


@dataclass
class RouteMatch:
    route: Route
    path: str
    params: Dict[str, str] = field(default_factory=dict)
    next_path: Optional[str] = None

    @property
    def name(self) -> str:
        return self.route.name


def normalize_path(path: str) -> str:
    path = (path or "/").split("?", 1)[0].split("#", 1)[0]
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


class Router:
    """Resolves paths against the route table."""

    def __init__(self, routes: Sequence[Route] = ROUTES, redirects: Optional[Dict[str, str]] = None):
        self.routes = list(routes)
        self.redirects = REDIRECTS if redirects is None else redirects

    def resolve(self, path: str) -> Optional[RouteMatch]:
        """Match a path, following fixed redirects. None when nothing matches."""
        path = normalize_path(path)
        path = self.redirects.get(path, path)
        segments = [s for s in path.split("/") if s]
        for route in self.routes:
            params = route.match(segments)
            if params is not None:
                return RouteMatch(route=route, path=path, params=params)
        return None

    def guard(
        self,
        path: str,
        is_authenticated: bool,
        next_path: Optional[str] = None,
    ) -> Optional[RouteMatch]:
        """Resolve a path and apply the auth redirects.

        Protected views send anonymous users to the sign-in view, which
        remembers where they were going. Signed-in users never see the
        sign-in view.
        """
        match = self.resolve(path)
        if match is None:
            logger.debug(f"No route for {path}")
            return None

        if match.route.protected and not is_authenticated:
            redirect = self.resolve(AUTH_PATH)
            redirect.next_path = match.path
            return redirect

        if match.route.name == "auth":
            if is_authenticated:
                return self.after_sign_in(next_path)
            if is_valid_internal_url(next_path):
                match.next_path = next_path

        return match

    def after_sign_in(self, next_path: Optional[str]) -> RouteMatch:
        """Where to go once signed in; only internal paths are honoured."""
        if is_valid_internal_url(next_path):
            match = self.resolve(next_path)
            if match is not None and match.route.name != "auth":
                return match
        return self.resolve(HOME_PATH)


def command_to_path(command: str, args: Sequence[str] = ()) -> str:
    """Map a bot command and its arguments to a path.

    ``/activities quiz homer`` becomes ``/activities/quiz/homer``;
    ``/start`` maps to the root.
    """
    command = command.lstrip("/").split("@", 1)[0].lower()
    if command in ("", "start"):
        return "/"
    segments = [command] + [quote(arg, safe="") for arg in args if arg]
    return "/" + "/".join(segments)
