"""
Route matching for forecast reads.

A route looks like `content://<authority>/forecast` or
`content://<authority>/forecast/<day>`; the scheme and authority may be left
off (`/forecast/1700000000000`). Readers resolve a path to a Route and hand it
to `query_route`, which is the only place a route turns into a store query.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from forecast_cache.errors import RouteUnrecognized

CONTENT_SCHEME = "content"
DEFAULT_AUTHORITY = "com.example.forecast"
PATH_FORECAST = "forecast"


class RouteKind(Enum):
    COLLECTION = "collection"
    COLLECTION_WITH_DAY = "collection_with_day"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class Route:
    kind: RouteKind
    day: int | None = None


UNRECOGNIZED = Route(RouteKind.UNRECOGNIZED)


class RouteMatcher:
    def __init__(self, authority: str = DEFAULT_AUTHORITY, base_path: str = PATH_FORECAST):
        self.authority = authority
        self.base_path = base_path.strip("/")

    def _split(self, path: str) -> list[str] | None:
        prefix = f"{CONTENT_SCHEME}://"
        if "://" in path:
            if not path.startswith(prefix):
                return None
            authority, _, rest = path[len(prefix):].partition("/")
            if authority != self.authority:
                return None
            path = rest
        return [segment for segment in path.split("/") if segment]

    def match(self, path: str | None) -> Route:
        if not path or not isinstance(path, str):
            return UNRECOGNIZED
        segments = self._split(path.strip())
        if not segments or segments[0] != self.base_path:
            return UNRECOGNIZED
        if len(segments) == 1:
            return Route(RouteKind.COLLECTION)
        if len(segments) == 2 and segments[1].isascii() and segments[1].isdigit():
            return Route(RouteKind.COLLECTION_WITH_DAY, int(segments[1]))
        return UNRECOGNIZED

    def build_path(self, day: int | None = None, with_authority: bool = True) -> str:
        path = f"/{self.base_path}"
        if day is not None:
            path += f"/{int(day)}"
        if with_authority:
            return f"{CONTENT_SCHEME}://{self.authority}{path}"
        return path


_DEFAULT_MATCHER = RouteMatcher()


def resolve(path: str | None) -> Route:
    return _DEFAULT_MATCHER.match(path)


def build_path(day: int | None = None, authority: str | None = None) -> str:
    matcher = RouteMatcher(authority) if authority else _DEFAULT_MATCHER
    return matcher.build_path(day)


def query_route(
    store,
    route: Route | str,
    columns: Iterable[str] | None = None,
    matcher: RouteMatcher | None = None,
) -> list[dict]:
    """
    Run the store query addressed by `route` (a Route or a path string).

    Raises RouteUnrecognized for paths that do not match a forecast route.
    """
    path = None
    if isinstance(route, str):
        path = route
        route = (matcher or _DEFAULT_MATCHER).match(route)
    if route.kind is RouteKind.COLLECTION:
        return store.query(columns=columns)
    if route.kind is RouteKind.COLLECTION_WITH_DAY:
        return store.query(day=route.day, columns=columns)
    raise RouteUnrecognized(path if path is not None else repr(route))
