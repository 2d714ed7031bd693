"""
Route table mapping (method, endpoint) onto gateway handlers.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple


Handler = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class Route:
    """One addressable storefront operation."""

    method: str
    endpoint: str
    handler: Handler
    admin: bool = False
    status_code: int = 200
    description: str = ""

    @property
    def key(self) -> Tuple[str, str]:
        return self.method, self.endpoint

    def describe(self) -> str:
        return f"{self.method} ?endpoint={self.endpoint} - {self.description}"


class RouteTable:
    """Lookup table from (method, endpoint) to :class:`Route`."""

    def __init__(self, routes: Iterable[Route] = ()):
        self._routes: Dict[Tuple[str, str], Route] = {}
        for route in routes:
            self.add(route)

    def add(self, route: Route) -> None:
        if route.key in self._routes:
            raise ValueError(f"Duplicate route: {route.method} {route.endpoint}")
        self._routes[route.key] = route

    def resolve(self, method: str, endpoint: str) -> Optional[Route]:
        return self._routes.get((method.upper(), endpoint))

    def available_endpoints(self) -> Dict[str, List[str]]:
        """Endpoint catalog returned for unmatched routes."""
        public = [route.describe() for route in self._routes.values() if not route.admin]
        admin = [route.describe() for route in self._routes.values() if route.admin]
        return {
            "public": public,
            "admin (require Basic Auth)": admin,
        }

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self):
        return iter(self._routes.values())
