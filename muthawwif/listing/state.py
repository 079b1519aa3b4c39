"""Filter and pagination state for listing pages, mirrored in the URL query string."""

import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, urlencode

from loguru import logger

from ..utils.result import Result


@dataclass(frozen=True)
class ListingSpec:
    """Filter keys a listing understands, their defaults and its page size."""

    name: str
    keys: Tuple[str, ...]
    defaults: Dict[str, Any] = field(default_factory=dict)
    paginated: bool = False
    per_page: int = 0

    def default(self, key: str) -> Any:
        if key == "page":
            return 1
        return self.defaults.get(key, "")


BLOG = ListingSpec("blog", ("category", "search", "page"), paginated=True, per_page=9)
CATALOG = ListingSpec(
    "catalog",
    ("category", "search", "type", "priceRange", "sortBy"),
    defaults={"sortBy": "newest"},
)
ADMIN_POSTS = ListingSpec("admin_posts", ("status", "category", "search"))
ADMIN_PRODUCTS = ListingSpec("admin_products", ("status", "category", "type", "search"))
ADMIN_USERS = ListingSpec("admin_users", ("role", "status", "search"))

LISTINGS = {spec.name: spec for spec in (BLOG, CATALOG, ADMIN_POSTS, ADMIN_PRODUCTS, ADMIN_USERS)}


class FilterState:
    """Current filter values of one listing.

    Every change bumps ``generation`` so responses fetched for an older
    state can be told apart from the current one.
    """

    def __init__(self, spec: ListingSpec, values: Optional[Mapping[str, Any]] = None):
        self.spec = spec
        self.values: Dict[str, Any] = {key: spec.default(key) for key in spec.keys}
        self.generation = 0

        for key, value in (values or {}).items():
            if key in self.values:
                self.values[key] = self._normalize(key, value)

    @classmethod
    def from_query_string(cls, spec: ListingSpec, query_string: str) -> "FilterState":
        """Hydrate state from a URL query string; unknown keys are ignored."""
        return cls(spec, dict(parse_qsl(query_string.lstrip("?"))))

    @classmethod
    def from_params(cls, spec: ListingSpec, params: Mapping[str, Any]) -> "FilterState":
        return cls(spec, params)

    def _normalize(self, key: str, value: Any) -> Any:
        if key == "page":
            try:
                return max(1, int(value))
            except (TypeError, ValueError):
                return 1
        if value is None:
            return ""
        return str(value)

    def get(self, key: str) -> Any:
        return self.values[key]

    @property
    def page(self) -> int:
        return self.values.get("page", 1)

    def set(self, key: str, value: Any) -> "FilterState":
        """Change one filter; paginated listings go back to the first page."""
        if key not in self.values:
            raise KeyError(f"{self.spec.name} has no filter '{key}'")
        if key == "page":
            return self.set_page(value)

        self.values[key] = self._normalize(key, value)
        if self.spec.paginated:
            self.values["page"] = 1
        self.generation += 1
        return self

    def set_page(self, page: Any) -> "FilterState":
        if not self.spec.paginated:
            raise KeyError(f"{self.spec.name} is not paginated")
        self.values["page"] = self._normalize("page", page)
        self.generation += 1
        return self

    def clear(self) -> "FilterState":
        """Reset every filter to its default."""
        self.values = {key: self.spec.default(key) for key in self.spec.keys}
        self.generation += 1
        return self

    def active(self) -> Dict[str, Any]:
        """Filters holding a non-empty, non-default value."""
        return {
            key: value
            for key, value in self.values.items()
            if value not in ("", None) and value != self.spec.default(key)
        }

    def to_params(self) -> Dict[str, str]:
        return {key: str(value) for key, value in self.active().items()}

    def to_query_string(self) -> str:
        """Serialize for the URL; unset and default values are left out."""
        return urlencode(self.to_params())

    def snapshot(self) -> Dict[str, Any]:
        return dict(self.values)

    @property
    def offset(self) -> Optional[int]:
        if not self.spec.paginated:
            return None
        return (self.page - 1) * self.spec.per_page

    @property
    def limit(self) -> Optional[int]:
        return self.spec.per_page if self.spec.paginated else None

    def __repr__(self):
        return f"<FilterState({self.spec.name}, {self.to_query_string()!r}, gen={self.generation})>"


@dataclass
class ListingPage:
    """One fetched page of a listing."""

    items: List[Any]
    total: int
    page: int = 1
    per_page: Optional[int] = None

    @property
    def total_pages(self) -> int:
        if not self.per_page:
            return 1 if self.total else 0
        return math.ceil(self.total / self.per_page)


class ListingView:
    """Local view state of a listing page fed by fetches that may resolve out of order."""

    def __init__(self, state: FilterState):
        self.state = state
        self.page: Optional[ListingPage] = None
        self.error: Optional[str] = None
        self.applied_generation = -1

    def apply(self, generation: int, result: Result) -> bool:
        """Apply a fetch result issued for ``generation``.

        Returns:
            False when the result belongs to an older filter state and was dropped
        """
        if generation < self.state.generation or generation < self.applied_generation:
            logger.debug(
                f"Dropping stale {self.state.spec.name} response "
                f"(gen {generation}, current {self.state.generation})"
            )
            return False

        self.page = result.data
        self.error = result.error
        self.applied_generation = generation
        return True

    def refresh(self, fetch: Callable[[FilterState], Result]) -> bool:
        generation = self.state.generation
        return self.apply(generation, fetch(self.state))

    async def refresh_async(self, fetch: Callable[[FilterState], Awaitable[Result]]) -> bool:
        generation = self.state.generation
        result = await fetch(self.state)
        return self.apply(generation, result)
