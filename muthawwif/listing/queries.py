"""Translate listing filter state into database predicates."""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from loguru import logger
from sqlalchemy import or_
from sqlalchemy.orm import Query, selectinload

from ..storage.database import Database
from ..storage.models import Post, Product, Profile
from .state import FilterState, ListingPage


def search_clause(columns, term: str):
    """Case-insensitive substring match across columns.

    The term goes into the pattern as-is, so ``%`` and ``_`` keep their
    wildcard meaning.
    """
    pattern = f"%{term}%"
    return or_(*[column.ilike(pattern) for column in columns])


def parse_price_range(value: str) -> Optional[Tuple[float, Optional[float]]]:
    """Parse ``min-max`` or ``min``; a missing or zero max means no upper bound."""
    if not value:
        return None
    parts = value.split("-", 1)
    try:
        low = float(parts[0])
        high = float(parts[1]) if len(parts) > 1 and parts[1] else None
    except ValueError:
        logger.warning(f"Ignoring malformed price range: {value!r}")
        return None
    return low, (high or None)


def _category_id(value: str) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring malformed category id: {value!r}")
        return None


def _active_flag(column, value: str):
    if value == "active":
        return column.is_(True)
    if value == "inactive":
        return column.is_(False)
    return None


PRODUCT_SORTS = {
    "price_low": (Product.price.asc(),),
    "price_high": (Product.price.desc(),),
    "popular": (Product.sold_count.desc(),),
    "rating": (Product.rating_average.desc(),),
}


def blog_filters(query: Query, state: FilterState) -> Query:
    query = query.filter(Post.status == "published")

    category_id = _category_id(state.get("category"))
    if category_id is not None:
        query = query.filter(Post.category_id == category_id)

    if state.get("search"):
        query = query.filter(search_clause([Post.title, Post.content], state.get("search")))

    return query.order_by(Post.published_at.desc(), Post.id.desc())


def catalog_filters(query: Query, state: FilterState) -> Query:
    query = query.filter(Product.is_active.is_(True))

    category_id = _category_id(state.get("category"))
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)

    if state.get("search"):
        query = query.filter(search_clause([Product.title, Product.description], state.get("search")))

    if state.get("type"):
        query = query.filter(Product.product_type == state.get("type"))

    price_range = parse_price_range(state.get("priceRange"))
    if price_range:
        low, high = price_range
        query = query.filter(Product.price >= low)
        if high is not None:
            query = query.filter(Product.price <= high)

    ordering = PRODUCT_SORTS.get(state.get("sortBy"), (Product.created_at.desc(),))
    return query.order_by(*ordering, Product.id.desc())


def admin_post_filters(query: Query, state: FilterState) -> Query:
    if state.get("status"):
        query = query.filter(Post.status == state.get("status"))

    category_id = _category_id(state.get("category"))
    if category_id is not None:
        query = query.filter(Post.category_id == category_id)

    if state.get("search"):
        query = query.filter(search_clause([Post.title, Post.content], state.get("search")))

    return query.order_by(Post.created_at.desc(), Post.id.desc())


def admin_product_filters(query: Query, state: FilterState) -> Query:
    status_clause = _active_flag(Product.is_active, state.get("status"))
    if status_clause is not None:
        query = query.filter(status_clause)

    category_id = _category_id(state.get("category"))
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)

    if state.get("type"):
        query = query.filter(Product.product_type == state.get("type"))

    if state.get("search"):
        query = query.filter(search_clause([Product.title, Product.description], state.get("search")))

    return query.order_by(Product.created_at.desc(), Product.id.desc())


def admin_user_filters(query: Query, state: FilterState) -> Query:
    if state.get("role"):
        query = query.filter(Profile.role == state.get("role"))

    status_clause = _active_flag(Profile.is_active, state.get("status"))
    if status_clause is not None:
        query = query.filter(status_clause)

    if state.get("search"):
        query = query.filter(search_clause([Profile.full_name, Profile.email], state.get("search")))

    return query.order_by(Profile.created_at.desc())


@dataclass(frozen=True)
class ListingQuery:
    model: type
    build: Callable[[Query, FilterState], Query]
    options: Tuple = ()


LISTING_QUERIES: Dict[str, ListingQuery] = {
    "blog": ListingQuery(Post, blog_filters, (selectinload(Post.category), selectinload(Post.author))),
    "catalog": ListingQuery(Product, catalog_filters, (selectinload(Product.category),)),
    "admin_posts": ListingQuery(
        Post, admin_post_filters, (selectinload(Post.category), selectinload(Post.author))
    ),
    "admin_products": ListingQuery(Product, admin_product_filters, (selectinload(Product.category),)),
    "admin_users": ListingQuery(Profile, admin_user_filters),
}


def fetch_listing(db: Database, state: FilterState) -> ListingPage:
    """Run the listing query for the current filter state.

    Every call goes to the database; nothing is cached between filter changes.
    """
    listing = LISTING_QUERIES[state.spec.name]
    rows, total = db.query_listing(
        listing.model,
        lambda query: listing.build(query, state),
        options=listing.options,
        offset=state.offset,
        limit=state.limit,
        with_count=state.spec.paginated,
    )

    return ListingPage(
        items=rows,
        total=total if total is not None else len(rows),
        page=state.page,
        per_page=state.limit,
    )
