"""Filtered, URL-synced listings"""

from .state import (
    ADMIN_POSTS,
    ADMIN_PRODUCTS,
    ADMIN_USERS,
    BLOG,
    CATALOG,
    LISTINGS,
    FilterState,
    ListingPage,
    ListingSpec,
    ListingView,
)
from .queries import fetch_listing

__all__ = [
    "ADMIN_POSTS",
    "ADMIN_PRODUCTS",
    "ADMIN_USERS",
    "BLOG",
    "CATALOG",
    "LISTINGS",
    "FilterState",
    "ListingPage",
    "ListingSpec",
    "ListingView",
    "fetch_listing",
]
