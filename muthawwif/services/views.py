"""JSON view models for rows returned by the database."""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy import inspect

from ..listing.state import FilterState, ListingPage
from ..utils.helpers import format_date, format_price, truncate_text


def _loaded(row, name: str) -> Any:
    """Relationship value if it was eagerly loaded, else None (rows are detached)."""
    return inspect(row).dict.get(name)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def category_view(category) -> Optional[Dict]:
    if category is None:
        return None
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "color": category.color,
        "icon": category.icon,
        "is_active": category.is_active,
    }


def post_view(post, with_content: bool = False) -> Dict:
    author = _loaded(post, "author")
    data = {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "excerpt": post.excerpt or truncate_text(post.content, 150),
        "featured_image": post.featured_image,
        "status": post.status,
        "category_id": post.category_id,
        "category": category_view(_loaded(post, "category")),
        "author": {"id": author.id, "full_name": author.full_name} if author is not None else None,
        "view_count": post.view_count or 0,
        "published_at": _iso(post.published_at),
        "published_date": format_date(post.published_at),
        "created_at": _iso(post.created_at),
    }
    if with_content:
        data["content"] = post.content
    return data


def product_view(product) -> Dict:
    return {
        "id": product.id,
        "title": product.title,
        "slug": product.slug,
        "description": product.description,
        "price": product.price,
        "price_display": format_price(product.price),
        "original_price": product.original_price,
        "product_type": product.product_type,
        "is_active": product.is_active,
        "is_featured": product.is_featured,
        "sold_count": product.sold_count or 0,
        "rating_average": product.rating_average or 0,
        "category_id": product.category_id,
        "category": category_view(_loaded(product, "category")),
        "created_at": _iso(product.created_at),
    }


def profile_view(profile) -> Optional[Dict]:
    if profile is None:
        return None
    return {
        "id": profile.id,
        "email": profile.email,
        "full_name": profile.full_name,
        "avatar_url": profile.avatar_url,
        "phone": profile.phone,
        "role": profile.role,
        "is_active": profile.is_active,
        "created_at": _iso(profile.created_at),
        "updated_at": _iso(profile.updated_at),
    }


def testimonial_view(testimonial) -> Dict:
    return {
        "id": testimonial.id,
        "name": testimonial.name,
        "origin": testimonial.origin,
        "content": testimonial.content,
        "rating": testimonial.rating,
    }


def purchase_view(purchase) -> Dict:
    product = _loaded(purchase, "product")
    return {
        "id": purchase.id,
        "user_id": purchase.user_id,
        "product_id": purchase.product_id,
        "product": {"title": product.title, "price": product.price} if product is not None else None,
        "amount": purchase.amount,
        "payment_status": purchase.payment_status,
        "created_at": _iso(purchase.created_at),
    }


def listing_payload(page: ListingPage, state: FilterState, serialize: Callable[[Any], Dict]) -> Dict:
    """Listing rows plus the filter state and its canonical URL query."""
    payload = {
        "items": [serialize(row) for row in page.items],
        "total": page.total,
        "filters": state.snapshot(),
        "query_string": state.to_query_string(),
        "generation": state.generation,
    }
    if state.spec.paginated:
        payload["pagination"] = {
            "page": page.page,
            "per_page": page.per_page,
            "total": page.total,
            "total_pages": page.total_pages,
        }
    return payload


def empty_listing(state: FilterState) -> Dict:
    return listing_payload(ListingPage(items=[], total=0, page=state.page, per_page=state.limit), state, dict)
