"""Admin panel fetchers and actions."""

from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import uuid4

from loguru import logger
from sqlalchemy.orm import selectinload

from ..analytics.aggregator import AnalyticsAggregator
from ..analytics.dashboard import DashboardStats, dashboard_revenue
from ..auth.session import SessionState
from ..listing.queries import fetch_listing
from ..listing.state import FilterState
from ..storage.database import Database, NotFoundError
from ..storage.models import (
    ADMIN_SETTING_KEYS,
    PAYMENT_STATUSES,
    ROLES,
    Category,
    CategoryPayload,
    Post,
    PostPayload,
    Product,
    ProductPayload,
    Profile,
    Purchase,
)
from ..utils.config import Config, get_config
from ..utils.helpers import slugify
from ..utils.result import Result
from .views import (
    category_view,
    empty_listing,
    listing_payload,
    post_view,
    product_view,
    profile_view,
    purchase_view,
)


class PermissionDenied(Exception):
    """The signed-in user may not perform this action."""


class InvalidRequest(ValueError):
    """Malformed admin request (unknown action, empty selection, bad value)."""


POST_BULK_ACTIONS = {
    "publish": {"status": "published"},
    "unpublish": {"status": "draft"},
}

PRODUCT_BULK_ACTIONS = {
    "activate": {"is_active": True},
    "deactivate": {"is_active": False},
    "feature": {"is_featured": True},
    "unfeature": {"is_featured": False},
}

USER_BULK_ACTIONS = {
    "activate": {"is_active": True},
    "deactivate": {"is_active": False},
    "makeUser": {"role": "user"},
    "makeAdmin": {"role": "admin"},
}


class AdminService:
    """Coordinates admin reads, writes and analytics."""

    def __init__(
        self,
        db: Database,
        config: Optional[Config] = None,
        aggregator: Optional[AnalyticsAggregator] = None,
    ):
        """Initialize admin service.

        Args:
            db: Database instance
            config: Optional configuration, defaults to the global one
            aggregator: Optional analytics aggregator
        """
        self.db = db
        self.config = config or get_config()
        self.aggregator = aggregator or AnalyticsAggregator(self.config.model_dump())

    # ------------------------------------------------------------------
    # Dashboard and analytics
    # ------------------------------------------------------------------

    def dashboard(self) -> Result[Dict]:
        recent = self.config.listing.dashboard_recent
        try:
            purchases = self.db.get_completed_purchases()
            stats = DashboardStats(
                total_posts=self.db.count(Post),
                total_products=self.db.count(Product),
                total_users=self.db.count(Profile),
                total_revenue=dashboard_revenue(purchases),
                recent_purchases=[purchase_view(p) for p in purchases[:recent]],
                recent_posts=[post_view(p) for p in self.db.recent_posts(recent)],
                recent_users=[profile_view(p) for p in self.db.recent_profiles(recent)],
            )
        except Exception as e:
            logger.error(f"Error fetching dashboard data: {e}")
            return Result.failed(e, asdict(DashboardStats()))

        return Result.ok(asdict(stats), empty=stats.total_posts + stats.total_products + stats.total_users == 0)

    def analytics(self, range_days: Optional[int] = None, now: Optional[datetime] = None) -> Result[Dict]:
        """Aggregate analytics; a failed query renders as zero metrics."""
        analytics_config = self.config.analytics
        if range_days is None:
            range_days = analytics_config.default_range_days
        if range_days not in analytics_config.allowed_ranges:
            raise InvalidRequest(f"Range must be one of {analytics_config.allowed_ranges}")

        now = now or datetime.utcnow()
        range_start = now - timedelta(days=range_days)

        try:
            purchases = self.db.get_completed_purchases()
            range_purchases = self.db.get_completed_purchases(since=range_start)
            profiles = self.db.get_profiles()
            range_profiles = self.db.get_profiles(since=range_start)
        except Exception as e:
            logger.error(f"Error fetching analytics: {e}")
            return Result.failed(e, self.aggregator.empty(now=now, range_days=range_days).to_dict())

        summary = self.aggregator.calculate(
            purchases,
            profiles,
            now=now,
            range_days=range_days,
            range_purchases=range_purchases,
            range_profiles=range_profiles,
        )
        return Result.ok(summary.to_dict(), empty=not purchases and not profiles)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def listing(self, state: FilterState) -> Result[Dict]:
        serializers = {
            "admin_posts": post_view,
            "admin_products": product_view,
            "admin_users": profile_view,
        }
        try:
            page = fetch_listing(self.db, state)
        except Exception as e:
            logger.error(f"Error loading {state.spec.name}: {e}")
            return Result.failed(e, empty_listing(state))

        return Result.ok(listing_payload(page, state, serializers[state.spec.name]), empty=not page.items)

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    def create_post(self, payload: PostPayload, author_id: Optional[str]) -> Post:
        values = payload.model_dump()
        values["slug"] = self._slug(payload.slug, payload.title, "post")
        values["author_id"] = author_id
        if payload.status == "published":
            values["published_at"] = datetime.utcnow()
        post = self.db.insert(Post, values)
        logger.info(f"Created post {post.slug}")
        return self._load_post(post.id)

    def update_post(self, post_id: int, payload: PostPayload) -> Post:
        values = payload.model_dump(exclude_unset=True)
        if "slug" in values and not values["slug"]:
            values["slug"] = self._slug(None, payload.title, "post")
        if values.get("status") == "published":
            current = self.db.get(Post, post_id)
            if current is not None and current.published_at is None:
                values["published_at"] = datetime.utcnow()
        self.db.update(Post, post_id, values)
        return self._load_post(post_id)

    def delete_post(self, post_id: int) -> None:
        self.db.delete(Post, post_id)

    def toggle_post_status(self, post_id: int) -> Post:
        """Flip a post between published and draft."""
        post = self._get_or_raise(Post, post_id)
        values: Dict[str, Any] = {"status": "draft" if post.status == "published" else "published"}
        if values["status"] == "published" and post.published_at is None:
            values["published_at"] = datetime.utcnow()
        self.db.update(Post, post_id, values)
        return self._load_post(post_id)

    def bulk_posts(self, action: str, ids: List[int]) -> str:
        self._require_selection(ids, "posts")
        if action == "delete":
            count = self.db.bulk_delete(Post, ids)
            return f"{count} posts deleted"
        if action not in POST_BULK_ACTIONS:
            raise InvalidRequest(f"Unknown action: {action}")
        count = self.db.bulk_update(Post, ids, POST_BULK_ACTIONS[action])
        if action == "publish":
            self.db.bulk_update(Post, ids, {"published_at": datetime.utcnow()}, Post.published_at.is_(None))
        return f"{count} posts {action}ed"

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def create_product(self, payload: ProductPayload) -> Product:
        values = payload.model_dump()
        values["slug"] = self._slug(payload.slug, payload.title, "product")
        product = self.db.insert(Product, values)
        logger.info(f"Created product {product.slug}")
        return product

    def update_product(self, product_id: int, payload: ProductPayload) -> Product:
        values = payload.model_dump(exclude_unset=True)
        if "slug" in values and not values["slug"]:
            values["slug"] = self._slug(None, payload.title, "product")
        return self.db.update(Product, product_id, values)

    def delete_product(self, product_id: int) -> None:
        self.db.delete(Product, product_id)

    def toggle_product_active(self, product_id: int) -> Product:
        product = self._get_or_raise(Product, product_id)
        return self.db.update(Product, product_id, {"is_active": not product.is_active})

    def toggle_product_featured(self, product_id: int) -> Product:
        product = self._get_or_raise(Product, product_id)
        return self.db.update(Product, product_id, {"is_featured": not product.is_featured})

    def bulk_products(self, action: str, ids: List[int]) -> str:
        self._require_selection(ids, "products")
        if action == "delete":
            count = self.db.bulk_delete(Product, ids)
            return f"{count} products deleted"
        if action not in PRODUCT_BULK_ACTIONS:
            raise InvalidRequest(f"Unknown action: {action}")
        count = self.db.bulk_update(Product, ids, PRODUCT_BULK_ACTIONS[action])
        return f"{count} products {action}d"

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def update_user_role(self, actor: SessionState, user_id: str, role: str) -> Profile:
        self._require_user_manager(actor)
        if role not in ROLES:
            raise InvalidRequest(f"Unknown role: {role}")
        if user_id == actor.user_id:
            raise PermissionDenied("You cannot change your own role")
        profile = self.db.update(Profile, user_id, {"role": role, "updated_at": datetime.utcnow()})
        logger.info(f"{actor.user_id} set role of {user_id} to {role}")
        return profile

    def toggle_user_status(self, actor: SessionState, user_id: str) -> Profile:
        self._require_user_manager(actor)
        if user_id == actor.user_id:
            raise PermissionDenied("You cannot deactivate your own account")
        profile = self._get_or_raise(Profile, user_id)
        return self.db.update(
            Profile, user_id, {"is_active": not profile.is_active, "updated_at": datetime.utcnow()}
        )

    def bulk_users(self, actor: SessionState, action: str, ids: List[str]) -> str:
        self._require_user_manager(actor)
        self._require_selection(ids, "users")
        if actor.user_id in ids:
            raise PermissionDenied("You cannot perform bulk actions on your own account")
        if action not in USER_BULK_ACTIONS:
            raise InvalidRequest(f"Unknown action: {action}")

        values = {**USER_BULK_ACTIONS[action], "updated_at": datetime.utcnow()}
        count = self.db.bulk_update(Profile, ids, values)
        return f"{count} users updated"

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def categories(self) -> Result[list]:
        """Every category, active or not."""
        try:
            return Result.ok([category_view(c) for c in self.db.get_categories()])
        except Exception as e:
            logger.error(f"Error fetching categories: {e}")
            return Result.failed(e, [])

    def create_category(self, payload: CategoryPayload) -> Category:
        values = payload.model_dump()
        values["slug"] = self._slug(payload.slug, payload.name, "category")
        category = self.db.insert(Category, values)
        logger.info(f"Created category {category.slug}")
        return category

    def update_category(self, category_id: int, payload: CategoryPayload) -> Category:
        values = payload.model_dump(exclude_unset=True)
        if "slug" in values and not values["slug"]:
            values["slug"] = self._slug(None, payload.name, "category")
        return self.db.update(Category, category_id, values)

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------

    def update_purchase_status(self, purchase_id: int, status: str) -> Purchase:
        """Change the payment status of a purchase.

        Completing a purchase counts it as a sale of its product.
        """
        if status not in PAYMENT_STATUSES:
            raise InvalidRequest(f"Unknown payment status: {status}")
        purchase = self._get_or_raise(Purchase, purchase_id)
        updated = self.db.update_purchase_status(purchase_id, status)
        if status == "completed" and purchase.payment_status != "completed" and purchase.product_id:
            self.db.increment_sold_count(purchase.product_id)
        logger.info(f"Purchase {purchase_id}: {purchase.payment_status} -> {status}")
        return updated

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def settings(self) -> Result[Dict]:
        default = {key: {} for key in ADMIN_SETTING_KEYS}
        try:
            stored = self.db.get_settings(ADMIN_SETTING_KEYS)
        except Exception as e:
            logger.error(f"Error fetching settings: {e}")
            return Result.failed(e, default)
        return Result.ok({**default, **stored}, empty=not stored)

    def save_setting(self, key: str, value: Dict[str, Any], is_public: Optional[bool] = None) -> Dict:
        self.db.upsert_setting(key, value, is_public)
        logger.info(f"Updated setting {key}")
        return value

    # ------------------------------------------------------------------

    def _load_post(self, post_id: int) -> Post:
        return self._get_or_raise(Post, post_id, options=(selectinload(Post.author), selectinload(Post.category)))

    @staticmethod
    def _slug(slug: Optional[str], title: str, prefix: str) -> str:
        """Explicit slug, else one derived from the title.

        Titles without Latin letters (Arabic, for instance) slugify to nothing
        and get a random suffix instead.
        """
        if slug:
            return slug
        slug = slugify(title)
        return slug or f"{prefix}-{uuid4().hex[:8]}"

    def _get_or_raise(self, model, row_id, options=()):
        row = self.db.get(model, row_id, options=options)
        if row is None:
            raise NotFoundError(f"{model.__name__} {row_id} not found")
        return row

    @staticmethod
    def _require_selection(ids: List[Any], noun: str) -> None:
        if not ids:
            raise InvalidRequest(f"Please select {noun} first")

    @staticmethod
    def _require_user_manager(actor: SessionState) -> None:
        if not actor.can_manage_users():
            raise PermissionDenied("You do not have permission to manage users")
