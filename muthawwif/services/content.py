"""Page-level data fetchers for the public site."""

from dataclasses import replace
from typing import Dict, Optional

from loguru import logger

from ..auth.session import SessionState
from ..listing.queries import fetch_listing
from ..listing.state import BLOG, CATALOG, FilterState, ListingSpec
from ..storage.database import Database, NotFoundError
from ..storage.models import Consultation, ConsultationPayload, Purchase
from ..utils.config import Config, get_config
from ..utils.helpers import whatsapp_url
from ..utils.result import Result
from .admin import InvalidRequest
from .views import (
    category_view,
    empty_listing,
    listing_payload,
    post_view,
    product_view,
    purchase_view,
    testimonial_view,
)

HOME_SETTING_KEYS = ["site_info", "contact_info", "social_media"]
ABOUT_SETTING_KEYS = ["about_profile", "philosophy"]
CONTACT_SETTING_KEYS = ["contact_info", "social_media"]


class ContentService:
    """Loads what each public page shows.

    Reads never raise: a failed query is logged and comes back as an
    error result carrying an empty default.
    """

    def __init__(self, db: Database, config: Optional[Config] = None):
        self.db = db
        self.config = config or get_config()

    @property
    def blog_spec(self) -> ListingSpec:
        return replace(BLOG, per_page=self.config.listing.blog_per_page)

    @property
    def catalog_spec(self) -> ListingSpec:
        return CATALOG

    def home(self) -> Result[Dict]:
        site = self.config.site
        default = {"featured_products": [], "latest_posts": [], "testimonials": [], "settings": {}}
        try:
            data = {
                "featured_products": [
                    product_view(p) for p in self.db.featured_products(site.home_featured_products)
                ],
                "latest_posts": [post_view(p) for p in self.db.latest_posts(site.home_latest_posts)],
                "testimonials": [
                    testimonial_view(t) for t in self.db.featured_testimonials(site.home_testimonials)
                ],
                "settings": self.db.get_settings(HOME_SETTING_KEYS, public_only=True),
            }
        except Exception as e:
            logger.error(f"Error fetching home data: {e}")
            return Result.failed(e, default)

        empty = not (data["featured_products"] or data["latest_posts"] or data["testimonials"])
        return Result.ok(data, empty=empty)

    def about(self) -> Result[Dict]:
        try:
            return Result.ok(self.db.get_settings(ABOUT_SETTING_KEYS, public_only=True))
        except Exception as e:
            logger.error(f"Error fetching about content: {e}")
            return Result.failed(e, {})

    def contact(self) -> Result[Dict]:
        site = self.config.site
        try:
            settings = self.db.get_settings(CONTACT_SETTING_KEYS, public_only=True)
        except Exception as e:
            logger.error(f"Error fetching contact info: {e}")
            return Result.failed(
                e,
                {
                    "settings": {},
                    "whatsapp_url": whatsapp_url(None, site.whatsapp_greeting, site.default_whatsapp),
                },
            )

        number = (settings.get("contact_info") or {}).get("whatsapp")
        return Result.ok(
            {
                "settings": settings,
                "whatsapp_url": whatsapp_url(number, site.whatsapp_greeting, site.default_whatsapp),
            },
            empty=not settings,
        )

    def submit_consultation(self, payload: ConsultationPayload, session: SessionState) -> Consultation:
        """Store a contact form submission, linked to the signed-in user if any."""
        values = payload.model_dump()
        values["user_id"] = session.user_id
        consultation = self.db.create_consultation(values)
        logger.info(f"Consultation request {consultation.id} from {payload.email}")
        return consultation

    def categories(self) -> list:
        try:
            return [category_view(c) for c in self.db.get_categories(active_only=True)]
        except Exception as e:
            logger.error(f"Error fetching categories: {e}")
            return []

    def blog(self, state: FilterState) -> Result[Dict]:
        try:
            page = fetch_listing(self.db, state)
        except Exception as e:
            logger.error(f"Error fetching posts: {e}")
            return Result.failed(e, {**empty_listing(state), "categories": []})

        payload = listing_payload(page, state, post_view)
        payload["categories"] = self.categories()
        return Result.ok(payload, empty=not page.items)

    def post(self, slug: str) -> Result[Optional[Dict]]:
        """Published post by slug; counts a view."""
        try:
            post = self.db.get_published_post(slug)
            if post is None:
                return Result.ok(None)
            self.db.increment_post_views(post.id)
        except Exception as e:
            logger.error(f"Error fetching post {slug}: {e}")
            return Result.failed(e, None)

        data = post_view(post, with_content=True)
        data["view_count"] += 1
        return Result.ok(data)

    def catalog(self, state: FilterState) -> Result[Dict]:
        try:
            page = fetch_listing(self.db, state)
        except Exception as e:
            logger.error(f"Error fetching products: {e}")
            return Result.failed(e, {**empty_listing(state), "categories": []})

        payload = listing_payload(page, state, product_view)
        payload["categories"] = self.categories()
        return Result.ok(payload, empty=not page.items)

    def product(self, slug: str, session: SessionState) -> Result[Optional[Dict]]:
        try:
            product = self.db.get_active_product(slug)
            if product is None:
                return Result.ok(None)
            owned = session.is_authenticated and self.db.owns_product(session.user_id, product.id)
        except Exception as e:
            logger.error(f"Error fetching product {slug}: {e}")
            return Result.failed(e, None)

        data = product_view(product)
        data["owned"] = owned
        return Result.ok(data)

    def purchases(self, session: SessionState) -> Result[list]:
        """Completed purchases of the signed-in user."""
        try:
            return Result.ok([purchase_view(p) for p in self.db.get_user_purchases(session.user_id)])
        except Exception as e:
            logger.error(f"Error fetching purchases for {session.user_id}: {e}")
            return Result.failed(e, [])

    def purchase(self, slug: str, session: SessionState) -> Purchase:
        """Start a purchase of an active product; it stays pending until payment is confirmed."""
        product = self.db.get_active_product(slug)
        if product is None:
            raise NotFoundError(f"Product {slug} not found")
        if self.db.owns_product(session.user_id, product.id):
            raise InvalidRequest("Produk ini sudah Anda miliki")

        purchase = self.db.create_purchase(session.user_id, product)
        logger.info(f"Purchase {purchase.id} of {slug} started by {session.user_id}")
        return purchase
