"""Database operations and management"""

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type

from loguru import logger
from sqlalchemy import create_engine, update
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Query, selectinload, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import (
    Base,
    Category,
    Consultation,
    Post,
    Product,
    Profile,
    Purchase,
    SiteSetting,
    Testimonial,
)


class NotFoundError(LookupError):
    """Raised when an update or delete targets a missing row."""


class Database:
    """Database management class"""

    def __init__(self, db_url: str = "sqlite:///data/db/site.db", echo: bool = False):
        self.db_url = db_url
        self.engine = create_engine(db_url, echo=echo, **self._engine_options(db_url))
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)
        logger.info(f"Database initialized: {db_url}")

    @staticmethod
    def _engine_options(db_url: str) -> Dict[str, Any]:
        url = make_url(db_url)
        if url.get_backend_name() != "sqlite":
            return {"pool_pre_ping": True}

        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # One shared connection, otherwise every thread sees its own empty database
            options["poolclass"] = StaticPool
        else:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        return options

    @contextmanager
    def session(self):
        """Context manager for database sessions"""
        session = self.Session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Generic row operations
    # ------------------------------------------------------------------

    def query_listing(
        self,
        model: Type[Base],
        build: Callable[[Query], Query],
        options: Iterable = (),
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        with_count: bool = False,
    ) -> Tuple[list, Optional[int]]:
        """Run a filtered listing query.

        Args:
            model: Mapped class to select
            build: Callback adding filters and ordering to the base query
            options: Loader options for joined records
            offset: Range start
            limit: Range length
            with_count: Also return the exact row count before the range

        Returns:
            Tuple of (rows, total) where total is None unless requested
        """
        with self.session() as session:
            query = build(session.query(model))

            total = query.order_by(None).count() if with_count else None

            query = query.options(*options)
            if offset:
                query = query.offset(offset)
            if limit is not None:
                query = query.limit(limit)

            rows = query.all()
            session.expunge_all()
            return rows, total

    def get(self, model: Type[Base], row_id: Any, options: Iterable = ()):
        """Get a single row by primary key"""
        with self.session() as session:
            row = session.query(model).options(*options).filter(model.__mapper__.primary_key[0] == row_id).first()
            if row:
                session.expunge(row)
            return row

    def count(self, model: Type[Base], *criteria) -> int:
        """Count-only query"""
        with self.session() as session:
            return session.query(model).filter(*criteria).count()

    def insert(self, model: Type[Base], values: Dict[str, Any]):
        """Insert a row and return it"""
        with self.session() as session:
            row = model(**values)
            session.add(row)
            session.flush()
            logger.debug(f"Inserted {row!r}")
            return row

    def update(self, model: Type[Base], row_id: Any, values: Dict[str, Any]):
        """Update a row by primary key and return it"""
        with self.session() as session:
            row = session.get(model, row_id)
            if row is None:
                raise NotFoundError(f"{model.__name__} {row_id} not found")
            for key, value in values.items():
                setattr(row, key, value)
            session.flush()
            return row

    def delete(self, model: Type[Base], row_id: Any):
        with self.session() as session:
            row = session.get(model, row_id)
            if row is None:
                raise NotFoundError(f"{model.__name__} {row_id} not found")
            session.delete(row)
            logger.debug(f"Deleted {model.__name__} {row_id}")

    def bulk_update(self, model: Type[Base], ids: List[Any], values: Dict[str, Any], *criteria) -> int:
        """Apply the same values to every row in the id list, optionally narrowed by criteria"""
        if not ids:
            return 0
        pk = model.__mapper__.primary_key[0]
        with self.session() as session:
            result = session.execute(
                update(model).where(pk.in_(ids), *criteria).values(**values).execution_options(synchronize_session=False)
            )
            logger.info(f"Bulk updated {result.rowcount} {model.__tablename__} rows")
            return result.rowcount

    def bulk_delete(self, model: Type[Base], ids: List[Any]) -> int:
        if not ids:
            return 0
        pk = model.__mapper__.primary_key[0]
        with self.session() as session:
            deleted = session.query(model).filter(pk.in_(ids)).delete(synchronize_session=False)
            logger.info(f"Bulk deleted {deleted} {model.__tablename__} rows")
            return deleted

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def get_profile(self, user_id: str) -> Optional[Profile]:
        return self.get(Profile, user_id)

    def ensure_profile(self, user_id: str, email: str, full_name: Optional[str] = None) -> Profile:
        """Get a profile, creating it with the default role on first sight"""
        with self.session() as session:
            profile = session.get(Profile, user_id)
            if profile is None:
                profile = Profile(id=user_id, email=email, full_name=full_name, role="user")
                session.add(profile)
                session.flush()
                logger.info(f"Created profile for {email}")
            return profile

    def get_profile_by_email(self, email: str) -> Optional[Profile]:
        with self.session() as session:
            profile = session.query(Profile).filter(Profile.email == email).first()
            if profile:
                session.expunge(profile)
            return profile

    def get_profiles(self, since: Optional[datetime] = None) -> list[Profile]:
        """Get profiles, optionally only those registered since a cutoff"""
        with self.session() as session:
            query = session.query(Profile)
            if since is not None:
                query = query.filter(Profile.created_at >= since)
            profiles = query.all()
            session.expunge_all()
            return profiles

    def recent_profiles(self, limit: int = 5) -> list[Profile]:
        with self.session() as session:
            profiles = session.query(Profile).order_by(Profile.created_at.desc()).limit(limit).all()
            session.expunge_all()
            return profiles

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def get_categories(self, active_only: bool = False) -> list[Category]:
        with self.session() as session:
            query = session.query(Category)
            if active_only:
                query = query.filter(Category.is_active.is_(True))
            categories = query.order_by(Category.name).all()
            session.expunge_all()
            return categories

    def get_published_post(self, slug: str) -> Optional[Post]:
        """Get a published post by slug with category and author loaded"""
        with self.session() as session:
            post = (
                session.query(Post)
                .options(selectinload(Post.category), selectinload(Post.author))
                .filter(Post.slug == slug, Post.status == "published")
                .first()
            )
            if post:
                session.expunge_all()
            return post

    def increment_post_views(self, post_id: int) -> None:
        with self.session() as session:
            session.execute(
                update(Post).where(Post.id == post_id).values(view_count=Post.view_count + 1)
            )

    def latest_posts(self, limit: int = 3) -> list[Post]:
        with self.session() as session:
            posts = (
                session.query(Post)
                .options(selectinload(Post.category), selectinload(Post.author))
                .filter(Post.status == "published")
                .order_by(Post.published_at.desc())
                .limit(limit)
                .all()
            )
            session.expunge_all()
            return posts

    def recent_posts(self, limit: int = 5) -> list[Post]:
        """Newest posts of any status, for the admin dashboard"""
        with self.session() as session:
            posts = (
                session.query(Post)
                .options(selectinload(Post.author))
                .order_by(Post.created_at.desc())
                .limit(limit)
                .all()
            )
            session.expunge_all()
            return posts

    def get_active_product(self, slug: str) -> Optional[Product]:
        with self.session() as session:
            product = (
                session.query(Product)
                .options(selectinload(Product.category))
                .filter(Product.slug == slug, Product.is_active.is_(True))
                .first()
            )
            if product:
                session.expunge_all()
            return product

    def featured_products(self, limit: int = 4) -> list[Product]:
        with self.session() as session:
            products = (
                session.query(Product)
                .options(selectinload(Product.category))
                .filter(Product.is_active.is_(True), Product.is_featured.is_(True))
                .limit(limit)
                .all()
            )
            session.expunge_all()
            return products

    def featured_testimonials(self, limit: int = 6) -> list[Testimonial]:
        with self.session() as session:
            testimonials = (
                session.query(Testimonial)
                .filter(Testimonial.is_active.is_(True), Testimonial.is_featured.is_(True))
                .order_by(Testimonial.sort_order)
                .limit(limit)
                .all()
            )
            session.expunge_all()
            return testimonials

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_settings(self, keys: List[str], public_only: bool = False) -> Dict[str, Any]:
        """Get setting values keyed by setting key"""
        with self.session() as session:
            query = session.query(SiteSetting).filter(SiteSetting.key.in_(keys))
            if public_only:
                query = query.filter(SiteSetting.is_public.is_(True))
            return {setting.key: setting.value for setting in query.all()}

    def upsert_setting(self, key: str, value: Dict[str, Any], is_public: Optional[bool] = None) -> SiteSetting:
        with self.session() as session:
            setting = session.get(SiteSetting, key)
            if setting is None:
                setting = SiteSetting(key=key, is_public=bool(is_public))
                session.add(setting)
            elif is_public is not None:
                setting.is_public = is_public
            setting.value = value
            setting.updated_at = datetime.utcnow()
            session.flush()
            return setting

    def create_consultation(self, values: Dict[str, Any]) -> Consultation:
        return self.insert(Consultation, values)

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------

    def get_completed_purchases(self, since: Optional[datetime] = None) -> list[Purchase]:
        """Get completed purchases with their product loaded"""
        with self.session() as session:
            query = (
                session.query(Purchase)
                .options(selectinload(Purchase.product))
                .filter(Purchase.payment_status == "completed")
            )
            if since is not None:
                query = query.filter(Purchase.created_at >= since)
            purchases = query.order_by(Purchase.created_at.desc()).all()
            session.expunge_all()
            return purchases

    def get_user_purchases(self, user_id: str) -> list[Purchase]:
        with self.session() as session:
            purchases = (
                session.query(Purchase)
                .options(selectinload(Purchase.product))
                .filter(Purchase.user_id == user_id, Purchase.payment_status == "completed")
                .order_by(Purchase.created_at.desc())
                .all()
            )
            session.expunge_all()
            return purchases

    def owns_product(self, user_id: str, product_id: int) -> bool:
        """Check whether a user has a completed purchase of a product"""
        return (
            self.count(
                Purchase,
                Purchase.user_id == user_id,
                Purchase.product_id == product_id,
                Purchase.payment_status == "completed",
            )
            > 0
        )

    def create_purchase(self, user_id: str, product: Product) -> Purchase:
        """Record a pending purchase at the product's current price"""
        return self.insert(
            Purchase,
            {"user_id": user_id, "product_id": product.id, "amount": product.price, "payment_status": "pending"},
        )

    def update_purchase_status(self, purchase_id: int, status: str) -> Purchase:
        return self.update(Purchase, purchase_id, {"payment_status": status})

    def increment_sold_count(self, product_id: int) -> None:
        with self.session() as session:
            session.execute(
                update(Product).where(Product.id == product_id).values(sold_count=Product.sold_count + 1)
            )
