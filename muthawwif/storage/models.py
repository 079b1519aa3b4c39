"""Database models for the Muthawwif site."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

ROLES = ("user", "admin", "owner")
POST_STATUSES = ("draft", "published", "archived")
PRODUCT_TYPES = ("digital", "course", "consultation", "package")
PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded")

ADMIN_SETTING_KEYS = ["site_info", "contact_info", "social_media", "payment_settings", "seo_settings"]


# ============================================================================
# Pydantic Models (for data transfer)
# ============================================================================


class PostPayload(BaseModel):
    """Fields accepted when creating or updating a post."""

    title: str
    slug: Optional[str] = None
    content: str = ""
    excerpt: Optional[str] = None
    featured_image: Optional[str] = None
    status: str = Field("draft", pattern="^(draft|published|archived)$")
    category_id: Optional[int] = None


class ProductPayload(BaseModel):
    """Fields accepted when creating or updating a product."""

    title: str
    slug: Optional[str] = None
    description: str = ""
    price: float = Field(0, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    product_type: str = Field("digital", pattern="^(digital|course|consultation|package)$")
    is_active: bool = True
    is_featured: bool = False
    category_id: Optional[int] = None


class CategoryPayload(BaseModel):
    """Fields accepted when creating or updating a category."""

    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_active: bool = True


class PurchaseStatus(BaseModel):
    payment_status: str


class ConsultationPayload(BaseModel):
    """Contact form submission."""

    name: str
    email: str
    phone: Optional[str] = None
    consultation_type: str = "general"
    preferred_date: Optional[datetime] = None
    message: str = ""


class ProfileUpdate(BaseModel):
    """Fields a signed-in user may change on their own profile."""

    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    phone: Optional[str] = None


class BulkAction(BaseModel):
    """Bulk action over a selection of row ids."""

    action: str
    ids: List[Any] = Field(default_factory=list)


class SettingValue(BaseModel):
    value: Dict[str, Any] = Field(default_factory=dict)
    is_public: Optional[bool] = None


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class Profile(Base):
    """User profile, keyed by the auth provider's user id."""

    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    email = Column(String, index=True, nullable=False)
    full_name = Column(String)
    avatar_url = Column(String)
    phone = Column(String)
    role = Column(String, default="user", index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    posts = relationship("Post", back_populates="author")
    purchases = relationship("Purchase", back_populates="user")

    def __repr__(self):
        return f"<Profile(id='{self.id}', email='{self.email}', role='{self.role}')>"


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True)
    description = Column(Text)
    color = Column(String)
    icon = Column(String)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"


class Post(Base):
    """Blog post."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    content = Column(Text, default="")
    excerpt = Column(Text)
    featured_image = Column(String)
    status = Column(String, default="draft", index=True)  # draft, published, archived
    category_id = Column(Integer, ForeignKey("categories.id"), index=True)
    author_id = Column(String, ForeignKey("profiles.id"), index=True)
    view_count = Column(Integer, default=0)
    published_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    category = relationship("Category")
    author = relationship("Profile", back_populates="posts")

    def __repr__(self):
        return f"<Post(id={self.id}, slug='{self.slug}', status='{self.status}')>"


class Product(Base):
    """Digital material, course, consultation or package offered for sale."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, default="")
    price = Column(Float, default=0.0)
    original_price = Column(Float)
    product_type = Column(String, default="digital", index=True)
    is_active = Column(Boolean, default=True)
    is_featured = Column(Boolean, default=False)
    sold_count = Column(Integer, default=0)
    rating_average = Column(Float, default=0.0)
    category_id = Column(Integer, ForeignKey("categories.id"), index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    category = relationship("Category")
    purchases = relationship("Purchase", back_populates="product")

    def __repr__(self):
        return f"<Product(id={self.id}, slug='{self.slug}', price={self.price})>"


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, ForeignKey("profiles.id"), index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True)
    amount = Column(Float)
    payment_status = Column(String, default="pending", index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("Profile", back_populates="purchases")
    product = relationship("Product", back_populates="purchases")

    def __repr__(self):
        return f"<Purchase(id={self.id}, product_id={self.product_id}, status='{self.payment_status}')>"


class Testimonial(Base):
    __tablename__ = "testimonials"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    origin = Column(String)  # City or pilgrimage group
    content = Column(Text, nullable=False)
    rating = Column(Integer, default=5)
    is_active = Column(Boolean, default=True)
    is_featured = Column(Boolean, default=False)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)


class SiteSetting(Base):
    """Key/value configuration blob edited from the admin panel."""

    __tablename__ = "site_settings"

    key = Column(String, primary_key=True)
    value = Column(JSON, default=dict)
    is_public = Column(Boolean, default=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<SiteSetting(key='{self.key}', public={self.is_public})>"


class Consultation(Base):
    """Consultation request sent from the contact page."""

    __tablename__ = "consultations"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, ForeignKey("profiles.id"), nullable=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String)
    consultation_type = Column(String, default="general")
    preferred_date = Column(DateTime)
    message = Column(Text)
    status = Column(String, default="new")
    created_at = Column(DateTime, default=datetime.utcnow)
