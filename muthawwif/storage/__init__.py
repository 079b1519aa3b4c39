"""Data storage and persistence layer"""

from .models import (
    Category,
    Consultation,
    Post,
    Product,
    Profile,
    Purchase,
    SiteSetting,
    Testimonial,
)
from .database import Database, NotFoundError

__all__ = [
    "Category",
    "Consultation",
    "Post",
    "Product",
    "Profile",
    "Purchase",
    "SiteSetting",
    "Testimonial",
    "Database",
    "NotFoundError",
]
