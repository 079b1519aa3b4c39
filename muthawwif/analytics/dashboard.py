"""Admin dashboard summary."""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..storage.models import Purchase


@dataclass
class DashboardStats:
    total_posts: int = 0
    total_products: int = 0
    total_users: int = 0
    total_revenue: float = 0
    recent_purchases: List[Dict] = field(default_factory=list)
    recent_posts: List[Dict] = field(default_factory=list)
    recent_users: List[Dict] = field(default_factory=list)


def purchase_value(purchase: Purchase) -> float:
    """Amount paid, falling back to the product's list price."""
    if purchase.amount:
        return purchase.amount
    if purchase.product is not None and purchase.product.price:
        return purchase.product.price
    return 0


def dashboard_revenue(purchases: Sequence[Purchase]) -> float:
    return sum(purchase_value(p) for p in purchases)
