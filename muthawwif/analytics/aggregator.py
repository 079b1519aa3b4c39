"""Revenue, sales and registration statistics for the admin analytics page."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from loguru import logger

from ..storage.models import Profile, Purchase
from ..utils.helpers import month_label


def month_start(now: datetime, offset: int = 0) -> datetime:
    """First instant of the calendar month ``offset`` months away from ``now``."""
    month_index = now.year * 12 + (now.month - 1) + offset
    return datetime(month_index // 12, month_index % 12 + 1, 1)


def growth_percent(current: float, previous: float) -> float:
    """Month-over-month growth, 0 when there is nothing to compare against."""
    if previous > 0:
        return (current - previous) / previous * 100
    return 0.0


@dataclass
class MetricSummary:
    total: float = 0
    this_month: float = 0
    last_month: float = 0
    growth: float = 0.0


@dataclass
class ProductSales:
    id: Optional[int]
    title: str
    sales: int = 0
    revenue: float = 0


@dataclass
class TrendPoint:
    month: str
    start: datetime
    revenue: float = 0
    sales: int = 0


@dataclass
class RegistrationPoint:
    month: str
    start: datetime
    users: int = 0


@dataclass
class PeriodSummary:
    """Totals restricted to the selected trailing-day window."""

    days: int
    revenue: float = 0
    sales: int = 0
    new_users: int = 0


@dataclass
class AnalyticsSummary:
    """Fixed-shape analytics output consumed by the dashboard."""

    revenue: MetricSummary
    sales: MetricSummary
    users: MetricSummary
    top_products: List[ProductSales]
    recent_purchases: List[Dict]
    monthly_revenue: List[TrendPoint]
    user_registrations: List[RegistrationPoint]
    average_order_value: float
    conversion_rate: float
    average_monthly_revenue: float
    average_monthly_sales: float
    period: PeriodSummary
    generated_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict:
        data = asdict(self)
        for point in data["monthly_revenue"] + data["user_registrations"]:
            point["start"] = point["start"].isoformat()
        data["generated_at"] = self.generated_at.isoformat()
        return data


class AnalyticsAggregator:
    """Aggregate completed purchases and profiles into dashboard metrics.

    All computation is in memory over the lists handed in:
    - Revenue, sales and users: totals, this month, last month, growth
    - Top products by revenue
    - Monthly revenue/sales and registration trend, oldest first
    - Average order value and conversion rate

    The selected trailing-day window only feeds the ``period`` block; the
    other figures always cover every record.
    """

    def __init__(self, config: Optional[Dict] = None):
        """Initialize aggregator.

        Args:
            config: Optional configuration dictionary
        """
        analytics_config = (config or {}).get("analytics", {})
        self.top_products_limit = analytics_config.get("top_products", 5)
        self.recent_purchases_limit = analytics_config.get("recent_purchases", 10)
        self.trend_months = analytics_config.get("trend_months", 12)

    def calculate(
        self,
        purchases: Sequence[Purchase],
        profiles: Sequence[Profile],
        now: Optional[datetime] = None,
        range_days: int = 30,
        range_purchases: Optional[Sequence[Purchase]] = None,
        range_profiles: Optional[Sequence[Profile]] = None,
    ) -> AnalyticsSummary:
        """Calculate the analytics summary.

        Args:
            purchases: Completed purchases
            profiles: Registered profiles
            now: Reference time, defaults to the current UTC time
            range_days: Trailing window in days for the period block
            range_purchases: Completed purchases already bounded to the window
            range_profiles: Profiles already bounded to the window

        Returns:
            AnalyticsSummary instance
        """
        now = now or datetime.utcnow()
        this_month_start = month_start(now)
        last_month_start = month_start(now, -1)

        def in_this_month(record) -> bool:
            return record.created_at >= this_month_start

        def in_last_month(record) -> bool:
            return last_month_start <= record.created_at < this_month_start

        revenue = MetricSummary(
            total=_revenue(purchases),
            this_month=_revenue(p for p in purchases if in_this_month(p)),
            last_month=_revenue(p for p in purchases if in_last_month(p)),
        )
        revenue.growth = growth_percent(revenue.this_month, revenue.last_month)

        sales = MetricSummary(
            total=len(purchases),
            this_month=sum(1 for p in purchases if in_this_month(p)),
            last_month=sum(1 for p in purchases if in_last_month(p)),
        )
        sales.growth = growth_percent(sales.this_month, sales.last_month)

        users = MetricSummary(
            total=len(profiles),
            this_month=sum(1 for u in profiles if in_this_month(u)),
            last_month=sum(1 for u in profiles if in_last_month(u)),
        )
        users.growth = growth_percent(users.this_month, users.last_month)

        monthly_revenue, user_registrations = self._trends(purchases, profiles, now)

        average_order_value = revenue.total / sales.total if sales.total > 0 else 0.0
        conversion_rate = sales.total / users.total * 100 if users.total > 0 else 0.0

        summary = AnalyticsSummary(
            revenue=revenue,
            sales=sales,
            users=users,
            top_products=self._top_products(purchases),
            recent_purchases=self._recent_purchases(purchases),
            monthly_revenue=monthly_revenue,
            user_registrations=user_registrations,
            average_order_value=average_order_value,
            conversion_rate=conversion_rate,
            average_monthly_revenue=sum(p.revenue for p in monthly_revenue) / self.trend_months,
            average_monthly_sales=sum(p.sales for p in monthly_revenue) / self.trend_months,
            period=self._period(purchases, profiles, now, range_days, range_purchases, range_profiles),
        )

        logger.debug(
            f"Analytics: revenue={revenue.total} sales={sales.total} users={users.total}"
        )
        return summary

    def empty(self, now: Optional[datetime] = None, range_days: int = 30) -> AnalyticsSummary:
        """Zero-valued summary rendered when the store cannot be read."""
        return self.calculate([], [], now=now, range_days=range_days)

    def _top_products(self, purchases: Sequence[Purchase]) -> List[ProductSales]:
        grouped: Dict[Optional[int], ProductSales] = {}
        for purchase in purchases:
            entry = grouped.get(purchase.product_id)
            if entry is None:
                product = purchase.product
                title = product.title if product is not None and product.title else "Unknown Product"
                entry = grouped[purchase.product_id] = ProductSales(id=purchase.product_id, title=title)
            entry.sales += 1
            entry.revenue += purchase.amount or 0

        ranked = sorted(grouped.values(), key=lambda x: x.revenue, reverse=True)
        return ranked[: self.top_products_limit]

    def _recent_purchases(self, purchases: Sequence[Purchase]) -> List[Dict]:
        newest = sorted(purchases, key=lambda p: p.created_at, reverse=True)
        return [
            {
                "id": p.id,
                "product_id": p.product_id,
                "product_title": p.product.title if p.product is not None else None,
                "amount": p.amount or 0,
                "created_at": p.created_at.isoformat(),
            }
            for p in newest[: self.recent_purchases_limit]
        ]

    def _trends(self, purchases: Sequence[Purchase], profiles: Sequence[Profile], now: datetime):
        """Build the monthly series over half-open month intervals, oldest first."""
        monthly_revenue = []
        user_registrations = []

        for i in range(self.trend_months - 1, -1, -1):
            start = month_start(now, -i)
            end = month_start(now, -i + 1)

            in_month = [p for p in purchases if start <= p.created_at < end]
            monthly_revenue.append(
                TrendPoint(
                    month=month_label(start),
                    start=start,
                    revenue=_revenue(in_month),
                    sales=len(in_month),
                )
            )
            user_registrations.append(
                RegistrationPoint(
                    month=month_label(start),
                    start=start,
                    users=sum(1 for u in profiles if start <= u.created_at < end),
                )
            )

        return monthly_revenue, user_registrations

    def _period(
        self,
        purchases: Sequence[Purchase],
        profiles: Sequence[Profile],
        now: datetime,
        range_days: int,
        range_purchases: Optional[Sequence[Purchase]],
        range_profiles: Optional[Sequence[Profile]],
    ) -> PeriodSummary:
        range_start = now - timedelta(days=range_days)
        if range_purchases is None:
            range_purchases = [p for p in purchases if p.created_at >= range_start]
        if range_profiles is None:
            range_profiles = [u for u in profiles if u.created_at >= range_start]

        return PeriodSummary(
            days=range_days,
            revenue=_revenue(range_purchases),
            sales=len(range_purchases),
            new_users=len(range_profiles),
        )


def _revenue(purchases) -> float:
    return sum(p.amount or 0 for p in purchases)
