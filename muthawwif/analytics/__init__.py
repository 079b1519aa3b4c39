"""Analytics for the admin panel"""

from .aggregator import AnalyticsAggregator, AnalyticsSummary, growth_percent, month_start
from .dashboard import DashboardStats, dashboard_revenue

__all__ = [
    "AnalyticsAggregator",
    "AnalyticsSummary",
    "growth_percent",
    "month_start",
    "DashboardStats",
    "dashboard_revenue",
]
