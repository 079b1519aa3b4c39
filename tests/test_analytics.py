from datetime import datetime

from muthawwif.analytics import AnalyticsAggregator, dashboard_revenue, growth_percent, month_start
from muthawwif.storage.models import Product, Profile, Purchase

NOW = datetime(2026, 10, 17, 12, 0, 0)


def make_purchase(purchase_id, amount, created_at, product_id=1, title="Paket Umrah Reguler"):
    product = Product(id=product_id, title=title, price=amount) if title is not None else None
    return Purchase(
        id=purchase_id,
        product_id=product_id,
        amount=amount,
        payment_status="completed",
        created_at=created_at,
        product=product,
    )


def make_profile(user_id, created_at):
    return Profile(id=user_id, email=f"{user_id}@example.com", created_at=created_at)


def test_month_start_crosses_year_boundary():
    assert month_start(datetime(2026, 1, 15), -1) == datetime(2025, 12, 1)
    assert month_start(datetime(2026, 12, 31, 23, 59), 1) == datetime(2027, 1, 1)


def test_growth_is_zero_without_previous_month():
    assert growth_percent(250000, 0) == 0.0
    assert growth_percent(100000, 50000) == 100.0


def test_revenue_growth_doubles_month_over_month():
    purchases = [
        make_purchase(1, 100000, datetime(2026, 10, 3)),
        make_purchase(2, 50000, datetime(2026, 9, 20)),
    ]

    summary = AnalyticsAggregator().calculate(purchases, [], now=NOW)

    assert summary.revenue.total == 150000
    assert summary.revenue.this_month == 100000
    assert summary.revenue.last_month == 50000
    assert summary.revenue.growth == 100.0
    assert summary.sales.growth == 0.0


def test_only_current_month_sales_report_zero_growth():
    purchases = [make_purchase(1, 250000, datetime(2026, 10, 1))]
    profiles = [make_profile("u1", datetime(2026, 10, 2))]

    summary = AnalyticsAggregator().calculate(purchases, profiles, now=NOW)

    assert summary.revenue.growth == 0.0
    assert summary.users.growth == 0.0
    assert summary.users.this_month == 1


def test_monthly_trend_has_twelve_points_oldest_first():
    purchases = [
        make_purchase(1, 100000, datetime(2026, 10, 5)),
        make_purchase(2, 200000, datetime(2026, 3, 31, 23, 59)),
        make_purchase(3, 300000, datetime(2026, 4, 1)),
        # Outside the 12-month window
        make_purchase(4, 999000, datetime(2025, 10, 31)),
    ]

    summary = AnalyticsAggregator().calculate(purchases, [], now=NOW)
    trend = summary.monthly_revenue

    assert len(trend) == 12
    assert trend[0].month == "Nov 2025"
    assert trend[-1].month == "Okt 2026"
    assert [p.start for p in trend] == sorted(p.start for p in trend)

    by_month = {p.month: p for p in trend}
    assert by_month["Mar 2026"].revenue == 200000
    assert by_month["Apr 2026"].revenue == 300000
    assert sum(p.revenue for p in trend) == 600000
    assert sum(p.sales for p in trend) == 3
    assert summary.average_monthly_revenue == 600000 / 12


def test_top_products_sorted_by_revenue_and_capped():
    purchases = []
    for product_id in range(1, 7):
        purchases.append(
            make_purchase(product_id, product_id * 10000, datetime(2026, 10, 1), product_id, f"Produk {product_id}")
        )
    purchases.append(make_purchase(7, 5000, datetime(2026, 10, 2), 1, "Produk 1"))

    top = AnalyticsAggregator().calculate(purchases, [], now=NOW).top_products

    assert [p.id for p in top] == [6, 5, 4, 3, 2]
    assert top[0].revenue == 60000


def test_top_products_fall_back_to_unknown_title():
    purchases = [make_purchase(1, 75000, datetime(2026, 10, 1), product_id=9, title=None)]

    top = AnalyticsAggregator().calculate(purchases, [], now=NOW).top_products

    assert top[0].title == "Unknown Product"
    assert top[0].sales == 1


def test_empty_input_yields_zero_ratios():
    summary = AnalyticsAggregator().empty(now=NOW)

    assert summary.average_order_value == 0.0
    assert summary.conversion_rate == 0.0
    assert summary.top_products == []
    assert len(summary.user_registrations) == 12

    data = summary.to_dict()
    assert data["revenue"]["total"] == 0
    assert data["monthly_revenue"][0]["start"] == "2025-11-01T00:00:00"


def test_order_value_and_conversion():
    purchases = [
        make_purchase(1, 100000, datetime(2026, 10, 1)),
        make_purchase(2, 300000, datetime(2026, 8, 1)),
    ]
    profiles = [make_profile(f"u{i}", datetime(2026, 6, 1)) for i in range(4)]

    summary = AnalyticsAggregator().calculate(purchases, profiles, now=NOW)

    assert summary.average_order_value == 200000
    assert summary.conversion_rate == 50.0


def test_period_block_only_counts_range():
    purchases = [
        make_purchase(1, 100000, datetime(2026, 10, 15)),
        make_purchase(2, 200000, datetime(2026, 9, 1)),
    ]
    profiles = [make_profile("u1", datetime(2026, 10, 16)), make_profile("u2", datetime(2026, 1, 1))]

    summary = AnalyticsAggregator().calculate(purchases, profiles, now=NOW, range_days=7)

    assert summary.period.days == 7
    assert summary.period.revenue == 100000
    assert summary.period.sales == 1
    assert summary.period.new_users == 1
    assert summary.revenue.total == 300000


def test_recent_purchases_newest_first():
    purchases = [make_purchase(i, 1000 * i, datetime(2026, 1, i)) for i in range(1, 13)]

    recent = AnalyticsAggregator().calculate(purchases, [], now=NOW).recent_purchases

    assert len(recent) == 10
    assert recent[0]["id"] == 12


def test_dashboard_revenue_falls_back_to_product_price():
    paid = make_purchase(1, 150000, datetime(2026, 10, 1))
    unpriced = Purchase(id=2, product_id=2, amount=None, product=Product(id=2, title="Buku", price=50000))
    orphan = Purchase(id=3, product_id=None, amount=None)

    assert dashboard_revenue([paid, unpriced, orphan]) == 200000
