"""
Deterministic helpers behind reports, insights and visitor analytics,
plus the report and insight endpoints on a small data set.
"""

import pytest

from bizdesk.services.analytics_service import parse_user_agent
from bizdesk.services.insight_service import (
    customer_segment,
    forecast,
    moving_average,
    restock_advice,
    z_scores,
)
from bizdesk.services.product_service import classify_demand
from bizdesk.services.report_service import low_stock_level

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
EDGE_WINDOWS = CHROME_WINDOWS + " Edg/120.0.0.0"
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
ANDROID_TABLET = (
    "Mozilla/5.0 (Linux; Android 13; SM-X200) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class TestDemand:

    @pytest.mark.parametrize(
        "sold, average, level",
        [(0, 10, "none"), (15, 10, "high"), (14, 10, "medium"), (5, 10, "medium"), (4, 10, "low")],
    )
    def test_classify_demand(self, sold, average, level):
        assert classify_demand(sold, average) == level

    @pytest.mark.parametrize(
        "quantity, threshold, level",
        [(0, 10, "critical"), (5, 10, "high"), (6, 10, "medium")],
    )
    def test_low_stock_level(self, quantity, threshold, level):
        assert low_stock_level(quantity, threshold) == level


class TestForecast:

    def test_needs_a_week_of_history(self):
        with pytest.raises(ValueError):
            forecast([100.0] * 6)

    def test_flat_history(self):
        result = forecast([100.0] * 10, days=5)
        assert len(result["predictions"]) == 5
        assert result["trend"] == "stable"
        assert result["predictions"][0] == {"predicted": 100, "lower": 80, "upper": 120}
        assert result["expected_growth"] == 0.0
        assert result["confidence"] == "low"

    def test_rising_history(self):
        history = [float(v) for v in range(10, 41)]
        result = forecast(history, days=7)
        assert result["trend"] == "increasing"
        assert result["confidence"] == "high"

    def test_predictions_never_go_negative(self):
        result = forecast([500.0, 400, 300, 200, 100, 0, 0, 0], days=30)
        assert result["trend"] == "decreasing"
        assert min(p["predicted"] for p in result["predictions"]) == 0

    def test_moving_average(self):
        assert moving_average([1, 2, 3, 4], window=2) == [1, 1.5, 2.5, 3.5]


class TestRestockAdvice:

    def test_fast_seller_is_critical(self):
        advice = restock_advice(current_stock=10, units_sold=120, window_days=60)
        assert advice["avg_daily_sales"] == 2.0
        assert advice["days_until_stockout"] == 5
        assert advice["status"] == "critical"
        assert advice["reorder_quantity"] == 60

    def test_warning_band(self):
        assert restock_advice(current_stock=20, units_sold=120, window_days=60)["status"] == "warning"

    def test_unsold_and_empty(self):
        advice = restock_advice(current_stock=0, units_sold=0)
        assert advice["status"] == "out_of_stock"
        assert advice["days_until_stockout"] == 999

    def test_healthy_stock(self):
        advice = restock_advice(current_stock=500, units_sold=60, window_days=60)
        assert advice["status"] == "ok"
        assert advice["reorder_quantity"] == 0


@pytest.mark.parametrize(
    "orders, days, segment",
    [(11, 5, "champion"), (6, 40, "loyal"), (3, 80, "active"), (1, 100, "at_risk"), (20, 400, "inactive")],
)
def test_customer_segment(orders, days, segment):
    assert customer_segment(orders, days) == segment


def test_z_scores():
    assert z_scores([5.0]) == [0.0]
    assert z_scores([3.0, 3.0, 3.0]) == [0.0, 0.0, 0.0]
    scores = z_scores([1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 100.0])
    assert scores[-1] > 2.0
    assert all(abs(s) < 1.0 for s in scores[:-1])


class TestParseUserAgent:

    def test_desktop_chrome(self):
        assert parse_user_agent(CHROME_WINDOWS) == {
            "device_type": "desktop",
            "browser": "Chrome",
            "os": "Windows",
        }

    def test_edge_is_not_chrome(self):
        assert parse_user_agent(EDGE_WINDOWS)["browser"] == "Edge"

    def test_iphone(self):
        assert parse_user_agent(SAFARI_IPHONE) == {
            "device_type": "mobile",
            "browser": "Safari",
            "os": "iOS",
        }

    def test_android_without_mobile_is_tablet(self):
        parsed = parse_user_agent(ANDROID_TABLET)
        assert parsed["device_type"] == "tablet"
        assert parsed["os"] == "Android"

    def test_bots_and_missing_header(self):
        assert parse_user_agent("Googlebot/2.1 (+http://www.google.com/bot.html)")["device_type"] == "bot"
        assert parse_user_agent(None)["device_type"] == "unknown"


class TestEndpoints:

    async def test_low_stock_report(self, client, factory, tenant, headers):
        await factory.product(tenant["company"], name="Empty Shelf", quantity=0, reorder_level=5)
        await factory.product(tenant["company"], name="Full Shelf", quantity=50, reorder_level=5)
        response = await client.get("/api/reports/low-stock", headers=headers(tenant["sales"]))
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["items"][0]["alert_level"] == "critical"

    async def test_demand_and_sales_summary(self, client, factory, tenant, headers):
        hdrs = headers(tenant["sales"])
        hot = await factory.product(tenant["company"], name="Hot Item", quantity=100)
        cold = await factory.product(tenant["company"], name="Cold Item", quantity=100)
        for product_id, quantity in ((hot.id, 20), (cold.id, 2)):
            created = await client.post(
                "/api/sales", json={"items": [{"product_id": product_id, "quantity": quantity}]}, headers=hdrs
            )
            assert created.status_code == 201

        demand = (await client.get("/api/products/demand", headers=hdrs)).json()
        levels = {row["name"]: row["demand_level"] for row in demand["all_products"]}
        assert levels == {"Hot Item": "high", "Cold Item": "low"}
        assert demand["all_products"][0]["_id"] == hot.id

        summary = await client.get("/api/reports/sales-summary", headers=hdrs)
        assert summary.status_code == 200

    async def test_insight_routes_answer(self, client, factory, tenant, headers):
        hdrs = headers(tenant["admin"])
        await factory.product(tenant["company"], quantity=3)
        for path in (
            "/api/ai/sales-forecast",
            "/api/ai/inventory-recommendations",
            "/api/ai/customer-insights",
            "/api/ai/fraud-detection",
        ):
            response = await client.get(path, headers=hdrs)
            assert response.status_code == 200, path

        chat = await client.post("/api/ai/chat", json={"message": "How is stock looking"}, headers=hdrs)
        assert chat.status_code == 200
        assert chat.json()["success"] is True
        assert chat.json()["conversation_id"]


async def test_visitor_tracking(client, factory, headers):
    tracked = await client.post(
        "/api/analytics/track",
        json={"sessionId": "visit-1", "page": "/pricing", "userAgent": SAFARI_IPHONE},
    )
    assert tracked.status_code == 200
    assert tracked.json()["sessionId"] == "visit-1"
    await client.post("/api/analytics/track", json={"sessionId": "visit-1", "page": "/signup"})

    operator = await factory.superadmin()
    overview = await client.get("/api/analytics/overview", headers=headers(operator))
    assert overview.status_code == 200
    assert overview.json()["totalSessions"] == 1
    assert overview.json()["totalPageViews"] == 2
