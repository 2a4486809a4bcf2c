"""
services/insight_service.py
---------------------------
Business insights computed from the company's own data with simple,
deterministic heuristics. No external model is called.

  sales_forecast            7-day moving average + linear trend
  inventory_recommendations 60-day sales velocity → days to stockout
  customer_insights         recency/frequency segmentation
  fraud_detection           z-score outliers on sale totals
  chat                      keyword-routed answers over live metrics

The numeric helpers are plain functions so they can be tested without a
database.
"""

import math
import uuid
from collections import defaultdict
from datetime import datetime, timedelta
from statistics import mean, pstdev
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.logging import get_logger
from bizdesk.db.base import as_utc, utcnow
from bizdesk.models import Sale, SaleItem, SaleStatus
from bizdesk.repositories import CustomerRepository, ProductRepository, SaleItemRepository, SaleRepository
from bizdesk.services.report_service import ReportService

logger = get_logger(__name__)

MIN_FORECAST_POINTS = 7
VELOCITY_WINDOW_DAYS = 60
FRAUD_WINDOW_DAYS = 90
ANOMALY_THRESHOLD = 2.0
CRITICAL_THRESHOLD = 3.0


# ── Pure calculations ─────────────────────────────────────────────────────────

def moving_average(values: Sequence[float], window: int = 7) -> List[float]:
    """Trailing average; the first window-1 points are passed through."""
    result = []
    for idx, value in enumerate(values):
        if idx < window - 1:
            result.append(value)
        else:
            chunk = values[idx - window + 1: idx + 1]
            result.append(sum(chunk) / len(chunk))
    return result


def forecast(daily_totals: Sequence[float], days: int = 30) -> Dict[str, Any]:
    """
    Project `days` future daily totals from a history of daily totals.
    Requires at least MIN_FORECAST_POINTS points.
    """
    n = len(daily_totals)
    if n < MIN_FORECAST_POINTS:
        raise ValueError(f"need at least {MIN_FORECAST_POINTS} daily points, got {n}")

    average = sum(daily_totals) / n
    trend = (daily_totals[-1] - daily_totals[0]) / n
    predictions = [max(0.0, average + trend * i) for i in range(1, days + 1)]

    recent = daily_totals[-MIN_FORECAST_POINTS:]
    recent_average = sum(recent) / len(recent)
    predicted_average = sum(predictions) / len(predictions) if predictions else 0.0
    growth = (predicted_average - recent_average) / recent_average * 100 if recent_average > 0 else 0.0

    if n > 30:
        confidence = "high"
    elif n > 14:
        confidence = "medium"
    else:
        confidence = "low"

    return {
        "predictions": [
            {"predicted": round(p), "lower": round(p * 0.8), "upper": round(p * 1.2)}
            for p in predictions
        ],
        "trend": "increasing" if trend > 0 else "decreasing" if trend < 0 else "stable",
        "average_recent_sales": round(recent_average),
        "predicted_average_sales": round(predicted_average),
        "expected_growth": round(growth, 1),
        "confidence": confidence,
    }


def restock_advice(current_stock: int, units_sold: int, window_days: int = VELOCITY_WINDOW_DAYS) -> Dict[str, Any]:
    avg_daily = units_sold / window_days if units_sold else 0.0
    days_left = current_stock / avg_daily if avg_daily > 0 else 999
    reorder = math.ceil(avg_daily * 30)
    if days_left < 7:
        status, action = "critical", "reorder_immediately"
    elif days_left < 14:
        status, action = "warning", "reorder_soon"
    elif current_stock == 0:
        status, action = "out_of_stock", "restock"
    else:
        status, action, reorder = "ok", "monitor", 0
    return {
        "avg_daily_sales": round(avg_daily, 1),
        "days_until_stockout": round(days_left),
        "status": status,
        "action": action,
        "reorder_quantity": reorder,
    }


def customer_segment(orders: int, days_since_last: int) -> str:
    if orders > 10 and days_since_last < 30:
        return "champion"
    if orders > 5 and days_since_last < 60:
        return "loyal"
    if orders > 2 and days_since_last < 90:
        return "active"
    if days_since_last < 180:
        return "at_risk"
    return "inactive"


def z_scores(values: Sequence[float]) -> List[float]:
    if len(values) < 2:
        return [0.0 for _ in values]
    sigma = pstdev(values)
    if sigma == 0:
        return [0.0 for _ in values]
    mu = mean(values)
    return [(v - mu) / sigma for v in values]


_URGENCY = {"critical": 3, "out_of_stock": 2, "warning": 1, "ok": 0}


# ── Service ───────────────────────────────────────────────────────────────────

class InsightService:

    @staticmethod
    async def sales_forecast(
        db: AsyncSession, company_id: str, days: int = 30, product_id: Optional[str] = None
    ) -> Dict[str, Any]:
        if product_id:
            stmt = (
                SaleItemRepository(db)
                .select_columns(Sale.created_at, SaleItem.item_total, company_id=company_id)
                .join(Sale, Sale.id == SaleItem.sale_id)
                .where(SaleItem.product_id == product_id, Sale.status == SaleStatus.completed.value)
            )
        else:
            stmt = SaleRepository(db).select_columns(
                Sale.created_at, Sale.total_amount, company_id=company_id
            ).where(Sale.status == SaleStatus.completed.value)

        by_day: Dict[str, float] = defaultdict(float)
        for created_at, amount in (await db.execute(stmt)).all():
            by_day[as_utc(created_at).date().isoformat()] += float(amount or 0)

        dates = sorted(by_day)
        totals = [by_day[d] for d in dates]
        if len(totals) < MIN_FORECAST_POINTS:
            return {
                "success": True,
                "message": "Not enough data for accurate forecasting. "
                f"Need at least {MIN_FORECAST_POINTS} days of sales history.",
                "historical": {"dates": dates, "sales": [round(t) for t in totals], "movingAverage": []},
                "forecast": None,
                "insights": {"dataPoints": len(totals), "minimumRequired": MIN_FORECAST_POINTS},
            }

        result = forecast(totals, days)
        return {
            "success": True,
            "historical": {
                "dates": dates,
                "sales": [round(t) for t in totals],
                "movingAverage": [round(v) for v in moving_average(totals)],
            },
            "forecast": {"predictions": result["predictions"], "trend": result["trend"]},
            "insights": {
                "averageRecentSales": result["average_recent_sales"],
                "predictedAverageSales": result["predicted_average_sales"],
                "expectedGrowth": f"{result['expected_growth']}%",
                "confidence": result["confidence"],
            },
        }

    @staticmethod
    async def inventory_recommendations(db: AsyncSession, company_id: str) -> Dict[str, Any]:
        since = utcnow() - timedelta(days=VELOCITY_WINDOW_DAYS)
        stmt = (
            SaleItemRepository(db)
            .select_columns(SaleItem.product_id, SaleItem.quantity, company_id=company_id)
            .join(Sale, Sale.id == SaleItem.sale_id)
            .where(Sale.status == SaleStatus.completed.value, Sale.created_at >= since)
        )
        units: Dict[str, int] = defaultdict(int)
        for product_id, quantity in (await db.execute(stmt)).all():
            if product_id:
                units[product_id] += quantity

        products = await ProductRepository(db).list(company_id=company_id)
        recommendations = []
        for product in products:
            advice = restock_advice(product.quantity, units.get(product.id, 0))
            if advice["status"] != "ok" or advice["avg_daily_sales"] > 0:
                recommendations.append(
                    {
                        "product_id": product.id,
                        "product_name": product.name,
                        "current_stock": product.quantity,
                        **advice,
                    }
                )
        recommendations.sort(key=lambda r: _URGENCY[r["status"]], reverse=True)

        return {
            "success": True,
            "recommendations": recommendations[:50],
            "summary": {
                "total_products": len(products),
                "critical": sum(1 for r in recommendations if r["status"] == "critical"),
                "warning": sum(1 for r in recommendations if r["status"] == "warning"),
                "out_of_stock": sum(1 for r in recommendations if r["status"] == "out_of_stock"),
            },
        }

    @staticmethod
    async def customer_insights(db: AsyncSession, company_id: str) -> Dict[str, Any]:
        stmt = SaleRepository(db).select_columns(
            Sale.customer_id, Sale.total_amount, Sale.created_at, company_id=company_id
        ).where(Sale.status == SaleStatus.completed.value, Sale.customer_id.is_not(None))
        history: Dict[str, List[tuple[float, datetime]]] = defaultdict(list)
        for customer_id, amount, created_at in (await db.execute(stmt)).all():
            history[customer_id].append((float(amount or 0), as_utc(created_at)))

        now = utcnow()
        insights = []
        for customer in await CustomerRepository(db).list(company_id=company_id):
            sales = history.get(customer.id, [])
            spent = sum(amount for amount, _ in sales)
            last = max((when for _, when in sales), default=None)
            days_since = (now - last).days if last else 999
            insights.append(
                {
                    "customer_id": customer.id,
                    "customer_name": customer.name,
                    "email": customer.email,
                    "total_orders": len(sales),
                    "total_spent": round(spent),
                    "avg_order_value": round(spent / len(sales)) if sales else 0,
                    "days_since_last_purchase": days_since,
                    "segment": customer_segment(len(sales), days_since),
                    "lifetime_value": round(spent),
                }
            )
        insights.sort(key=lambda c: c["lifetime_value"], reverse=True)

        segments = {name: 0 for name in ("champion", "loyal", "active", "at_risk", "inactive")}
        for c in insights:
            segments[c["segment"]] += 1
        return {
            "success": True,
            "customers": insights[:100],
            "segments": segments,
            "top_customers": insights[:10],
        }

    @staticmethod
    async def fraud_detection(db: AsyncSession, company_id: str) -> Dict[str, Any]:
        since = utcnow() - timedelta(days=FRAUD_WINDOW_DAYS)
        sales = await SaleRepository(db).list(Sale.created_at >= since, company_id=company_id)
        amounts = [s.total_amount for s in sales]
        average = mean(amounts) if amounts else 0.0

        alerts = []
        for sale, score in zip(sales, z_scores(amounts)):
            if abs(score) > ANOMALY_THRESHOLD:
                alerts.append(
                    {
                        "type": "unusual_amount",
                        "severity": "critical" if abs(score) > CRITICAL_THRESHOLD else "high",
                        "sale_id": sale.id,
                        "sale_number": sale.sale_number,
                        "customer_id": sale.customer_id,
                        "amount": sale.total_amount,
                        "avg_amount": round(average),
                        "z_score": round(score, 2),
                        "description": f"Transaction amount is {abs(score):.1f} standard "
                        "deviations from average",
                        "date": sale.created_at,
                    }
                )

        by_name: Dict[str, List[str]] = defaultdict(list)
        for customer in await CustomerRepository(db).list(company_id=company_id):
            name = (customer.name or "").strip().lower()
            if name:
                by_name[name].append(customer.id)
        for name, ids in by_name.items():
            if len(ids) > 1:
                alerts.append(
                    {
                        "type": "duplicate_customer",
                        "severity": "medium",
                        "customer_ids": ids,
                        "name": name,
                        "count": len(ids),
                        "description": f"{len(ids)} customers with the same name detected",
                    }
                )

        by_type: Dict[str, int] = defaultdict(int)
        by_severity: Dict[str, int] = defaultdict(int)
        for alert in alerts:
            by_type[alert["type"]] += 1
            by_severity[alert["severity"]] += 1
        return {
            "success": True,
            "alerts": alerts[:50],
            "summary": {
                "total_alerts": len(alerts),
                "critical_severity": by_severity["critical"],
                "high_severity": by_severity["high"],
                "medium_severity": by_severity["medium"],
                "by_type": dict(by_type),
            },
        }

    @staticmethod
    async def chat(
        db: AsyncSession, company_id: str, message: str, conversation_id: Optional[str] = None
    ) -> Dict[str, Any]:
        text = message.lower()
        if any(word in text for word in ("sales", "revenue")):
            summary = await ReportService.sales_summary(db, company_id)
            response = (
                f"You have {summary['total_orders']} open or completed orders worth "
                f"{summary['total_sales']:,.2f} in total, averaging "
                f"{summary['avg_order_value']:,} per order. Focus on your top sellers to grow revenue."
            )
        elif any(word in text for word in ("inventory", "stock")):
            low = await ReportService.low_stock(db, company_id)
            if low["count"]:
                names = ", ".join(item["name"] for item in low["items"][:5])
                response = f"{low['count']} products are at or below their reorder level: {names}."
            else:
                response = "All products are above their reorder levels."
        elif any(word in text for word in ("customer", "client")):
            count = await CustomerRepository(db).count(company_id=company_id)
            response = (
                f"You have {count} registered customers. A loyalty programme is a good way "
                "to improve repeat purchases."
            )
        elif any(word in text for word in ("product", "item")):
            top = await ReportService.top_products(db, company_id, limit=3)
            if top:
                names = ", ".join(p["product_name"] for p in top)
                response = f"Your best sellers by units sold are: {names}."
            else:
                response = "No completed sales yet, so there are no best sellers to report."
        elif any(word in text.split() for word in ("hello", "hi", "hey")):
            response = (
                "Hello! I can help you analyse sales, manage inventory, understand customer "
                "behaviour and review business performance. What would you like to know?"
            )
        elif "help" in text:
            response = (
                "I can assist you with:\n"
                "• Sales analysis and forecasting\n"
                "• Inventory management\n"
                "• Customer insights\n"
                "• Product performance\n\n"
                "What would you like to know?"
            )
        else:
            response = (
                "Thank you for your message. Could you tell me a bit more about what you would "
                "like to know about your sales, stock or customers?"
            )
        logger.info("Assistant replied", company_id=company_id, length=len(response))
        return {
            "success": True,
            "conversation_id": conversation_id or str(uuid.uuid4()),
            "response": response,
        }
