"""
services/report_service.py
--------------------------
Dashboard reports for one company. Read-only; every query goes through a
tenant repository.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.db.base import as_utc, utcnow
from bizdesk.models import Expense, Product, Sale, SaleItem, SaleStatus
from bizdesk.repositories import (
    ExpenseRepository,
    ProductRepository,
    SaleItemRepository,
    SaleRepository,
)

OPEN_SALE_STATUSES = (SaleStatus.pending.value, SaleStatus.completed.value)

PERIOD_LABELS = {
    "today": "Today",
    "week": "Last 7 Days",
    "month": "This Month",
    "quarter": "This Quarter",
    "year": "This Year",
    "all": "All Time",
}

_PERIOD_DAYS = {"week": 7, "month": 30, "quarter": 90, "year": 365}


def low_stock_level(quantity: int, threshold: int) -> str:
    """Alert level for a product already at or below its reorder level."""
    if quantity <= 0:
        return "critical"
    if quantity <= threshold * 0.5:
        return "high"
    return "medium"


def period_start(period: str, now: Optional[datetime] = None) -> Optional[datetime]:
    now = now or utcnow()
    if period == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period in _PERIOD_DAYS:
        return now - timedelta(days=_PERIOD_DAYS[period])
    return None


def margin_band(margin: float) -> str:
    if margin > 30:
        return "high_margin"
    if margin > 15:
        return "medium_margin"
    return "low_margin"


class ReportService:

    @staticmethod
    async def sales_summary(db: AsyncSession, company_id: str) -> Dict[str, Any]:
        stmt = SaleRepository(db).select_columns(
            func.count(),
            func.coalesce(func.sum(Sale.total_amount), 0),
            func.coalesce(func.avg(Sale.total_amount), 0),
            company_id=company_id,
        ).where(Sale.status.in_(OPEN_SALE_STATUSES))
        orders, total, average = (await db.execute(stmt)).one()
        return {
            "total_orders": int(orders or 0),
            "total_sales": round(float(total or 0), 2),
            "avg_order_value": round(float(average or 0)),
        }

    @staticmethod
    async def stock_status(db: AsyncSession, company_id: str) -> Dict[str, Any]:
        stmt = ProductRepository(db).select_columns(
            func.count(),
            func.coalesce(func.sum(Product.quantity), 0),
            func.coalesce(func.sum(Product.quantity * Product.selling_price), 0),
            company_id=company_id,
        )
        products, items, value = (await db.execute(stmt)).one()
        return {
            "total_products": int(products or 0),
            "total_items": int(items or 0),
            "total_inventory_value": round(float(value or 0)),
        }

    @staticmethod
    async def top_products(db: AsyncSession, company_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        sold = SaleItem.quantity - SaleItem.returned_quantity
        quantity = func.sum(sold)
        stmt = (
            SaleItemRepository(db)
            .select_columns(
                SaleItem.product_id,
                SaleItem.product_name,
                func.count(func.distinct(SaleItem.sale_id)),
                quantity,
                func.sum(SaleItem.unit_price * sold),
                company_id=company_id,
            )
            .join(Sale, Sale.id == SaleItem.sale_id)
            .where(Sale.company_id == company_id, Sale.status == SaleStatus.completed.value)
            .group_by(SaleItem.product_id, SaleItem.product_name)
            .order_by(quantity.desc())
            .limit(limit)
        )
        rows = (await db.execute(stmt)).all()
        return [
            {
                "_id": product_id,
                "product_name": name,
                "order_count": int(orders),
                "total_quantity": int(qty or 0),
                "total_revenue": round(float(revenue or 0), 2),
            }
            for product_id, name, orders, qty, revenue in rows
        ]

    @staticmethod
    async def low_stock(db: AsyncSession, company_id: str) -> Dict[str, Any]:
        products = await ProductRepository(db).list(
            Product.quantity <= Product.reorder_level,
            company_id=company_id,
            order_by=(Product.quantity, Product.name),
        )
        items = [
            {
                "id": p.id,
                "name": p.name,
                "sku": p.sku,
                "quantity": p.quantity,
                "threshold": p.reorder_level,
                "price": p.selling_price,
                "alert_level": low_stock_level(p.quantity, p.reorder_level),
            }
            for p in products
        ]
        return {"count": len(items), "items": items}

    @staticmethod
    async def sales_trend(db: AsyncSession, company_id: str, days: int = 7) -> List[Dict[str, Any]]:
        since = utcnow() - timedelta(days=days)
        stmt = SaleRepository(db).select_columns(
            Sale.created_at, Sale.total_amount, company_id=company_id
        ).where(Sale.created_at >= since)
        by_day: Dict[str, Dict[str, float]] = defaultdict(lambda: {"sales": 0.0, "orders": 0})
        for created_at, total in (await db.execute(stmt)).all():
            day = as_utc(created_at).date().isoformat()
            by_day[day]["sales"] += float(total or 0)
            by_day[day]["orders"] += 1
        return [
            {"_id": day, "sales": round(v["sales"], 2), "orders": int(v["orders"])}
            for day, v in sorted(by_day.items())
        ]

    @staticmethod
    async def profit_analytics(db: AsyncSession, company_id: str, period: str = "all") -> Dict[str, Any]:
        if period not in PERIOD_LABELS:
            period = "all"
        since = period_start(period)

        sold = SaleItem.quantity - SaleItem.returned_quantity
        revenue = func.sum(SaleItem.unit_price * sold)
        stmt = (
            SaleItemRepository(db)
            .select_columns(
                SaleItem.product_id,
                SaleItem.product_name,
                func.sum(sold),
                revenue,
                func.sum(SaleItem.cost_price * sold),
                company_id=company_id,
            )
            .join(Sale, Sale.id == SaleItem.sale_id)
            .where(Sale.company_id == company_id, Sale.status.in_(OPEN_SALE_STATUSES))
            .group_by(SaleItem.product_id, SaleItem.product_name)
            .order_by(revenue.desc())
        )
        if since is not None:
            stmt = stmt.where(Sale.created_at >= since)

        products = []
        for product_id, name, units, rev, cost in (await db.execute(stmt)).all():
            rev, cost, units = float(rev or 0), float(cost or 0), int(units or 0)
            profit = rev - cost
            margin = profit / rev * 100 if rev > 0 else 0.0
            products.append(
                {
                    "_id": product_id,
                    "name": name,
                    "total_sold": units,
                    "total_revenue": round(rev, 2),
                    "total_cost": round(cost, 2),
                    "total_profit": round(profit, 2),
                    "profit_margin": round(margin, 2),
                    "profit": round(profit / units, 2) if units else 0.0,
                }
            )

        expense_stmt = ExpenseRepository(db).select_columns(
            func.coalesce(func.sum(Expense.amount), 0), func.count(), company_id=company_id
        )
        if since is not None:
            expense_stmt = expense_stmt.where(Expense.expense_date >= since.date())
        total_expenses, expenses_count = (await db.execute(expense_stmt)).one()
        total_expenses = float(total_expenses or 0)

        total_revenue = sum(p["total_revenue"] for p in products)
        total_cost = sum(p["total_cost"] for p in products)
        gross_profit = total_revenue - total_cost

        distribution = {"high_margin": 0, "medium_margin": 0, "low_margin": 0}
        for p in products:
            distribution[margin_band(p["profit_margin"])] += 1

        return {
            "period": period,
            "period_label": PERIOD_LABELS[period],
            "total_revenue": round(total_revenue, 2),
            "total_cost": round(total_cost, 2),
            "gross_profit": round(gross_profit, 2),
            "total_expenses": round(total_expenses, 2),
            "expenses_count": int(expenses_count or 0),
            "net_profit": round(gross_profit - total_expenses, 2),
            "overall_margin": round(gross_profit / total_revenue * 100, 2) if total_revenue else 0.0,
            "top_profitable_products": sorted(
                products, key=lambda p: p["profit_margin"], reverse=True
            )[:10],
            "margin_distribution": distribution,
        }
