"""
api/routes/reports.py
---------------------
Read-only dashboard reports for the current company.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Query

from bizdesk.dependencies import DbSession, Tenant
from bizdesk.services.report_service import PERIOD_LABELS, ReportService

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/sales-summary", summary="Order count, revenue and average order value")
async def sales_summary(ctx: Tenant, db: DbSession) -> Dict[str, Any]:
    return await ReportService.sales_summary(db, ctx.company_id)


@router.get("/stock-status", summary="Catalogue size and stock value")
async def stock_status(ctx: Tenant, db: DbSession) -> Dict[str, Any]:
    return await ReportService.stock_status(db, ctx.company_id)


@router.get("/top-products", summary="Best sellers by units sold")
async def top_products(
    ctx: Tenant,
    db: DbSession,
    limit: int = Query(default=10, ge=1, le=100),
) -> List[Dict[str, Any]]:
    return await ReportService.top_products(db, ctx.company_id, limit=limit)


@router.get("/low-stock", summary="Products at or below their reorder level")
async def low_stock(ctx: Tenant, db: DbSession) -> Dict[str, Any]:
    """Each item carries an alert level: critical (out of stock), high or medium."""
    return await ReportService.low_stock(db, ctx.company_id)


@router.get("/sales-trend", summary="Daily sales over the last N days")
async def sales_trend(
    ctx: Tenant,
    db: DbSession,
    days: int = Query(default=7, ge=1, le=365),
) -> List[Dict[str, Any]]:
    return await ReportService.sales_trend(db, ctx.company_id, days=days)


@router.get("/profit-analytics", summary="Revenue, cost and profit for a period")
async def profit_analytics(
    ctx: Tenant,
    db: DbSession,
    period: str = Query(default="all", description=f"One of: {', '.join(PERIOD_LABELS)}"),
) -> Dict[str, Any]:
    return await ReportService.profit_analytics(db, ctx.company_id, period=period)
