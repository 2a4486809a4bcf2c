"""
api/routes/ai.py
----------------
Business insights computed from the company's own data with simple
statistics. No external model is called.

GET  /ai/sales-forecast             — ?days, ?product_id
GET  /ai/inventory-recommendations
GET  /ai/customer-insights
GET  /ai/fraud-detection
POST /ai/chat                       — keyword-routed assistant
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Query

from bizdesk.dependencies import DbSession, Tenant
from bizdesk.schemas.insight import ChatMessage
from bizdesk.services.insight_service import InsightService

router = APIRouter(prefix="/ai", tags=["AI Insights"])


@router.get("/sales-forecast", summary="Forecast daily sales")
async def sales_forecast(
    ctx: Tenant,
    db: DbSession,
    days: int = Query(default=30, ge=1, le=365),
    product_id: Optional[str] = Query(default=None),
) -> Dict[str, Any]:
    """
    Needs at least seven days with sales. The forecast is a seven-day moving
    average plus the linear trend, with bounds at 80% and 120%.
    """
    return await InsightService.sales_forecast(db, ctx.company_id, days=days, product_id=product_id)


@router.get("/inventory-recommendations", summary="Restock advice per product")
async def inventory_recommendations(ctx: Tenant, db: DbSession) -> Dict[str, Any]:
    return await InsightService.inventory_recommendations(db, ctx.company_id)


@router.get("/customer-insights", summary="Customer segments by spending")
async def customer_insights(ctx: Tenant, db: DbSession) -> Dict[str, Any]:
    return await InsightService.customer_insights(db, ctx.company_id)


@router.get("/fraud-detection", summary="Unusual sale totals")
async def fraud_detection(ctx: Tenant, db: DbSession) -> Dict[str, Any]:
    return await InsightService.fraud_detection(db, ctx.company_id)


@router.post("/chat", summary="Ask the business assistant")
async def chat(body: ChatMessage, ctx: Tenant, db: DbSession) -> Dict[str, Any]:
    return await InsightService.chat(db, ctx.company_id, body.message, body.conversation_id)
