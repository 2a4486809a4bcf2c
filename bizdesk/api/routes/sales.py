"""
api/routes/sales.py
-------------------
Sales orders.

POST   /sales                  — atomic: validate, decrement stock, record
GET    /sales                  — ?page, ?limit, ?status, ?search
GET    /sales/{id}
GET    /sales/{id}/download    — plain-text receipt; accepts ?token=
PUT    /sales/{id}             — customer fields and status
DELETE /sales/{id}             — admin; restores held stock
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import PlainTextResponse

from bizdesk.core.permissions import Action
from bizdesk.dependencies import DbSession, DownloadTenant, Meta, Tenant, TenantContext, require
from bizdesk.models import SaleStatus
from bizdesk.schemas.common import MessageResponse, Pagination
from bizdesk.schemas.sale import SaleCreate, SaleList, SaleRead, SaleUpdate, SaleUpdated
from bizdesk.services.audit_service import AuditService
from bizdesk.services.company_service import CompanyService
from bizdesk.services.sale_service import SaleService, render_receipt

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.post(
    "",
    response_model=SaleRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a sales order",
)
async def create_sale(body: SaleCreate, ctx: Tenant, db: DbSession) -> SaleRead:
    """
    Every line is validated before anything is written. Stock is taken with
    a conditional decrement, so two concurrent orders can never sell more
    than is on hand; any failure rolls back the whole order.
    """
    sale = await SaleService.create_sale(db, ctx.company_id, body, user_id=ctx.user_id)
    return SaleRead.model_validate(sale)


@router.get("", response_model=SaleList, summary="List sales orders")
async def list_sales(
    ctx: Tenant,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=500),
    status_filter: Optional[SaleStatus] = Query(default=None, alias="status"),
    search: Optional[str] = Query(default=None, max_length=255),
) -> SaleList:
    total, sales = await SaleService.list_sales(
        db,
        ctx.company_id,
        page=page,
        limit=limit,
        status=status_filter.value if status_filter else None,
        search=search,
    )
    return SaleList(
        data=[SaleRead.model_validate(s) for s in sales],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{sale_id}", response_model=SaleRead, summary="Get a sales order")
async def get_sale(sale_id: str, ctx: Tenant, db: DbSession) -> SaleRead:
    sale = await SaleService.get_sale(db, ctx.company_id, sale_id)
    return SaleRead.model_validate(sale)


@router.get(
    "/{sale_id}/download",
    response_class=PlainTextResponse,
    summary="Download a sales receipt",
)
async def download_sale(sale_id: str, ctx: DownloadTenant, db: DbSession) -> PlainTextResponse:
    sale = await SaleService.get_sale(db, ctx.company_id, sale_id)
    company = await CompanyService.get_company(db, ctx.company_id)
    return PlainTextResponse(
        render_receipt(sale, company),
        headers={"Content-Disposition": f'attachment; filename="{sale.sale_number}.txt"'},
    )


@router.put("/{sale_id}", response_model=SaleUpdated, summary="Update a sales order")
async def update_sale(
    sale_id: str,
    body: SaleUpdate,
    db: DbSession,
    ctx: Annotated[TenantContext, Depends(require(Action.sales_update))],
) -> SaleUpdated:
    sale = await SaleService.update_sale(db, ctx.company_id, sale_id, body, user_id=ctx.user_id)
    return SaleUpdated(message="Order updated successfully", order=SaleRead.model_validate(sale))


@router.delete("/{sale_id}", response_model=MessageResponse, summary="Delete a sales order")
async def delete_sale(
    sale_id: str,
    db: DbSession,
    meta: Meta,
    ctx: Annotated[TenantContext, Depends(require(Action.sales_delete))],
) -> MessageResponse:
    sale = await SaleService.delete_sale(db, ctx.company_id, sale_id, user_id=ctx.user_id)
    await AuditService.log(
        db,
        "sale.delete",
        actor=ctx.user,
        entity_type="sale",
        entity_id=sale.id,
        entity_name=sale.sale_number,
        details={"total_amount": sale.total_amount, "currency": sale.currency},
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    return MessageResponse(message="Sales order deleted successfully")
