"""
api/routes/invoices.py
----------------------
Invoices, generated from a sales order or from explicit items.
Invoices never move stock.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import PlainTextResponse

from bizdesk.core.permissions import Action
from bizdesk.dependencies import DbSession, DownloadTenant, Tenant, TenantContext, require
from bizdesk.schemas.common import MessageResponse, Pagination
from bizdesk.schemas.invoice import (
    InvoiceGenerate,
    InvoiceList,
    InvoiceRead,
    InvoiceStatus,
    InvoiceUpdate,
)
from bizdesk.services.company_service import CompanyService
from bizdesk.services.invoice_service import InvoiceService, render_invoice

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.post(
    "/generate",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
    summary="Generate an invoice",
)
async def generate_invoice(
    body: InvoiceGenerate,
    db: DbSession,
    ctx: Annotated[TenantContext, Depends(require(Action.invoices_generate))],
) -> InvoiceRead:
    """
    From a sale: lines are the sale's items net of returned units.
    From items: prices come from the catalogue unless a custom price is given.
    """
    invoice = await InvoiceService.generate_invoice(db, ctx.company_id, body, user_id=ctx.user_id)
    return InvoiceRead.model_validate(invoice)


@router.get("", response_model=InvoiceList, summary="List invoices")
async def list_invoices(
    ctx: Tenant,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=500),
    status_filter: Optional[InvoiceStatus] = Query(default=None, alias="status"),
    search: Optional[str] = Query(default=None, max_length=255),
) -> InvoiceList:
    total, invoices = await InvoiceService.list_invoices(
        db, ctx.company_id, page=page, limit=limit, status=status_filter, search=search
    )
    return InvoiceList(
        data=[InvoiceRead.model_validate(i) for i in invoices],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{invoice_id}", response_model=InvoiceRead, summary="Get an invoice")
async def get_invoice(invoice_id: str, ctx: Tenant, db: DbSession) -> InvoiceRead:
    invoice = await InvoiceService.get_invoice(db, ctx.company_id, invoice_id)
    return InvoiceRead.model_validate(invoice)


@router.get(
    "/{invoice_id}/download",
    response_class=PlainTextResponse,
    summary="Download an invoice",
)
async def download_invoice(
    invoice_id: str, ctx: DownloadTenant, db: DbSession
) -> PlainTextResponse:
    invoice = await InvoiceService.get_invoice(db, ctx.company_id, invoice_id)
    company = await CompanyService.get_company(db, ctx.company_id)
    return PlainTextResponse(
        render_invoice(invoice, company),
        headers={
            "Content-Disposition": f'attachment; filename="{invoice.invoice_number}.txt"'
        },
    )


@router.put("/{invoice_id}", response_model=InvoiceRead, summary="Update an invoice")
async def update_invoice(
    invoice_id: str,
    body: InvoiceUpdate,
    db: DbSession,
    ctx: Annotated[TenantContext, Depends(require(Action.invoices_update))],
) -> InvoiceRead:
    invoice = await InvoiceService.update_invoice(db, ctx.company_id, invoice_id, body)
    return InvoiceRead.model_validate(invoice)


@router.delete("/{invoice_id}", response_model=MessageResponse, summary="Delete an invoice")
async def delete_invoice(
    invoice_id: str,
    db: DbSession,
    ctx: Annotated[TenantContext, Depends(require(Action.invoices_delete))],
) -> MessageResponse:
    await InvoiceService.delete_invoice(db, ctx.company_id, invoice_id)
    return MessageResponse(message="Invoice deleted successfully")
