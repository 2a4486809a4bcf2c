"""
api/routes/customers.py
-----------------------
Customer records of the current company. Phone numbers are unique per
company.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from bizdesk.core.permissions import Action
from bizdesk.dependencies import DbSession, Tenant, TenantContext, require
from bizdesk.schemas.common import MessageResponse, Pagination
from bizdesk.schemas.customer import (
    CustomerCreate,
    CustomerList,
    CustomerRead,
    CustomerUpdate,
    PurchaseHistory,
)
from bizdesk.services.customer_service import CustomerService

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.post(
    "",
    response_model=CustomerRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a customer",
)
async def create_customer(body: CustomerCreate, ctx: Tenant, db: DbSession) -> CustomerRead:
    customer = await CustomerService.create_customer(db, ctx.company_id, body)
    return CustomerRead.model_validate(customer)


@router.get("", response_model=CustomerList, summary="List customers")
async def list_customers(
    ctx: Tenant,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    search: Optional[str] = Query(default=None, max_length=255),
) -> CustomerList:
    total, customers = await CustomerService.list_customers(
        db, ctx.company_id, page=page, limit=limit, search=search
    )
    return CustomerList(
        customers=[CustomerRead.model_validate(c) for c in customers],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{customer_id}", response_model=CustomerRead, summary="Get a customer")
async def get_customer(customer_id: str, ctx: Tenant, db: DbSession) -> CustomerRead:
    customer = await CustomerService.get_customer(db, ctx.company_id, customer_id)
    return CustomerRead.model_validate(customer)


@router.get(
    "/{customer_id}/purchase-history",
    response_model=PurchaseHistory,
    summary="Orders and spending statistics of a customer",
)
async def purchase_history(customer_id: str, ctx: Tenant, db: DbSession) -> PurchaseHistory:
    history = await CustomerService.purchase_history(db, ctx.company_id, customer_id)
    return PurchaseHistory.model_validate(history, from_attributes=True)


@router.put("/{customer_id}", response_model=CustomerRead, summary="Update a customer")
async def update_customer(
    customer_id: str, body: CustomerUpdate, ctx: Tenant, db: DbSession
) -> CustomerRead:
    customer = await CustomerService.update_customer(db, ctx.company_id, customer_id, body)
    return CustomerRead.model_validate(customer)


@router.delete("/{customer_id}", response_model=MessageResponse, summary="Delete a customer")
async def delete_customer(
    customer_id: str,
    db: DbSession,
    ctx: Annotated[TenantContext, Depends(require(Action.customers_delete))],
) -> MessageResponse:
    await CustomerService.delete_customer(db, ctx.company_id, customer_id)
    return MessageResponse(message="Customer deleted successfully")
