"""
api/routes/returns.py
---------------------
Return requests against sales orders.

POST   /returns               — any role; quantities checked against the sale
GET    /returns               — ?page, ?limit, ?status
GET    /returns/{id}
PUT    /returns/{id}/approve  — admin, manager; puts stock back
PUT    /returns/{id}/reject   — admin, manager
DELETE /returns/{id}          — admin
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from bizdesk.core.permissions import Action
from bizdesk.dependencies import DbSession, Tenant, TenantContext, require
from bizdesk.models import ReturnStatus
from bizdesk.schemas.common import MessageResponse, Pagination
from bizdesk.schemas.sales_return import (
    ReturnCreate,
    ReturnList,
    ReturnRead,
    ReturnReject,
    ReturnResponse,
)
from bizdesk.services.return_service import ReturnService

router = APIRouter(prefix="/returns", tags=["Returns"])


@router.post(
    "",
    response_model=ReturnResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a return",
)
async def create_return(body: ReturnCreate, ctx: Tenant, db: DbSession) -> ReturnResponse:
    sales_return = await ReturnService.create_return(db, ctx.company_id, body, user_id=ctx.user_id)
    return ReturnResponse(
        message="Return request created successfully",
        return_=ReturnRead.model_validate(sales_return),
    )


@router.get("", response_model=ReturnList, summary="List return requests")
async def list_returns(
    ctx: Tenant,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=500),
    status_filter: Optional[ReturnStatus] = Query(default=None, alias="status"),
) -> ReturnList:
    total, returns = await ReturnService.list_returns(
        db,
        ctx.company_id,
        page=page,
        limit=limit,
        status=status_filter.value if status_filter else None,
    )
    return ReturnList(
        data=[ReturnRead.model_validate(r) for r in returns],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{return_id}", response_model=ReturnRead, summary="Get a return request")
async def get_return(return_id: str, ctx: Tenant, db: DbSession) -> ReturnRead:
    sales_return = await ReturnService.get_return(db, ctx.company_id, return_id)
    return ReturnRead.model_validate(sales_return)


@router.put("/{return_id}/approve", response_model=ReturnResponse, summary="Approve a return")
async def approve_return(
    return_id: str,
    db: DbSession,
    ctx: Annotated[TenantContext, Depends(require(Action.returns_approve))],
) -> ReturnResponse:
    sales_return = await ReturnService.approve_return(
        db, ctx.company_id, return_id, user_id=ctx.user_id
    )
    return ReturnResponse(
        message="Return approved successfully",
        return_=ReturnRead.model_validate(sales_return),
    )


@router.put("/{return_id}/reject", response_model=ReturnResponse, summary="Reject a return")
async def reject_return(
    return_id: str,
    body: ReturnReject,
    db: DbSession,
    ctx: Annotated[TenantContext, Depends(require(Action.returns_reject))],
) -> ReturnResponse:
    sales_return = await ReturnService.reject_return(
        db, ctx.company_id, return_id, body.rejection_reason, user_id=ctx.user_id
    )
    return ReturnResponse(
        message="Return rejected",
        return_=ReturnRead.model_validate(sales_return),
    )


@router.delete("/{return_id}", response_model=MessageResponse, summary="Delete a return request")
async def delete_return(
    return_id: str,
    db: DbSession,
    ctx: Annotated[TenantContext, Depends(require(Action.returns_delete))],
) -> MessageResponse:
    await ReturnService.delete_return(db, ctx.company_id, return_id)
    return MessageResponse(message="Return deleted successfully")
