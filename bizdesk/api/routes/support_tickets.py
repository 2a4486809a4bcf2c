"""
api/routes/support_tickets.py
-----------------------------
Support tickets between companies and platform operators.

Company side:
  POST /support-tickets                       — open a ticket
  GET  /support-tickets/company               — the company's tickets with messages
  POST /support-tickets/{id}/message          — reply; moves the ticket to in-progress

Super-admin side:
  GET  /support-tickets/all                   — ?status, ?priority
  PUT  /support-tickets/{id}/status
  POST /support-tickets/{id}/admin-message
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Query, status

from bizdesk.dependencies import CurrentSuperAdmin, DbSession, Meta, Tenant
from bizdesk.models import SupportTicket, TicketMessage, TicketStatus
from bizdesk.schemas.common import Pagination
from bizdesk.schemas.support import (
    TicketCreate,
    TicketDetail,
    TicketList,
    TicketMessageCreate,
    TicketMessageRead,
    TicketPriority,
    TicketRead,
    TicketStatusUpdate,
)
from bizdesk.services.audit_service import AuditService
from bizdesk.services.support_service import SupportTicketService

router = APIRouter(prefix="/support-tickets", tags=["Support Tickets"])


def _detail(
    ticket: SupportTicket,
    messages: Dict[str, List[TicketMessage]],
    company_name: Optional[str] = None,
) -> TicketDetail:
    detail = TicketDetail.model_validate(ticket)
    detail.messages = [TicketMessageRead.model_validate(m) for m in messages.get(ticket.id, [])]
    detail.company_name = company_name
    return detail


# ── Company side ──────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=TicketRead,
    status_code=status.HTTP_201_CREATED,
    summary="Open a support ticket",
)
async def create_ticket(body: TicketCreate, ctx: Tenant, db: DbSession) -> TicketRead:
    ticket = await SupportTicketService.create_ticket(db, ctx.company_id, body, ctx.user)
    return TicketRead.model_validate(ticket)


@router.get("/company", response_model=List[TicketDetail], summary="Tickets of the current company")
async def company_tickets(ctx: Tenant, db: DbSession) -> List[TicketDetail]:
    tickets = await SupportTicketService.list_company_tickets(db, ctx.company_id)
    messages = await SupportTicketService.messages_for(db, ctx.company_id, [t.id for t in tickets])
    return [_detail(t, messages) for t in tickets]


@router.post("/{ticket_id}/message", response_model=TicketDetail, summary="Reply to a ticket")
async def add_message(
    ticket_id: str, body: TicketMessageCreate, ctx: Tenant, db: DbSession
) -> TicketDetail:
    ticket = await SupportTicketService.add_company_message(
        db, ctx.company_id, ticket_id, body.message, ctx.user
    )
    messages = await SupportTicketService.messages_for(db, ctx.company_id, [ticket.id])
    return _detail(ticket, messages)


# ── Super-admin side ──────────────────────────────────────────────────────────

@router.get("/all", response_model=TicketList, summary="Super-admin: tickets of every company")
async def all_tickets(
    admin: CurrentSuperAdmin,
    db: DbSession,
    status_filter: Optional[TicketStatus] = Query(default=None, alias="status"),
    priority: Optional[TicketPriority] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> TicketList:
    total, rows = await SupportTicketService.list_all(
        db,
        status=status_filter.value if status_filter else None,
        priority=priority,
        page=page,
        limit=limit,
    )
    messages = await SupportTicketService.all_messages_for(db, [t.id for t, _ in rows])
    return TicketList(
        tickets=[_detail(ticket, messages, name) for ticket, name in rows],
        pagination=Pagination.build(page, limit, total),
    )


@router.put("/{ticket_id}/status", response_model=TicketRead, summary="Super-admin: update a ticket")
async def update_ticket_status(
    ticket_id: str,
    body: TicketStatusUpdate,
    admin: CurrentSuperAdmin,
    db: DbSession,
    meta: Meta,
) -> TicketRead:
    ticket = await SupportTicketService.update_status(db, ticket_id, body)
    await AuditService.log(
        db,
        "support_ticket.update",
        actor=admin,
        company_id=ticket.company_id,
        entity_type="support_ticket",
        entity_id=ticket.id,
        entity_name=ticket.ticket_number,
        details=body.model_dump(mode="json", exclude_none=True),
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    return TicketRead.model_validate(ticket)


@router.post(
    "/{ticket_id}/admin-message",
    response_model=TicketDetail,
    summary="Super-admin: reply to a ticket",
)
async def add_admin_message(
    ticket_id: str, body: TicketMessageCreate, admin: CurrentSuperAdmin, db: DbSession
) -> TicketDetail:
    ticket = await SupportTicketService.add_admin_message(db, ticket_id, body.message, admin)
    messages = await SupportTicketService.all_messages_for(db, [ticket.id])
    return _detail(ticket, messages)
