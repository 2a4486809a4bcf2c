"""
api/routes/expenses.py
----------------------
Operating expenses of the current company.

POST   /expenses
GET    /expenses           — ?start_date, ?end_date, ?category
GET    /expenses/summary   — totals per category
PUT    /expenses/{id}
DELETE /expenses/{id}
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query, status

from bizdesk.dependencies import DbSession, Tenant
from bizdesk.schemas.common import MessageResponse, Pagination
from bizdesk.schemas.expense import (
    ExpenseCreate,
    ExpenseList,
    ExpenseRead,
    ExpenseSummary,
    ExpenseUpdate,
)
from bizdesk.services.expense_service import ExpenseService

router = APIRouter(prefix="/expenses", tags=["Expenses"])


@router.post(
    "",
    response_model=ExpenseRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record an expense",
)
async def create_expense(body: ExpenseCreate, ctx: Tenant, db: DbSession) -> ExpenseRead:
    expense = await ExpenseService.create_expense(db, ctx.company_id, body, user_id=ctx.user_id)
    return ExpenseRead.model_validate(expense)


@router.get("", response_model=ExpenseList, summary="List expenses")
async def list_expenses(
    ctx: Tenant,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=500),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    category: Optional[str] = Query(default=None, max_length=100),
) -> ExpenseList:
    total, expenses = await ExpenseService.list_expenses(
        db,
        ctx.company_id,
        page=page,
        limit=limit,
        start_date=start_date,
        end_date=end_date,
        category=category,
    )
    return ExpenseList(
        data=[ExpenseRead.model_validate(e) for e in expenses],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/summary", response_model=ExpenseSummary, summary="Expense totals per category")
async def expense_summary(
    ctx: Tenant,
    db: DbSession,
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
) -> ExpenseSummary:
    summary = await ExpenseService.summary(
        db, ctx.company_id, start_date=start_date, end_date=end_date
    )
    return ExpenseSummary.model_validate(summary)


@router.put("/{expense_id}", response_model=ExpenseRead, summary="Update an expense")
async def update_expense(
    expense_id: str, body: ExpenseUpdate, ctx: Tenant, db: DbSession
) -> ExpenseRead:
    expense = await ExpenseService.update_expense(db, ctx.company_id, expense_id, body)
    return ExpenseRead.model_validate(expense)


@router.delete("/{expense_id}", response_model=MessageResponse, summary="Delete an expense")
async def delete_expense(expense_id: str, ctx: Tenant, db: DbSession) -> MessageResponse:
    await ExpenseService.delete_expense(db, ctx.company_id, expense_id)
    return MessageResponse(message="Expense deleted successfully")
