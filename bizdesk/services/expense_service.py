"""
services/expense_service.py
---------------------------
Operating expenses and their per-category summary.
"""

from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import ValidationFailed
from bizdesk.core.logging import get_logger
from bizdesk.db.base import utcnow
from bizdesk.models import Expense
from bizdesk.repositories import ExpenseRepository
from bizdesk.schemas.expense import ExpenseCreate, ExpenseUpdate

logger = get_logger(__name__)


def _date_criteria(start_date: Optional[date], end_date: Optional[date]) -> list:
    criteria = []
    if start_date:
        criteria.append(Expense.expense_date >= start_date)
    if end_date:
        criteria.append(Expense.expense_date <= end_date)
    return criteria


class ExpenseService:

    @staticmethod
    async def create_expense(
        db: AsyncSession, company_id: str, data: ExpenseCreate, user_id: Optional[str] = None
    ) -> Expense:
        expense = await ExpenseRepository(db).create(
            company_id=company_id,
            description=data.description,
            amount=round(data.amount, 2),
            category=(data.category or "").strip().lower() or "other",
            expense_date=data.expense_date or utcnow().date(),
            payment_method=data.payment_method,
            notes=data.notes,
            created_by=user_id,
        )
        logger.info("Expense recorded", expense_id=expense.id, company_id=company_id, amount=expense.amount)
        return expense

    @staticmethod
    async def list_expenses(
        db: AsyncSession,
        company_id: str,
        page: int = 1,
        limit: int = 20,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category: Optional[str] = None,
    ) -> tuple[int, list[Expense]]:
        criteria = _date_criteria(start_date, end_date)
        if category and category != "all":
            criteria.append(Expense.category == category.lower())
        return await ExpenseRepository(db).page(
            *criteria,
            company_id=company_id,
            order_by=(Expense.expense_date.desc(), Expense.created_at.desc()),
            offset=(page - 1) * limit,
            limit=limit,
        )

    @staticmethod
    async def summary(
        db: AsyncSession,
        company_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        repo = ExpenseRepository(db)
        criteria = _date_criteria(start_date, end_date)
        total_stmt = repo.select_columns(
            func.coalesce(func.sum(Expense.amount), 0), func.count(), company_id=company_id
        ).where(*criteria)
        total, count = (await db.execute(total_stmt)).one()

        total_col = func.sum(Expense.amount)
        by_category = await db.execute(
            repo.select_columns(Expense.category, total_col, func.count(), company_id=company_id)
            .where(*criteria)
            .group_by(Expense.category)
            .order_by(total_col.desc())
        )
        return {
            "totalExpenses": round(float(total or 0), 2),
            "totalCount": int(count or 0),
            "byCategory": [
                {"category": cat or "Uncategorized", "total": round(float(t or 0), 2), "count": c}
                for cat, t, c in by_category.all()
            ],
        }

    @staticmethod
    async def update_expense(
        db: AsyncSession, company_id: str, expense_id: str, data: ExpenseUpdate
    ) -> Expense:
        expense = await ExpenseRepository(db).get_or_404(expense_id, company_id=company_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationFailed("No fields to update")
        if "category" in changes:
            changes["category"] = changes["category"].strip().lower() or "other"
        for field, value in changes.items():
            setattr(expense, field, value)
        await db.flush()
        logger.info("Expense updated", expense_id=expense.id, company_id=company_id)
        return expense

    @staticmethod
    async def delete_expense(db: AsyncSession, company_id: str, expense_id: str) -> Expense:
        expenses = ExpenseRepository(db)
        expense = await expenses.get_or_404(expense_id, company_id=company_id)
        await expenses.delete(expense.id, company_id=company_id)
        logger.info("Expense deleted", expense_id=expense_id, company_id=company_id)
        return expense
