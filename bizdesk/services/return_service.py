"""
services/return_service.py
--------------------------
Customer returns.

Lifecycle: pending → approved | rejected. Nothing changes on the sale or
in stock until approval; approval then restores stock, writes `return`
ledger rows and reduces the sale, all inside the request transaction.
"""

import secrets
import string
import time
from collections import OrderedDict
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import ValidationFailed
from bizdesk.core.logging import get_logger
from bizdesk.db.base import utcnow
from bizdesk.models import ReturnStatus, Sale, SaleItem, SaleStatus, SalesReturn, StockTransactionType
from bizdesk.repositories import ReturnRepository, SaleRepository
from bizdesk.schemas.sales_return import ReturnCreate
from bizdesk.services.product_service import record_stock_movement
from bizdesk.services.sale_service import put_back_stock

logger = get_logger(__name__)


def generate_return_number() -> str:
    alphabet = string.ascii_uppercase + string.digits
    return f"RET-{int(time.time() * 1000)}-{''.join(secrets.choice(alphabet) for _ in range(9))}"


def _still_held(item: SaleItem) -> int:
    return item.quantity - item.returned_quantity


def _find_line(sale: Sale, sale_item_id: Optional[str], product_id: Optional[str]) -> SaleItem:
    for item in sale.items:
        if sale_item_id and item.id == sale_item_id:
            return item
        if not sale_item_id and product_id and item.product_id == product_id:
            return item
    raise ValidationFailed(f"Product {sale_item_id or product_id} not found in order")


class ReturnService:

    @staticmethod
    async def create_return(
        db: AsyncSession, company_id: str, data: ReturnCreate, user_id: Optional[str] = None
    ) -> SalesReturn:
        sale = await SaleRepository(db).get_or_404(data.sale_id, company_id=company_id)

        wanted: "OrderedDict[str, int]" = OrderedDict()
        lines: dict[str, SaleItem] = {}
        for entry in data.items:
            line = _find_line(sale, entry.sale_item_id, entry.product_id)
            lines[line.id] = line
            wanted[line.id] = wanted.get(line.id, 0) + entry.quantity

        items = []
        total_refund = 0.0
        for line_id, quantity in wanted.items():
            line = lines[line_id]
            if quantity > _still_held(line):
                raise ValidationFailed(
                    f"Return quantity ({quantity}) exceeds ordered quantity "
                    f"({_still_held(line)}) for {line.product_name}"
                )
            refund = round(line.unit_price * quantity, 2)
            total_refund += refund
            items.append(
                {
                    "sale_item_id": line.id,
                    "product_id": line.product_id,
                    "product_name": line.product_name,
                    "quantity": quantity,
                    "unit_price": line.unit_price,
                    "refund_amount": refund,
                }
            )

        sales_return = await ReturnRepository(db).create(
            company_id=company_id,
            return_number=generate_return_number(),
            sale_id=sale.id,
            items=items,
            total_refund=round(total_refund, 2),
            reason=data.reason,
            status=ReturnStatus.pending.value,
            created_by=user_id,
        )
        logger.info(
            "Return requested",
            return_id=sales_return.id,
            sale_id=sale.id,
            company_id=company_id,
            refund=sales_return.total_refund,
        )
        return sales_return

    @staticmethod
    async def list_returns(
        db: AsyncSession,
        company_id: str,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
    ) -> tuple[int, list[SalesReturn]]:
        criteria = [SalesReturn.status == status] if status else []
        return await ReturnRepository(db).page(
            *criteria,
            company_id=company_id,
            order_by=(SalesReturn.created_at.desc(),),
            offset=(page - 1) * limit,
            limit=limit,
        )

    @staticmethod
    async def get_return(db: AsyncSession, company_id: str, return_id: str) -> SalesReturn:
        return await ReturnRepository(db).get_or_404(return_id, company_id=company_id)

    @staticmethod
    async def approve_return(
        db: AsyncSession, company_id: str, return_id: str, user_id: Optional[str] = None
    ) -> SalesReturn:
        sales_return = await ReturnRepository(db).get_or_404(return_id, company_id=company_id)
        if sales_return.status != ReturnStatus.pending.value:
            raise ValidationFailed(f"Return is already {sales_return.status}")

        sale = await SaleRepository(db).get_or_404(sales_return.sale_id, company_id=company_id)
        by_id = {item.id: item for item in sale.items}

        # Re-check against the sale as it is now; another return may have been approved
        for entry in sales_return.items:
            line = by_id.get(entry.get("sale_item_id"))
            if line is None or entry["quantity"] > _still_held(line):
                raise ValidationFailed(
                    f"Cannot return {entry['quantity']} of {entry.get('product_name')}: "
                    "the sale no longer holds that many"
                )

        refunded = 0.0
        lost_profit = 0.0
        for entry in sales_return.items:
            line = by_id[entry["sale_item_id"]]
            quantity = entry["quantity"]
            line_profit = (line.unit_price - line.cost_price) * quantity
            line.returned_quantity += quantity
            line.item_total = round(max(line.item_total - entry["refund_amount"], 0), 2)
            line.item_profit = round(line.item_profit - line_profit, 2)
            refunded += entry["refund_amount"]
            lost_profit += line_profit

            if line.product_id and await put_back_stock(db, company_id, line.product_id, quantity):
                record_stock_movement(
                    db,
                    company_id,
                    line.product_id,
                    StockTransactionType.return_,
                    quantity,
                    reference_id=sales_return.id,
                    notes=f"Return {sales_return.return_number}",
                    created_by=user_id,
                )

        sale.total_amount = round(max(sale.total_amount - refunded, 0), 2)
        sale.total_profit = round(sale.total_profit - lost_profit, 2)
        sale.total_refunded = round(sale.total_refunded + refunded, 2)
        sale.has_returns = True
        if all(_still_held(item) == 0 for item in sale.items):
            sale.status = SaleStatus.refunded.value

        sales_return.status = ReturnStatus.approved.value
        sales_return.processed_by = user_id
        sales_return.processed_at = utcnow()
        await db.flush()
        logger.info(
            "Return approved",
            return_id=sales_return.id,
            sale_id=sale.id,
            company_id=company_id,
            refunded=round(refunded, 2),
        )
        return sales_return

    @staticmethod
    async def reject_return(
        db: AsyncSession,
        company_id: str,
        return_id: str,
        rejection_reason: str,
        user_id: Optional[str] = None,
    ) -> SalesReturn:
        sales_return = await ReturnRepository(db).get_or_404(return_id, company_id=company_id)
        if sales_return.status != ReturnStatus.pending.value:
            raise ValidationFailed(f"Return is already {sales_return.status}")
        sales_return.status = ReturnStatus.rejected.value
        sales_return.rejection_reason = rejection_reason
        sales_return.processed_by = user_id
        sales_return.processed_at = utcnow()
        await db.flush()
        logger.info("Return rejected", return_id=sales_return.id, company_id=company_id)
        return sales_return

    @staticmethod
    async def delete_return(db: AsyncSession, company_id: str, return_id: str) -> SalesReturn:
        """Removes the record only; an approved return's stock movement stays."""
        returns = ReturnRepository(db)
        sales_return = await returns.get_or_404(return_id, company_id=company_id)
        await returns.delete(sales_return.id, company_id=company_id)
        logger.info("Return deleted", return_id=return_id, company_id=company_id)
        return sales_return
