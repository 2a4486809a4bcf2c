"""
services/sale_service.py
------------------------
Sales orders.

Creating a sale is all-or-nothing. Every line is validated before any
write, then stock is taken with one conditional UPDATE per product:

    UPDATE products SET quantity = quantity - :q
     WHERE id = :id AND company_id = :company AND quantity >= :q

A zero rowcount means another request took the stock in between; the
service raises and get_db() rolls back the sale, its items, its stock
ledger rows and any stock already taken for earlier lines.
"""

import secrets
import string
import time
from collections import OrderedDict
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.config import settings
from bizdesk.core.exceptions import NotFound, ValidationFailed
from bizdesk.core.logging import get_logger
from bizdesk.db.base import as_utc, utcnow
from bizdesk.models import (
    Company,
    Invoice,
    Product,
    Sale,
    SaleItem,
    SalesReturn,
    StockTransactionType,
)
from bizdesk.repositories import (
    InvoiceRepository,
    ProductRepository,
    ReturnRepository,
    SaleItemRepository,
    SaleRepository,
)
from bizdesk.schemas.sale import SaleCreate, SaleUpdate
from bizdesk.services.customer_service import CustomerService
from bizdesk.services.product_service import record_stock_movement

logger = get_logger(__name__)

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_sale_number() -> str:
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"SALE-{int(time.time() * 1000)}-{suffix}"


def exchange_rate_for(currency: str) -> float:
    """Base-currency units per unit of `currency`. Only USD is converted."""
    return settings.USD_EXCHANGE_RATE if currency == "USD" else 1.0


def insufficient_stock(product: Product, requested: int) -> ValidationFailed:
    return ValidationFailed(
        f"Sorry, we don't have enough stock for {product.name}. "
        f"Available: {product.quantity} units, but you requested: {requested} units. "
        "Please reduce the quantity.",
        code="insufficient_stock",
        product_id=product.id,
    )


async def take_stock(db: AsyncSession, company_id: str, product_id: str, quantity: int) -> bool:
    """Conditional decrement; False when fewer than `quantity` units are on hand."""
    changed = await ProductRepository(db).update_where(
        Product.id == product_id,
        Product.quantity >= quantity,
        company_id=company_id,
        values={"quantity": Product.quantity - quantity},
    )
    return changed == 1


async def put_back_stock(db: AsyncSession, company_id: str, product_id: str, quantity: int) -> bool:
    changed = await ProductRepository(db).update_where(
        Product.id == product_id,
        company_id=company_id,
        values={"quantity": Product.quantity + quantity},
    )
    return changed == 1


class SaleService:

    @staticmethod
    async def create_sale(
        db: AsyncSession, company_id: str, data: SaleCreate, user_id: Optional[str] = None
    ) -> Sale:
        products = ProductRepository(db)

        # Validate every line before touching anything
        requested: "OrderedDict[str, int]" = OrderedDict()
        for item in data.items:
            requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

        catalogue: dict[str, Product] = {}
        for product_id, quantity in requested.items():
            product = await products.get(product_id, company_id=company_id)
            if product is None:
                raise NotFound(
                    "Product not found. It may have been deleted. Please refresh and try again."
                )
            if product.quantity < quantity:
                raise insufficient_stock(product, quantity)
            catalogue[product_id] = product

        rate = exchange_rate_for(data.currency)
        sale_items: list[SaleItem] = []
        total_amount = 0.0
        total_profit = 0.0
        for position, item in enumerate(data.items):
            product = catalogue[item.product_id]
            base_price = item.custom_price if item.custom_price is not None else product.selling_price
            unit_price = round(base_price / rate, 2)
            cost_price = round(product.cost_price / rate, 2)
            item_total = round(unit_price * item.quantity, 2)
            item_profit = round((unit_price - cost_price) * item.quantity, 2)
            total_amount += item_total
            total_profit += item_profit
            sale_items.append(
                SaleItem(
                    company_id=company_id,
                    product_id=product.id,
                    position=position,
                    product_name=product.name,
                    quantity=item.quantity,
                    unit_price=unit_price,
                    cost_price=cost_price,
                    item_total=item_total,
                    item_profit=item_profit,
                    custom_price_used=item.custom_price is not None,
                )
            )

        customer_id = None
        if data.customer_name and data.customer_phone:
            customer = await CustomerService.find_or_register(
                db, company_id, data.customer_name, data.customer_phone
            )
            customer_id = customer.id

        sale = SaleRepository(db).add(
            Sale(
                sale_number=generate_sale_number(),
                customer_id=customer_id,
                customer_name=data.customer_name,
                customer_phone=data.customer_phone,
                currency=data.currency,
                exchange_rate=rate,
                total_amount=round(total_amount, 2),
                total_profit=round(total_profit, 2),
                payment_method=data.payment_method,
                notes=data.notes,
                edit_history=[],
                created_by=user_id,
                items=sale_items,
            ),
            company_id=company_id,
        )
        await db.flush()

        for product_id, quantity in requested.items():
            if not await take_stock(db, company_id, product_id, quantity):
                # Stock moved since validation; the caller's rollback undoes the rest
                logger.warning(
                    "Stock changed during sale",
                    product_id=product_id,
                    company_id=company_id,
                    requested=quantity,
                )
                raise ValidationFailed(
                    f"Stock for {catalogue[product_id].name} changed while the order was "
                    "being placed. Please refresh and try again.",
                    code="insufficient_stock",
                    product_id=product_id,
                )
            record_stock_movement(
                db,
                company_id,
                product_id,
                StockTransactionType.sale,
                -quantity,
                reference_id=sale.id,
                created_by=user_id,
            )
        await db.flush()

        logger.info(
            "Sale created",
            sale_id=sale.id,
            company_id=company_id,
            items=len(sale_items),
            total=sale.total_amount,
            currency=sale.currency,
        )
        return sale

    @staticmethod
    async def list_sales(
        db: AsyncSession,
        company_id: str,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[int, list[Sale]]:
        criteria = []
        if status:
            criteria.append(Sale.status == status)
        if search:
            pattern = f"%{search.lower()}%"
            criteria.append(
                or_(
                    func.lower(Sale.customer_name).like(pattern),
                    Sale.customer_phone.like(f"%{search}%"),
                    func.lower(Sale.sale_number).like(pattern),
                    Sale.id == search,
                )
            )
        return await SaleRepository(db).page(
            *criteria,
            company_id=company_id,
            order_by=(Sale.created_at.desc(),),
            offset=(page - 1) * limit,
            limit=limit,
        )

    @staticmethod
    async def get_sale(db: AsyncSession, company_id: str, sale_id: str) -> Sale:
        return await SaleRepository(db).get_or_404(sale_id, company_id=company_id)

    @staticmethod
    async def update_sale(
        db: AsyncSession,
        company_id: str,
        sale_id: str,
        data: SaleUpdate,
        user_id: Optional[str] = None,
    ) -> Sale:
        """Customer details and status only; line items are immutable once sold."""
        sale = await SaleRepository(db).get_or_404(sale_id, company_id=company_id)
        changes = []
        for field, value in data.model_dump(mode="json", exclude_none=True).items():
            if value != getattr(sale, field):
                changes.append({"field": field, "old_value": getattr(sale, field), "new_value": value})
                setattr(sale, field, value)

        if changes:
            sale.edit_history = [
                *(sale.edit_history or []),
                {"edited_at": utcnow().isoformat(), "edited_by": user_id, "changes": changes},
            ]
            await db.flush()
            logger.info(
                "Sale updated",
                sale_id=sale.id,
                company_id=company_id,
                fields=[c["field"] for c in changes],
            )
        return sale

    @staticmethod
    async def delete_sale(
        db: AsyncSession, company_id: str, sale_id: str, user_id: Optional[str] = None
    ) -> Sale:
        """
        Delete a sale and put back the stock it still holds (sold minus
        already-returned units) for products that still exist.
        """
        sales = SaleRepository(db)
        sale = await sales.get_or_404(sale_id, company_id=company_id)

        for item in sale.items:
            held = item.quantity - item.returned_quantity
            if item.product_id and held > 0:
                if await put_back_stock(db, company_id, item.product_id, held):
                    record_stock_movement(
                        db,
                        company_id,
                        item.product_id,
                        StockTransactionType.sale_deleted,
                        held,
                        reference_id=sale.id,
                        created_by=user_id,
                    )

        await ReturnRepository(db).delete_where(SalesReturn.sale_id == sale.id, company_id=company_id)
        await InvoiceRepository(db).update_where(
            Invoice.sale_id == sale.id, company_id=company_id, values={"sale_id": None}
        )
        await db.flush()
        await SaleItemRepository(db).delete_where(SaleItem.sale_id == sale.id, company_id=company_id)
        await sales.delete(sale.id, company_id=company_id)
        logger.info("Sale deleted", sale_id=sale.id, company_id=company_id)
        return sale


def render_receipt(sale: Sale, company: Optional[Company]) -> str:
    """Plain-text sales receipt for the download endpoint."""
    lines = []
    if company is not None:
        lines.append(company.company_name)
        for label, value in (("", company.address), ("Tel: ", company.phone), ("Email: ", company.email)):
            if value:
                lines.append(f"{label}{value}")
        lines.append("")
    lines.append("SALES ORDER")
    lines.append("=" * 60)
    lines.append(f"Order:    {sale.sale_number}")
    lines.append(f"Date:     {as_utc(sale.created_at):%Y-%m-%d %H:%M} UTC")
    lines.append(f"Status:   {sale.status}")
    if sale.customer_name:
        lines.append(f"Customer: {sale.customer_name}")
    if sale.customer_phone:
        lines.append(f"Phone:    {sale.customer_phone}")
    lines.append("-" * 60)
    lines.append(f"{'Item':<28}{'Qty':>6}{'Price':>12}{'Total':>14}")
    for item in sale.items:
        lines.append(
            f"{item.product_name[:27]:<28}{item.quantity:>6}"
            f"{item.unit_price:>12,.2f}{item.item_total:>14,.2f}"
        )
        if item.returned_quantity:
            lines.append(f"  {item.returned_quantity} of {item.quantity} returned")
    lines.append("-" * 60)
    lines.append(f"{'Total Amount:':<46}{sale.currency} {sale.total_amount:,.2f}")
    if sale.total_refunded:
        lines.append(f"{'Refunded:':<46}{sale.currency} {sale.total_refunded:,.2f}")
    lines.append("")
    lines.append("Thank you for your business!")
    return "\n".join(lines) + "\n"
