"""
services/invoice_service.py
---------------------------
Invoice generation. Invoices snapshot their lines as JSON and never touch
stock; selling goods is the sale's job.
"""

import time
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import NotFound, ValidationFailed
from bizdesk.core.logging import get_logger
from bizdesk.db.base import as_utc
from bizdesk.models import Company, Invoice
from bizdesk.repositories import InvoiceRepository, ProductRepository, SaleRepository
from bizdesk.schemas.invoice import InvoiceGenerate, InvoiceUpdate
from bizdesk.schemas.sale import SaleItemIn
from bizdesk.services.customer_service import CustomerService
from bizdesk.services.sale_service import exchange_rate_for

logger = get_logger(__name__)


def invoice_number(existing_count: int) -> str:
    return f"INV-{str(int(time.time() * 1000))[-6:]}-{existing_count + 1}"


async def _lines_from_items(
    db: AsyncSession, company_id: str, items: List[SaleItemIn], currency: str
) -> List[Dict[str, Any]]:
    products = ProductRepository(db)
    rate = exchange_rate_for(currency)
    lines = []
    for item in items:
        product = await products.get(item.product_id, company_id=company_id)
        if product is None:
            raise NotFound(f"Product not found: {item.product_id}")
        base_price = item.custom_price if item.custom_price is not None else product.selling_price
        unit_price = round(base_price / rate, 2)
        lines.append(
            {
                "product_id": product.id,
                "product_name": product.name,
                "sku": product.sku,
                "quantity": item.quantity,
                "unit_price": unit_price,
                "item_total": round(unit_price * item.quantity, 2),
                "custom_price_used": item.custom_price is not None,
            }
        )
    return lines


class InvoiceService:

    @staticmethod
    async def generate_invoice(
        db: AsyncSession, company_id: str, data: InvoiceGenerate, user_id: Optional[str] = None
    ) -> Invoice:
        sale = None
        if data.sales_order_id:
            sale = await SaleRepository(db).get_or_404(data.sales_order_id, company_id=company_id)
            lines = [
                {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "quantity": item.quantity - item.returned_quantity,
                    "unit_price": item.unit_price,
                    "item_total": round(item.unit_price * (item.quantity - item.returned_quantity), 2),
                    "custom_price_used": item.custom_price_used,
                }
                for item in sale.items
                if item.quantity > item.returned_quantity
            ]
            currency = sale.currency
            customer_name = data.customer_name or sale.customer_name
            customer_phone = data.customer_phone or sale.customer_phone
        else:
            lines = await _lines_from_items(db, company_id, data.items or [], data.currency)
            currency = data.currency
            customer_name = data.customer_name
            customer_phone = data.customer_phone
            if customer_name and customer_phone:
                await CustomerService.find_or_register(db, company_id, customer_name, customer_phone)

        if not lines:
            raise ValidationFailed("Please add at least one item to create an invoice.")

        subtotal = round(sum(line["item_total"] for line in lines), 2)
        total = round(subtotal + data.tax - data.discount, 2)
        if total < 0:
            raise ValidationFailed("Discount cannot exceed the invoice total")

        invoices = InvoiceRepository(db)
        count = await invoices.count(company_id=company_id)
        invoice = await invoices.create(
            company_id=company_id,
            invoice_number=invoice_number(count),
            sale_id=sale.id if sale is not None else None,
            customer_name=customer_name,
            customer_phone=customer_phone,
            customer_email=data.customer_email,
            customer_address=data.customer_address,
            items=lines,
            subtotal=subtotal,
            tax=data.tax,
            discount=data.discount,
            total_amount=total,
            currency=currency,
            status="generated",
            due_date=data.due_date,
            notes=data.notes,
            created_by=user_id,
        )
        logger.info(
            "Invoice generated",
            invoice_id=invoice.id,
            company_id=company_id,
            sale_id=invoice.sale_id,
            total=invoice.total_amount,
        )
        return invoice

    @staticmethod
    async def list_invoices(
        db: AsyncSession,
        company_id: str,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[int, list[Invoice]]:
        criteria = []
        if status:
            criteria.append(Invoice.status == status)
        if search:
            pattern = f"%{search.lower()}%"
            criteria.append(
                or_(
                    func.lower(Invoice.invoice_number).like(pattern),
                    func.lower(Invoice.customer_name).like(pattern),
                    Invoice.customer_phone.like(f"%{search}%"),
                )
            )
        return await InvoiceRepository(db).page(
            *criteria,
            company_id=company_id,
            order_by=(Invoice.created_at.desc(),),
            offset=(page - 1) * limit,
            limit=limit,
        )

    @staticmethod
    async def get_invoice(db: AsyncSession, company_id: str, invoice_id: str) -> Invoice:
        return await InvoiceRepository(db).get_or_404(invoice_id, company_id=company_id)

    @staticmethod
    async def update_invoice(
        db: AsyncSession, company_id: str, invoice_id: str, data: InvoiceUpdate
    ) -> Invoice:
        invoice = await InvoiceRepository(db).get_or_404(invoice_id, company_id=company_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationFailed("No fields to update")
        for field, value in changes.items():
            setattr(invoice, field, value)
        await db.flush()
        logger.info("Invoice updated", invoice_id=invoice.id, company_id=company_id, fields=sorted(changes))
        return invoice

    @staticmethod
    async def delete_invoice(db: AsyncSession, company_id: str, invoice_id: str) -> Invoice:
        invoices = InvoiceRepository(db)
        invoice = await invoices.get_or_404(invoice_id, company_id=company_id)
        await invoices.delete(invoice.id, company_id=company_id)
        logger.info("Invoice deleted", invoice_id=invoice_id, company_id=company_id)
        return invoice


def render_invoice(invoice: Invoice, company: Optional[Company]) -> str:
    lines = []
    if company is not None:
        lines.append(company.company_name)
        for label, value in (("", company.address), ("Tel: ", company.phone), ("Email: ", company.email)):
            if value:
                lines.append(f"{label}{value}")
        if company.tax_id:
            lines.append(f"Tax ID: {company.tax_id}")
        lines.append("")
    lines.append("INVOICE")
    lines.append("=" * 60)
    lines.append(f"Invoice #: {invoice.invoice_number}")
    lines.append(f"Date:      {as_utc(invoice.created_at):%Y-%m-%d}")
    if invoice.due_date:
        lines.append(f"Due:       {invoice.due_date:%Y-%m-%d}")
    lines.append(f"Status:    {invoice.status}")
    if invoice.customer_name:
        lines.append("")
        lines.append("Bill To:")
        lines.append(f"  {invoice.customer_name}")
        for value in (invoice.customer_phone, invoice.customer_email, invoice.customer_address):
            if value:
                lines.append(f"  {value}")
    lines.append("-" * 60)
    lines.append(f"{'Item':<28}{'Qty':>6}{'Price':>12}{'Total':>14}")
    for item in invoice.items:
        lines.append(
            f"{str(item.get('product_name', ''))[:27]:<28}{item.get('quantity', 0):>6}"
            f"{float(item.get('unit_price', 0)):>12,.2f}{float(item.get('item_total', 0)):>14,.2f}"
        )
    lines.append("-" * 60)
    lines.append(f"{'Subtotal:':<46}{invoice.currency} {invoice.subtotal:,.2f}")
    if invoice.tax:
        lines.append(f"{'Tax:':<46}{invoice.currency} {invoice.tax:,.2f}")
    if invoice.discount:
        lines.append(f"{'Discount:':<46}{invoice.currency} -{invoice.discount:,.2f}")
    lines.append(f"{'Total:':<46}{invoice.currency} {invoice.total_amount:,.2f}")
    if invoice.notes:
        lines.append("")
        lines.append(f"Notes: {invoice.notes}")
    return "\n".join(lines) + "\n"
