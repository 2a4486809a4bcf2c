"""
services/customer_service.py
----------------------------
Customer records and per-customer purchase history.
"""

from collections import Counter
from typing import Any, Dict, Optional

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import Conflict, ValidationFailed
from bizdesk.core.logging import get_logger
from bizdesk.models import Customer, Invoice, Sale
from bizdesk.repositories import CustomerRepository, InvoiceRepository, SaleRepository
from bizdesk.schemas.customer import CustomerCreate, CustomerUpdate

logger = get_logger(__name__)


class CustomerService:

    @staticmethod
    async def create_customer(db: AsyncSession, company_id: str, data: CustomerCreate) -> Customer:
        customers = CustomerRepository(db)
        phone = data.phone.strip()
        if await customers.first(Customer.phone == phone, company_id=company_id):
            raise Conflict("A customer with this phone number already exists")
        customer = await customers.create(
            company_id=company_id,
            name=data.name.strip(),
            phone=phone,
            email=data.email.lower() if data.email else None,
            address=data.address,
            notes=data.notes,
        )
        logger.info("Customer created", customer_id=customer.id, company_id=company_id)
        return customer

    @staticmethod
    async def find_or_register(
        db: AsyncSession, company_id: str, name: str, phone: str
    ) -> Customer:
        """Customer with this phone, created on first sight. Used by sales."""
        customers = CustomerRepository(db)
        phone = phone.strip()
        existing = await customers.first(Customer.phone == phone, company_id=company_id)
        if existing is not None:
            return existing
        customer = await customers.create(company_id=company_id, name=name.strip(), phone=phone)
        logger.info("Customer auto-registered", customer_id=customer.id, company_id=company_id)
        return customer

    @staticmethod
    async def list_customers(
        db: AsyncSession,
        company_id: str,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None,
    ) -> tuple[int, list[Customer]]:
        criteria = []
        if search:
            pattern = f"%{search.lower()}%"
            criteria.append(
                or_(
                    func.lower(Customer.name).like(pattern),
                    Customer.phone.like(f"%{search}%"),
                    func.lower(Customer.email).like(pattern),
                )
            )
        return await CustomerRepository(db).page(
            *criteria,
            company_id=company_id,
            order_by=(Customer.name,),
            offset=(page - 1) * limit,
            limit=limit,
        )

    @staticmethod
    async def get_customer(db: AsyncSession, company_id: str, customer_id: str) -> Customer:
        return await CustomerRepository(db).get_or_404(customer_id, company_id=company_id)

    @staticmethod
    async def update_customer(
        db: AsyncSession, company_id: str, customer_id: str, data: CustomerUpdate
    ) -> Customer:
        customers = CustomerRepository(db)
        customer = await customers.get_or_404(customer_id, company_id=company_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationFailed("No fields to update")

        if "phone" in changes:
            changes["phone"] = changes["phone"].strip()
            clash = await customers.first(
                Customer.phone == changes["phone"],
                Customer.id != customer.id,
                company_id=company_id,
            )
            if clash is not None:
                raise Conflict("A customer with this phone number already exists")
        if "email" in changes:
            changes["email"] = changes["email"].lower()

        for field, value in changes.items():
            setattr(customer, field, value)
        await db.flush()
        logger.info("Customer updated", customer_id=customer.id, company_id=company_id)
        return customer

    @staticmethod
    async def delete_customer(db: AsyncSession, company_id: str, customer_id: str) -> Customer:
        customers = CustomerRepository(db)
        customer = await customers.get_or_404(customer_id, company_id=company_id)
        # Sales keep the name and phone they were recorded with
        await SaleRepository(db).update_where(
            Sale.customer_id == customer.id, company_id=company_id, values={"customer_id": None}
        )
        await customers.delete(customer.id, company_id=company_id)
        logger.info("Customer deleted", customer_id=customer_id, company_id=company_id)
        return customer

    @staticmethod
    async def purchase_history(
        db: AsyncSession, company_id: str, customer_id: str
    ) -> Dict[str, Any]:
        customer = await CustomerRepository(db).get_or_404(customer_id, company_id=company_id)

        orders = await SaleRepository(db).list(
            or_(Sale.customer_id == customer.id, Sale.customer_phone == customer.phone),
            company_id=company_id,
            order_by=(Sale.created_at.desc(),),
        )
        invoice_count = await InvoiceRepository(db).count(
            or_(Invoice.customer_phone == customer.phone, Invoice.customer_name == customer.name),
            company_id=company_id,
        )

        product_counts: Counter = Counter()
        for order in orders:
            for item in order.items:
                product_counts[item.product_name] += item.quantity

        total_spent = round(sum(o.total_amount for o in orders), 2)
        return {
            "customer": customer,
            "orders": [
                {
                    "id": o.id,
                    "sale_number": o.sale_number,
                    "total_amount": o.total_amount,
                    "status": o.status,
                    "item_count": len(o.items),
                    "created_at": o.created_at,
                }
                for o in orders
            ],
            "invoice_count": invoice_count,
            "stats": {
                "total_orders": len(orders),
                "total_spent": total_spent,
                "avg_order_value": round(total_spent / len(orders), 2) if orders else 0.0,
                "last_order_date": orders[0].created_at if orders else None,
                "top_products": [
                    {"name": name, "quantity": qty}
                    for name, qty in product_counts.most_common(5)
                ],
            },
        }
