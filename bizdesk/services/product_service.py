"""
services/product_service.py
---------------------------
Catalogue management and the stock ledger.

Every change to Product.quantity made here is mirrored by a
StockTransaction row so stock history can be reconstructed.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import Conflict, ValidationFailed
from bizdesk.core.logging import get_logger
from bizdesk.models import Product, SaleItem, StockTransaction, StockTransactionType
from bizdesk.repositories import (
    ProductRepository,
    SaleItemRepository,
    StockTransactionRepository,
)
from bizdesk.schemas.product import ProductCreate, ProductUpdate

logger = get_logger(__name__)


def classify_demand(total_sold: float, average_sold: float) -> str:
    """
    Demand level of one product relative to the average units sold across
    products that sold at all.
    """
    if total_sold <= 0:
        return "none"
    if total_sold >= average_sold * 1.5:
        return "high"
    if total_sold >= average_sold * 0.5:
        return "medium"
    return "low"


def record_stock_movement(
    db: AsyncSession,
    company_id: str,
    product_id: str,
    transaction_type: StockTransactionType,
    quantity: int,
    reference_id: Optional[str] = None,
    notes: Optional[str] = None,
    created_by: Optional[str] = None,
) -> StockTransaction:
    """Append a ledger row; `quantity` is signed."""
    return StockTransactionRepository(db).add(
        StockTransaction(
            product_id=product_id,
            transaction_type=transaction_type.value,
            quantity=quantity,
            reference_id=reference_id,
            notes=notes,
            created_by=created_by,
        ),
        company_id=company_id,
    )


class ProductService:

    @staticmethod
    async def create_product(
        db: AsyncSession, company_id: str, data: ProductCreate, user_id: Optional[str] = None
    ) -> Product:
        """Raises Conflict if the SKU is already used inside this company."""
        products = ProductRepository(db)
        sku = data.sku.strip()
        if await products.first(func.lower(Product.sku) == sku.lower(), company_id=company_id):
            raise Conflict(f"SKU '{sku}' already exists")

        product = products.add(
            Product(
                name=data.name.strip(),
                sku=sku,
                description=data.description,
                category=data.category,
                selling_price=data.price,
                cost_price=data.cost_price,
                quantity=data.quantity,
                reorder_level=data.low_stock_threshold,
                created_by=user_id,
            ),
            company_id=company_id,
        )
        await db.flush()
        if product.quantity:
            record_stock_movement(
                db,
                company_id,
                product.id,
                StockTransactionType.initial,
                product.quantity,
                notes="Opening stock",
                created_by=user_id,
            )
            await db.flush()
        logger.info("Product created", product_id=product.id, company_id=company_id, sku=sku)
        return product

    @staticmethod
    async def list_products(
        db: AsyncSession,
        company_id: str,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None,
        low_stock_only: bool = False,
    ) -> tuple[int, list[Product]]:
        criteria = []
        if search:
            pattern = f"%{search.lower()}%"
            criteria.append(
                or_(func.lower(Product.name).like(pattern), func.lower(Product.sku).like(pattern))
            )
        if low_stock_only:
            criteria.append(Product.quantity <= Product.reorder_level)
        return await ProductRepository(db).page(
            *criteria,
            company_id=company_id,
            order_by=(Product.created_at.desc(), Product.name),
            offset=(page - 1) * limit,
            limit=limit,
        )

    @staticmethod
    async def get_product(db: AsyncSession, company_id: str, product_id: str) -> Product:
        return await ProductRepository(db).get_or_404(product_id, company_id=company_id)

    @staticmethod
    async def update_product(
        db: AsyncSession,
        company_id: str,
        product_id: str,
        data: ProductUpdate,
        user_id: Optional[str] = None,
    ) -> Product:
        products = ProductRepository(db)
        product = await products.get_or_404(product_id, company_id=company_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationFailed("No fields to update")

        if "sku" in changes:
            sku = changes["sku"].strip()
            clash = await products.first(
                func.lower(Product.sku) == sku.lower(),
                Product.id != product.id,
                company_id=company_id,
            )
            if clash is not None:
                raise Conflict(f"SKU '{sku}' already exists")
            product.sku = sku

        column_for = {
            "name": "name",
            "description": "description",
            "category": "category",
            "price": "selling_price",
            "cost_price": "cost_price",
            "low_stock_threshold": "reorder_level",
        }
        for field, column in column_for.items():
            if field in changes:
                setattr(product, column, changes[field])

        if "quantity" in changes and changes["quantity"] != product.quantity:
            delta = changes["quantity"] - product.quantity
            product.quantity = changes["quantity"]
            record_stock_movement(
                db,
                company_id,
                product.id,
                StockTransactionType.adjustment,
                delta,
                notes="Manual stock adjustment",
                created_by=user_id,
            )

        await db.flush()
        logger.info("Product updated", product_id=product.id, company_id=company_id, fields=sorted(changes))
        return product

    @staticmethod
    async def delete_product(db: AsyncSession, company_id: str, product_id: str) -> Product:
        products = ProductRepository(db)
        product = await products.get_or_404(product_id, company_id=company_id)
        await StockTransactionRepository(db).delete_where(
            StockTransaction.product_id == product.id, company_id=company_id
        )
        # Past sales keep their line items; they only lose the link
        await SaleItemRepository(db).update_where(
            SaleItem.product_id == product.id, company_id=company_id, values={"product_id": None}
        )
        await products.delete(product.id, company_id=company_id)
        logger.info("Product deleted", product_id=product.id, company_id=company_id)
        return product

    @staticmethod
    async def stock_history(
        db: AsyncSession, company_id: str, product_id: str, limit: int = 100
    ) -> List[StockTransaction]:
        await ProductRepository(db).get_or_404(product_id, company_id=company_id)
        return await StockTransactionRepository(db).list(
            StockTransaction.product_id == product_id,
            company_id=company_id,
            order_by=(StockTransaction.created_at.desc(),),
            limit=limit,
        )

    @staticmethod
    async def demand_report(db: AsyncSession, company_id: str) -> Dict[str, Any]:
        items = SaleItemRepository(db)
        sold = await db.execute(
            items.select_columns(
                SaleItem.product_id,
                func.sum(SaleItem.quantity),
                func.sum(SaleItem.item_total),
                func.count(func.distinct(SaleItem.sale_id)),
                company_id=company_id,
            )
            .where(SaleItem.product_id.is_not(None))
            .group_by(SaleItem.product_id)
        )
        sales_by_product = {
            pid: (int(qty or 0), float(revenue or 0), int(orders or 0))
            for pid, qty, revenue, orders in sold.all()
        }

        products = await ProductRepository(db).list(company_id=company_id)
        known = {p.id for p in products}
        sold_quantities = [v[0] for pid, v in sales_by_product.items() if pid in known]
        average = sum(sold_quantities) / len(sold_quantities) if sold_quantities else 0.0

        rows = []
        for p in products:
            total_sold, revenue, orders = sales_by_product.get(p.id, (0, 0.0, 0))
            rows.append(
                {
                    "id": p.id,
                    "name": p.name,
                    "sku": p.sku,
                    "price": p.selling_price,
                    "current_stock": p.quantity,
                    "total_sold": total_sold,
                    "total_revenue": revenue,
                    "order_count": orders,
                    "demand_level": classify_demand(total_sold, average),
                }
            )
        rows.sort(key=lambda r: r["total_sold"], reverse=True)

        return {
            "all_products": rows,
            "high_demand": [r for r in rows if r["demand_level"] == "high"],
            "medium_demand": [r for r in rows if r["demand_level"] == "medium"],
            "low_demand": [r for r in rows if r["demand_level"] in ("low", "none")],
            "statistics": {
                "total_products": len(products),
                "products_with_sales": len(sold_quantities),
                "products_without_sales": len(products) - len(sold_quantities),
                "average_sold": round(average, 2),
                "max_sold": max(sold_quantities) if sold_quantities else 0,
            },
        }
