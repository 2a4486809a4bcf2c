"""
api/routes/products.py
----------------------
Product catalogue of the current company.

POST   /products                     — admin, manager
GET    /products                     — paginated, ?search= over name and SKU
GET    /products/demand              — demand level per product
GET    /products/{id}
GET    /products/{id}/stock-history
PUT    /products/{id}                — admin, manager
DELETE /products/{id}                — admin
"""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, status

from bizdesk.core.permissions import Action
from bizdesk.dependencies import DbSession, Meta, Tenant, TenantContext, require
from bizdesk.schemas.common import MessageResponse
from bizdesk.schemas.product import (
    ProductCreate,
    ProductDemandReport,
    ProductList,
    ProductRead,
    ProductUpdate,
    StockMovementRead,
)
from bizdesk.services.audit_service import AuditService
from bizdesk.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a product",
)
async def create_product(
    body: ProductCreate,
    db: DbSession,
    ctx: Annotated[TenantContext, Depends(require(Action.products_create))],
) -> ProductRead:
    product = await ProductService.create_product(db, ctx.company_id, body, ctx.user_id)
    return ProductRead.model_validate(product)


@router.get("", response_model=ProductList, summary="List products")
async def list_products(
    ctx: Tenant,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    search: Optional[str] = Query(default=None, max_length=255),
    low_stock: bool = Query(default=False, description="Only products at or below reorder level"),
) -> ProductList:
    total, products = await ProductService.list_products(
        db, ctx.company_id, page=page, limit=limit, search=search, low_stock_only=low_stock
    )
    return ProductList(
        products=[ProductRead.model_validate(p) for p in products],
        total=total,
        page=page,
        limit=limit,
        pages=(total + limit - 1) // limit,
    )


@router.get("/demand", response_model=ProductDemandReport, summary="Product demand analysis")
async def product_demand(ctx: Tenant, db: DbSession) -> ProductDemandReport:
    """
    Each product is classified against the average units sold across products
    that sold at least once: high (≥150%), medium (≥50%), low, or none.
    """
    report = await ProductService.demand_report(db, ctx.company_id)
    return ProductDemandReport.model_validate(report)


@router.get("/{product_id}", response_model=ProductRead, summary="Get a product")
async def get_product(product_id: str, ctx: Tenant, db: DbSession) -> ProductRead:
    product = await ProductService.get_product(db, ctx.company_id, product_id)
    return ProductRead.model_validate(product)


@router.get(
    "/{product_id}/stock-history",
    response_model=List[StockMovementRead],
    summary="Stock movements of a product",
)
async def stock_history(
    product_id: str,
    ctx: Tenant,
    db: DbSession,
    limit: int = Query(default=100, ge=1, le=1000),
) -> List[StockMovementRead]:
    movements = await ProductService.stock_history(db, ctx.company_id, product_id, limit=limit)
    return [StockMovementRead.model_validate(m) for m in movements]


@router.put("/{product_id}", response_model=ProductRead, summary="Update a product")
async def update_product(
    product_id: str,
    body: ProductUpdate,
    db: DbSession,
    ctx: Annotated[TenantContext, Depends(require(Action.products_update))],
) -> ProductRead:
    product = await ProductService.update_product(
        db, ctx.company_id, product_id, body, user_id=ctx.user_id
    )
    return ProductRead.model_validate(product)


@router.delete("/{product_id}", response_model=MessageResponse, summary="Delete a product")
async def delete_product(
    product_id: str,
    db: DbSession,
    meta: Meta,
    ctx: Annotated[TenantContext, Depends(require(Action.products_delete))],
) -> MessageResponse:
    product = await ProductService.delete_product(db, ctx.company_id, product_id)
    await AuditService.log(
        db,
        "product.delete",
        actor=ctx.user,
        entity_type="product",
        entity_id=product.id,
        entity_name=product.name,
        details={"sku": product.sku, "quantity": product.quantity},
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    return MessageResponse(message="Product deleted successfully")
