"""
schemas/product.py
------------------
Product payloads.

Responses carry both the relational column names (id, selling_price,
quantity, reorder_level) and the aliases older clients read
(_id, price, unit_price, quantity_in_stock, low_stock_threshold).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255, examples=["Claw Hammer 16oz"])
    sku: str = Field(..., min_length=1, max_length=100, examples=["HT-0001"])
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    price: float = Field(..., ge=0, validation_alias=AliasChoices("price", "selling_price"))
    cost_price: float = Field(default=0, ge=0)
    quantity: int = Field(..., ge=0, validation_alias=AliasChoices("quantity", "quantity_in_stock"))
    low_stock_threshold: int = Field(
        default=10, ge=0, validation_alias=AliasChoices("low_stock_threshold", "reorder_level")
    )


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    sku: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    price: Optional[float] = Field(
        default=None, ge=0, validation_alias=AliasChoices("price", "selling_price")
    )
    cost_price: Optional[float] = Field(default=None, ge=0)
    quantity: Optional[int] = Field(
        default=None, ge=0, validation_alias=AliasChoices("quantity", "quantity_in_stock")
    )
    low_stock_threshold: Optional[int] = Field(
        default=None, ge=0, validation_alias=AliasChoices("low_stock_threshold", "reorder_level")
    )


class ProductRead(BaseModel):
    id: str
    company_id: str
    name: str
    sku: str
    description: Optional[str] = None
    category: Optional[str] = None
    selling_price: float
    cost_price: float
    quantity: int
    reorder_level: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field(alias="_id")
    @property
    def legacy_id(self) -> str:
        return self.id

    @computed_field
    @property
    def price(self) -> float:
        return self.selling_price

    @computed_field
    @property
    def unit_price(self) -> float:
        return self.selling_price

    @computed_field
    @property
    def quantity_in_stock(self) -> int:
        return self.quantity

    @computed_field
    @property
    def low_stock_threshold(self) -> int:
        return self.reorder_level

    @computed_field
    @property
    def profit(self) -> float:
        return round(self.selling_price - self.cost_price, 2)

    @computed_field
    @property
    def profit_margin(self) -> float:
        if self.selling_price <= 0:
            return 0.0
        return round(self.profit / self.selling_price * 100, 2)

    @computed_field
    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.reorder_level


class ProductList(BaseModel):
    products: List[ProductRead]
    total: int
    page: int
    limit: int
    pages: int


class ProductDemand(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    sku: str
    price: float
    current_stock: int
    total_sold: int
    total_revenue: float
    order_count: int
    demand_level: str


class DemandStatistics(BaseModel):
    total_products: int
    products_with_sales: int
    products_without_sales: int
    average_sold: float
    max_sold: int


class ProductDemandReport(BaseModel):
    all_products: List[ProductDemand]
    high_demand: List[ProductDemand]
    medium_demand: List[ProductDemand]
    low_demand: List[ProductDemand]
    statistics: DemandStatistics


class StockMovementRead(BaseModel):
    id: str
    product_id: str
    transaction_type: str
    quantity: int
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
