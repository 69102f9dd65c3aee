"""Shop value objects: products, cart lines, freebie allocations and orders."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class PaymentMethod(str, Enum):
    COD = "COD"
    UPI = "UPI"


class OrderStatus(str, Enum):
    CONFIRMED = "CONFIRMED"


class Product(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    price: Decimal
    stock: int = 0
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None


class CartLine(BaseModel):
    """A cart line priced from the live product row."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    product_id: str
    product_name: str
    quantity: int = Field(gt=0)
    unit_price: Decimal
    stock: int

    @computed_field
    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class FreebieAllocation(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    free_unit_prices: List[Decimal] = Field(default_factory=list)
    discount: Decimal = Decimal("0.00")

    @computed_field
    @property
    def free_units(self) -> int:
        return len(self.free_unit_prices)


class CartSummary(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    lines: List[CartLine]
    subtotal: Decimal
    potential_discount: Decimal
    effective_total: Decimal
    freebies_remaining: int
    freebies_limit: int


class OrderItem(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    order_id: str
    product_id: str
    product_name: Optional[str] = None
    quantity: int
    price_at_purchase: Decimal


class Order(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    user_id: str
    payment_method: PaymentMethod
    status: OrderStatus
    total: Decimal
    created_at: datetime
    items: List[OrderItem] = Field(default_factory=list)
    subtotal: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None


class ProductCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None
    image_url: Optional[str] = None
    stock: Optional[int] = Field(default=None, ge=0)


class ProductUpdate(ProductCreate):
    """Partial update; only fields present in ``model_fields_set`` are applied."""
