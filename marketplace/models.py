import uuid
from enum import Enum
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field as PydanticField, PlainSerializer
from pydantic.alias_generators import to_camel
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel, Column, String, Relationship


def get_datetime_utc() -> datetime:
    return datetime.now(timezone.utc)


# API responses render amounts as JSON numbers; events keep the exact decimal text
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

# Scale of every Numeric(19,2) money column
MONEY_QUANTUM = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """Round to the stored scale so checks and arithmetic see what gets persisted"""
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


class OrderStatus(str, Enum):
    """Order lifecycle states"""

    PENDING = "PENDING"  # Order created, awaiting payment
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


# ORDER MODELS


class Order(SQLModel, table=True):
    """Order database model"""

    __tablename__ = "orders"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    buyer_id: str = Field(index=True)
    status: str = Field(
        default=OrderStatus.PENDING.value,
        sa_column=Column(String, nullable=False, index=True),
    )
    total_amount: Decimal = Field(default=Decimal("0"), max_digits=19, decimal_places=2)

    created_at: datetime = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),
    )
    updated_at: datetime = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"onupdate": get_datetime_utc},
    )

    items: list["OrderItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "OrderItem.position",
        },
    )

    def add_item(self, item: "OrderItem") -> None:
        item.position = len(self.items)
        self.items.append(item)


class OrderItem(SQLModel, table=True):
    """Order line with product name and price captured at order time"""

    __tablename__ = "order_items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    order_id: uuid.UUID = Field(
        foreign_key="orders.id", nullable=False, index=True, ondelete="CASCADE"
    )
    position: int = Field(default=0)
    product_name: str
    product_price: Decimal = Field(max_digits=19, decimal_places=2)
    quantity: int = Field(gt=0)
    total_price: Decimal = Field(max_digits=19, decimal_places=2)

    order: Order | None = Relationship(back_populates="items")


# PAYMENT MODELS


class Payment(SQLModel, table=True):
    """Payment record owned by the payment worker"""

    __tablename__ = "payments"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    order_id: uuid.UUID = Field(index=True)  # not enforced across services
    amount: Decimal = Field(max_digits=19, decimal_places=2)
    status: str = Field(
        default=PaymentStatus.PENDING.value,
        sa_column=Column(String, nullable=False),
    )
    paid_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))


# API SCHEMAS


class CamelModel(BaseModel):
    """Base for JSON schemas exchanged with clients (camelCase on the wire)"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


T = TypeVar("T")


class ApiResponse(CamelModel, Generic[T]):
    """Envelope used by every response: {success, message, data}"""

    success: bool
    message: str
    data: T | None = None


class AuthErrorResponse(ApiResponse[None]):
    """Envelope for 401/403 responses with a stable error code"""

    status: int
    error: str
    error_code: str
    path: str | None = None
    timestamp: datetime
    suggestion: str | None = None
    details: str | None = None


class OrderItemCreate(CamelModel):
    product_id: uuid.UUID
    quantity: int = PydanticField(gt=0)


class OrderCreate(CamelModel):
    items: list[OrderItemCreate] = PydanticField(min_length=1)


class OrderItemPublic(CamelModel):
    id: uuid.UUID
    product_name: str
    product_price: Money
    quantity: int
    total_price: Money


class OrderPublic(CamelModel):
    id: uuid.UUID
    buyer_id: str
    status: OrderStatus
    total_amount: Money
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemPublic] = []


class ProductData(CamelModel):
    """Product representation returned by the product catalog"""

    id: uuid.UUID | None = None
    name: str | None = None
    description: str | None = None
    price: Money | None = None
    image_url: str | None = None
    category: str | None = None
    seller_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
