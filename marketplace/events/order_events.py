"""
Order event schemas
"""

import json
import uuid
from datetime import datetime, timezone
from decimal import Decimal

import orjson
from pydantic import Field, field_serializer

from marketplace.events.base import BaseEventData
from marketplace.models import Money, Order

# createdAt travels without fraction or offset, in UTC
EVENT_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _encode_decimal(value):
    """Write amounts as JSON numbers carrying the exact decimal digits"""
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise TypeError(f"Amount is not a finite number: {value}")
        return orjson.Fragment(str(value).encode("ascii"))
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


class OrderItemEvent(BaseEventData):
    """Snapshot of one order line"""

    product_name: str
    product_price: Money
    quantity: int = Field(gt=0)
    total_price: Money


class OrderCreatedEvent(BaseEventData):
    """
    Order creation event payload

    Built from a persisted order, published keyed by the order id so every
    event for one order lands on the same partition.
    """

    order_id: uuid.UUID
    buyer_id: str
    total_amount: Money
    status: str
    created_at: datetime
    items: list[OrderItemEvent]

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime(EVENT_TIMESTAMP_FORMAT)

    @property
    def key(self) -> str:
        return str(self.order_id)

    @classmethod
    def from_order(cls, order: Order) -> "OrderCreatedEvent":
        return cls(
            order_id=order.id,
            buyer_id=order.buyer_id,
            total_amount=order.total_amount,
            status=order.status,
            created_at=order.created_at,
            items=[
                OrderItemEvent(
                    product_name=item.product_name,
                    product_price=item.product_price,
                    quantity=item.quantity,
                    total_price=item.total_price,
                )
                for item in order.items
            ],
        )

    def to_json_bytes(self) -> bytes:
        return orjson.dumps(self.model_dump(by_alias=True), default=_encode_decimal)

    @classmethod
    def from_json(cls, raw: bytes | str) -> "OrderCreatedEvent":
        """
        Parse a wire payload. JSON numbers are read as Decimal so amounts keep
        their exact value.

        Raises:
            ValueError: payload is not UTF-8 JSON or does not match the schema
        """
        data = json.loads(raw, parse_float=Decimal)
        return cls.model_validate(data)
