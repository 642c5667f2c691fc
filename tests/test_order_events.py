import json
import unittest
import uuid
from datetime import datetime, timezone
from decimal import Decimal

import helpers  # noqa: F401  sets required environment

from marketplace.events import OrderCreatedEvent
from marketplace.models import Order, OrderItem
from marketplace.services.payment_service import PaymentProcessingService


def build_order() -> Order:
    order = Order(
        id=uuid.UUID("0b6f1c44-6a1e-4b53-9f59-3c8d1b1f0a11"),
        buyer_id="buyer-1",
        status="PENDING",
        total_amount=Decimal("615.48"),
        created_at=datetime(2024, 5, 1, 12, 30, 45, 123456, tzinfo=timezone.utc),
    )
    order.add_item(
        OrderItem(
            product_name="Laptop",
            product_price=Decimal("299.99"),
            quantity=2,
            total_price=Decimal("599.98"),
        )
    )
    order.add_item(
        OrderItem(
            product_name="Mouse",
            product_price=Decimal("15.50"),
            quantity=1,
            total_price=Decimal("15.50"),
        )
    )
    return order


class TestOrderCreatedEvent(unittest.TestCase):
    def test_wire_format_uses_camel_case_and_numbers(self) -> None:
        payload = json.loads(OrderCreatedEvent.from_order(build_order()).to_json_bytes())

        self.assertEqual(
            set(payload),
            {"orderId", "buyerId", "totalAmount", "status", "createdAt", "items"},
        )
        self.assertEqual(payload["orderId"], "0b6f1c44-6a1e-4b53-9f59-3c8d1b1f0a11")
        self.assertEqual(payload["totalAmount"], 615.48)
        self.assertEqual(payload["createdAt"], "2024-05-01T12:30:45")
        self.assertEqual(
            payload["items"][0],
            {
                "productName": "Laptop",
                "productPrice": 299.99,
                "quantity": 2,
                "totalPrice": 599.98,
            },
        )

    def test_items_follow_order_positions(self) -> None:
        event = OrderCreatedEvent.from_order(build_order())
        self.assertEqual([i.product_name for i in event.items], ["Laptop", "Mouse"])

    def test_key_is_order_id(self) -> None:
        event = OrderCreatedEvent.from_order(build_order())
        self.assertEqual(event.key, "0b6f1c44-6a1e-4b53-9f59-3c8d1b1f0a11")

    def test_parsing_keeps_exact_decimal_amounts(self) -> None:
        raw = (
            b'{"orderId":"0b6f1c44-6a1e-4b53-9f59-3c8d1b1f0a11","buyerId":"buyer-1",'
            b'"totalAmount":0.30,"status":"PENDING","createdAt":"2024-05-01T12:30:45",'
            b'"items":[{"productName":"Pen","productPrice":0.10,"quantity":3,"totalPrice":0.30}]}'
        )
        event = OrderCreatedEvent.from_json(raw)

        self.assertEqual(event.total_amount, Decimal("0.30"))
        self.assertEqual(event.items[0].product_price, Decimal("0.10"))
        self.assertEqual(event.created_at, datetime(2024, 5, 1, 12, 30, 45))

    def test_round_trip_through_payment_deserializer_is_exact(self) -> None:
        order = build_order()
        order.created_at = datetime(2024, 5, 1, 12, 30, 45, tzinfo=timezone.utc)
        order.total_amount = Decimal("12345678901234567.89")
        order.items[0].total_price = Decimal("12345678901234552.39")
        sent = OrderCreatedEvent.from_order(order)

        raw = sent.to_json_bytes()
        received = PaymentProcessingService.deserialize(raw)

        self.assertIn(b'"totalAmount":12345678901234567.89', raw)
        self.assertEqual(received.order_id, sent.order_id)
        self.assertEqual(received.buyer_id, sent.buyer_id)
        self.assertEqual(received.status, sent.status)
        self.assertEqual(received.total_amount, Decimal("12345678901234567.89"))
        self.assertEqual(received.created_at, datetime(2024, 5, 1, 12, 30, 45))
        self.assertEqual(
            [i.model_dump() for i in received.items], [i.model_dump() for i in sent.items]
        )
        self.assertEqual(received.items[1].product_price, Decimal("15.50"))

    def test_invalid_payload_raises_value_error(self) -> None:
        with self.assertRaises(ValueError):
            OrderCreatedEvent.from_json(b"not json")
        with self.assertRaises(ValueError):
            OrderCreatedEvent.from_json(b'{"orderId": "not-a-uuid"}')
