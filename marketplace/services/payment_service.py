"""
Payment processing for consumed order-created events

The worker deserializes each event and hands it to a PaymentInitiator. No
payment provider is integrated yet: the default initiator refuses explicitly
instead of pretending the charge went through.
"""

from pydantic import ValidationError

from marketplace.core.exceptions import (
    EventDeserializationError,
    PaymentInitiationNotImplementedError,
)
from marketplace.core.logging import get_logger
from marketplace.events import OrderCreatedEvent
from marketplace.models import Payment

logger = get_logger(__name__)


class PaymentInitiator:
    """Extension point: start a payment for a newly created order"""

    async def initiate(self, event: OrderCreatedEvent) -> Payment:
        raise PaymentInitiationNotImplementedError(
            f"No payment provider configured; payment for order {event.order_id} was not initiated"
        )


class PaymentProcessingService:
    def __init__(self, initiator: PaymentInitiator | None = None):
        self.initiator = initiator or PaymentInitiator()

    @staticmethod
    def deserialize(raw: bytes | str | None) -> OrderCreatedEvent:
        if raw is None:
            raise EventDeserializationError("Order event payload is empty")
        try:
            return OrderCreatedEvent.from_json(raw)
        except (ValidationError, ValueError) as e:
            logger.error("order_event_deserialization_failed", error_message=str(e))
            raise EventDeserializationError(f"Failed to deserialize order event: {e}") from e

    async def process_order_created_event(self, event: OrderCreatedEvent) -> Payment:
        logger.info(
            "payment_processing_started",
            order_id=str(event.order_id),
            buyer_id=event.buyer_id,
            total_amount=str(event.total_amount),
            items_count=len(event.items),
        )
        for item in event.items:
            logger.info(
                "payment_order_item",
                order_id=str(event.order_id),
                product_name=item.product_name,
                quantity=item.quantity,
                total_price=str(item.total_price),
            )

        payment = await self.initiator.initiate(event)

        logger.info(
            "payment_initiated",
            order_id=str(event.order_id),
            payment_id=str(payment.id),
            status=payment.status,
        )
        return payment
