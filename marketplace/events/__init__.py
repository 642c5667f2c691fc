"""
Event schemas for Kafka events
"""

from marketplace.events.base import BaseEventData
from marketplace.events.order_events import (
    EVENT_TIMESTAMP_FORMAT,
    OrderCreatedEvent,
    OrderItemEvent,
)

__all__ = [
    "BaseEventData",
    "EVENT_TIMESTAMP_FORMAT",
    "OrderCreatedEvent",
    "OrderItemEvent",
]
