"""
Order event publisher - hands OrderCreatedEvent to Kafka without blocking the caller

publish() serializes the event synchronously and schedules delivery as a
background task. Broker acknowledgement (or failure) is only observed by the
completion callback, which logs the outcome; it never reaches the code that
created the order.
"""

import asyncio
import time

from aiokafka.errors import KafkaError
from aiokafka.structs import RecordMetadata
from pydantic_core import PydanticSerializationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from marketplace.core.config import settings
from marketplace.core.exceptions import EventPublishError, EventSerializationError
from marketplace.core.kafka import KafkaProducerClient, kafka_producer
from marketplace.core.logging import get_logger
from marketplace.core.metrics import kafka_events_published_total, kafka_publish_duration_seconds
from marketplace.events import OrderCreatedEvent

logger = get_logger(__name__)


def _is_retriable(exc: BaseException) -> bool:
    return isinstance(exc, KafkaError) and exc.retriable


class OrderEventPublisher:
    """Publishes order events keyed by order id"""

    def __init__(
        self,
        producer_client: KafkaProducerClient,
        topic: str | None = None,
        retries: int | None = None,
        delivery_timeout_s: float | None = None,
    ):
        self.producer_client = producer_client
        self.topic = topic or settings.KAFKA_TOPIC_ORDER_CREATED
        self.retries = settings.KAFKA_PRODUCER_RETRIES if retries is None else retries
        self.delivery_timeout_s = (
            settings.KAFKA_DELIVERY_TIMEOUT_MS / 1000
            if delivery_timeout_s is None
            else delivery_timeout_s
        )
        self._in_flight: set[asyncio.Task] = set()

    def publish(self, event: OrderCreatedEvent) -> "asyncio.Task[RecordMetadata]":
        """
        Schedule delivery of an order-created event.

        Returns:
            Task resolving to the broker's RecordMetadata once acknowledged

        Raises:
            EventSerializationError: event cannot be encoded
            EventPublishError: producer is not running
        """
        try:
            value = event.to_json_bytes()
        except (PydanticSerializationError, TypeError, ValueError) as e:
            logger.error(
                "order_event_serialization_failed",
                order_id=event.key,
                error_message=str(e),
                exc_info=True,
            )
            raise EventSerializationError(f"Failed to serialize order event: {e}") from e

        if not self.producer_client.started:
            raise EventPublishError("Kafka producer not started")

        key = event.key.encode("utf-8")
        logger.info("order_event_publishing", order_id=event.key, topic=self.topic)

        started_at = time.time()
        task = asyncio.create_task(
            self._deliver(key, value), name=f"publish-order-{event.key}"
        )
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        task.add_done_callback(lambda t: self._log_outcome(t, event.key, started_at))
        return task

    async def _deliver(self, key: bytes, value: bytes) -> RecordMetadata:
        return await asyncio.wait_for(
            self._send_with_retries(key, value), timeout=self.delivery_timeout_s
        )

    async def _send_with_retries(self, key: bytes, value: bytes) -> RecordMetadata:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retries + 1),
            wait=wait_exponential(
                multiplier=settings.KAFKA_PRODUCER_RETRY_BACKOFF_MS / 1000, max=5
            ),
            retry=retry_if_exception(_is_retriable),
            reraise=True,
        ):
            with attempt:
                producer = self.producer_client.producer
                if producer is None:
                    raise EventPublishError("Kafka producer stopped before delivery")
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "order_event_publish_retry",
                        topic=self.topic,
                        attempt=attempt.retry_state.attempt_number,
                    )
                return await producer.send_and_wait(self.topic, value=value, key=key)

    def _log_outcome(self, task: asyncio.Task, order_id: str, started_at: float) -> None:
        if task.cancelled():
            kafka_events_published_total.labels(topic=self.topic, status="cancelled").inc()
            logger.warning("order_event_publish_cancelled", order_id=order_id, topic=self.topic)
            return

        exc = task.exception()
        if exc is not None:
            kafka_events_published_total.labels(topic=self.topic, status="failure").inc()
            logger.error(
                "order_event_publish_failed",
                order_id=order_id,
                topic=self.topic,
                error_type=type(exc).__name__,
                error_message=str(exc),
                exc_info=exc,
            )
            return

        metadata = task.result()
        kafka_events_published_total.labels(topic=self.topic, status="success").inc()
        kafka_publish_duration_seconds.labels(topic=self.topic).observe(time.time() - started_at)
        logger.info(
            "order_event_published",
            order_id=order_id,
            topic=metadata.topic,
            partition=metadata.partition,
            offset=metadata.offset,
        )

    async def drain(self, timeout: float = 10.0) -> None:
        """Wait for in-flight deliveries, used at shutdown before stopping the producer"""
        if not self._in_flight:
            return
        pending = list(self._in_flight)
        logger.info("order_event_publisher_draining", pending=len(pending))
        await asyncio.wait(pending, timeout=timeout)


order_event_publisher = OrderEventPublisher(kafka_producer)
