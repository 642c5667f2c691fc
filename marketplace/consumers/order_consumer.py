"""
Order event consumer - drives payment initiation for each order-created event

Per-message states: RECEIVED -> DESERIALIZED -> PROCESSED | FAILED.

Failure handling is explicit configuration:
- PAYMENT_CONSUMER_MAX_ATTEMPTS: in-process attempts for transient failures
- PAYMENT_CONSUMER_COMMIT_ON_FAILURE: after the last attempt, commit the
  offset and move on (True) or rewind to the failed offset so the message is
  redelivered (False)
Undecodable payloads and permanent processing errors are always committed;
redelivery cannot fix them.
"""

from enum import Enum

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from marketplace.core.config import settings
from marketplace.core.exceptions import (
    EventDeserializationError,
    PaymentInitiationNotImplementedError,
)
from marketplace.core.kafka import KafkaConsumerClient
from marketplace.core.logging import get_logger
from marketplace.core.metrics import kafka_events_consumed_total
from marketplace.core.redis import RedisClient
from marketplace.events import OrderCreatedEvent
from marketplace.services.payment_service import PaymentProcessingService

logger = get_logger(__name__)

# Retrying these cannot change the outcome
PERMANENT_ERRORS = (EventDeserializationError, PaymentInitiationNotImplementedError)


class MessageState(str, Enum):
    RECEIVED = "RECEIVED"
    DESERIALIZED = "DESERIALIZED"
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"


def processed_marker(event: OrderCreatedEvent) -> str:
    return f"processed_order:{event.order_id}"


class OrderEventConsumer:
    """Consumes order-created events for one consumer group"""

    def __init__(
        self,
        consumer_client: KafkaConsumerClient,
        redis: RedisClient,
        service: PaymentProcessingService,
        max_attempts: int | None = None,
        commit_on_failure: bool | None = None,
        retry_backoff_s: float | None = None,
    ):
        self.consumer_client = consumer_client
        self.redis = redis
        self.service = service
        self.max_attempts = max(
            1, settings.PAYMENT_CONSUMER_MAX_ATTEMPTS if max_attempts is None else max_attempts
        )
        self.commit_on_failure = (
            settings.PAYMENT_CONSUMER_COMMIT_ON_FAILURE
            if commit_on_failure is None
            else commit_on_failure
        )
        self.retry_backoff_s = (
            settings.PAYMENT_CONSUMER_RETRY_BACKOFF_SECONDS
            if retry_backoff_s is None
            else retry_backoff_s
        )

    async def run(self):
        """Main consumer loop - runs until cancelled"""
        logger.info(
            "order_consumer_starting",
            max_attempts=self.max_attempts,
            commit_on_failure=self.commit_on_failure,
        )
        async for message in self.consumer_client.consume_messages():
            await self.handle_message(message)

    async def handle_message(self, message) -> MessageState:
        """Process one message and settle its offset according to the failure policy"""
        structlog.contextvars.bind_contextvars(
            topic=message.topic, partition=message.partition, offset=message.offset
        )
        try:
            logger.info("order_event_received", state=MessageState.RECEIVED.value)

            try:
                event = self.service.deserialize(message.value)
            except EventDeserializationError as e:
                kafka_events_consumed_total.labels(topic=message.topic, status="poison").inc()
                logger.error(
                    "order_event_failed",
                    state=MessageState.FAILED.value,
                    reason="deserialization",
                    error_message=e.message,
                )
                await self.consumer_client.commit(message)
                return MessageState.FAILED

            structlog.contextvars.bind_contextvars(order_id=str(event.order_id))
            logger.info("order_event_deserialized", state=MessageState.DESERIALIZED.value)

            try:
                if await self.redis.exists(processed_marker(event)):
                    kafka_events_consumed_total.labels(
                        topic=message.topic, status="duplicate"
                    ).inc()
                    logger.info("order_event_duplicate", state=MessageState.PROCESSED.value)
                    await self.consumer_client.commit(message)
                    return MessageState.PROCESSED

                await self._process_with_retries(event)
                await self.redis.set(
                    processed_marker(event), "1", ttl=settings.PROCESSED_EVENT_TTL
                )
            except Exception as e:
                return await self._settle_failure(message, e)

            await self.consumer_client.commit(message)
            kafka_events_consumed_total.labels(topic=message.topic, status="processed").inc()
            logger.info("order_event_processed", state=MessageState.PROCESSED.value)
            return MessageState.PROCESSED
        finally:
            structlog.contextvars.unbind_contextvars(
                "topic", "partition", "offset", "order_id"
            )

    async def _process_with_retries(self, event: OrderCreatedEvent) -> None:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_backoff_s, max=30),
            retry=retry_if_not_exception_type(PERMANENT_ERRORS),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "order_event_retry", attempt=attempt.retry_state.attempt_number
                    )
                await self.service.process_order_created_event(event)

    async def _settle_failure(self, message, error: Exception) -> MessageState:
        permanent = isinstance(error, PERMANENT_ERRORS)
        redeliver = not self.commit_on_failure and not permanent
        kafka_events_consumed_total.labels(topic=message.topic, status="failed").inc()
        logger.error(
            "order_event_failed",
            state=MessageState.FAILED.value,
            error_type=type(error).__name__,
            error_message=str(error),
            redeliver=redeliver,
            exc_info=not permanent,
        )
        if redeliver:
            self.consumer_client.seek(message)
        else:
            await self.consumer_client.commit(message)
        return MessageState.FAILED
