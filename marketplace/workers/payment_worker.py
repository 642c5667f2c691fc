"""
Payment worker - separate process that consumes order-created events
Runs as its own deployment in the payment-service consumer group

Every partition is handled by one consumer at a time, so events for a given
order arrive in the order they were published.
"""

import asyncio
import signal
import sys

from prometheus_client import start_http_server

from marketplace.consumers import OrderEventConsumer
from marketplace.core.config import settings
from marketplace.core.kafka import KafkaConsumerClient
from marketplace.core.logging import configure_logging, get_logger
from marketplace.core.metrics import registry
from marketplace.core.redis import redis_client
from marketplace.services.payment_service import PaymentProcessingService

configure_logging()
logger = get_logger(__name__)


async def run_payment_worker(shutdown: asyncio.Event) -> None:
    """Consume until the shutdown event is set, then stop cleanly"""
    consumer_client = KafkaConsumerClient(
        [settings.KAFKA_TOPIC_ORDER_CREATED], settings.KAFKA_CONSUMER_GROUP_ID
    )
    await redis_client.connect()
    await consumer_client.start()

    consumer = OrderEventConsumer(consumer_client, redis_client, PaymentProcessingService())
    consumer_task = asyncio.create_task(consumer.run(), name="payment-consumer")
    shutdown_task = asyncio.create_task(shutdown.wait(), name="shutdown-wait")

    try:
        done, _ = await asyncio.wait(
            {consumer_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if consumer_task in done:
            # The loop only ends on its own if something broke
            consumer_task.result()
    except asyncio.CancelledError:
        logger.info("payment_worker_cancelled")
        raise
    finally:
        for task in (consumer_task, shutdown_task):
            if not task.done():
                task.cancel()
        await asyncio.gather(consumer_task, shutdown_task, return_exceptions=True)
        await consumer_client.stop()
        await redis_client.disconnect()
        logger.info("payment_worker_stopped")


async def main():
    """Entry point for the payment worker"""
    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.set)

    logger.info(
        "payment_worker_starting",
        service=settings.SERVICE_NAME,
        environment=settings.ENVIRONMENT,
        topic=settings.KAFKA_TOPIC_ORDER_CREATED,
        group_id=settings.KAFKA_CONSUMER_GROUP_ID,
    )

    if settings.ENABLE_METRICS:
        start_http_server(settings.METRICS_PORT, registry=registry)
        logger.info("metrics_server_started", port=settings.METRICS_PORT)

    try:
        await run_payment_worker(shutdown)
    except Exception as e:
        logger.error(
            "payment_worker_fatal_error",
            error_type=type(e).__name__,
            error_message=str(e),
            exc_info=True,
        )
        sys.exit(1)
    logger.info("payment_worker_shutdown_complete")


if __name__ == "__main__":
    asyncio.run(main())
