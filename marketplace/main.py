from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from marketplace.api.errors import register_exception_handlers
from marketplace.api.main import api_router
from marketplace.clients.product_client import product_client
from marketplace.core.config import settings
from marketplace.core.kafka import ensure_topic, kafka_producer, order_created_topic
from marketplace.core.logging import configure_logging, get_logger
from marketplace.core.metrics import registry
from marketplace.middleware.logging_middleware import LoggingMiddleware
from marketplace.middleware.metrics_middleware import MetricsMiddleware
from marketplace.services.event_publisher import order_event_publisher

# Must run before any logger is used
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    logger.info(
        "application_starting",
        service=settings.SERVICE_NAME,
        environment=settings.ENVIRONMENT,
    )

    try:
        await product_client.start()

        if settings.KAFKA_CREATE_TOPICS:
            try:
                await ensure_topic(order_created_topic())
            except Exception as e:
                # The topic may be managed outside this service
                logger.warning(
                    "kafka_topic_setup_failed",
                    topic=settings.KAFKA_TOPIC_ORDER_CREATED,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )

        await kafka_producer.start()
        logger.info("application_started", kafka_connected=True)
    except Exception as e:
        logger.error(
            "application_startup_failed",
            error_type=type(e).__name__,
            error_message=str(e),
            exc_info=True,
        )
        await product_client.stop()
        raise

    yield

    logger.info("application_shutting_down")

    try:
        await order_event_publisher.drain()
        await kafka_producer.stop()
        await product_client.stop()
        logger.info("application_shutdown_complete")
    except Exception as e:
        logger.error(
            "application_shutdown_error",
            error_type=type(e).__name__,
            error_message=str(e),
            exc_info=True,
        )


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)


# Execution order is the reverse of registration:
# LoggingMiddleware -> MetricsMiddleware -> route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(LoggingMiddleware)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_V1_STR)
