"""
Prometheus metrics definitions for the marketplace services

This module centralizes all metric definitions to avoid duplicate
registration errors when modules are re-imported.
"""

from prometheus_client import Counter, Histogram, CollectorRegistry

registry = CollectorRegistry()

# =============================================================================
# HTTP API METRICS
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code group",
    ["method", "endpoint", "status_code"],
    registry=registry,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=registry,
)

# =============================================================================
# ORDER WORKFLOW METRICS
# =============================================================================

orders_created_total = Counter(
    "orders_created_total",
    "Orders persisted successfully",
    registry=registry,
)

order_creation_failures_total = Counter(
    "order_creation_failures_total",
    "Order creation attempts that were rejected or failed",
    ["reason"],
    registry=registry,
)

product_lookups_total = Counter(
    "product_lookups_total",
    "Calls to the product catalog by outcome",
    ["outcome"],  # success, not_found, upstream_error, unavailable
    registry=registry,
)

product_lookup_duration_seconds = Histogram(
    "product_lookup_duration_seconds",
    "Product catalog call latency in seconds",
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=registry,
)

# =============================================================================
# KAFKA METRICS
# =============================================================================

kafka_events_published_total = Counter(
    "kafka_events_published_total",
    "Total events published to Kafka",
    ["topic", "status"],
    registry=registry,
)

kafka_publish_duration_seconds = Histogram(
    "kafka_publish_duration_seconds",
    "Time from send until broker acknowledgement",
    ["topic"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0, 30.0, 120.0),
    registry=registry,
)

kafka_events_consumed_total = Counter(
    "kafka_events_consumed_total",
    "Total events consumed from Kafka",
    ["topic", "status"],  # processed, failed, duplicate, poison
    registry=registry,
)
