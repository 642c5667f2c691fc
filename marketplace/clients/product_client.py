"""
Product catalog API client

Resolves a product id to its current name and price on behalf of the order
workflow, forwarding the caller's bearer token. No retries happen here; the
caller decides what to do with each failure type.
"""

import time
import uuid

import httpx
from pydantic import ValidationError

from marketplace.core.config import settings
from marketplace.core.exceptions import (
    AuthenticationError,
    ProductNotFoundError,
    ProductServiceError,
    ProductServiceUnavailableError,
)
from marketplace.core.logging import get_logger
from marketplace.core.metrics import product_lookup_duration_seconds, product_lookups_total
from marketplace.models import ApiResponse, ProductData

logger = get_logger(__name__)


class ProductClient:
    """Async client for GET /api/products/{productId}"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.PRODUCT_SERVICE_URL
        self.timeout = timeout if timeout is not None else settings.PRODUCT_SERVICE_TIMEOUT_SECONDS
        self._transport = transport
        self.client: httpx.AsyncClient | None = None

    async def start(self):
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        )
        logger.info("product_client_started", base_url=self.base_url, timeout_s=self.timeout)

    async def stop(self):
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.info("product_client_stopped")

    async def get_product(
        self, product_id: uuid.UUID | None, token: str | None
    ) -> ApiResponse[ProductData]:
        """
        Fetch a product from the catalog.

        Args:
            product_id: Product to resolve (required)
            token: Caller's bearer token, forwarded as-is (required)

        Returns:
            Success envelope whose data holds the product

        Raises:
            ProductNotFoundError: catalog answered 404 or an unsuccessful envelope
            ProductServiceError: any other non-2xx status or an unreadable body
            ProductServiceUnavailableError: timeout or connection failure
            AuthenticationError: token is missing
        """
        if product_id is None:
            raise ProductNotFoundError("null")

        if not token or not token.strip():
            raise AuthenticationError(
                "Authentication token is required to fetch product information"
            )

        if self.client is None:
            raise RuntimeError("Product client not started")

        logger.debug("product_lookup_started", product_id=str(product_id))
        start_time = time.time()
        try:
            response = await self.client.get(
                f"/api/products/{product_id}",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as e:
            product_lookups_total.labels(outcome="unavailable").inc()
            logger.error(
                "product_lookup_timeout",
                product_id=str(product_id),
                timeout_s=self.timeout,
                error_type=type(e).__name__,
            )
            raise ProductServiceUnavailableError("Product service did not respond in time") from e
        except httpx.TransportError as e:
            product_lookups_total.labels(outcome="unavailable").inc()
            logger.error(
                "product_lookup_network_error",
                product_id=str(product_id),
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise ProductServiceUnavailableError() from e
        finally:
            product_lookup_duration_seconds.observe(time.time() - start_time)

        if response.status_code == httpx.codes.NOT_FOUND:
            product_lookups_total.labels(outcome="not_found").inc()
            logger.warning("product_not_found", product_id=str(product_id))
            raise ProductNotFoundError(product_id)

        if not response.is_success:
            product_lookups_total.labels(outcome="upstream_error").inc()
            logger.error(
                "product_service_error",
                product_id=str(product_id),
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise ProductServiceError(
                f"Product service error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            envelope = ApiResponse[ProductData].model_validate_json(response.content)
        except ValidationError as e:
            product_lookups_total.labels(outcome="upstream_error").inc()
            logger.error(
                "product_response_invalid",
                product_id=str(product_id),
                error_message=str(e),
            )
            raise ProductServiceError(
                "Product service returned an unreadable response",
                status_code=response.status_code,
            ) from e

        if not envelope.success or envelope.data is None:
            product_lookups_total.labels(outcome="not_found").inc()
            logger.warning(
                "product_lookup_unsuccessful",
                product_id=str(product_id),
                upstream_message=envelope.message,
            )
            raise ProductNotFoundError(product_id)

        product_lookups_total.labels(outcome="success").inc()
        logger.debug(
            "product_lookup_succeeded",
            product_id=str(product_id),
            name=envelope.data.name,
            price=str(envelope.data.price),
        )
        return envelope


# Global instance
product_client = ProductClient()
