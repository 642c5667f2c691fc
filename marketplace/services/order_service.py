"""
Order workflow - validates, prices and persists orders, then announces them

Creation flow:
1. Reject an empty item list before any I/O
2. Require the caller's bearer token (forwarded to the product catalog)
3. Resolve each item in submission order, snapshotting name and price
4. Persist order and items in one transaction with status PENDING
5. After commit, publish OrderCreatedEvent; publish failures are logged and
   never undo the order

There is no idempotency key: a retried request creates a second order.
"""

import uuid
from collections.abc import Sequence
from decimal import Decimal

from sqlmodel import Session

from marketplace.clients.product_client import ProductClient
from marketplace.core.config import settings
from marketplace.core.exceptions import (
    AuthenticationError,
    EventPublishError,
    EventSerializationError,
    InvalidProductPriceError,
    MarketplaceError,
    OrderNotFoundError,
    OrderTotalError,
    OrderValidationError,
    ProductNotFoundError,
    ProductUnavailableError,
)
from marketplace.core.logging import get_logger
from marketplace.core.metrics import order_creation_failures_total, orders_created_total
from marketplace.core.security import Principal
from marketplace.events import OrderCreatedEvent
from marketplace.models import Order, OrderItem, OrderItemCreate, OrderStatus, quantize_money
from marketplace.repositories import OrderRepository
from marketplace.services.event_publisher import OrderEventPublisher

logger = get_logger(__name__)


class OrderService:
    """Order creation and lookup on behalf of an authenticated caller"""

    def __init__(
        self,
        session: Session,
        product_client: ProductClient,
        publisher: OrderEventPublisher,
    ):
        self.session = session
        self.product_client = product_client
        self.publisher = publisher

    async def create_order(
        self, principal: Principal | None, items: Sequence[OrderItemCreate]
    ) -> Order:
        """
        Create a PENDING order for the caller.

        Args:
            principal: Authenticated caller; its token authorizes product lookups
            items: (productId, quantity) pairs, at least one

        Returns:
            The persisted order with its items

        Raises:
            OrderValidationError: empty item list
            AuthenticationError: missing principal or token
            ProductUnavailableError: a product does not exist
            InvalidProductPriceError: a product has no positive price
            OrderTotalError: the computed total is not positive
            ProductServiceError: product catalog failed or is unreachable
        """
        if not items:
            order_creation_failures_total.labels(reason="validation").inc()
            raise OrderValidationError("Order must contain at least one item")

        if principal is None or not principal.token or not principal.token.strip():
            order_creation_failures_total.labels(reason="authentication").inc()
            raise AuthenticationError("Authentication token is missing or invalid")

        logger.info(
            "order_creation_started",
            buyer_id=principal.subject,
            items_count=len(items),
        )

        order = Order(buyer_id=principal.subject, status=OrderStatus.PENDING.value)
        try:
            total = await self._price_items(order, items, principal.token)
        except MarketplaceError as e:
            order_creation_failures_total.labels(reason=type(e).__name__).inc()
            logger.warning(
                "order_creation_failed",
                buyer_id=principal.subject,
                error_type=type(e).__name__,
                error_message=e.message,
            )
            raise

        if total <= 0:
            order_creation_failures_total.labels(reason="non_positive_total").inc()
            raise OrderTotalError()

        order.total_amount = total
        OrderRepository.add(self.session, order)
        orders_created_total.inc()

        logger.info(
            "order_created",
            order_id=str(order.id),
            buyer_id=order.buyer_id,
            status=order.status,
            total_amount=str(order.total_amount),
            items_count=len(order.items),
        )

        self._announce(order)
        return order

    async def _price_items(
        self, order: Order, items: Sequence[OrderItemCreate], token: str
    ) -> Decimal:
        total = Decimal("0")
        for item in items:
            try:
                response = await self.product_client.get_product(item.product_id, token)
            except ProductNotFoundError:
                logger.error(
                    "order_product_not_found", product_id=str(item.product_id)
                )
                raise ProductUnavailableError(item.product_id)

            product = response.data
            price = quantize_money(product.price) if product.price is not None else None
            if price is None or price <= 0:
                raise InvalidProductPriceError(item.product_id, product.name)

            subtotal = price * item.quantity
            order.add_item(
                OrderItem(
                    product_name=product.name,
                    product_price=price,
                    quantity=item.quantity,
                    total_price=subtotal,
                )
            )
            total += subtotal

            logger.debug(
                "order_item_added",
                product_name=product.name,
                price=str(price),
                quantity=item.quantity,
                subtotal=str(subtotal),
            )
        return total

    def _announce(self, order: Order) -> None:
        """Hand the event to the publisher; the order stands whatever happens here"""
        try:
            event = OrderCreatedEvent.from_order(order)
            self.publisher.publish(event)
        except (EventSerializationError, EventPublishError) as e:
            logger.error(
                "order_event_not_published",
                order_id=str(order.id),
                error_type=type(e).__name__,
                error_message=e.message,
            )

    def list_my_orders(self, principal: Principal) -> Sequence[Order]:
        orders = OrderRepository.list_for_buyer(self.session, principal.subject)
        logger.info("orders_list_retrieved", buyer_id=principal.subject, count=len(orders))
        return orders

    def list_all_orders(self) -> Sequence[Order]:
        orders = OrderRepository.list_all(self.session)
        logger.info("orders_list_retrieved", scope="all", count=len(orders))
        return orders

    def get_order(self, principal: Principal, order_id: uuid.UUID) -> Order:
        """Admins may read any order; everyone else only their own"""
        if principal.has_any_role([settings.ADMIN_ROLE]):
            order = OrderRepository.get(self.session, order_id)
        else:
            order = OrderRepository.get_for_buyer(self.session, order_id, principal.subject)

        if order is None:
            raise OrderNotFoundError(
                f"Order not found for user: {principal.subject} with order ID: {order_id}"
            )
        return order
