import unittest
import uuid
from decimal import Decimal

from helpers import (
    ADMIN_ROLE,
    BUYER_ROLE,
    FakeProductClient,
    FakePublisher,
    create_test_engine,
    product,
)
from sqlmodel import Session, func, select

from marketplace.core.exceptions import (
    AuthenticationError,
    EventPublishError,
    InvalidProductPriceError,
    OrderNotFoundError,
    OrderValidationError,
    ProductServiceUnavailableError,
    ProductUnavailableError,
)
from marketplace.core.security import Principal
from marketplace.models import Order, OrderItem, OrderItemCreate
from marketplace.repositories import OrderRepository
from marketplace.services.order_service import OrderService

P1 = uuid.UUID("11111111-1111-1111-1111-111111111111")
P2 = uuid.UUID("22222222-2222-2222-2222-222222222222")


def buyer(subject: str = "buyer-1", token: str = "token-abc") -> Principal:
    return Principal(subject=subject, roles=frozenset({BUYER_ROLE}), token=token)


class OrderServiceTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.engine = create_test_engine()
        self.session = Session(self.engine)
        self.products = FakeProductClient(
            {P1: product("Laptop", "299.99"), P2: product("Mouse", "15.50")}
        )
        self.publisher = FakePublisher()
        self.service = OrderService(self.session, self.products, self.publisher)

    def tearDown(self) -> None:
        self.session.close()

    def order_count(self) -> int:
        with Session(self.engine) as session:
            return session.exec(select(func.count()).select_from(Order)).one()


class TestCreateOrder(OrderServiceTestCase):
    async def test_prices_items_from_catalog(self) -> None:
        order = await self.service.create_order(
            buyer(), [OrderItemCreate(product_id=P1, quantity=2)]
        )

        self.assertEqual(order.status, "PENDING")
        self.assertEqual(order.buyer_id, "buyer-1")
        self.assertEqual(order.total_amount, Decimal("599.98"))
        self.assertEqual(len(order.items), 1)
        item = order.items[0]
        self.assertEqual(item.product_name, "Laptop")
        self.assertEqual(item.product_price, Decimal("299.99"))
        self.assertEqual(item.quantity, 2)
        self.assertEqual(item.total_price, Decimal("599.98"))
        self.assertEqual(self.order_count(), 1)

    async def test_forwards_caller_token_to_catalog(self) -> None:
        await self.service.create_order(
            buyer(token="caller-token"), [OrderItemCreate(product_id=P1, quantity=1)]
        )
        self.assertEqual(self.products.calls, [(P1, "caller-token")])

    async def test_publishes_event_for_persisted_order(self) -> None:
        order = await self.service.create_order(
            buyer(), [OrderItemCreate(product_id=P1, quantity=1)]
        )
        self.assertEqual(len(self.publisher.events), 1)
        event = self.publisher.events[0]
        self.assertEqual(event.order_id, order.id)
        self.assertEqual(event.key, str(order.id))
        self.assertEqual(event.total_amount, Decimal("299.99"))

    async def test_missing_product_rejects_whole_order(self) -> None:
        missing = uuid.uuid4()
        with self.assertRaises(ProductUnavailableError) as ctx:
            await self.service.create_order(
                buyer(),
                [
                    OrderItemCreate(product_id=P1, quantity=1),
                    OrderItemCreate(product_id=missing, quantity=1),
                ],
            )

        self.assertIn(str(missing), ctx.exception.message)
        self.assertEqual(self.order_count(), 0)
        self.assertEqual(self.publisher.events, [])

    async def test_empty_items_rejected_before_any_lookup(self) -> None:
        with self.assertRaises(OrderValidationError):
            await self.service.create_order(buyer(), [])
        self.assertEqual(self.products.calls, [])

    async def test_missing_token_rejected_before_any_lookup(self) -> None:
        with self.assertRaises(AuthenticationError):
            await self.service.create_order(
                buyer(token="  "), [OrderItemCreate(product_id=P1, quantity=1)]
            )
        with self.assertRaises(AuthenticationError):
            await self.service.create_order(None, [OrderItemCreate(product_id=P1, quantity=1)])
        self.assertEqual(self.products.calls, [])

    async def test_catalog_timeout_propagates_and_nothing_is_stored(self) -> None:
        self.products.catalog[P2] = ProductServiceUnavailableError("timed out")
        with self.assertRaises(ProductServiceUnavailableError):
            await self.service.create_order(
                buyer(),
                [
                    OrderItemCreate(product_id=P1, quantity=1),
                    OrderItemCreate(product_id=P2, quantity=1),
                ],
            )
        self.assertEqual(self.order_count(), 0)

    async def test_non_positive_price_rejected(self) -> None:
        self.products.catalog[P2] = product("Freebie", "0")
        with self.assertRaises(InvalidProductPriceError) as ctx:
            await self.service.create_order(
                buyer(), [OrderItemCreate(product_id=P2, quantity=1)]
            )
        self.assertEqual(ctx.exception.message, "Invalid product price for product: Freebie")

        self.products.catalog[P2] = product("Unpriced", None)
        with self.assertRaises(InvalidProductPriceError):
            await self.service.create_order(
                buyer(), [OrderItemCreate(product_id=P2, quantity=1)]
            )
        self.assertEqual(self.order_count(), 0)

    async def test_sub_cent_price_is_rejected_after_rounding(self) -> None:
        self.products.catalog[P2] = product("Sticker", "0.004")
        with self.assertRaises(InvalidProductPriceError):
            await self.service.create_order(
                buyer(), [OrderItemCreate(product_id=P2, quantity=1)]
            )
        self.assertEqual(self.order_count(), 0)

    async def test_subtotal_uses_price_at_stored_scale(self) -> None:
        self.products.catalog[P2] = product("Cable", "10.005")
        order = await self.service.create_order(
            buyer(), [OrderItemCreate(product_id=P2, quantity=3)]
        )

        with Session(self.engine) as session:
            stored = OrderRepository.get(session, order.id)
            item = stored.items[0]
            self.assertEqual(item.product_price, Decimal("10.01"))
            self.assertEqual(item.total_price, Decimal("30.03"))
            self.assertEqual(item.total_price, item.product_price * item.quantity)
            self.assertEqual(stored.total_amount, Decimal("30.03"))

    async def test_duplicate_submissions_create_distinct_orders(self) -> None:
        items = [OrderItemCreate(product_id=P1, quantity=1)]
        first = await self.service.create_order(buyer(), items)
        second = await self.service.create_order(buyer(), items)

        self.assertNotEqual(first.id, second.id)
        self.assertEqual(self.order_count(), 2)

    async def test_publish_failure_keeps_order(self) -> None:
        self.service.publisher = FakePublisher(error=EventPublishError("broker down"))

        order = await self.service.create_order(
            buyer(), [OrderItemCreate(product_id=P1, quantity=1)]
        )

        self.assertEqual(order.status, "PENDING")
        self.assertEqual(self.order_count(), 1)

    async def test_items_keep_submission_order(self) -> None:
        order = await self.service.create_order(
            buyer(),
            [
                OrderItemCreate(product_id=P2, quantity=3),
                OrderItemCreate(product_id=P1, quantity=1),
            ],
        )

        with Session(self.engine) as session:
            stored = OrderRepository.get(session, order.id)
            self.assertEqual([i.product_name for i in stored.items], ["Mouse", "Laptop"])
            self.assertEqual(stored.total_amount, Decimal("346.49"))


class TestReadOrders(OrderServiceTestCase):
    async def asyncSetUp(self) -> None:
        self.mine = await self.service.create_order(
            buyer("buyer-1"), [OrderItemCreate(product_id=P1, quantity=1)]
        )
        self.theirs = await self.service.create_order(
            buyer("buyer-2"), [OrderItemCreate(product_id=P2, quantity=1)]
        )

    def test_buyer_lists_only_own_orders(self) -> None:
        orders = self.service.list_my_orders(buyer("buyer-1"))
        self.assertEqual([o.id for o in orders], [self.mine.id])

    def test_admin_lists_every_order(self) -> None:
        orders = self.service.list_all_orders()
        self.assertEqual({o.id for o in orders}, {self.mine.id, self.theirs.id})

    def test_buyer_cannot_read_someone_elses_order(self) -> None:
        with self.assertRaises(OrderNotFoundError) as ctx:
            self.service.get_order(buyer("buyer-1"), self.theirs.id)
        self.assertIn("buyer-1", ctx.exception.message)

    def test_admin_reads_any_order(self) -> None:
        admin = Principal(subject="admin-1", roles=frozenset({ADMIN_ROLE}), token="t")
        order = self.service.get_order(admin, self.theirs.id)
        self.assertEqual(order.buyer_id, "buyer-2")


class TestOrderSchema(unittest.TestCase):
    def test_items_are_deleted_with_their_order(self) -> None:
        (foreign_key,) = OrderItem.__table__.c.order_id.foreign_keys
        self.assertEqual(foreign_key.column.table.name, "orders")
        self.assertEqual(foreign_key.ondelete, "CASCADE")
