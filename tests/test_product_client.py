import unittest
import uuid
from decimal import Decimal

import helpers  # noqa: F401  sets required environment
import httpx

from marketplace.clients.product_client import ProductClient
from marketplace.core.exceptions import (
    AuthenticationError,
    ProductNotFoundError,
    ProductServiceError,
    ProductServiceUnavailableError,
)

PRODUCT_ID = uuid.UUID("3f2b9a52-8c1d-4e7f-a1b2-c3d4e5f60718")


def product_body(**overrides) -> dict:
    body = {
        "success": True,
        "message": "Product retrieved successfully",
        "data": {
            "id": str(PRODUCT_ID),
            "name": "Laptop",
            "description": "14 inch",
            "price": 299.99,
            "imageUrl": None,
            "category": "electronics",
            "sellerId": "seller-1",
        },
    }
    body.update(overrides)
    return body


class TestProductClient(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler = lambda request: httpx.Response(200, json=product_body())

        def dispatch(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.handler(request)

        self.client = ProductClient(
            base_url="http://catalog.test", transport=httpx.MockTransport(dispatch)
        )
        await self.client.start()

    async def asyncTearDown(self) -> None:
        await self.client.stop()

    async def test_returns_product_and_forwards_token(self) -> None:
        response = await self.client.get_product(PRODUCT_ID, "abc.def.ghi")

        self.assertTrue(response.success)
        self.assertEqual(response.data.name, "Laptop")
        self.assertEqual(response.data.price, Decimal("299.99"))
        self.assertEqual(len(self.requests), 1)
        self.assertEqual(self.requests[0].url.path, f"/api/products/{PRODUCT_ID}")
        self.assertEqual(self.requests[0].headers["Authorization"], "Bearer abc.def.ghi")

    async def test_not_found_status(self) -> None:
        self.handler = lambda request: httpx.Response(404)
        with self.assertRaises(ProductNotFoundError):
            await self.client.get_product(PRODUCT_ID, "t")

    async def test_unsuccessful_envelope_is_not_found(self) -> None:
        self.handler = lambda request: httpx.Response(
            200, json=product_body(success=False, data=None)
        )
        with self.assertRaises(ProductNotFoundError):
            await self.client.get_product(PRODUCT_ID, "t")

    async def test_upstream_error_keeps_status(self) -> None:
        self.handler = lambda request: httpx.Response(502, text="bad gateway")
        with self.assertRaises(ProductServiceError) as ctx:
            await self.client.get_product(PRODUCT_ID, "t")
        self.assertEqual(ctx.exception.upstream_status, 502)
        self.assertNotIsInstance(ctx.exception, ProductServiceUnavailableError)

    async def test_unreadable_body(self) -> None:
        self.handler = lambda request: httpx.Response(200, text="<html>")
        with self.assertRaises(ProductServiceError):
            await self.client.get_product(PRODUCT_ID, "t")

    async def test_timeout_is_unavailable(self) -> None:
        def timeout(request):
            raise httpx.ReadTimeout("timed out", request=request)

        self.handler = timeout
        with self.assertRaises(ProductServiceUnavailableError):
            await self.client.get_product(PRODUCT_ID, "t")

    async def test_connection_failure_is_unavailable(self) -> None:
        def refused(request):
            raise httpx.ConnectError("connection refused", request=request)

        self.handler = refused
        with self.assertRaises(ProductServiceUnavailableError):
            await self.client.get_product(PRODUCT_ID, "t")

    async def test_missing_arguments_fail_without_request(self) -> None:
        with self.assertRaises(ProductNotFoundError):
            await self.client.get_product(None, "t")
        with self.assertRaises(AuthenticationError):
            await self.client.get_product(PRODUCT_ID, "")
        self.assertEqual(self.requests, [])
