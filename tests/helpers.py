import os
import time
import uuid
from decimal import Decimal

os.environ.setdefault("POSTGRES_SERVER", "localhost")
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("POSTGRES_DB", "test")

import jwt  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel, create_engine  # noqa: E402

from marketplace.core.exceptions import ProductNotFoundError  # noqa: E402
from marketplace.core.security import TokenVerifier  # noqa: E402
from marketplace.models import ApiResponse, ProductData  # noqa: E402

SECRET = "unit-test-signing-secret-0123456789abcdef"
BUYER_ROLE = "buyer_client_role"
ADMIN_ROLE = "admin_client_role"


def create_test_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


def make_token(
    subject: str = "buyer-1",
    roles: tuple[str, ...] = (BUYER_ROLE,),
    expires_in: int = 300,
    secret: str = SECRET,
    **claims,
) -> str:
    payload = {
        "sub": subject,
        "exp": int(time.time()) + expires_in,
        "resource_access": {"marketplace-client": {"roles": list(roles)}},
        **claims,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def make_verifier() -> TokenVerifier:
    return TokenVerifier(key=SECRET, algorithms=["HS256"])


def product(name: str, price: str | None) -> ApiResponse[ProductData]:
    return ApiResponse[ProductData](
        success=True,
        message="Product retrieved successfully",
        data=ProductData(
            id=uuid.uuid4(),
            name=name,
            price=Decimal(price) if price is not None else None,
        ),
    )


class FakeProductClient:
    """Catalog double: maps product ids to a response or an exception"""

    def __init__(self, catalog: dict | None = None):
        self.catalog = catalog or {}
        self.calls: list[tuple[uuid.UUID, str]] = []

    async def get_product(self, product_id, token):
        self.calls.append((product_id, token))
        outcome = self.catalog.get(product_id)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            raise ProductNotFoundError(product_id)
        return outcome


class FakePublisher:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.events = []

    def publish(self, event):
        if self.error is not None:
            raise self.error
        self.events.append(event)
