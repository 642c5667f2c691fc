"""
Typed error hierarchy shared by the order service and the payment worker

HTTP-facing errors carry the status code they map to; the exception handlers
in marketplace.api.errors render them into the response envelope.
"""

from typing import Any


class MarketplaceError(Exception):
    """Base class for all domain errors"""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# AUTHENTICATION / AUTHORIZATION


class AuthenticationError(MarketplaceError):
    """Missing, invalid or expired credential (401)"""

    status_code = 401
    error = "AUTHENTICATION_FAILED"
    error_code = "AUTH_000"
    suggestion = "Verify that your token is valid and has not expired"

    @property
    def details(self) -> Any:
        return type(self).__name__


class MissingTokenError(AuthenticationError):
    error = "MISSING_TOKEN"
    error_code = "AUTH_001"
    suggestion = "Include a valid JWT in the Authorization header using the format 'Bearer <token>'"

    def __init__(self, message: str = "Authentication token is required"):
        super().__init__(message)

    @property
    def details(self) -> Any:
        return None


class TokenExpiredError(AuthenticationError):
    error = "TOKEN_EXPIRED"
    error_code = "AUTH_002"
    suggestion = "Obtain a new access token using your refresh token or authenticate again"

    def __init__(self, message: str = "The JWT has expired", expired_at: str | None = None):
        super().__init__(message)
        self.expired_at = expired_at

    @property
    def details(self) -> Any:
        if self.expired_at:
            return f"Token expired at: {self.expired_at}"
        return "Token has expired"


class TokenMalformedError(AuthenticationError):
    error = "TOKEN_MALFORMED"
    error_code = "AUTH_003"
    suggestion = "Check that the token is correctly encoded and has not been modified"

    def __init__(self, message: str = "The JWT is malformed or invalid"):
        super().__init__(message)

    @property
    def details(self) -> Any:
        return "The token is not a valid JWT"


class TokenSignatureError(AuthenticationError):
    error = "TOKEN_SIGNATURE_INVALID"
    error_code = "AUTH_004"
    suggestion = "The token may have been modified or was not issued by the expected identity provider"

    def __init__(self, message: str = "The JWT signature is not valid"):
        super().__init__(message)

    @property
    def details(self) -> Any:
        return "Token signature verification failed"


class AuthorizationError(MarketplaceError):
    """Authenticated caller lacks every required role (403)"""

    status_code = 403
    error = "ACCESS_DENIED"
    error_code = "AUTH_403"
    suggestion = "Contact the system administrator to obtain the required permissions"

    def __init__(
        self,
        message: str = "Access denied: you do not have permission to access this resource",
        required_roles: frozenset[str] = frozenset(),
    ):
        super().__init__(message)
        self.required_roles = required_roles

    @property
    def details(self) -> Any:
        return "The user is authenticated but lacks the required roles"


# ORDER WORKFLOW


class OrderError(MarketplaceError):
    """Order could not be created from the submitted data (400)"""

    status_code = 400


class OrderValidationError(OrderError):
    pass


class InvalidProductPriceError(OrderError):
    def __init__(self, product_id: Any, product_name: str | None):
        super().__init__(f"Invalid product price for product: {product_name}")
        self.product_id = product_id


class OrderTotalError(OrderError):
    def __init__(self, message: str = "Order total must be greater than zero"):
        super().__init__(message)


class NotFoundError(MarketplaceError):
    status_code = 404


class ProductUnavailableError(NotFoundError):
    def __init__(self, product_id: Any):
        super().__init__(f"Product with ID {product_id} is not available")
        self.product_id = product_id


class OrderNotFoundError(NotFoundError):
    pass


# PRODUCT SERVICE (outbound)


class ProductNotFoundError(MarketplaceError):
    """Product catalog has no product with this id"""

    status_code = 404

    def __init__(self, product_id: Any):
        super().__init__(f"Product not found with ID: {product_id}")
        self.product_id = product_id


class ProductServiceError(MarketplaceError):
    """Product catalog answered with an unexpected status or body (503)"""

    status_code = 503

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.upstream_status = status_code


class ProductServiceUnavailableError(ProductServiceError):
    """Product catalog unreachable or timed out; safe to retry"""

    def __init__(self, message: str = "Unable to connect to product service"):
        super().__init__(message)


# EVENTS


class EventSerializationError(MarketplaceError):
    pass


class EventPublishError(MarketplaceError):
    pass


class EventDeserializationError(MarketplaceError):
    pass


class PaymentInitiationNotImplementedError(MarketplaceError):
    pass
