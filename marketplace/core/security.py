"""
Bearer token verification and caller identity

Tokens are issued by the identity provider. They are verified and their claims
are read exactly once, here, producing a Principal that is passed explicitly to
the order workflow and every downstream call.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated, Any, Iterable

import jwt
import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from marketplace.core.config import settings
from marketplace.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    MissingTokenError,
    TokenExpiredError,
    TokenMalformedError,
    TokenSignatureError,
)
from marketplace.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Principal:
    """Authenticated caller: token subject, resource roles and the raw token"""

    subject: str
    roles: frozenset[str] = frozenset()
    token: str = field(default="", repr=False)

    def has_any_role(self, roles: Iterable[str]) -> bool:
        return not self.roles.isdisjoint(roles)


def extract_resource_roles(claims: dict[str, Any], resource_id: str) -> frozenset[str]:
    """Read roles from resource_access.<resource_id>.roles, ignoring blank entries"""
    resource_access = claims.get("resource_access")
    if not isinstance(resource_access, dict):
        return frozenset()

    resource = resource_access.get(resource_id)
    if not isinstance(resource, dict):
        return frozenset()

    roles = resource.get("roles")
    if not isinstance(roles, list):
        return frozenset()

    return frozenset(role for role in roles if isinstance(role, str) and role.strip())


class TokenVerifier:
    """Verifies JWTs with a static key or with keys fetched from a JWKS endpoint"""

    def __init__(
        self,
        key: str | None = None,
        algorithms: list[str] | None = None,
        jwks_url: str | None = None,
        issuer: str | None = None,
        audience: str | None = None,
        resource_id: str = "marketplace-client",
        leeway: int = 0,
    ):
        self.key = key
        self.algorithms = algorithms or ["RS256"]
        self.issuer = issuer
        self.audience = audience
        self.resource_id = resource_id
        self.leeway = leeway
        self._jwks_client = jwt.PyJWKClient(jwks_url) if jwks_url else None

    def _signing_key(self, token: str) -> Any:
        if self._jwks_client is not None:
            return self._jwks_client.get_signing_key_from_jwt(token).key
        if self.key:
            return self.key
        logger.error("token_verification_not_configured")
        raise AuthenticationError("Token verification is not configured")

    def verify(self, token: str) -> Principal:
        """
        Verify a bearer token and build the caller's Principal.

        Raises:
            MissingTokenError: token is empty
            TokenExpiredError: exp claim is in the past
            TokenSignatureError: signature does not match the signing key
            TokenMalformedError: token cannot be decoded
            AuthenticationError: any other verification failure
        """
        if not token or not token.strip():
            raise MissingTokenError()

        try:
            claims = jwt.decode(
                token,
                self._signing_key(token),
                algorithms=self.algorithms,
                issuer=self.issuer,
                audience=self.audience,
                leeway=self.leeway,
                options={
                    "require": ["exp", "sub"],
                    "verify_aud": self.audience is not None,
                },
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError(expired_at=_unverified_expiry(token))
        except jwt.InvalidSignatureError:
            raise TokenSignatureError()
        except jwt.DecodeError:
            raise TokenMalformedError()
        except jwt.PyJWKClientError as e:
            logger.error("jwks_key_lookup_failed", error_message=str(e))
            raise AuthenticationError("Unable to resolve the token signing key") from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Authentication error: {e}") from e

        return Principal(
            subject=str(claims["sub"]),
            roles=extract_resource_roles(claims, self.resource_id),
            token=token,
        )


def _unverified_expiry(token: str) -> str | None:
    try:
        exp = jwt.decode(token, options={"verify_signature": False}).get("exp")
    except jwt.PyJWTError:
        return None
    if not isinstance(exp, (int, float)):
        return None
    return datetime.fromtimestamp(exp, timezone.utc).isoformat()


def require_roles(principal: Principal, *roles: str) -> None:
    """Reject the caller unless it holds at least one of the given roles"""
    if not principal.has_any_role(roles):
        logger.warning(
            "access_denied",
            subject=principal.subject,
            required_roles=sorted(roles),
            granted_roles=sorted(principal.roles),
        )
        raise AuthorizationError(required_roles=frozenset(roles))


token_verifier = TokenVerifier(
    key=settings.JWT_VERIFICATION_KEY,
    algorithms=settings.JWT_ALGORITHMS,
    jwks_url=settings.JWT_JWKS_URL,
    issuer=settings.JWT_ISSUER,
    audience=settings.JWT_AUDIENCE,
    resource_id=settings.JWT_RESOURCE_ID,
    leeway=settings.JWT_LEEWAY_SECONDS,
)

bearer_scheme = HTTPBearer(auto_error=False)


def get_token_verifier() -> TokenVerifier:
    return token_verifier


def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
) -> Principal:
    if credentials is None:
        raise MissingTokenError()

    principal = verifier.verify(credentials.credentials)
    structlog.contextvars.bind_contextvars(subject=principal.subject)
    return principal
