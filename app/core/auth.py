"""
Authorization gate for the sync endpoints.

Sync endpoints are expensive (they fan out to paid APIs and scrapers), so
only two kinds of callers are allowed:

1. The cron scheduler, presenting ``x-webhook-secret`` equal to
   STATS_WEBHOOK_SECRET
2. Interactive admins, presenting ``Authorization: Bearer <token>`` that the
   identity provider accepts and whose user id holds the ``admin`` role

A webhook header, when present, is decisive: a wrong secret is rejected even
if a valid bearer token is also attached.
"""
import hmac
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Mapping, Optional

import httpx
from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import ConfigurationError, SourceError, UnauthorizedError
from app.core.logging import get_logger
from app.repositories.athlete_repository import AthleteRepository
from app.services.core.base_api_adapter import BaseSourceAdapter
from app.services.core.circuit_breaker import CircuitBreakerError, identity_breaker

logger = get_logger(__name__)

WEBHOOK_HEADER = "x-webhook-secret"
AUTHORIZATION_HEADER = "authorization"
ADMIN_ROLE = "admin"
PLACEHOLDER_TOKENS = {"fake", "test"}

# Accepted reasons
REASON_WEBHOOK = "webhook_secret"
REASON_ADMIN = "admin_user"
REASON_SCHEDULER = "scheduler"


@dataclass
class AuthResult:
    authorized: bool
    reason: str
    user_id: Optional[str] = None


class IdentityClient(BaseSourceAdapter):
    """Validates bearer tokens against the identity provider's /auth/v1/user."""

    source_name = "identity"
    config_key_name = "AUTH_PROVIDER_URL"

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            api_key=service_key if service_key is not None else settings.AUTH_SERVICE_KEY,
            base_url=base_url if base_url is not None else settings.AUTH_PROVIDER_URL,
            timeout=10.0,
            client=client,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    def _default_headers(self) -> Dict[str, str]:
        return {"apikey": self.api_key or ""}

    @identity_breaker
    async def _guarded_user(self, token: str) -> Any:
        return await self._request_json(
            "/auth/v1/user", headers={"Authorization": f"Bearer {token}"}
        )

    async def get_user(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Resolve a bearer token to the provider's user record.

        Returns:
            User dict (with ``id``), or None if the provider rejects the token

        Raises:
            SourceError: If the provider is unreachable or misconfigured
        """
        self.require_configured()
        try:
            user = await self._guarded_user(token)
        except CircuitBreakerError as e:
            raise SourceError("identity provider unavailable (circuit open)") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code < 500:
                return None
            raise SourceError(f"identity provider error: {e}") from e
        except httpx.HTTPError as e:
            raise SourceError(f"identity provider unreachable: {e}") from e

        if not isinstance(user, dict) or not user.get("id"):
            return None
        return user


def _lower_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    return {k.lower(): v for k, v in headers.items()}


def require_webhook_secret(headers: Mapping[str, str]) -> AuthResult:
    """
    Check the scheduler secret only (webhook-only endpoints).

    Uses a constant-time comparison.
    """
    provided = _lower_headers(headers).get(WEBHOOK_HEADER)
    expected = settings.STATS_WEBHOOK_SECRET

    if not provided:
        return AuthResult(False, "missing authentication")
    if not expected:
        return AuthResult(False, "STATS_WEBHOOK_SECRET not configured")
    if hmac.compare_digest(provided.encode(), expected.encode()):
        return AuthResult(True, REASON_WEBHOOK)
    return AuthResult(False, "Invalid webhook secret")


async def validate_auth(
    headers: Mapping[str, str],
    db: Session,
    identity_client: Optional[IdentityClient] = None,
) -> AuthResult:
    """
    Decide whether a sync request may run.

    Args:
        headers: Request headers (any case)
        db: Database session for the admin-role lookup
        identity_client: Token validator (a default one is created if None)

    Returns:
        AuthResult with reason 'webhook_secret' or 'admin_user' when authorized
    """
    lowered = _lower_headers(headers)

    if lowered.get(WEBHOOK_HEADER):
        return require_webhook_secret(lowered)

    auth_header = lowered.get(AUTHORIZATION_HEADER) or ""
    if not auth_header.startswith("Bearer "):
        return AuthResult(False, "missing authentication")

    token = auth_header[len("Bearer "):].strip()
    if len(token) < settings.MIN_BEARER_TOKEN_LENGTH or token in PLACEHOLDER_TOKENS:
        return AuthResult(False, "Invalid token format")

    owns_client = identity_client is None
    identity_client = identity_client or IdentityClient()
    try:
        user = await identity_client.get_user(token)
    except (SourceError, ConfigurationError) as e:
        logger.error(f"Auth validation error: {e}")
        return AuthResult(False, "Auth validation error")
    finally:
        if owns_client:
            await identity_client.close()

    if user is None:
        return AuthResult(False, "Invalid or expired token")

    user_id = str(user["id"])
    try:
        is_admin = AthleteRepository(db).has_role(user_id, ADMIN_ROLE)
    except SQLAlchemyError as e:
        logger.error(f"Role check failed: {e}")
        db.rollback()
        return AuthResult(False, "Role check failed")

    if not is_admin:
        logger.info(f"User {user_id} is not an admin")
        return AuthResult(False, "User is not an admin", user_id=user_id)
    return AuthResult(True, REASON_ADMIN, user_id=user_id)


# ============================================================================
# FASTAPI DEPENDENCIES
# ============================================================================

async def get_identity_client() -> AsyncIterator[IdentityClient]:
    """Per-request identity client (the HTTP client is only opened if used)."""
    client = IdentityClient()
    try:
        yield client
    finally:
        await client.close()


async def get_auth_result(
    request: Request,
    db: Session = Depends(get_db),
    identity_client: IdentityClient = Depends(get_identity_client),
) -> AuthResult:
    """
    Dependency guarding the sync endpoints.

    Raises:
        UnauthorizedError: Rendered as 401 {"error": "Unauthorized", "reason": ...}
    """
    result = await validate_auth(request.headers, db, identity_client)
    if not result.authorized:
        logger.warning(
            f"Rejected {request.method} {request.url.path}: {result.reason}",
            extra={"reason": result.reason, "user_id": result.user_id},
        )
        raise UnauthorizedError(result.reason, user_id=result.user_id)
    return result


async def get_webhook_auth(request: Request) -> AuthResult:
    """Dependency for webhook-only endpoints (no bearer fallback)."""
    result = require_webhook_secret(request.headers)
    if not result.authorized:
        logger.warning(f"Rejected {request.method} {request.url.path}: {result.reason}")
        raise UnauthorizedError(result.reason)
    return result

