# src/interfaces/api/security.py
"""API security: credential resolution, request signatures and rate limiting."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.config import settings
from src.core.auth import CredentialResolver, ResolvedIdentity, verify_signature
from src.core.errors import Unauthorized
from src.core.store import get_repository

SCOPE_EVENTS = "relay:events"
SCOPE_CONFIG = "relay:config"

relay_key_header = APIKeyHeader(name="x-commandless-key", auto_error=False)
api_key_header = APIKeyHeader(name="x-api-key", auto_error=False)


def _rate_limit_key(request: Request) -> str:
    """Key requests by presented API key, falling back to the client address."""
    key = request.headers.get("x-commandless-key") or request.headers.get("x-api-key")
    return f"key:{key}" if key else get_remote_address(request)


limiter = Limiter(key_func=_rate_limit_key)

_resolver: CredentialResolver | None = None


def get_resolver() -> CredentialResolver:
    """Get the singleton CredentialResolver backed by the repository."""
    global _resolver
    if _resolver is None:
        _resolver = CredentialResolver(get_repository(), settings.relay_legacy_keys)
    return _resolver


def reset_resolver() -> None:
    """Drop the singleton (for testing)."""
    global _resolver
    _resolver = None


def resolve_identity(
    relay_key: Annotated[str | None, Depends(relay_key_header)],
    api_key: Annotated[str | None, Depends(api_key_header)],
) -> ResolvedIdentity:
    """Resolve the caller from ``x-commandless-key`` or ``x-api-key``.

    Raises:
        Unauthorized: 401 if the key is missing, unknown, revoked or expired.
    """
    return get_resolver().resolve(relay_key or api_key)


async def verify_request_signature(
    request: Request,
    identity: Annotated[ResolvedIdentity, Depends(resolve_identity)],
) -> ResolvedIdentity:
    """Check ``x-signature`` against the body under the configured mode.

    The caller's own secret is used when it has one, otherwise the global
    ``RELAY_HMAC_SECRET``.

    Raises:
        Unauthorized: 401 when enforcement is on and the signature is
            missing or wrong.
    """
    body = await request.body()
    secret = identity.hmac_secret or settings.relay_hmac_secret
    if not verify_signature(
        body, request.headers.get("x-signature"), secret, settings.signature_mode
    ):
        raise Unauthorized("Invalid request signature")
    return identity


def get_rate_limit_string() -> str:
    """Get rate limit string for slowapi.

    Returns:
        Rate limit string in format "N/minute".
    """
    return f"{settings.api_rate_limit}/minute"
