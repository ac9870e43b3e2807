"""API key resolution against the key store and the legacy env map."""

import logging
import secrets
from datetime import datetime, timezone
from typing import Protocol

from src.core.auth.models import ApiKeyRecord, ResolvedIdentity
from src.core.errors import Unauthorized

logger = logging.getLogger(__name__)


class KeyStore(Protocol):
    """Lookup collaborator for stored API keys."""

    def get_api_key(self, key_id: str) -> ApiKeyRecord | None: ...


def parse_legacy_keys(raw: str) -> dict[str, ResolvedIdentity]:
    """Parse the legacy key map.

    The format is a comma-separated list of ``key:secret[:tenantId]``
    entries. When the tenant is omitted the key itself names the tenant.
    Malformed entries are skipped with a warning.

    Args:
        raw: Raw env value.

    Returns:
        Mapping from presented key to identity.

    Examples:
        >>> ids = parse_legacy_keys("ck_dev:s3cret:tenant-1")
        >>> ids["ck_dev"].tenant_id
        'tenant-1'
        >>> parse_legacy_keys("ck_dev:s3cret")["ck_dev"].tenant_id
        'ck_dev'
    """
    identities: dict[str, ResolvedIdentity] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":")
        if len(parts) not in (2, 3) or not parts[0]:
            logger.warning("Skipping malformed legacy key entry")
            continue
        key, secret = parts[0], parts[1]
        tenant = parts[2] if len(parts) == 3 and parts[2] else key
        identities[key] = ResolvedIdentity(
            tenant_id=tenant,
            hmac_secret=secret or None,
            source="legacy",
            key_id=key,
        )
    return identities


class CredentialResolver:
    """Resolves presented API keys to caller identities.

    Resolution order: the key store first (revoked or expired keys are
    rejected outright), then the legacy env map. There is no default
    tenant; an unknown key always fails.

    Attributes:
        key_store: Collaborator used for stored keys, or None.
    """

    def __init__(self, key_store: KeyStore | None, legacy_keys: str = "") -> None:
        self.key_store = key_store
        self._legacy = parse_legacy_keys(legacy_keys)

    def resolve(self, presented: str | None) -> ResolvedIdentity:
        """Resolve a presented key.

        Args:
            presented: The raw header value.

        Returns:
            The caller's identity.

        Raises:
            Unauthorized: If the key is missing, unknown, revoked or expired.
        """
        key = (presented or "").strip()
        if not key:
            raise Unauthorized("Missing API key")

        if self.key_store is not None:
            record = self.key_store.get_api_key(key)
            if record is not None:
                if not record.is_usable(datetime.now(timezone.utc)):
                    logger.info("Rejected revoked or expired key for tenant %s", record.tenant_id)
                    raise Unauthorized("API key revoked or expired")
                return ResolvedIdentity(
                    tenant_id=record.tenant_id,
                    bot_id=record.bot_id,
                    scopes=record.scopes,
                    hmac_secret=record.hmac_secret,
                    source="store",
                    key_id=key,
                )

        for legacy_key, identity in self._legacy.items():
            if secrets.compare_digest(legacy_key, key):
                return identity

        raise Unauthorized("Invalid API key")


def require_scope(identity: ResolvedIdentity, scope: str) -> None:
    """Ensure an identity carries a scope.

    Raises:
        Unauthorized: With status 403 if the scope is missing.
    """
    if not identity.has_scope(scope):
        raise Unauthorized(f"API key lacks scope '{scope}'", status_code=403)
