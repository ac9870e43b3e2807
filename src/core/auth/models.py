"""Credential data models.

Defines the stored API key record and the identity a resolved key
maps to for the rest of the relay pipeline.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class ApiKeyRecord:
    """A stored API key.

    Records are immutable apart from revocation. Rotating a key means
    creating a new record and revoking the old one.

    Attributes:
        key_id: The key string callers present.
        tenant_id: Owning tenant.
        bot_id: Bot the key is bound to, if any.
        scopes: Granted scopes. Empty means unrestricted.
        expires_at: Expiry timestamp, or None for no expiry.
        revoked_at: Revocation timestamp, or None if active.
        hmac_secret: Secret used to sign request bodies, if any.
    """

    key_id: str
    tenant_id: str
    bot_id: str | None = None
    scopes: frozenset[str] = field(default_factory=frozenset)
    expires_at: datetime | None = None
    revoked_at: datetime | None = None
    hmac_secret: str | None = None

    def is_usable(self, now: datetime | None = None) -> bool:
        """Check whether the key is neither revoked nor expired.

        Args:
            now: Reference time (timezone-aware). Defaults to current UTC time.

        Returns:
            True if the key may authenticate a request.
        """
        if self.revoked_at is not None:
            return False
        if self.expires_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        return self.expires_at > now


@dataclass(frozen=True)
class ResolvedIdentity:
    """The caller behind a presented key.

    Attributes:
        tenant_id: Tenant the request is billed and scoped to.
        bot_id: Bot bound to the key, if any.
        scopes: Granted scopes. Empty means unrestricted.
        hmac_secret: Signing secret for this caller, if any.
        source: "store" for key-store records, "legacy" for env-mapped keys.
        key_id: The presented key, used for rate limiting.
    """

    tenant_id: str
    bot_id: str | None = None
    scopes: frozenset[str] = field(default_factory=frozenset)
    hmac_secret: str | None = None
    source: str = "store"
    key_id: str = ""

    def has_scope(self, scope: str) -> bool:
        return not self.scopes or scope in self.scopes
