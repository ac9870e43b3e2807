"""Credential resolution and request signing for relay callers."""

from src.core.auth.models import ApiKeyRecord, ResolvedIdentity
from src.core.auth.resolver import (
    CredentialResolver,
    KeyStore,
    parse_legacy_keys,
    require_scope,
)
from src.core.auth.signature import sign_body, verify_signature

__all__ = [
    "ApiKeyRecord",
    "ResolvedIdentity",
    "CredentialResolver",
    "KeyStore",
    "parse_legacy_keys",
    "require_scope",
    "sign_body",
    "verify_signature",
]
