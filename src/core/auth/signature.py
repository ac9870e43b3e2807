"""HMAC-SHA256 request signature verification."""

import hashlib
import hmac
import json
import logging

logger = logging.getLogger(__name__)

ENFORCE = "enforce"
LOG_ONLY = "log-only"


def sign_body(body: bytes, secret: str) -> str:
    """Compute the hex HMAC-SHA256 signature of a request body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def _canonical(body: bytes) -> bytes | None:
    try:
        payload = json.loads(body)
    except ValueError:
        return None
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def signature_matches(body: bytes, signature: str, secret: str) -> bool:
    """Check a signature against the raw body or its canonical JSON form.

    Clients sign the compact JSON serialization of the event; a body that
    was re-encoded in transit still verifies through the canonical form.
    """
    candidates = [body]
    canonical = _canonical(body)
    if canonical is not None and canonical != body:
        candidates.append(canonical)
    signature = signature.strip().lower()
    return any(
        hmac.compare_digest(sign_body(candidate, secret), signature)
        for candidate in candidates
    )


def verify_signature(
    body: bytes,
    signature: str | None,
    secret: str | None,
    mode: str = LOG_ONLY,
) -> bool:
    """Apply the configured signature policy to one request.

    With no secret there is nothing to verify. Otherwise a missing or
    mismatched signature is logged; under ``enforce`` it also fails.

    Args:
        body: Raw request body.
        signature: Value of the signature header, if present.
        secret: Signing secret for the caller, if any.
        mode: "enforce" or "log-only".

    Returns:
        True if the request may proceed.
    """
    if not secret:
        return True

    if not signature:
        if mode == ENFORCE:
            logger.warning("Rejected unsigned request (signature enforcement on)")
            return False
        return True

    if signature_matches(body, signature, secret):
        return True

    logger.warning("Request signature mismatch (mode=%s)", mode)
    return mode != ENFORCE
