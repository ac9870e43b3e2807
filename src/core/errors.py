"""Exceptions raised by the relay core.

Only ``Unauthorized`` ever reaches a caller. ``ClassificationFailure`` is
raised inside the classifier and recovered there by the keyword fallback.
"""


class RelayError(Exception):
    """Base class for relay errors."""


class Unauthorized(RelayError):
    """Raised when a presented API key is missing, unknown, revoked or expired.

    Attributes:
        status_code: HTTP status the interface layer should answer with
            (401 for bad credentials, 403 for a valid key lacking scope).
    """

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


class ClassificationFailure(RelayError):
    """Raised when the provider errors, times out, or returns unusable JSON."""
