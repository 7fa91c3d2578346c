"""Error taxonomy for the relay.

Every failure a request can run into is a ``RelayError`` carrying the HTTP
status and the public message for the ``{"error": ...}`` envelope. The
message never contains the low-level cause; that goes to the ``__cause__``
chain and, where safe, the log.
"""
from fastapi import HTTPException
from typing import Optional, Dict


class RelayError(Exception):
    """Base error, rendered as ``{"error": message}`` with ``status_code``.

    ``message`` is the public, class-level text. ``detail`` is the specific
    reason, kept for ``str(exc)`` and server-side diagnostics only.
    """
    status_code: int = 500
    message: str = "internal server error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.message
        super().__init__(self.detail)


# --- client input errors (4xx) ---

class InvalidTokenError(RelayError):
    """Any failure to recover a sealed configuration from a token."""
    status_code = 400
    message = "invalid token"


class TokenDecodeError(InvalidTokenError):
    pass


class TokenTooShortError(InvalidTokenError):
    pass


class TokenDecryptError(InvalidTokenError):
    pass


class TokenPayloadError(InvalidTokenError):
    pass


class InvalidPayloadError(RelayError):
    status_code = 400
    message = "invalid JSON payload"


class PayloadTooLargeError(RelayError):
    status_code = 413
    message = "request body too large"


class InvalidTemplateError(RelayError):
    status_code = 400
    message = "invalid template"


class TemplateCompileError(InvalidTemplateError):
    pass


# --- delivery errors (5xx) ---

class TemplateRenderError(RelayError):
    status_code = 500
    message = "failed to render template"


class DeliveryError(RelayError):
    status_code = 500
    message = "failed to deliver webhook"


# --- internal errors (5xx) ---

class SealError(RelayError):
    status_code = 500
    message = "failed to seal configuration"


def raise_relay_error(
    status_code: int,
    message: str,
    headers: Optional[Dict[str, str]] = None
) -> None:
    """Raise an HTTPException rendered with the standard error envelope.

    Args:
        status_code: HTTP status code (400, 401, ...)
        message: Human readable message, returned verbatim
        headers: Optional response headers
    """
    raise HTTPException(status_code=status_code, detail={"error": message}, headers=headers)
