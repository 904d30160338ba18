"""Typed failures raised by the payment services and rendered by the API."""

from typing import Any, Dict, Iterable, Optional


class PaymentsError(Exception):
    """Base error. Carries the HTTP status the API answers with."""

    status_code = 500

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_response(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message, **self.detail}


class ValidationError(PaymentsError):
    """Caller input is missing or malformed."""

    status_code = 400

    def __init__(self, message: str, fields: Iterable[str] = ()):
        self.fields = list(fields)
        super().__init__(message, {"fields": self.fields} if self.fields else None)


class NotFoundError(PaymentsError):
    status_code = 404


class DuplicateKeyError(PaymentsError):
    """Raised by the store when the transaction_id is already taken."""

    status_code = 409

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__("Payment with this transaction ID already exists")


class DuplicateError(DuplicateKeyError):
    """A manual submission collided with an existing payment."""


class ConfigurationError(PaymentsError):
    status_code = 500


class StorageError(PaymentsError):
    status_code = 500


class UpstreamError(PaymentsError):
    """Paddle answered with a non-2xx status. Relayed to the caller as-is."""

    def __init__(self, message: str, status: int, body: Any):
        self.status = status
        self.body = body
        super().__init__(message, {"details": body})

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return self.status


class MissingCheckoutUrlError(PaymentsError):
    """Paddle created the transaction but returned no checkout URL.

    This is a dashboard configuration problem (no default payment link),
    so the call is not retried.
    """

    status_code = 500

    def __init__(self, transaction_id: Optional[str] = None):
        self.transaction_id = transaction_id
        super().__init__(
            "No checkout URL returned",
            {"message": "Please configure Paddle Dashboard URLs"},
        )
