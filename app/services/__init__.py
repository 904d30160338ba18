"""Services package."""

from app.services.payment_store import PaymentStore
from app.services.payment_service import IngestOutcome, PaymentService
from app.services.paddle_service import PaddleService

__all__ = [
    "PaymentStore",
    "IngestOutcome",
    "PaymentService",
    "PaddleService",
]
