"""Models package for database models."""

from app.models.payment import Payment, PaymentStatus

__all__ = [
    "Payment",
    "PaymentStatus",
]
