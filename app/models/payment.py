"""Payment model - completed Paddle transactions, one row per transaction."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class PaymentStatus(str, Enum):
    """Status is fixed when the row is created."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Payment(Base):
    """
    Payment record.
    transaction_id is unique so a second insert for the same
    Paddle transaction is rejected by the database.
    """

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Paddle transaction ID (idempotency key)
    transaction_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )

    price_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    customer_email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
    )

    # Currency code
    currency: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=PaymentStatus.PENDING.value,
        nullable=False,
    )

    # Raw Paddle payload kept for audit, never interpreted
    provider_response: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "transaction_id": self.transaction_id,
            "price_id": self.price_id,
            "customer_email": self.customer_email,
            "amount": float(self.amount),
            "currency": self.currency,
            "status": self.status,
            "provider_response": self.provider_response,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Payment {self.transaction_id}>"
