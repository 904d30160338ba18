"""
Payment Store - persistence for payment records.

The unique index on transaction_id is the only thing standing between two
concurrent deliveries of the same webhook, so insert() is a single INSERT
and never a lookup followed by a write.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import DuplicateKeyError, StorageError
from app.models.payment import Payment

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True if the integrity error came from a unique constraint."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate:
        return sqlstate == UNIQUE_VIOLATION
    return "unique" in str(orig).lower()


class PaymentStore:
    """Durable table of payments keyed by transaction_id."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert(self, payment: Payment) -> Payment:
        """
        Insert and commit a new payment.

        Raises DuplicateKeyError if the transaction_id already exists,
        StorageError for any other database failure.
        """
        self.db.add(payment)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if is_unique_violation(e):
                raise DuplicateKeyError(payment.transaction_id) from e
            raise StorageError(f"Failed to save payment: {e.orig}") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Failed to save payment: {e}") from e

        return payment

    async def find_by_transaction_id(self, transaction_id: str) -> Optional[Payment]:
        try:
            result = await self.db.execute(
                select(Payment).where(Payment.transaction_id == transaction_id)
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch payment: {e}") from e
        return result.scalar_one_or_none()

    async def list_all(self, newest_first: bool = True) -> List[Payment]:
        order = Payment.created_at.desc() if newest_first else Payment.created_at.asc()
        try:
            result = await self.db.execute(select(Payment).order_by(order))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch payments: {e}") from e
        return list(result.scalars().all())
