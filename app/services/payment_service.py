"""
Payment Service - turns Paddle webhooks and manual submissions into payment records.
"""

import logging
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, List, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import DuplicateError, DuplicateKeyError, NotFoundError, ValidationError
from app.models.payment import Payment, PaymentStatus
from app.services.payment_store import PaymentStore

logger = logging.getLogger(__name__)

TRANSACTION_COMPLETED = "transaction.completed"

# Placeholders for fields Paddle left out of the payload
UNKNOWN_EMAIL = "unknown@example.com"
DEFAULT_CURRENCY = "USD"

REQUIRED_FIELDS = ("transaction_id", "price_id", "customer_email", "amount", "currency")
PAYMENT_STATUSES = tuple(s.value for s in PaymentStatus)
CENTS = Decimal("0.01")


class IngestOutcome(str, Enum):
    """What happened to a webhook delivery. Every outcome is acknowledged."""

    INSERTED = "inserted"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    FAILED = "failed"


def dig(obj: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None as soon as a step is missing."""
    for key in path:
        if isinstance(obj, dict):
            obj = obj.get(key)
        elif isinstance(obj, list) and isinstance(key, int):
            obj = obj[key] if -len(obj) <= key < len(obj) else None
        else:
            return None
    return obj


def parse_amount(value: Any) -> Optional[Decimal]:
    """Parse a non-negative monetary amount, or None if it isn't one."""
    if isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount < 0:
        return None
    # Stored as Numeric(14, 2); anything finer would not survive the round trip
    try:
        cents = amount.quantize(CENTS)
    except InvalidOperation:
        return None
    if cents != amount:
        return None
    return cents


class PaymentService:
    """Service for ingesting and reading payment records."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = PaymentStore(db)

    async def ingest_from_webhook(self, event: Any) -> IngestOutcome:
        """
        Record a Paddle transaction.completed event.

        Other event types are acknowledged and ignored. Duplicates and
        failures are logged, never raised: the webhook must always be
        acknowledged because a Paddle redelivery cannot repair an
        internal fault.
        """
        event_type = event.get("event_type") if isinstance(event, dict) else None
        if event_type != TRANSACTION_COMPLETED:
            logger.info(f"Ignoring Paddle event: {event_type}")
            return IngestOutcome.IGNORED

        transaction_id = dig(event, "data", "id")
        try:
            payment = self._payment_from_webhook(event.get("data"))
            await self.store.insert(payment)
        except DuplicateKeyError:
            logger.info(f"Payment already exists: {transaction_id}")
            return IngestOutcome.DUPLICATE
        except Exception as e:
            logger.error(
                f"Failed to record Paddle transaction {transaction_id}: {e}",
                exc_info=True,
            )
            return IngestOutcome.FAILED

        logger.info(f"Payment saved successfully: {transaction_id}")
        return IngestOutcome.INSERTED

    def _payment_from_webhook(self, data: Any) -> Payment:
        """
        Map transaction data onto a Payment, filling gaps with placeholders.

        Only the transaction id is mandatory; a payload that also lacks a
        valid amount is rejected rather than stored with a made-up value.
        """
        if not isinstance(data, dict):
            raise ValidationError("Webhook event has no transaction data", ["data"])

        transaction_id = data.get("id")
        if not transaction_id or not isinstance(transaction_id, str):
            raise ValidationError("Webhook transaction has no id", ["transaction_id"])

        defaulted: List[str] = []

        price_id = dig(data, "items", 0, "price_id")
        if not price_id:
            price_id = ""
            defaulted.append("price_id")

        customer_email = data.get("customer_email")
        if not customer_email:
            customer_email = UNKNOWN_EMAIL
            defaulted.append("customer_email")

        raw_amount = dig(data, "details", "totals", "total")
        if raw_amount is None or raw_amount == "":
            raw_amount = 0
            defaulted.append("amount")
        amount = parse_amount(raw_amount)
        if amount is None:
            raise ValidationError(f"Invalid amount: {raw_amount!r}", ["amount"])

        currency = dig(data, "details", "totals", "currency_code")
        if not currency:
            currency = DEFAULT_CURRENCY
            defaulted.append("currency")

        if defaulted:
            logger.warning(
                f"Paddle transaction {transaction_id} stored with defaults for: "
                f"{', '.join(defaulted)}"
            )

        return Payment(
            transaction_id=transaction_id,
            price_id=str(price_id),
            customer_email=str(customer_email),
            amount=amount,
            currency=str(currency).upper(),
            status=PaymentStatus.COMPLETED.value,
            provider_response=data,
        )

    async def ingest_from_submission(self, payload: Mapping[str, Any]) -> Payment:
        """
        Store a manually submitted payment.

        Raises ValidationError naming every missing/invalid field, and
        DuplicateError if the transaction_id is already recorded.
        """
        missing: List[str] = []
        invalid: List[str] = []

        for field in ("transaction_id", "price_id", "customer_email", "currency"):
            value = payload.get(field)
            if value is None or value == "":
                missing.append(field)
            elif not isinstance(value, str) or not value.strip():
                invalid.append(field)

        raw_amount = payload.get("amount")
        amount = None
        if raw_amount is None or raw_amount == "":
            missing.append("amount")
        else:
            amount = parse_amount(raw_amount)
            if amount is None or amount == 0:
                invalid.append("amount")

        status = payload.get("status") or PaymentStatus.COMPLETED.value
        if not isinstance(status, str) or status not in PAYMENT_STATUSES:
            invalid.append("status")

        if missing:
            ordered = [f for f in REQUIRED_FIELDS if f in missing]
            raise ValidationError("Missing required fields", ordered + invalid)
        if invalid:
            raise ValidationError("Invalid fields", invalid)

        provider_response = payload.get("provider_response")
        payment = Payment(
            transaction_id=payload["transaction_id"].strip(),
            price_id=payload["price_id"].strip(),
            customer_email=payload["customer_email"].strip(),
            amount=amount,
            currency=payload["currency"].strip().upper(),
            status=status,
            provider_response=provider_response if provider_response is not None else {},
        )

        try:
            await self.store.insert(payment)
        except DuplicateKeyError as e:
            logger.info(f"Rejected duplicate payment submission: {payment.transaction_id}")
            raise DuplicateError(payment.transaction_id) from e

        logger.info(f"Payment submitted manually: {payment.transaction_id}")
        return payment

    async def get_payment(self, transaction_id: str) -> Payment:
        payment = await self.store.find_by_transaction_id(transaction_id)
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    async def list_payments(self) -> List[Payment]:
        """All payments, newest first."""
        return await self.store.list_all(newest_first=True)
