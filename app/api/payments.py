"""
Payment record endpoints.
Manual submission and read access to stored payments.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import ValidationError
from app.services.payment_service import PaymentService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/payments", status_code=201)
async def submit_payment(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Store a successful payment submitted by a trusted caller.

    Unlike the webhook, a duplicate transaction_id is reported (409).
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Request body must be valid JSON") from None
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    payment = await PaymentService(db).ingest_from_submission(payload)

    return {
        "success": True,
        "message": "Payment data saved successfully",
        "data": payment.to_dict(),
    }


@router.get("/payments")
async def list_payments(db: AsyncSession = Depends(get_db)):
    """List all payments, newest first."""
    payments = await PaymentService(db).list_payments()

    return {
        "success": True,
        "count": len(payments),
        "data": [payment.to_dict() for payment in payments],
    }


@router.get("/payments/{transaction_id}")
async def get_payment(transaction_id: str, db: AsyncSession = Depends(get_db)):
    """Get one payment by its Paddle transaction ID."""
    payment = await PaymentService(db).get_payment(transaction_id)

    return {
        "success": True,
        "data": payment.to_dict(),
    }
