"""
Paddle Webhook Handler.
Records completed transactions; always acknowledges the delivery.
"""

import json
import logging

from fastapi import APIRouter, Request

from app.database import get_db_context
from app.services.payment_service import PaymentService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/paddle/webhook")
async def paddle_webhook(request: Request):
    """
    Handle Paddle webhook events.

    Only transaction.completed creates a payment. Every delivery gets a
    200, including malformed payloads and internal failures: Paddle retries
    until it sees a 200 and a retry cannot fix a fault on our side.
    """
    try:
        body = await request.body()
        event = json.loads(body) if body else {}

        event_type = event.get("event_type") if isinstance(event, dict) else None
        logger.info(f"Paddle webhook received: {event_type}")
        logger.debug(f"Paddle webhook payload: {event}")

        async with get_db_context() as db:
            outcome = await PaymentService(db).ingest_from_webhook(event)

        logger.info(f"Paddle webhook processed: {outcome.value}")

    except Exception as e:
        logger.error(f"Error processing Paddle webhook: {e}", exc_info=True)

    # Always return 200 so Paddle doesn't retry
    return {"received": True}
