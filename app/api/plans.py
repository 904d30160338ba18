"""
Catalog and checkout endpoints.
Thin proxies over the Paddle API.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.services.paddle_service import PaddleService

router = APIRouter()
logger = logging.getLogger(__name__)


def get_paddle_service() -> PaddleService:
    """Dependency for the Paddle client."""
    return PaddleService()


class CheckoutRequest(BaseModel):
    """Request body for creating a checkout."""
    price_id: Optional[str] = None
    # Accepted for frontend compatibility; Paddle redirects using the dashboard settings
    success_url: Optional[str] = None


@router.get("/plans")
async def list_plans(paddle: PaddleService = Depends(get_paddle_service)):
    """List Paddle products with their prices."""
    plans = await paddle.list_products_with_prices()

    return {
        "success": True,
        "data": plans,
        "count": len(plans),
    }


@router.post("/checkout")
async def create_checkout(
    request: Optional[CheckoutRequest] = None,
    paddle: PaddleService = Depends(get_paddle_service),
):
    """
    Create a Paddle transaction for one price.

    Returns the hosted checkout URL the frontend redirects to.
    """
    price_id = request.price_id if request else None
    checkout = await paddle.create_transaction(price_id)

    return {
        "success": True,
        "data": checkout,
    }
