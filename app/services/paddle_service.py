"""
Paddle Service - catalog and checkout calls against the Paddle Billing API.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.errors import ConfigurationError, MissingCheckoutUrlError, UpstreamError, ValidationError
from app.services.payment_service import dig

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"


def map_price(price: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "price_id": price.get("id"),
        "amount": dig(price, "unit_price", "amount") or 0,
        "interval": dig(price, "billing_cycle", "interval") or None,
        "currency": dig(price, "unit_price", "currency_code") or DEFAULT_CURRENCY,
    }


def map_product(product: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a Paddle product (with included prices) into a plan."""
    prices = product.get("prices") or []
    return {
        "product_id": product.get("id"),
        "name": product.get("name"),
        "description": product.get("description") or "",
        "prices": [map_price(price) for price in prices if isinstance(price, dict)],
    }


class PaddleService:
    """Stateless client for the Paddle API. No retries; every call is bounded by a timeout."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.paddle_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.paddle_api_url).rstrip("/")
        self.timeout = timeout or settings.paddle_timeout_seconds
        self.transport = transport

    def _require_api_key(self) -> None:
        if not self.api_key:
            raise ConfigurationError("Paddle API key is not configured")

    def _headers(self) -> Dict[str, str]:
        self._require_api_key()
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        error_message: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send a request and return the decoded body, raising UpstreamError on failure."""
        headers = self._headers()

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            try:
                response = await client.request(
                    method, path, params=params, json=json, headers=headers
                )
            except httpx.TimeoutException as e:
                logger.error(f"Paddle API timeout on {method} {path}: {e}")
                raise UpstreamError(error_message, 504, {"message": "Paddle API timed out"}) from e
            except httpx.HTTPError as e:
                logger.error(f"Paddle API unreachable on {method} {path}: {e}")
                raise UpstreamError(error_message, 502, {"message": str(e)}) from e

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            logger.error(f"Paddle API Error {response.status_code}: {body}")
            raise UpstreamError(error_message, response.status_code, body)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(error_message, 502, {"message": "Invalid JSON from Paddle"}) from e

    async def list_products_with_prices(self) -> List[Dict[str, Any]]:
        """Fetch all products with their prices, flattened into plans."""
        body = await self._request(
            "GET",
            "/products",
            "Failed to fetch Paddle products",
            params={"include": "prices"},
        )
        products = body.get("data") or []
        return [map_product(product) for product in products if isinstance(product, dict)]

    async def create_transaction(self, price_id: Optional[str]) -> Dict[str, Any]:
        """
        Create a single-item transaction and return its checkout URL.

        Paddle builds the checkout URL from the default payment link set in
        the dashboard; if none is set the transaction is created without one
        and MissingCheckoutUrlError is raised.
        """
        self._require_api_key()

        if not price_id or not isinstance(price_id, str):
            raise ValidationError("Price ID is required", ["price_id"])

        body = await self._request(
            "POST",
            "/transactions",
            "Failed to create checkout session",
            json={"items": [{"price_id": price_id, "quantity": 1}]},
        )

        transaction_id = dig(body, "data", "id")
        checkout_url = dig(body, "data", "checkout", "url")
        if not checkout_url:
            logger.error(f"Paddle transaction {transaction_id} has no checkout URL")
            raise MissingCheckoutUrlError(transaction_id)

        logger.info(f"Transaction {transaction_id} created, checkout URL: {checkout_url}")
        return {
            "checkout_url": checkout_url,
            "transaction_id": transaction_id,
        }
