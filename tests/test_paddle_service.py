"""
Tests for the Paddle API client.
"""

import json

import httpx
import pytest

from app.errors import ConfigurationError, MissingCheckoutUrlError, UpstreamError, ValidationError
from app.services.paddle_service import PaddleService, map_product


SAMPLE_PRODUCTS = {
    "data": [
        {
            "id": "pro_01htz88xpr0mm7b3ta2pjkr7w2",
            "name": "Pro",
            "description": "Everything in Basic, plus more",
            "prices": [
                {
                    "id": "pri_monthly",
                    "billing_cycle": {"interval": "month", "frequency": 1},
                    "unit_price": {"amount": "1000", "currency_code": "EUR"},
                },
                {
                    "id": "pri_lifetime",
                    "billing_cycle": None,
                },
            ],
        },
        {
            "id": "pro_01htz8bare",
            "name": "Bare",
        },
    ],
    "meta": {"request_id": "b5a4b0a4-1b1a-4c1b-8d52-3c9e3b0e1a57"},
}

SAMPLE_TRANSACTION = {
    "data": {
        "id": "txn_01hv8wptq8987qeep44cyrewp9",
        "status": "ready",
        "checkout": {"url": "https://shop.example.com/pay?_ptxn=txn_01hv8wptq8987qeep44cyrewp9"},
    }
}


class TestCatalogMapping:
    """Tests for flattening Paddle products into plans."""

    def test_map_product_with_two_prices(self):
        plan = map_product(SAMPLE_PRODUCTS["data"][0])

        assert plan["product_id"] == "pro_01htz88xpr0mm7b3ta2pjkr7w2"
        assert plan["name"] == "Pro"
        assert plan["prices"][0] == {
            "price_id": "pri_monthly",
            "amount": "1000",
            "interval": "month",
            "currency": "EUR",
        }
        assert plan["prices"][1]["amount"] == 0
        assert plan["prices"][1]["currency"] == "USD"
        assert plan["prices"][1]["interval"] is None

    def test_map_product_without_prices(self):
        plan = map_product(SAMPLE_PRODUCTS["data"][1])

        assert plan["description"] == ""
        assert plan["prices"] == []


@pytest.mark.asyncio
async def test_list_products_with_prices(paddle):
    paddle.respond("GET", "/products", json=SAMPLE_PRODUCTS)

    plans = await paddle.service().list_products_with_prices()

    assert [p["product_id"] for p in plans] == ["pro_01htz88xpr0mm7b3ta2pjkr7w2", "pro_01htz8bare"]
    request = paddle.requests[0]
    assert request.url.params["include"] == "prices"
    assert request.headers["Authorization"] == "Bearer test_paddle_key"


@pytest.mark.asyncio
async def test_list_products_upstream_error(paddle):
    error_body = {"error": {"type": "request_error", "code": "forbidden"}}
    paddle.respond("GET", "/products", status_code=403, json=error_body)

    with pytest.raises(UpstreamError) as exc_info:
        await paddle.service().list_products_with_prices()

    assert exc_info.value.status == 403
    assert exc_info.value.status_code == 403
    assert exc_info.value.body == error_body


@pytest.mark.asyncio
async def test_missing_api_key_makes_no_request(paddle):
    service = paddle.service(api_key="")

    with pytest.raises(ConfigurationError):
        await service.list_products_with_prices()
    with pytest.raises(ConfigurationError):
        await service.create_transaction("pri_monthly")

    assert paddle.requests == []


@pytest.mark.asyncio
async def test_create_transaction(paddle):
    paddle.respond("POST", "/transactions", json=SAMPLE_TRANSACTION)

    result = await paddle.service().create_transaction("pri_monthly")

    assert result == {
        "checkout_url": "https://shop.example.com/pay?_ptxn=txn_01hv8wptq8987qeep44cyrewp9",
        "transaction_id": "txn_01hv8wptq8987qeep44cyrewp9",
    }
    sent = json.loads(paddle.requests[0].content)
    assert sent == {"items": [{"price_id": "pri_monthly", "quantity": 1}]}


@pytest.mark.asyncio
@pytest.mark.parametrize("price_id", [None, ""])
async def test_create_transaction_requires_price(paddle, price_id):
    with pytest.raises(ValidationError):
        await paddle.service().create_transaction(price_id)

    assert paddle.requests == []


@pytest.mark.asyncio
async def test_create_transaction_without_checkout_url(paddle):
    paddle.respond("POST", "/transactions", json={"data": {"id": "txn_nourl", "checkout": None}})

    with pytest.raises(MissingCheckoutUrlError) as exc_info:
        await paddle.service().create_transaction("pri_monthly")

    assert exc_info.value.transaction_id == "txn_nourl"
    # Not retried
    assert len(paddle.requests) == 1


@pytest.mark.asyncio
async def test_create_transaction_upstream_error(paddle):
    paddle.respond("POST", "/transactions", status_code=400, json={"error": {"code": "invalid_field"}})

    with pytest.raises(UpstreamError) as exc_info:
        await paddle.service().create_transaction("pri_bogus")

    assert exc_info.value.status == 400
    assert exc_info.value.to_response()["details"] == {"error": {"code": "invalid_field"}}


@pytest.mark.asyncio
async def test_timeout_maps_to_gateway_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    service = PaddleService(
        api_key="test_paddle_key",
        base_url="https://paddle.test",
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(UpstreamError) as exc_info:
        await service.list_products_with_prices()

    assert exc_info.value.status == 504
