"""
Pytest configuration and fixtures.
"""

import sys
import os
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Add app to path
sys.path.append(os.getcwd())

from app import database
from app.database import Base
from app.models import Payment  # noqa: F401  registers the table
from app.main import app as fastapi_app
from app.api.plans import get_paddle_service
from app.services.paddle_service import PaddleService


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Async engine on a throwaway SQLite file.
    A file (not :memory:) so separate sessions really are separate connections.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'payments.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine, monkeypatch) -> async_sessionmaker:
    """Point the application's session factory at the test database."""
    maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(database, "async_session_maker", maker)
    return maker


@pytest_asyncio.fixture
async def db(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for a test."""
    async with session_maker() as session:
        yield session


class FakePaddle:
    """Canned Paddle API answers, served through httpx.MockTransport."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.responses: Dict[Tuple[str, str], httpx.Response] = {}

    def respond(self, method: str, path: str, status_code: int = 200, json: Any = None) -> None:
        self.responses[(method, path)] = httpx.Response(status_code, json=json)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(404, json={"error": {"code": "not_found"}})
        return response

    def service(self, api_key: Optional[str] = "test_paddle_key") -> PaddleService:
        return PaddleService(
            api_key=api_key,
            base_url="https://paddle.test",
            timeout=5.0,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def paddle() -> FakePaddle:
    return FakePaddle()


@pytest_asyncio.fixture
async def client(session_maker, paddle) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client bound to the app, with the Paddle client faked."""
    fastapi_app.dependency_overrides[get_paddle_service] = lambda: paddle.service()

    transport = httpx.ASGITransport(app=fastapi_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def completed_event() -> Callable[..., Dict[str, Any]]:
    """Factory for Paddle transaction.completed webhook payloads."""

    def make(
        transaction_id: str = "txn_01hv8xxw3dz6a6ak9x9f5yq3b5",
        price_id: str = "pri_01gsz8x8sawmvhz1pv30nge1ke",
        total: str = "2999",
        currency_code: str = "USD",
        customer_email: Optional[str] = "buyer@example.com",
    ) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": transaction_id,
            "status": "completed",
            "customer_id": "ctm_01hv6y1jedq4p1n0yqn5ba3ky4",
            "currency_code": currency_code,
            "items": [{"price_id": price_id, "quantity": 1}],
            "details": {"totals": {"total": total, "currency_code": currency_code}},
        }
        if customer_email is not None:
            data["customer_email"] = customer_email
        return {
            "event_id": "evt_01hv8xy3fw0ztzm8mk0drcrnb2",
            "event_type": "transaction.completed",
            "occurred_at": "2026-10-19T10:00:00.000000Z",
            "notification_id": "ntf_01hv8xy3jmm9ehxmm1fe0gy2jq",
            "data": data,
        }

    return make
