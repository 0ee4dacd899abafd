"""HTTP surface: envelopes, request ids and the order/world/candle routes."""
from collections.abc import AsyncGenerator

import pytest
from httpx import AsyncClient

from src.main import app
from src.sim_common.database import get_db_session
from src.sim_order.api.router import get_order_service
from src.sim_order.application.service import OrderApplicationService
from src.sim_world.application.tick_engine import get_tick_engine
from src.sim_world.domain.models import WorldTickState
from tests.fakes import REGION, FakeServices, FakeSession, InMemoryStore


@pytest.fixture
def wired(client: AsyncClient, store: InMemoryStore, services: FakeServices) -> AsyncClient:
    store.world = WorldTickState(current_tick=5, lock_version=5)
    store.add_item("ore")
    store.add_company("buyer", 10_000)
    store.add_company("seller", 0)
    store.add_inventory("seller", "ore", 10)

    async def _db() -> AsyncGenerator[FakeSession, None]:
        yield FakeSession(store)

    app.dependency_overrides[get_db_session] = _db
    app.dependency_overrides[get_order_service] = lambda: OrderApplicationService(
        engine=services.matching, world=services.world
    )
    app.dependency_overrides[get_tick_engine] = lambda: services.tick_engine
    return client


def _order(company_id: str, side: str, quantity: int, price: int) -> dict:
    return {
        "company_id": company_id,
        "item_id": "ore",
        "region_id": REGION,
        "side": side,
        "quantity": quantity,
        "unit_price_cents": price,
    }


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": "0.1.0"}
        assert resp.headers["X-Request-ID"].startswith("req_")


class TestOrderRoutes:
    async def test_place_and_match(self, wired: AsyncClient, store: InMemoryStore) -> None:
        resp = await wired.post("/api/v1/market/orders", json=_order("seller", "SELL", 4, 250))
        assert resp.status_code == 201
        sell = resp.json()["data"]["order"]
        assert sell["status"] == "OPEN"
        assert sell["tick_placed"] == 5

        resp = await wired.post("/api/v1/market/orders", json=_order("buyer", "BUY", 4, 300))
        assert resp.status_code == 201
        body = resp.json()
        assert body["code"] == 0
        assert body["data"]["order"]["status"] == "FILLED"
        [trade] = body["data"]["trades"]
        assert trade["unit_price_cents"] == 250
        assert trade["total_price_cents"] == 1_000
        assert store.companies["buyer"].cash_cents == 9_000
        assert store.companies["seller"].cash_cents == 1_000

    async def test_cancel(self, wired: AsyncClient, store: InMemoryStore) -> None:
        resp = await wired.post("/api/v1/market/orders", json=_order("buyer", "BUY", 2, 100))
        order_id = resp.json()["data"]["order"]["id"]
        assert store.companies["buyer"].reserved_cash_cents == 200

        resp = await wired.post(f"/api/v1/market/orders/{order_id}/cancel")
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "CANCELLED"
        assert store.companies["buyer"].reserved_cash_cents == 0

    async def test_insufficient_funds_envelope(self, wired: AsyncClient) -> None:
        resp = await wired.post(
            "/api/v1/market/orders",
            json=_order("buyer", "BUY", 100, 1_000),
            headers={"X-Request-ID": "req_client_1"},
        )
        assert resp.status_code == 422
        body = resp.json()
        assert body["code"] == 2001
        assert body["data"] is None
        assert body["request_id"] == "req_client_1"
        assert resp.headers["X-Request-ID"] == "req_client_1"

    async def test_unknown_company(self, wired: AsyncClient, store: InMemoryStore) -> None:
        resp = await wired.post("/api/v1/market/orders", json=_order("ghost", "BUY", 1, 100))
        assert resp.status_code == 404
        body = resp.json()
        assert body["code"] == 4040
        assert body["request_id"] == resp.headers["X-Request-ID"]
        assert store.orders == {}

    async def test_unknown_order_cancel(self, wired: AsyncClient) -> None:
        resp = await wired.post("/api/v1/market/orders/nope/cancel")
        assert resp.status_code == 404

    @pytest.mark.parametrize(
        "patch",
        [{"side": "HOLD"}, {"quantity": 0}, {"unit_price_cents": -1}, {"company_id": "  "}],
    )
    async def test_request_validation(self, wired: AsyncClient, patch: dict) -> None:
        resp = await wired.post(
            "/api/v1/market/orders", json={**_order("buyer", "BUY", 1, 100), **patch}
        )
        assert resp.status_code == 422


class TestWorldRoutes:
    async def test_get_tick(self, wired: AsyncClient) -> None:
        resp = await wired.get("/api/v1/world/tick")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["current_tick"] == 5
        assert data["lock_version"] == 5

    async def test_advance(self, wired: AsyncClient, store: InMemoryStore) -> None:
        resp = await wired.post("/api/v1/world/advance", json={"ticks": 3})
        assert resp.status_code == 200
        assert resp.json()["data"] == {"tick_before": 5, "tick_after": 8, "advanced": 3}
        assert store.world.current_tick == 8

    async def test_advance_with_execution_key_applies_once(
        self, wired: AsyncClient, store: InMemoryStore
    ) -> None:
        payload = {"ticks": 2, "execution_key": "deploy-17"}
        first = await wired.post("/api/v1/world/advance", json=payload)
        again = await wired.post("/api/v1/world/advance", json=payload)
        assert first.json()["data"] == {"tick_before": 5, "tick_after": 7, "advanced": 2}
        assert again.json()["data"] == {"tick_before": 7, "tick_after": 7, "advanced": 0}
        assert store.world.current_tick == 7

    async def test_advance_rejects_empty_execution_key(self, wired: AsyncClient) -> None:
        resp = await wired.post("/api/v1/world/advance", json={"ticks": 1, "execution_key": ""})
        assert resp.status_code == 422

    async def test_advance_stale_lock_version(self, wired: AsyncClient) -> None:
        resp = await wired.post(
            "/api/v1/world/advance", json={"ticks": 1, "expected_lock_version": 2}
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == 4090

    async def test_advance_rejects_zero_ticks(self, wired: AsyncClient) -> None:
        resp = await wired.post("/api/v1/world/advance", json={"ticks": 0})
        assert resp.status_code == 422


class TestCandleRoutes:
    async def test_item_required(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/market/candles", params={"region_id": REGION})
        assert resp.status_code == 422

    @pytest.mark.parametrize("limit", [0, 10_000])
    async def test_limit_bounds(self, client: AsyncClient, limit: int) -> None:
        resp = await client.get(
            "/api/v1/market/candles",
            params={"item_id": "ore", "region_id": REGION, "limit": limit},
        )
        assert resp.status_code == 422
