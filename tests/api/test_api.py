"""Tests for the REST API."""

import json
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from ct_app.api import create_app
from ct_app.errors import CircuitOpenError, DataSourceError
from ct_app.resilience import BreakerRegistry
from ct_app.service import TraderService
from ct_app.sources import MarketDataService, Quote, QuoteSource


class SwitchableSource(QuoteSource):
    def __init__(self, name):
        super().__init__(name)
        self.down = False

    def fetch(self, symbol):
        if self.down:
            raise DataSourceError("down", source=self.name)
        return Quote(symbol, 64000.0, datetime.now(timezone.utc), self.name)


@pytest.fixture
def source():
    return SwitchableSource("primary")


@pytest.fixture
def service(registry, store, source):
    breakers = BreakerRegistry()
    return TraderService(
        registry=registry,
        store=store,
        market_data=MarketDataService([source], breakers=breakers, max_stale_seconds=0),
        breakers=breakers,
    )


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


STRATEGY_BODY = {
    "name": "btc-momentum",
    "description": "Momentum entries",
    "symbols": ["btc-usd", "ETH-USD"],
    "interval": "4h",
    "riskParams": {"stopLoss": 0.03},
}


class TestStrategyEndpoints:
    """CRUD and lifecycle endpoints."""

    def test_create_strategy(self, client):
        response = client.post("/api/strategies", json=STRATEGY_BODY)

        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "btc-momentum"
        assert body["symbols"] == ["BTC-USD", "ETH-USD"]
        assert body["status"] == "draft"
        assert body["riskParams"]["stopLoss"] == 0.03
        assert body["riskParams"]["takeProfit"] == 0.04

    def test_create_accepts_snake_case(self, client):
        response = client.post("/api/strategies", json={
            "name": "eth-swing",
            "symbols": ["ETH-USD"],
            "risk_params": {"max_daily_loss": 0.02},
        })

        assert response.status_code == 201
        assert response.json()["riskParams"]["maxDailyLoss"] == 0.02

    def test_create_duplicate(self, client):
        client.post("/api/strategies", json=STRATEGY_BODY)
        response = client.post("/api/strategies", json=STRATEGY_BODY)

        assert response.status_code == 409
        assert response.json()["error"] == "already_exists"

    def test_create_invalid(self, client):
        response = client.post("/api/strategies", json={**STRATEGY_BODY, "interval": "3d"})

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "invalid_config"
        assert body["details"][0]["field"] == "interval"

    def test_create_unknown_field_rejected(self, client):
        response = client.post("/api/strategies", json={**STRATEGY_BODY, "leverage": 10})
        assert response.status_code == 422

    def test_list_and_filter(self, client):
        client.post("/api/strategies", json=STRATEGY_BODY)
        client.post("/api/strategies", json={"name": "eth-swing", "symbols": ["ETH-USD"]})
        client.post("/api/strategies/eth-swing/status", json={"status": "active"})

        all_names = [s["name"] for s in client.get("/api/strategies").json()["strategies"]]
        active = client.get("/api/strategies", params={"status": "active"}).json()["strategies"]

        assert all_names == ["btc-momentum", "eth-swing"]
        assert [s["name"] for s in active] == ["eth-swing"]

    def test_list_invalid_status(self, client):
        assert client.get("/api/strategies", params={"status": "running"}).status_code == 422

    def test_get_strategy(self, client):
        client.post("/api/strategies", json=STRATEGY_BODY)

        assert client.get("/api/strategies/btc-momentum").json()["interval"] == "4h"

        missing = client.get("/api/strategies/missing")
        assert missing.status_code == 404
        assert missing.json()["error"] == "not_found"

    def test_patch_strategy(self, client):
        client.post("/api/strategies", json=STRATEGY_BODY)

        response = client.patch("/api/strategies/btc-momentum", json={
            "description": "Tighter",
            "riskParams": {"takeProfit": 0.08},
        })

        assert response.status_code == 200
        body = response.json()
        assert body["version"] == 2
        assert body["description"] == "Tighter"
        assert body["riskParams"]["stopLoss"] == 0.03
        assert body["riskParams"]["takeProfit"] == 0.08

    def test_patch_cannot_rename(self, client):
        client.post("/api/strategies", json=STRATEGY_BODY)
        response = client.patch("/api/strategies/btc-momentum", json={"name": "other"})
        assert response.status_code == 422

    def test_invalid_transition(self, client):
        client.post("/api/strategies", json=STRATEGY_BODY)

        response = client.post("/api/strategies/btc-momentum/status", json={"status": "paused"})

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    def test_archived_strategy_is_read_only(self, client):
        client.post("/api/strategies", json=STRATEGY_BODY)
        client.post("/api/strategies/btc-momentum/status", json={"status": "archived"})

        response = client.patch("/api/strategies/btc-momentum", json={"description": "x"})
        assert response.status_code == 409
        assert response.json()["error"] == "archived"

    def test_delete_strategy(self, client):
        client.post("/api/strategies", json=STRATEGY_BODY)

        assert client.delete("/api/strategies/btc-momentum").status_code == 204
        assert client.get("/api/strategies/btc-momentum").status_code == 404
        assert client.delete("/api/strategies/btc-momentum").status_code == 404


class TestAnalysisEndpoints:
    """Analysis ingestion and query endpoints."""

    def test_post_and_query(self, client, sample_analysis):
        client.post("/api/strategies", json=STRATEGY_BODY)

        created = client.post("/api/analysis/btc-momentum", json=sample_analysis)
        assert created.status_code == 201
        assert created.json()["strategyId"] == "btc-momentum"

        response = client.get("/api/analysis/btc-momentum", params={"symbol": "BTC-USD"})
        assert response.status_code == 200
        body = response.json()
        assert body["latest"]["id"] == created.json()["id"]
        assert len(body["records"]) == 1
        assert body["stats"]["records_by_signal"] == {"buy": 1}

    def test_post_invalid_record(self, client, sample_analysis):
        client.post("/api/strategies", json=STRATEGY_BODY)

        response = client.post("/api/analysis/btc-momentum", json={**sample_analysis, "confidence": 2})

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "invalid_analysis"
        assert body["details"] == [{"field": "confidence", "message": "Must be a number between 0 and 1"}]

    def test_post_non_finite_data_rejected(self, client, sample_analysis):
        client.post("/api/strategies", json=STRATEGY_BODY)
        body = json.dumps({**sample_analysis, "data": {"rsi": float("nan")}})

        response = client.post(
            "/api/analysis/btc-momentum",
            content=body,
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 422
        assert response.json()["details"][0]["field"] == "data"

        history = client.get("/api/analysis/btc-momentum")
        assert history.status_code == 200
        assert history.json()["records"] == []

    def test_post_for_unknown_strategy(self, client, sample_analysis):
        assert client.post("/api/analysis/missing", json=sample_analysis).status_code == 404

    def test_post_for_archived_strategy(self, client, sample_analysis):
        client.post("/api/strategies", json=STRATEGY_BODY)
        client.post("/api/strategies/btc-momentum/status", json={"status": "archived"})

        assert client.post("/api/analysis/btc-momentum", json=sample_analysis).status_code == 409

    def test_query_with_bad_timestamp(self, client):
        client.post("/api/strategies", json=STRATEGY_BODY)

        response = client.get("/api/analysis/btc-momentum", params={"start": "last tuesday"})
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_data"

    def test_query_limit_bounds(self, client):
        client.post("/api/strategies", json=STRATEGY_BODY)
        assert client.get("/api/analysis/btc-momentum", params={"limit": 0}).status_code == 422


class TestMarketAndHealth:
    """Quote and health endpoints."""

    def test_quote(self, client):
        response = client.get("/api/market/btc-usd")

        assert response.status_code == 200
        assert response.json()["symbol"] == "BTC-USD"
        assert response.json()["stale"] is False

    def test_quote_unavailable(self, client, source):
        source.down = True

        response = client.get("/api/market/BTC-USD")

        assert response.status_code == 503
        assert response.json()["error"] == "data_unavailable"
        assert response.json()["details"][0]["field"] == "sources.primary"

    def test_circuit_open_maps_to_503(self, client, service, monkeypatch):
        def reject(symbol):
            raise CircuitOpenError("source:primary", 4.2)

        monkeypatch.setattr(service, "get_quote", reject)

        response = client.get("/api/market/BTC-USD")
        assert response.status_code == 503
        assert response.headers["retry-after"] == "5"

    def test_health(self, client):
        client.post("/api/strategies", json=STRATEGY_BODY)

        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["strategies"]["total"] == 1
        assert "source:primary" in body["breakers"]
