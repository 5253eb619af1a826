"""
Notification API Tests
"""

import pytest
from fastapi.testclient import TestClient

from volume_cross.api.unified_server import create_app
from volume_cross.domain.models.signals import CrossType
from volume_cross.infrastructure.config.settings import AppSettings
from volume_cross.infrastructure.container import Container

pytestmark = [pytest.mark.api, pytest.mark.fast]

T0 = 1_700_000_000_000


@pytest.fixture
def container(mock_gateway, clock, mock_logger):
    return Container(AppSettings(), gateway=mock_gateway, clock=clock, logger=mock_logger)


@pytest.fixture
def client(container):
    with TestClient(create_app(container, start_background_jobs=False)) as test_client:
        yield test_client


@pytest.fixture
def ledger(container, cross_event_factory):
    ledger = container.notification_ledger
    ledger.add(cross_event_factory(symbol="BTC"), now=T0)
    ledger.add(cross_event_factory(symbol="ETH", cross_type=CrossType.DEATH), now=T0)
    return ledger


class TestRecentCrosses:

    def test_returns_and_marks_unnotified(self, client, ledger):
        first = client.get("/api/notifications/recent-crosses").json()

        assert first["success"] is True
        assert first["count"] == 2
        assert {c["symbol"] for c in first["crosses"]} == {"BTC", "ETH"}
        assert {c["type"] for c in first["crosses"]} == {"golden_cross", "death_cross"}

        second = client.get("/api/notifications/recent-crosses").json()
        assert second["count"] == 0

    def test_mark_false_leaves_them_pending(self, client, ledger):
        client.get("/api/notifications/recent-crosses", params={"mark": "false"})

        assert client.get("/api/notifications/recent-crosses").json()["count"] == 2

    def test_crosses_use_camel_case(self, client, ledger):
        crosses = client.get("/api/notifications/recent-crosses").json()["crosses"]

        btc = next(c for c in crosses if c["symbol"] == "BTC")
        assert btc["id"] == f"bybit-BTC-{btc['timestamp']}"
        assert btc["createdAt"] == T0
        assert {"maFast", "maSlow", "prevMaFast", "prevMaSlow"} <= btc.keys()
        assert "ma_fast" not in btc

    def test_empty_ledger(self, client):
        body = client.get("/api/notifications/recent-crosses").json()

        assert body["crosses"] == []
        assert body["count"] == 0


class TestLedgerEndpoints:

    def test_all_includes_stats(self, client, ledger):
        client.get("/api/notifications/recent-crosses")

        body = client.get("/api/notifications/all").json()

        assert len(body["notifications"]) == 2
        assert body["stats"] == {
            "total": 2, "unnotified": 0, "notified": 2, "goldenCrosses": 1, "deathCrosses": 1
        }

    def test_stats(self, client, ledger):
        stats = client.get("/api/notifications/stats").json()["stats"]

        assert stats["total"] == 2
        assert stats["unnotified"] == 2

    def test_clear(self, client, ledger):
        body = client.delete("/api/notifications/clear").json()

        assert body["success"] is True
        assert body["removed"] == 2
        assert client.get("/api/notifications/stats").json()["stats"]["total"] == 0
