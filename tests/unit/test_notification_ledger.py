"""
Tests for NotificationLedger
============================
Idempotent inserts, delivery flags, retention cleanup and capping.
"""

import pytest

from volume_cross.domain.models.notifications import NotificationType
from volume_cross.domain.models.signals import CrossType
from volume_cross.domain.services.notification_ledger import NotificationLedger

pytestmark = [pytest.mark.unit, pytest.mark.fast]

T0 = 1_700_000_000_000


@pytest.fixture
def ledger(mock_logger, clock):
    return NotificationLedger(clock=clock, logger=mock_logger)


class TestAdd:

    def test_add_builds_notification(self, ledger, golden_event):
        assert ledger.add(golden_event, now=T0) is True

        [notification] = ledger.all()
        assert notification.id == f"bybit-BTC-{T0}"
        assert notification.type == NotificationType.GOLDEN_CROSS
        assert notification.message == "BTC (BYBIT)"
        assert notification.ma_fast == 102.0
        assert notification.prev_ma_fast == 95.0
        assert notification.notified is False
        assert notification.created_at == T0

    def test_duplicate_id_is_ignored(self, ledger, golden_event):
        ledger.add(golden_event, now=T0)

        assert ledger.add(golden_event, now=T0 + 1000) is False
        assert len(ledger.all()) == 1

    def test_most_recent_first(self, ledger, cross_event_factory):
        ledger.add(cross_event_factory(symbol="BTC"), now=T0)
        ledger.add(cross_event_factory(symbol="ETH"), now=T0 + 1)

        assert [n.symbol for n in ledger.all()] == ["ETH", "BTC"]

    def test_capped_to_max_entries(self, mock_logger, cross_event_factory):
        ledger = NotificationLedger(max_entries=3, logger=mock_logger)

        for i in range(5):
            ledger.add(cross_event_factory(timestamp=T0 + i), now=T0)

        assert [n.timestamp for n in ledger.all()] == [T0 + 4, T0 + 3, T0 + 2]


class TestDelivery:

    def test_mark_notified(self, ledger, cross_event_factory):
        ledger.add(cross_event_factory(symbol="BTC"), now=T0)
        ledger.add(cross_event_factory(symbol="ETH"), now=T0)

        marked = ledger.mark_notified([f"bybit-BTC-{T0}", "unknown-id"])

        assert marked == 1
        assert [n.symbol for n in ledger.unnotified()] == ["ETH"]

    def test_marking_twice_counts_once(self, ledger, golden_event):
        ledger.add(golden_event, now=T0)

        assert ledger.mark_notified([golden_event.symbol_key]) == 0
        assert ledger.mark_notified([f"bybit-BTC-{T0}"]) == 1
        assert ledger.mark_notified([f"bybit-BTC-{T0}"]) == 0

    def test_unnotified_returns_copies(self, ledger, golden_event):
        ledger.add(golden_event, now=T0)

        ledger.unnotified()[0].notified = True

        assert len(ledger.unnotified()) == 1


class TestCleanupAndStats:

    def test_cleanup_drops_old_entries_regardless_of_delivery(self, ledger, cross_event_factory):
        ledger.add(cross_event_factory(symbol="OLD"), now=T0)
        ledger.add(cross_event_factory(symbol="NEW"), now=T0 + 300_000)
        ledger.mark_notified([f"bybit-OLD-{T0}"])

        removed = ledger.cleanup(now=T0 + 600_001)

        assert removed == 1
        assert [n.symbol for n in ledger.all()] == ["NEW"]

    def test_cleanup_keeps_entry_at_boundary(self, ledger, golden_event):
        ledger.add(golden_event, now=T0)

        assert ledger.cleanup(now=T0 + 600_000) == 0

    def test_stats(self, ledger, cross_event_factory):
        ledger.add(cross_event_factory(symbol="BTC"), now=T0)
        ledger.add(cross_event_factory(symbol="ETH", cross_type=CrossType.DEATH), now=T0)
        ledger.add(cross_event_factory(symbol="SOL"), now=T0)
        ledger.mark_notified([f"bybit-BTC-{T0}"])

        stats = ledger.stats()

        assert stats.total == 3
        assert stats.unnotified == 2
        assert stats.notified == 1
        assert stats.golden_crosses == 2
        assert stats.death_crosses == 1
        assert stats.model_dump(by_alias=True)["goldenCrosses"] == 2

    def test_clear(self, ledger, golden_event):
        ledger.add(golden_event, now=T0)

        assert ledger.clear() == 1
        assert ledger.stats().total == 0
