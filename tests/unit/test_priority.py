"""Tests for purchase priority classification."""

from ticket_engine.tickets.priority import HIGH, NORMAL, VIP, classify_priority


class TestClassifyPriority:
    def test_vip_at_threshold(self):
        assert classify_priority(10_000, 1) == VIP

    def test_vip_wins_over_bulk(self):
        assert classify_priority(25_000, 8) == VIP

    def test_bulk_quantity_is_high(self):
        assert classify_priority(5_000, 5) == HIGH

    def test_normal(self):
        assert classify_priority(9_999, 4) == NORMAL

    def test_free_ticket_is_normal(self):
        assert classify_priority(0, 1) == NORMAL

    def test_custom_thresholds(self):
        assert classify_priority(500, 1, vip_threshold_cents=500) == VIP
        assert classify_priority(100, 2, bulk_quantity_threshold=2) == HIGH
