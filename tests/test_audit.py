"""
Tests for the append-only audit log.
"""

from footwear_erp.audit import AuditLog
from footwear_erp.repository import InMemoryRepository


class TestAuditLog:
    def test_entries_are_newest_first(self):
        log = AuditLog(InMemoryRepository())
        log.record("alice", "CREATE", "first")
        log.record("bob", "UPDATE", "second")
        log.record("carol", "DELETE", "third")

        assert [e.details for e in log.entries()] == ["third", "second", "first"]
        assert [e.actor for e in log.entries(limit=2)] == ["carol", "bob"]
        assert len(log) == 3

    def test_zero_limit_returns_nothing(self):
        log = AuditLog(InMemoryRepository())
        log.record("alice", "CREATE", "first")

        assert log.entries(limit=0) == []
        assert len(log.entries(limit=None)) == 1

    def test_entries_have_unique_ids(self):
        log = AuditLog(InMemoryRepository())
        first = log.record("alice", "CREATE", "x")
        second = log.record("alice", "CREATE", "x")

        assert first.id != second.id
        assert second.timestamp >= first.timestamp

    def test_seeding_is_recorded_once(self, service):
        assert service.ensure_reference_data() is False

        actions = [entry.action for entry in service.audit_entries()]
        assert actions == ["INIT"]

    def test_rejected_operations_are_not_audited(self, scenario):
        before = len(scenario.audit_entries())

        scenario.allocate("m1", "c1", "p1", {"9": 0}, "B1", "wh")
        scenario.create_schedule("Line A", "missing", None, 5, "planner")
        scenario.advance_schedule("missing", "CONFIRMED", "planner")
        scenario.record_shipment("missing", "9", 1, "wh")

        assert len(scenario.audit_entries()) == before
