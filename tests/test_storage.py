"""
Tests for SQLite persistence and transactional mutations.
"""

import sqlite3

import pytest

from footwear_erp import ERPService, InstructionStatus
from footwear_erp.domain import ShoeModel
from footwear_erp.repository import (
    COLLECTIONS,
    DuplicateRecordError,
    PersistenceError,
    RecordNotFoundError,
)
from footwear_erp.storage import ERPDatabase

from tests.conftest import allocated, create_two_instruction_order, instruction


class TestSQLiteRepository:
    def test_crud_round_trip(self, sqlite_database):
        models = sqlite_database.models
        models.add("m1", ShoeModel(id="m1", code="A", description="first"))
        models.add("m2", ShoeModel(id="m2", code="B", description="second"))
        models.upsert("m1", ShoeModel(id="m1", code="A", description="updated"))

        assert len(models) == 2
        assert "m1" in models
        assert models.get("m1").description == "updated"
        assert models.find("missing") is None
        assert [m.id for m in models.list()] == ["m1", "m2"]
        assert models.first(lambda m: m.code == "B").id == "m2"

    def test_duplicates_and_missing_records_raise(self, sqlite_database):
        sqlite_database.models.add("m1", ShoeModel(id="m1", code="A", description=""))

        with pytest.raises(DuplicateRecordError):
            sqlite_database.models.add("m1", ShoeModel(id="m1", code="A", description=""))
        with pytest.raises(RecordNotFoundError):
            sqlite_database.models.get("m9")


class TestDurability:
    def test_state_survives_reopen(self, tmp_path):
        path = str(tmp_path / "erp.sqlite3")
        with ERPDatabase(path) as database:
            erp = ERPService(database)
            erp.ensure_reference_data()
            create_two_instruction_order(erp)
            erp.allocate("m1", "c1", "p1", {"9": 50}, "B1", "wh")

        with ERPDatabase(path) as database:
            reopened = ERPService(database)
            assert reopened.ensure_reference_data() is False
            assert allocated(reopened, "I1", "9", "p1") == 20
            assert allocated(reopened, "I2", "9", "p1") == 20
            assert reopened.allocation.free_stock_quantity("m1", "c1", "p1", "9") == 10
            assert instruction(reopened, "I1").status == InstructionStatus.MATERIAL_READY
            assert len(reopened.list_movements()) == 3
            assert [e.action for e in reopened.audit_entries()] == ["STOCK_IN", "CREATE", "INIT"]

    def test_sqlite_matches_in_memory_allocation(self, sqlite_service, service):
        for erp in (sqlite_service, service):
            create_two_instruction_order(erp)
            erp.allocate("m1", "c1", "p1", {"9": 25}, "B1", "wh")

        for number in ("I1", "I2"):
            assert allocated(sqlite_service, number, "9", "p1") == allocated(
                service, number, "9", "p1"
            )


class TestTransactions:
    def test_failed_commit_rolls_back_and_raises(self, sqlite_service, monkeypatch):
        create_two_instruction_order(sqlite_service)
        database = sqlite_service.database
        audit_before = len(sqlite_service.audit_entries())

        def failing_commit():
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(database, "_commit", failing_commit)

        with pytest.raises(PersistenceError):
            sqlite_service.allocate("m1", "c1", "p1", {"9": 50}, "B1", "wh")

        monkeypatch.undo()
        assert allocated(sqlite_service, "I1", "9", "p1") == 0
        assert sqlite_service.list_movements() == []
        assert sqlite_service.list_free_stock() == []
        assert len(sqlite_service.audit_entries()) == audit_before
        assert instruction(sqlite_service, "I1").status == InstructionStatus.PENDING

    def test_error_inside_mutation_rolls_back(self, sqlite_service):
        create_two_instruction_order(sqlite_service)
        i1 = instruction(sqlite_service, "I1")
        sqlite_service.record_shipment(i1.id, "9", 15, "wh")

        with pytest.raises(ValueError):
            sqlite_service.record_shipment(i1.id, "9", 10, "wh")

        assert sqlite_service.orders.size_breakdown(i1.id, "9").shipped_pairs == 15
        assert len(sqlite_service.list_movements()) == 1

    def test_nested_transactions_commit_once(self, sqlite_database):
        with sqlite_database.transaction():
            with sqlite_database.transaction():
                sqlite_database.models.add("m1", ShoeModel(id="m1", code="A", description=""))
            assert sqlite_database.connection.in_transaction

        assert not sqlite_database.connection.in_transaction
        assert "m1" in sqlite_database.models

    def test_service_is_usable_after_failed_commit(self, sqlite_service, monkeypatch):
        create_two_instruction_order(sqlite_service)

        def failing_commit():
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(sqlite_service.database, "_commit", failing_commit)
        with pytest.raises(PersistenceError):
            sqlite_service.allocate("m1", "c1", "p1", {"9": 5}, "B1", "wh")
        monkeypatch.undo()

        result = sqlite_service.allocate("m1", "c1", "p1", {"9": 5}, "B1", "wh")
        assert result.total_allocated == 5


class TestSnapshot:
    def test_snapshot_lists_every_collection(self, scenario):
        scenario.allocate("m1", "c1", "p1", {"9": 50}, "B1", "wh")

        state = scenario.snapshot()

        assert set(state) == set(COLLECTIONS)
        assert len(state["orders"]) == 1
        assert len(state["stock_movements"]) == 3
        assert [entry["action"] for entry in state["audit_log"]] == ["STOCK_IN", "CREATE", "INIT"]
        assert state["free_stock"][0]["quantity"] == 10
