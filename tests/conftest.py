"""
Shared fixtures for the footwear production tracker test suite.

The catalog comes from the seed data: model ``m1`` with colorways ``c1``
and ``c2``, model ``m2`` with colorway ``c3``, and components ``p1`` to
``p4`` (all required unless a test defines a bill of materials).
"""

from datetime import date

import pytest

from footwear_erp import ERPService, InstructionDraft
from footwear_erp.logging_config import reset_logging
from footwear_erp.storage import ERPDatabase

DUE = date(2026, 11, 30)
ALL_COMPONENTS = ("p1", "p2", "p3", "p4")


@pytest.fixture(autouse=True)
def _clean_logging():
    yield
    reset_logging()


@pytest.fixture
def service() -> ERPService:
    erp = ERPService()
    erp.ensure_reference_data()
    return erp


@pytest.fixture
def sqlite_database(tmp_path):
    database = ERPDatabase(str(tmp_path / "erp.sqlite3"))
    yield database
    database.close()


@pytest.fixture
def sqlite_service(sqlite_database) -> ERPService:
    erp = ERPService(sqlite_database)
    erp.ensure_reference_data()
    return erp


def create_two_instruction_order(erp: ERPService, *, order_number: str = "O1"):
    """Order O1 with I1 (priority 1) and I2 (priority 2), size 9 x 20 each."""

    return erp.create_order(
        order_number,
        "Seno Sports Int.",
        "m1",
        "c1",
        DUE,
        [
            InstructionDraft("I1", "LOT-1", {"9": 20}, priority=1),
            InstructionDraft("I2", "LOT-2", {"9": 20}, priority=2),
        ],
        "tester",
    )


@pytest.fixture
def scenario(service):
    create_two_instruction_order(service)
    return service


def instruction(erp: ERPService, number: str):
    found = erp.orders.find_instruction(number)
    assert found is not None, number
    return found


def allocated(erp: ERPService, number: str, size: str, component_id: str) -> int:
    breakdown = erp.orders.size_breakdown(instruction(erp, number).id, size)
    assert breakdown is not None
    return breakdown.allocated[component_id]
