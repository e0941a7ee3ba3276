"""Demonstration script for the footwear production tracker."""

from __future__ import annotations

from datetime import date, timedelta
from pprint import pprint

from . import ERPService, InstructionDraft
from .logging_config import configure_logging


def main() -> None:
    configure_logging()
    erp = ERPService()
    erp.ensure_reference_data()

    model = erp.registry.model_by_code("ATM-C26227")
    colorway = erp.registry.colorway_by_code("BLK/GLD", model.id)
    midsole = erp.registry.list_components()[0]

    # Two instructions competing for the same sizes
    order = erp.create_order(
        order_number="BZ2509300073",
        customer="Seno Sports Int.",
        model_id=model.id,
        colorway_id=colorway.id,
        due_date=date.today() + timedelta(days=14),
        instructions=[
            InstructionDraft("AB17930", "112627713-1", {"8": 120, "9": 120}, priority=1),
            InstructionDraft("AB17931", "112627713-2", {"8": 60, "9": 60}, priority=2),
        ],
        actor="planner",
    )
    print(f"Order {order.order_number}: {order.total_pairs} pairs")

    # Stock receipt for one component
    receipt = erp.allocate(
        model.id, colorway.id, midsole.id, {"8": 150, "9": 200}, "B-0001", "wh"
    )
    print("\nReceipt")
    for line in receipt.sizes:
        split = ", ".join(
            f"{a.instruction_number}={a.quantity}" for a in line.allocations
        )
        print(f" - size {line.size}: {line.received} received -> {split}; free {line.to_free_stock}")

    # Complete sets for size 9 of the first instruction
    for component in erp.registry.list_components()[1:]:
        erp.allocate(model.id, colorway.id, component.id, {"9": 120}, "B-0002", "wh")

    print("\nReadiness")
    for group in erp.compute_dashboard():
        print(f" {group.model.code} {group.colorway.name}: {group.progress_pct:.1f}% shipped")
        for progress in group.instructions:
            print(
                f"   {progress.instruction_number} [{progress.status.value}]"
                f" material ready {progress.material_ready_pct:.1f}%"
            )

    # Put the ready instruction on a line
    candidate = erp.schedulable_instructions()[0]
    schedule = erp.create_schedule(
        "Line A", candidate.instruction.id, date.today() + timedelta(days=1), 100, "planner"
    )
    erp.advance_schedule(schedule.id, "CONFIRMED", "planner")

    print("\nFree stock")
    pprint([(item.component_id, item.size, item.quantity) for item in erp.list_free_stock()])

    print("\nAudit log")
    for entry in erp.audit_entries():
        print(f" {entry.action:<16} {entry.details}")


if __name__ == "__main__":  # pragma: no cover - manual execution
    main()
