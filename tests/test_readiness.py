"""
Tests for set readiness and the model/colorway dashboard.

Readiness for a size is the minimum allocated quantity across the
components required by the model.
"""

import pytest

from footwear_erp import DashboardScope, InstructionDraft, OrderStatus
from footwear_erp.domain import ComponentAllocation, Instruction, SizeBreakdown
from footwear_erp.readiness import instruction_progress

from tests.conftest import ALL_COMPONENTS, DUE, create_two_instruction_order, instruction


def _breakdown(size: str, required: int, **allocated: int) -> SizeBreakdown:
    allocation = ComponentAllocation.for_components(ALL_COMPONENTS)
    for component_id, quantity in allocated.items():
        allocation.add(component_id, quantity)
    return SizeBreakdown(
        id=f"i1:{size}",
        instruction_id="i1",
        size=size,
        required_quantity=required,
        allocated=allocation,
    )


class TestSetsReady:
    """Complete sets are limited by the scarcest component."""

    def test_minimum_across_required_components(self):
        breakdown = _breakdown("9", 100, p1=50, p2=30)

        assert breakdown.sets_ready(["p1", "p2"]) == 30

    def test_missing_component_means_no_sets(self):
        breakdown = _breakdown("9", 100, p1=50, p2=30)

        assert breakdown.sets_ready(ALL_COMPONENTS) == 0

    def test_no_required_components_means_no_sets(self):
        assert _breakdown("9", 100, p1=50).sets_ready([]) == 0

    def test_sets_bounded_by_required_quantity(self):
        breakdown = _breakdown("9", 40, p1=40, p2=40, p3=40, p4=40)

        assert breakdown.sets_ready(ALL_COMPONENTS) == 40


class TestInstructionProgress:
    def test_percentages_from_sets_and_shipments(self):
        sizes = [
            _breakdown("8", 100, p1=100, p2=100, p3=100, p4=60),
            _breakdown("9", 100, p1=20, p2=20, p3=20, p4=20),
        ]
        sizes[0].shipped_pairs = 50
        item = Instruction(id="i1", order_id="o1", instruction_number="I1", lot_number="L")

        progress = instruction_progress(item, sizes, ALL_COMPONENTS)

        assert progress.total_pairs == 200
        assert progress.sets_ready == 80
        assert progress.material_ready_pct == pytest.approx(40.0)
        assert progress.shipped_pct == pytest.approx(25.0)
        assert [size.sets_ready for size in progress.sizes] == [60, 20]

    def test_zero_pairs_yield_zero_percent(self):
        item = Instruction(id="i1", order_id="o1", instruction_number="I1", lot_number="L")

        progress = instruction_progress(item, [_breakdown("9", 0)], ALL_COMPONENTS)

        assert progress.material_ready_pct == 0.0
        assert progress.shipped_pct == 0.0


class TestDashboard:
    def test_groups_by_model_and_colorway(self, service):
        create_two_instruction_order(service, order_number="O1")
        service.create_order(
            "O2", "C", "m2", "c3", DUE, [InstructionDraft("J1", "L", {"7": 10})], "tester"
        )
        service.create_order(
            "O3", "C", "m1", "c1", DUE, [InstructionDraft("K1", "L", {"9": 10})], "tester"
        )

        groups = service.compute_dashboard()

        assert [(g.model.id, g.colorway.id) for g in groups] == [("m1", "c1"), ("m2", "c3")]
        first = groups[0]
        assert first.total_orders == 2
        assert first.total_pairs == 50
        assert [p.instruction_number for p in first.instructions] == ["I1", "I2", "K1"]

    def test_material_ready_reflects_all_components(self, scenario):
        for component_id in ALL_COMPONENTS:
            scenario.allocate("m1", "c1", component_id, {"9": 30}, "B1", "wh")

        [group] = scenario.compute_dashboard()
        ready = {p.instruction_number: p.material_ready_pct for p in group.instructions}

        assert ready == {"I1": pytest.approx(100.0), "I2": pytest.approx(50.0)}

    def test_bill_of_materials_limits_required_components(self, service):
        service.registry.define_bill_of_materials("m1", ["p1", "p2"])
        create_two_instruction_order(service)
        service.allocate("m1", "c1", "p1", {"9": 20}, "B1", "wh")
        service.allocate("m1", "c1", "p2", {"9": 10}, "B1", "wh")

        [group] = service.compute_dashboard()

        assert group.instructions[0].sets_ready == 10

    def test_progress_is_weighted_by_pairs(self, service):
        service.create_order(
            "O1", "C", "m1", "c1", DUE,
            [
                InstructionDraft("BIG", "L1", {"9": 300}),
                InstructionDraft("SMALL", "L2", {"9": 100}),
            ],
            "tester",
        )
        service.record_shipment(instruction(service, "SMALL").id, "9", 100, "wh")

        [group] = service.compute_dashboard()

        assert group.progress_pct == pytest.approx(25.0)

    def test_scope_selects_active_or_completed(self, service):
        create_two_instruction_order(service, order_number="O1")
        service.create_order(
            "O2", "C", "m2", "c3", DUE, [InstructionDraft("J1", "L", {"7": 10})], "tester"
        )
        done = service.orders.find_order("O2")
        service.update_order_status(done.id, OrderStatus.COMPLETED, "planner")

        active = service.compute_dashboard(DashboardScope.ACTIVE)
        completed = service.compute_dashboard("COMPLETED")

        assert [g.model.id for g in active] == ["m1"]
        assert [g.model.id for g in completed] == ["m2"]

    def test_planning_orders_count_as_active(self, service):
        service.create_order(
            "O1", "C", "m1", "c1", DUE, [InstructionDraft("I1", "L", {"9": 10})], "tester",
            status=OrderStatus.PLANNING,
        )

        assert len(service.compute_dashboard()) == 1

    def test_empty_repository_gives_no_groups(self, service):
        assert service.compute_dashboard() == []

    def test_dashboard_is_read_only_and_repeatable(self, scenario):
        scenario.allocate("m1", "c1", "p1", {"9": 25}, "B1", "wh")
        movements = len(scenario.list_movements())
        audit = len(scenario.audit_entries())

        first = scenario.compute_dashboard()
        second = scenario.compute_dashboard()

        assert first == second
        assert len(scenario.list_movements()) == movements
        assert len(scenario.audit_entries()) == audit

    def test_half_and_letter_sizes_are_reported(self, service):
        service.create_order(
            "O1", "C", "m1", "c1", DUE,
            [InstructionDraft("I1", "L", {"9.5": 10, "M": 10})],
            "tester",
        )
        for component_id in ALL_COMPONENTS:
            service.allocate("m1", "c1", component_id, {"9.5 ": 10, " M": 4}, "B1", "wh")

        [group] = service.compute_dashboard()
        [progress] = group.instructions

        assert [(s.size, s.sets_ready) for s in progress.sizes] == [("9.5", 10), ("M", 4)]
        assert progress.material_ready_pct == pytest.approx(70.0)

    def test_newly_required_component_is_listed_at_zero(self, scenario):
        scenario.registry.register_component("LACE", "Laces", component_id="p5")

        [group] = scenario.compute_dashboard()
        [size] = group.instructions[0].sizes

        assert size.allocated == {"p1": 0, "p2": 0, "p3": 0, "p4": 0, "p5": 0}
