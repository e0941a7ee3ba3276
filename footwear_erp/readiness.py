"""Set readiness per size and the model/colorway progress dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .domain import (
    Colorway,
    DashboardScope,
    Instruction,
    InstructionStatus,
    Order,
    OrderStatus,
    ShoeModel,
    SizeBreakdown,
)
from .registry import DomainRegistry


@dataclass(slots=True)
class SizeReadiness:
    """Read-only view of one size breakdown."""

    size: str
    required_quantity: int
    sets_ready: int
    allocated: Dict[str, int]
    scheduled_pairs: int
    produced_pairs: int
    shipped_pairs: int


@dataclass(slots=True)
class InstructionProgress:
    """Material readiness and shipping progress of one instruction."""

    instruction_id: str
    instruction_number: str
    lot_number: str
    status: InstructionStatus
    priority: int
    total_pairs: int
    sets_ready: int
    shipped_pairs: int
    material_ready_pct: float
    shipped_pct: float
    sizes: List[SizeReadiness] = field(default_factory=list)


@dataclass(slots=True)
class DashboardGroup:
    """Progress of all orders for one model/colorway pair."""

    model: ShoeModel
    colorway: Colorway
    total_orders: int = 0
    total_pairs: int = 0
    progress_pct: float = 0.0
    instructions: List[InstructionProgress] = field(default_factory=list)


def _percent(part: float, whole: float) -> float:
    return 100.0 * part / whole if whole > 0 else 0.0


def instruction_progress(
    instruction: Instruction,
    breakdowns: Sequence[SizeBreakdown],
    required_components: Sequence[str],
) -> InstructionProgress:
    """Roll the size breakdowns of one instruction up into percentages."""

    sizes = [
        SizeReadiness(
            size=breakdown.size,
            required_quantity=breakdown.required_quantity,
            sets_ready=breakdown.sets_ready(required_components),
            allocated={c: breakdown.allocated[c] for c in required_components},
            scheduled_pairs=breakdown.scheduled_pairs,
            produced_pairs=breakdown.produced_pairs,
            shipped_pairs=breakdown.shipped_pairs,
        )
        for breakdown in breakdowns
    ]
    total_pairs = sum(size.required_quantity for size in sizes)
    sets_ready = sum(size.sets_ready for size in sizes)
    shipped = sum(size.shipped_pairs for size in sizes)
    return InstructionProgress(
        instruction_id=instruction.id,
        instruction_number=instruction.instruction_number,
        lot_number=instruction.lot_number,
        status=instruction.status,
        priority=instruction.priority,
        total_pairs=total_pairs,
        sets_ready=sets_ready,
        shipped_pairs=shipped,
        material_ready_pct=_percent(sets_ready, total_pairs),
        shipped_pct=_percent(shipped, total_pairs),
        sizes=sizes,
    )


class ReadinessEngine:
    """Pure read views computed from the current repository state."""

    def __init__(self, database, registry: DomainRegistry) -> None:
        self._db = database
        self._registry = registry

    def _breakdowns_by_instruction(self) -> Dict[str, List[SizeBreakdown]]:
        grouped: Dict[str, List[SizeBreakdown]] = {}
        for breakdown in self._db.size_breakdowns:
            grouped.setdefault(breakdown.instruction_id, []).append(breakdown)
        return grouped

    def progress_for(self, instruction_id: str) -> Optional[InstructionProgress]:
        instruction = self._db.instructions.find(instruction_id)
        if instruction is None:
            return None
        order = self._db.orders.get(instruction.order_id)
        breakdowns = [
            b for b in self._db.size_breakdowns if b.instruction_id == instruction_id
        ]
        return instruction_progress(
            instruction, breakdowns, self._registry.required_components(order.model_id)
        )

    def compute_dashboard(
        self, scope: Union[DashboardScope, str] = DashboardScope.ACTIVE
    ) -> List[DashboardGroup]:
        """Group orders in scope by model/colorway with readiness figures.

        Groups keep the order of their first contributing order and
        instructions keep repository order. Orders referencing unknown
        reference data are left out.
        """

        scope = DashboardScope(scope)
        if scope is DashboardScope.ACTIVE:
            orders = [o for o in self._db.orders if o.status != OrderStatus.COMPLETED]
        else:
            orders = [o for o in self._db.orders if o.status == OrderStatus.COMPLETED]

        breakdowns = self._breakdowns_by_instruction()
        instructions_by_order: Dict[str, List[Instruction]] = {}
        for instruction in self._db.instructions:
            instructions_by_order.setdefault(instruction.order_id, []).append(instruction)

        groups: Dict[Tuple[str, str], DashboardGroup] = {}
        for order in orders:
            group = self._group_for(order, groups)
            if group is None:
                continue
            group.total_orders += 1
            group.total_pairs += order.total_pairs
            required = self._registry.required_components(order.model_id)
            for instruction in instructions_by_order.get(order.id, []):
                group.instructions.append(
                    instruction_progress(
                        instruction, breakdowns.get(instruction.id, []), required
                    )
                )

        for group in groups.values():
            shipped = sum(
                progress.shipped_pct / 100 * progress.total_pairs
                for progress in group.instructions
            )
            group.progress_pct = _percent(shipped, group.total_pairs)
        return list(groups.values())

    def _group_for(
        self, order: Order, groups: Dict[Tuple[str, str], DashboardGroup]
    ) -> Optional[DashboardGroup]:
        key = (order.model_id, order.colorway_id)
        if key in groups:
            return groups[key]
        model = self._registry.model(order.model_id)
        colorway = self._registry.colorway(order.colorway_id)
        if model is None or colorway is None:
            return None
        groups[key] = DashboardGroup(model=model, colorway=colorway)
        return groups[key]


__all__ = [
    "DashboardGroup",
    "InstructionProgress",
    "ReadinessEngine",
    "SizeReadiness",
    "instruction_progress",
]
