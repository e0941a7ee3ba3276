"""Core data structures for the footwear production order tracker."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple


class AllocationLimitError(ValueError):
    """Raised when an allocation would exceed the required quantity."""


class StatusTransitionError(ValueError):
    """Raised when a lifecycle status would move backward."""


class Role(str, Enum):
    """Account roles known to the system."""

    ADMIN = "ADMIN"
    PLANNER = "PLANNER"
    WAREHOUSE = "WAREHOUSE"
    SALES = "SALES"


class OrderStatus(str, Enum):
    """Lifecycle stages for a customer order."""

    PLANNING = "PLANNING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"

    @property
    def rank(self) -> int:
        return _ORDER_STATUS_RANK[self]


class InstructionStatus(str, Enum):
    """Lifecycle stages for a production instruction."""

    PENDING = "PENDING"
    MATERIAL_READY = "MATERIAL_READY"
    SCHEDULED = "SCHEDULED"
    PRODUCTION = "PRODUCTION"
    PARTIAL_SHIPPED = "PARTIAL_SHIPPED"
    SHIPPED = "SHIPPED"

    @property
    def rank(self) -> int:
        return _INSTRUCTION_STATUS_RANK[self]


class ScheduleStatus(str, Enum):
    """Lifecycle stages for a production schedule entry."""

    PLANNED = "PLANNED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"

    @property
    def rank(self) -> int:
        return _SCHEDULE_STATUS_RANK[self]


class MovementType(str, Enum):
    """Kinds of stock movement recorded in the ledger."""

    IN = "IN"
    ALLOCATE = "ALLOCATE"
    OUT = "OUT"
    PRODUCE = "PRODUCE"
    SHIP = "SHIP"


class DashboardScope(str, Enum):
    """Order selection used by the dashboard view."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


_ORDER_STATUS_RANK = {status: index for index, status in enumerate(OrderStatus)}
_INSTRUCTION_STATUS_RANK = {
    status: index for index, status in enumerate(InstructionStatus)
}
_SCHEDULE_STATUS_RANK = {status: index for index, status in enumerate(ScheduleStatus)}


@dataclass(slots=True)
class User:
    """Account used to attribute actions in the audit log."""

    id: str
    username: str
    name: str
    role: Role


@dataclass(slots=True)
class ShoeModel:
    """A footwear model, e.g. a running shoe style."""

    id: str
    code: str
    description: str


@dataclass(slots=True)
class Colorway:
    """A colour variant belonging to one model."""

    id: str
    model_id: str
    code: str
    name: str


@dataclass(slots=True)
class Component:
    """A physical part (sole, upper, ...) that goes into every pair."""

    id: str
    code: str
    name: str


@dataclass(slots=True)
class BillOfMaterials:
    """Components that make up one complete set for a model."""

    model_id: str
    component_ids: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.component_ids:
            raise ValueError("A bill of materials must list at least one component")
        if len(set(self.component_ids)) != len(self.component_ids):
            raise ValueError("Components in a bill of materials must be unique")


@dataclass(slots=True)
class Order:
    """A customer order for one model/colorway."""

    id: str
    order_number: str
    customer: str
    model_id: str
    colorway_id: str
    due_date: date
    status: OrderStatus = OrderStatus.IN_PROGRESS
    total_pairs: int = 0
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(slots=True)
class Instruction:
    """A production batch within an order."""

    id: str
    order_id: str
    instruction_number: str
    lot_number: str
    priority: int = 2
    status: InstructionStatus = InstructionStatus.PENDING
    sequence: int = 0
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def allocation_key(self) -> Tuple[int, int, str]:
        return (self.priority, self.sequence, self.instruction_number)


@dataclass(slots=True)
class ComponentAllocation:
    """Allocated quantity per required component for one size slot.

    Components required when the size breakdown is created start at zero.
    A component that becomes required later is added on its first
    allocation; until then it reads as zero. Quantities only ever grow.
    """

    quantities: Dict[str, int]

    @classmethod
    def for_components(cls, component_ids: Iterable[str]) -> "ComponentAllocation":
        component_ids = tuple(component_ids)
        if not component_ids:
            raise ValueError("At least one component is required")
        return cls(quantities={component_id: 0 for component_id in component_ids})

    def __post_init__(self) -> None:
        for component_id, quantity in self.quantities.items():
            if quantity < 0:
                raise ValueError(
                    f"Allocated quantity for {component_id!r} must not be negative"
                )

    def __contains__(self, component_id: object) -> bool:
        return component_id in self.quantities

    def __iter__(self) -> Iterator[str]:
        return iter(self.quantities)

    def __len__(self) -> int:
        return len(self.quantities)

    def __getitem__(self, component_id: str) -> int:
        return self.quantities.get(component_id, 0)

    def add(self, component_id: str, quantity: int) -> int:
        if quantity < 0:
            raise ValueError("Allocation increments must not be negative")
        self.quantities[component_id] = self.quantities.get(component_id, 0) + quantity
        return self.quantities[component_id]

    def as_dict(self) -> Dict[str, int]:
        return dict(self.quantities)


@dataclass(slots=True)
class SizeBreakdown:
    """Quantity and allocation state for one size within one instruction."""

    id: str
    instruction_id: str
    size: str
    required_quantity: int
    allocated: ComponentAllocation
    scheduled_pairs: int = 0
    produced_pairs: int = 0
    shipped_pairs: int = 0

    @staticmethod
    def make_id(instruction_id: str, size: str) -> str:
        return f"{instruction_id}:{size}"

    def outstanding(self, component_id: str) -> int:
        """Quantity of a component still needed for this size."""

        return max(self.required_quantity - self.allocated[component_id], 0)

    def allocate(self, component_id: str, quantity: int) -> int:
        if quantity > self.outstanding(component_id):
            raise AllocationLimitError(
                f"Cannot allocate {quantity} of {component_id!r} to size {self.size!r}:"
                f" only {self.outstanding(component_id)} outstanding"
            )
        return self.allocated.add(component_id, quantity)

    def sets_ready(self, component_ids: Iterable[str]) -> int:
        """Number of complete matched sets across the given components."""

        counts = [self.allocated[component_id] for component_id in component_ids]
        return min(counts) if counts else 0


@dataclass(slots=True)
class FreeStockItem:
    """Unallocated component stock for one model/colorway/size."""

    id: str
    model_id: str
    colorway_id: str
    component_id: str
    size: str
    quantity: int = 0
    location: str = ""

    @staticmethod
    def make_id(model_id: str, colorway_id: str, component_id: str, size: str) -> str:
        return f"{model_id}:{colorway_id}:{component_id}:{size}"


@dataclass(slots=True)
class StockMovement:
    """Immutable ledger record of a single quantity movement."""

    id: str
    timestamp: datetime
    movement_type: MovementType
    model_id: str
    colorway_id: str
    size: str
    quantity: int
    actor: str
    component_id: Optional[str] = None
    reference: Optional[str] = None
    batch_number: Optional[str] = None


@dataclass(slots=True)
class ProductionSchedule:
    """A planned production run of one instruction on one line."""

    id: str
    line_id: str
    instruction_id: str
    scheduled_on: date
    quantity: int
    status: ScheduleStatus = ScheduleStatus.PLANNED
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(slots=True)
class AuditLogEntry:
    """One mutating action recorded for later review."""

    id: str
    timestamp: datetime
    actor: str
    action: str
    details: str


def ensure_forward(current: Enum, target: Enum, *, label: str) -> None:
    """Reject status changes that do not move strictly forward."""

    if target.rank <= current.rank:  # type: ignore[attr-defined]
        raise StatusTransitionError(
            f"{label} cannot move from {current.value} to {target.value}"
        )


def size_quantities(values: Mapping[str, int] | Iterable[Tuple[str, int]]) -> Tuple[Tuple[str, int], ...]:
    """Normalise size/quantity input into ordered ``(size, quantity)`` pairs."""

    items = values.items() if isinstance(values, Mapping) else values
    return tuple((str(size).strip(), int(quantity)) for size, quantity in items)


__all__ = [
    "AllocationLimitError",
    "StatusTransitionError",
    "Role",
    "OrderStatus",
    "InstructionStatus",
    "ScheduleStatus",
    "MovementType",
    "DashboardScope",
    "User",
    "ShoeModel",
    "Colorway",
    "Component",
    "BillOfMaterials",
    "Order",
    "Instruction",
    "ComponentAllocation",
    "SizeBreakdown",
    "FreeStockItem",
    "StockMovement",
    "ProductionSchedule",
    "AuditLogEntry",
    "ensure_forward",
    "size_quantities",
]
