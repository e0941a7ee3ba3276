"""Distribution of incoming component stock across open instructions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Tuple, Union
from uuid import uuid4

from .config import ReadyTrigger
from .domain import (
    FreeStockItem,
    Instruction,
    InstructionStatus,
    MovementType,
    OrderStatus,
    SizeBreakdown,
    StockMovement,
    size_quantities,
)
from .logging_config import get_logger
from .registry import DomainRegistry

logger = get_logger("allocation")


@dataclass(slots=True)
class InstructionAllocation:
    """Quantity of one receipt line assigned to one instruction."""

    instruction_id: str
    instruction_number: str
    quantity: int


@dataclass(slots=True)
class SizeAllocation:
    """Outcome of distributing the receipt quantity for one size."""

    size: str
    received: int
    allocations: List[InstructionAllocation] = field(default_factory=list)
    to_free_stock: int = 0

    @property
    def allocated(self) -> int:
        return sum(allocation.quantity for allocation in self.allocations)


@dataclass(slots=True)
class AllocationResult:
    """Summary of one stock receipt."""

    model_id: str
    colorway_id: str
    component_id: str
    batch_number: str
    sizes: List[SizeAllocation] = field(default_factory=list)
    skipped_sizes: List[str] = field(default_factory=list)
    rejected_reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.rejected_reason is None and bool(self.sizes)

    @property
    def total_received(self) -> int:
        return sum(size.received for size in self.sizes)

    @property
    def total_allocated(self) -> int:
        return sum(size.allocated for size in self.sizes)

    @property
    def total_to_free_stock(self) -> int:
        return sum(size.to_free_stock for size in self.sizes)


class AllocationEngine:
    """Greedy, priority-ordered allocation of component receipts."""

    def __init__(
        self,
        database,
        registry: DomainRegistry,
        *,
        ready_trigger: ReadyTrigger = ReadyTrigger.ANY_ALLOCATION,
    ) -> None:
        self._db = database
        self._registry = registry
        self.ready_trigger = ready_trigger

    def candidates(self, model_id: str, colorway_id: str) -> List[Instruction]:
        """Open instructions for a model/colorway in allocation order."""

        order_ids = {
            order.id
            for order in self._db.orders
            if order.model_id == model_id
            and order.colorway_id == colorway_id
            and order.status != OrderStatus.COMPLETED
        }
        instructions = [
            instruction
            for instruction in self._db.instructions
            if instruction.order_id in order_ids
            and instruction.status != InstructionStatus.SHIPPED
        ]
        instructions.sort(key=lambda instruction: instruction.allocation_key)
        return instructions

    def _rejection(self, model_id: str, colorway_id: str, component_id: str) -> Optional[str]:
        if self._registry.model(model_id) is None:
            return f"Unknown model {model_id!r}"
        colorway = self._registry.colorway(colorway_id)
        if colorway is None:
            return f"Unknown colorway {colorway_id!r}"
        if colorway.model_id != model_id:
            return f"Colorway {colorway_id!r} does not belong to model {model_id!r}"
        if self._registry.component(component_id) is None:
            return f"Unknown component {component_id!r}"
        return None

    def allocate(
        self,
        model_id: str,
        colorway_id: str,
        component_id: str,
        quantities: Union[Mapping[str, int], Iterable[Tuple[str, int]]],
        batch_number: str,
        actor: str,
    ) -> AllocationResult:
        """Receive component stock and hand it out by instruction priority.

        For every size the full receipt is logged as an IN movement, then
        the quantity is walked over the candidate instructions, lowest
        priority value first, filling each size slot up to its required
        quantity. Whatever is left goes to free stock. Receipts are not
        deduplicated: replaying one allocates it again.
        """

        result = AllocationResult(
            model_id=model_id,
            colorway_id=colorway_id,
            component_id=component_id,
            batch_number=batch_number,
        )
        result.rejected_reason = self._rejection(model_id, colorway_id, component_id)
        if result.rejected_reason is not None:
            logger.warning("receipt rejected", extra={"reason": result.rejected_reason})
            return result

        lines: List[Tuple[str, int]] = []
        for size, quantity in size_quantities(quantities):
            if not size or quantity <= 0:
                result.skipped_sizes.append(size)
            else:
                lines.append((size, quantity))
        if not lines:
            logger.warning(
                "receipt has no positive quantities",
                extra={"component_id": component_id, "batch_number": batch_number},
            )
            return result

        timestamp = datetime.utcnow()
        candidates = self.candidates(model_id, colorway_id)
        required = self._registry.required_components(model_id)
        for size, quantity in lines:
            self._record(
                timestamp, MovementType.IN, model_id, colorway_id, component_id,
                size, quantity, actor, batch_number=batch_number,
            )
            outcome = self._allocate_size(
                timestamp, candidates, required, model_id, colorway_id,
                component_id, size, quantity, actor,
            )
            if outcome.to_free_stock > 0:
                self._deposit(model_id, colorway_id, component_id, size, outcome.to_free_stock)
            result.sizes.append(outcome)

        logger.info(
            "receipt allocated",
            extra={
                "component_id": component_id,
                "batch_number": batch_number,
                "received": result.total_received,
                "allocated": result.total_allocated,
                "to_free_stock": result.total_to_free_stock,
            },
        )
        return result

    def _allocate_size(
        self,
        timestamp: datetime,
        candidates: List[Instruction],
        required: Tuple[str, ...],
        model_id: str,
        colorway_id: str,
        component_id: str,
        size: str,
        quantity: int,
        actor: str,
    ) -> SizeAllocation:
        outcome = SizeAllocation(size=size, received=quantity)
        if component_id not in required:
            outcome.to_free_stock = quantity
            return outcome
        remaining = quantity
        for instruction in candidates:
            if remaining <= 0:
                break
            breakdown = self._db.size_breakdowns.find(
                SizeBreakdown.make_id(instruction.id, size)
            )
            if breakdown is None:
                continue
            needed = breakdown.outstanding(component_id)
            if needed <= 0:
                continue
            take = min(remaining, needed)
            breakdown.allocate(component_id, take)
            self._db.size_breakdowns.upsert(breakdown.id, breakdown)
            remaining -= take
            outcome.allocations.append(
                InstructionAllocation(instruction.id, instruction.instruction_number, take)
            )
            self._record(
                timestamp, MovementType.ALLOCATE, model_id, colorway_id, component_id,
                size, take, actor, reference=instruction.instruction_number,
            )
            if instruction.status == InstructionStatus.PENDING and self._triggers_ready(
                breakdown, required
            ):
                instruction.status = InstructionStatus.MATERIAL_READY
                self._db.instructions.upsert(instruction.id, instruction)
                logger.info(
                    "instruction material ready",
                    extra={"instruction_number": instruction.instruction_number},
                )
        outcome.to_free_stock = remaining
        return outcome

    def _triggers_ready(self, breakdown: SizeBreakdown, required: Tuple[str, ...]) -> bool:
        if self.ready_trigger is ReadyTrigger.FULL_SET:
            return breakdown.sets_ready(required) > 0
        return True

    def _deposit(
        self, model_id: str, colorway_id: str, component_id: str, size: str, quantity: int
    ) -> FreeStockItem:
        item_id = FreeStockItem.make_id(model_id, colorway_id, component_id, size)
        item = self._db.free_stock.find(item_id)
        if item is None:
            item = FreeStockItem(
                id=item_id,
                model_id=model_id,
                colorway_id=colorway_id,
                component_id=component_id,
                size=size,
            )
        item.quantity += quantity
        self._db.free_stock.upsert(item.id, item)
        return item

    def _record(
        self,
        timestamp: datetime,
        movement_type: MovementType,
        model_id: str,
        colorway_id: str,
        component_id: Optional[str],
        size: str,
        quantity: int,
        actor: str,
        *,
        reference: Optional[str] = None,
        batch_number: Optional[str] = None,
    ) -> StockMovement:
        movement = StockMovement(
            id=str(uuid4()),
            timestamp=timestamp,
            movement_type=movement_type,
            model_id=model_id,
            colorway_id=colorway_id,
            component_id=component_id,
            size=size,
            quantity=quantity,
            actor=actor,
            reference=reference,
            batch_number=batch_number,
        )
        self._db.stock_movements.add(movement.id, movement)
        return movement

    # ------------------------------------------------------------------
    # Free stock
    # ------------------------------------------------------------------
    def issue_free_stock(
        self,
        model_id: str,
        colorway_id: str,
        component_id: str,
        size: str,
        quantity: int,
        actor: str,
        *,
        reference: Optional[str] = None,
    ) -> int:
        """Take up to ``quantity`` out of free stock and return what was issued."""

        size = str(size).strip()
        if quantity <= 0:
            return 0
        item = self._db.free_stock.find(
            FreeStockItem.make_id(model_id, colorway_id, component_id, size)
        )
        if item is None or item.quantity <= 0:
            logger.warning(
                "no free stock to issue",
                extra={"component_id": component_id, "size": size},
            )
            return 0
        issued = min(quantity, item.quantity)
        item.quantity -= issued
        self._db.free_stock.upsert(item.id, item)
        self._record(
            datetime.utcnow(), MovementType.OUT, model_id, colorway_id, component_id,
            size, issued, actor, reference=reference,
        )
        return issued

    def free_stock_quantity(
        self, model_id: str, colorway_id: str, component_id: str, size: str
    ) -> int:
        size = str(size).strip()
        item = self._db.free_stock.find(
            FreeStockItem.make_id(model_id, colorway_id, component_id, size)
        )
        return item.quantity if item is not None else 0

    def list_free_stock(self) -> List[FreeStockItem]:
        return [item for item in self._db.free_stock if item.quantity > 0]

    def list_movements(self) -> List[StockMovement]:
        return self._db.stock_movements.list()


__all__ = [
    "AllocationEngine",
    "AllocationResult",
    "InstructionAllocation",
    "SizeAllocation",
]
