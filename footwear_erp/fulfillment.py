"""Produced and shipped pair counters on size breakdowns."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import uuid4

from .domain import (
    Instruction,
    InstructionStatus,
    MovementType,
    SizeBreakdown,
    StockMovement,
)
from .logging_config import get_logger

logger = get_logger("fulfillment")


class ProductionTracker:
    """Counts finished and shipped pairs; does not model throughput."""

    def __init__(self, database) -> None:
        self._db = database

    def record_production(
        self, instruction_id: str, size: str, pairs: int, actor: str
    ) -> Optional[SizeBreakdown]:
        size = str(size).strip()
        found = self._locate(instruction_id, size, pairs)
        if found is None:
            return None
        instruction, breakdown = found
        if breakdown.produced_pairs + pairs > breakdown.required_quantity:
            raise ValueError(
                f"Producing {pairs} pairs of size {size!r} exceeds the required"
                f" {breakdown.required_quantity}"
            )
        breakdown.produced_pairs += pairs
        self._db.size_breakdowns.upsert(breakdown.id, breakdown)
        self._advance(instruction, InstructionStatus.PRODUCTION)
        self._record(instruction, MovementType.PRODUCE, size, pairs, actor)
        return breakdown

    def record_shipment(
        self, instruction_id: str, size: str, pairs: int, actor: str
    ) -> Optional[SizeBreakdown]:
        size = str(size).strip()
        found = self._locate(instruction_id, size, pairs)
        if found is None:
            return None
        instruction, breakdown = found
        if breakdown.shipped_pairs + pairs > breakdown.required_quantity:
            raise ValueError(
                f"Shipping {pairs} pairs of size {size!r} exceeds the required"
                f" {breakdown.required_quantity}"
            )
        breakdown.shipped_pairs += pairs
        self._db.size_breakdowns.upsert(breakdown.id, breakdown)
        siblings = [
            b for b in self._db.size_breakdowns if b.instruction_id == instruction.id
        ]
        if all(b.shipped_pairs >= b.required_quantity for b in siblings):
            self._advance(instruction, InstructionStatus.SHIPPED)
        else:
            self._advance(instruction, InstructionStatus.PARTIAL_SHIPPED)
        self._record(instruction, MovementType.SHIP, size, pairs, actor)
        return breakdown

    def _locate(self, instruction_id: str, size: str, pairs: int):
        instruction = self._db.instructions.find(instruction_id)
        breakdown = self._db.size_breakdowns.find(
            SizeBreakdown.make_id(instruction_id, size)
        )
        if instruction is None or breakdown is None or pairs <= 0:
            logger.warning(
                "counter update rejected",
                extra={"instruction_id": instruction_id, "size": size, "pairs": pairs},
            )
            return None
        return instruction, breakdown

    def _advance(self, instruction: Instruction, status: InstructionStatus) -> None:
        # Counters never move an instruction backward.
        if status.rank > instruction.status.rank:
            instruction.status = status
            self._db.instructions.upsert(instruction.id, instruction)

    def _record(
        self,
        instruction: Instruction,
        movement_type: MovementType,
        size: str,
        pairs: int,
        actor: str,
    ) -> None:
        order = self._db.orders.get(instruction.order_id)
        movement = StockMovement(
            id=str(uuid4()),
            timestamp=datetime.utcnow(),
            movement_type=movement_type,
            model_id=order.model_id,
            colorway_id=order.colorway_id,
            size=size,
            quantity=pairs,
            actor=actor,
            reference=instruction.instruction_number,
        )
        self._db.stock_movements.add(movement.id, movement)
        logger.info(
            "pairs recorded",
            extra={
                "movement_type": movement_type.value,
                "instruction_number": instruction.instruction_number,
                "size": size,
                "pairs": pairs,
            },
        )


__all__ = ["ProductionTracker"]
