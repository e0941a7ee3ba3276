"""Production schedule records and their PLANNED → CONFIRMED → COMPLETED lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Union
from uuid import uuid4

from .domain import (
    Instruction,
    InstructionStatus,
    Order,
    ProductionSchedule,
    ScheduleStatus,
    ensure_forward,
)
from .logging_config import get_logger
from .readiness import ReadinessEngine

logger = get_logger("scheduling")

SCHEDULABLE_STATUSES = frozenset(
    {InstructionStatus.MATERIAL_READY, InstructionStatus.SCHEDULED}
)


@dataclass(slots=True)
class SchedulingCandidate:
    """An instruction the planner may put on a line."""

    instruction: Instruction
    order: Order
    sets_ready: int
    total_pairs: int
    already_scheduled: bool


class SchedulingStateMachine:
    """Creates schedule entries and moves them forward."""

    def __init__(self, database, readiness: ReadinessEngine) -> None:
        self._db = database
        self._readiness = readiness

    def create_schedule(
        self,
        line_id: str,
        instruction_id: str,
        scheduled_on: date,
        quantity: int,
    ) -> Optional[ProductionSchedule]:
        """Plan a run and mark the instruction SCHEDULED.

        Returns ``None`` without touching anything when the instruction
        does not exist or the quantity is not positive. Material readiness
        is not checked here; callers pick from ``schedulable_instructions``.
        """

        instruction = self._db.instructions.find(instruction_id)
        if instruction is None or quantity <= 0:
            logger.warning(
                "schedule rejected",
                extra={"instruction_id": instruction_id, "quantity": quantity},
            )
            return None
        schedule = ProductionSchedule(
            id=str(uuid4()),
            line_id=line_id,
            instruction_id=instruction.id,
            scheduled_on=scheduled_on,
            quantity=quantity,
        )
        self._db.schedules.add(schedule.id, schedule)
        instruction.status = InstructionStatus.SCHEDULED
        self._db.instructions.upsert(instruction.id, instruction)
        logger.info(
            "schedule created",
            extra={
                "schedule_id": schedule.id,
                "line_id": line_id,
                "instruction_number": instruction.instruction_number,
                "quantity": quantity,
            },
        )
        return schedule

    def advance(
        self, schedule_id: str, target_status: Union[ScheduleStatus, str]
    ) -> Optional[ProductionSchedule]:
        schedule = self._db.schedules.find(schedule_id)
        if schedule is None:
            logger.warning("unknown schedule", extra={"schedule_id": schedule_id})
            return None
        target = ScheduleStatus(target_status)
        ensure_forward(schedule.status, target, label=f"Schedule {schedule.id}")
        schedule.status = target
        self._db.schedules.upsert(schedule.id, schedule)
        logger.info(
            "schedule advanced",
            extra={"schedule_id": schedule.id, "status": target.value},
        )
        return schedule

    def list_schedules(
        self, status: Optional[Union[ScheduleStatus, str]] = None
    ) -> List[ProductionSchedule]:
        schedules = self._db.schedules.list()
        if status is None:
            return schedules
        wanted = ScheduleStatus(status)
        return [schedule for schedule in schedules if schedule.status == wanted]

    def schedulable_instructions(self) -> List[SchedulingCandidate]:
        open_schedules = {
            schedule.instruction_id
            for schedule in self._db.schedules
            if schedule.status != ScheduleStatus.COMPLETED
        }
        candidates: List[SchedulingCandidate] = []
        for instruction in self._db.instructions:
            if instruction.status not in SCHEDULABLE_STATUSES:
                continue
            progress = self._readiness.progress_for(instruction.id)
            candidates.append(
                SchedulingCandidate(
                    instruction=instruction,
                    order=self._db.orders.get(instruction.order_id),
                    sets_ready=progress.sets_ready if progress else 0,
                    total_pairs=progress.total_pairs if progress else 0,
                    already_scheduled=instruction.id in open_schedules,
                )
            )
        return candidates


__all__ = ["SCHEDULABLE_STATUSES", "SchedulingCandidate", "SchedulingStateMachine"]
