"""Service layer that exposes the production tracker use-cases."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import asdict
from datetime import date
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .allocation import AllocationEngine, AllocationResult
from .audit import AuditLog
from .config import Settings
from .domain import (
    AuditLogEntry,
    DashboardScope,
    FreeStockItem,
    Order,
    OrderStatus,
    ProductionSchedule,
    ScheduleStatus,
    SizeBreakdown,
    StockMovement,
)
from .fulfillment import ProductionTracker
from .logging_config import LogContext, get_logger
from .orders import ImportResult, InstructionDraft, OrderBook
from .readiness import DashboardGroup, ReadinessEngine
from .registry import DomainRegistry, seed_reference_data
from .repository import COLLECTIONS, InMemoryDatabase, PersistenceError
from .scheduling import SchedulingCandidate, SchedulingStateMachine

logger = get_logger("services")


class ERPService:
    """Facade over the engines; the single entry point for callers.

    Every mutating call holds one lock for its whole duration and runs in
    one database transaction, so no caller ever sees half an allocation.
    A failed commit surfaces as ``PersistenceError``.
    """

    def __init__(self, database=None, *, settings: Optional[Settings] = None) -> None:
        self.database = database if database is not None else InMemoryDatabase()
        self.settings = settings or Settings()
        self.registry = DomainRegistry(self.database)
        self.orders = OrderBook(
            self.database, self.registry, default_priority=self.settings.default_priority
        )
        self.allocation = AllocationEngine(
            self.database, self.registry, ready_trigger=self.settings.ready_trigger
        )
        self.readiness = ReadinessEngine(self.database, self.registry)
        self.scheduling = SchedulingStateMachine(self.database, self.readiness)
        self.fulfillment = ProductionTracker(self.database)
        self.audit = AuditLog(self.database.audit_log)
        self._lock = threading.RLock()

    @contextmanager
    def _mutation(self, operation: str, actor: str) -> Iterator[None]:
        with self._lock, LogContext.bind(actor=actor, operation=operation):
            try:
                with self.database.transaction():
                    yield
            except PersistenceError:
                logger.error("mutation not persisted", exc_info=True)
                raise

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------
    def ensure_reference_data(self, actor: str = "system") -> bool:
        with self._mutation("seed_reference_data", actor):
            seeded = seed_reference_data(self.registry)
            if seeded:
                self.audit.record(actor, "INIT", "System initialized with seed data")
            return seeded

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------
    def create_order(
        self,
        order_number: str,
        customer: str,
        model_id: str,
        colorway_id: str,
        due_date: date,
        instructions: Sequence[InstructionDraft],
        actor: str,
        *,
        status: OrderStatus = OrderStatus.IN_PROGRESS,
    ) -> Order:
        with self._mutation("create_order", actor):
            order = self.orders.create_order(
                order_number,
                customer,
                model_id,
                colorway_id,
                due_date,
                instructions,
                status=status,
            )
            self.audit.record(actor, "CREATE", f"Created Order {order.order_number}")
            return order

    def import_rows(self, rows: Union[str, Iterable[str]], actor: str) -> ImportResult:
        with self._mutation("import_rows", actor):
            result = self.orders.import_rows(rows)
            details = f"Imported {result.success_count} rows, {result.fail_count} failed"
            if result.fallbacks:
                details += f", {len(result.fallbacks)} codes replaced by defaults"
            self.audit.record(actor, "IMPORT", details)
            return result

    def update_order_status(
        self, order_id: str, status: Union[OrderStatus, str], actor: str
    ) -> Order:
        with self._mutation("update_order_status", actor):
            order = self.orders.update_order_status(order_id, OrderStatus(status))
            self.audit.record(
                actor,
                "ORDER_STATUS",
                f"Order {order.order_number} moved to {order.status.value}",
            )
            return order

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------
    def allocate(
        self,
        model_id: str,
        colorway_id: str,
        component_id: str,
        quantities: Union[Mapping[str, int], Iterable[Tuple[str, int]]],
        batch_number: str,
        actor: str,
    ) -> AllocationResult:
        with self._mutation("allocate", actor):
            result = self.allocation.allocate(
                model_id, colorway_id, component_id, quantities, batch_number, actor
            )
            if result.accepted:
                self.audit.record(
                    actor,
                    "STOCK_IN",
                    f"Received {result.total_received} of {component_id} (batch"
                    f" {batch_number}): {result.total_allocated} allocated,"
                    f" {result.total_to_free_stock} to free stock",
                )
            return result

    def issue_free_stock(
        self,
        model_id: str,
        colorway_id: str,
        component_id: str,
        size: str,
        quantity: int,
        actor: str,
    ) -> int:
        with self._mutation("issue_free_stock", actor):
            issued = self.allocation.issue_free_stock(
                model_id, colorway_id, component_id, size, quantity, actor
            )
            if issued:
                self.audit.record(
                    actor, "STOCK_OUT", f"Issued {issued} of {component_id} size {size}"
                )
            return issued

    # ------------------------------------------------------------------
    # Scheduling and fulfilment
    # ------------------------------------------------------------------
    def create_schedule(
        self,
        line_id: str,
        instruction_id: str,
        scheduled_on: date,
        quantity: int,
        actor: str,
    ) -> Optional[ProductionSchedule]:
        with self._mutation("create_schedule", actor):
            schedule = self.scheduling.create_schedule(
                line_id, instruction_id, scheduled_on, quantity
            )
            if schedule is not None:
                instruction = self.orders.get_instruction(instruction_id)
                self.audit.record(
                    actor,
                    "SCHEDULE",
                    f"Scheduled {quantity} pairs for {instruction.instruction_number}"
                    f" on {line_id}",
                )
            return schedule

    def advance_schedule(
        self, schedule_id: str, target_status: Union[ScheduleStatus, str], actor: str
    ) -> Optional[ProductionSchedule]:
        with self._mutation("advance_schedule", actor):
            schedule = self.scheduling.advance(schedule_id, target_status)
            if schedule is not None:
                self.audit.record(
                    actor,
                    "UPDATE_SCHEDULE",
                    f"Updated schedule {schedule.id} to {schedule.status.value}",
                )
            return schedule

    def record_production(
        self, instruction_id: str, size: str, pairs: int, actor: str
    ) -> Optional[SizeBreakdown]:
        with self._mutation("record_production", actor):
            breakdown = self.fulfillment.record_production(instruction_id, size, pairs, actor)
            if breakdown is not None:
                self.audit.record(
                    actor, "PRODUCE", f"Produced {pairs} pairs of size {size}"
                )
            return breakdown

    def record_shipment(
        self, instruction_id: str, size: str, pairs: int, actor: str
    ) -> Optional[SizeBreakdown]:
        with self._mutation("record_shipment", actor):
            breakdown = self.fulfillment.record_shipment(instruction_id, size, pairs, actor)
            if breakdown is not None:
                self.audit.record(actor, "SHIP", f"Shipped {pairs} pairs of size {size}")
            return breakdown

    # ------------------------------------------------------------------
    # Read views
    # ------------------------------------------------------------------
    def compute_dashboard(
        self, scope: Union[DashboardScope, str] = DashboardScope.ACTIVE
    ) -> List[DashboardGroup]:
        with self._lock:
            return self.readiness.compute_dashboard(scope)

    def list_free_stock(self) -> List[FreeStockItem]:
        with self._lock:
            return self.allocation.list_free_stock()

    def list_orders(self) -> List[Order]:
        with self._lock:
            return self.orders.list_orders()

    def list_schedules(
        self, status: Optional[Union[ScheduleStatus, str]] = None
    ) -> List[ProductionSchedule]:
        with self._lock:
            return self.scheduling.list_schedules(status)

    def schedulable_instructions(self) -> List[SchedulingCandidate]:
        with self._lock:
            return self.scheduling.schedulable_instructions()

    def list_movements(self) -> List[StockMovement]:
        with self._lock:
            return self.allocation.list_movements()

    def audit_entries(self, *, limit: Optional[int] = None) -> List[AuditLogEntry]:
        with self._lock:
            return self.audit.entries(limit=limit)

    def snapshot(self) -> Dict[str, List[Dict]]:
        """Full state as collection name → records; audit log newest first."""

        with self._lock:
            state = {
                name: list(getattr(self.database, name).as_dicts())
                for name in COLLECTIONS
                if name != "audit_log"
            }
            state["audit_log"] = [asdict(entry) for entry in self.audit.entries()]
            return state


__all__ = ["ERPService"]
