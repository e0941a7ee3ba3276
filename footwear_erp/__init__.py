"""Footwear production order tracker.

This package tracks footwear orders from intake through component
allocation, set readiness and production scheduling. Incoming component
receipts are spread over open production instructions by priority, and
readiness is derived as the number of complete matched component sets
per size.
"""

from .allocation import AllocationResult
from .config import ReadyTrigger, Settings
from .domain import (
    DashboardScope,
    InstructionStatus,
    MovementType,
    OrderStatus,
    ScheduleStatus,
)
from .orders import ImportResult, InstructionDraft
from .readiness import DashboardGroup
from .services import ERPService

__all__ = [
    "AllocationResult",
    "DashboardGroup",
    "DashboardScope",
    "ERPService",
    "ImportResult",
    "InstructionDraft",
    "InstructionStatus",
    "MovementType",
    "OrderStatus",
    "ReadyTrigger",
    "ScheduleStatus",
    "Settings",
]
