"""Simple in-memory repositories used by the engine layer."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import asdict
from typing import (
    Callable,
    Dict,
    Generic,
    Iterable,
    Iterator,
    List,
    MutableMapping,
    Optional,
    TypeVar,
)

from .domain import (
    AuditLogEntry,
    BillOfMaterials,
    Colorway,
    Component,
    FreeStockItem,
    Instruction,
    Order,
    ProductionSchedule,
    ShoeModel,
    SizeBreakdown,
    StockMovement,
    User,
)

T = TypeVar("T")

COLLECTIONS = (
    "users",
    "models",
    "colorways",
    "components",
    "bills_of_materials",
    "orders",
    "instructions",
    "size_breakdowns",
    "free_stock",
    "stock_movements",
    "schedules",
    "audit_log",
)


class RepositoryError(RuntimeError):
    """Base exception for repository errors."""


class DuplicateRecordError(RepositoryError):
    """Raised when attempting to insert a record that already exists."""


class RecordNotFoundError(RepositoryError):
    """Raised when a requested record is missing."""


class PersistenceError(RepositoryError):
    """Raised when a mutation could not be made durable."""


class InMemoryRepository(Generic[T]):
    """Generic repository backed by an insertion-ordered dictionary."""

    def __init__(self) -> None:
        self._items: MutableMapping[str, T] = {}

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item_id: str, item: T) -> None:
        if item_id in self._items:
            raise DuplicateRecordError(f"Record with id {item_id!r} already exists")
        self._items[item_id] = item

    def upsert(self, item_id: str, item: T) -> None:
        self._items[item_id] = item

    def get(self, item_id: str) -> T:
        try:
            return self._items[item_id]
        except KeyError as exc:
            raise RecordNotFoundError(f"Record with id {item_id!r} not found") from exc

    def find(self, item_id: str) -> Optional[T]:
        return self._items.get(item_id)

    def first(self, predicate: Callable[[T], bool]) -> Optional[T]:
        return next((item for item in self._items.values() if predicate(item)), None)

    def list(self) -> List[T]:
        return list(self._items.values())

    def as_dicts(self) -> Iterable[Dict]:
        for item in self._items.values():
            yield asdict(item)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))


class InMemoryDatabase:
    """Bundle of in-memory repositories with the same surface as ``ERPDatabase``."""

    def __init__(self) -> None:
        self.users = InMemoryRepository[User]()
        self.models = InMemoryRepository[ShoeModel]()
        self.colorways = InMemoryRepository[Colorway]()
        self.components = InMemoryRepository[Component]()
        self.bills_of_materials = InMemoryRepository[BillOfMaterials]()
        self.orders = InMemoryRepository[Order]()
        self.instructions = InMemoryRepository[Instruction]()
        self.size_breakdowns = InMemoryRepository[SizeBreakdown]()
        self.free_stock = InMemoryRepository[FreeStockItem]()
        self.stock_movements = InMemoryRepository[StockMovement]()
        self.schedules = InMemoryRepository[ProductionSchedule]()
        self.audit_log = InMemoryRepository[AuditLogEntry]()

    @contextmanager
    def transaction(self) -> Iterator["InMemoryDatabase"]:
        # Nothing to commit: every write is already visible.
        yield self

    def close(self) -> None:
        return None


__all__ = [
    "COLLECTIONS",
    "InMemoryRepository",
    "InMemoryDatabase",
    "RepositoryError",
    "DuplicateRecordError",
    "RecordNotFoundError",
    "PersistenceError",
]
