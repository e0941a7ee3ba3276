"""SQLite-backed persistence for the footwear production tracker."""

from __future__ import annotations

import pickle
import sqlite3
from contextlib import contextmanager
from dataclasses import asdict
from typing import Callable, Dict, Generic, Iterable, Iterator, List, Optional, TypeVar

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
from .logging_config import get_logger
from .repository import DuplicateRecordError, PersistenceError, RecordNotFoundError

T = TypeVar("T")

logger = get_logger("storage")


class _TransactionState:
    """Shared nesting counter for one connection."""

    __slots__ = ("depth",)

    def __init__(self) -> None:
        self.depth = 0


class SQLiteRepository(Generic[T]):
    """Repository implementation that persists records inside SQLite.

    Writes are committed immediately unless a transaction opened through
    ``ERPDatabase.transaction`` is active, in which case the commit is
    left to the end of that transaction.
    """

    def __init__(
        self,
        connection: sqlite3.Connection,
        table: str,
        state: Optional[_TransactionState] = None,
    ) -> None:
        self._connection = connection
        self._table = table
        self._state = state or _TransactionState()
        self._connection.execute(
            f"CREATE TABLE IF NOT EXISTS {table} ("  # nosec - static table names
            "id TEXT PRIMARY KEY, payload BLOB NOT NULL)"
        )
        self._connection.commit()

    def __contains__(self, item_id: object) -> bool:
        if not isinstance(item_id, str):
            return False
        cursor = self._connection.execute(
            f"SELECT 1 FROM {self._table} WHERE id = ? LIMIT 1", (item_id,)
        )
        return cursor.fetchone() is not None

    def __iter__(self) -> Iterator[T]:
        return iter(self.list())

    def __len__(self) -> int:
        cursor = self._connection.execute(f"SELECT COUNT(1) FROM {self._table}")
        value = cursor.fetchone()
        return int(value[0]) if value else 0

    # ------------------------------------------------------------------
    # CRUD operations
    # ------------------------------------------------------------------
    def add(self, item_id: str, item: T) -> None:
        if item_id in self:
            raise DuplicateRecordError(f"Record with id {item_id!r} already exists")
        self._connection.execute(
            f"INSERT INTO {self._table} (id, payload) VALUES (?, ?)",
            (item_id, pickle.dumps(item)),
        )
        self._autocommit()

    def upsert(self, item_id: str, item: T) -> None:
        self._connection.execute(
            f"INSERT INTO {self._table} (id, payload) VALUES (?, ?) "
            "ON CONFLICT(id) DO UPDATE SET payload = excluded.payload",
            (item_id, pickle.dumps(item)),
        )
        self._autocommit()

    def get(self, item_id: str) -> T:
        item = self.find(item_id)
        if item is None:
            raise RecordNotFoundError(f"Record with id {item_id!r} not found")
        return item

    def find(self, item_id: str) -> Optional[T]:
        cursor = self._connection.execute(
            f"SELECT payload FROM {self._table} WHERE id = ?", (item_id,)
        )
        row = cursor.fetchone()
        return pickle.loads(row[0]) if row is not None else None

    def first(self, predicate: Callable[[T], bool]) -> Optional[T]:
        return next((item for item in self.list() if predicate(item)), None)

    def list(self) -> List[T]:
        # rowid keeps insertion order; upserts update in place.
        cursor = self._connection.execute(
            f"SELECT payload FROM {self._table} ORDER BY rowid"
        )
        return [pickle.loads(row[0]) for row in cursor.fetchall()]

    def as_dicts(self) -> Iterable[Dict]:
        for item in self.list():
            yield asdict(item)

    def _autocommit(self) -> None:
        if self._state.depth == 0:
            self._connection.commit()


class ERPDatabase:
    """Convenience facade bundling SQLite repositories for all aggregates."""

    def __init__(self, path: str) -> None:
        connection = sqlite3.connect(path, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        self._connection = connection
        self._state = _TransactionState()
        self.users = self._repository(User, "users")
        self.models = self._repository(ShoeModel, "models")
        self.colorways = self._repository(Colorway, "colorways")
        self.components = self._repository(Component, "components")
        self.bills_of_materials = self._repository(BillOfMaterials, "bills_of_materials")
        self.orders = self._repository(Order, "orders")
        self.instructions = self._repository(Instruction, "instructions")
        self.size_breakdowns = self._repository(SizeBreakdown, "size_breakdowns")
        self.free_stock = self._repository(FreeStockItem, "free_stock")
        self.stock_movements = self._repository(StockMovement, "stock_movements")
        self.schedules = self._repository(ProductionSchedule, "schedules")
        self.audit_log = self._repository(AuditLogEntry, "audit_log")

    def _repository(self, _record_type: type[T], table: str) -> SQLiteRepository[T]:
        return SQLiteRepository[T](self._connection, table, self._state)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    @contextmanager
    def transaction(self) -> Iterator["ERPDatabase"]:
        """Group all writes of one operation into a single commit.

        Nested calls join the outermost transaction. A failing body rolls
        everything back; a failing commit is rolled back and re-raised as
        ``PersistenceError``.
        """

        self._state.depth += 1
        try:
            yield self
        except BaseException:
            self._state.depth -= 1
            if self._state.depth == 0:
                self._connection.rollback()
            raise
        self._state.depth -= 1
        if self._state.depth > 0:
            return
        try:
            self._commit()
        except sqlite3.Error as exc:
            self._connection.rollback()
            logger.error("commit failed", extra={"error": str(exc)})
            raise PersistenceError(f"Could not persist changes: {exc}") from exc

    def _commit(self) -> None:
        self._connection.commit()

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "ERPDatabase":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[BaseException],
    ) -> None:
        self.close()


__all__ = ["SQLiteRepository", "ERPDatabase"]
