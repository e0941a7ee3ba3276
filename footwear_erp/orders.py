"""Orders, production instructions and their per-size breakdowns."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from uuid import uuid4

from .domain import (
    ComponentAllocation,
    Instruction,
    Order,
    OrderStatus,
    SizeBreakdown,
    ensure_forward,
    size_quantities,
)
from .logging_config import get_logger
from .registry import DomainRegistry
from .repository import DuplicateRecordError, RecordNotFoundError

logger = get_logger("orders")

IMPORT_SIZE_COLUMNS = ("7", "8", "9", "10", "11")
IMPORT_CUSTOMER = "Imported"
IMPORT_MIN_FIELDS = 4


@dataclass(slots=True)
class InstructionDraft:
    """Input for one instruction of a new order."""

    instruction_number: str
    lot_number: str
    sizes: Union[Mapping[str, int], Sequence[Tuple[str, int]]]
    priority: Optional[int] = None


@dataclass(slots=True)
class ImportFallback:
    """A code that could not be resolved during import and what replaced it."""

    line_number: int
    field: str
    code: str
    substituted_id: str


@dataclass(slots=True)
class ImportResult:
    """Summary of a bulk import run."""

    success_count: int = 0
    fail_count: int = 0
    failed_lines: List[int] = field(default_factory=list)
    fallbacks: List[ImportFallback] = field(default_factory=list)
    created_orders: List[str] = field(default_factory=list)


class OrderBook:
    """Creates and looks up orders, instructions and size breakdowns.

    Records are never deleted. Orders only change through pair
    accumulation and forward status moves.
    """

    def __init__(self, database, registry: DomainRegistry, *, default_priority: int = 2) -> None:
        self._db = database
        self._registry = registry
        self.default_priority = default_priority

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def create_order(
        self,
        order_number: str,
        customer: str,
        model_id: str,
        colorway_id: str,
        due_date: date,
        instructions: Sequence[InstructionDraft],
        *,
        status: OrderStatus = OrderStatus.IN_PROGRESS,
    ) -> Order:
        order_number = order_number.strip()
        if not order_number:
            raise ValueError("Order number must not be empty")
        if self.find_order(order_number) is not None:
            raise DuplicateRecordError(f"Order {order_number!r} already exists")
        if self._registry.model(model_id) is None:
            raise RecordNotFoundError(f"Model {model_id!r} does not exist")
        colorway = self._registry.colorway(colorway_id)
        if colorway is None:
            raise RecordNotFoundError(f"Colorway {colorway_id!r} does not exist")
        if colorway.model_id != model_id:
            raise ValueError(
                f"Colorway {colorway.code!r} does not belong to model {model_id!r}"
            )
        if not instructions:
            raise ValueError("Orders must contain at least one instruction")
        prepared = [self._validate_draft(draft) for draft in instructions]
        numbers = [draft.instruction_number for draft, _ in prepared]
        if len(set(numbers)) != len(numbers):
            raise ValueError("Instruction numbers must be unique within an order")
        self._required_components(model_id)

        order = Order(
            id=str(uuid4()),
            order_number=order_number,
            customer=customer,
            model_id=model_id,
            colorway_id=colorway_id,
            due_date=due_date,
            status=status,
        )
        self._db.orders.add(order.id, order)
        for draft, sizes in prepared:
            self._add_instruction(order, draft, sizes)
        self._db.orders.upsert(order.id, order)
        logger.info(
            "order created",
            extra={
                "order_number": order.order_number,
                "instructions": len(prepared),
                "total_pairs": order.total_pairs,
            },
        )
        return order

    def _validate_draft(
        self, draft: InstructionDraft
    ) -> Tuple[InstructionDraft, Tuple[Tuple[str, int], ...]]:
        number = draft.instruction_number.strip()
        if not number:
            raise ValueError("Instruction number must not be empty")
        if self.find_instruction(number) is not None:
            raise DuplicateRecordError(f"Instruction {number!r} already exists")
        sizes = size_quantities(draft.sizes)
        labels = [size for size, _ in sizes]
        if any(not label for label in labels):
            raise ValueError(f"Instruction {number!r} has an empty size label")
        if len(set(labels)) != len(labels):
            raise ValueError(f"Instruction {number!r} lists a size more than once")
        if any(quantity < 0 for _, quantity in sizes):
            raise ValueError(f"Instruction {number!r} has a negative size quantity")
        draft.instruction_number = number
        return draft, sizes

    def _required_components(self, model_id: str) -> Tuple[str, ...]:
        components = self._registry.required_components(model_id)
        if not components:
            raise ValueError("No components registered; cannot track allocations")
        return components

    def _add_instruction(
        self,
        order: Order,
        draft: InstructionDraft,
        sizes: Sequence[Tuple[str, int]],
    ) -> Instruction:
        components = self._required_components(order.model_id)
        instruction = Instruction(
            id=str(uuid4()),
            order_id=order.id,
            instruction_number=draft.instruction_number,
            lot_number=draft.lot_number,
            priority=self.default_priority if draft.priority is None else draft.priority,
            sequence=len(self._db.instructions) + 1,
        )
        self._db.instructions.add(instruction.id, instruction)
        for size, quantity in sizes:
            breakdown = SizeBreakdown(
                id=SizeBreakdown.make_id(instruction.id, size),
                instruction_id=instruction.id,
                size=size,
                required_quantity=quantity,
                allocated=ComponentAllocation.for_components(components),
            )
            self._db.size_breakdowns.add(breakdown.id, breakdown)
            order.total_pairs += quantity
        return instruction

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get_order(self, order_id: str) -> Order:
        return self._db.orders.get(order_id)

    def find_order(self, order_number: str) -> Optional[Order]:
        return self._db.orders.first(lambda o: o.order_number == order_number)

    def list_orders(self) -> List[Order]:
        return self._db.orders.list()

    def get_instruction(self, instruction_id: str) -> Instruction:
        return self._db.instructions.get(instruction_id)

    def find_instruction(self, instruction_number: str) -> Optional[Instruction]:
        return self._db.instructions.first(
            lambda i: i.instruction_number == instruction_number
        )

    def instructions_for_order(self, order_id: str) -> List[Instruction]:
        return [i for i in self._db.instructions if i.order_id == order_id]

    def size_breakdowns(self, instruction_id: str) -> List[SizeBreakdown]:
        return [s for s in self._db.size_breakdowns if s.instruction_id == instruction_id]

    def size_breakdown(self, instruction_id: str, size: str) -> Optional[SizeBreakdown]:
        breakdown_id = SizeBreakdown.make_id(instruction_id, str(size).strip())
        return self._db.size_breakdowns.find(breakdown_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        order = self._db.orders.get(order_id)
        ensure_forward(order.status, status, label=f"Order {order.order_number}")
        order.status = status
        self._db.orders.upsert(order.id, order)
        logger.info(
            "order status changed",
            extra={"order_number": order.order_number, "status": status.value},
        )
        return order

    # ------------------------------------------------------------------
    # Bulk import
    # ------------------------------------------------------------------
    def import_rows(self, rows: Union[str, Iterable[str]]) -> ImportResult:
        """Create orders and instructions from tab-separated rows.

        Row layout: order number, model code, colorway code, instruction
        number, then pair counts for sizes 7 to 11. Rows with fewer than
        four fields, an empty key, an instruction number that already exists
        or a model with no components to track are counted as failures.
        Rows for a known order number add to that order. Unknown codes fall
        back to the first registered model/colorway and are listed in
        ``fallbacks``.
        """

        if isinstance(rows, str):
            rows = rows.strip().splitlines()
        result = ImportResult()
        for line_number, row in enumerate(rows, start=1):
            if self._import_row(line_number, row, result):
                result.success_count += 1
            else:
                result.fail_count += 1
                result.failed_lines.append(line_number)
        logger.info(
            "import finished",
            extra={
                "success_count": result.success_count,
                "fail_count": result.fail_count,
                "fallbacks": len(result.fallbacks),
            },
        )
        return result

    def _import_row(self, line_number: int, row: str, result: ImportResult) -> bool:
        cols = row.rstrip("\r\n").split("\t")
        if len(cols) < IMPORT_MIN_FIELDS:
            logger.warning("import row rejected", extra={"line_number": line_number})
            return False
        order_number, model_code, colorway_code, instruction_number = (
            col.strip() for col in cols[:IMPORT_MIN_FIELDS]
        )
        if not order_number or not instruction_number:
            logger.warning("import row missing keys", extra={"line_number": line_number})
            return False
        if self.find_instruction(instruction_number) is not None:
            logger.warning(
                "import row duplicates instruction",
                extra={"line_number": line_number, "instruction_number": instruction_number},
            )
            return False

        order = self.find_order(order_number)
        if order is None:
            order = self._imported_order(
                line_number, order_number, model_code, colorway_code, result
            )
            if order is None:
                return False
        elif not self._registry.required_components(order.model_id):
            logger.warning(
                "import row has no components to track",
                extra={"line_number": line_number, "order_number": order_number},
            )
            return False

        sizes = []
        for label, text in zip(IMPORT_SIZE_COLUMNS, cols[IMPORT_MIN_FIELDS:]):
            quantity = _parse_quantity(text)
            if quantity > 0:
                sizes.append((label, quantity))
        draft = InstructionDraft(
            instruction_number=instruction_number,
            lot_number=f"L-{instruction_number}",
            sizes=sizes,
        )
        self._add_instruction(order, draft, sizes)
        self._db.orders.upsert(order.id, order)
        return True

    def _imported_order(
        self,
        line_number: int,
        order_number: str,
        model_code: str,
        colorway_code: str,
        result: ImportResult,
    ) -> Optional[Order]:
        fallbacks: List[ImportFallback] = []
        model = self._registry.model_by_code(model_code)
        if model is None:
            model = self._registry.default_model()
            if model is None:
                return None
            fallbacks.append(ImportFallback(line_number, "model", model_code, model.id))
        colorway = self._registry.colorway_by_code(colorway_code, model.id)
        if colorway is None:
            colorway = self._registry.default_colorway(model.id)
            if colorway is None:
                return None
            fallbacks.append(
                ImportFallback(line_number, "colorway", colorway_code, colorway.id)
            )
        if not self._registry.required_components(model.id):
            logger.warning(
                "import row has no components to track",
                extra={"line_number": line_number, "order_number": order_number},
            )
            return None
        result.fallbacks.extend(fallbacks)
        order = Order(
            id=str(uuid4()),
            order_number=order_number,
            customer=IMPORT_CUSTOMER,
            model_id=model.id,
            colorway_id=colorway.id,
            due_date=date.today(),
            status=OrderStatus.IN_PROGRESS,
        )
        self._db.orders.add(order.id, order)
        result.created_orders.append(order_number)
        return order


def _parse_quantity(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        return 0


__all__ = [
    "IMPORT_SIZE_COLUMNS",
    "InstructionDraft",
    "ImportFallback",
    "ImportResult",
    "OrderBook",
]
