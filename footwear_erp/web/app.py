"""FastAPI-based web interface for the footwear production tracker."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlencode

from fastapi import FastAPI, Form, Query, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from ..config import Settings
from ..domain import DashboardScope, OrderStatus, ScheduleStatus
from ..logging_config import configure_logging, get_logger
from ..orders import InstructionDraft
from ..repository import RepositoryError
from ..services import ERPService
from ..storage import ERPDatabase

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

DEMO_ORDER_NUMBER = "BZ2509300073"
DEMO_SIZES = ("7", "8", "9", "10", "11")

logger = get_logger("web")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(level=settings.log_level)
    database = ERPDatabase(settings.database_path)
    service = ERPService(database, settings=settings)
    if settings.seed_demo_data:
        ensure_demo_data(service)
    else:
        service.ensure_reference_data()

    app = FastAPI(title="Footwear Production Tracker")
    app.state.erp_service = service
    app.state.database = database

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - framework hook
        database.close()

    @app.get("/")
    async def dashboard(request: Request, scope: DashboardScope = DashboardScope.ACTIVE):
        service: ERPService = request.app.state.erp_service
        registry = service.registry
        schedules = service.list_schedules()
        instructions = {
            instruction.id: instruction.instruction_number
            for order in service.list_orders()
            for instruction in service.orders.instructions_for_order(order.id)
        }
        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {
                "scope": scope,
                "groups": service.compute_dashboard(scope),
                "free_stock": service.list_free_stock(),
                "schedules": schedules,
                "candidates": service.schedulable_instructions(),
                "audit_entries": service.audit_entries(limit=20),
                "models": registry.list_models(),
                "colorways": registry.list_colorways(),
                "components": registry.list_components(),
                "model_codes": {m.id: m.code for m in registry.list_models()},
                "colorway_codes": {c.id: c.code for c in registry.list_colorways()},
                "component_codes": {c.id: c.code for c in registry.list_components()},
                "instruction_numbers": instructions,
                "order_statuses": list(OrderStatus),
                "orders": service.list_orders(),
                "message": dict(request.query_params),
            },
        )

    # ------------------------------------------------------------------
    # JSON read views
    # ------------------------------------------------------------------
    @app.get("/api/dashboard")
    async def api_dashboard(request: Request, scope: DashboardScope = DashboardScope.ACTIVE):
        return request.app.state.erp_service.compute_dashboard(scope)

    @app.get("/api/free-stock")
    async def api_free_stock(request: Request):
        return request.app.state.erp_service.list_free_stock()

    @app.get("/api/orders")
    async def api_orders(request: Request):
        return request.app.state.erp_service.list_orders()

    @app.get("/api/schedules")
    async def api_schedules(request: Request, status: Optional[ScheduleStatus] = None):
        return request.app.state.erp_service.list_schedules(status)

    @app.get("/api/instructions/schedulable")
    async def api_schedulable(request: Request):
        return request.app.state.erp_service.schedulable_instructions()

    @app.get("/api/movements")
    async def api_movements(request: Request):
        return request.app.state.erp_service.list_movements()

    @app.get("/api/audit-log")
    async def api_audit_log(request: Request, limit: Optional[int] = Query(None, ge=0)):
        return request.app.state.erp_service.audit_entries(limit=limit)

    @app.get("/api/snapshot")
    async def api_snapshot(request: Request):
        return request.app.state.erp_service.snapshot()

    # ------------------------------------------------------------------
    # Form posts
    # ------------------------------------------------------------------
    @app.post("/inventory/receipts")
    async def receive_stock(
        request: Request,
        model_id: str = Form(...),
        colorway_id: str = Form(...),
        component_id: str = Form(...),
        sizes: str = Form(...),
        batch_number: str = Form(""),
        actor: str = Form("system"),
    ):
        service: ERPService = request.app.state.erp_service
        pairs, invalid = parse_size_quantities(sizes)
        if invalid:
            logger.warning("receipt form rejected", extra={"invalid_sizes": invalid})
            return redirect_home({"error": invalid_sizes_message(invalid)})
        result = service.allocate(
            model_id,
            colorway_id,
            component_id,
            pairs,
            batch_number,
            actor,
        )
        if result.rejected_reason:
            return redirect_home({"error": result.rejected_reason})
        return redirect_home(
            {
                "received": result.total_received,
                "allocated": result.total_allocated,
                "free": result.total_to_free_stock,
            }
        )

    @app.post("/orders")
    async def create_order(
        request: Request,
        order_number: str = Form(...),
        customer: str = Form(...),
        model_id: str = Form(...),
        colorway_id: str = Form(...),
        due_date: str = Form(...),
        instruction_number: str = Form(...),
        lot_number: str = Form(""),
        sizes: str = Form(...),
        priority: Optional[int] = Form(None),
        actor: str = Form("system"),
    ):
        service: ERPService = request.app.state.erp_service
        pairs, invalid = parse_size_quantities(sizes)
        if invalid:
            logger.warning("order form rejected", extra={"invalid_sizes": invalid})
            return redirect_home({"error": invalid_sizes_message(invalid)})
        try:
            due = datetime.strptime(due_date, "%Y-%m-%d").date()
            order = service.create_order(
                order_number,
                customer,
                model_id,
                colorway_id,
                due,
                [
                    InstructionDraft(
                        instruction_number=instruction_number,
                        lot_number=lot_number or f"L-{instruction_number}",
                        sizes=pairs,
                        priority=priority,
                    )
                ],
                actor,
            )
        except (ValueError, RepositoryError) as exc:
            logger.warning("order form rejected", extra={"error": str(exc)})
            return redirect_home({"error": str(exc)})
        return redirect_home({"created": order.order_number})

    @app.post("/orders/import")
    async def import_orders(
        request: Request,
        rows: str = Form(...),
        actor: str = Form("system"),
    ):
        service: ERPService = request.app.state.erp_service
        result = service.import_rows(rows, actor)
        params: Dict[str, object] = {
            "imported": result.success_count,
            "failed": result.fail_count,
        }
        if result.fallbacks:
            params["fallbacks"] = len(result.fallbacks)
        return redirect_home(params)

    @app.post("/orders/{order_id}/status")
    async def update_order_status(
        order_id: str,
        request: Request,
        status: str = Form(...),
        actor: str = Form("system"),
    ):
        service: ERPService = request.app.state.erp_service
        try:
            service.update_order_status(order_id, status, actor)
        except (ValueError, RepositoryError) as exc:
            return redirect_home({"error": str(exc)})
        return redirect_home({})

    @app.post("/schedules")
    async def create_schedule(
        request: Request,
        instruction_id: str = Form(...),
        line_id: str = Form("Line A"),
        scheduled_on: str = Form(""),
        quantity: int = Form(100),
        actor: str = Form("system"),
    ):
        service: ERPService = request.app.state.erp_service
        try:
            day = (
                datetime.strptime(scheduled_on, "%Y-%m-%d").date()
                if scheduled_on
                else date.today() + timedelta(days=1)
            )
        except ValueError:
            return redirect_home({"error": f"Invalid date {scheduled_on!r}"})
        schedule = service.create_schedule(line_id, instruction_id, day, quantity, actor)
        if schedule is None:
            return redirect_home({"error": "Schedule rejected"})
        return redirect_home({"scheduled": schedule.id})

    @app.post("/schedules/{schedule_id}/status")
    async def advance_schedule(
        schedule_id: str,
        request: Request,
        status: str = Form(...),
        actor: str = Form("system"),
    ):
        service: ERPService = request.app.state.erp_service
        try:
            schedule = service.advance_schedule(schedule_id, status, actor)
        except ValueError as exc:
            return redirect_home({"error": str(exc)})
        if schedule is None:
            return redirect_home({"error": f"Unknown schedule {schedule_id}"})
        return redirect_home({})

    @app.post("/instructions/{instruction_id}/production")
    async def record_production(
        instruction_id: str,
        request: Request,
        size: str = Form(...),
        pairs: int = Form(...),
        actor: str = Form("system"),
    ):
        service: ERPService = request.app.state.erp_service
        try:
            service.record_production(instruction_id, size, pairs, actor)
        except ValueError as exc:
            return redirect_home({"error": str(exc)})
        return redirect_home({})

    @app.post("/instructions/{instruction_id}/shipments")
    async def record_shipment(
        instruction_id: str,
        request: Request,
        size: str = Form(...),
        pairs: int = Form(...),
        actor: str = Form("system"),
    ):
        service: ERPService = request.app.state.erp_service
        try:
            service.record_shipment(instruction_id, size, pairs, actor)
        except ValueError as exc:
            return redirect_home({"error": str(exc)})
        return redirect_home({})

    return app


def redirect_home(params: Dict[str, object]) -> RedirectResponse:
    redirect = "/"
    if params:
        redirect += "?" + urlencode(params)
    return RedirectResponse(redirect, status_code=303)


def parse_size_quantities(value: str) -> Tuple[List[Tuple[str, int]], List[str]]:
    """Parse ``"7:100, 8:50"`` (or one ``size=qty`` per line) into pairs.

    Returns the parsed pairs and the tokens that could not be read, so the
    caller can report them instead of dropping them.
    """

    pairs: List[Tuple[str, int]] = []
    invalid: List[str] = []
    for token in value.replace("\n", ",").split(","):
        token = token.strip()
        if not token:
            continue
        separator = ":" if ":" in token else "="
        try:
            size, quantity = [part.strip() for part in token.split(separator)]
            parsed = (size, int(quantity))
        except ValueError:
            parsed = None
        if parsed is None or not parsed[0]:
            invalid.append(token)
        else:
            pairs.append(parsed)
    return pairs, invalid


def invalid_sizes_message(tokens: List[str]) -> str:
    return "Unreadable size entries: " + ", ".join(tokens)


def ensure_demo_data(service: ERPService) -> None:
    service.ensure_reference_data()
    if service.list_orders():
        return
    model = service.registry.model_by_code("ATM-C26227")
    if model is None:
        return
    colorway = service.registry.colorway_by_code("BLK/GLD", model.id)
    if colorway is None:
        return
    service.create_order(
        DEMO_ORDER_NUMBER,
        "Seno Sports Int.",
        model.id,
        colorway.id,
        date.today() + timedelta(days=14),
        [
            InstructionDraft(
                instruction_number="AB17930",
                lot_number="112627713-1",
                sizes=[(size, 240) for size in DEMO_SIZES],
                priority=1,
            )
        ],
        "system",
    )
