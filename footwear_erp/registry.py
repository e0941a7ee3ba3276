"""Reference data: models, colorways, components, accounts and bills of materials."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple
from uuid import uuid4

from .domain import BillOfMaterials, Colorway, Component, Role, ShoeModel, User
from .logging_config import get_logger
from .repository import DuplicateRecordError, RecordNotFoundError

logger = get_logger("registry")

SEED_MODELS = (
    ("m1", "ATM-C26227", "2025 performance running shoe"),
    ("m2", "AW-L24302D", "Casual walking shoe Lite"),
)
SEED_COLORWAYS = (
    ("c1", "m1", "BLK/GLD", "Black/Gold"),
    ("c2", "m1", "WHT/RED", "White/Red"),
    ("c3", "m2", "GRY/GRY", "All grey"),
)
SEED_COMPONENTS = (
    ("p1", "IP", "Injected midsole (IP)"),
    ("p2", "TPU", "TPU shank"),
    ("p3", "RB", "Rubber outsole"),
    ("p4", "UPPER", "Finished upper"),
)
SEED_USERS = (
    ("u1", "admin", "System administrator", Role.ADMIN),
    ("u2", "planner", "Production planner", Role.PLANNER),
    ("u3", "wh", "Warehouse lead", Role.WAREHOUSE),
    ("u4", "sales", "Sales representative", Role.SALES),
)


class DomainRegistry:
    """Lookup and registration of static reference data."""

    def __init__(self, database) -> None:
        self._db = database

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def register_model(
        self, code: str, description: str, *, model_id: Optional[str] = None
    ) -> ShoeModel:
        if self.model_by_code(code) is not None:
            raise DuplicateRecordError(f"Model code {code!r} already registered")
        model = ShoeModel(id=model_id or str(uuid4()), code=code, description=description)
        self._db.models.add(model.id, model)
        return model

    def register_colorway(
        self, model_id: str, code: str, name: str, *, colorway_id: Optional[str] = None
    ) -> Colorway:
        self._db.models.get(model_id)
        if any(c.code == code for c in self.colorways_for_model(model_id)):
            raise DuplicateRecordError(
                f"Colorway {code!r} already registered for model {model_id!r}"
            )
        colorway = Colorway(
            id=colorway_id or str(uuid4()), model_id=model_id, code=code, name=name
        )
        self._db.colorways.add(colorway.id, colorway)
        return colorway

    def register_component(
        self, code: str, name: str, *, component_id: Optional[str] = None
    ) -> Component:
        if self._db.components.first(lambda c: c.code == code) is not None:
            raise DuplicateRecordError(f"Component code {code!r} already registered")
        component = Component(id=component_id or str(uuid4()), code=code, name=name)
        self._db.components.add(component.id, component)
        return component

    def register_user(
        self, username: str, name: str, role: Role, *, user_id: Optional[str] = None
    ) -> User:
        if self.find_user(username) is not None:
            raise DuplicateRecordError(f"User {username!r} already exists")
        user = User(id=user_id or str(uuid4()), username=username, name=name, role=role)
        self._db.users.add(user.id, user)
        return user

    def define_bill_of_materials(
        self, model_id: str, component_ids: Sequence[str]
    ) -> BillOfMaterials:
        self._db.models.get(model_id)
        for component_id in component_ids:
            if component_id not in self._db.components:
                raise RecordNotFoundError(f"Component {component_id!r} does not exist")
        bom = BillOfMaterials(model_id=model_id, component_ids=tuple(component_ids))
        self._db.bills_of_materials.upsert(model_id, bom)
        return bom

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def required_components(self, model_id: str) -> Tuple[str, ...]:
        """Components making up one complete set for a model.

        Models without an explicit bill of materials require every
        registered component.
        """

        bom = self._db.bills_of_materials.find(model_id)
        if bom is not None:
            return bom.component_ids
        return tuple(component.id for component in self._db.components)

    def model(self, model_id: str) -> Optional[ShoeModel]:
        return self._db.models.find(model_id)

    def colorway(self, colorway_id: str) -> Optional[Colorway]:
        return self._db.colorways.find(colorway_id)

    def component(self, component_id: str) -> Optional[Component]:
        return self._db.components.find(component_id)

    def model_by_code(self, code: str) -> Optional[ShoeModel]:
        return self._db.models.first(lambda m: m.code == code)

    def colorways_for_model(self, model_id: str) -> List[Colorway]:
        return [c for c in self._db.colorways if c.model_id == model_id]

    def colorway_by_code(self, code: str, model_id: Optional[str] = None) -> Optional[Colorway]:
        candidates = (
            self.colorways_for_model(model_id) if model_id else self._db.colorways.list()
        )
        return next((c for c in candidates if c.code == code), None)

    def default_model(self) -> Optional[ShoeModel]:
        models = self._db.models.list()
        return models[0] if models else None

    def default_colorway(self, model_id: Optional[str] = None) -> Optional[Colorway]:
        if model_id:
            owned = self.colorways_for_model(model_id)
            if owned:
                return owned[0]
        colorways = self._db.colorways.list()
        return colorways[0] if colorways else None

    def find_user(self, username: str) -> Optional[User]:
        return self._db.users.first(lambda u: u.username == username)

    def list_models(self) -> List[ShoeModel]:
        return self._db.models.list()

    def list_colorways(self) -> List[Colorway]:
        return self._db.colorways.list()

    def list_components(self) -> List[Component]:
        return self._db.components.list()


def seed_reference_data(registry: DomainRegistry) -> bool:
    """Register the demo catalog unless reference data already exists."""

    if registry.list_models():
        return False
    for model_id, code, description in SEED_MODELS:
        registry.register_model(code, description, model_id=model_id)
    for colorway_id, model_id, code, name in SEED_COLORWAYS:
        registry.register_colorway(model_id, code, name, colorway_id=colorway_id)
    for component_id, code, name in SEED_COMPONENTS:
        registry.register_component(code, name, component_id=component_id)
    for user_id, username, name, role in SEED_USERS:
        registry.register_user(username, name, role, user_id=user_id)
    logger.info(
        "reference data seeded",
        extra={
            "models": len(SEED_MODELS),
            "colorways": len(SEED_COLORWAYS),
            "components": len(SEED_COMPONENTS),
        },
    )
    return True


__all__ = ["DomainRegistry", "seed_reference_data"]
