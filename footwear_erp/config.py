"""Runtime settings loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ReadyTrigger(str, Enum):
    """When an instruction is flagged MATERIAL_READY during allocation."""

    ANY_ALLOCATION = "any_allocation"
    FULL_SET = "full_set"


@dataclass(slots=True)
class Settings:
    """Configuration values for the service and the web app."""

    database_path: str = "footwear_erp.sqlite3"
    log_level: str = "INFO"
    seed_demo_data: bool = True
    ready_trigger: ReadyTrigger = ReadyTrigger.ANY_ALLOCATION
    default_priority: int = 2

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        level = env.get("FOOTWEAR_ERP_LOG_LEVEL", defaults.log_level).strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level {level!r}")
        try:
            trigger = ReadyTrigger(
                env.get("FOOTWEAR_ERP_READY_TRIGGER", defaults.ready_trigger.value)
                .strip()
                .lower()
            )
        except ValueError as exc:
            raise ValueError(f"Unknown readiness trigger: {exc}") from exc
        priority_text = env.get("FOOTWEAR_ERP_DEFAULT_PRIORITY")
        priority = defaults.default_priority
        if priority_text is not None:
            try:
                priority = int(priority_text)
            except ValueError as exc:
                raise ValueError(
                    f"FOOTWEAR_ERP_DEFAULT_PRIORITY must be an integer, got {priority_text!r}"
                ) from exc
        return cls(
            database_path=env.get("FOOTWEAR_ERP_DATABASE", defaults.database_path),
            log_level=level,
            seed_demo_data=_parse_bool(
                env.get("FOOTWEAR_ERP_SEED_DEMO"), defaults.seed_demo_data
            ),
            ready_trigger=trigger,
            default_priority=priority,
        )


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    normalised = value.strip().lower()
    if normalised in _TRUE_VALUES:
        return True
    if normalised in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot interpret {value!r} as a boolean")


__all__ = ["ReadyTrigger", "Settings"]
