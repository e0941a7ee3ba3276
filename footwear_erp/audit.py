"""Append-only audit log of mutating actions."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from .domain import AuditLogEntry
from .logging_config import get_logger

logger = get_logger("audit")


class AuditLog:
    """Records who did what; entries are never changed or removed."""

    def __init__(self, repository) -> None:
        self._entries = repository

    def record(self, actor: str, action: str, details: str) -> AuditLogEntry:
        entry = AuditLogEntry(
            id=str(uuid4()),
            timestamp=datetime.utcnow(),
            actor=actor,
            action=action,
            details=details,
        )
        self._entries.add(entry.id, entry)
        logger.info("audit entry", extra={"action": action, "details": details})
        return entry

    def entries(self, *, limit: Optional[int] = None) -> List[AuditLogEntry]:
        """Return entries newest first."""

        newest_first = list(reversed(self._entries.list()))
        return newest_first if limit is None else newest_first[:limit]

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["AuditLog"]
