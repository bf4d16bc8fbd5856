"""Best-effort audit trail.

Audit writes happen after the business mutation has committed. A failing
sink is logged and ignored; it never turns a successful operation into a
failed one.
"""
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from studio.audit.models import AuditAction, AuditEvent
from studio.database import side_session

logger = logging.getLogger(__name__)


@dataclass
class AuditEntry:
    action: AuditAction
    entity_type: str
    entity_id: Optional[UUID]
    project_id: Optional[UUID]
    actor_id: Optional[UUID]
    payload: Dict[str, Any] = field(default_factory=dict)


def _jsonable(payload: Dict[str, Any]) -> Dict[str, Any]:
    return json.loads(json.dumps(payload, default=str))


class AuditSink(ABC):
    @abstractmethod
    async def record(self, entry: AuditEntry) -> None:
        pass


class LoggingAuditSink(AuditSink):
    """Writes the entry as a structured log line."""

    async def record(self, entry: AuditEntry) -> None:
        logger.info(
            "audit action=%s entity=%s:%s project=%s actor=%s payload=%s",
            entry.action.value,
            entry.entity_type,
            entry.entity_id,
            entry.project_id,
            entry.actor_id,
            json.dumps(entry.payload, default=str, sort_keys=True),
        )


class DatabaseAuditSink(AuditSink):
    """Inserts into ``audit_events`` on its own session; falls back to the log when the insert fails."""

    def __init__(self, db: AsyncSession, fallback: Optional[AuditSink] = None):
        self.db = db
        self.fallback = fallback or LoggingAuditSink()

    async def record(self, entry: AuditEntry) -> None:
        try:
            async with side_session(self.db) as session:
                session.add(AuditEvent(
                    project_id=entry.project_id,
                    action=entry.action.value,
                    actor_id=entry.actor_id,
                    entity_type=entry.entity_type,
                    entity_id=entry.entity_id,
                    detail=_jsonable(entry.payload),
                ))
                await session.commit()
            return
        except Exception:
            logger.exception("Audit insert failed for %s, falling back to log", entry.action.value)

        try:
            await self.fallback.record(entry)
        except Exception:
            logger.exception("Audit fallback failed for %s", entry.action.value)
