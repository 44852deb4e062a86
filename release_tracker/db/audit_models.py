"""
Audit Log Database Models.

Every Release and Ticket write is recorded with before/after snapshots and
the actor that performed it.
"""

from typing import Any, Dict

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    Index,
    String,
    Text,
)

from ..primitives import isoformat, utc_now
from .base import Base


audit_action_enum = Enum(
    "created",
    "updated",
    "renamed",
    "deleted",
    "synced",
    name="audit_action",
)


class AuditLogModel(Base):
    """Audit log entry for a single write."""

    __tablename__ = "audit_log"

    # ULID, so entries sort by creation order within the same timestamp
    id = Column(String(36), primary_key=True)

    ts = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)

    # Who performed the action (free-form, e.g. the releasing engineer)
    actor = Column(String(256), nullable=False, default="system")

    action = Column(audit_action_enum, nullable=False, index=True)

    # "Release" or "Ticket"
    entity_kind = Column(String(50), nullable=False)
    entity_id = Column(String(128), nullable=False)

    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)

    note = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_audit_log_entity", "entity_kind", "entity_id"),
        Index("ix_audit_log_entity_ts", "entity_kind", "entity_id", "ts"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "ts": isoformat(self.ts),
            "actor": self.actor,
            "action": self.action,
            "entity_kind": self.entity_kind,
            "entity_id": self.entity_id,
            "before": self.before,
            "after": self.after,
            "note": self.note,
        }
