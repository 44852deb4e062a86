"""
Audit Log Service.

Entries are added to the caller's session but not committed: they become
durable in the same commit as the write they describe, and disappear with it
on rollback.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..primitives import generate_ulid, utc_now
from .audit_models import AuditLogModel


class AuditService:
    """Service for recording and reading audit log entries.

    Usage:
        audit = AuditService(db_session)
        audit.log_create("Release", release.id, release.to_dict(expand=False), actor="alice")
        db_session.commit()
    """

    def __init__(self, db: Session):
        self.db = db

    def _record(
        self,
        action: str,
        entity_kind: str,
        entity_id: str,
        before: Optional[Dict[str, Any]],
        after: Optional[Dict[str, Any]],
        actor: Optional[str],
        note: Optional[str],
    ) -> AuditLogModel:
        entry = AuditLogModel(
            id=generate_ulid(),
            ts=utc_now(),
            actor=actor or "system",
            action=action,
            entity_kind=entity_kind,
            entity_id=entity_id,
            before=before,
            after=after,
            note=note,
        )
        self.db.add(entry)
        return entry

    def log_create(
        self,
        entity_kind: str,
        entity_id: str,
        after: Dict[str, Any],
        actor: Optional[str] = None,
        note: Optional[str] = None,
    ) -> AuditLogModel:
        """Log the creation of an entity."""
        return self._record("created", entity_kind, entity_id, None, after, actor, note)

    def log_update(
        self,
        entity_kind: str,
        entity_id: str,
        before: Dict[str, Any],
        after: Dict[str, Any],
        actor: Optional[str] = None,
        note: Optional[str] = None,
    ) -> AuditLogModel:
        """Log an update to an entity."""
        return self._record("updated", entity_kind, entity_id, before, after, actor, note)

    def log_rename(
        self,
        entity_kind: str,
        old_id: str,
        new_id: str,
        before: Dict[str, Any],
        after: Dict[str, Any],
        actor: Optional[str] = None,
    ) -> AuditLogModel:
        """Log a re-key of an entity.

        The entry is filed under the new ID; ``before`` keeps the old one.
        """
        return self._record(
            "renamed",
            entity_kind,
            new_id,
            before,
            after,
            actor,
            f"Renamed: {old_id} -> {new_id}",
        )

    def log_delete(
        self,
        entity_kind: str,
        entity_id: str,
        before: Dict[str, Any],
        actor: Optional[str] = None,
        note: Optional[str] = None,
    ) -> AuditLogModel:
        """Log the deletion of an entity."""
        return self._record("deleted", entity_kind, entity_id, before, None, actor, note)

    def log_sync(
        self,
        entity_id: str,
        before: Optional[Dict[str, Any]],
        after: Dict[str, Any],
        actor: Optional[str] = None,
    ) -> AuditLogModel:
        """Log a ticket refreshed from the external tracker."""
        return self._record("synced", "Ticket", entity_id, before, after, actor, None)

    def get_entity_history(
        self,
        entity_kind: str,
        entity_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogModel]:
        """Get audit history for a specific entity, newest first."""
        return (
            self.db.query(AuditLogModel)
            .filter(
                AuditLogModel.entity_kind == entity_kind,
                AuditLogModel.entity_id == entity_id,
            )
            .order_by(desc(AuditLogModel.ts), desc(AuditLogModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )
