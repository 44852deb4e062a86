"""
Ticket Service Layer.

``TicketReconciler`` turns ticket descriptions carried by a release payload
into stable references: an existing ticket is reused untouched (first write
wins), a missing one is created from the description. ``TicketService`` is
the re-ingestion path that refreshes mirrored fields from the tracker.

Both process a batch item by item. A ticket that cannot be persisted is
reported in ``failures`` and skipped; the rest of the batch goes on.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import structlog
from sqlalchemy.orm import Session

from ..db.audit_service import AuditService
from ..db.models import TicketModel
from ..db.stores import TicketStore
from ..errors import DuplicateKeyError, StoreError, ValidationError
from ..primitives import generate_ulid, utc_now
from .schemas import ReconcileFailure, TicketDescription

logger = structlog.get_logger()

DEFAULT_ASSIGNEE = "Unassigned"
DEFAULT_PRIORITY = "Medium"


@dataclass
class ReconcileResult:
    """Tickets referenced by a batch, in input order, plus the items that failed."""

    refs: List[TicketModel] = field(default_factory=list)
    failures: List[ReconcileFailure] = field(default_factory=list)


@dataclass
class TicketSyncResult:
    created: List[TicketModel] = field(default_factory=list)
    updated: List[TicketModel] = field(default_factory=list)
    failures: List[ReconcileFailure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "partial" if self.failures else "success",
            "created": [t.to_dict() for t in self.created],
            "updated": [t.to_dict() for t in self.updated],
            "failures": [f.model_dump() for f in self.failures],
        }


def validate_descriptions(descriptions: Sequence[TicketDescription]) -> None:
    """Reject a batch in which any description lacks a ticket_id."""
    for index, description in enumerate(descriptions):
        if not (description.ticket_id or "").strip():
            raise ValidationError(
                "Ticket description is missing ticket_id",
                {"field": f"tickets[{index}].ticket_id"},
            )


def build_ticket(description: TicketDescription) -> TicketModel:
    """Create an unsaved ticket from a description."""
    return TicketModel(
        id=generate_ulid(),
        ticket_id=description.ticket_id.strip(),
        summary=description.summary or "",
        status=description.status or "",
        assignee=description.assignee or DEFAULT_ASSIGNEE,
        priority=description.priority or DEFAULT_PRIORITY,
        components=list(description.components or []),
        fix_versions=list(description.fix_versions or []),
        created=description.created,
        updated=description.updated,
        last_synced_at=utc_now(),
    )


def _failure(description: TicketDescription, exc: StoreError) -> ReconcileFailure:
    return ReconcileFailure(
        input=description.model_dump(),
        error=exc.message,
        code=exc.code,
    )


class TicketReconciler:
    """Create-if-absent / reuse-if-present over a batch of descriptions."""

    def __init__(self, db: Session, audit: Optional[AuditService] = None):
        self.db = db
        self.tickets = TicketStore(db)
        self.audit = audit or AuditService(db)

    def validate(self, descriptions: Sequence[TicketDescription]) -> None:
        validate_descriptions(descriptions)

    def reconcile(
        self,
        descriptions: Sequence[TicketDescription],
        actor: Optional[str] = None,
    ) -> ReconcileResult:
        """Resolve each description to a persisted ticket.

        A ticket_id repeated within the batch yields a single reference at
        its first position.
        """
        self.validate(descriptions)

        result = ReconcileResult()
        seen = set()

        for description in descriptions:
            ticket_id = description.ticket_id.strip()
            if ticket_id in seen:
                continue

            try:
                ticket = self._find_or_create(description, actor)
            except StoreError as exc:
                logger.warning(
                    "ticket_reconcile_failed",
                    ticket_id=ticket_id,
                    error=exc.message,
                )
                result.failures.append(_failure(description, exc))
                continue

            seen.add(ticket_id)
            result.refs.append(ticket)

        return result

    def _find_or_create(
        self, description: TicketDescription, actor: Optional[str]
    ) -> TicketModel:
        ticket_id = description.ticket_id.strip()

        existing = self.tickets.get_by_ticket_id(ticket_id)
        if existing is not None:
            return existing

        ticket = build_ticket(description)
        self.audit.log_create("Ticket", ticket_id, ticket.to_dict(), actor=actor)
        try:
            self.tickets.create(ticket)
        except DuplicateKeyError:
            # A concurrent writer created it between our lookup and insert
            winner = self.tickets.get_by_ticket_id(ticket_id)
            if winner is None:
                raise
            logger.info("ticket_create_race_resolved", ticket_id=ticket_id)
            return winner

        logger.info("ticket_created", ticket_id=ticket_id)
        return ticket


class TicketService:
    """Lookup and re-ingestion of mirrored tickets."""

    def __init__(self, db: Session, audit: Optional[AuditService] = None):
        self.db = db
        self.tickets = TicketStore(db)
        self.audit = audit or AuditService(db)

    def get_by_ticket_id(self, ticket_id: str) -> Optional[TicketModel]:
        """Get a ticket by its external identifier."""
        return self.tickets.get_by_ticket_id(ticket_id)

    def list(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[TicketModel]:
        """List tickets with optional filtering."""
        return self.tickets.list(status=status, search=search, limit=limit, offset=offset)

    def sync(
        self,
        descriptions: Sequence[TicketDescription],
        actor: Optional[str] = None,
    ) -> TicketSyncResult:
        """Upsert tickets from fresh tracker data.

        Unlike reconciliation, existing tickets are overwritten with every
        field the description carries and ``last_synced_at`` is bumped.
        """
        validate_descriptions(descriptions)

        result = TicketSyncResult()
        for description in descriptions:
            ticket_id = description.ticket_id.strip()
            try:
                ticket, created = self._upsert(description, actor)
            except StoreError as exc:
                logger.warning("ticket_sync_failed", ticket_id=ticket_id, error=exc.message)
                result.failures.append(_failure(description, exc))
                continue

            (result.created if created else result.updated).append(ticket)

        logger.info(
            "tickets_synced",
            created=len(result.created),
            updated=len(result.updated),
            failed=len(result.failures),
        )
        return result

    def _upsert(self, description: TicketDescription, actor: Optional[str]):
        ticket_id = description.ticket_id.strip()

        existing = self.tickets.get_by_ticket_id(ticket_id)
        if existing is None:
            ticket = build_ticket(description)
            self.audit.log_create("Ticket", ticket_id, ticket.to_dict(), actor=actor)
            try:
                return self.tickets.create(ticket), True
            except DuplicateKeyError:
                existing = self.tickets.get_by_ticket_id(ticket_id)
                if existing is None:
                    raise

        self._refresh(existing, description, actor)
        return existing, False

    def _refresh(
        self, ticket: TicketModel, description: TicketDescription, actor: Optional[str]
    ) -> None:
        before = ticket.to_dict()
        provided = description.model_fields_set - {"ticket_id"}

        for name in provided:
            value = getattr(description, name)
            if name == "assignee":
                value = value or DEFAULT_ASSIGNEE
            elif name == "priority":
                value = value or DEFAULT_PRIORITY
            elif name in ("components", "fix_versions"):
                value = list(value or [])
            elif name in ("summary", "status"):
                value = value or ""
            setattr(ticket, name, value)
        ticket.last_synced_at = utc_now()

        self.audit.log_sync(ticket.ticket_id, before, ticket.to_dict(), actor=actor)
        self.tickets.commit(f"sync ticket {ticket.ticket_id}")
