"""
Release Service Layer.

``ReleaseService`` creates, updates and deletes releases; ``ReleaseQueryService``
lists and fetches them with their tickets expanded.

A release's primary key is its version string. Renaming a release is never
an in-place key update: the service stages a new record under the new
version carrying every field and ticket reference, deletes the old record,
and commits both in one transaction.

Ticket descriptions in a payload are reconciled before the release itself is
written. Tickets that could not be persisted are reported on the result
rather than failing the write.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import structlog
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db.audit_service import AuditService
from ..db.models import ReleaseModel, ReleaseTicketModel, TicketModel
from ..db.stores import ReleaseStore
from ..errors import ConflictError, DuplicateKeyError, NotFoundError, ValidationError
from ..primitives import utc_now
from ..tickets.schemas import ReconcileFailure
from ..tickets.services import TicketReconciler
from .schemas import ReleaseCreate, ReleaseUpdate

logger = structlog.get_logger()

DEFAULT_STATUS = "Planned"
MAX_VERSION_LENGTH = 128

# Columns copied onto the new record when a release is renamed
RELEASE_FIELDS = (
    "created_at",
    "status",
    "commits",
    "notes",
    "additional_points",
    "component_deliveries",
    "released_by",
    "build_url",
    "service_id",
    "customers",
)

# Fields an update may not clear; an explicit null leaves them unchanged
NON_NULLABLE_FIELDS = {
    "created_at",
    "status",
    "commits",
    "notes",
    "additional_points",
    "component_deliveries",
    "customers",
}


@dataclass
class ReleaseWriteResult:
    """Outcome of a create or update.

    ``failures`` lists ticket descriptions that could not be persisted; the
    release was still written with the remaining references.
    """

    release: ReleaseModel
    failures: List[ReconcileFailure] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "partial" if self.failures else "success"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "release": self.release.to_dict(),
            "failures": [f.model_dump() for f in self.failures],
        }


@dataclass
class Pagination:
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "has_more": self.has_more,
        }


@dataclass
class ReleasePage:
    releases: List[ReleaseModel]
    pagination: Pagination

    def to_dict(self) -> Dict[str, Any]:
        return {
            "releases": [r.to_dict() for r in self.releases],
            "pagination": self.pagination.to_dict(),
        }


def normalize_version(version: Optional[str]) -> str:
    """Return the stripped version or raise ValidationError."""
    value = (version or "").strip()
    if not value:
        raise ValidationError("Release version is required", {"field": "version"})
    if len(value) > MAX_VERSION_LENGTH:
        raise ValidationError(
            f"Release version must be at most {MAX_VERSION_LENGTH} characters",
            {"field": "version"},
        )
    if "/" in value:
        raise ValidationError(
            "Release version must not contain '/'", {"field": "version"}
        )
    return value


def _ticket_links(tickets: Sequence[TicketModel]) -> List[ReleaseTicketModel]:
    return [
        ReleaseTicketModel(ticket_pk=ticket.id, ticket=ticket, position=position)
        for position, ticket in enumerate(tickets)
    ]


def _dump_field(name: str, value: Any) -> Any:
    if name == "component_deliveries" and value is not None:
        return [
            delivery if isinstance(delivery, dict) else delivery.model_dump()
            for delivery in value
        ]
    return value


class ReleaseService:
    """Create, update and delete releases."""

    def __init__(
        self,
        db: Session,
        audit: Optional[AuditService] = None,
        reconciler: Optional[TicketReconciler] = None,
    ):
        self.db = db
        self.releases = ReleaseStore(db)
        self.audit = audit or AuditService(db)
        self.reconciler = reconciler or TicketReconciler(db, audit=self.audit)

    def create(
        self, payload: ReleaseCreate, actor: Optional[str] = None
    ) -> ReleaseWriteResult:
        """Create a release keyed by its version."""
        version = normalize_version(payload.version)
        tickets = payload.tickets or []
        self.reconciler.validate(tickets)

        if self.releases.get(version) is not None:
            raise ConflictError(
                f"A release with version {version} already exists",
                {"version": version},
            )

        actor = actor or payload.released_by
        reconciled = self.reconciler.reconcile(tickets, actor=actor)

        now = utc_now()
        release = ReleaseModel(
            id=version,
            version=version,
            created_at=payload.created_at or now,
            updated_at=now,
            status=payload.status or DEFAULT_STATUS,
            commits=list(payload.commits or []),
            notes=payload.notes or "",
            additional_points=list(payload.additional_points or []),
            component_deliveries=_dump_field(
                "component_deliveries", payload.component_deliveries or []
            ),
            released_by=payload.released_by,
            build_url=payload.build_url,
            service_id=payload.service_id,
            customers=list(payload.customers or []),
        )
        release.ticket_links = _ticket_links(reconciled.refs)

        self.releases.add(release)
        self.audit.log_create(
            "Release", version, release.to_dict(expand=False), actor=actor
        )
        try:
            self.releases.commit(f"create release {version}")
        except DuplicateKeyError as exc:
            # Lost a race with a concurrent create of the same version
            raise ConflictError(
                f"A release with version {version} already exists",
                {"version": version},
            ) from exc

        logger.info(
            "release_created",
            release_id=version,
            tickets=len(reconciled.refs),
            ticket_failures=len(reconciled.failures),
        )
        return ReleaseWriteResult(release=release, failures=reconciled.failures)

    def update(
        self,
        release_id: str,
        payload: ReleaseUpdate,
        actor: Optional[str] = None,
    ) -> ReleaseWriteResult:
        """Apply a partial update, renaming the release if its version changes."""
        release = self.releases.get(release_id)
        if release is None:
            raise NotFoundError("Release", release_id)

        changes = {
            name: _dump_field(name, value)
            for name, value in payload.model_dump(
                exclude_unset=True, exclude={"tickets", "version"}
            ).items()
            if value is not None or name not in NON_NULLABLE_FIELDS
        }

        new_version = None
        if payload.version is not None:
            candidate = normalize_version(payload.version)
            if candidate != release.id:
                if self.releases.get(candidate) is not None:
                    raise ConflictError(
                        f"A release with version {candidate} already exists",
                        {"version": candidate},
                    )
                new_version = candidate

        replace_tickets = payload.tickets is not None
        if replace_tickets:
            self.reconciler.validate(payload.tickets)

        before = release.to_dict(expand=False)

        failures: List[ReconcileFailure] = []
        tickets = None
        if replace_tickets:
            reconciled = self.reconciler.reconcile(payload.tickets, actor=actor)
            tickets = reconciled.refs
            failures = reconciled.failures

        if new_version is not None:
            renamed = self._rename(release, new_version, changes, tickets)
            self.audit.log_rename(
                "Release",
                release_id,
                new_version,
                before,
                renamed.to_dict(expand=False),
                actor=actor,
            )
            self._commit_rename(release_id, new_version)
            logger.info("release_renamed", release_id=release_id, new_release_id=new_version)
            return ReleaseWriteResult(release=renamed, failures=failures)

        for name, value in changes.items():
            setattr(release, name, value)
        if tickets is not None:
            self.releases.replace_ticket_links(release, _ticket_links(tickets))
        release.updated_at = utc_now()

        self.audit.log_update(
            "Release", release_id, before, release.to_dict(expand=False), actor=actor
        )
        self.releases.commit(f"update release {release_id}")

        logger.info(
            "release_updated",
            release_id=release_id,
            fields=sorted(changes),
            tickets_replaced=replace_tickets,
            ticket_failures=len(failures),
        )
        return ReleaseWriteResult(release=release, failures=failures)

    def _rename(
        self,
        release: ReleaseModel,
        new_version: str,
        changes: Dict[str, Any],
        tickets: Optional[List[TicketModel]],
    ) -> ReleaseModel:
        """Stage a copy of ``release`` under ``new_version`` and drop the old record."""
        values = {name: getattr(release, name) for name in RELEASE_FIELDS}
        values.update(changes)
        if tickets is None:
            tickets = release.tickets

        renamed = ReleaseModel(
            id=new_version,
            version=new_version,
            updated_at=utc_now(),
            **values,
        )
        renamed.ticket_links = _ticket_links(tickets)

        self.releases.rekey(release, renamed)
        return renamed

    def _commit_rename(self, old_id: str, new_id: str) -> None:
        try:
            self.releases.commit(f"rename release {old_id} to {new_id}")
        except DuplicateKeyError as exc:
            # Rolled back; the old record is intact
            raise ConflictError(
                f"A release with version {new_id} already exists",
                {"version": new_id},
            ) from exc

    def delete(self, release_id: str, actor: Optional[str] = None) -> None:
        """Delete a release. Referenced tickets are left in place."""
        release = self.releases.get(release_id)
        if release is None:
            raise NotFoundError("Release", release_id)

        before = release.to_dict(expand=False)
        self.releases.delete(release)
        self.audit.log_delete("Release", release_id, before, actor=actor)
        self.releases.commit(f"delete release {release_id}")

        logger.info("release_deleted", release_id=release_id)


class ReleaseQueryService:
    """Read-side access to releases."""

    def __init__(self, db: Session):
        self.db = db
        self.releases = ReleaseStore(db)
        self.settings = get_settings()

    def list(
        self,
        service_id: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> ReleasePage:
        """List releases, newest first, optionally for one service."""
        if page_size is None:
            page_size = self.settings.default_page_size
        if page < 1:
            raise ValidationError("page must be at least 1", {"field": "page"})
        if not 1 <= page_size <= self.settings.max_page_size:
            raise ValidationError(
                f"page_size must be between 1 and {self.settings.max_page_size}",
                {"field": "page_size"},
            )

        total = self.releases.count(service_id)
        releases = self.releases.list(
            service_id=service_id,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
        return ReleasePage(
            releases=releases,
            pagination=Pagination(total=total, page=page, page_size=page_size),
        )

    def get(self, release_id: str) -> ReleaseModel:
        """Get a release by ID."""
        release = self.releases.get(release_id)
        if release is None:
            raise NotFoundError("Release", release_id)
        return release
