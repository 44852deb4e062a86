"""
Persistent stores for Tickets and Releases.

The stores are thin wrappers over a SQLAlchemy session. Writes are staged
with ``add``/``delete`` and made durable with ``commit``; every store failure
rolls the session back and surfaces as ``StoreError`` (``DuplicateKeyError``
for uniqueness violations), chained to the original SQLAlchemy exception.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import desc, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import DuplicateKeyError, StoreError
from .models import ReleaseModel, ReleaseTicketModel, TicketModel


@contextmanager
def store_guard(db: Session, operation: str) -> Iterator[None]:
    """Map SQLAlchemy failures inside the block to store errors."""
    try:
        yield
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateKeyError(
            f"{operation} rejected by a uniqueness constraint",
            {"operation": operation},
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError(
            f"{operation} failed: {exc.__class__.__name__}",
            {"operation": operation},
        ) from exc


class TicketStore:
    """Ticket records keyed by surrogate ID, unique on ``ticket_id``."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_ticket_id(self, ticket_id: str) -> Optional[TicketModel]:
        return (
            self.db.query(TicketModel)
            .filter(TicketModel.ticket_id == ticket_id)
            .first()
        )

    def list(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[TicketModel]:
        query = self.db.query(TicketModel)

        if status:
            query = query.filter(TicketModel.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    TicketModel.ticket_id.ilike(pattern),
                    TicketModel.summary.ilike(pattern),
                )
            )

        return (
            query.order_by(TicketModel.ticket_id)
            .offset(offset)
            .limit(limit)
            .all()
        )

    def create(self, ticket: TicketModel) -> TicketModel:
        """Persist a new ticket in its own commit."""
        self.db.add(ticket)
        self.commit(f"create ticket {ticket.ticket_id}")
        return ticket

    def commit(self, operation: str = "ticket write") -> None:
        with store_guard(self.db, operation):
            self.db.commit()


class ReleaseStore:
    """Release records keyed by version string."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, release_id: str) -> Optional[ReleaseModel]:
        return self.db.get(ReleaseModel, release_id)

    def _filtered(self, service_id: Optional[str]):
        query = self.db.query(ReleaseModel)
        if service_id:
            query = query.filter(ReleaseModel.service_id == service_id)
        return query

    def count(self, service_id: Optional[str] = None) -> int:
        return (
            self._filtered(service_id)
            .with_entities(func.count(ReleaseModel.id))
            .scalar()
        )

    def list(
        self,
        service_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[ReleaseModel]:
        return (
            self._filtered(service_id)
            .order_by(desc(ReleaseModel.created_at), desc(ReleaseModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def add(self, release: ReleaseModel) -> None:
        self.db.add(release)

    def delete(self, release: ReleaseModel) -> None:
        self.db.delete(release)

    def replace_ticket_links(
        self, release: ReleaseModel, links: List[ReleaseTicketModel]
    ) -> None:
        """Swap the release's reference rows for ``links``.

        Old rows are flushed away first so a ticket kept across the swap
        does not collide with its own previous row.
        """
        with store_guard(self.db, f"replace tickets of release {release.id}"):
            release.ticket_links.clear()
            self.db.flush()
            release.ticket_links.extend(links)

    def rekey(self, old: ReleaseModel, new: ReleaseModel) -> None:
        """Stage ``new`` in place of ``old`` without an in-place key update."""
        with store_guard(self.db, f"rename release {old.id} to {new.id}"):
            self.db.delete(old)
            self.db.flush()
            self.db.add(new)

    def commit(self, operation: str = "release write") -> None:
        with store_guard(self.db, operation):
            self.db.commit()
