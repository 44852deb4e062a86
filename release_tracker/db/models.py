"""
SQLAlchemy models for the Release Tracker.

Releases are keyed by their version string. Tickets are mirrored from the
external issue tracker and keyed by a generated ULID, with the external
identifier held in a unique ``ticket_id`` column. Releases reference tickets
through the ``release_tickets`` association table; removing a release removes
its reference rows but never the tickets themselves.
"""

from typing import Any, Dict, List

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ..primitives import isoformat, utc_now
from .base import Base


class TicketModel(Base):
    """Local projection of an externally tracked issue."""

    __tablename__ = "tickets"

    id = Column(String(36), primary_key=True)
    ticket_id = Column(String(128), nullable=False, unique=True, index=True)

    summary = Column(Text, nullable=False, default="")
    status = Column(String(64), nullable=False, default="")
    assignee = Column(String(256), nullable=False, default="Unassigned")
    priority = Column(String(64), nullable=False, default="Medium")
    components = Column(JSON, nullable=False, default=list)
    fix_versions = Column(JSON, nullable=False, default=list)

    # Opaque timestamps from the external tracker, stored as received
    created = Column(String(64), nullable=True)
    updated = Column(String(64), nullable=True)

    last_synced_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (Index("ix_tickets_status", "status"),)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "ticket_id": self.ticket_id,
            "summary": self.summary,
            "status": self.status,
            "assignee": self.assignee,
            "priority": self.priority,
            "components": list(self.components or []),
            "fix_versions": list(self.fix_versions or []),
            "created": self.created,
            "updated": self.updated,
            "last_synced_at": isoformat(self.last_synced_at),
        }


class ReleaseTicketModel(Base):
    """Ordered, non-owning reference from a Release to a Ticket."""

    __tablename__ = "release_tickets"

    release_id = Column(
        String(128),
        ForeignKey("releases.id", ondelete="CASCADE"),
        primary_key=True,
    )
    ticket_pk = Column(String(36), ForeignKey("tickets.id"), primary_key=True)
    position = Column(Integer, nullable=False, default=0)

    release = relationship("ReleaseModel", back_populates="ticket_links")
    ticket = relationship("TicketModel", lazy="selectin")

    __table_args__ = (Index("ix_release_tickets_ticket_pk", "ticket_pk"),)


class ReleaseModel(Base):
    """A versioned bundle of delivered changes."""

    __tablename__ = "releases"

    # Equal to ``version`` at creation; never updated in place
    id = Column(String(128), primary_key=True)
    version = Column(String(128), nullable=False, unique=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    status = Column(String(64), nullable=False, default="Planned")
    commits = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=False, default="")
    additional_points = Column(JSON, nullable=False, default=list)
    component_deliveries = Column(JSON, nullable=False, default=list)
    released_by = Column(String(256), nullable=True)
    build_url = Column(String(2000), nullable=True)
    service_id = Column(String(128), nullable=True, index=True)
    customers = Column(JSON, nullable=False, default=list)

    ticket_links = relationship(
        "ReleaseTicketModel",
        back_populates="release",
        order_by="ReleaseTicketModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_releases_created_at", "created_at"),
        Index("ix_releases_service_created", "service_id", "created_at"),
    )

    @property
    def ticket_refs(self) -> List[str]:
        """Ticket surrogate IDs in reference order."""
        return [link.ticket_pk for link in self.ticket_links]

    @property
    def tickets(self) -> List[TicketModel]:
        """Referenced tickets in reference order."""
        return [link.ticket for link in self.ticket_links if link.ticket is not None]

    def to_dict(self, expand: bool = True) -> Dict[str, Any]:
        """Convert model to dictionary.

        With ``expand`` the referenced tickets are inlined in reference order;
        otherwise only their IDs are returned.
        """
        data = {
            "id": self.id,
            "version": self.version,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
            "status": self.status,
            "ticket_refs": self.ticket_refs,
            "commits": list(self.commits or []),
            "notes": self.notes,
            "additional_points": list(self.additional_points or []),
            "component_deliveries": list(self.component_deliveries or []),
            "released_by": self.released_by,
            "build_url": self.build_url,
            "service_id": self.service_id,
            "customers": list(self.customers or []),
        }
        if expand:
            data["tickets"] = [ticket.to_dict() for ticket in self.tickets]
        return data
