"""Tests for ticket re-ingestion."""

import pytest

from conftest import make_ticket
from release_tracker.db.audit_models import AuditLogModel
from release_tracker.db.models import TicketModel
from release_tracker.db.stores import TicketStore
from release_tracker.errors import StoreError, ValidationError
from release_tracker.tickets import TicketDescription, TicketReconciler, TicketService


class TestTicketSync:
    """TicketService.sync"""

    def test_sync_creates_unknown_tickets(self, db_session):
        result = TicketService(db_session).sync([make_ticket("DNIO-1")], actor="bot")

        assert [t.ticket_id for t in result.created] == ["DNIO-1"]
        assert result.updated == []
        assert result.to_dict()["status"] == "success"

    def test_sync_overwrites_existing_fields(self, db_session):
        """Unlike reconciliation, sync refreshes what the tracker sent."""
        TicketReconciler(db_session).reconcile([make_ticket("DNIO-1", summary="Old", status="Open")])
        before = db_session.query(TicketModel).filter_by(ticket_id="DNIO-1").one()
        ticket_pk = before.id
        synced_at = before.last_synced_at

        result = TicketService(db_session).sync(
            [TicketDescription(ticket_id="DNIO-1", summary="New", status="Done")]
        )

        assert [t.ticket_id for t in result.updated] == ["DNIO-1"]
        ticket = db_session.query(TicketModel).filter_by(ticket_id="DNIO-1").one()
        assert ticket.id == ticket_pk
        assert ticket.summary == "New"
        assert ticket.status == "Done"
        assert ticket.last_synced_at >= synced_at

    def test_sync_leaves_unsent_fields_alone(self, db_session):
        TicketService(db_session).sync(
            [make_ticket("DNIO-1", assignee="Dana", components=["api"])]
        )

        TicketService(db_session).sync([TicketDescription(ticket_id="DNIO-1", status="Closed")])

        ticket = db_session.query(TicketModel).filter_by(ticket_id="DNIO-1").one()
        assert ticket.status == "Closed"
        assert ticket.assignee == "Dana"
        assert ticket.components == ["api"]

    def test_sync_null_assignee_falls_back_to_default(self, db_session):
        TicketService(db_session).sync([make_ticket("DNIO-1", assignee="Dana")])

        TicketService(db_session).sync([TicketDescription(ticket_id="DNIO-1", assignee=None)])

        ticket = db_session.query(TicketModel).filter_by(ticket_id="DNIO-1").one()
        assert ticket.assignee == "Unassigned"

    def test_sync_is_audited(self, db_session):
        service = TicketService(db_session)
        service.sync([make_ticket("DNIO-1", status="Open")])
        service.sync([make_ticket("DNIO-1", status="Done")], actor="bot")

        entries = (
            db_session.query(AuditLogModel)
            .filter_by(entity_kind="Ticket", entity_id="DNIO-1", action="synced")
            .all()
        )
        assert len(entries) == 1
        assert entries[0].actor == "bot"
        assert entries[0].before["status"] == "Open"
        assert entries[0].after["status"] == "Done"

    def test_sync_rejects_missing_ticket_id(self, db_session):
        with pytest.raises(ValidationError):
            TicketService(db_session).sync([make_ticket("DNIO-1"), TicketDescription()])

        assert db_session.query(TicketModel).count() == 0

    def test_sync_partial_failure(self, db_session, monkeypatch):
        original_create = TicketStore.create

        def flaky_create(self, ticket):
            if ticket.ticket_id == "DNIO-2":
                self.db.rollback()
                raise StoreError("create ticket DNIO-2 failed: OperationalError")
            return original_create(self, ticket)

        monkeypatch.setattr(TicketStore, "create", flaky_create)

        result = TicketService(db_session).sync([make_ticket("DNIO-1"), make_ticket("DNIO-2")])

        assert [t.ticket_id for t in result.created] == ["DNIO-1"]
        assert result.failures[0].input["ticket_id"] == "DNIO-2"
        assert result.to_dict()["status"] == "partial"


class TestTicketLookup:
    def test_get_by_ticket_id(self, db_session):
        TicketService(db_session).sync([make_ticket("DNIO-1")])

        assert TicketService(db_session).get_by_ticket_id("DNIO-1").summary == "Summary of DNIO-1"
        assert TicketService(db_session).get_by_ticket_id("DNIO-404") is None

    def test_list_filters(self, db_session):
        TicketService(db_session).sync(
            [
                make_ticket("DNIO-1", status="Open", summary="Retry loop"),
                make_ticket("DNIO-2", status="Done", summary="Login page"),
                make_ticket("OPS-3", status="Done", summary="Retry budget"),
            ]
        )
        service = TicketService(db_session)

        assert [t.ticket_id for t in service.list(status="Done")] == ["DNIO-2", "OPS-3"]
        assert [t.ticket_id for t in service.list(search="retry")] == ["DNIO-1", "OPS-3"]
        assert [t.ticket_id for t in service.list(search="ops")] == ["OPS-3"]
        assert len(service.list(limit=1, offset=1)) == 1
