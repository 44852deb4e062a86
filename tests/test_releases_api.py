"""Tests for the release HTTP API."""

from release_tracker.db.stores import TicketStore
from release_tracker.errors import StoreError


def _create(client, version, **fields):
    payload = {"version": version}
    payload.update(fields)
    return client.post("/api/releases", json=payload)


class TestCreateEndpoint:
    """POST /api/releases"""

    def test_create_release(self, client):
        """Creating a release returns 201 with the expanded release."""
        response = _create(
            client,
            "1.2.3",
            tickets=[{"ticket_id": "DNIO-1", "summary": "Fix retry loop", "status": "Done"}],
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "success"
        assert data["release"]["id"] == "1.2.3"
        assert data["release"]["tickets"][0]["ticket_id"] == "DNIO-1"
        assert data["release"]["tickets"][0]["assignee"] == "Unassigned"
        assert data["failures"] == []

    def test_create_accepts_client_field_names(self, client):
        """camelCase and tracker-style spellings are accepted."""
        response = client.post(
            "/api/releases",
            json={
                "version": "2.0.0",
                "releasedBy": "dana",
                "serviceId": "sync",
                "jenkinsBuildUrl": "https://ci/job/42",
                "additionalPoints": ["Run migrations"],
                "componentDeliveries": [{"name": "api", "dockerHubLink": "https://hub/api"}],
                "tickets": [
                    {
                        "key": "DNIO-9",
                        "summary": "Ship it",
                        "fixVersions": [{"name": "2.0.0"}],
                        "components": [{"name": "api"}],
                    }
                ],
                "unknownField": True,
            },
        )

        assert response.status_code == 201
        release = response.json()["release"]
        assert release["released_by"] == "dana"
        assert release["service_id"] == "sync"
        assert release["build_url"] == "https://ci/job/42"
        assert release["additional_points"] == ["Run migrations"]
        assert release["component_deliveries"][0]["docker_hub_link"] == "https://hub/api"
        ticket = release["tickets"][0]
        assert ticket["ticket_id"] == "DNIO-9"
        assert ticket["fix_versions"] == ["2.0.0"]
        assert ticket["components"] == ["api"]

    def test_create_duplicate_returns_409(self, client):
        _create(client, "1.2.3")

        response = _create(client, "1.2.3")

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "CONFLICT"

    def test_create_without_version_returns_422(self, client):
        response = client.post("/api/releases", json={"notes": "no version"})

        assert response.status_code == 422
        assert response.json()["detail"] == {
            "error": "VALIDATION_ERROR",
            "message": "Release version is required",
            "details": {"field": "version"},
        }

    def test_create_with_keyless_ticket_returns_422(self, client):
        response = _create(client, "1.0.0", tickets=[{"summary": "no key"}])

        assert response.status_code == 422
        assert client.get("/api/releases/1.0.0").status_code == 404

    def test_partial_ticket_failure(self, client, monkeypatch):
        original_create = TicketStore.create

        def flaky_create(self, ticket):
            if ticket.ticket_id == "DNIO-2":
                self.db.rollback()
                raise StoreError("create ticket DNIO-2 failed: OperationalError")
            return original_create(self, ticket)

        monkeypatch.setattr(TicketStore, "create", flaky_create)

        response = _create(
            client,
            "1.0.0",
            tickets=[{"ticket_id": "DNIO-1"}, {"ticket_id": "DNIO-2"}, {"ticket_id": "DNIO-3"}],
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "partial"
        assert [t["ticket_id"] for t in data["release"]["tickets"]] == ["DNIO-1", "DNIO-3"]
        assert data["failures"][0]["input"]["ticket_id"] == "DNIO-2"
        assert data["failures"][0]["code"] == "STORE_ERROR"


    def test_create_with_null_fields(self, client):
        """Null lists and notes are treated as absent."""
        response = client.post(
            "/api/releases",
            json={
                "version": "1.0.0",
                "tickets": None,
                "commits": None,
                "notes": None,
                "additionalPoints": None,
                "componentDeliveries": None,
                "customers": None,
            },
        )

        assert response.status_code == 201
        release = response.json()["release"]
        assert release["tickets"] == []
        assert release["commits"] == []
        assert release["notes"] == ""
        assert release["customers"] == []

    def test_create_with_null_ticket_fields(self, client):
        response = _create(
            client,
            "1.0.0",
            tickets=[{"ticketId": "A-1", "summary": None, "status": None}],
        )

        assert response.status_code == 201
        ticket = response.json()["release"]["tickets"][0]
        assert ticket["ticket_id"] == "A-1"
        assert ticket["summary"] == ""
        assert ticket["status"] == ""

    def test_null_version_returns_domain_422(self, client):
        response = client.post("/api/releases", json={"version": None})

        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "VALIDATION_ERROR"

    def test_null_ticket_id_returns_domain_422(self, client):
        response = _create(client, "1.0.0", tickets=[{"ticketId": None}])

        assert response.status_code == 422
        assert response.json()["detail"]["details"] == {"field": "tickets[0].ticket_id"}


class TestReadEndpoints:
    """GET /api/releases and /api/releases/{id}"""

    def test_get_release(self, client):
        _create(client, "1.2.3", notes="hello")

        response = client.get("/api/releases/1.2.3")

        assert response.status_code == 200
        assert response.json()["notes"] == "hello"

    def test_get_missing_release(self, client):
        response = client.get("/api/releases/9.9.9")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "NOT_FOUND"

    def test_list_releases(self, client):
        for i in range(3):
            _create(client, f"1.0.{i}", serviceId="sync")
        _create(client, "2.0.0", serviceId="billing")

        response = client.get("/api/releases", params={"service_id": "sync", "page_size": 2})

        assert response.status_code == 200
        data = response.json()
        assert len(data["releases"]) == 2
        assert data["pagination"]["total"] == 3
        assert data["pagination"]["total_pages"] == 2
        assert data["pagination"]["has_more"] is True

    def test_list_rejects_oversized_page(self, client):
        response = client.get("/api/releases", params={"page_size": 500})

        assert response.status_code == 422


class TestUpdateEndpoint:
    """PUT and PATCH /api/releases/{id}"""

    def test_patch_release(self, client):
        _create(client, "1.0.0", notes="old")

        response = client.patch("/api/releases/1.0.0", json={"notes": "new"})

        assert response.status_code == 200
        assert response.json()["release"]["notes"] == "new"

    def test_put_replaces_tickets(self, client):
        _create(client, "1.0.0", tickets=[{"ticket_id": "DNIO-1"}])

        response = client.put("/api/releases/1.0.0", json={"tickets": [{"ticket_id": "DNIO-2"}]})

        assert response.status_code == 200
        assert [t["ticket_id"] for t in response.json()["release"]["tickets"]] == ["DNIO-2"]

    def test_rename_release(self, client):
        _create(client, "1.0.0")

        response = client.put("/api/releases/1.0.0", json={"version": "1.0.1"})

        assert response.status_code == 200
        assert response.json()["release"]["id"] == "1.0.1"
        assert client.get("/api/releases/1.0.0").status_code == 404
        assert client.get("/api/releases/1.0.1").status_code == 200

    def test_rename_conflict(self, client):
        _create(client, "1.0.0")
        _create(client, "1.0.1")

        response = client.put("/api/releases/1.0.0", json={"version": "1.0.1"})

        assert response.status_code == 409

    def test_update_missing_release(self, client):
        response = client.patch("/api/releases/9.9.9", json={"notes": "x"})

        assert response.status_code == 404


class TestDeleteEndpoint:
    """DELETE /api/releases/{id}"""

    def test_delete_release(self, client):
        _create(client, "1.0.0", tickets=[{"ticket_id": "DNIO-1"}])

        response = client.delete("/api/releases/1.0.0")

        assert response.status_code == 200
        assert response.json() == {"status": "success", "message": "Release deleted successfully"}
        assert client.get("/api/releases/1.0.0").status_code == 404
        assert client.get("/api/tickets/DNIO-1").status_code == 200

    def test_delete_missing_release(self, client):
        response = client.delete("/api/releases/9.9.9")

        assert response.status_code == 404


class TestHistoryEndpoint:
    """GET /api/releases/{id}/history"""

    def test_history_newest_first(self, client):
        client.post("/api/releases", json={"version": "1.0.0"}, headers={"X-Actor": "dana"})
        client.patch("/api/releases/1.0.0", json={"notes": "n"}, headers={"X-Actor": "alice"})

        response = client.get("/api/releases/1.0.0/history")

        assert response.status_code == 200
        entries = response.json()
        assert [e["action"] for e in entries] == ["updated", "created"]
        assert [e["actor"] for e in entries] == ["alice", "dana"]

    def test_history_survives_delete(self, client):
        _create(client, "1.0.0")
        client.delete("/api/releases/1.0.0")

        entries = client.get("/api/releases/1.0.0/history").json()

        assert [e["action"] for e in entries] == ["deleted", "created"]
