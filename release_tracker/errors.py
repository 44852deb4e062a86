"""
Domain errors for the Release Tracker.

Every error carries a machine-readable code and the HTTP status the API
layer should answer with. ``ValidationError`` and ``ConflictError`` are
raised before anything is written; ``StoreError`` means the store failed
mid-operation and the session was rolled back.
"""

from typing import Any, Dict, Optional


class ReleaseTrackerError(Exception):
    """Base class for all domain errors."""

    code = "ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = {"error": self.code, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class ValidationError(ReleaseTrackerError):
    """A required field is missing or invalid."""

    code = "VALIDATION_ERROR"
    status_code = 422


class ConflictError(ReleaseTrackerError):
    """The target key is already taken by another record."""

    code = "CONFLICT"
    status_code = 409


class NotFoundError(ReleaseTrackerError):
    """The operation targets a record that does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity_kind: str, entity_id: str):
        self.entity_kind = entity_kind
        self.entity_id = entity_id
        super().__init__(
            f"{entity_kind} not found",
            {"entity_kind": entity_kind, "entity_id": entity_id},
        )


class StoreError(ReleaseTrackerError):
    """The persistence layer failed unexpectedly."""

    code = "STORE_ERROR"
    status_code = 500


class DuplicateKeyError(StoreError):
    """The store rejected a write on a uniqueness constraint."""

    code = "DUPLICATE_KEY"
    status_code = 409
