"""
Ticket payload schemas.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, ConfigDict, Field, field_validator

from ..primitives import ApiModel


class TicketDescription(ApiModel):
    """A ticket as handed in by a caller, already fetched from the tracker.

    ``ticket_id`` is checked by the reconciler rather than here, so that an
    empty identifier is reported as a domain validation error.
    """

    ticket_id: Optional[str] = Field(
        default="",
        validation_alias=AliasChoices("ticket_id", "ticketId", "key"),
        description="External identifier, e.g. 'DNIO-1'",
    )
    summary: Optional[str] = ""
    status: Optional[str] = ""
    assignee: Optional[str] = None
    priority: Optional[str] = None
    components: Optional[List[str]] = None
    fix_versions: Optional[List[str]] = None
    created: Optional[str] = None
    updated: Optional[str] = None

    @field_validator("components", "fix_versions", mode="before")
    @classmethod
    def flatten_named_entries(cls, value: Any) -> Any:
        """Accept tracker-style ``[{"name": ...}]`` lists as plain names."""
        if isinstance(value, list):
            return [
                item.get("name") if isinstance(item, dict) else item for item in value
            ]
        return value

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ticket_id": "DNIO-1",
                "summary": "Fix retry loop in sync worker",
                "status": "Done",
                "assignee": "Dana",
                "priority": "High",
                "components": ["sync-worker"],
                "fix_versions": ["1.2.3"],
                "created": "2024-03-01T10:00:00.000+0000",
                "updated": "2024-03-04T09:30:00.000+0000",
            }
        }
    )


class ReconcileFailure(ApiModel):
    """A ticket description that could not be persisted."""

    input: Dict[str, Any]
    error: str
    code: str
