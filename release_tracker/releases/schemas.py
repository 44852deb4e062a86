"""
Release payload schemas.

Create and update payloads mirror the release form of the web client. The
update payload is partial: only fields the caller actually sent are applied.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, ConfigDict, Field, constr

from ..primitives import ApiModel
from ..tickets.schemas import TicketDescription

BUILD_URL_ALIASES = AliasChoices("build_url", "buildUrl", "jenkinsBuildUrl")


class ComponentDelivery(ApiModel):
    """Where one component of a release was delivered."""

    name: constr(min_length=1, max_length=256)
    docker_hub_link: Optional[str] = None
    e_delivery_link: Optional[str] = None


class ReleaseCreate(ApiModel):
    """Payload for creating a release.

    ``version`` becomes the release's primary key. It is checked by the
    service (non-empty, no '/', at most 128 characters) so that violations
    surface as domain validation errors.

    An explicit null for a list or for ``notes`` means the same as leaving
    the field out.
    """

    version: Optional[str] = ""
    created_at: Optional[datetime] = None
    status: Optional[str] = None
    tickets: Optional[List[TicketDescription]] = Field(default_factory=list)
    commits: Optional[List[str]] = Field(default_factory=list)
    notes: Optional[str] = ""
    additional_points: Optional[List[str]] = Field(default_factory=list)
    component_deliveries: Optional[List[ComponentDelivery]] = Field(default_factory=list)
    released_by: Optional[str] = None
    build_url: Optional[str] = Field(default=None, validation_alias=BUILD_URL_ALIASES)
    service_id: Optional[str] = None
    customers: Optional[List[str]] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "version": "1.2.3",
                "status": "Planned",
                "tickets": [
                    {"ticket_id": "DNIO-1", "summary": "Fix retry loop", "status": "Done"}
                ],
                "commits": ["a1b2c3d Fix retry loop"],
                "notes": "Hotfix for the sync worker",
                "component_deliveries": [
                    {"name": "sync-worker", "docker_hub_link": "https://hub.docker.com/r/acme/sync-worker"}
                ],
                "released_by": "dana",
                "service_id": "sync",
            }
        }
    )


class ReleaseUpdate(ApiModel):
    """Partial update of a release.

    ``tickets``, when sent, replaces the whole ticket list. A ``version``
    different from the release's current one renames the release.
    """

    version: Optional[str] = None
    created_at: Optional[datetime] = None
    status: Optional[str] = None
    tickets: Optional[List[TicketDescription]] = None
    commits: Optional[List[str]] = None
    notes: Optional[str] = None
    additional_points: Optional[List[str]] = None
    component_deliveries: Optional[List[ComponentDelivery]] = None
    released_by: Optional[str] = None
    build_url: Optional[str] = Field(default=None, validation_alias=BUILD_URL_ALIASES)
    service_id: Optional[str] = None
    customers: Optional[List[str]] = None
