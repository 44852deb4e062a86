"""
Release API Routes.

Thin HTTP layer over the release services. Domain errors are translated to
HTTP responses by the application-wide handler in ``release_tracker.api``.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from ..db.audit_service import AuditService
from ..db.base import get_db
from .schemas import ReleaseCreate, ReleaseUpdate
from .services import ReleaseQueryService, ReleaseService

router = APIRouter(prefix="/releases", tags=["releases"])


@router.get("")
async def list_releases(
    service_id: Optional[str] = None,
    page: int = Query(1),
    page_size: Optional[int] = None,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """List releases, newest first, with pagination."""
    service = ReleaseQueryService(db)
    return service.list(service_id=service_id, page=page, page_size=page_size).to_dict()


@router.get("/{release_id}")
async def get_release(
    release_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get a release with its tickets expanded."""
    return ReleaseQueryService(db).get(release_id).to_dict()


@router.post("", status_code=201)
async def create_release(
    release: ReleaseCreate,
    x_actor: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Create a new release.

    Tickets in the payload are created if they are not mirrored yet. Tickets
    that could not be stored are listed under ``failures`` and the response
    status is ``partial``.
    """
    result = ReleaseService(db).create(release, actor=x_actor)
    return result.to_dict()


@router.put("/{release_id}")
@router.patch("/{release_id}")
async def update_release(
    release_id: str,
    update: ReleaseUpdate,
    x_actor: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Update a release.

    Sending ``tickets`` replaces the whole ticket list. Sending a different
    ``version`` renames the release; the response carries the new ID.
    """
    result = ReleaseService(db).update(release_id, update, actor=x_actor)
    return result.to_dict()


@router.delete("/{release_id}")
async def delete_release(
    release_id: str,
    x_actor: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Dict[str, str]:
    """Delete a release. Its tickets stay available to other releases."""
    ReleaseService(db).delete(release_id, actor=x_actor)
    return {"status": "success", "message": "Release deleted successfully"}


@router.get("/{release_id}/history")
async def get_release_history(
    release_id: str,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """Audit trail of a release, newest first.

    Works for deleted releases too.
    """
    entries = AuditService(db).get_entity_history(
        "Release", release_id, limit=limit, offset=offset
    )
    return [e.to_dict() for e in entries]
