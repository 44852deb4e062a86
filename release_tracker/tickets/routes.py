"""
Ticket API Routes.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from ..db.base import get_db
from ..errors import NotFoundError
from .schemas import TicketDescription
from .services import TicketService

router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.get("")
async def list_tickets(
    status: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """List mirrored tickets."""
    tickets = TicketService(db).list(
        status=status, search=search, limit=limit, offset=offset
    )
    return [t.to_dict() for t in tickets]


@router.post("/sync")
async def sync_tickets(
    tickets: List[TicketDescription],
    x_actor: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Re-ingest tickets fetched from the issue tracker."""
    return TicketService(db).sync(tickets, actor=x_actor).to_dict()


@router.get("/{ticket_id}")
async def get_ticket(
    ticket_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get a mirrored ticket by its external identifier."""
    ticket = TicketService(db).get_by_ticket_id(ticket_id)
    if ticket is None:
        raise NotFoundError("Ticket", ticket_id)
    return ticket.to_dict()
