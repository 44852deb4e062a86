"""
Ticket mirroring: reconciliation from release payloads and re-ingestion from
the external issue tracker.
"""

from .schemas import ReconcileFailure, TicketDescription
from .services import ReconcileResult, TicketReconciler, TicketService, TicketSyncResult

__all__ = [
    "ReconcileFailure",
    "ReconcileResult",
    "TicketDescription",
    "TicketReconciler",
    "TicketService",
    "TicketSyncResult",
]
