"""
Database package for the Release Tracker.
"""

from .audit_models import AuditLogModel
from .base import Base, get_db, get_engine, init_database
from .models import ReleaseModel, ReleaseTicketModel, TicketModel

__all__ = [
    "AuditLogModel",
    "Base",
    "get_db",
    "get_engine",
    "init_database",
    "ReleaseModel",
    "ReleaseTicketModel",
    "TicketModel",
]
