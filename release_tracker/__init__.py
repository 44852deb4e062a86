"""
Release Tracker

Tracks software releases together with the issue-tracker tickets they ship.
"""

import importlib.metadata

__version__ = importlib.metadata.version("release-tracker")

from .errors import (
    ConflictError,
    DuplicateKeyError,
    NotFoundError,
    ReleaseTrackerError,
    StoreError,
    ValidationError,
)
from .releases import (
    ReleaseCreate,
    ReleaseQueryService,
    ReleaseService,
    ReleaseUpdate,
    ReleaseWriteResult,
)
from .tickets import TicketDescription, TicketReconciler, TicketService

__all__ = [
    "ConflictError",
    "DuplicateKeyError",
    "NotFoundError",
    "ReleaseCreate",
    "ReleaseQueryService",
    "ReleaseService",
    "ReleaseTrackerError",
    "ReleaseUpdate",
    "ReleaseWriteResult",
    "StoreError",
    "TicketDescription",
    "TicketReconciler",
    "TicketService",
    "ValidationError",
]
