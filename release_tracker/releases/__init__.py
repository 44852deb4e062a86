"""
Releases: the aggregate root, keyed by version string.
"""

from .schemas import ComponentDelivery, ReleaseCreate, ReleaseUpdate
from .services import (
    Pagination,
    ReleasePage,
    ReleaseQueryService,
    ReleaseService,
    ReleaseWriteResult,
)

__all__ = [
    "ComponentDelivery",
    "Pagination",
    "ReleaseCreate",
    "ReleasePage",
    "ReleaseQueryService",
    "ReleaseService",
    "ReleaseUpdate",
    "ReleaseWriteResult",
]
