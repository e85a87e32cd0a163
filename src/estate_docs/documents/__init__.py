from .cache import PROPERTY_KEY, CacheState, DocumentCache
from .listing import DocumentListing
from .loader import BulkAssociationLoader, LoadReport
from .mutations import MutationCoordinator
from .resolver import (
    DocumentResolver,
    Found,
    NotFound,
    Outcome,
    Resolution,
    Tier,
    TierAttempt,
    Transient,
)

__all__ = [
    "PROPERTY_KEY",
    "CacheState",
    "DocumentCache",
    "DocumentListing",
    "BulkAssociationLoader",
    "LoadReport",
    "MutationCoordinator",
    "DocumentResolver",
    "Found",
    "NotFound",
    "Outcome",
    "Resolution",
    "Tier",
    "TierAttempt",
    "Transient",
]
