"""Document-to-unit resolution and caching for the real-estate back office."""

from .backoffice import BackOffice, HttpBackOffice, InMemoryBackOffice
from .documents import (
    PROPERTY_KEY,
    BulkAssociationLoader,
    CacheState,
    DocumentCache,
    DocumentListing,
    DocumentResolver,
    LoadReport,
    MutationCoordinator,
    Outcome,
    Resolution,
    Tier,
)
from .exceptions import BackOfficeError, EstateDocsError, MutationError, UploadValidationError
from .models import (
    Block,
    Document,
    DocumentCategory,
    DocumentFilters,
    DocumentQuery,
    DocumentStatus,
    DocumentUpdate,
    DocumentUpload,
    LandPlot,
    Plot,
    Property,
    Unit,
    UnitKind,
)
from .session import PanelState, PropertySession, Workspace
from .units import UnitCatalog, UnitSet

__all__ = [
    # Errors
    "EstateDocsError",
    "BackOfficeError",
    "MutationError",
    "UploadValidationError",
    # Back office
    "BackOffice",
    "HttpBackOffice",
    "InMemoryBackOffice",
    # Models
    "Property",
    "Plot",
    "LandPlot",
    "Block",
    "Unit",
    "UnitKind",
    "Document",
    "DocumentCategory",
    "DocumentFilters",
    "DocumentQuery",
    "DocumentStatus",
    "DocumentUpdate",
    "DocumentUpload",
    # Components
    "UnitCatalog",
    "UnitSet",
    "DocumentResolver",
    "Resolution",
    "Outcome",
    "Tier",
    "DocumentCache",
    "CacheState",
    "PROPERTY_KEY",
    "BulkAssociationLoader",
    "LoadReport",
    "MutationCoordinator",
    "DocumentListing",
    # Session
    "PanelState",
    "PropertySession",
    "Workspace",
]
