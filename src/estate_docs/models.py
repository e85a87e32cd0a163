"""Domain models shared by the catalog, resolver, cache and back-office client.

Units come in three variants (plots, land plots and block configurations).
Documents may point at a unit through ``plot_number`` (business key) and/or
``plot_id`` (legacy foreign key); the two are not required to agree.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class UnitKind(str, Enum):
    PLOT = "plot"
    LAND_PLOT = "land_plot"
    BLOCK = "block"


# multipart ``plot_type`` values; informational only on the server side
PLOT_TYPES: dict[UnitKind, str] = {
    UnitKind.PLOT: "plot",
    UnitKind.LAND_PLOT: "land_plot",
    UnitKind.BLOCK: "property_block",
}


class DocumentStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


def _split_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    return [str(t).strip() for t in value if str(t).strip()]


class Property(BaseModel):
    """A listing. Read-only from this package's point of view."""

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str = ""
    location: Optional[str] = None
    price: Optional[float] = None
    area: Optional[str] = None
    status: Optional[str] = None


class _UnitBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    kind: ClassVar[UnitKind]

    id: int = Field(..., description="Database id of the unit")
    area: Optional[str] = None
    price: Optional[str] = None
    status: Optional[str] = None

    @property
    def key(self) -> str:
        """Cache key; prefixed by kind because ids are only unique per table."""
        return f"{self.kind.value}:{self.id}"

    @property
    def plot_type(self) -> str:
        return PLOT_TYPES[self.kind]

    @property
    def business_key(self) -> Optional[str]:
        return None

    @field_validator("area", "price", "status", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        return None if v is None else str(v)


class _NumberedUnit(_UnitBase):
    plot_number: Optional[str] = Field(None, description="Human-facing business key")

    @model_validator(mode="before")
    @classmethod
    def _pick_plot_number(cls, data: Any) -> Any:
        # older payloads carry the number under unit_number or number
        if isinstance(data, dict):
            raw = data.get("plot_number") or data.get("unit_number") or data.get("number")
            data = dict(data)
            data["plot_number"] = (str(raw).strip() or None) if raw is not None else None
        return data

    @property
    def business_key(self) -> Optional[str]:
        return self.plot_number or None


class Plot(_NumberedUnit):
    kind: ClassVar[UnitKind] = UnitKind.PLOT


class LandPlot(_NumberedUnit):
    kind: ClassVar[UnitKind] = UnitKind.LAND_PLOT
    block_id: Optional[int] = None


class Block(_UnitBase):
    kind: ClassVar[UnitKind] = UnitKind.BLOCK
    name: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _pick_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name"):
            data = dict(data)
            data["name"] = data.get("block_name")
        return data


Unit = Union[Plot, LandPlot, Block]


class DocumentCategory(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    color: str = "#007bff"
    description: Optional[str] = None


class Document(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    property_id: int
    title: str = ""
    description: Optional[str] = None
    category_id: Optional[int] = None
    plot_number: Optional[str] = None
    plot_id: Optional[int] = None
    plot_type: Optional[str] = None
    status: DocumentStatus = DocumentStatus.ACTIVE
    tags: list[str] = Field(default_factory=list)
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> list[str]:
        return _split_tags(v)

    @field_validator("plot_number", mode="before")
    @classmethod
    def _blank_plot_number(cls, v: Any) -> Any:
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class DocumentFilters(BaseModel):
    """Active filter context of the document screens."""

    model_config = ConfigDict(frozen=True)

    search: Optional[str] = None
    category: Optional[int] = None
    status: Optional[DocumentStatus] = None

    @field_validator("search", mode="before")
    @classmethod
    def _blank_search(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class DocumentQuery(BaseModel):
    """Parameters of the filtered document list. ``None`` means "do not filter"."""

    model_config = ConfigDict(frozen=True)

    property_id: Optional[int] = None
    plot_number: Optional[str] = None
    plot_id: Optional[int] = None
    category: Optional[int] = None
    status: Optional[DocumentStatus] = None
    search: Optional[str] = None
    page: Optional[int] = None
    limit: Optional[int] = None

    @classmethod
    def build(cls, filters: Optional[DocumentFilters] = None, **identity: Any) -> "DocumentQuery":
        ctx = filters.model_dump(exclude_none=True) if filters else {}
        return cls(**ctx, **identity)

    def identity(self) -> dict[str, Any]:
        """The unit/property keys this query matches on."""
        return {
            k: v
            for k, v in (
                ("property_id", self.property_id),
                ("plot_number", self.plot_number),
                ("plot_id", self.plot_id),
            )
            if v is not None
        }

    def to_params(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for k, v in self.model_dump(exclude_none=True).items():
            out[k] = v.value if isinstance(v, Enum) else str(v)
        return out


class DocumentPage(BaseModel):
    documents: list[Document] = Field(default_factory=list)
    total: int = 0


class DocumentUpload(BaseModel):
    """What a user submits from the upload dialog."""

    file: Optional[bytes] = None
    file_name: Optional[str] = None
    content_type: str = "application/octet-stream"
    title: str = ""
    description: str = ""
    category_id: Optional[int] = None
    tags: list[str] = Field(default_factory=list)
    status: DocumentStatus = DocumentStatus.ACTIVE

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> list[str]:
        return _split_tags(v)

    def missing_fields(self) -> list[str]:
        missing = []
        if not self.file:
            missing.append("file")
        if not self.title.strip():
            missing.append("title")
        if self.category_id is None:
            missing.append("category")
        return missing

    def form_fields(self, property_id: int, unit: Optional[Unit] = None) -> dict[str, str]:
        """Multipart text fields; a known unit is tagged with both identities."""
        fields = {
            "title": self.title.strip(),
            "description": self.description,
            "category_id": str(self.category_id),
            "property_id": str(property_id),
            "tags": ",".join(self.tags),
            "status": self.status.value,
        }
        if unit is not None:
            if unit.business_key:
                fields["plot_number"] = unit.business_key
            fields["plot_id"] = str(unit.id)
            fields["plot_type"] = unit.plot_type
        return fields


class DocumentUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    tags: Optional[list[str]] = None
    status: Optional[DocumentStatus] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> Optional[list[str]]:
        return None if v is None else _split_tags(v)

    def payload(self) -> dict[str, Any]:
        data = self.model_dump(exclude_none=True, mode="json")
        if "tags" in data:
            data["tags"] = ",".join(data["tags"])
        return data
