"""FastAPI endpoints over the documents workspace.

Mount with ``add_documents_api(app, workspace)``. Unit keys in paths have the
form ``<kind>:<id>`` (``land_plot:7``); ``property`` addresses the documents
resolved without a unit.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..documents.cache import PROPERTY_KEY
from ..exceptions import MutationError, UploadValidationError
from ..models import Document, DocumentFilters, DocumentStatus, DocumentUpdate, DocumentUpload
from ..session import PanelState, PropertySession, Workspace

router = APIRouter(prefix="/properties", tags=["Documents"])


class UnitSummary(BaseModel):
    key: str = Field(..., description="Cache key of the unit")
    kind: str
    id: int
    plot_number: Optional[str] = None
    document_count: Optional[int] = Field(None, description="None until resolved")
    state: PanelState


class PropertySummary(BaseModel):
    property_id: int
    units: list[UnitSummary]
    failed_sources: list[str] = Field(default_factory=list)
    failed_units: list[str] = Field(default_factory=list)


class PanelResponse(BaseModel):
    key: str
    state: PanelState
    documents: list[Document]


def get_workspace(request: Request) -> Workspace:
    workspace = getattr(request.app.state, "documents_workspace", None)
    if workspace is None:
        raise HTTPException(status_code=503, detail="Documents workspace not configured")
    return workspace


async def get_session(property_id: int, workspace: Workspace = Depends(get_workspace)) -> PropertySession:
    session = workspace.session
    if session is None or session.property_id != property_id:
        session = await workspace.open_property(property_id)
    return session


def _summary(session: PropertySession) -> PropertySummary:
    counts = session.document_counts()
    units = [
        UnitSummary(
            key=unit.key,
            kind=unit.kind.value,
            id=unit.id,
            plot_number=unit.business_key,
            document_count=counts.get(unit.key),
            state=session.panel_state(unit),
        )
        for unit in session.units
    ]
    report = session.last_report
    return PropertySummary(
        property_id=session.property_id,
        units=units,
        failed_sources=[k.value for k in session.units.failed_sources],
        failed_units=sorted(report.failures) if report else [],
    )


def _unit_or_404(session: PropertySession, unit_key: str):
    if unit_key == PROPERTY_KEY:
        return None
    unit = session.units.find(unit_key)
    if unit is None:
        raise HTTPException(status_code=404, detail=f"Unit {unit_key} not found")
    return unit


@router.post("/{property_id}/open", response_model=PropertySummary)
async def open_property_endpoint(
    property_id: int, workspace: Workspace = Depends(get_workspace)
) -> PropertySummary:
    session = await workspace.open_property(property_id)
    return _summary(session)


@router.get("/{property_id}/units", response_model=PropertySummary)
async def list_units_endpoint(session: PropertySession = Depends(get_session)) -> PropertySummary:
    return _summary(session)


@router.put("/{property_id}/filters", response_model=PropertySummary)
async def set_filters_endpoint(
    filters: DocumentFilters, session: PropertySession = Depends(get_session)
) -> PropertySummary:
    await session.set_filters(filters)
    return _summary(session)


@router.get("/{property_id}/units/{unit_key}/documents", response_model=PanelResponse)
async def unit_documents_endpoint(
    unit_key: str, session: PropertySession = Depends(get_session)
) -> PanelResponse:
    unit = _unit_or_404(session, unit_key)
    documents = await session.expand(unit)
    return PanelResponse(key=unit_key, state=session.panel_state(unit), documents=documents)


@router.post("/{property_id}/documents", response_model=Document, status_code=201)
async def upload_document_endpoint(
    title: str = Form(""),
    category_id: Optional[int] = Form(None),
    description: str = Form(""),
    tags: Optional[str] = Form(None),  # Comma-separated
    status: DocumentStatus = Form(DocumentStatus.ACTIVE),
    unit_key: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    session: PropertySession = Depends(get_session),
) -> Document:
    unit = _unit_or_404(session, unit_key) if unit_key else None
    content = await file.read() if file is not None else None
    upload = DocumentUpload(
        file=content,
        file_name=(file.filename if file is not None else None),
        content_type=(file.content_type if file is not None and file.content_type else "application/octet-stream"),
        title=title,
        description=description,
        category_id=category_id,
        tags=tags,
        status=status,
    )
    return await session.mutations.upload(upload, unit)


@router.put("/{property_id}/documents/{document_id}", response_model=Document)
async def update_document_endpoint(
    document_id: int,
    changes: DocumentUpdate,
    session: PropertySession = Depends(get_session),
) -> Document:
    return await session.mutations.update(document_id, changes)


@router.delete("/{property_id}/documents/{document_id}", status_code=204)
async def delete_document_endpoint(
    document_id: int, session: PropertySession = Depends(get_session)
) -> None:
    await session.mutations.delete(document_id)


def _problem(status: int, title: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"type": "about:blank", "title": title, "status": status, "detail": detail},
        media_type="application/problem+json",
    )


def add_documents_api(app: FastAPI, workspace: Workspace) -> None:
    app.state.documents_workspace = workspace
    app.include_router(router)

    @app.exception_handler(UploadValidationError)
    async def _validation(request: Request, exc: UploadValidationError) -> JSONResponse:
        return _problem(422, "Unprocessable Entity", str(exc))

    @app.exception_handler(MutationError)
    async def _mutation(request: Request, exc: MutationError) -> JSONResponse:
        return _problem(502, "Bad Gateway", str(exc))
