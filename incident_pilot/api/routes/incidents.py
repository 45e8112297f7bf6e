"""Incident routes: lifecycle, queries, AI analysis and similarity."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from ...dependencies import get_incident_manager
from ...engine.incident_manager import IncidentManager
from ...store.base import IncidentFilters

router = APIRouter(prefix="/incidents", tags=["incidents"])


# --- Request bodies ---

class CreateIncidentRequest(BaseModel):
    # Length and vocabulary rules live in the workflow so every failing field is reported at once.
    title: str = Field(max_length=255)
    description: str = Field(max_length=10000)
    category: str
    severity: str
    affected_systems: list[str] = Field(default_factory=list)
    reported_by: str


class UpdateStatusRequest(BaseModel):
    status: str
    notes: Optional[str] = Field(default=None, max_length=5000)
    performed_by: str = "system"


class AssignRequest(BaseModel):
    assigned_to: str
    performed_by: str = "system"


class AddNoteRequest(BaseModel):
    note: str = Field(min_length=1, max_length=5000)
    performed_by: str = "system"


def _split(value: Optional[str]) -> set[str]:
    if not value:
        return set()
    return {part.strip() for part in value.split(",") if part.strip()}


# --- Endpoints ---

@router.get("/")
async def list_incidents(
    status: Optional[str] = None,
    category: Optional[str] = None,
    severity: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
    reported_by: Optional[str] = None,
    assigned_to: Optional[str] = None,
    manager: IncidentManager = Depends(get_incident_manager),
):
    """List incidents, newest first. Set filters take comma-separated values."""
    filters = IncidentFilters(
        statuses=_split(status),
        categories=_split(category),
        severities=_split(severity),
        date_from=date_from,
        date_to=date_to,
        search=search,
        reported_by=reported_by,
        assigned_to=assigned_to,
    )
    return await manager.list_incidents(filters)


@router.post("/", status_code=201)
async def create_incident(
    body: CreateIncidentRequest,
    manager: IncidentManager = Depends(get_incident_manager),
):
    """Report a new incident."""
    return await manager.create_incident(
        title=body.title,
        description=body.description,
        category=body.category,
        severity=body.severity,
        reported_by=body.reported_by,
        affected_systems=body.affected_systems,
    )


@router.get("/stats")
async def get_incident_stats(manager: IncidentManager = Depends(get_incident_manager)):
    """Dashboard counts by status, severity and category."""
    return await manager.get_stats()


@router.get("/{incident_id}")
async def get_incident(incident_id: str, manager: IncidentManager = Depends(get_incident_manager)):
    """Incident with reporter, assignee, history and similar incidents."""
    return await manager.get_incident_detail(incident_id)


@router.patch("/{incident_id}/status")
async def update_incident_status(
    incident_id: str,
    body: UpdateStatusRequest,
    manager: IncidentManager = Depends(get_incident_manager),
):
    return await manager.update_status(
        incident_id,
        status=body.status,
        performed_by=body.performed_by,
        notes=body.notes,
    )


@router.patch("/{incident_id}/assign")
async def assign_incident(
    incident_id: str,
    body: AssignRequest,
    manager: IncidentManager = Depends(get_incident_manager),
):
    return await manager.assign_incident(
        incident_id,
        assignee_id=body.assigned_to,
        performed_by=body.performed_by,
    )


@router.post("/{incident_id}/analyze")
async def analyze_incident(incident_id: str, manager: IncidentManager = Depends(get_incident_manager)):
    """Run AI analysis and store the resulting tags and summary."""
    return await manager.analyze_incident(incident_id)


@router.post("/{incident_id}/note", status_code=201)
async def add_incident_note(
    incident_id: str,
    body: AddNoteRequest,
    manager: IncidentManager = Depends(get_incident_manager),
):
    return await manager.add_note(incident_id, note=body.note, performed_by=body.performed_by)


@router.get("/{incident_id}/history")
async def get_incident_history(incident_id: str, manager: IncidentManager = Depends(get_incident_manager)):
    return await manager.get_history(incident_id)


@router.get("/{incident_id}/similar")
async def get_similar_incidents(incident_id: str, manager: IncidentManager = Depends(get_incident_manager)):
    return await manager.get_similar(incident_id)


@router.delete("/{incident_id}", status_code=204)
async def delete_incident(incident_id: str, manager: IncidentManager = Depends(get_incident_manager)):
    await manager.delete_incident(incident_id)
    return Response(status_code=204)
