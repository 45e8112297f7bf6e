"""Incident Manager: the service facade the HTTP layer talks to."""

from typing import Optional

from ..errors import NotFoundError, ValidationError
from ..models.constants import ROLES
from ..store.base import IncidentFilters, IncidentStore
from ..utils.logging import get_logger
from .similarity import SimilarityMatcher
from .workflow import StatusWorkflow

logger = get_logger("engine.incident_manager")


class IncidentManager:
    """Composes the store, workflow, similarity matcher and AI analyzer."""

    def __init__(
        self,
        store: IncidentStore,
        workflow: StatusWorkflow,
        matcher: Optional[SimilarityMatcher] = None,
        analyzer=None,
    ):
        self._store = store
        self._workflow = workflow
        self._matcher = matcher or SimilarityMatcher()
        self._analyzer = analyzer

    async def _require_incident(self, incident_id: str) -> dict:
        incident = await self._store.get_incident(incident_id)
        if incident is None:
            raise NotFoundError("Incident", incident_id)
        return incident

    # --- Lifecycle (delegated to the workflow) ---

    async def create_incident(self, **fields) -> dict:
        return await self._workflow.create(**fields)

    async def update_status(
        self, incident_id: str, status: str, performed_by: str, notes: Optional[str] = None
    ) -> dict:
        return await self._workflow.transition(incident_id, status, performed_by, notes)

    async def assign_incident(self, incident_id: str, assignee_id: str, performed_by: str) -> dict:
        return await self._workflow.assign(incident_id, assignee_id, performed_by)

    # --- Queries ---

    async def list_incidents(self, filters: Optional[IncidentFilters] = None) -> list[dict]:
        return await self._store.list_incidents(filters)

    async def get_incident(self, incident_id: str) -> dict:
        return await self._require_incident(incident_id)

    async def get_incident_detail(self, incident_id: str) -> dict:
        """Incident with reporter, assignee, history and similar incidents."""
        incident = await self._require_incident(incident_id)
        reporter = await self._store.get_user(incident["reported_by"])
        assignee = await self._store.get_user(incident["assigned_to"]) if incident["assigned_to"] else None
        history = await self._store.list_history(incident_id)
        similar = await self._find_similar(incident)
        return {
            **incident,
            "reporter": reporter,
            "assignee": assignee,
            "history": history,
            "similar_incidents": similar,
        }

    async def get_history(self, incident_id: str) -> list[dict]:
        await self._require_incident(incident_id)
        return await self._store.list_history(incident_id)

    async def get_similar(self, incident_id: str) -> list[dict]:
        incident = await self._require_incident(incident_id)
        return await self._find_similar(incident)

    async def _find_similar(self, incident: dict) -> list[dict]:
        corpus = await self._store.list_incidents()
        return self._matcher.find_similar(incident["id"], incident["description"], corpus)

    async def get_stats(self) -> dict:
        return await self._store.get_stats()

    # --- Other operations ---

    async def analyze_incident(self, incident_id: str) -> dict:
        """Run AI analysis and persist tags and analysis text on the incident."""
        incident = await self._require_incident(incident_id)
        result = await self._analyzer.analyze(
            incident["title"],
            incident["description"],
            incident["category"],
            incident["severity"],
        )
        updated = await self._store.update_incident(incident_id, {
            "ai_tags": result["tags"],
            "ai_analysis": result["analysis"],
        })
        if updated is None:
            raise NotFoundError("Incident", incident_id)
        logger.info("incident_analyzed", id=incident_id, tags=result["tags"])
        return {
            "incident": updated,
            "tags": result["tags"],
            "analysis": result["analysis"],
            "suggested_category": result.get("suggested_category"),
            "suggested_severity": result.get("suggested_severity"),
        }

    async def add_note(self, incident_id: str, note: str, performed_by: str) -> dict:
        """Append a free-text note to the incident history."""
        incident = await self._require_incident(incident_id)
        if not note or not note.strip():
            raise ValidationError([{"field": "note", "message": "Note must not be empty"}])
        entry = await self._store.append_history({
            "incident_id": incident_id,
            "action": "note",
            "previous_status": incident["status"],
            "new_status": incident["status"],
            "performed_by": performed_by,
            "notes": note.strip(),
        })
        logger.info("incident_note_added", id=incident_id, performed_by=performed_by)
        return entry

    async def delete_incident(self, incident_id: str) -> None:
        if not await self._store.delete_incident(incident_id):
            raise NotFoundError("Incident", incident_id)

    # --- Users ---

    async def list_users(self, role: Optional[str] = None) -> list[dict]:
        return await self._store.list_users(role)

    async def get_user(self, user_id: str) -> dict:
        user = await self._store.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def create_user(
        self,
        username: str,
        role: str,
        display_name: str,
        email: Optional[str] = None,
    ) -> dict:
        errors = []
        if not username or len(username.strip()) < 3:
            errors.append({"field": "username", "message": "Username must be at least 3 characters"})
        if role not in ROLES:
            errors.append({"field": "role", "message": f"Role must be one of {list(ROLES)}"})
        if not display_name or not display_name.strip():
            errors.append({"field": "display_name", "message": "Display name is required"})
        if errors:
            raise ValidationError(errors)

        username = username.strip()
        if await self._store.get_user_by_username(username):
            raise ValidationError([{"field": "username", "message": "Username already exists"}])

        user = await self._store.create_user({
            "username": username,
            "role": role,
            "display_name": display_name.strip(),
            "email": email,
        })
        logger.info("user_created", id=user["id"], username=username, role=role)
        return user
