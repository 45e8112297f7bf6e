"""Status Workflow Engine: incident creation, status transitions and assignment.

Every state change appends one history entry. The transition table below is
the only source of truth for which status changes are legal; ``assign`` is an
administrative override that bypasses it.
"""

from datetime import datetime, timezone
from typing import Optional

from ..errors import InvalidTransitionError, NotFoundError, ValidationError
from ..models.constants import (
    CATEGORIES,
    DESCRIPTION_MIN_LENGTH,
    SEVERITIES,
    TITLE_MIN_LENGTH,
)
from ..store.base import IncidentStore
from ..utils.logging import get_logger

logger = get_logger("engine.workflow")

VALID_TRANSITIONS = {
    "new": ("assigned",),
    "assigned": ("in_progress",),
    "in_progress": ("resolved",),
    "resolved": ("closed", "in_progress"),
    "closed": (),
}


def validate_new_incident(
    title: Optional[str],
    description: Optional[str],
    category: Optional[str],
    severity: Optional[str],
    reported_by: Optional[str],
) -> list[dict]:
    """Collect every field error for a new incident."""
    errors = []
    if not title or len(title) < TITLE_MIN_LENGTH:
        errors.append({"field": "title", "message": f"Title must be at least {TITLE_MIN_LENGTH} characters"})
    if not description or len(description) < DESCRIPTION_MIN_LENGTH:
        errors.append({
            "field": "description",
            "message": f"Description must be at least {DESCRIPTION_MIN_LENGTH} characters",
        })
    if category not in CATEGORIES:
        errors.append({"field": "category", "message": f"Category must be one of {list(CATEGORIES)}"})
    if severity not in SEVERITIES:
        errors.append({"field": "severity", "message": f"Severity must be one of {list(SEVERITIES)}"})
    if not reported_by:
        errors.append({"field": "reported_by", "message": "Reporter is required"})
    return errors


class StatusWorkflow:
    """Applies lifecycle changes to incidents through an injected store.

    ``notifier`` is anything with an ``enqueue(event_type, payload)`` method;
    handing off a notification never blocks and never fails the operation.
    """

    def __init__(self, store: IncidentStore, notifier=None, app_url: str = ""):
        self._store = store
        self._notifier = notifier
        self._app_url = app_url.rstrip("/")

    @staticmethod
    def allowed_transitions(status: str) -> tuple:
        return VALID_TRANSITIONS.get(status, ())

    async def create(
        self,
        title: str,
        description: str,
        category: str,
        severity: str,
        reported_by: str,
        affected_systems: Optional[list[str]] = None,
    ) -> dict:
        """Create an incident in ``new`` and record a ``created`` history entry."""
        errors = validate_new_incident(title, description, category, severity, reported_by)
        if errors:
            raise ValidationError(errors)

        incident = await self._store.create_incident({
            "title": title,
            "description": description,
            "category": category,
            "severity": severity,
            "status": "new",
            "affected_systems": affected_systems or [],
            "reported_by": reported_by,
        })
        await self._store.append_history({
            "incident_id": incident["id"],
            "action": "created",
            "previous_status": None,
            "new_status": "new",
            "performed_by": reported_by,
        })
        logger.info(
            "incident_created",
            id=incident["id"],
            category=category,
            severity=severity,
            reported_by=reported_by,
        )

        recipients = [
            u["email"] for u in await self._store.list_users(role="specialist") if u.get("email")
        ]
        reporter = await self._store.get_user(reported_by)
        self._notify("incident_created", {
            **self._notification_payload(incident),
            "reported_by_name": reporter["display_name"] if reporter else reported_by,
            "recipients": recipients,
        })
        return incident

    async def transition(
        self,
        incident_id: str,
        target_status: str,
        performed_by: str,
        notes: Optional[str] = None,
    ) -> dict:
        """Move an incident along the transition table.

        Raises:
            NotFoundError: the incident does not exist.
            InvalidTransitionError: ``target_status`` is not reachable from the current status.
        """
        incident = await self._store.get_incident(incident_id)
        if incident is None:
            raise NotFoundError("Incident", incident_id)

        current = incident["status"]
        allowed = self.allowed_transitions(current)
        if target_status not in allowed:
            logger.warning(
                "incident_transition_rejected",
                id=incident_id,
                current=current,
                target=target_status,
            )
            raise InvalidTransitionError(current, target_status, allowed)

        now = datetime.now(timezone.utc)
        updates = {"status": target_status, "updated_at": now}
        # Only the first entry into resolved stamps resolved_at; reopening keeps it.
        if target_status == "resolved" and not incident.get("resolved_at"):
            updates["resolved_at"] = now
        if target_status == "assigned" and not incident.get("assigned_to"):
            updates["assigned_to"] = performed_by

        updated = await self._store.update_incident(incident_id, updates)
        if updated is None:
            raise NotFoundError("Incident", incident_id)

        await self._store.append_history({
            "incident_id": incident_id,
            "action": "status_change",
            "previous_status": current,
            "new_status": target_status,
            "performed_by": performed_by,
            "notes": notes,
        })
        logger.info(
            "incident_status_updated",
            id=incident_id,
            old=current,
            new=target_status,
            performed_by=performed_by,
        )
        return updated

    async def assign(self, incident_id: str, assignee_id: str, performed_by: str) -> dict:
        """Assign an incident and force its status to ``assigned`` from any state."""
        incident = await self._store.get_incident(incident_id)
        if incident is None:
            raise NotFoundError("Incident", incident_id)
        assignee = await self._store.get_user(assignee_id)
        if assignee is None:
            raise NotFoundError("User", assignee_id)

        previous = incident["status"]
        updated = await self._store.update_incident(incident_id, {
            "assigned_to": assignee_id,
            "status": "assigned",
        })
        if updated is None:
            raise NotFoundError("Incident", incident_id)

        await self._store.append_history({
            "incident_id": incident_id,
            "action": "assigned",
            "previous_status": previous,
            "new_status": "assigned",
            "performed_by": performed_by,
            "notes": f"Assigned to {assignee['display_name']}",
        })
        logger.info("incident_assigned", id=incident_id, assignee=assignee_id, previous=previous)

        if assignee.get("email"):
            self._notify("incident_assigned", {
                **self._notification_payload(updated),
                "assignee_name": assignee["display_name"],
                "recipients": [assignee["email"]],
            })
        return updated

    def _notification_payload(self, incident: dict) -> dict:
        return {
            "incident_id": incident["id"],
            "title": incident["title"],
            "description": incident["description"],
            "category": incident["category"],
            "severity": incident["severity"],
            "status": incident["status"],
            "url": f"{self._app_url}/incidents/{incident['id']}",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def _notify(self, event_type: str, payload: dict) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.enqueue(event_type, payload)
        except Exception as exc:
            logger.error("notification_enqueue_failed", event_type=event_type, error=str(exc))
