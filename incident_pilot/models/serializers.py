"""ORM row to plain dict conversion."""

import json
from datetime import datetime, timezone
from typing import Optional


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _json_list(raw: Optional[str]) -> list:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return []
    return data if isinstance(data, list) else []


def incident_to_dict(incident) -> dict:
    return {
        "id": incident.id,
        "title": incident.title,
        "description": incident.description,
        "category": incident.category,
        "severity": incident.severity,
        "status": incident.status,
        "affected_systems": _json_list(incident.affected_systems_json),
        "reported_by": incident.reported_by,
        "assigned_to": incident.assigned_to,
        "ai_tags": _json_list(incident.ai_tags_json),
        "ai_analysis": incident.ai_analysis,
        "created_at": _iso(incident.created_at),
        "updated_at": _iso(incident.updated_at),
        "resolved_at": _iso(incident.resolved_at),
    }


def history_to_dict(entry) -> dict:
    return {
        "id": entry.id,
        "incident_id": entry.incident_id,
        "action": entry.action,
        "previous_status": entry.previous_status,
        "new_status": entry.new_status,
        "performed_by": entry.performed_by,
        "notes": entry.notes,
        "created_at": _iso(entry.created_at),
    }


def user_to_dict(user) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "role": user.role,
        "display_name": user.display_name,
        "email": user.email,
        "created_at": _iso(user.created_at),
    }
