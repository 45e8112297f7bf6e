"""SQLAlchemy-backed incident store."""

import json
from datetime import datetime, time, timezone
from typing import Optional

from sqlalchemy import delete, func as sa_func, or_, select
from sqlalchemy.exc import IntegrityError

from ..errors import ValidationError
from ..models.constants import CATEGORIES, SEVERITIES, STATUSES
from ..models.incident import Incident
from ..models.incident_history import IncidentHistory
from ..models.serializers import history_to_dict, incident_to_dict, user_to_dict
from ..models.user import User
from ..utils.logging import get_logger
from .base import IncidentFilters, IncidentStore

logger = get_logger("store.sql")

# Fields callers may change through update_incident; list fields are stored as JSON text.
_PLAIN_FIELDS = {
    "title", "description", "category", "severity", "status",
    "assigned_to", "ai_analysis", "resolved_at", "updated_at",
}
_JSON_FIELDS = {"affected_systems": "affected_systems_json", "ai_tags": "ai_tags_json"}


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _dumps(values) -> Optional[str]:
    return json.dumps(list(values)) if values else None


class SQLIncidentStore(IncidentStore):
    """Incident store over an async SQLAlchemy session factory, one session per call."""

    def __init__(self, db_session_factory=None):
        self._db_session_factory = db_session_factory

    # --- Incidents ---

    async def get_incident(self, incident_id: str) -> Optional[dict]:
        async with self._db_session_factory() as session:
            incident = await session.get(Incident, incident_id)
            return incident_to_dict(incident) if incident else None

    async def list_incidents(self, filters: Optional[IncidentFilters] = None) -> list[dict]:
        """List incidents newest first, narrowed by ``filters``."""
        filters = filters or IncidentFilters()
        query = select(Incident).order_by(Incident.created_at.desc(), Incident.id)

        if filters.statuses:
            query = query.where(Incident.status.in_(sorted(filters.statuses)))
        if filters.categories:
            query = query.where(Incident.category.in_(sorted(filters.categories)))
        if filters.severities:
            query = query.where(Incident.severity.in_(sorted(filters.severities)))
        if filters.date_from:
            start = datetime.combine(filters.date_from, time.min, tzinfo=timezone.utc)
            query = query.where(Incident.created_at >= start)
        if filters.date_to:
            end = datetime.combine(filters.date_to, time.max, tzinfo=timezone.utc)
            query = query.where(Incident.created_at <= end)
        if filters.search and filters.search.strip():
            pattern = f"%{_escape_like(filters.search.strip().lower())}%"
            query = query.where(
                or_(
                    sa_func.lower(Incident.title).like(pattern, escape="\\"),
                    sa_func.lower(Incident.description).like(pattern, escape="\\"),
                )
            )
        if filters.reported_by:
            query = query.where(Incident.reported_by == filters.reported_by)
        if filters.assigned_to:
            query = query.where(Incident.assigned_to == filters.assigned_to)

        async with self._db_session_factory() as session:
            result = await session.execute(query)
            return [incident_to_dict(i) for i in result.scalars().all()]

    async def create_incident(self, data: dict) -> dict:
        now = data.get("created_at") or datetime.now(timezone.utc)
        async with self._db_session_factory() as session:
            incident = Incident(
                title=data["title"],
                description=data["description"],
                category=data["category"],
                severity=data["severity"],
                status=data.get("status", "new"),
                affected_systems_json=_dumps(data.get("affected_systems")),
                reported_by=data["reported_by"],
                assigned_to=data.get("assigned_to"),
                ai_tags_json=_dumps(data.get("ai_tags")),
                ai_analysis=data.get("ai_analysis"),
                created_at=now,
                updated_at=now,
                resolved_at=data.get("resolved_at"),
            )
            if data.get("id"):
                incident.id = data["id"]
            session.add(incident)
            await session.commit()
            await session.refresh(incident)
            return incident_to_dict(incident)

    async def update_incident(self, incident_id: str, updates: dict) -> Optional[dict]:
        """Apply ``updates`` and bump ``updated_at``. Returns None if the incident is gone."""
        async with self._db_session_factory() as session:
            incident = await session.get(Incident, incident_id)
            if incident is None:
                return None

            for key, value in updates.items():
                if key in _JSON_FIELDS:
                    setattr(incident, _JSON_FIELDS[key], _dumps(value))
                elif key in _PLAIN_FIELDS:
                    setattr(incident, key, value)
                else:
                    raise ValueError(f"Unknown incident field: {key}")

            if "updated_at" not in updates:
                incident.updated_at = datetime.now(timezone.utc)

            await session.commit()
            return incident_to_dict(incident)

    async def delete_incident(self, incident_id: str) -> bool:
        """Delete an incident together with its history."""
        async with self._db_session_factory() as session:
            incident = await session.get(Incident, incident_id)
            if incident is None:
                return False
            await session.execute(
                delete(IncidentHistory).where(IncidentHistory.incident_id == incident_id)
            )
            await session.delete(incident)
            await session.commit()
        logger.info("incident_deleted", id=incident_id)
        return True

    # --- History ---

    async def append_history(self, entry: dict) -> dict:
        async with self._db_session_factory() as session:
            row = IncidentHistory(
                incident_id=entry["incident_id"],
                action=entry["action"],
                previous_status=entry.get("previous_status"),
                new_status=entry.get("new_status"),
                performed_by=entry["performed_by"],
                notes=entry.get("notes"),
                created_at=entry.get("created_at") or datetime.now(timezone.utc),
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return history_to_dict(row)

    async def list_history(self, incident_id: str) -> list[dict]:
        """History for one incident, newest first; same-instant entries by insertion order."""
        async with self._db_session_factory() as session:
            result = await session.execute(
                select(IncidentHistory)
                .where(IncidentHistory.incident_id == incident_id)
                .order_by(IncidentHistory.created_at.desc(), IncidentHistory.id.desc())
            )
            return [history_to_dict(h) for h in result.scalars().all()]

    # --- Users ---

    async def get_user(self, user_id: str) -> Optional[dict]:
        async with self._db_session_factory() as session:
            user = await session.get(User, user_id)
            return user_to_dict(user) if user else None

    async def get_user_by_username(self, username: str) -> Optional[dict]:
        async with self._db_session_factory() as session:
            user = (await session.execute(
                select(User).where(User.username == username)
            )).scalar_one_or_none()
            return user_to_dict(user) if user else None

    async def list_users(self, role: Optional[str] = None) -> list[dict]:
        query = select(User).order_by(User.username)
        if role:
            query = query.where(User.role == role)
        async with self._db_session_factory() as session:
            result = await session.execute(query)
            return [user_to_dict(u) for u in result.scalars().all()]

    async def create_user(self, data: dict) -> dict:
        async with self._db_session_factory() as session:
            user = User(
                username=data["username"],
                role=data.get("role", "employee"),
                display_name=data.get("display_name") or data["username"],
                email=data.get("email"),
            )
            if data.get("id"):
                user.id = data["id"]
            session.add(user)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ValidationError(
                    [{"field": "username", "message": "Username already exists"}]
                )
            await session.refresh(user)
            return user_to_dict(user)

    # --- Stats ---

    async def get_stats(self) -> dict:
        """Counts by status, severity and category; every bucket present."""
        async with self._db_session_factory() as session:
            total = (await session.execute(select(sa_func.count(Incident.id)))).scalar() or 0

            async def _grouped(column, keys) -> dict:
                rows = (await session.execute(
                    select(column, sa_func.count(Incident.id)).group_by(column)
                )).all()
                counts = {k: 0 for k in keys}
                for key, count in rows:
                    counts[key] = count
                return counts

            return {
                "total": total,
                "by_status": await _grouped(Incident.status, STATUSES),
                "by_severity": await _grouped(Incident.severity, SEVERITIES),
                "by_category": await _grouped(Incident.category, CATEGORIES),
            }
