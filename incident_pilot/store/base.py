"""Storage interface for users, incidents and incident history."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass
class IncidentFilters:
    """Optional constraints for listing incidents. Unset fields match everything."""

    statuses: set[str] = field(default_factory=set)
    categories: set[str] = field(default_factory=set)
    severities: set[str] = field(default_factory=set)
    date_from: Optional[date] = None  # inclusive, start of day UTC
    date_to: Optional[date] = None  # inclusive, end of day UTC
    search: Optional[str] = None
    reported_by: Optional[str] = None
    assigned_to: Optional[str] = None


class IncidentStore(ABC):
    """Persistence contract used by the workflow and the incident manager.

    Every method works on plain dicts and is atomic per call. Callers that
    read and then write (status transitions, assignment) get no isolation
    across calls.
    """

    @abstractmethod
    async def get_incident(self, incident_id: str) -> Optional[dict]: ...

    @abstractmethod
    async def list_incidents(self, filters: Optional[IncidentFilters] = None) -> list[dict]: ...

    @abstractmethod
    async def create_incident(self, data: dict) -> dict: ...

    @abstractmethod
    async def update_incident(self, incident_id: str, updates: dict) -> Optional[dict]: ...

    @abstractmethod
    async def delete_incident(self, incident_id: str) -> bool: ...

    @abstractmethod
    async def append_history(self, entry: dict) -> dict: ...

    @abstractmethod
    async def list_history(self, incident_id: str) -> list[dict]: ...

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[dict]: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[dict]: ...

    @abstractmethod
    async def list_users(self, role: Optional[str] = None) -> list[dict]: ...

    @abstractmethod
    async def create_user(self, data: dict) -> dict: ...

    @abstractmethod
    async def get_stats(self) -> dict: ...
