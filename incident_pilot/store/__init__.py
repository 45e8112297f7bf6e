"""Incident persistence."""

from .base import IncidentFilters, IncidentStore
from .sql_store import SQLIncidentStore

__all__ = ["IncidentFilters", "IncidentStore", "SQLIncidentStore"]
