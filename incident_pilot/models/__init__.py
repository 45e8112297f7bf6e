"""SQLAlchemy ORM models."""

from .base import Base
from .incident import Incident
from .incident_history import IncidentHistory
from .user import User

__all__ = ["Base", "Incident", "IncidentHistory", "User"]
