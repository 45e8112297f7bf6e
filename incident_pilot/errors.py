"""Domain exceptions raised by the engine and mapped to HTTP responses by the middleware."""

from typing import Optional, Sequence


class IncidentPilotError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(IncidentPilotError):
    """Input rejected. ``errors`` lists every failing field, not just the first."""

    def __init__(self, errors: list[dict], message: str = "Validation failed"):
        self.errors = errors
        super().__init__(message, {"errors": errors})


class NotFoundError(IncidentPilotError):
    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = resource_type
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message)


class InvalidTransitionError(IncidentPilotError):
    def __init__(self, current: str, target: str, allowed: Sequence[str]):
        self.current = current
        self.target = target
        self.allowed = list(allowed)
        super().__init__(
            f"Cannot transition from {current} to {target}. Allowed: {self.allowed}",
            {"current": current, "target": target, "allowed": self.allowed},
        )


class AdapterFailure(IncidentPilotError):
    """An external collaborator (LLM, SMTP, webhook) failed or timed out."""
