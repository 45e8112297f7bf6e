"""Canonical vocabulary for incidents, users and history entries."""

STATUSES = ("new", "assigned", "in_progress", "resolved", "closed")
CATEGORIES = ("it", "cyber")
SEVERITIES = ("critical", "high", "medium", "low")
ROLES = ("employee", "specialist")

TITLE_MIN_LENGTH = 5
DESCRIPTION_MIN_LENGTH = 20
