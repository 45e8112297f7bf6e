"""Incident Pilot: IT and cyber-security incident tracking service."""

__version__ = "1.0.0"
