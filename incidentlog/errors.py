"""
incidentlog/errors.py
Error taxonomy shared by the store, the writer and the dashboard generator.
CLI entry points catch these two and turn them into exit codes.
"""

from typing import Optional


class IncidentLogError(Exception):
    """Base class for all incidentlog failures."""


class ValidationError(IncidentLogError, ValueError):
    """A required field is missing, empty, or out of bounds. Never reaches storage."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class StorageError(IncidentLogError):
    """The backing database file cannot be created, opened, written or read."""
