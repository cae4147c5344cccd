"""
incidentlog/models/record.py
Shared dataclass schema. The store, writer and dashboard all use this type.
Do not add logic here — data only.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Record:
    """One immutable incident log entry."""
    id:        int
    timestamp: str          # ISO-8601 UTC, e.g. 2026-10-19T08:30:00.000000Z
    source:    str          # device / session label
    type:      str          # recovery phase or issue class
    summary:   str
    details:   str = ''     # captured diagnostic output, may be empty
