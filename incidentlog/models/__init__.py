"""
incidentlog/models — shared dataclass schema.
"""

from incidentlog.models.record import Record

__all__ = ["Record"]
