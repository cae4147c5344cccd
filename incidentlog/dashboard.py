"""
incidentlog/dashboard.py
Dashboard model — groups stored records into per-source session timelines.

Input: List[Record] from RecordStore.list_all().
Output: Dashboard object, rendered by incidentlog.dashboard_html.
Only data-derived values go in here (no wall-clock time), so the same
records always give the same Dashboard.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from incidentlog.config import DEFAULT_TITLE
from incidentlog.models.record import Record


@dataclass
class SourceGroup:
    source: str
    anchor: str                               # HTML id, unique within a Dashboard
    entries: List[Record] = field(default_factory=list)
    first_timestamp: Optional[str] = None
    last_timestamp: Optional[str] = None


@dataclass
class Dashboard:
    title: str
    groups: List[SourceGroup]
    record_count: int = 0
    source_count: int = 0
    last_timestamp: Optional[str] = None


def _timeline_key(record: Record):
    return (record.timestamp, record.id)


def build_dashboard(records: List[Record], title: str = DEFAULT_TITLE) -> Dashboard:
    """
    Group records by source, order each group oldest-first and put the most
    recently active source first.
    """
    by_source: Dict[str, List[Record]] = {}
    for r in records:
        by_source.setdefault(r.source, []).append(r)

    groups: List[SourceGroup] = []
    for source, entries in by_source.items():
        entries.sort(key=_timeline_key)
        groups.append(SourceGroup(
            source=source,
            anchor='',
            entries=entries,
            first_timestamp=entries[0].timestamp,
            last_timestamp=entries[-1].timestamp,
        ))

    # Equal timestamps fall back to the newer id, so the order is total.
    groups.sort(key=lambda g: _timeline_key(g.entries[-1]), reverse=True)

    taken: Set[str] = set()
    for g in groups:
        g.anchor = _anchor_for(g.source, taken)

    last = max((r.timestamp for r in records), default=None)

    return Dashboard(
        title=title,
        groups=groups,
        record_count=len(records),
        source_count=len(groups),
        last_timestamp=last,
    )


def _anchor_for(source: str, taken: Set[str]) -> str:
    slug = re.sub(r'[^a-z0-9]+', '-', source.lower()).strip('-') or 'source'
    anchor = base = f"source-{slug}"
    n = 2
    while anchor in taken:
        anchor = f"{base}-{n}"
        n += 1
    taken.add(anchor)
    return anchor


def dashboard_to_dict(dashboard: Dashboard) -> Dict:
    """Convert Dashboard to a JSON-serializable dict (for the API)."""
    def _dataclass_to_dict(obj):
        if hasattr(obj, "__dataclass_fields__"):
            return {k: _dataclass_to_dict(getattr(obj, k)) for k in obj.__dataclass_fields__}
        if isinstance(obj, list):
            return [_dataclass_to_dict(x) for x in obj]
        return obj

    return _dataclass_to_dict(dashboard)
