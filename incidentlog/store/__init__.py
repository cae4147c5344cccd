"""
incidentlog/store — SQLite-backed Record Store.
"""

from incidentlog.store.sqlite_store import (
    DEFAULT_DB_PATH,
    ORDER_ID_ASC,
    ORDER_ID_DESC,
    ORDER_SOURCE_ID,
    RecordStore,
)

__all__ = [
    "DEFAULT_DB_PATH",
    "ORDER_ID_ASC",
    "ORDER_ID_DESC",
    "ORDER_SOURCE_ID",
    "RecordStore",
]
