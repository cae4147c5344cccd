"""
incidentlog/store/sqlite_store.py
Record Store — the only code that touches the incident database file.

SCHEMA DESIGN NOTES:
- incidents is append-only: INSERT and SELECT, never UPDATE or DELETE
- id is AUTOINCREMENT so ids are never reused, even after manual surgery
- timestamp is TEXT, ISO-8601 UTC with microseconds and a trailing Z;
  fixed width, so string order is time order
- incidentlog_meta stores the schema version
- WAL + synchronous=FULL: a committed append is on disk before append() returns
- BEGIN IMMEDIATE takes the write lock up front; a second writer process
  waits up to BUSY_TIMEOUT_SEC, then fails with StorageError
"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from incidentlog.errors import StorageError
from incidentlog.models.record import Record
from incidentlog.validation import validate_fields

logger = logging.getLogger(__name__)

SCHEMA_VERSION   = '1'
DEFAULT_DB_PATH  = Path('data') / 'incidents.db'
BUSY_TIMEOUT_SEC = 5.0

ORDER_ID_ASC    = 'id_asc'
ORDER_ID_DESC   = 'id_desc'
ORDER_SOURCE_ID = 'source_id'

_ORDER_SQL = {
    ORDER_ID_ASC:    'id ASC',
    ORDER_ID_DESC:   'id DESC',
    ORDER_SOURCE_ID: 'source ASC, id ASC',
}

_COLUMNS = 'id, timestamp, source, type, summary, details'


def format_timestamp(moment: datetime) -> str:
    """Render a datetime in the stored timestamp format (UTC, microseconds, Z)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


def parse_timestamp(value: str) -> datetime:
    """Inverse of format_timestamp. Returns an aware UTC datetime."""
    return datetime.strptime(value, '%Y-%m-%dT%H:%M:%S.%fZ').replace(tzinfo=timezone.utc)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecordStore:
    """
    Durable insert/read access to the incidents table.

    Usage:
        store  = RecordStore(Path("data/incidents.db"))
        record = store.append("zima-01", "network", "WiFi restored", "power cycle")
        every  = store.list_all()
    """

    def __init__(
        self,
        db_path: Path = DEFAULT_DB_PATH,
        clock:   Optional[Callable[[], datetime]] = None,
    ):
        self.db_path = Path(db_path)
        self._clock = clock or _utc_now

    # ── INTERNAL ──────────────────────────────────────────────────────────

    def _connect(self) -> sqlite3.Connection:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self.db_path),
                timeout         = BUSY_TIMEOUT_SEC,
                isolation_level = None,   # explicit BEGIN/COMMIT below
            )
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open incident store {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=FULL")
        except sqlite3.Error as e:
            conn.close()
            raise StorageError(f"Cannot open incident store {self.db_path}: {e}") from e
        return conn

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        # Runs on every connection so a store file removed underneath a
        # long-lived instance is recreated on the next call.
        try:
            _create_schema(conn)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot initialize incident store {self.db_path}: {e}") from e

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        conn = self._connect()
        try:
            self._ensure_schema(conn)
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Read from {self.db_path} failed: {e}")
            raise StorageError(f"Cannot read incident store {self.db_path}: {e}") from e
        finally:
            conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> Record:
        return Record(
            id        = row['id'],
            timestamp = row['timestamp'],
            source    = row['source'],
            type      = row['type'],
            summary   = row['summary'],
            details   = row['details'] or '',
        )

    # ── SCHEMA ────────────────────────────────────────────────────────────

    def initialize(self) -> None:
        """Create the schema if missing. Safe to call on an existing store."""
        conn = self._connect()
        try:
            self._ensure_schema(conn)
        finally:
            conn.close()

    # ── WRITE ─────────────────────────────────────────────────────────────

    def append(
        self,
        source:  str,
        type:    str,
        summary: str,
        details: str = '',
    ) -> Record:
        """
        Validate and insert one record. Returns it with id and timestamp filled in.
        Raises ValidationError before any I/O, StorageError if the write fails.
        Nothing is left behind on failure: the transaction is rolled back.
        """
        source, type, summary, details = validate_fields(source, type, summary, details)

        conn = self._connect()
        try:
            self._ensure_schema(conn)
            conn.execute("BEGIN IMMEDIATE")
            try:
                timestamp = self._next_timestamp(conn)
                cur = conn.execute(
                    "INSERT INTO incidents (timestamp, source, type, summary, details) "
                    "VALUES (?,?,?,?,?)",
                    (timestamp, source, type, summary, details),
                )
                record_id = cur.lastrowid
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
        except sqlite3.Error as e:
            logger.error(f"Append to {self.db_path} failed: {e}")
            raise StorageError(f"Cannot write incident store {self.db_path}: {e}") from e
        finally:
            conn.close()

        logger.info(f"Recorded incident #{record_id} for source={source!r} type={type!r}")
        return Record(
            id        = record_id,
            timestamp = timestamp,
            source    = source,
            type      = type,
            summary   = summary,
            details   = details,
        )

    def _next_timestamp(self, conn: sqlite3.Connection) -> str:
        # Clamp to the newest stored value so timestamps never go backwards
        # across increasing ids, even if the wall clock steps back.
        now = format_timestamp(self._clock())
        row = conn.execute("SELECT MAX(timestamp) AS latest FROM incidents").fetchone()
        latest = row['latest'] if row else None
        if latest and latest > now:
            return latest
        return now

    # ── READ ──────────────────────────────────────────────────────────────

    def list_all(self, order: str = ORDER_ID_ASC) -> List[Record]:
        """
        Return every stored record in the requested order.
        A store that was never written to yields []. A missing file is created.
        """
        if order not in _ORDER_SQL:
            raise ValueError(f"Unknown order {order!r}; expected one of {sorted(_ORDER_SQL)}")
        rows = self._query(f"SELECT {_COLUMNS} FROM incidents ORDER BY {_ORDER_SQL[order]}")
        logger.debug(f"Read {len(rows)} incident rows from {self.db_path}")
        return [self._row_to_record(r) for r in rows]

    def list_by_source(self, source: str) -> List[Record]:
        """Records for one source, oldest first."""
        rows = self._query(
            f"SELECT {_COLUMNS} FROM incidents WHERE source = ? ORDER BY id ASC",
            (source,),
        )
        return [self._row_to_record(r) for r in rows]

    def get(self, record_id: int) -> Optional[Record]:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM incidents WHERE id = ?", (int(record_id),)
        )
        return self._row_to_record(rows[0]) if rows else None

    def count(self) -> int:
        rows = self._query("SELECT COUNT(*) AS n FROM incidents")
        return rows[0]['n']

    def sources(self) -> List[str]:
        rows = self._query("SELECT DISTINCT source FROM incidents ORDER BY source ASC")
        return [r['source'] for r in rows]


def _create_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS incidentlog_meta (
            key             TEXT PRIMARY KEY,
            value           TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS incidents (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            timestamp       TEXT    NOT NULL,
            source          TEXT    NOT NULL,
            type            TEXT    NOT NULL,
            summary         TEXT    NOT NULL,
            details         TEXT    NOT NULL DEFAULT ''
        );

        CREATE INDEX IF NOT EXISTS idx_incident_source ON incidents(source);
        CREATE INDEX IF NOT EXISTS idx_incident_ts     ON incidents(timestamp);
    """)
    row = conn.execute(
        "SELECT value FROM incidentlog_meta WHERE key = 'schema_version'"
    ).fetchone()
    if row is None:
        conn.execute(
            "INSERT OR IGNORE INTO incidentlog_meta (key, value) VALUES ('schema_version', ?)",
            (SCHEMA_VERSION,),
        )
