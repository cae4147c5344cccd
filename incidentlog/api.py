"""
incidentlog/api.py
─────────────────────────────────────────────────────────────────────────────
Incident log — read-only local API

TWO USAGE MODES:
  1. Importable module:
         from incidentlog.api import IncidentLogAPI
         api = IncidentLogAPI(db_path=Path("data/incidents.db"))
         records = api.get_records(source="zima-01")

  2. FastAPI HTTP server:
         python -m incidentlog.api                  # default: port 8766
         python -m incidentlog.api --port 9000
         uvicorn incidentlog.api:app --port 8766

ENDPOINTS:
  GET  /records              — records, optional source filter and ordering
  GET  /records/{record_id}  — single record (404 when missing)
  GET  /sources              — distinct sources with record counts
  GET  /dashboard            — grouped dashboard as JSON
  GET  /dashboard.html       — the same HTML the static generator writes
  GET  /health               — status and db path

There is no write endpoint. Records are appended through incidentlog-record
only. No authentication: the server binds to 127.0.0.1 by default.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from incidentlog import __version__
from incidentlog.config import DEFAULT_TITLE
from incidentlog.dashboard import build_dashboard, dashboard_to_dict
from incidentlog.dashboard_html import render_html
from incidentlog.errors import StorageError
from incidentlog.store.sqlite_store import (
    DEFAULT_DB_PATH,
    ORDER_ID_ASC,
    ORDER_ID_DESC,
    ORDER_SOURCE_ID,
    RecordStore,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 500

# ── OPTIONAL FASTAPI IMPORT ─────────────────────────────────────────────────
# The IncidentLogAPI class works without FastAPI; the HTTP app needs it.

try:
    from fastapi import FastAPI, HTTPException, Query
    from fastapi.responses import HTMLResponse
    from pydantic import BaseModel
    _FASTAPI_AVAILABLE = True
except ImportError:  # pragma: no cover
    _FASTAPI_AVAILABLE = False
    FastAPI = None          # type: ignore
    HTTPException = None    # type: ignore
    BaseModel = object      # type: ignore


# ═══════════════════════════════════════════════════════════════════════════
# IMPORTABLE CLASS
# ═══════════════════════════════════════════════════════════════════════════

class IncidentLogAPI:
    """
    Pure-Python read API over the incident store.
    Every call is one read pass; StorageError propagates to the caller.
    """

    def __init__(self, db_path: Path = DEFAULT_DB_PATH, title: str = DEFAULT_TITLE):
        self.db_path = Path(db_path)
        self.title = title
        self._store = RecordStore(self.db_path)

    def get_records(
        self,
        source: Optional[str] = None,
        order:  str = ORDER_ID_ASC,
        limit:  int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        Return records as dicts.

        Args:
            source: only this source, oldest first (order is ignored)
            order:  id_asc, id_desc or source_id
            limit:  max rows returned (max enforced: 500)
            offset: pagination offset
        """
        limit = min(int(limit), MAX_PAGE_SIZE)
        offset = max(int(offset), 0)
        if source:
            records = self._store.list_by_source(source)
        else:
            records = self._store.list_all(order=order)
        return [asdict(r) for r in records[offset:offset + limit]]

    def get_record(self, record_id: int) -> Optional[Dict[str, Any]]:
        record = self._store.get(record_id)
        return asdict(record) if record else None

    def get_sources(self) -> List[Dict[str, Any]]:
        """Sources in dashboard order (most recently active first)."""
        dashboard = build_dashboard(self._store.list_all(), title=self.title)
        return [
            {
                "source":          g.source,
                "record_count":    len(g.entries),
                "first_timestamp": g.first_timestamp,
                "last_timestamp":  g.last_timestamp,
            }
            for g in dashboard.groups
        ]

    def get_dashboard(self) -> Dict[str, Any]:
        return dashboard_to_dict(build_dashboard(self._store.list_all(), title=self.title))

    def get_dashboard_html(self) -> str:
        return render_html(build_dashboard(self._store.list_all(), title=self.title))


# ═══════════════════════════════════════════════════════════════════════════
# FASTAPI HTTP APP
# ═══════════════════════════════════════════════════════════════════════════

def _build_app(db_path: Path = DEFAULT_DB_PATH, title: str = DEFAULT_TITLE) -> "FastAPI":  # type: ignore
    """Build the FastAPI application for one database file."""
    if not _FASTAPI_AVAILABLE:
        raise ImportError(
            "FastAPI is not installed. Run: pip install fastapi uvicorn"
        )

    _api = IncidentLogAPI(db_path=db_path, title=title)

    _app = FastAPI(
        title       = "Incident Log API",
        description = "Read-only local view of recovery-session incident records",
        version     = __version__,
        docs_url    = "/docs",
        redoc_url   = None,
    )

    # ── RESPONSE MODELS ─────────────────────────────────────────────────

    class RecordModel(BaseModel):
        id:        int
        timestamp: str
        source:    str
        type:      str
        summary:   str
        details:   str = ""

    def _storage_failure(exc: StorageError) -> HTTPException:
        logger.error(f"Storage failure serving request: {exc}")
        return HTTPException(status_code=500, detail=str(exc))

    @_app.get("/records", summary="List incident records")
    def get_records(
        source: Optional[str] = Query(None, description="Only records for this source"),
        order:  str           = Query(ORDER_ID_ASC,
                                      pattern=f"^({ORDER_ID_ASC}|{ORDER_ID_DESC}|{ORDER_SOURCE_ID})$"),
        limit:  int           = Query(100, ge=1, le=MAX_PAGE_SIZE),
        offset: int           = Query(0,   ge=0),
    ):
        try:
            data = _api.get_records(source=source, order=order, limit=limit, offset=offset)
        except StorageError as exc:
            raise _storage_failure(exc)
        return {"count": len(data), "records": data}

    @_app.get("/records/{record_id}", summary="Get a single record", response_model=RecordModel)
    def get_record(record_id: int):
        try:
            data = _api.get_record(record_id)
        except StorageError as exc:
            raise _storage_failure(exc)
        if data is None:
            raise HTTPException(status_code=404, detail=f"Record not found: {record_id}")
        return data

    @_app.get("/sources", summary="List sources, most recently active first")
    def get_sources():
        try:
            data = _api.get_sources()
        except StorageError as exc:
            raise _storage_failure(exc)
        return {"count": len(data), "sources": data}

    @_app.get("/dashboard", summary="Grouped dashboard as JSON")
    def get_dashboard():
        try:
            return _api.get_dashboard()
        except StorageError as exc:
            raise _storage_failure(exc)

    @_app.get("/dashboard.html", summary="Rendered dashboard", response_class=HTMLResponse)
    def get_dashboard_html():
        try:
            return HTMLResponse(content=_api.get_dashboard_html())
        except StorageError as exc:
            raise _storage_failure(exc)

    @_app.get("/health", summary="Health check")
    def health():
        return {
            "status":    "ok",
            "db_exists": _api.db_path.exists(),
            "db_path":   str(_api.db_path),
            "version":   __version__,
        }

    return _app


# Module-level app instance — used by uvicorn incidentlog.api:app
if _FASTAPI_AVAILABLE:
    app = _build_app()
else:
    app = None  # type: ignore


# ═══════════════════════════════════════════════════════════════════════════
# CLI ENTRYPOINT — python -m incidentlog.api
# ═══════════════════════════════════════════════════════════════════════════

def main(argv: Optional[List[str]] = None) -> None:
    import argparse
    import sys

    from incidentlog.config import load_config, resolve_path

    config = load_config()

    parser = argparse.ArgumentParser(
        prog        = "incidentlog-api",
        description = "Incident log read-only API server",
    )
    parser.add_argument("--port", type=int, default=int(config["api_port"]),
                        help="Port to bind (default: api_port from config, 8766)")
    parser.add_argument("--db",   type=Path, default=None,
                        help="Path to the incident database (default: db_path from config)")
    parser.add_argument("--host", type=str, default=config["api_host"],
                        help="Host to bind — keep 127.0.0.1 unless the network is trusted")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level   = logging.INFO,
        format  = '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt = '%H:%M:%S',
    )

    if not _FASTAPI_AVAILABLE:
        print("ERROR: FastAPI not installed.\nRun:  pip install fastapi uvicorn", file=sys.stderr)
        sys.exit(1)

    import uvicorn

    db_path = args.db or resolve_path(config, "db_path")
    server_app = _build_app(db_path=db_path, title=config.get("dashboard_title") or DEFAULT_TITLE)

    print(f"Incident Log API v{__version__} → http://{args.host}:{args.port}  (db: {db_path})")
    uvicorn.run(server_app, host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
