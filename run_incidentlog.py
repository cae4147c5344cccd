#!/usr/bin/env python3
"""
run_incidentlog.py — rebuild the dashboard or serve the API from the project root.
Uses incidentlog_config.json when present.

  python run_incidentlog.py               # rebuild dashboard (uses config)
  python run_incidentlog.py --api         # start the read-only API server
  python run_incidentlog.py --init        # create an empty store at db_path

Appending records goes through incidentlog-record, not this script.
"""

import argparse
import sys
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="incidentlog — dashboard / API runner")
    parser.add_argument("--api", action="store_true", help="Start API server")
    parser.add_argument("--init", action="store_true", help="Create an empty store and exit")
    args = parser.parse_args()

    root = Path(__file__).parent
    sys.path.insert(0, str(root))

    from incidentlog.config import load_config, resolve_path
    from incidentlog.errors import StorageError

    config = load_config(root)
    db_path = resolve_path(config, "db_path", root)

    if args.api:
        import uvicorn
        from incidentlog.api import _build_app
        app = _build_app(db_path=db_path, title=config["dashboard_title"])
        print(f"Starting API at http://{config['api_host']}:{config['api_port']}")
        uvicorn.run(app, host=config["api_host"], port=int(config["api_port"]), log_level="info")
        return

    try:
        if args.init:
            from incidentlog.store import RecordStore
            RecordStore(db_path).initialize()
            print(f"Store ready: {db_path}")
            return

        from incidentlog.dashboard_html import generate_dashboard
        output = generate_dashboard(
            db_path     = db_path,
            output_path = resolve_path(config, "output_path", root),
            title       = config["dashboard_title"],
        )
        print(f"Dashboard: {output}")
    except StorageError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(3)


if __name__ == "__main__":
    main()
