"""
incidentlog — append-only incident log for recovery sessions on headless servers.

Records go into a local SQLite file; the dashboard generator renders them
into one static HTML page.
"""

__version__ = "1.0.0"
