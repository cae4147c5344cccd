"""
incidentlog/dashboard_html.py
Static HTML rendering of a Dashboard, and the generator that writes it.

Output: one self-contained HTML file (inline CSS, no scripts, no assets).
Every byte is derived from the stored records, so an unchanged store
renders to an identical file. All record text goes through html.escape.
The artifact is replaced atomically; a failed run leaves the old file alone.
"""

import html
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from incidentlog.config import DEFAULT_OUTPUT_PATH, DEFAULT_TITLE
from incidentlog.dashboard import Dashboard, SourceGroup, build_dashboard
from incidentlog.errors import StorageError
from incidentlog.models.record import Record
from incidentlog.store.sqlite_store import DEFAULT_DB_PATH, RecordStore, parse_timestamp

logger = logging.getLogger(__name__)

EMPTY_STATE_TEXT = "No incidents recorded yet."

_CSS = """
body { font-family: -apple-system, "Segoe UI", Helvetica, Arial, sans-serif;
       margin: 0 auto; max-width: 960px; padding: 1.5rem; color: #1d2329;
       background: #f6f7f9; }
header h1 { margin: 0 0 .25rem 0; font-size: 1.6rem; }
header p { margin: 0; color: #5b6670; }
nav { margin: 1.25rem 0; padding: .75rem 1rem; background: #fff;
      border: 1px solid #dde1e6; border-radius: 6px; }
nav ul { list-style: none; margin: 0; padding: 0; }
nav li { display: inline-block; margin: 0 1rem .25rem 0; }
section.source { margin-bottom: 2rem; }
section.source h2 { font-size: 1.2rem; border-bottom: 2px solid #dde1e6;
                    padding-bottom: .25rem; }
section.source h2 small { font-weight: normal; color: #5b6670; }
article.entry { background: #fff; border: 1px solid #dde1e6; border-radius: 6px;
                padding: .75rem 1rem; margin: .5rem 0; }
article.entry .meta { font-size: .85rem; color: #5b6670; }
article.entry .type { display: inline-block; padding: 0 .4rem; margin-right: .5rem;
                      border-radius: 3px; background: #e3ecf7; color: #1f4e85;
                      font-weight: 600; }
article.entry h3 { margin: .35rem 0; font-size: 1rem; }
article.entry pre { background: #1d2329; color: #e6e8ea; padding: .6rem;
                    border-radius: 4px; overflow-x: auto; white-space: pre-wrap;
                    word-break: break-word; font-size: .8rem; }
p.empty { padding: 2rem; text-align: center; color: #5b6670; background: #fff;
          border: 1px dashed #c5cbd2; border-radius: 6px; }
""".strip()


def _e(value: str) -> str:
    return html.escape(value, quote=True)


def format_display_timestamp(value: Optional[str]) -> str:
    """2026-10-19T08:30:00.000000Z -> 2026-10-19 08:30:00 UTC. Foreign formats pass through."""
    if not value:
        return ''
    try:
        return parse_timestamp(value).strftime('%Y-%m-%d %H:%M:%S UTC')
    except ValueError:
        return value


# ── RENDERING ────────────────────────────────────────────────

def render_html(dashboard: Dashboard) -> str:
    """Render the whole document. Pure function of the Dashboard."""
    lines: List[str] = [
        '<!DOCTYPE html>',
        '<html lang="en">',
        '<head>',
        '<meta charset="utf-8">',
        '<meta name="viewport" content="width=device-width, initial-scale=1">',
        f'<title>{_e(dashboard.title)}</title>',
        '<style>',
        _CSS,
        '</style>',
        '</head>',
        '<body>',
        '<header>',
        f'<h1>{_e(dashboard.title)}</h1>',
        f'<p>{_summary_line(dashboard)}</p>',
        '</header>',
    ]

    if not dashboard.groups:
        lines.append(f'<p class="empty">{_e(EMPTY_STATE_TEXT)}</p>')
    else:
        lines.extend(_render_nav(dashboard.groups))
        lines.append('<main>')
        for group in dashboard.groups:
            lines.extend(_render_group(group))
        lines.append('</main>')

    lines += ['</body>', '</html>', '']
    return '\n'.join(lines)


def _summary_line(dashboard: Dashboard) -> str:
    records = f"{dashboard.record_count} record{'s' if dashboard.record_count != 1 else ''}"
    sources = f"{dashboard.source_count} source{'s' if dashboard.source_count != 1 else ''}"
    if dashboard.last_timestamp is None:
        return f"{records} from {sources}"
    last = _e(format_display_timestamp(dashboard.last_timestamp))
    return f"{records} from {sources} &middot; last entry {last}"


def _render_nav(groups: List[SourceGroup]) -> List[str]:
    lines = ['<nav>', '<ul>']
    for g in groups:
        lines.append(
            f'<li><a href="#{_e(g.anchor)}">{_e(g.source)}</a> ({len(g.entries)})</li>'
        )
    lines += ['</ul>', '</nav>']
    return lines


def _render_group(group: SourceGroup) -> List[str]:
    span = (
        f"{_e(format_display_timestamp(group.first_timestamp))} &ndash; "
        f"{_e(format_display_timestamp(group.last_timestamp))}"
    )
    lines = [
        f'<section class="source" id="{_e(group.anchor)}">',
        f'<h2>{_e(group.source)} <small>{len(group.entries)} &middot; {span}</small></h2>',
    ]
    for record in group.entries:
        lines.extend(_render_entry(record))
    lines.append('</section>')
    return lines


def _render_entry(record: Record) -> List[str]:
    lines = [
        f'<article class="entry" id="record-{record.id}">',
        '<div class="meta">'
        f'<span class="type">{_e(record.type)}</span>'
        f'<time datetime="{_e(record.timestamp)}">{_e(format_display_timestamp(record.timestamp))}</time>'
        f' &middot; #{record.id}</div>',
        f'<h3>{_e(record.summary)}</h3>',
    ]
    if record.details:
        lines.append(f'<pre class="details">{_e(record.details)}</pre>')
    lines.append('</article>')
    return lines


# ── GENERATOR ────────────────────────────────────────────────

def write_atomic(path: Path, content: str) -> Path:
    """
    Write content to path via a temp file in the same directory + os.replace.
    Readers see either the old file or the complete new one.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, 'w', encoding='utf-8', newline='\n') as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, 0o644)   # mkstemp creates 0600
        os.replace(tmp_name, str(path))
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


def generate_dashboard(
    db_path:     Union[str, Path] = DEFAULT_DB_PATH,
    output_path: Union[str, Path] = DEFAULT_OUTPUT_PATH,
    title:       str              = DEFAULT_TITLE,
) -> Path:
    """
    Read the store once, render, and replace output_path.
    StorageError from the read propagates before anything is written.
    Returns output_path.
    """
    output_path = Path(output_path)
    records = RecordStore(Path(db_path)).list_all()
    dashboard = build_dashboard(records, title=title)
    document = render_html(dashboard)
    try:
        write_atomic(output_path, document)
    except OSError as e:
        logger.error(f"Dashboard write to {output_path} failed: {e}")
        raise StorageError(f"Cannot write dashboard {output_path}: {e}") from e
    logger.info(
        f"Dashboard written → {output_path} "
        f"({dashboard.record_count} records, {dashboard.source_count} sources)"
    )
    return output_path
