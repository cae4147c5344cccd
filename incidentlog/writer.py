"""
incidentlog/writer.py
Record Writer — turns operator input into exactly one RecordStore.append().

Captured rescue-script output arrives as the details string, either inline
or through a file / stdin. The text is stored as-is apart from the details
policy in incidentlog.validation (NUL removal, length cap).
"""

import logging
import sys
from pathlib import Path
from typing import BinaryIO, Optional, Union

from incidentlog.models.record import Record
from incidentlog.store.sqlite_store import DEFAULT_DB_PATH, RecordStore
from incidentlog.validation import DETAILS_MAX_CHARS, clean_details, validate_fields

logger = logging.getLogger(__name__)


def record_incident(
    source:            str,
    type:              str,
    summary:           str,
    details:           str                   = '',
    db_path:           Union[str, Path]      = DEFAULT_DB_PATH,
    details_max_chars: int                   = DETAILS_MAX_CHARS,
    store:             Optional[RecordStore] = None,
) -> Record:
    """
    Validate the fields, apply the details policy and append one record.
    Validation runs before the store is opened, so a bad field never
    creates or touches the database file.
    """
    source, type, summary, details = validate_fields(source, type, summary, details)
    details = clean_details(details, details_max_chars)

    store = store or RecordStore(Path(db_path))
    record = store.append(source, type, summary, details)
    logger.debug(f"Writer appended #{record.id} ({len(details)} chars of details)")
    return record


def decode_details(raw: bytes) -> str:
    """Captured output is not guaranteed UTF-8; undecodable bytes become U+FFFD."""
    return raw.decode("utf-8", errors="replace")


def read_details(
    text:   Optional[str]           = None,
    path:   Optional[str]           = None,
    stream: Optional[BinaryIO]      = None,
) -> str:
    """
    Resolve the details argument.
    Literal text wins; otherwise read path, where "-" means stdin.
    """
    if text is not None:
        return text
    if path is None:
        return ''
    if path == '-':
        fh = stream if stream is not None else sys.stdin.buffer
        return decode_details(fh.read())
    return decode_details(Path(path).read_bytes())
