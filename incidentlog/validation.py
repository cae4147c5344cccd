"""
incidentlog/validation.py
Field rules for a Record. The writer runs these before opening the store,
and the store runs them again inside append().
"""

from typing import Tuple

from incidentlog.errors import ValidationError

SUMMARY_MAX_LEN   = 200
DETAILS_MAX_CHARS = 65536

TRUNCATION_MARKER = "\n[... truncated {count} characters]"

REQUIRED_FIELDS = ("source", "type", "summary")


def _as_utf8_text(value: str) -> str:
    """
    Arguments that were not valid UTF-8 arrive as lone surrogates, which
    sqlite3 cannot encode. Map them to U+FFFD; valid text is returned unchanged.
    """
    try:
        return value.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
    except UnicodeEncodeError:
        return value.encode("utf-8", "replace").decode("utf-8")


def validate_fields(
    source:  str,
    type:    str,
    summary: str,
    details: str = '',
) -> Tuple[str, str, str, str]:
    """
    Check the four content fields and return them ready for storage.
    Required fields must be non-empty after trimming but are returned as
    given; only undecodable characters are replaced.
    Raises ValidationError naming the first offending field.
    """
    values = {"source": source, "type": type, "summary": summary}
    cleaned = {}
    for name in REQUIRED_FIELDS:
        value = values[name]
        if value is None:
            raise ValidationError(f"{name} is required", field=name)
        if not isinstance(value, str):
            raise ValidationError(
                f"{name} must be a string, got {value.__class__.__name__}", field=name
            )
        if not value.strip():
            raise ValidationError(f"{name} must not be empty", field=name)
        cleaned[name] = _as_utf8_text(value)

    summary = cleaned["summary"]
    if "\n" in summary or "\r" in summary:
        raise ValidationError("summary must be a single line", field="summary")
    if len(summary) > SUMMARY_MAX_LEN:
        raise ValidationError(
            f"summary is {len(summary)} characters; the limit is {SUMMARY_MAX_LEN}",
            field="summary",
        )

    if details is None:
        details = ''
    if not isinstance(details, str):
        raise ValidationError(
            f"details must be a string, got {details.__class__.__name__}", field="details"
        )

    return cleaned["source"], cleaned["type"], summary, _as_utf8_text(details)


def clean_details(details: str, max_chars: int = DETAILS_MAX_CHARS) -> str:
    """
    Apply the details policy: drop NUL characters and cap the length.
    Text over max_chars is cut and a marker with the dropped count is appended.
    max_chars <= 0 disables the cap.
    """
    if not details:
        return ''
    details = details.replace("\x00", "")
    if max_chars > 0 and len(details) > max_chars:
        dropped = len(details) - max_chars
        details = details[:max_chars] + TRUNCATION_MARKER.format(count=dropped)
    return details
