"""
tests/test_writer.py
Record Writer and field validation — fail-fast rules, details policy, input sources.
"""

import io
from unittest.mock import MagicMock

import pytest

from incidentlog.errors import StorageError, ValidationError
from incidentlog.store.sqlite_store import RecordStore
from incidentlog.validation import (
    SUMMARY_MAX_LEN,
    clean_details,
    validate_fields,
)
from incidentlog.writer import decode_details, read_details, record_incident


# ── TESTS: VALIDATION ─────────────────────────────────────────────────────────

class TestValidateFields:
    def test_valid_fields_returned_as_given(self):
        assert validate_fields(" a ", " t ", " s ", " d ") == (" a ", " t ", " s ", " d ")

    def test_lone_surrogates_replaced(self):
        assert validate_fields("zima-\udcff", "t", "s", "x\ud800y") == ("zima-\ufffd", "t", "s", "x?y")

    def test_summary_length_counts_surrounding_whitespace(self):
        with pytest.raises(ValidationError):
            validate_fields("a", "t", " " + "x" * SUMMARY_MAX_LEN)

    def test_none_details_becomes_empty(self):
        assert validate_fields("a", "t", "s", None)[3] == ""

    def test_none_required_field(self):
        with pytest.raises(ValidationError) as exc:
            validate_fields(None, "t", "s")
        assert exc.value.field == "source"
        assert "required" in str(exc.value)

    def test_non_string_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_fields("a", 42, "s")
        assert exc.value.field == "type"

    def test_summary_length_bound(self):
        validate_fields("a", "t", "x" * SUMMARY_MAX_LEN)
        with pytest.raises(ValidationError) as exc:
            validate_fields("a", "t", "x" * (SUMMARY_MAX_LEN + 1))
        assert exc.value.field == "summary"

    def test_summary_must_be_one_line(self):
        with pytest.raises(ValidationError):
            validate_fields("a", "t", "first line\nsecond line")

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            validate_fields("", "t", "s")


# ── TESTS: DETAILS POLICY ─────────────────────────────────────────────────────

class TestCleanDetails:
    def test_short_text_unchanged(self):
        assert clean_details("ip link set wlan0 up\n", 100) == "ip link set wlan0 up\n"

    def test_empty(self):
        assert clean_details("", 10) == ""

    def test_nul_removed(self):
        assert clean_details("a\x00b", 100) == "ab"

    def test_truncated_with_marker(self):
        out = clean_details("x" * 150, 100)
        assert out.startswith("x" * 100)
        assert out.endswith("[... truncated 50 characters]")

    def test_zero_disables_limit(self):
        assert clean_details("x" * 5000, 0) == "x" * 5000


class TestReadDetails:
    def test_literal_text_wins(self, tmp_path):
        assert read_details(text="inline", path=str(tmp_path / "nope")) == "inline"

    def test_nothing_given(self):
        assert read_details() == ""

    def test_from_file(self, tmp_path):
        f = tmp_path / "out.log"
        f.write_bytes("dmesg: wlan0 up ✓\n".encode("utf-8"))
        assert read_details(path=str(f)) == "dmesg: wlan0 up ✓\n"

    def test_from_stdin_stream(self):
        stream = io.BytesIO(b"captured stdout\n")
        assert read_details(path="-", stream=stream) == "captured stdout\n"

    def test_invalid_utf8_replaced(self):
        assert decode_details(b"ok \xff\xfe end") == "ok �� end"

    def test_missing_file_raises_os_error(self, tmp_path):
        with pytest.raises(OSError):
            read_details(path=str(tmp_path / "missing.log"))


# ── TESTS: RECORD_INCIDENT ────────────────────────────────────────────────────

class TestRecordIncident:
    def test_appends_exactly_one(self, tmp_path):
        db = tmp_path / "incidents.db"
        record = record_incident("zima-01", "network", "WiFi restored",
                                 "power cycle resolved link", db_path=db)
        records = RecordStore(db).list_all()
        assert len(records) == 1
        assert records[0] == record

    def test_validation_fails_before_store_is_touched(self):
        store = MagicMock(spec=RecordStore)
        with pytest.raises(ValidationError):
            record_incident("zima-01", "  ", "summary", store=store)
        store.append.assert_not_called()

    def test_invalid_input_creates_no_database(self, tmp_path):
        db = tmp_path / "incidents.db"
        with pytest.raises(ValidationError):
            record_incident("zima-01", "boot", "", db_path=db)
        assert not db.exists()

    def test_details_truncated_before_storage(self, tmp_path):
        db = tmp_path / "incidents.db"
        record = record_incident("a", "t", "s", "y" * 30, db_path=db, details_max_chars=10)
        assert record.details == "y" * 10 + "\n[... truncated 20 characters]"
        assert RecordStore(db).list_all()[0].details == record.details

    def test_storage_error_propagates_with_no_record(self, tmp_path):
        db = tmp_path / "incidents.db"
        db.write_bytes(b"not a database" * 100)
        with pytest.raises(StorageError):
            record_incident("a", "t", "s", db_path=db)
