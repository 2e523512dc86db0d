"""
tests/test_logging.py — Unit tests for structured log records
"""
from __future__ import annotations

import warnings
from datetime import datetime, timezone

from agency_api.core.logging import _build_log_record


def test_log_record_has_component_operation_and_extra():
    record = _build_log_record("intake", "submission_created", {"contact_id": "abc"})
    assert record["component"] == "intake"
    assert record["operation"] == "submission_created"
    assert record["contact_id"] == "abc"


def test_log_record_timestamp_is_aware_utc():
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        record = _build_log_record("document_store", "flush")
    stamp = record["timestamp"]
    assert stamp.endswith("Z")
    parsed = datetime.fromisoformat(stamp.replace("Z", "+00:00"))
    assert parsed.utcoffset() == timezone.utc.utcoffset(None)
