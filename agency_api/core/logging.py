"""
agency_api/core/logging.py — loguru structured JSON logging setup
Every log event is a JSON record with component + operation keys so the
hosting dashboard can filter on them.
"""
from __future__ import annotations

import json
import sys
import traceback
from typing import Any, Optional

from loguru import logger

from agency_api.utils.timezone import utc_now


def setup_logging(log_level: str = "INFO") -> None:
    """Configure loguru for structured JSON output to stdout."""
    # Remove default loguru handler
    logger.remove()

    logger.add(
        sys.stdout,
        level=log_level.upper(),
        format="{message}",
        serialize=True,       # loguru built-in JSON serialization
        backtrace=True,
        diagnose=False,       # Never dump local variables (form payloads) in production
        colorize=False,
    )


def _build_log_record(
    component: str,
    operation: str,
    extra: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Build a base structured log record."""
    record: dict[str, Any] = {
        "timestamp": utc_now().isoformat().replace("+00:00", "Z"),
        "component": component,
        "operation": operation,
    }
    if extra:
        record.update(extra)
    return record


# ──────────────────────────────────────────────────────────────────────────────
# Event helpers
# ──────────────────────────────────────────────────────────────────────────────

def log_submission(
    contact_id: str,
    form_type: str,
    spam_score: int,
    is_spam: bool,
    priority: str,
    sender: Optional[str] = None,
) -> None:
    """Every accepted contact submission is logged once, after persistence."""
    record = _build_log_record("intake", "submission_created", {
        "contact_id": contact_id,
        "form_type": form_type,
        "spam_score": spam_score,
        "is_spam": is_spam,
        "priority": priority,
        "sender": sender,
    })
    logger.info(json.dumps(record))


def log_admission_rejected(
    identity: str,
    retry_after_seconds: int,
    path: str,
) -> None:
    """Admission gate rejections."""
    record = _build_log_record("admission_gate", "rejected", {
        "identity": identity,
        "retry_after_seconds": retry_after_seconds,
        "path": path,
    })
    logger.warning(json.dumps(record))


def log_store_operation(
    collection: str,
    operation: str,  # load | flush | backup_restore
    success: bool,
    documents: int = 0,
    error: Optional[str] = None,
) -> None:
    """Document store disk I/O."""
    record = _build_log_record("document_store", operation, {
        "collection": collection,
        "success": success,
        "documents": documents,
        "error": error,
    })
    if success:
        logger.debug(json.dumps(record))
    else:
        logger.error(json.dumps(record))


def log_error(
    component: str,
    operation: str,
    error: Exception,
    context: Optional[dict[str, Any]] = None,
) -> None:
    """Every unexpected error is logged with full context."""
    tb = traceback.format_exc()
    record = _build_log_record(component, operation, {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "stack_trace": tb[:2000] if tb else "",
        "context": context or {},
    })
    logger.error(json.dumps(record))
