"""
agency_api/services/intake.py — Contact submission intake pipeline
Order is fixed: resolve form type → validate → stamp metadata → score → persist.
Nothing is scored or stored for a payload that fails validation, and no
record reaches the store without its spam score.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from loguru import logger
from pydantic import ValidationError

from agency_api.clients.document_store import Collection
from agency_api.core import logging as app_logging
from agency_api.core.errors import ValidationFailedError
from agency_api.models import (
    SUBMISSION_MODELS,
    ContactRecord,
    FormType,
    Submission,
    SubmissionSource,
)
from agency_api.services import spam_filter
from agency_api.utils.timezone import parse_client_timestamp, utc_now
from agency_api.utils.validators import flatten_validation_error


def resolve_form_type(payload: dict[str, Any]) -> FormType:
    """Explicit formType wins; absent means general inquiry."""
    raw = payload.get("formType", payload.get("form_type"))
    try:
        return FormType.parse(raw)
    except ValueError:
        raise ValidationFailedError(
            ["formType"],
            [f"formType must be one of: {', '.join(f.value for f in FormType)}"],
        )


def parse_submission(payload: dict[str, Any]) -> Submission:
    """
    Validate `payload` against the variant for its form type.
    Raises ValidationFailedError listing every violated field.
    """
    if not isinstance(payload, dict):
        raise ValidationFailedError(["body"], ["Request body must be a JSON object"])
    form_type = resolve_form_type(payload)
    model_class = SUBMISSION_MODELS[form_type]
    try:
        return model_class.model_validate(payload)
    except ValidationError as exc:
        fields, messages = flatten_validation_error(exc)
        raise ValidationFailedError(fields, messages) from exc


def build_record(
    submission: Submission,
    origin_address: str,
    user_agent: str = "",
    submitted_at: Any = None,
    source: SubmissionSource = SubmissionSource.WEBSITE,
    now: Optional[datetime] = None,
) -> ContactRecord:
    """Stamp metadata and run the spam heuristic. Pure: no I/O."""
    now = now or utc_now()
    stamped = parse_client_timestamp(submitted_at) or now

    content = spam_filter.build_content(submission.text_fields())
    verdict = spam_filter.classify(content)
    priority = spam_filter.detect_priority(content)

    return ContactRecord(
        form_type=submission.form_type,
        **submission.model_dump(),
        ip_address=origin_address,
        user_agent=user_agent or "",
        source=source,
        spam_score=verdict.score,
        is_spam=verdict.is_spam,
        priority=priority,
        submitted_at=stamped,
        created_at=now,
        updated_at=now,
    )


def submit(
    payload: dict[str, Any],
    contacts: Collection,
    origin_address: str,
    user_agent: str = "",
    now: Optional[datetime] = None,
) -> ContactRecord:
    """
    Full intake: validate, stamp, score, persist.
    Store errors (duplicate keys, disk failures) propagate unchanged.
    """
    submission = parse_submission(payload)
    record = build_record(
        submission,
        origin_address=origin_address,
        user_agent=user_agent,
        submitted_at=payload.get("submittedAt"),
        now=now,
    )

    contacts.create(record.model_dump(mode="json"))

    app_logging.log_submission(
        contact_id=record.id,
        form_type=record.form_type.value,
        spam_score=record.spam_score,
        is_spam=record.is_spam,
        priority=record.priority.value,
        sender=record.sender,
    )
    if record.is_spam:
        logger.warning(f"Submission {record.id} flagged as spam (score {record.spam_score}).")
    return record
