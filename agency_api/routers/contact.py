"""
agency_api/routers/contact.py — Contact form endpoints
POST is public and sits behind the admission gate.
Inbox endpoints are admin routes (X-API-Key when ADMIN_API_KEY is set).
"""
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from agency_api.clients.document_store import Collection, DocumentStore
from agency_api.config import get_settings
from agency_api.core.auth import verify_admin_key
from agency_api.core.errors import ValidationFailedError
from agency_api.core.rate_limiter import RATE_LIMITS, enforce_admission, limiter
from agency_api.models import (
    ContactStatus,
    FormType,
    ReplyRequest,
    StatusUpdate,
    SubmissionResponse,
)
from agency_api.services import contacts as contacts_service
from agency_api.services import intake
from agency_api.utils.validators import parse_int

router = APIRouter()


def get_contacts(request: Request) -> Collection:
    store: DocumentStore = request.app.state.store
    return contacts_service.get_collection(store)


# ──────────────────────────────────────────────────────────────────────────────
# POST /api/contact — public intake
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=SubmissionResponse,
    response_model_by_alias=True,
)
async def submit_contact(
    request: Request,
    payload: Any = Body(...),
    identity: str = Depends(enforce_admission),
    contacts: Collection = Depends(get_contacts),
) -> SubmissionResponse:
    """
    Submit a contact or business-details form.
    The admission gate has already counted this request; validation
    failures still consume a slot.
    """
    if not isinstance(payload, dict):
        raise ValidationFailedError(["body"], ["Request body must be a JSON object"])

    record = intake.submit(
        payload,
        contacts,
        origin_address=identity,
        user_agent=request.headers.get("User-Agent", ""),
    )
    message = (
        "Business details saved successfully!"
        if record.form_type == FormType.BUSINESS_PROFILE
        else "Message sent successfully!"
    )
    return SubmissionResponse(message=message, contact_id=record.id)


# ──────────────────────────────────────────────────────────────────────────────
# Admin inbox
# ──────────────────────────────────────────────────────────────────────────────

@router.get("")
@limiter.limit(RATE_LIMITS["admin"])
async def list_contacts(
    request: Request,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    status_value: Optional[str] = Query(None, alias="status"),
    form_value: Optional[str] = Query(None, alias="formType"),
    _auth: bool = Depends(verify_admin_key),
    contacts: Collection = Depends(get_contacts),
) -> dict[str, Any]:
    """Paginated inbox, newest first. IP address and user agent are not listed."""
    invalid = []
    status_filter = None
    form_filter = None
    if status_value:
        try:
            status_filter = ContactStatus(status_value)
        except ValueError:
            invalid.append("status")
    if form_value:
        try:
            form_filter = FormType.parse(form_value)
        except ValueError:
            invalid.append("formType")
    if invalid:
        raise ValidationFailedError(invalid, [f"Invalid {f} filter" for f in invalid])

    result = contacts_service.list_contacts(
        contacts,
        page=parse_int(page, 1, minimum=1),
        limit=parse_int(limit, get_settings().contact_page_size, minimum=1),
        status=status_filter,
        form_type=form_filter,
    )
    return {"success": True, **result}


@router.get("/{contact_id}")
async def get_contact(
    contact_id: str,
    _auth: bool = Depends(verify_admin_key),
    contacts: Collection = Depends(get_contacts),
) -> dict[str, Any]:
    record = contacts_service.get_contact(contacts, contact_id)
    return {"success": True, "data": record.to_public()}


@router.put("/{contact_id}/status")
async def update_contact_status(
    contact_id: str,
    body: StatusUpdate,
    _auth: bool = Depends(verify_admin_key),
    contacts: Collection = Depends(get_contacts),
) -> dict[str, Any]:
    record = contacts_service.update_status(contacts, contact_id, body.status)
    return {"success": True, "data": record.to_public()}


@router.post("/{contact_id}/reply")
async def reply_to_contact(
    contact_id: str,
    body: ReplyRequest,
    _auth: bool = Depends(verify_admin_key),
    contacts: Collection = Depends(get_contacts),
) -> dict[str, Any]:
    contacts_service.add_reply(contacts, contact_id, body.message, body.sender)
    return {"success": True, "message": "Reply added successfully"}
