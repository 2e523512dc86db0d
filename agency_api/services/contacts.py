"""
agency_api/services/contacts.py — Contact inbox operations (admin)
List / fetch / status change / reply. Spam score and priority are set at
intake and never recomputed here.
"""
from __future__ import annotations

import math
from typing import Any, Optional

from agency_api.clients.document_store import Collection, DocumentStore
from agency_api.core.errors import NotFoundError
from agency_api.models import ContactRecord, ContactStatus, FormType, Reply
from agency_api.utils.timezone import utc_now

COLLECTION = "contacts"


def get_collection(store: DocumentStore) -> Collection:
    return store.collection(COLLECTION)


def list_contacts(
    contacts: Collection,
    page: int = 1,
    limit: int = 20,
    status: Optional[ContactStatus] = None,
    form_type: Optional[FormType] = None,
) -> dict[str, Any]:
    """Newest first. IP address and user agent are stripped from list output."""
    def _match(doc: dict[str, Any]) -> bool:
        if status is not None and doc.get("status") != status.value:
            return False
        if form_type is not None and doc.get("form_type") != form_type.value:
            return False
        return True

    skip = (page - 1) * limit
    docs = contacts.find(_match, sort="-created_at", skip=skip, limit=limit)
    total = contacts.count(_match)
    return {
        "data": [ContactRecord.model_validate(d).to_public(include_meta=False) for d in docs],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    }


def get_contact(contacts: Collection, contact_id: str) -> ContactRecord:
    doc = contacts.get(contact_id)
    if doc is None:
        raise NotFoundError("Contact not found")
    return ContactRecord.model_validate(doc)


def update_status(contacts: Collection, contact_id: str, status: ContactStatus) -> ContactRecord:
    now = utc_now()

    def _apply(doc: dict[str, Any]) -> None:
        doc["status"] = status.value
        doc["updated_at"] = now.isoformat()
        if status == ContactStatus.READ:
            doc["last_read_at"] = now.isoformat()

    try:
        updated = contacts.update(contact_id, _apply)
    except NotFoundError:
        raise NotFoundError("Contact not found")
    return ContactRecord.model_validate(updated)


def add_reply(contacts: Collection, contact_id: str, message: str, sender: str) -> ContactRecord:
    now = utc_now()
    reply = Reply(message=message, sender=sender, timestamp=now)

    def _apply(doc: dict[str, Any]) -> None:
        doc.setdefault("replies", []).append(reply.model_dump(mode="json"))
        doc["status"] = ContactStatus.REPLIED.value
        doc["replied_at"] = now.isoformat()
        doc["updated_at"] = now.isoformat()

    try:
        updated = contacts.update(contact_id, _apply)
    except NotFoundError:
        raise NotFoundError("Contact not found")
    return ContactRecord.model_validate(updated)
