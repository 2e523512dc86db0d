"""
agency_api/services/portfolio.py — Portfolio gallery operations
Public reads only ever see published items. Slugs are unique; the store
enforces it and a clash surfaces as DuplicateKeyError.
"""
from __future__ import annotations

import math
import re
from typing import Any, Optional

from loguru import logger
from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from agency_api.clients.document_store import Collection, DocumentStore
from agency_api.core.errors import NotFoundError, ValidationFailedError
from agency_api.models import PortfolioItem, PortfolioStatus
from agency_api.utils.timezone import utc_now
from agency_api.utils.validators import flatten_validation_error

COLLECTION = "portfolio"
REQUIRED_FIELDS = ("title", "description", "category")

# Fields a PUT may never overwrite
PROTECTED_FIELDS = {"id", "_id", "__v", "createdAt", "created_at", "metrics"}

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def get_collection(store: DocumentStore) -> Collection:
    return store.collection(COLLECTION, unique_fields=("slug",))


def slugify(title: str) -> str:
    """'Brand Refresh: Acme Co.' → 'brand-refresh-acme-co'"""
    return _SLUG_INVALID.sub("-", title.lower()).strip("-")


def _is_published(doc: dict[str, Any]) -> bool:
    return doc.get("status") == PortfolioStatus.PUBLISHED.value


def _validate(data: dict[str, Any]) -> PortfolioItem:
    try:
        return PortfolioItem.model_validate(data)
    except ValidationError as exc:
        fields, messages = flatten_validation_error(exc)
        raise ValidationFailedError(fields, messages) from exc


def _stamp_lifecycle(item: PortfolioItem, previous: Optional[PortfolioItem] = None) -> PortfolioItem:
    """Blank slug is derived from the title; publishedAt is set the first time an item goes live."""
    if not item.slug:
        item.slug = slugify(item.title)
    status_changed = previous is None or previous.status != item.status
    if status_changed and item.status == PortfolioStatus.PUBLISHED and item.published_at is None:
        item.published_at = utc_now()
    return item


# ──────────────────────────────────────────────────────────────────────────────
# Admin writes
# ──────────────────────────────────────────────────────────────────────────────

def create_item(items: Collection, payload: dict[str, Any]) -> PortfolioItem:
    missing = [f for f in REQUIRED_FIELDS if not payload.get(f)]
    if missing:
        raise ValidationFailedError(missing, [f"Missing required fields: {', '.join(missing)}"])

    data = {k: v for k, v in payload.items() if k not in PROTECTED_FIELDS}
    item = _stamp_lifecycle(_validate(data))
    now = utc_now()
    item.created_at = now
    item.updated_at = now
    items.create(item.model_dump(mode="json"))
    logger.info(f"Portfolio item created: {item.slug} ({item.id})")
    return item


def update_item(items: Collection, item_id: str, payload: dict[str, Any]) -> PortfolioItem:
    current = items.get(item_id)
    if current is None:
        raise NotFoundError("Portfolio item not found")
    previous = PortfolioItem.model_validate(current)

    changes = {
        to_snake(k): v for k, v in payload.items()
        if k not in PROTECTED_FIELDS
    }
    # A title change regenerates the slug unless the caller sets one explicitly
    title = changes.get("title")
    if isinstance(title, str) and title.strip() != previous.title and "slug" not in changes:
        changes["slug"] = ""
    merged = {**current, **changes, "id": item_id}
    item = _stamp_lifecycle(_validate(merged), previous)
    item.metrics = previous.metrics
    item.created_at = previous.created_at
    item.updated_at = utc_now()
    items.replace(item.model_dump(mode="json"))
    return item


def delete_item(items: Collection, item_id: str) -> None:
    try:
        items.delete(item_id)
    except NotFoundError:
        raise NotFoundError("Portfolio item not found")
    logger.info(f"Portfolio item deleted: {item_id}")


def set_status(items: Collection, item_id: str, status: PortfolioStatus) -> PortfolioItem:
    now = utc_now()

    def _apply(doc: dict[str, Any]) -> None:
        if doc.get("status") != status.value and status == PortfolioStatus.PUBLISHED and not doc.get("published_at"):
            doc["published_at"] = now.isoformat()
        doc["status"] = status.value
        doc["updated_at"] = now.isoformat()

    try:
        return PortfolioItem.model_validate(items.update(item_id, _apply))
    except NotFoundError:
        raise NotFoundError("Portfolio item not found")


# ──────────────────────────────────────────────────────────────────────────────
# Public reads
# ──────────────────────────────────────────────────────────────────────────────

def _build_filter(
    category: Optional[str] = None,
    tags: Optional[list[str]] = None,
    year: Optional[int] = None,
    featured: Optional[bool] = None,
    search: Optional[str] = None,
):
    tag_set = {t.lower() for t in tags} if tags else None
    needle = search.lower() if search else None

    def _match(doc: dict[str, Any]) -> bool:
        if not _is_published(doc):
            return False
        if category and doc.get("category") != category.lower():
            return False
        if tag_set and not tag_set.intersection(doc.get("tags", [])):
            return False
        if year is not None and doc.get("year") != year:
            return False
        if featured is not None and bool(doc.get("featured")) != featured:
            return False
        if needle:
            haystack = [doc.get("title", ""), doc.get("description", ""), *doc.get("tags", [])]
            if not any(needle in (h or "").lower() for h in haystack):
                return False
        return True

    return _match


def normalize_sort(sort: Optional[str]) -> str:
    """Accept camelCase wire fields ("-createdAt", "metrics.views") and map to stored keys."""
    if not sort:
        return "-created_at"
    parts = []
    for part in sort.split(","):
        part = part.strip()
        if not part:
            continue
        prefix = "-" if part.startswith("-") else ""
        path = part.lstrip("-+")
        parts.append(prefix + ".".join(to_snake(p) for p in path.split(".")))
    return ",".join(parts) or "-created_at"


def list_published(
    items: Collection,
    page: int = 1,
    limit: int = 12,
    category: Optional[str] = None,
    tags: Optional[list[str]] = None,
    year: Optional[int] = None,
    featured: Optional[bool] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
) -> dict[str, Any]:
    match = _build_filter(category, tags, year, featured, search)
    skip = (page - 1) * limit
    docs = items.find(match, sort=normalize_sort(sort), skip=skip, limit=limit)
    total = items.count(match)
    pages = math.ceil(total / limit) if limit else 0

    return {
        "portfolioItems": [PortfolioItem.model_validate(d).to_public() for d in docs],
        "pagination": {
            "current": page,
            "pages": pages,
            "total": total,
            "hasNext": page < pages,
            "hasPrev": page > 1,
        },
        "filters": {
            "categories": items.distinct("category", _is_published),
            "tags": items.distinct("tags", _is_published),
            "years": sorted(items.distinct("year", _is_published), reverse=True),
        },
    }


def get_featured(items: Collection, limit: int = 6) -> list[dict[str, Any]]:
    def _match(doc: dict[str, Any]) -> bool:
        return _is_published(doc) and bool(doc.get("featured"))

    docs = items.find(_match, sort="order,-created_at", limit=limit)
    return [PortfolioItem.model_validate(d).to_public(include_metrics=False) for d in docs]


def get_by_category(items: Collection, category: str, page: int = 1, limit: int = 12) -> list[dict[str, Any]]:
    match = _build_filter(category=category)
    docs = items.find(match, sort="-created_at", skip=(page - 1) * limit, limit=limit)
    return [PortfolioItem.model_validate(d).to_public(include_metrics=False) for d in docs]


def view_by_slug(items: Collection, slug: str, related_limit: int = 4) -> dict[str, Any]:
    """Fetch a published item, count the view, and attach related items from its category."""
    doc = items.find_one(lambda d: d.get("slug") == slug.lower() and _is_published(d))
    if doc is None:
        raise NotFoundError("Portfolio item not found")

    now = utc_now()

    def _count_view(d: dict[str, Any]) -> None:
        metrics = d.setdefault("metrics", {})
        metrics["views"] = metrics.get("views", 0) + 1
        d["last_viewed_at"] = now.isoformat()

    item = PortfolioItem.model_validate(items.update(doc["id"], _count_view))

    def _related(d: dict[str, Any]) -> bool:
        return _is_published(d) and d.get("category") == item.category.value and d.get("id") != item.id

    related = items.find(_related, sort="-created_at", limit=related_limit)
    return {
        "portfolioItem": item.to_public(),
        "related": [
            {
                "id": r["id"],
                "title": r.get("title"),
                "slug": r.get("slug"),
                "category": r.get("category"),
                "thumbnail": (r.get("media") or {}).get("thumbnail"),
                "year": r.get("year"),
            }
            for r in related
        ],
    }
