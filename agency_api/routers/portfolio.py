"""
agency_api/routers/portfolio.py — Portfolio gallery endpoints
Public reads (published items only) are throttled by slowapi.
Mutations are admin routes.
"""
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request, status

from agency_api.clients.document_store import Collection, DocumentStore
from agency_api.config import get_settings
from agency_api.core.auth import verify_admin_key
from agency_api.core.errors import ValidationFailedError
from agency_api.core.rate_limiter import RATE_LIMITS, limiter
from agency_api.models import PortfolioStatusUpdate
from agency_api.services import portfolio as portfolio_service
from agency_api.utils.validators import parse_int

router = APIRouter()


def get_items(request: Request) -> Collection:
    store: DocumentStore = request.app.state.store
    return portfolio_service.get_collection(store)


def _parse_bool(value: Optional[str]) -> Optional[bool]:
    if value is None or value == "":
        return None
    return value.strip().lower() in ("true", "1", "yes")


def _parse_tags(value: Optional[str]) -> Optional[list[str]]:
    if not value:
        return None
    tags = [t.strip() for t in value.split(",") if t.strip()]
    return tags or None


def _require_object(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationFailedError(["body"], ["Request body must be a JSON object"])
    return payload


# ──────────────────────────────────────────────────────────────────────────────
# Public reads
# ──────────────────────────────────────────────────────────────────────────────

@router.get("")
@limiter.limit(RATE_LIMITS["portfolio"])
async def list_portfolio(
    request: Request,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    category: Optional[str] = None,
    tag: Optional[str] = None,
    year: Optional[str] = None,
    featured: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    items: Collection = Depends(get_items),
) -> dict[str, Any]:
    """
    Published items with filters, sort and pagination.
    Bad page/limit/year values fall back to defaults instead of erroring.
    """
    result = portfolio_service.list_published(
        items,
        page=parse_int(page, 1, minimum=1),
        limit=parse_int(limit, get_settings().portfolio_page_size, minimum=1),
        category=category,
        tags=_parse_tags(tag),
        year=parse_int(year, 0) or None,
        featured=_parse_bool(featured),
        search=search.strip() if search else None,
        sort=sort,
    )
    return {"success": True, "data": result}


@router.get("/featured")
@limiter.limit(RATE_LIMITS["portfolio"])
async def featured_portfolio(
    request: Request,
    limit: Optional[str] = None,
    items: Collection = Depends(get_items),
) -> dict[str, Any]:
    data = portfolio_service.get_featured(
        items, limit=parse_int(limit, get_settings().featured_limit, minimum=1)
    )
    return {"success": True, "data": data}


@router.get("/categories/{category}")
@limiter.limit(RATE_LIMITS["portfolio"])
async def portfolio_by_category(
    request: Request,
    category: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    items: Collection = Depends(get_items),
) -> dict[str, Any]:
    data = portfolio_service.get_by_category(
        items,
        category,
        page=parse_int(page, 1, minimum=1),
        limit=parse_int(limit, get_settings().portfolio_page_size, minimum=1),
    )
    return {"success": True, "data": data}


@router.get("/{slug}")
@limiter.limit(RATE_LIMITS["portfolio"])
async def portfolio_item(
    request: Request,
    slug: str,
    items: Collection = Depends(get_items),
) -> dict[str, Any]:
    """Single published item. Counts as a view."""
    data = portfolio_service.view_by_slug(
        items, slug, related_limit=get_settings().related_items_limit
    )
    return {"success": True, "data": data}


# ──────────────────────────────────────────────────────────────────────────────
# Admin writes
# ──────────────────────────────────────────────────────────────────────────────

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_portfolio_item(
    payload: Any = Body(...),
    _auth: bool = Depends(verify_admin_key),
    items: Collection = Depends(get_items),
) -> dict[str, Any]:
    item = portfolio_service.create_item(items, _require_object(payload))
    return {
        "success": True,
        "message": "Portfolio item created successfully",
        "data": item.to_public(),
    }


@router.put("/{item_id}")
async def update_portfolio_item(
    item_id: str,
    payload: Any = Body(...),
    _auth: bool = Depends(verify_admin_key),
    items: Collection = Depends(get_items),
) -> dict[str, Any]:
    item = portfolio_service.update_item(items, item_id, _require_object(payload))
    return {
        "success": True,
        "message": "Portfolio item updated successfully",
        "data": item.to_public(),
    }


@router.delete("/{item_id}")
async def delete_portfolio_item(
    item_id: str,
    _auth: bool = Depends(verify_admin_key),
    items: Collection = Depends(get_items),
) -> dict[str, Any]:
    portfolio_service.delete_item(items, item_id)
    return {"success": True, "message": "Portfolio item deleted successfully"}


@router.patch("/{item_id}/status")
async def update_portfolio_status(
    item_id: str,
    body: PortfolioStatusUpdate,
    _auth: bool = Depends(verify_admin_key),
    items: Collection = Depends(get_items),
) -> dict[str, Any]:
    item = portfolio_service.set_status(items, item_id, body.status)
    return {
        "success": True,
        "message": f"Portfolio item {item.status.value} successfully",
        "data": item.to_public(),
    }
