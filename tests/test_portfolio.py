"""
tests/test_portfolio.py — Unit tests for portfolio service
"""
from __future__ import annotations

import pytest

from agency_api.core.errors import DuplicateKeyError, NotFoundError, ValidationFailedError
from agency_api.models import PortfolioStatus
from agency_api.services import portfolio


def _publish(items, payload, **overrides):
    item = portfolio.create_item(items, {**payload, **overrides})
    return portfolio.set_status(items, item.id, PortfolioStatus.PUBLISHED)


def test_slugify():
    assert portfolio.slugify("Brand Refresh: Acme Co.") == "brand-refresh-acme-co"
    assert portfolio.slugify("  --Hello   World--  ") == "hello-world"


def test_create_derives_slug_and_defaults_to_draft(items, portfolio_payload):
    item = portfolio.create_item(items, portfolio_payload)
    assert item.slug == "brand-refresh-acme-co"
    assert item.status == PortfolioStatus.DRAFT
    assert item.published_at is None
    assert item.tags == ["identity", "retail"]


def test_create_keeps_explicit_slug(items, portfolio_payload):
    item = portfolio.create_item(items, {**portfolio_payload, "slug": "Acme"})
    assert item.slug == "acme"


def test_create_requires_core_fields(items):
    with pytest.raises(ValidationFailedError) as exc_info:
        portfolio.create_item(items, {"title": "Only a title"})
    assert exc_info.value.fields == ["description", "category"]
    assert exc_info.value.messages == ["Missing required fields: description, category"]


def test_create_rejects_bad_year_and_category(items, portfolio_payload):
    with pytest.raises(ValidationFailedError) as exc_info:
        portfolio.create_item(items, {**portfolio_payload, "year": 1999, "category": "knitting"})
    assert set(exc_info.value.fields) == {"year", "category"}


def test_duplicate_slug_rejected(items, portfolio_payload):
    portfolio.create_item(items, portfolio_payload)
    with pytest.raises(DuplicateKeyError):
        portfolio.create_item(items, portfolio_payload)


def test_first_publish_stamps_published_at_once(items, portfolio_payload):
    item = _publish(items, portfolio_payload)
    first = item.published_at
    assert first is not None

    portfolio.set_status(items, item.id, PortfolioStatus.ARCHIVED)
    again = portfolio.set_status(items, item.id, PortfolioStatus.PUBLISHED)
    assert again.published_at == first


def test_update_title_regenerates_slug(items, portfolio_payload):
    item = portfolio.create_item(items, portfolio_payload)
    updated = portfolio.update_item(items, item.id, {"title": "Acme Rebrand 2024"})
    assert updated.slug == "acme-rebrand-2024"
    assert updated.created_at == item.created_at


def test_update_ignores_protected_fields(items, portfolio_payload):
    item = _publish(items, portfolio_payload)
    portfolio.view_by_slug(items, item.slug)
    updated = portfolio.update_item(
        items, item.id, {"id": "hijack", "metrics": {"views": 999}, "description": "New copy"}
    )
    assert updated.id == item.id
    assert updated.metrics.views == 1
    assert updated.description == "New copy"


def test_update_missing_item(items):
    with pytest.raises(NotFoundError):
        portfolio.update_item(items, "missing", {"title": "x"})


def test_delete(items, portfolio_payload):
    item = portfolio.create_item(items, portfolio_payload)
    portfolio.delete_item(items, item.id)
    assert items.count() == 0
    with pytest.raises(NotFoundError):
        portfolio.delete_item(items, item.id)


def test_list_only_shows_published(items, portfolio_payload):
    portfolio.create_item(items, {**portfolio_payload, "title": "Draft Work"})
    _publish(items, portfolio_payload)
    result = portfolio.list_published(items)
    assert [i["slug"] for i in result["portfolioItems"]] == ["brand-refresh-acme-co"]
    assert result["pagination"] == {
        "current": 1, "pages": 1, "total": 1, "hasNext": False, "hasPrev": False,
    }
    assert result["filters"]["categories"] == ["branding"]


def test_list_filters_and_search(items, portfolio_payload):
    _publish(items, portfolio_payload)
    _publish(
        items, portfolio_payload,
        title="Launch Film", category="video-production", year=2022, tags=["motion"], featured=True,
    )

    assert portfolio.list_published(items, category="Video-Production")["pagination"]["total"] == 1
    assert portfolio.list_published(items, tags=["RETAIL"])["pagination"]["total"] == 1
    assert portfolio.list_published(items, year=2022)["pagination"]["total"] == 1
    assert portfolio.list_published(items, featured=True)["pagination"]["total"] == 1
    assert portfolio.list_published(items, search="launch")["pagination"]["total"] == 1
    assert portfolio.list_published(items, search="motion")["pagination"]["total"] == 1
    assert portfolio.list_published(items)["filters"]["years"] == [2023, 2022]


def test_list_pagination(items, portfolio_payload):
    for i in range(5):
        _publish(items, portfolio_payload, title=f"Project {i}")
    result = portfolio.list_published(items, page=2, limit=2)
    assert len(result["portfolioItems"]) == 2
    assert result["pagination"]["pages"] == 3
    assert result["pagination"]["hasNext"]
    assert result["pagination"]["hasPrev"]


def test_normalize_sort_maps_wire_names():
    assert portfolio.normalize_sort(None) == "-created_at"
    assert portfolio.normalize_sort("-publishedAt,title") == "-published_at,title"
    assert portfolio.normalize_sort("-metrics.views") == "-metrics.views"


def test_featured_ordered_by_order(items, portfolio_payload):
    _publish(items, portfolio_payload, title="Second", featured=True, order=2)
    _publish(items, portfolio_payload, title="First", featured=True, order=1)
    _publish(items, portfolio_payload, title="Not Featured")
    featured = portfolio.get_featured(items)
    assert [f["title"] for f in featured] == ["First", "Second"]
    assert "metrics" not in featured[0]


def test_view_by_slug_counts_views_and_finds_related(items, portfolio_payload):
    main = _publish(items, portfolio_payload)
    _publish(items, portfolio_payload, title="Sibling")
    _publish(items, portfolio_payload, title="Elsewhere", category="photography")

    first = portfolio.view_by_slug(items, main.slug)
    second = portfolio.view_by_slug(items, main.slug.upper())
    assert first["portfolioItem"]["metrics"]["views"] == 1
    assert second["portfolioItem"]["metrics"]["views"] == 2
    assert second["portfolioItem"]["lastViewedAt"] is not None
    assert [r["title"] for r in second["related"]] == ["Sibling"]


def test_view_by_slug_hides_drafts(items, portfolio_payload):
    item = portfolio.create_item(items, portfolio_payload)
    with pytest.raises(NotFoundError):
        portfolio.view_by_slug(items, item.slug)
