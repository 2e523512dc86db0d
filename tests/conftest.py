"""
tests/conftest.py — Shared pytest fixtures
"""
from __future__ import annotations

import os

# Settings are read once at import; keep tests in memory and unauthenticated.
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATA_DIR", "")
os.environ.pop("ADMIN_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from agency_api.clients.document_store import Collection, DocumentStore
from agency_api.core.rate_limiter import AdmissionGate, limiter
from agency_api.services import contacts as contacts_service
from agency_api.services import portfolio as portfolio_service


@pytest.fixture
def store() -> DocumentStore:
    return DocumentStore(None)


@pytest.fixture
def contacts(store) -> Collection:
    return contacts_service.get_collection(store)


@pytest.fixture
def items(store) -> Collection:
    return portfolio_service.get_collection(store)


@pytest.fixture
def gate() -> AdmissionGate:
    return AdmissionGate(window_ms=900_000, max_requests=5, max_identities=100)


@pytest.fixture
def inquiry_payload() -> dict:
    return {
        "formType": "contact",
        "name": "Jane Doe",
        "email": "Jane@Example.com",
        "subject": "New website",
        "message": "We would like a quote for a redesign of our company site.",
        "phone": "555-0100",
    }


@pytest.fixture
def business_payload() -> dict:
    return {
        "formType": "business-details",
        "companyName": "Acme Studio",
        "industry": "Retail",
        "services": "Branding and packaging design",
        "businessEmail": "hello@acme.example",
    }


@pytest.fixture
def portfolio_payload() -> dict:
    return {
        "title": "Brand Refresh: Acme Co.",
        "description": "A full identity refresh for a regional retailer.",
        "category": "branding",
        "year": 2023,
        "media": {"thumbnail": "https://cdn.example.com/acme.jpg"},
        "tags": ["Identity", "Retail"],
    }


@pytest.fixture
def client(store) -> TestClient:
    """App client with a fresh store and admission gate per test."""
    from agency_api.main import app

    app.state.store = store
    app.state.admission_gate = AdmissionGate(window_ms=900_000, max_requests=5, max_identities=100)
    limiter.reset()
    return TestClient(app)
