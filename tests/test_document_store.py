"""
tests/test_document_store.py — Unit tests for the JSON document store
"""
from __future__ import annotations

import json

import pytest

from agency_api.clients.document_store import Collection, DocumentStore, get_path, parse_sort
from agency_api.core.errors import DuplicateKeyError, NotFoundError
from agency_api.services import intake


def test_parse_sort():
    assert parse_sort("-created_at,title") == [("created_at", True), ("title", False)]
    assert parse_sort(None) == []


def test_get_path_dot_notation():
    doc = {"metrics": {"views": 3}}
    assert get_path(doc, "metrics.views") == 3
    assert get_path(doc, "metrics.likes", 0) == 0


def test_create_and_get_returns_copies():
    coll = Collection("things")
    coll.create({"id": "a", "tags": ["x"]})
    fetched = coll.get("a")
    fetched["tags"].append("y")
    assert coll.get("a")["tags"] == ["x"]


def test_unique_field_enforced():
    coll = Collection("portfolio", unique_fields=("slug",))
    coll.create({"id": "1", "slug": "acme"})
    with pytest.raises(DuplicateKeyError) as exc_info:
        coll.create({"id": "2", "slug": "acme"})
    assert exc_info.value.field == "slug"
    assert coll.count() == 1


def test_replace_may_keep_its_own_unique_value():
    coll = Collection("portfolio", unique_fields=("slug",))
    coll.create({"id": "1", "slug": "acme", "title": "Old"})
    coll.replace({"id": "1", "slug": "acme", "title": "New"})
    assert coll.get("1")["title"] == "New"


def test_update_missing_document_raises():
    coll = Collection("things")
    with pytest.raises(NotFoundError):
        coll.update("nope", lambda d: None)
    with pytest.raises(NotFoundError):
        coll.delete("nope")


def test_find_sorts_by_timestamp_not_string():
    coll = Collection("things")
    # The second timestamp has no fractional seconds; as strings it would sort wrong
    coll.create({"id": "a", "created_at": "2024-01-01T00:00:00.500000Z"})
    coll.create({"id": "b", "created_at": "2024-01-01T00:00:01Z"})
    docs = coll.find(sort="-created_at")
    assert [d["id"] for d in docs] == ["b", "a"]


def test_find_multi_key_sort_skip_limit():
    coll = Collection("things")
    for i, order in enumerate([2, 1, 1, 3]):
        coll.create({"id": f"d{i}", "order": order, "n": i})
    docs = coll.find(sort="order,-n")
    assert [d["id"] for d in docs] == ["d2", "d1", "d0", "d3"]
    assert [d["id"] for d in coll.find(sort="order,-n", skip=1, limit=2)] == ["d1", "d0"]


def test_distinct_flattens_lists():
    coll = Collection("things")
    coll.create({"id": "a", "tags": ["x", "y"], "live": True})
    coll.create({"id": "b", "tags": ["y", "z"], "live": False})
    assert coll.distinct("tags") == ["x", "y", "z"]
    assert coll.distinct("tags", lambda d: d["live"]) == ["x", "y"]


def test_persists_to_disk_and_reloads(tmp_path):
    store = DocumentStore(tmp_path)
    store.collection("contacts").create({"id": "a", "name": "Jane"})

    on_disk = json.loads((tmp_path / "contacts.json").read_text())
    assert on_disk["documents"][0]["name"] == "Jane"

    reloaded = DocumentStore(tmp_path).collection("contacts")
    assert reloaded.get("a")["name"] == "Jane"


def test_second_write_leaves_backup(tmp_path):
    coll = DocumentStore(tmp_path).collection("contacts")
    coll.create({"id": "a"})
    coll.create({"id": "b"})
    backup = json.loads((tmp_path / "contacts.json.backup").read_text())
    assert [d["id"] for d in backup["documents"]] == ["a"]
    assert not (tmp_path / "contacts.json.tmp").exists()


def test_corrupt_file_falls_back_to_backup(tmp_path):
    coll = DocumentStore(tmp_path).collection("contacts")
    coll.create({"id": "a"})
    coll.create({"id": "b"})
    (tmp_path / "contacts.json").write_text("{not json")

    restored = DocumentStore(tmp_path).collection("contacts")
    assert restored.get("a") is not None
    assert restored.get("b") is None


def test_in_memory_store_writes_nothing(tmp_path):
    store = DocumentStore(None)
    assert not store.persistent
    store.collection("contacts").create({"id": "a"})
    assert list(tmp_path.iterdir()) == []


@pytest.fixture
def unwritable_path(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    return blocker / "contacts.json"


def test_failed_create_leaves_nothing_behind(unwritable_path):
    coll = Collection("contacts", unwritable_path)
    with pytest.raises(OSError):
        coll.create({"id": "a"})
    assert coll.count() == 0
    assert coll.get("a") is None


def test_failed_writes_restore_previous_state(tmp_path):
    path = tmp_path / "data" / "contacts.json"
    coll = Collection("contacts", path)
    coll.create({"id": "a", "status": "unread"})
    coll.create({"id": "b", "status": "unread"})

    # Point the collection somewhere it cannot write
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    coll.path = blocker / "contacts.json"

    with pytest.raises(OSError):
        coll.update("a", lambda d: d.update(status="read"))
    with pytest.raises(OSError):
        coll.replace({"id": "a", "status": "archived"})
    with pytest.raises(OSError):
        coll.delete("b")

    assert coll.get("a")["status"] == "unread"
    assert coll.get("b") is not None
    assert coll.count() == 2


def test_failed_submission_is_not_kept(unwritable_path, inquiry_payload):
    contacts = Collection("contacts", unwritable_path)
    with pytest.raises(OSError):
        intake.submit(inquiry_payload, contacts, origin_address="10.0.0.1")
    assert contacts.count() == 0
