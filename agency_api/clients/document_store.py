"""
agency_api/clients/document_store.py — JSON document store
Named collections of dict documents keyed by "id".
Write safety protocol per collection file:
  1. Serialize to {name}.json.tmp
  2. Copy the current {name}.json to {name}.json.backup
  3. Atomically replace {name}.json with the tmp file
Read falls back to .backup if the main file is corrupt.
With data_dir=None everything stays in memory (tests, ephemeral hosts).
"""
from __future__ import annotations

import copy
import json
import os
import shutil
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from loguru import logger

from agency_api.core import logging as app_logging
from agency_api.core.errors import DuplicateKeyError, NotFoundError

Document = dict[str, Any]
Predicate = Callable[[Document], bool]

_MISSING = object()


def get_path(doc: Document, path: str, default: Any = None) -> Any:
    """Dot-notation lookup: get_path(doc, "metrics.views")."""
    val: Any = doc
    for key in path.split("."):
        if isinstance(val, dict) and key in val:
            val = val[key]
        else:
            return default
    return val


def _sort_key(value: Any) -> tuple:
    # None sorts first ascending, mixed types never compare directly
    if value is None:
        return (0, "")
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str) and _looks_like_timestamp(value):
        try:
            return (1, datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp())
        except ValueError:
            pass
    return (2, str(value))


def _looks_like_timestamp(value: str) -> bool:
    # Stored datetimes are ISO-8601; compare them as instants, not strings
    return len(value) >= 19 and value[4] == "-" and value[10] == "T"


def parse_sort(expr: Optional[str]) -> list[tuple[str, bool]]:
    """
    Parse "-created_at,title" into [("created_at", True), ("title", False)].
    A leading "-" means descending.
    """
    if not expr:
        return []
    fields: list[tuple[str, bool]] = []
    for part in expr.split(","):
        part = part.strip()
        if not part:
            continue
        if part.startswith("-"):
            fields.append((part[1:], True))
        else:
            fields.append((part.lstrip("+"), False))
    return fields


class Collection:
    """One named collection. All public methods return deep copies."""

    def __init__(
        self,
        name: str,
        path: Optional[Path] = None,
        unique_fields: Iterable[str] = (),
    ) -> None:
        self.name = name
        self.path = path
        self.unique_fields = tuple(unique_fields)
        self._docs: dict[str, Document] = {}
        self._lock = threading.RLock()
        if self.path is not None:
            self._load()

    # ── Persistence ──────────────────────────────────────────────────────────

    def _load(self) -> None:
        assert self.path is not None
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            self._docs = {d["id"]: d for d in data.get("documents", [])}
            app_logging.log_store_operation(self.name, "load", True, len(self._docs))
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            logger.warning(f"{self.path.name} is corrupt ({exc}). Trying .backup.")
            app_logging.log_store_operation(self.name, "load", False, error=str(exc))
            self._docs = self._load_backup()

    def _load_backup(self) -> dict[str, Document]:
        assert self.path is not None
        backup = self.path.with_name(self.path.name + ".backup")
        if not backup.exists():
            logger.error(f"No backup for {self.path.name}; starting {self.name} empty.")
            return {}
        try:
            data = json.loads(backup.read_text(encoding="utf-8"))
            docs = {d["id"]: d for d in data.get("documents", [])}
            app_logging.log_store_operation(self.name, "backup_restore", True, len(docs))
            return docs
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            app_logging.log_store_operation(self.name, "backup_restore", False, error=str(exc))
            return {}

    def _flush(self) -> None:
        # Caller holds self._lock
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"collection": self.name, "documents": list(self._docs.values())}
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(payload, default=str, indent=2), encoding="utf-8")
        if self.path.exists():
            shutil.copyfile(self.path, self.path.with_name(self.path.name + ".backup"))
        os.replace(tmp_path, self.path)
        app_logging.log_store_operation(self.name, "flush", True, len(self._docs))

    def _commit(self, doc_id: str, previous: Optional[Document]) -> None:
        # Caller holds self._lock and has already applied the change to _docs.
        # A failed flush puts back `previous` (None: the id did not exist).
        try:
            self._flush()
        except OSError as exc:
            if previous is None:
                self._docs.pop(doc_id, None)
            else:
                self._docs[doc_id] = previous
            app_logging.log_store_operation(self.name, "flush", False, len(self._docs), error=str(exc))
            raise

    # ── Unique constraint ────────────────────────────────────────────────────

    def _check_unique(self, doc: Document, exclude_id: Optional[str] = None) -> None:
        for field in self.unique_fields:
            value = get_path(doc, field, _MISSING)
            if value is _MISSING or value is None:
                continue
            for other_id, other in self._docs.items():
                if other_id != exclude_id and get_path(other, field, _MISSING) == value:
                    raise DuplicateKeyError(self.name, field, value)

    # ── CRUD ─────────────────────────────────────────────────────────────────

    def create(self, doc: Document) -> str:
        """Insert a document. Returns its id. Raises DuplicateKeyError on a unique clash."""
        doc_id = doc.get("id")
        if not doc_id:
            raise ValueError(f"{self.name}: document has no id")
        with self._lock:
            if doc_id in self._docs:
                raise DuplicateKeyError(self.name, "id", doc_id)
            self._check_unique(doc)
            self._docs[doc_id] = copy.deepcopy(doc)
            self._commit(doc_id, None)
        return doc_id

    def get(self, doc_id: str) -> Optional[Document]:
        with self._lock:
            doc = self._docs.get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def find_one(self, predicate: Predicate) -> Optional[Document]:
        with self._lock:
            for doc in self._docs.values():
                if predicate(doc):
                    return copy.deepcopy(doc)
        return None

    def replace(self, doc: Document) -> Document:
        """Replace a whole document by id. Raises NotFoundError / DuplicateKeyError."""
        doc_id = doc.get("id")
        with self._lock:
            if doc_id not in self._docs:
                raise NotFoundError(f"{self.name}: {doc_id} not found")
            self._check_unique(doc, exclude_id=doc_id)
            previous = self._docs[doc_id]
            self._docs[doc_id] = copy.deepcopy(doc)
            self._commit(doc_id, previous)
        return copy.deepcopy(doc)

    def update(self, doc_id: str, mutate: Callable[[Document], None]) -> Document:
        """
        Apply `mutate` to a copy of the document under the collection lock and
        store the result. Read-modify-write is atomic with respect to other writers.
        """
        with self._lock:
            current = self._docs.get(doc_id)
            if current is None:
                raise NotFoundError(f"{self.name}: {doc_id} not found")
            updated = copy.deepcopy(current)
            mutate(updated)
            updated["id"] = doc_id
            self._check_unique(updated, exclude_id=doc_id)
            self._docs[doc_id] = updated
            self._commit(doc_id, current)
            return copy.deepcopy(updated)

    def delete(self, doc_id: str) -> Document:
        with self._lock:
            doc = self._docs.pop(doc_id, None)
            if doc is None:
                raise NotFoundError(f"{self.name}: {doc_id} not found")
            self._commit(doc_id, doc)
            return doc

    # ── Queries ──────────────────────────────────────────────────────────────

    def find(
        self,
        predicate: Optional[Predicate] = None,
        sort: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[Document]:
        with self._lock:
            docs = [
                copy.deepcopy(d) for d in self._docs.values()
                if predicate is None or predicate(d)
            ]
        # Stable multi-key sort: apply keys from last to first
        for field, descending in reversed(parse_sort(sort)):
            docs.sort(key=lambda d, f=field: _sort_key(get_path(d, f)), reverse=descending)
        if skip:
            docs = docs[skip:]
        if limit is not None:
            docs = docs[:limit]
        return docs

    def count(self, predicate: Optional[Predicate] = None) -> int:
        with self._lock:
            return sum(1 for d in self._docs.values() if predicate is None or predicate(d))

    def distinct(self, field: str, predicate: Optional[Predicate] = None) -> list[Any]:
        """Distinct values of `field`; list-valued fields contribute each element."""
        seen: list[Any] = []
        with self._lock:
            for doc in self._docs.values():
                if predicate is not None and not predicate(doc):
                    continue
                value = get_path(doc, field)
                values = value if isinstance(value, list) else [value]
                for v in values:
                    if v is not None and v not in seen:
                        seen.append(v)
        return seen

class DocumentStore:
    """Registry of collections sharing one data directory."""

    def __init__(self, data_dir: Optional[str | Path] = None) -> None:
        self.data_dir = Path(data_dir) if data_dir else None
        self._collections: dict[str, Collection] = {}
        self._lock = threading.Lock()

    def collection(self, name: str, unique_fields: Iterable[str] = ()) -> Collection:
        with self._lock:
            coll = self._collections.get(name)
            if coll is None:
                path = self.data_dir / f"{name}.json" if self.data_dir else None
                coll = Collection(name, path, unique_fields)
                self._collections[name] = coll
            return coll

    @property
    def persistent(self) -> bool:
        return self.data_dir is not None
