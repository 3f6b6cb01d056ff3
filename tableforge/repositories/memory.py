"""
In-memory repositories and row store.

Used by the test-suite and for local experiments; rows are kept as their
serialized storage form so behaviour matches the Supabase adapters.
"""

import copy
import uuid
from typing import Any, Callable, Dict, List, Optional

from tableforge.core.collection import Condition, Order, Query, RowStore
from tableforge.core.entities import Field, Menu, Table, User
from tableforge.core.utils import fold, utcnow
from tableforge.repositories.base import (
    FieldRepository,
    MenuRepository,
    Repository,
    T,
    TableRepository,
    UserRepository,
    hydrate_table,
    serialize,
    table_row,
)


def _matches(row: Dict[str, Any], key: str, expected: Any) -> bool:
    value = row.get(key)
    if isinstance(expected, list):
        return value in expected
    return value == expected


class MemoryRepository(Repository[T]):
    entity: Callable[..., T]
    search_column = "name"

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}

    def _to_entity(self, row: Dict[str, Any]) -> T:
        return self.entity(**copy.deepcopy(row))

    def _to_row(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return serialize(payload)

    def _select(self, query: Optional[Dict[str, Any]], exact: bool = True, search: Optional[str] = None):
        wanted = serialize(query or {})
        selected = []
        for row in self.rows.values():
            checks = [_matches(row, k, v) for k, v in wanted.items()]
            if checks and not (all(checks) if exact else any(checks)):
                continue
            if search and fold(search) not in fold(row.get(self.search_column) or ""):
                continue
            selected.append(row)
        return selected

    def find_by(self, query, exact=True):
        rows = self._select(query, exact)
        return self._to_entity(rows[0]) if rows else None

    def find_many(self, query=None, search=None, page=None, per_page=None):
        rows = sorted(self._select(query, search=search), key=lambda r: r.get("created_at") or "")
        if page and per_page:
            rows = rows[(page - 1) * per_page: page * per_page]
        return [self._to_entity(row) for row in rows]

    def create(self, payload):
        row = self._to_row(payload)
        now = utcnow().isoformat()
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", now)
        row.setdefault("updated_at", now)
        self.rows[row["id"]] = row
        return self._to_entity(row)

    def update(self, entity_id, payload):
        if entity_id not in self.rows:
            raise LookupError(f"{entity_id} not found")
        row = self.rows[entity_id]
        row.update(self._to_row(payload))
        row["updated_at"] = utcnow().isoformat()
        return self._to_entity(row)

    def delete(self, entity_id):
        self.rows.pop(entity_id, None)

    def count(self, query=None, search=None):
        return len(self._select(query, search=search))


class MemoryFieldRepository(MemoryRepository[Field], FieldRepository):
    entity = Field


class MemoryTableRepository(MemoryRepository[Table], TableRepository):
    entity = Table

    def __init__(self, fields: FieldRepository):
        super().__init__()
        self.fields = fields

    def _to_row(self, payload):
        return table_row(payload)

    def _to_entity(self, row):
        return hydrate_table(copy.deepcopy(row), self.fields)


class MemoryUserRepository(MemoryRepository[User], UserRepository):
    """Users carry their group inline; there is no separate group store in memory."""

    entity = User


class MemoryMenuRepository(MemoryRepository[Menu], MenuRepository):
    entity = Menu


def _check(document: Dict[str, Any], condition: Condition) -> bool:
    value = document.get(condition.path)
    values = value if isinstance(value, list) else [value]
    if condition.op == "eq":
        return value == condition.value
    if condition.op == "in":
        return any(v in condition.value for v in values)
    if condition.op == "contains":
        needle = fold(condition.value)
        return any(v is not None and needle in fold(v) for v in values)
    if condition.op == "gte":
        return value is not None and str(value) >= str(condition.value)
    if condition.op == "lte":
        return value is not None and str(value) <= str(condition.value)
    raise ValueError(f"Unsupported operator: {condition.op}")


def _satisfies(document: Dict[str, Any], query: Query) -> bool:
    if not all(_check(document, c) for c in query.all):
        return False
    return not query.any or any(_check(document, c) for c in query.any)


class MemoryRowStore(RowStore):
    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def _documents(self, collection: str, query: Query) -> List[Dict[str, Any]]:
        documents = self.collections.get(collection, {}).values()
        return [d for d in documents if _satisfies(d, query)]

    def insert(self, collection, document):
        stored = serialize(document)
        self.collections.setdefault(collection, {})[stored["_id"]] = stored
        return copy.deepcopy(stored)

    def find_one(self, collection, query):
        found = self._documents(collection, query)
        return copy.deepcopy(found[0]) if found else None

    def find_many(self, collection, query, order: Optional[Order] = None, skip=0, limit=None):
        found = sorted(self._documents(collection, query), key=lambda d: d.get("created_at") or "")
        for path, direction in reversed(order or []):
            found.sort(key=lambda d: (d.get(path) is None, str(d.get(path) or "")), reverse=direction == "desc")
        end = skip + limit if limit else None
        return [copy.deepcopy(d) for d in found[skip:end]]

    def count(self, collection, query):
        return len(self._documents(collection, query))

    def update(self, collection, row_id, changes, unset=()):
        document = self.collections.get(collection, {}).get(row_id)
        if document is None:
            return None
        document.update(serialize(changes))
        for key in unset:
            document.pop(key, None)
        return copy.deepcopy(document)

    def drop(self, collection):
        self.collections.pop(collection, None)
