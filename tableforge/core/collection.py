"""
Dynamic collection access.

Every table owns one document collection, named from the table id. A
CollectionHandle reads and writes that collection through a RowStore and
interprets documents with the table's synthesized schema: payloads are
validated and coerced on the way in, reference columns are expanded on the
way out.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field as dc_field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from tableforge.core.entities import Field, FieldType, SchemaColumn, SchemaType, Table
from tableforge.core.schema import (
    BOOKKEEPING_KEYS,
    EVALUATION_MODEL,
    REACTION_MODEL,
    STORAGE_MODEL,
    USER_MODEL,
    collection_name,
    group_slug_of,
)
from tableforge.core.utils import utcnow

POPULATED_TYPES = (
    FieldType.RELATIONSHIP,
    FieldType.FILE,
    FieldType.REACTION,
    FieldType.EVALUATION,
    FieldType.FIELD_GROUP,
)

TEXT_TYPES = (FieldType.TEXT_SHORT, FieldType.TEXT_LONG)
CHOICE_TYPES = (FieldType.DROPDOWN, FieldType.CATEGORY, FieldType.RELATIONSHIP)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Condition:
    path: str
    op: str  # eq | in | contains | gte | lte
    value: Any
    multiple: bool = False


@dataclass
class Query:
    all: List[Condition] = dc_field(default_factory=list)
    any: List[Condition] = dc_field(default_factory=list)

    def where(self, path: str, op: str, value: Any, multiple: bool = False) -> "Query":
        self.all.append(Condition(path, op, value, multiple))
        return self


Order = List[Tuple[str, str]]


def _day_bound(raw: Any, end: bool) -> Optional[str]:
    try:
        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return None
    if end:
        parsed = parsed.replace(hour=23, minute=59, second=59, microsecond=999000)
    else:
        parsed = parsed.replace(hour=0, minute=0, second=0, microsecond=0)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.isoformat()


def build_query(params: Mapping[str, Any], fields: Sequence[Field]) -> Query:
    """
    Translate list filters into a Query.

    Text fields match by case- and accent-insensitive substring, choice and
    relationship fields by any of the comma separated values, dates by the
    ``<slug>-initial`` / ``<slug>-final`` day bounds. ``search`` is OR-ed
    across every text field. ``trashed`` selects the trash (default: live rows).
    """
    query = Query()
    trashed = str(params.get("trashed", "false")).lower() == "true"
    query.where("trashed", "eq", trashed)

    active = [f for f in fields if not f.trashed and f.type != FieldType.FIELD_GROUP]
    for f in active:
        raw = params.get(f.slug)
        if f.type in TEXT_TYPES and raw:
            query.where(f.slug, "contains", str(raw))
        elif f.type in CHOICE_TYPES and raw:
            values = [v for v in str(raw).split(",") if v]
            query.where(f.slug, "in", values, multiple=f.configuration.multiple)
        elif f.type == FieldType.DATE:
            initial = params.get(f"{f.slug}-initial")
            final = params.get(f"{f.slug}-final")
            if initial and _day_bound(initial, end=False):
                query.where(f.slug, "gte", _day_bound(initial, end=False))
            if final and _day_bound(final, end=True):
                query.where(f.slug, "lte", _day_bound(final, end=True))

    search = params.get("search")
    if search:
        query.any = [Condition(f.slug, "contains", str(search)) for f in active if f.type in TEXT_TYPES]
    return query


def build_order(params: Mapping[str, Any], fields: Sequence[Field]) -> Order:
    order: Order = []
    for f in fields:
        direction = params.get(f"order-{f.slug}")
        if direction and str(direction).lower() in ("asc", "desc"):
            order.append((f.slug, str(direction).lower()))
    return order


# ---------------------------------------------------------------------------
# Storage contract
# ---------------------------------------------------------------------------


class RowStore(ABC):
    """Document storage shared by every dynamic collection."""

    @abstractmethod
    def insert(self, collection: str, document: dict) -> dict: ...

    @abstractmethod
    def find_one(self, collection: str, query: Query) -> Optional[dict]: ...

    @abstractmethod
    def find_many(
        self,
        collection: str,
        query: Query,
        order: Optional[Order] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[dict]: ...

    @abstractmethod
    def count(self, collection: str, query: Query) -> int: ...

    @abstractmethod
    def update(self, collection: str, row_id: str, changes: dict, unset: Sequence[str] = ()) -> Optional[dict]: ...

    @abstractmethod
    def drop(self, collection: str) -> None: ...


# ---------------------------------------------------------------------------
# Population
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PopulateDirective:
    path: str
    model: str
    multiple: bool
    embedded: bool = False


def build_populate(fields: Sequence[Field]) -> List[PopulateDirective]:
    directives: List[PopulateDirective] = []
    for f in fields:
        if f.trashed or f.type not in POPULATED_TYPES:
            continue
        config = f.configuration
        if f.type == FieldType.RELATIONSHIP:
            if not config.relationship:
                continue
            directives.append(
                PopulateDirective(f.slug, collection_name(config.relationship.table.id), config.multiple)
            )
        elif f.type == FieldType.FILE:
            directives.append(PopulateDirective(f.slug, STORAGE_MODEL, config.multiple))
        elif f.type == FieldType.REACTION:
            directives.append(PopulateDirective(f.slug, REACTION_MODEL, True))
        elif f.type == FieldType.EVALUATION:
            directives.append(PopulateDirective(f.slug, EVALUATION_MODEL, True))
        elif f.type == FieldType.FIELD_GROUP:
            directives.append(
                PopulateDirective(f.slug, group_slug_of(f) or f.slug, True, embedded=True)
            )
    directives.append(PopulateDirective("creator", USER_MODEL, False))
    return directives


class PopulateResolver(Protocol):
    def resolve(self, model: str, ids: List[str]) -> Dict[str, dict]: ...


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class RowValidationError(ValueError):
    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def _coerce_reference(value: Any) -> str:
    if isinstance(value, Mapping):
        value = value.get("_id") or value.get("id")
    if value is None or isinstance(value, (list, dict)):
        raise ValueError("expected a reference id")
    return str(value)


def _coerce_date(value: Any) -> str:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValueError("expected an ISO 8601 date")
    # Naive values are taken as UTC so stored dates compare as strings
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.isoformat()


def _coerce_scalar(column: SchemaColumn, value: Any) -> Any:
    if column.type == SchemaType.STRING:
        if isinstance(value, (dict, list)):
            raise ValueError("expected a string")
        return str(value)
    if column.type == SchemaType.DATE:
        return _coerce_date(value)
    if column.type == SchemaType.OBJECT_ID:
        return _coerce_reference(value)
    if column.type == SchemaType.NUMBER:
        return float(value)
    if column.type == SchemaType.BOOLEAN:
        return bool(value)
    return value


def _coerce(column: SchemaColumn, value: Any) -> Any:
    if column.type == SchemaType.EMBEDDED:
        items = value if isinstance(value, list) else [value]
        documents = []
        for item in items:
            if not isinstance(item, Mapping):
                raise ValueError("expected a list of objects")
            item = {k: v for k, v in item.items() if k not in ("_id", "id")}
            documents.append(validate_document(column.embedded or {}, item))
        return documents
    if column.multiple:
        items = value if isinstance(value, list) else [value]
        return [_coerce_scalar(column, item) for item in items if not _is_empty(item)]
    if isinstance(value, list):
        raise ValueError("expected a single value")
    return _coerce_scalar(column, value)


def validate_document(
    schema: Mapping[str, SchemaColumn], payload: Mapping[str, Any], partial: bool = False
) -> dict:
    """
    Keep only the schema's field columns, coerce their values and enforce
    presence of required columns. With ``partial`` only supplied keys are
    checked.
    """
    errors: Dict[str, str] = {}
    document: Dict[str, Any] = {}
    for key, column in schema.items():
        if key in BOOKKEEPING_KEYS:
            continue
        supplied = key in payload
        value = payload.get(key)
        if _is_empty(value):
            if column.required and (supplied or not partial):
                errors[key] = "required"
            elif supplied:
                document[key] = [] if column.multiple else None
            continue
        try:
            document[key] = _coerce(column, value)
        except (TypeError, ValueError) as e:
            errors[key] = str(e.errors if isinstance(e, RowValidationError) else e)
    if errors:
        raise RowValidationError(errors)
    return document


# ---------------------------------------------------------------------------
# Handle
# ---------------------------------------------------------------------------


class CollectionHandle:
    def __init__(self, table: Table, store: RowStore, resolver: Optional[PopulateResolver] = None):
        self.table = table
        self.store = store
        self.resolver = resolver
        self.name = collection_name(table)

    @property
    def schema(self) -> Dict[str, SchemaColumn]:
        return self.table.synthesized_schema

    def _by_id(self, row_id: str) -> Query:
        return Query().where("_id", "eq", row_id)

    def create(self, payload: Mapping[str, Any], creator: Optional[str] = None) -> dict:
        document = validate_document(self.schema, payload)
        now = utcnow().isoformat()
        document.update({
            "_id": str(uuid.uuid4()),
            "creator": creator,
            "trashed": False,
            "trashed_at": None,
            "created_at": now,
            "updated_at": now,
        })
        return self.store.insert(self.name, document)

    def find_one(self, row_id: str, populate: Optional[Sequence[PopulateDirective]] = None) -> Optional[dict]:
        row = self.store.find_one(self.name, self._by_id(row_id))
        if row is None or not populate:
            return row
        return self.populate([row], populate)[0]

    def find_many(
        self,
        query: Optional[Query] = None,
        order: Optional[Order] = None,
        page: int = 1,
        per_page: Optional[int] = None,
        populate: Optional[Sequence[PopulateDirective]] = None,
    ) -> List[dict]:
        skip = (page - 1) * per_page if per_page else 0
        rows = self.store.find_many(self.name, query or Query(), order or [], skip, per_page)
        return self.populate(rows, populate) if populate else rows

    def count(self, query: Optional[Query] = None) -> int:
        return self.store.count(self.name, query or Query())

    def update(self, row_id: str, payload: Mapping[str, Any]) -> Optional[dict]:
        changes = validate_document(self.schema, payload, partial=True)
        changes["updated_at"] = utcnow().isoformat()
        return self.store.update(self.name, row_id, changes)

    def set_trashed(self, row_id: str, trashed: bool) -> Optional[dict]:
        now = utcnow().isoformat()
        return self.store.update(self.name, row_id, {
            "trashed": trashed,
            "trashed_at": now if trashed else None,
            "updated_at": now,
        })

    def rename_key(self, old: str, new: str) -> int:
        """Move stored values from ``old`` to ``new`` in every document; returns the count touched."""
        touched = 0
        for row in self.store.find_many(self.name, Query()):
            if old not in row:
                continue
            self.store.update(self.name, row["_id"], {new: row[old]}, unset=[old])
            touched += 1
        return touched

    def populate(self, rows: List[dict], directives: Sequence[PopulateDirective]) -> List[dict]:
        """Replace reference ids with the referenced documents; unresolved ids are kept as they are."""
        if self.resolver is None:
            return rows
        populated = [dict(row) for row in rows]
        for directive in directives:
            if directive.embedded:
                continue
            ids: List[str] = []
            for row in populated:
                value = row.get(directive.path)
                for ref in (value if isinstance(value, list) else [value]):
                    if isinstance(ref, str) and ref not in ids:
                        ids.append(ref)
            if not ids:
                continue
            found = self.resolver.resolve(directive.model, ids)
            for row in populated:
                value = row.get(directive.path)
                if isinstance(value, list):
                    row[directive.path] = [found.get(ref, ref) for ref in value]
                elif isinstance(value, str):
                    row[directive.path] = found.get(value, value)
        return populated


def bind(table: Table, store: RowStore, resolver: Optional[PopulateResolver] = None) -> CollectionHandle:
    return CollectionHandle(table, store, resolver)


class StoreResolver:
    """Resolve references from the row store; ``users`` come from the user repository."""

    def __init__(self, store: RowStore, users: Any = None):
        self.store = store
        self.users = users

    def resolve(self, model: str, ids: List[str]) -> Dict[str, dict]:
        if model == USER_MODEL:
            if self.users is None:
                return {}
            return {
                user.id: {"id": user.id, "name": user.name, "email": user.email}
                for user in self.users.find_many({"id": ids})
            }
        documents = self.store.find_many(model, Query().where("_id", "in", ids))
        return {d["_id"]: d for d in documents}
