"""
Supabase-backed repositories and row store.

Expected tables (see the ``models.py`` of each module for columns):
``tables``, ``fields``, ``menus``, ``user_profiles``, ``user_groups``,
``permissions``, ``group_permissions`` and the document table configured by
``settings.rows_table``.
"""

import json
import logging
from typing import Any, Dict, Optional

from supabase import Client

from tableforge.config.settings import settings
from tableforge.core.collection import Condition, Order, Query, RowStore
from tableforge.core.entities import Field, Menu, Permission, Table, User, UserGroup
from tableforge.core.utils import utcnow
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

logger = logging.getLogger(__name__)


def _apply_filters(query, filters: Dict[str, Any], exact: bool = True):
    filters = serialize(filters)
    if not filters:
        return query
    if not exact:
        clauses = []
        for key, value in filters.items():
            if isinstance(value, list):
                clauses.append(f"{key}.in.({','.join(str(v) for v in value)})")
            elif value is None:
                clauses.append(f"{key}.is.null")
            else:
                clauses.append(f"{key}.eq.{value}")
        return query.or_(",".join(clauses))
    for key, value in filters.items():
        if isinstance(value, list):
            query = query.in_(key, value)
        elif value is None:
            query = query.is_(key, "null")
        else:
            query = query.eq(key, value)
    return query


class SupabaseRepository(Repository[T]):
    table_name: str
    entity: Any
    search_column = "name"

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _to_entity(self, row: Dict[str, Any]) -> T:
        return self.entity(**row)

    def _to_row(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return serialize(payload)

    def _select(self, columns: str = "*", count: Optional[str] = None):
        if count:
            return self.supabase.table(self.table_name).select(columns, count=count)
        return self.supabase.table(self.table_name).select(columns)

    def find_by(self, query, exact=True):
        result = _apply_filters(self._select(), query, exact).limit(1).execute()
        if not result.data:
            return None
        return self._to_entity(result.data[0])

    def find_many(self, query=None, search=None, page=None, per_page=None):
        request = _apply_filters(self._select(), query or {})
        if search:
            request = request.ilike(self.search_column, f"%{search}%")
        request = request.order("created_at")
        if page and per_page:
            start = (page - 1) * per_page
            request = request.range(start, start + per_page - 1)
        result = request.execute()
        return [self._to_entity(row) for row in result.data or []]

    def create(self, payload):
        result = self.supabase.table(self.table_name).insert(self._to_row(payload)).execute()
        if not result.data:
            raise RuntimeError(f"Insert into {self.table_name} returned no data")
        return self._to_entity(result.data[0])

    def update(self, entity_id, payload):
        row = self._to_row(payload)
        row["updated_at"] = utcnow().isoformat()
        result = self.supabase.table(self.table_name)\
            .update(row)\
            .eq("id", entity_id)\
            .execute()
        if not result.data:
            raise LookupError(f"{self.table_name} {entity_id} not found")
        return self._to_entity(result.data[0])

    def delete(self, entity_id):
        self.supabase.table(self.table_name).delete().eq("id", entity_id).execute()

    def count(self, query=None, search=None):
        request = _apply_filters(self._select("id", count="exact"), query or {})
        if search:
            request = request.ilike(self.search_column, f"%{search}%")
        result = request.execute()
        return result.count or 0


class SupabaseFieldRepository(SupabaseRepository[Field], FieldRepository):
    table_name = "fields"
    entity = Field


class SupabaseTableRepository(SupabaseRepository[Table], TableRepository):
    table_name = "tables"
    entity = Table

    def __init__(self, supabase: Client, fields: FieldRepository):
        super().__init__(supabase)
        self.fields = fields

    def _to_row(self, payload):
        return table_row(payload)

    def _to_entity(self, row):
        return hydrate_table(row, self.fields)


class SupabaseMenuRepository(SupabaseRepository[Menu], MenuRepository):
    table_name = "menus"
    entity = Menu


class SupabaseUserRepository(SupabaseRepository[User], UserRepository):
    table_name = "user_profiles"
    entity = User

    def _group(self, group_id: Optional[str]) -> Optional[UserGroup]:
        if not group_id:
            return None
        group_result = self.supabase.table("user_groups")\
            .select("*")\
            .eq("id", group_id)\
            .execute()
        if not group_result.data:
            return None
        permissions_result = self.supabase.table("group_permissions")\
            .select("permission_id, permissions(*)")\
            .eq("group_id", group_id)\
            .execute()
        permissions = [
            Permission(**gp["permissions"])
            for gp in permissions_result.data or []
            if gp.get("permissions")
        ]
        return UserGroup(**group_result.data[0], permissions=permissions)

    def _to_entity(self, row):
        data = {k: v for k, v in row.items() if k != "group_id"}
        data["group"] = self._group(row.get("group_id"))
        return User(**data)

    def _to_row(self, payload):
        row = dict(payload)
        group = row.pop("group", None)
        if group is not None:
            row["group_id"] = group.id if isinstance(group, UserGroup) else group.get("id")
        return serialize(row)


def _json_path(path: str, as_text: bool = True) -> str:
    if path == "_id":
        return "id"
    arrow = "->>" if as_text else "->"
    return f"data{arrow}{path}"


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _or_clause(condition: Condition) -> str:
    column = _json_path(condition.path)
    if condition.op == "contains":
        return f"{column}.ilike.*{condition.value}*"
    if condition.op == "eq":
        return f"{column}.eq.{_literal(condition.value)}"
    raise ValueError(f"Unsupported OR operator: {condition.op}")


class SupabaseRowStore(RowStore):
    """
    Every collection lives in one table: ``collection`` names the dynamic
    collection, ``id`` mirrors the document ``_id`` and ``data`` holds the
    document itself as jsonb.
    """

    def __init__(self, supabase: Client, table_name: Optional[str] = None):
        self.supabase = supabase
        self.table_name = table_name or settings.rows_table

    def _base(self, collection: str, count: Optional[str] = None):
        table = self.supabase.table(self.table_name)
        select = table.select("id, data", count=count) if count else table.select("id, data")
        return select.eq("collection", collection)

    def _filter(self, request, query: Query):
        for condition in query.all:
            request = self._apply(request, condition)
        if query.any:
            request = request.or_(",".join(_or_clause(c) for c in query.any))
        return request

    def _apply(self, request, condition: Condition):
        column = _json_path(condition.path)
        if condition.op == "eq":
            return request.eq(column, _literal(condition.value))
        if condition.op == "contains":
            # Accent folding is not available through PostgREST; ilike covers case.
            return request.ilike(column, f"%{condition.value}%")
        if condition.op == "in":
            if condition.multiple:
                clauses = [f"{_json_path(condition.path, as_text=False)}.cs.{json.dumps([v])}" for v in condition.value]
                return request.or_(",".join(clauses))
            return request.in_(column, [_literal(v) for v in condition.value])
        if condition.op == "gte":
            return request.gte(column, condition.value)
        if condition.op == "lte":
            return request.lte(column, condition.value)
        raise ValueError(f"Unsupported operator: {condition.op}")

    def insert(self, collection, document):
        stored = serialize(document)
        result = self.supabase.table(self.table_name).insert({
            "id": stored["_id"],
            "collection": collection,
            "data": stored,
        }).execute()
        if not result.data:
            raise RuntimeError(f"Insert into {collection} returned no data")
        return result.data[0]["data"]

    def find_one(self, collection, query):
        result = self._filter(self._base(collection), query).limit(1).execute()
        return result.data[0]["data"] if result.data else None

    def find_many(self, collection, query, order: Optional[Order] = None, skip=0, limit=None):
        request = self._filter(self._base(collection), query)
        for path, direction in order or []:
            request = request.order(_json_path(path), desc=direction == "desc")
        request = request.order("data->>created_at")
        if limit:
            request = request.range(skip, skip + limit - 1)
        result = request.execute()
        return [row["data"] for row in result.data or []]

    def count(self, collection, query):
        result = self._filter(self._base(collection, count="exact"), query).execute()
        return result.count or 0

    def update(self, collection, row_id, changes, unset=()):
        current = self.find_one(collection, Query().where("_id", "eq", row_id))
        if current is None:
            return None
        current.update(serialize(changes))
        for key in unset:
            current.pop(key, None)
        result = self.supabase.table(self.table_name)\
            .update({"data": current})\
            .eq("collection", collection)\
            .eq("id", row_id)\
            .execute()
        if not result.data:
            return None
        return result.data[0]["data"]

    def drop(self, collection):
        logger.info(f"Dropping collection {collection}")
        self.supabase.table(self.table_name).delete().eq("collection", collection).execute()

