"""
Repository contracts.

Every entity is reached through the same small interface: ``find_by``,
``find_many``, ``create``, ``update``, ``delete`` and ``count``. ``find_by``
matches all query keys when ``exact`` is true and any of them otherwise.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, TypeVar

from fastapi.encoders import jsonable_encoder

from tableforge.core.entities import Field, Menu, Table, User

T = TypeVar("T")

Query = Dict[str, Any]


def serialize(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Storage form of a payload: enums, models and datetimes become JSON values."""
    return jsonable_encoder(payload)


class Repository(ABC, Generic[T]):
    @abstractmethod
    def find_by(self, query: Query, exact: bool = True) -> Optional[T]:
        ...

    @abstractmethod
    def find_many(
        self,
        query: Optional[Query] = None,
        search: Optional[str] = None,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> List[T]:
        ...

    @abstractmethod
    def create(self, payload: Dict[str, Any]) -> T:
        ...

    @abstractmethod
    def update(self, entity_id: str, payload: Dict[str, Any]) -> T:
        ...

    @abstractmethod
    def delete(self, entity_id: str) -> None:
        ...

    @abstractmethod
    def count(self, query: Optional[Query] = None, search: Optional[str] = None) -> int:
        ...


class TableRepository(Repository[Table]):
    """Tables are stored with their field ids and hydrated with full Field entities."""


class FieldRepository(Repository[Field]):
    pass


class UserRepository(Repository[User]):
    """Users are returned with their group and the group's permissions populated."""


class MenuRepository(Repository[Menu]):
    pass


def table_row(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Replace embedded Field entities/dicts with their ids before storage."""
    row = dict(payload)
    if "fields" in row and row["fields"] is not None:
        row["fields"] = [f.id if isinstance(f, Field) else (f["id"] if isinstance(f, dict) else f) for f in row["fields"]]
    return serialize(row)


def hydrate_table(row: Dict[str, Any], fields: FieldRepository) -> Table:
    """Build a Table entity, loading its fields in stored order."""
    data = dict(row)
    ids = data.get("fields") or []
    by_id = {f.id: f for f in fields.find_many({"id": ids})} if ids else {}
    data["fields"] = [by_id[field_id] for field_id in ids if field_id in by_id]
    return Table(**data)
