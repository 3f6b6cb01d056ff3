from typing import Iterable, Optional

import pytest
from fastapi.testclient import TestClient

from tableforge.core import dependencies
from tableforge.core.entities import (
    Field,
    FieldConfiguration,
    FieldType,
    Principal,
    Table,
    TablePermission,
    TableVisibility,
    User,
    UserStatus,
)
from tableforge.core.exceptions import unwrap
from tableforge.modules.fields.schemas import FieldCreate
from tableforge.modules.fields.service import FieldService
from tableforge.modules.tables.schemas import TableCreate
from tableforge.modules.tables.service import TableService
from tableforge.repositories.memory import (
    MemoryFieldRepository,
    MemoryMenuRepository,
    MemoryRowStore,
    MemoryTableRepository,
    MemoryUserRepository,
)

EVERYTHING = tuple(TablePermission)


class Workspace:
    """In-memory storage plus shortcuts for building tables, fields and users."""

    def __init__(self):
        self.fields = MemoryFieldRepository()
        self.tables = MemoryTableRepository(self.fields)
        self.users = MemoryUserRepository()
        self.menus = MemoryMenuRepository()
        self.rows = MemoryRowStore()
        self.principal: Optional[Principal] = None

    def table_service(self) -> TableService:
        return TableService(self.tables, self.fields, self.users, self.rows)

    def field_service(self) -> FieldService:
        return FieldService(self.tables, self.fields, self.rows)

    def user(
        self,
        user_id: str,
        status: UserStatus = UserStatus.ACTIVE,
        permissions: Optional[Iterable[TablePermission]] = EVERYTHING,
    ) -> User:
        group = None
        if permissions is not None:
            group = {
                "id": f"group-{user_id}",
                "name": "Registered",
                "slug": "registered",
                "permissions": [{"id": p.value, "name": p.value, "slug": p.value} for p in permissions],
            }
        return self.users.create({
            "id": user_id,
            "name": user_id.title(),
            "email": f"{user_id}@example.com",
            "status": status,
            "group": group,
        })

    def table(
        self,
        name: str,
        owner: str = "owner",
        visibility: TableVisibility = TableVisibility.RESTRICTED,
    ) -> Table:
        return unwrap(self.table_service().create_table(TableCreate(name=name, visibility=visibility), owner))

    def field(self, table_slug: str, name: str, type: FieldType = FieldType.TEXT_SHORT, **configuration) -> Field:
        data = FieldCreate(name=name, type=type, configuration=FieldConfiguration(**configuration))
        return unwrap(self.field_service().create_field(table_slug, data))

    def reload(self, slug: str) -> Table:
        return self.tables.find_by({"slug": slug})

    def login(self, user_id: Optional[str], role: str = "REGISTERED") -> None:
        self.principal = Principal(sub=user_id, role=role) if user_id else None


@pytest.fixture
def workspace():
    return Workspace()


@pytest.fixture
def client(workspace):
    from tableforge.main import app

    app.dependency_overrides.update({
        dependencies.get_field_repository: lambda: workspace.fields,
        dependencies.get_table_repository: lambda: workspace.tables,
        dependencies.get_user_repository: lambda: workspace.users,
        dependencies.get_menu_repository: lambda: workspace.menus,
        dependencies.get_row_store: lambda: workspace.rows,
        dependencies.get_optional_principal: lambda: workspace.principal,
    })
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
