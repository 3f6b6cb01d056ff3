from fastapi import APIRouter, Depends
from tableforge.core.access import AccessDecision
from tableforge.core.collection import RowStore
from tableforge.core.dependencies import (
    get_current_principal, get_field_repository, get_row_store, get_table_repository,
    get_user_repository, require_table_access
)
from tableforge.core.entities import Principal, TablePermission, TableType
from tableforge.core.exceptions import unwrap
from tableforge.modules.tables.schemas import TableCreate, TableListResponse, TableResponse, TableUpdate
from tableforge.modules.tables.service import TableService
from tableforge.repositories.base import FieldRepository, TableRepository, UserRepository
from typing import Optional

router = APIRouter(prefix="/tables", tags=["tables"])


def get_table_service(
    tables: TableRepository = Depends(get_table_repository),
    fields: FieldRepository = Depends(get_field_repository),
    users: UserRepository = Depends(get_user_repository),
    rows: RowStore = Depends(get_row_store)
) -> TableService:
    return TableService(tables, fields, users, rows)


@router.post("", response_model=TableResponse, status_code=201)
async def create_table(
    table_data: TableCreate,
    decision: AccessDecision = Depends(require_table_access(TablePermission.CREATE_TABLE)),
    service: TableService = Depends(get_table_service)
):
    """Create a new table owned by the current user (requires CREATE_TABLE)"""
    return unwrap(service.create_table(table_data, decision.user.id))


@router.get("", response_model=TableListResponse)
async def list_tables(
    search: Optional[str] = None,
    trashed: bool = False,
    owner: Optional[str] = None,
    type: TableType = TableType.TABLE,
    page: int = 1,
    per_page: Optional[int] = None,
    principal: Principal = Depends(get_current_principal),
    service: TableService = Depends(get_table_service)
):
    """List tables visible to the current user"""
    return unwrap(service.list_tables(
        principal, search=search, trashed=trashed, owner=owner, table_type=type, page=page, per_page=per_page
    ))


@router.get("/{slug}", response_model=TableResponse)
async def get_table(
    slug: str,
    decision: AccessDecision = Depends(require_table_access(TablePermission.VIEW_TABLE)),
    service: TableService = Depends(get_table_service)
):
    """Get table by slug"""
    return unwrap(service.get_table(slug))


@router.put("/{slug}", response_model=TableResponse)
async def update_table(
    slug: str,
    table_data: TableUpdate,
    decision: AccessDecision = Depends(require_table_access(TablePermission.UPDATE_TABLE)),
    service: TableService = Depends(get_table_service)
):
    """Update table (owner, table administrators or platform administrators)"""
    return unwrap(service.update_table(slug, table_data))


@router.patch("/{slug}/trash", response_model=TableResponse)
async def send_table_to_trash(
    slug: str,
    decision: AccessDecision = Depends(require_table_access(TablePermission.REMOVE_TABLE)),
    service: TableService = Depends(get_table_service)
):
    """Send table to trash"""
    return unwrap(service.send_to_trash(slug))


@router.patch("/{slug}/restore", response_model=TableResponse)
async def remove_table_from_trash(
    slug: str,
    decision: AccessDecision = Depends(require_table_access(TablePermission.UPDATE_TABLE, include_trashed=True)),
    service: TableService = Depends(get_table_service)
):
    """Remove table from trash"""
    return unwrap(service.remove_from_trash(slug))


@router.delete("/{slug}", status_code=200)
async def delete_table(
    slug: str,
    decision: AccessDecision = Depends(require_table_access(TablePermission.REMOVE_TABLE)),
    service: TableService = Depends(get_table_service)
):
    """Permanently delete table, its fields and its rows"""
    unwrap(service.delete_table(slug))
    return None
