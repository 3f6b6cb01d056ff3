from fastapi import APIRouter, Depends
from tableforge.core.access import AccessDecision
from tableforge.core.collection import RowStore
from tableforge.core.dependencies import (
    get_field_repository, get_row_store, get_table_repository, require_table_access
)
from tableforge.core.entities import TablePermission
from tableforge.core.exceptions import unwrap
from tableforge.modules.fields.schemas import (
    CategoryCreate, CategoryResponse, FieldCreate, FieldResponse, FieldUpdate
)
from tableforge.modules.fields.service import FieldService
from tableforge.repositories.base import FieldRepository, TableRepository

router = APIRouter(prefix="/tables/{slug}/fields", tags=["fields"])


def get_field_service(
    tables: TableRepository = Depends(get_table_repository),
    fields: FieldRepository = Depends(get_field_repository),
    rows: RowStore = Depends(get_row_store)
) -> FieldService:
    return FieldService(tables, fields, rows)


@router.post("", response_model=FieldResponse, status_code=201)
async def create_field(
    slug: str,
    field_data: FieldCreate,
    decision: AccessDecision = Depends(require_table_access(TablePermission.CREATE_FIELD)),
    service: FieldService = Depends(get_field_service)
):
    """Add a field to the table"""
    return unwrap(service.create_field(slug, field_data))


@router.get("/{_id}", response_model=FieldResponse)
async def get_field(
    slug: str,
    _id: str,
    decision: AccessDecision = Depends(require_table_access(TablePermission.VIEW_FIELD)),
    service: FieldService = Depends(get_field_service)
):
    """Get field by ID"""
    return unwrap(service.get_field(slug, _id))


@router.put("/{_id}", response_model=FieldResponse)
async def update_field(
    slug: str,
    _id: str,
    field_data: FieldUpdate,
    decision: AccessDecision = Depends(require_table_access(TablePermission.UPDATE_FIELD)),
    service: FieldService = Depends(get_field_service)
):
    """Rename or reconfigure a field"""
    return unwrap(service.update_field(slug, _id, field_data))


@router.post("/{_id}/category", response_model=CategoryResponse)
async def add_category_option(
    slug: str,
    _id: str,
    category: CategoryCreate,
    decision: AccessDecision = Depends(require_table_access(TablePermission.UPDATE_FIELD)),
    service: FieldService = Depends(get_field_service)
):
    """Add a category option at the root or under an existing option"""
    return unwrap(service.add_category(slug, _id, category.label, category.parent_id))


@router.patch("/{_id}/trash", response_model=FieldResponse)
async def send_field_to_trash(
    slug: str,
    _id: str,
    decision: AccessDecision = Depends(require_table_access(TablePermission.REMOVE_FIELD)),
    service: FieldService = Depends(get_field_service)
):
    """Send field to trash"""
    return unwrap(service.send_to_trash(slug, _id))


@router.patch("/{_id}/restore", response_model=FieldResponse)
async def remove_field_from_trash(
    slug: str,
    _id: str,
    decision: AccessDecision = Depends(require_table_access(TablePermission.UPDATE_FIELD)),
    service: FieldService = Depends(get_field_service)
):
    """Remove field from trash"""
    return unwrap(service.remove_from_trash(slug, _id))
