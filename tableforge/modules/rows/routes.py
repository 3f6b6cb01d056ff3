from fastapi import APIRouter, Body, Depends, Request
from tableforge.core.access import AccessDecision
from tableforge.core.collection import RowStore
from tableforge.core.dependencies import (
    get_row_store, get_table_repository, get_user_repository, require_table_access
)
from tableforge.core.entities import TablePermission
from tableforge.core.exceptions import unwrap
from tableforge.modules.rows.schemas import RowEvaluation, RowListResponse, RowReaction
from tableforge.modules.rows.service import RowService
from tableforge.repositories.base import TableRepository, UserRepository
from typing import Any, Dict

router = APIRouter(prefix="/tables/{slug}/rows", tags=["rows"])


def get_row_service(
    tables: TableRepository = Depends(get_table_repository),
    rows: RowStore = Depends(get_row_store),
    users: UserRepository = Depends(get_user_repository)
) -> RowService:
    return RowService(tables, rows, users)


@router.post("", status_code=201)
async def create_row(
    slug: str,
    payload: Dict[str, Any] = Body(...),
    decision: AccessDecision = Depends(require_table_access(TablePermission.CREATE_ROW)),
    service: RowService = Depends(get_row_service)
):
    """Add a row; anonymous submissions are accepted on FORM tables"""
    creator = decision.user.id if decision.user else None
    return unwrap(service.create_row(slug, payload, creator))


@router.get("", response_model=RowListResponse)
async def list_rows(
    slug: str,
    request: Request,
    decision: AccessDecision = Depends(require_table_access(TablePermission.VIEW_ROW)),
    service: RowService = Depends(get_row_service)
):
    """List rows; query params filter by field slug, `search`, `trashed`, `order-<slug>`, `page`, `per_page`"""
    return unwrap(service.list_rows(slug, dict(request.query_params)))


@router.get("/{_id}")
async def get_row(
    slug: str,
    _id: str,
    decision: AccessDecision = Depends(require_table_access(TablePermission.VIEW_ROW)),
    service: RowService = Depends(get_row_service)
):
    """Get row by ID"""
    return unwrap(service.get_row(slug, _id))


@router.put("/{_id}")
async def update_row(
    slug: str,
    _id: str,
    payload: Dict[str, Any] = Body(...),
    decision: AccessDecision = Depends(require_table_access(TablePermission.UPDATE_ROW)),
    service: RowService = Depends(get_row_service)
):
    """Update the supplied columns of a row"""
    return unwrap(service.update_row(slug, _id, payload))


@router.patch("/{_id}/trash")
async def send_row_to_trash(
    slug: str,
    _id: str,
    decision: AccessDecision = Depends(require_table_access(TablePermission.REMOVE_ROW)),
    service: RowService = Depends(get_row_service)
):
    """Send row to trash"""
    return unwrap(service.set_trashed(slug, _id, True))


@router.patch("/{_id}/restore")
async def remove_row_from_trash(
    slug: str,
    _id: str,
    decision: AccessDecision = Depends(require_table_access(TablePermission.UPDATE_ROW)),
    service: RowService = Depends(get_row_service)
):
    """Remove row from trash"""
    return unwrap(service.set_trashed(slug, _id, False))


@router.post("/{_id}/reaction")
async def react_to_row(
    slug: str,
    _id: str,
    reaction: RowReaction,
    decision: AccessDecision = Depends(require_table_access(TablePermission.VIEW_ROW)),
    service: RowService = Depends(get_row_service)
):
    """Like or unlike a row through one of its REACTION fields"""
    user_id = decision.user.id if decision.user else None
    return unwrap(service.react(slug, _id, reaction, user_id))


@router.post("/{_id}/evaluation")
async def evaluate_row(
    slug: str,
    _id: str,
    evaluation: RowEvaluation,
    decision: AccessDecision = Depends(require_table_access(TablePermission.VIEW_ROW)),
    service: RowService = Depends(get_row_service)
):
    """Rate a row through one of its EVALUATION fields"""
    user_id = decision.user.id if decision.user else None
    return unwrap(service.evaluate(slug, _id, evaluation, user_id))
