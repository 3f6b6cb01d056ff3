from fastapi import APIRouter, Depends
from tableforge.modules.auth.schemas import GroupSummary, MeResponse
from tableforge.core.dependencies import get_current_principal, get_user_repository
from tableforge.core.entities import Principal, Role, TablePermission
from tableforge.core.exceptions import ApplicationError
from tableforge.repositories.base import UserRepository

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=MeResponse)
async def get_me(
    principal: Principal = Depends(get_current_principal),
    users: UserRepository = Depends(get_user_repository)
):
    """Get current authenticated user and the permissions of their group (for frontend UI)."""
    user = users.find_by({"id": principal.sub})
    if user is None:
        raise ApplicationError.unauthorized("User not authenticated", "USER_NOT_AUTHENTICATED")
    if (principal.role or "").upper() == Role.MASTER.value:
        permissions = [p.value for p in TablePermission]
    else:
        permissions = [p.slug for p in user.group.permissions] if user.group else []
    return MeResponse(
        id=user.id,
        email=user.email or principal.email,
        name=user.name,
        role=principal.role,
        status=user.status.value,
        group=GroupSummary(id=user.group.id, name=user.group.name, slug=user.group.slug) if user.group else None,
        permissions=permissions,
    )
