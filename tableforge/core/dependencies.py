"""
Core dependencies for repositories, authentication and table access checks
"""

from fastapi import Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from tableforge.core.access import AccessDecision, TableAccessPolicy, USER_NOT_ACTIVE
from tableforge.core.collection import RowStore
from tableforge.core.entities import Principal, Role, TablePermission
from tableforge.core.exceptions import ApplicationError
from tableforge.database.supabase_client import get_supabase
from tableforge.modules.auth.service import AuthService
from tableforge.repositories.base import FieldRepository, MenuRepository, TableRepository, UserRepository
from tableforge.repositories.supabase import (
    SupabaseFieldRepository,
    SupabaseMenuRepository,
    SupabaseRowStore,
    SupabaseTableRepository,
    SupabaseUserRepository,
)
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Anonymous requests are allowed through; the access policy decides
security = HTTPBearer(auto_error=False)


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_field_repository(supabase: Client = Depends(get_supabase)) -> FieldRepository:
    return SupabaseFieldRepository(supabase)


def get_table_repository(
    supabase: Client = Depends(get_supabase),
    fields: FieldRepository = Depends(get_field_repository)
) -> TableRepository:
    return SupabaseTableRepository(supabase, fields)


def get_user_repository(supabase: Client = Depends(get_supabase)) -> UserRepository:
    return SupabaseUserRepository(supabase)


def get_menu_repository(supabase: Client = Depends(get_supabase)) -> MenuRepository:
    return SupabaseMenuRepository(supabase)


def get_row_store(supabase: Client = Depends(get_supabase)) -> RowStore:
    return SupabaseRowStore(supabase)


def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[Principal]:
    """Principal for the bearer token, or None when no token was sent"""
    if credentials is None:
        return None
    return auth_service.get_principal(credentials.credentials)


def get_current_principal(principal: Optional[Principal] = Depends(get_optional_principal)) -> Principal:
    if principal is None:
        raise ApplicationError.unauthorized("Authentication required", "AUTHENTICATION_REQUIRED")
    return principal


def get_access_policy(
    tables: TableRepository = Depends(get_table_repository),
    users: UserRepository = Depends(get_user_repository)
) -> TableAccessPolicy:
    return TableAccessPolicy(tables, users)


def require_table_access(permission: TablePermission, include_trashed: bool = False):
    """Factory function to create a table access dependency for one permission"""
    def check_table_access(
        request: Request,
        principal: Optional[Principal] = Depends(get_optional_principal),
        policy: TableAccessPolicy = Depends(get_access_policy)
    ) -> AccessDecision:
        slug = request.path_params.get("slug")
        decision = policy.decide(principal, slug, permission, request.method, include_trashed)
        if not decision.allowed:
            logger.info(
                f"Denied {permission.value} on table {slug!r} for "
                f"{principal.sub if principal else 'anonymous'}: {decision.cause}"
            )
            raise decision.denial.to_error()
        return decision
    return check_table_access


def require_role(*roles: Role):
    """Factory function to restrict a route to principals holding one of ``roles``"""
    allowed = {role.value for role in roles}

    def check_role(
        principal: Principal = Depends(get_current_principal),
        users: UserRepository = Depends(get_user_repository)
    ) -> Principal:
        if (principal.role or "").upper() not in allowed:
            raise ApplicationError.forbidden(
                f"This action requires one of these roles: {', '.join(sorted(allowed))}",
                "INSUFFICIENT_ROLE"
            )
        user = users.find_by({"id": principal.sub})
        if user is None:
            raise ApplicationError.unauthorized("User not authenticated", "USER_NOT_AUTHENTICATED")
        if not user.is_active:
            raise USER_NOT_ACTIVE.to_error()
        return principal
    return check_role
