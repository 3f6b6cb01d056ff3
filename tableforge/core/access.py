"""
Table access decisions.

TableAccessPolicy answers, for one request, whether a principal may perform a
table permission on a table. Rules are evaluated in a fixed order and the
first one that matches wins; every denial carries a stable cause and an HTTP
status.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from tableforge.core.entities import Principal, Role, Table, TablePermission, TableVisibility, User
from tableforge.core.exceptions import ApplicationError
from tableforge.repositories.base import TableRepository, UserRepository


@dataclass(frozen=True)
class Denial:
    cause: str
    code: int
    message: str

    def to_error(self) -> ApplicationError:
        return ApplicationError(self.message, self.code, self.cause)


INVALID_PARAMETERS = Denial("INVALID_PARAMETERS", 400, "Invalid parameters")
TABLE_NOT_FOUND = Denial("TABLE_NOT_FOUND", 404, "Table not found")
TABLE_REQUIRED = Denial("TABLE_REQUIRED", 404, "Table is required for this action")
USER_NOT_AUTHENTICATED = Denial("USER_NOT_AUTHENTICATED", 401, "User not authenticated")
USER_NOT_ACTIVE = Denial("USER_NOT_ACTIVE", 403, "User account is not active")
OWNER_OR_ADMIN_REQUIRED = Denial(
    "OWNER_OR_ADMIN_REQUIRED", 403, "Only the table owner or its administrators can perform this action"
)
TABLE_PRIVATE = Denial("TABLE_PRIVATE", 403, "Only the owner and administrators can access this private table")
RESTRICTED_CREATE = Denial(
    "RESTRICTED_CREATE", 403, "Only the owner and administrators can add records to this restricted table"
)
FORM_VIEW_RESTRICTED = Denial(
    "FORM_VIEW_RESTRICTED", 403, "Only the owner and administrators can view this form table"
)
PERMISSIONS_NOT_FOUND = Denial("PERMISSIONS_NOT_FOUND", 403, "User permissions not found")
INSUFFICIENT_PERMISSIONS = Denial(
    "INSUFFICIENT_PERMISSIONS", 403, "You don't have permission to perform this action"
)

VIEW_ACTIONS: FrozenSet[TablePermission] = frozenset({
    TablePermission.VIEW_TABLE,
    TablePermission.VIEW_FIELD,
    TablePermission.VIEW_ROW,
})

# Never granted through group permissions or visibility
OWNER_ONLY_ACTIONS: FrozenSet[TablePermission] = frozenset({
    TablePermission.CREATE_FIELD,
    TablePermission.UPDATE_FIELD,
    TablePermission.REMOVE_FIELD,
    TablePermission.UPDATE_TABLE,
    TablePermission.REMOVE_TABLE,
    TablePermission.UPDATE_ROW,
    TablePermission.REMOVE_ROW,
})

# Visibility filter for non-owner principals; actions not listed go on to the group check
VISIBILITY_RULES: Dict[TableVisibility, Dict[TablePermission, Denial]] = {
    TableVisibility.PRIVATE: {
        action: TABLE_PRIVATE for action in VIEW_ACTIONS | {TablePermission.CREATE_ROW}
    },
    TableVisibility.RESTRICTED: {TablePermission.CREATE_ROW: RESTRICTED_CREATE},
    TableVisibility.OPEN: {},
    TableVisibility.PUBLIC: {},
    TableVisibility.FORM: {action: FORM_VIEW_RESTRICTED for action in VIEW_ACTIONS},
}


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    denial: Optional[Denial] = None
    table: Optional[Table] = None
    user: Optional[User] = None
    is_owner: bool = False
    is_administrator: bool = False

    @property
    def cause(self) -> Optional[str]:
        return self.denial.cause if self.denial else None


class TableAccessPolicy:
    def __init__(self, tables: TableRepository, users: UserRepository):
        self.tables = tables
        self.users = users

    def _allow(self, table: Optional[Table], user: Optional[User] = None, **ownership) -> AccessDecision:
        return AccessDecision(allowed=True, table=table, user=user, **ownership)

    def _deny(self, denial: Denial, table: Optional[Table] = None, user: Optional[User] = None, **ownership) -> AccessDecision:
        return AccessDecision(allowed=False, denial=denial, table=table, user=user, **ownership)

    def _group_gate(self, user: User, permission: TablePermission, table: Optional[Table], **ownership) -> AccessDecision:
        if not user.group or not user.group.permissions:
            return self._deny(PERMISSIONS_NOT_FOUND, table, user, **ownership)
        if permission.value not in {p.slug for p in user.group.permissions}:
            return self._deny(INSUFFICIENT_PERMISSIONS, table, user, **ownership)
        return self._allow(table, user, **ownership)

    def decide(
        self,
        principal: Optional[Principal],
        slug: Optional[str],
        permission: TablePermission,
        method: str,
        include_trashed: bool = False,
    ) -> AccessDecision:
        """
        Evaluate ``permission`` on the table named by ``slug``.

        ``slug`` is None for routes without a table subject (CREATE_TABLE).
        ``include_trashed`` widens the lookup to trashed tables for restore
        routes. Only reads are performed.
        """
        method = method.upper()

        table: Optional[Table] = None
        if slug is not None:
            if not slug.strip():
                return self._deny(INVALID_PARAMETERS)
            if include_trashed:
                # Restore routes address the trashed copy when a live namesake exists
                table = self.tables.find_by({"slug": slug, "trashed": True})
            if table is None:
                table = self.tables.find_by({"slug": slug, "trashed": False})
            if table is None:
                return self._deny(TABLE_NOT_FOUND)

        visibility = table.configuration.visibility if table else None
        if visibility == TableVisibility.PUBLIC and method == "GET" and permission in VIEW_ACTIONS:
            return self._allow(table)
        if visibility == TableVisibility.FORM and method == "POST" and permission == TablePermission.CREATE_ROW:
            return self._allow(table)

        if principal is None:
            return self._deny(USER_NOT_AUTHENTICATED, table)

        # Account state always comes from storage, never from the token
        user = self.users.find_by({"id": principal.sub})
        if user is None:
            return self._deny(USER_NOT_AUTHENTICATED, table)

        role = (principal.role or "").upper()
        if role == Role.MASTER.value:
            return self._allow(table, user)
        if role == Role.ADMINISTRATOR.value:
            if not user.is_active:
                return self._deny(USER_NOT_ACTIVE, table, user)
            return self._allow(table, user)

        if permission == TablePermission.CREATE_TABLE:
            if not user.is_active:
                return self._deny(USER_NOT_ACTIVE, None, user)
            return self._group_gate(user, permission, None)

        if table is None:
            return self._deny(TABLE_REQUIRED, None, user)

        ownership = {
            "is_owner": table.is_owner(user.id),
            "is_administrator": table.is_administrator(user.id),
        }
        if ownership["is_owner"] or ownership["is_administrator"]:
            if not user.is_active:
                return self._deny(USER_NOT_ACTIVE, table, user, **ownership)
            return self._allow(table, user, **ownership)

        if not user.is_active:
            return self._deny(USER_NOT_ACTIVE, table, user, **ownership)
        if permission in OWNER_ONLY_ACTIONS:
            return self._deny(OWNER_OR_ADMIN_REQUIRED, table, user, **ownership)
        rule = VISIBILITY_RULES.get(visibility, {}).get(permission)
        if rule is not None:
            return self._deny(rule, table, user, **ownership)
        return self._group_gate(user, permission, table, **ownership)
