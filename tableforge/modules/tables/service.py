import logging
from typing import Dict, List, Optional, Sequence, Set
from slugify import slugify
from tableforge.core.collection import RowStore, collection_name
from tableforge.core.entities import (
    Field, FieldType, Principal, Role, Table, TableType, TableVisibility, UserStatus
)
from tableforge.core.exceptions import ApplicationError, Err, Ok, Result
from tableforge.core.pagination import build_meta, page_window
from tableforge.core.schema import Schema, collect_group_slugs, synthesize
from tableforge.core.utils import utcnow
from tableforge.modules.tables.schemas import TableCreate, TableUpdate
from tableforge.repositories.base import FieldRepository, TableRepository, UserRepository

logger = logging.getLogger(__name__)


def synthesize_for(tables: TableRepository, slug: str, fields: Sequence[Field]) -> Schema:
    """
    Synthesize the schema of table ``slug`` for ``fields``, loading every
    field-group table reachable from them. Raises SchemaCycleError.
    """
    groups: Dict[str, List[Field]] = {}
    pending = collect_group_slugs(fields)
    while pending:
        group_slug = pending.pop()
        if group_slug in groups:
            continue
        group = tables.find_by({"slug": group_slug, "type": TableType.FIELD_GROUP})
        groups[group_slug] = group.fields if group else []
        pending.extend(collect_group_slugs(groups[group_slug]))
    return synthesize(fields, groups, root=slug)


def refresh_embedding_tables(tables: TableRepository, group: Table, seen: Optional[Set[str]] = None) -> None:
    """Resynthesize every table that embeds the field-group table ``group``."""
    seen = seen if seen is not None else {group.id}
    for table in tables.find_many({"trashed": False}):
        if table.id in seen:
            continue
        embeds = any(
            f.type == FieldType.FIELD_GROUP and f.configuration.group and f.configuration.group.id == group.id
            for f in table.fields
        )
        if not embeds:
            continue
        seen.add(table.id)
        tables.update(table.id, {"synthesized_schema": synthesize_for(tables, table.slug, table.fields)})
        if table.type == TableType.FIELD_GROUP:
            refresh_embedding_tables(tables, table, seen)


class TableService:
    def __init__(self, tables: TableRepository, fields: FieldRepository, users: UserRepository, rows: RowStore):
        self.tables = tables
        self.fields = fields
        self.users = users
        self.rows = rows

    def create_table(self, table_data: TableCreate, owner_id: str) -> Result:
        """Create a table owned by ``owner_id`` with no fields"""
        try:
            slug = slugify(table_data.name)
            if not slug:
                return Err(ApplicationError.bad_request("Table name is required", "INVALID_PARAMETERS"))

            if self.tables.find_by({"slug": slug, "trashed": False}):
                return Err(ApplicationError.conflict("Table already exists", "TABLE_ALREADY_EXISTS"))

            configuration = {"owner": owner_id, "administrators": [], "field_order": {"list": [], "form": []}}
            for key in ("style", "visibility", "collaboration"):
                value = getattr(table_data, key)
                if value is not None:
                    configuration[key] = value

            table = self.tables.create({
                "name": table_data.name.strip(),
                "slug": slug,
                "description": table_data.description,
                "logo": table_data.logo,
                "type": TableType.TABLE,
                "fields": [],
                "configuration": configuration,
                "synthesized_schema": synthesize([]),
                "trashed": False,
                "trashed_at": None,
            })
            logger.info(f"Table {table.slug} created by {owner_id}")
            return Ok(table)
        except Exception as e:
            logger.exception(f"Error creating table: {e}")
            return Err(ApplicationError.internal(cause="CREATE_TABLE_ERROR"))

    def get_table(self, slug: str) -> Result:
        try:
            table = self.tables.find_by({"slug": slug, "trashed": False})
            if not table:
                return Err(ApplicationError.not_found("Table not found", "TABLE_NOT_FOUND"))
            return Ok(table)
        except Exception as e:
            logger.exception(f"Error loading table {slug}: {e}")
            return Err(ApplicationError.internal(cause="SHOW_TABLE_ERROR"))

    def list_tables(
        self,
        principal: Principal,
        search: Optional[str] = None,
        trashed: bool = False,
        owner: Optional[str] = None,
        table_type: TableType = TableType.TABLE,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> Result:
        """
        Paginated tables. Principals below ADMINISTRATOR do not see PRIVATE
        tables they neither own nor administer.
        """
        try:
            page, per_page = page_window(page, per_page)
            query = {"trashed": trashed, "type": table_type}
            privileged = (principal.role or "").upper() in (Role.MASTER.value, Role.ADMINISTRATOR.value)
            tables = self.tables.find_many(query, search=search)

            def visible(table: Table) -> bool:
                if owner and table.configuration.owner != owner:
                    return False
                if privileged or table.configuration.visibility != TableVisibility.PRIVATE:
                    return True
                return table.is_owner(principal.sub) or table.is_administrator(principal.sub)

            tables = [t for t in tables if visible(t)]
            start = (page - 1) * per_page
            return Ok({
                "data": tables[start:start + per_page],
                "meta": build_meta(len(tables), page, per_page),
            })
        except Exception as e:
            logger.exception(f"Error listing tables: {e}")
            return Err(ApplicationError.internal(cause="LIST_TABLE_ERROR"))

    def update_table(self, slug: str, table_data: TableUpdate) -> Result:
        """Update name, description, logo, configuration and methods; the owner never changes"""
        try:
            table = self.tables.find_by({"slug": slug, "trashed": False})
            if not table:
                return Err(ApplicationError.not_found("Table not found", "TABLE_NOT_FOUND"))

            update_data = {}
            if table_data.name is not None:
                new_slug = slugify(table_data.name)
                if not new_slug:
                    return Err(ApplicationError.bad_request("Table name is required", "INVALID_PARAMETERS"))
                if new_slug != table.slug:
                    existing = self.tables.find_by({"slug": new_slug, "trashed": False})
                    if existing and existing.id != table.id:
                        return Err(ApplicationError.conflict("Table already exists", "TABLE_ALREADY_EXISTS"))
                update_data["name"] = table_data.name.strip()
                update_data["slug"] = new_slug
            if table_data.description is not None:
                update_data["description"] = table_data.description
            if table_data.logo is not None:
                update_data["logo"] = table_data.logo
            if table_data.methods is not None:
                update_data["methods"] = table_data.methods

            changes = table_data.configuration.model_dump(exclude_none=True) if table_data.configuration else {}
            administrators = changes.get("administrators")
            if administrators:
                active = self.users.find_many({"id": administrators, "status": UserStatus.ACTIVE})
                if len(active) != len(set(administrators)):
                    return Err(ApplicationError.bad_request(
                        "All administrators must be active users", "INACTIVE_ADMINISTRATORS"
                    ))
            if changes:
                configuration = table.configuration.model_dump()
                configuration.update(changes)
                configuration["owner"] = table.configuration.owner
                update_data["configuration"] = configuration

            updated = self.tables.update(table.id, update_data) if update_data else table

            # Field groups follow the visibility of the table embedding them
            if "visibility" in changes:
                for field in table.fields:
                    group = field.configuration.group
                    if field.type != FieldType.FIELD_GROUP or not group:
                        continue
                    group_table = self.tables.find_by({"id": group.id})
                    if group_table:
                        group_configuration = group_table.configuration.model_dump()
                        group_configuration["visibility"] = changes["visibility"]
                        self.tables.update(group_table.id, {"configuration": group_configuration})

            return Ok(updated)
        except Exception as e:
            logger.exception(f"Error updating table {slug}: {e}")
            return Err(ApplicationError.internal(cause="UPDATE_TABLE_ERROR"))

    def send_to_trash(self, slug: str) -> Result:
        try:
            table = self.tables.find_by({"slug": slug, "trashed": False})
            if not table:
                trashed = self.tables.find_by({"slug": slug, "trashed": True})
                if trashed:
                    return Err(ApplicationError.conflict("Table is already in trash", "ALREADY_TRASHED"))
                return Err(ApplicationError.not_found("Table not found", "TABLE_NOT_FOUND"))
            return Ok(self.tables.update(table.id, {"trashed": True, "trashed_at": utcnow()}))
        except Exception as e:
            logger.exception(f"Error sending table {slug} to trash: {e}")
            return Err(ApplicationError.internal(cause="SEND_TABLE_TO_TRASH_ERROR"))

    def remove_from_trash(self, slug: str) -> Result:
        try:
            table = self.tables.find_by({"slug": slug, "trashed": True})
            if not table:
                if self.tables.find_by({"slug": slug, "trashed": False}):
                    return Err(ApplicationError.conflict("Table is not in trash", "NOT_TRASHED"))
                return Err(ApplicationError.not_found("Table not found", "TABLE_NOT_FOUND"))
            if self.tables.find_by({"slug": slug, "trashed": False}):
                return Err(ApplicationError.conflict("Table already exists", "TABLE_ALREADY_EXISTS"))
            return Ok(self.tables.update(table.id, {"trashed": False, "trashed_at": None}))
        except Exception as e:
            logger.exception(f"Error removing table {slug} from trash: {e}")
            return Err(ApplicationError.internal(cause="REMOVE_TABLE_FROM_TRASH_ERROR"))

    def delete_table(self, slug: str) -> Result:
        """Permanently delete a table, its fields, its embedded field groups and its rows"""
        try:
            table = self.tables.find_by({"slug": slug, "trashed": False})
            if not table:
                return Err(ApplicationError.not_found("Table not found", "TABLE_NOT_FOUND"))
            self._purge(table)
            logger.info(f"Table {slug} deleted")
            return Ok(None)
        except Exception as e:
            logger.exception(f"Error deleting table {slug}: {e}")
            return Err(ApplicationError.internal(cause="DELETE_TABLE_ERROR"))

    def _purge(self, table: Table) -> None:
        for field in table.fields:
            group = field.configuration.group
            if field.type == FieldType.FIELD_GROUP and group:
                group_table = self.tables.find_by({"id": group.id, "type": TableType.FIELD_GROUP})
                if group_table:
                    self._purge(group_table)
            self.fields.delete(field.id)
        self.rows.drop(collection_name(table))
        self.tables.delete(table.id)
