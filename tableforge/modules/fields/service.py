import logging
from typing import List, Optional, Tuple
from slugify import slugify
from tableforge.core import category_tree
from tableforge.core.collection import RowStore, bind
from tableforge.core.entities import (
    EntityRef, Field, FieldConfiguration, FieldType, RelationshipConfig, Table, TableType
)
from tableforge.core.exceptions import ApplicationError, Err, Ok, Result
from tableforge.core.schema import SchemaCycleError, synthesize
from tableforge.core.utils import utcnow
from tableforge.modules.fields.schemas import FieldCreate, FieldUpdate
from tableforge.modules.tables.service import refresh_embedding_tables, synthesize_for
from tableforge.repositories.base import FieldRepository, TableRepository

logger = logging.getLogger(__name__)

TABLE_NOT_FOUND = ("Table not found", "TABLE_NOT_FOUND")
FIELD_NOT_FOUND = ("Field not found", "FIELD_NOT_FOUND")


class FieldService:
    def __init__(self, tables: TableRepository, fields: FieldRepository, rows: RowStore):
        self.tables = tables
        self.fields = fields
        self.rows = rows

    def _locate(self, slug: str, field_id: str) -> Tuple[Optional[Table], Optional[Field], Optional[Err]]:
        """Table by slug and one of its member fields, or the matching not-found error"""
        table = self.tables.find_by({"slug": slug, "trashed": False})
        if not table:
            return None, None, Err(ApplicationError.not_found(*TABLE_NOT_FOUND))
        field = table.get_field(field_id)
        if not field:
            return table, None, Err(ApplicationError.not_found(*FIELD_NOT_FOUND))
        return table, field, None

    def _save_fields(self, table: Table, fields: List[Field], **extra) -> Table:
        """Persist a table's field list with its freshly synthesized schema"""
        schema = synthesize_for(self.tables, table.slug, fields)
        updated = self.tables.update(table.id, {
            "fields": [f.id for f in fields],
            "synthesized_schema": schema,
            **extra,
        })
        if updated.type == TableType.FIELD_GROUP:
            refresh_embedding_tables(self.tables, updated)
        return updated

    def _check_relationship(self, configuration: FieldConfiguration) -> Optional[Err]:
        relationship = configuration.relationship
        if relationship is None:
            return Err(ApplicationError.bad_request("Relationship configuration is required", "INVALID_PARAMETERS"))
        target = self.tables.find_by({"id": relationship.table.id, "trashed": False})
        target_field = target.get_field(relationship.field.id) if target else None
        if not target_field or target_field.trashed:
            return Err(ApplicationError.not_found(
                "Relationship target table or field not found", "RELATIONSHIP_TARGET_NOT_FOUND"
            ))
        configuration.relationship = RelationshipConfig(
            table=EntityRef(id=target.id, slug=target.slug),
            field=EntityRef(id=target_field.id, slug=target_field.slug),
            order=relationship.order,
        )
        return None

    def create_field(self, slug: str, field_data: FieldCreate) -> Result:
        """
        Add a field to a table. FIELD_GROUP fields get their own FIELD_GROUP
        table, inheriting visibility, collaboration and owner.
        """
        try:
            table = self.tables.find_by({"slug": slug, "trashed": False})
            if not table:
                return Err(ApplicationError.not_found(*TABLE_NOT_FOUND))

            field_slug = slugify(field_data.name)
            if not field_slug:
                return Err(ApplicationError.bad_request("Field name is required", "INVALID_PARAMETERS"))
            if any(f.slug == field_slug for f in table.fields):
                return Err(ApplicationError.conflict("Field already exist", "FIELD_ALREADY_EXIST"))

            configuration = field_data.configuration.model_copy(update={"group": None})
            if field_data.type == FieldType.RELATIONSHIP:
                error = self._check_relationship(configuration)
                if error:
                    return error
            if field_data.type == FieldType.CATEGORY and configuration.category is None:
                configuration.category = []
            if field_data.type == FieldType.FIELD_GROUP:
                if self.tables.find_by({"slug": field_slug, "trashed": False}):
                    return Err(ApplicationError.conflict("Table already exists", "TABLE_ALREADY_EXISTS"))

            field = self.fields.create({
                "name": field_data.name.strip(),
                "slug": field_slug,
                "type": field_data.type,
                "configuration": configuration,
                "trashed": False,
                "trashed_at": None,
            })

            if field.type == FieldType.FIELD_GROUP:
                group = self.tables.create({
                    "name": field.name,
                    "slug": field_slug,
                    "description": None,
                    "type": TableType.FIELD_GROUP,
                    "fields": [],
                    "configuration": {
                        "owner": table.configuration.owner,
                        "administrators": [],
                        "visibility": table.configuration.visibility,
                        "collaboration": table.configuration.collaboration,
                        "field_order": {"list": [], "form": []},
                    },
                    "synthesized_schema": synthesize([]),
                    "trashed": False,
                    "trashed_at": None,
                })
                configuration = configuration.model_copy(update={"group": EntityRef(id=group.id, slug=group.slug)})
                field = self.fields.update(field.id, {"configuration": configuration})

            field_order = table.configuration.field_order
            configuration_data = table.configuration.model_dump()
            configuration_data["field_order"] = {
                "list": [*field_order.list, field.id],
                "form": [*field_order.form, field.id],
            }
            try:
                self._save_fields(table, [*table.fields, field], configuration=configuration_data)
            except SchemaCycleError as e:
                self.fields.delete(field.id)
                return Err(ApplicationError.bad_request(str(e), "FIELD_GROUP_CYCLE"))

            logger.info(f"Field {field.slug} ({field.type.value}) added to table {table.slug}")
            return Ok(field)
        except Exception as e:
            logger.exception(f"Error creating field on table {slug}: {e}")
            return Err(ApplicationError.internal(cause="CREATE_FIELD_ERROR"))

    def update_field(self, slug: str, field_id: str, field_data: FieldUpdate) -> Result:
        """Rename or reconfigure a field; stored row values follow a slug change"""
        try:
            table, field, error = self._locate(slug, field_id)
            if error:
                return error

            update_data = {}
            new_slug = field.slug
            if field_data.name is not None:
                new_slug = slugify(field_data.name)
                if not new_slug:
                    return Err(ApplicationError.bad_request("Field name is required", "INVALID_PARAMETERS"))
                if any(f.slug == new_slug and f.id != field.id for f in table.fields):
                    return Err(ApplicationError.conflict("Field already exist", "FIELD_ALREADY_EXIST"))
                update_data["name"] = field_data.name.strip()
                update_data["slug"] = new_slug

            if field_data.configuration is not None:
                # The embedded group link is owned by the field, never replaced from outside
                configuration = field_data.configuration.model_copy(update={"group": field.configuration.group})
                if field.type == FieldType.RELATIONSHIP:
                    error = self._check_relationship(configuration)
                    if error:
                        return error
                update_data["configuration"] = configuration

            if not update_data:
                return Ok(field)

            updated = self.fields.update(field.id, update_data)
            fields = [updated if f.id == field.id else f for f in table.fields]
            try:
                self._save_fields(table, fields)
            except SchemaCycleError as e:
                self.fields.update(field.id, {"name": field.name, "slug": field.slug, "configuration": field.configuration})
                return Err(ApplicationError.bad_request(str(e), "FIELD_GROUP_CYCLE"))

            if new_slug != field.slug:
                moved = bind(table, self.rows).rename_key(field.slug, new_slug)
                logger.info(f"Renamed {field.slug} to {new_slug} in {moved} rows of {table.slug}")

            return Ok(updated)
        except Exception as e:
            logger.exception(f"Error updating field {field_id} on table {slug}: {e}")
            return Err(ApplicationError.internal(cause="UPDATE_FIELD_ERROR"))

    def get_field(self, slug: str, field_id: str) -> Result:
        try:
            _, field, error = self._locate(slug, field_id)
            if error:
                return error
            return Ok(field)
        except Exception as e:
            logger.exception(f"Error loading field {field_id} on table {slug}: {e}")
            return Err(ApplicationError.internal(cause="SHOW_FIELD_ERROR"))

    def add_category(self, slug: str, field_id: str, label: str, parent_id: Optional[str] = None) -> Result:
        """Insert a category option at the root or under ``parent_id``"""
        try:
            _, field, error = self._locate(slug, field_id)
            if error:
                return error

            if field.type != FieldType.CATEGORY:
                return Err(ApplicationError.bad_request("Field is not CATEGORY type", "INVALID_FIELD_TYPE"))

            insertion = category_tree.insert(field.configuration.category, parent_id, label)
            if not insertion.inserted:
                return Err(ApplicationError.not_found("Parent category not found", "PARENT_CATEGORY_NOT_FOUND"))

            configuration = field.configuration.model_copy(update={"category": insertion.forest})
            updated = self.fields.update(field.id, {"configuration": configuration})
            return Ok({
                "node": {"id": insertion.node.id, "label": insertion.node.label, "parent_id": parent_id},
                "field": updated,
            })
        except Exception as e:
            logger.exception(f"Error adding category to field {field_id} on table {slug}: {e}")
            return Err(ApplicationError.internal(cause="ADD_CATEGORY_OPTION_ERROR"))

    def send_to_trash(self, slug: str, field_id: str) -> Result:
        """
        Soft-delete a field. It stops being listed, filtered and required and
        its column leaves the table schema; stored row values stay untouched.
        """
        try:
            table, field, error = self._locate(slug, field_id)
            if error:
                return error

            if field.trashed:
                return Err(ApplicationError.conflict("Field is already in trash", "ALREADY_TRASHED"))

            configuration = field.configuration.model_copy(
                update={"listing": False, "filtering": False, "required": False}
            )
            updated = self.fields.update(field.id, {
                "trashed": True,
                "trashed_at": utcnow(),
                "configuration": configuration,
            })
            self._save_fields(table, [updated if f.id == field.id else f for f in table.fields])
            return Ok(updated)
        except Exception as e:
            logger.exception(f"Error sending field {field_id} on table {slug} to trash: {e}")
            return Err(ApplicationError.internal(cause="SEND_FIELD_TO_TRASH_ERROR"))

    def remove_from_trash(self, slug: str, field_id: str) -> Result:
        try:
            table, field, error = self._locate(slug, field_id)
            if error:
                return error

            if not field.trashed:
                return Err(ApplicationError.conflict("Field is not in trash", "NOT_TRASHED"))

            configuration = field.configuration.model_copy(
                update={"listing": True, "filtering": True, "required": False}
            )
            updated = self.fields.update(field.id, {
                "trashed": False,
                "trashed_at": None,
                "configuration": configuration,
            })
            self._save_fields(table, [updated if f.id == field.id else f for f in table.fields])
            return Ok(updated)
        except Exception as e:
            logger.exception(f"Error removing field {field_id} on table {slug} from trash: {e}")
            return Err(ApplicationError.internal(cause="REMOVE_FIELD_FROM_TRASH_ERROR"))
