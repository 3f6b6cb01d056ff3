import logging
import uuid
from typing import Any, Dict, Mapping, Optional, Tuple
from tableforge.core.collection import (
    CollectionHandle, PopulateResolver, Query, RowStore, RowValidationError, StoreResolver,
    bind, build_order, build_populate, build_query
)
from tableforge.core.entities import FieldType, Table, TableType
from tableforge.core.exceptions import ApplicationError, Err, Ok, Result
from tableforge.core.pagination import build_meta, page_window
from tableforge.core.schema import EVALUATION_MODEL, REACTION_MODEL
from tableforge.core.utils import utcnow
from tableforge.modules.rows.schemas import RowEvaluation, RowReaction
from tableforge.repositories.base import TableRepository, UserRepository

logger = logging.getLogger(__name__)


def _int_param(params: Mapping[str, Any], key: str) -> Optional[int]:
    try:
        return int(params[key]) if params.get(key) else None
    except (TypeError, ValueError):
        return None


class RowService:
    def __init__(
        self,
        tables: TableRepository,
        rows: RowStore,
        users: Optional[UserRepository] = None,
        resolver: Optional[PopulateResolver] = None,
    ):
        self.tables = tables
        self.rows = rows
        self.resolver = resolver or StoreResolver(rows, users)

    def _open(self, slug: str) -> Tuple[Optional[Table], Optional[CollectionHandle], Optional[Err]]:
        table = self.tables.find_by({"slug": slug, "trashed": False})
        if not table:
            return None, None, Err(ApplicationError.not_found("Table not found", "TABLE_NOT_FOUND"))
        if table.type == TableType.FIELD_GROUP:
            return table, None, Err(ApplicationError.bad_request(
                "Field group tables have no rows of their own", "INVALID_TABLE_TYPE"
            ))
        return table, bind(table, self.rows, self.resolver), None

    def _invalid(self, error: RowValidationError) -> Err:
        message = "Invalid row: " + ", ".join(f"{key} ({reason})" for key, reason in error.errors.items())
        return Err(ApplicationError.bad_request(message, "INVALID_ROW"))

    def create_row(self, slug: str, payload: Mapping[str, Any], creator: Optional[str] = None) -> Result:
        try:
            table, handle, error = self._open(slug)
            if error:
                return error
            try:
                row = handle.create(payload, creator=creator)
            except RowValidationError as e:
                return self._invalid(e)
            return Ok(handle.populate([row], build_populate(table.fields))[0])
        except Exception as e:
            logger.exception(f"Error creating row in table {slug}: {e}")
            return Err(ApplicationError.internal(cause="CREATE_ROW_ERROR"))

    def list_rows(self, slug: str, params: Mapping[str, Any]) -> Result:
        """
        Paginated rows filtered by field values (see build_query), ordered by
        ``order-<slug>`` params and by creation time.
        """
        try:
            table, handle, error = self._open(slug)
            if error:
                return error
            page, per_page = page_window(_int_param(params, "page"), _int_param(params, "per_page"))
            query = build_query(params, table.fields)
            rows = handle.find_many(
                query,
                order=build_order(params, table.fields),
                page=page,
                per_page=per_page,
                populate=build_populate(table.fields),
            )
            return Ok({"data": rows, "meta": build_meta(handle.count(query), page, per_page)})
        except Exception as e:
            logger.exception(f"Error listing rows of table {slug}: {e}")
            return Err(ApplicationError.internal(cause="LIST_ROW_PAGINATED_ERROR"))

    def get_row(self, slug: str, row_id: str) -> Result:
        try:
            table, handle, error = self._open(slug)
            if error:
                return error
            row = handle.find_one(row_id, populate=build_populate(table.fields))
            if row is None:
                return Err(ApplicationError.not_found("Row not found", "ROW_NOT_FOUND"))
            return Ok(row)
        except Exception as e:
            logger.exception(f"Error loading row {row_id} of table {slug}: {e}")
            return Err(ApplicationError.internal(cause="SHOW_ROW_ERROR"))

    def update_row(self, slug: str, row_id: str, payload: Mapping[str, Any]) -> Result:
        try:
            table, handle, error = self._open(slug)
            if error:
                return error
            if handle.find_one(row_id) is None:
                return Err(ApplicationError.not_found("Row not found", "ROW_NOT_FOUND"))
            try:
                row = handle.update(row_id, payload)
            except RowValidationError as e:
                return self._invalid(e)
            return Ok(handle.populate([row], build_populate(table.fields))[0])
        except Exception as e:
            logger.exception(f"Error updating row {row_id} of table {slug}: {e}")
            return Err(ApplicationError.internal(cause="UPDATE_ROW_ERROR"))

    def set_trashed(self, slug: str, row_id: str, trashed: bool) -> Result:
        """Send a row to trash (``trashed=True``) or take it back out"""
        cause = "SEND_ROW_TO_TRASH_ERROR" if trashed else "REMOVE_ROW_FROM_TRASH_ERROR"
        try:
            table, handle, error = self._open(slug)
            if error:
                return error
            row = handle.find_one(row_id)
            if row is None:
                return Err(ApplicationError.not_found("Row not found", "ROW_NOT_FOUND"))
            if trashed and row.get("trashed"):
                return Err(ApplicationError.conflict("Row is already in trash", "ALREADY_TRASHED"))
            if not trashed and not row.get("trashed"):
                return Err(ApplicationError.conflict("Row is not in trash", "NOT_TRASHED"))
            updated = handle.set_trashed(row_id, trashed)
            return Ok(handle.populate([updated], build_populate(table.fields))[0])
        except Exception as e:
            logger.exception(f"Error changing trash state of row {row_id} of table {slug}: {e}")
            return Err(ApplicationError.internal(cause=cause))

    def react(self, slug: str, row_id: str, reaction: RowReaction, user_id: Optional[str]) -> Result:
        """Record the user's LIKE/UNLIKE on a REACTION field of a row"""
        return self._vote(
            slug, row_id, reaction.field, FieldType.REACTION, REACTION_MODEL,
            user_id, {"type": reaction.type.value}, "REACTION_ROW_ERROR"
        )

    def evaluate(self, slug: str, row_id: str, evaluation: RowEvaluation, user_id: Optional[str]) -> Result:
        """Record the user's numeric evaluation on an EVALUATION field of a row"""
        return self._vote(
            slug, row_id, evaluation.field, FieldType.EVALUATION, EVALUATION_MODEL,
            user_id, {"value": evaluation.value}, "EVALUATION_ROW_ERROR"
        )

    def _vote(
        self,
        slug: str,
        row_id: str,
        field_slug: str,
        field_type: FieldType,
        model: str,
        user_id: Optional[str],
        values: Dict[str, Any],
        cause: str,
    ) -> Result:
        """
        Upsert the user's document in ``model`` (one per user, row and field)
        and make sure the row's field lists its id.
        """
        try:
            if not user_id:
                return Err(ApplicationError.unauthorized())
            table, handle, error = self._open(slug)
            if error:
                return error
            field = next((f for f in table.fields if f.slug == field_slug and not f.trashed), None)
            if field is None:
                return Err(ApplicationError.not_found("Field not found", "FIELD_NOT_FOUND"))
            if field.type != field_type:
                return Err(ApplicationError.bad_request(
                    f"Field {field_slug} is not a {field_type.value} field", "INVALID_FIELD_TYPE"
                ))
            row = handle.find_one(row_id)
            if row is None:
                return Err(ApplicationError.not_found("Row not found", "ROW_NOT_FOUND"))

            now = utcnow().isoformat()
            lookup = Query()\
                .where("user", "eq", user_id)\
                .where("row", "eq", row_id)\
                .where("field", "eq", field_slug)
            document = self.rows.find_one(model, lookup)
            if document is None:
                document = self.rows.insert(model, {
                    "_id": str(uuid.uuid4()),
                    "user": user_id,
                    "table": table.id,
                    "row": row_id,
                    "field": field_slug,
                    **values,
                    "created_at": now,
                    "updated_at": now,
                })
            else:
                document = self.rows.update(model, document["_id"], {**values, "updated_at": now})

            ids = [str(ref) for ref in row.get(field_slug) or []]
            if document["_id"] not in ids:
                row = handle.update(row_id, {field_slug: ids + [document["_id"]]})
            return Ok(handle.populate([row], build_populate(table.fields))[0])
        except Exception as e:
            logger.exception(f"Error recording {field_type.value.lower()} on row {row_id} of table {slug}: {e}")
            return Err(ApplicationError.internal(cause=cause))
