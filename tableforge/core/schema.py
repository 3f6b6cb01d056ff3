"""
Schema synthesis: derive the storage schema of a table from its field list.

The synthesized schema is a cached projection of ``Table.fields``; it is never
authoritative on its own and is recomputed by every use case that changes a
table's field list.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from tableforge.core.entities import Field, FieldType, SchemaColumn, SchemaType, Table

Schema = Dict[str, SchemaColumn]

FIELD_TYPE_TO_SCHEMA_TYPE: Dict[FieldType, SchemaType] = {
    FieldType.TEXT_SHORT: SchemaType.STRING,
    FieldType.TEXT_LONG: SchemaType.STRING,
    FieldType.DROPDOWN: SchemaType.STRING,
    FieldType.CATEGORY: SchemaType.STRING,
    FieldType.DATE: SchemaType.DATE,
    FieldType.RELATIONSHIP: SchemaType.OBJECT_ID,
    FieldType.FILE: SchemaType.OBJECT_ID,
    FieldType.REACTION: SchemaType.OBJECT_ID,
    FieldType.EVALUATION: SchemaType.OBJECT_ID,
    FieldType.FIELD_GROUP: SchemaType.EMBEDDED,
}

# Referenced collections for non-relationship reference fields
STORAGE_MODEL = "storage"
REACTION_MODEL = "reactions"
EVALUATION_MODEL = "evaluations"
USER_MODEL = "users"

# Reactions and evaluations are always lists of references, never mandatory
ALWAYS_MULTIPLE = {FieldType.REACTION, FieldType.EVALUATION}


def collection_name(table_or_id: Any) -> str:
    """Row collection of a table; relationship columns reference it by this name."""
    table_id = table_or_id.id if isinstance(table_or_id, Table) else str(table_or_id)
    return f"table_{table_id}"


class SchemaCycleError(ValueError):
    def __init__(self, path: Sequence[str]):
        self.path = list(path)
        super().__init__("Field group cycle: " + " -> ".join(self.path))


def bookkeeping_columns() -> Schema:
    return {
        "_id": SchemaColumn(type=SchemaType.OBJECT_ID),
        "creator": SchemaColumn(type=SchemaType.OBJECT_ID, ref=USER_MODEL),
        "trashed": SchemaColumn(type=SchemaType.BOOLEAN, default=False),
        "trashed_at": SchemaColumn(type=SchemaType.DATE, default=None),
        "created_at": SchemaColumn(type=SchemaType.DATE),
        "updated_at": SchemaColumn(type=SchemaType.DATE),
    }


BOOKKEEPING_KEYS = tuple(bookkeeping_columns().keys())


def group_slug_of(field: Field) -> Optional[str]:
    group = field.configuration.group
    return group.slug if group else None


def collect_group_slugs(fields: Iterable[Field]) -> List[str]:
    """Slugs of the FIELD_GROUP tables embedded by the non-trashed fields."""
    slugs = []
    for field in fields:
        if field.trashed or field.type != FieldType.FIELD_GROUP:
            continue
        slug = group_slug_of(field)
        if slug and slug not in slugs:
            slugs.append(slug)
    return slugs


def map_field(
    field: Field,
    groups: Optional[Mapping[str, Sequence[Field]]] = None,
    stack: Tuple[str, ...] = (),
) -> SchemaColumn:
    """Schema column for a single field."""
    config = field.configuration
    schema_type = FIELD_TYPE_TO_SCHEMA_TYPE.get(field.type, SchemaType.STRING)

    if field.type == FieldType.FIELD_GROUP:
        slug = group_slug_of(field)
        embedded: Schema = {}
        if slug:
            if slug in stack:
                raise SchemaCycleError(list(stack) + [slug])
            group_fields = (groups or {}).get(slug, [])
            embedded = _field_columns(group_fields, groups, stack + (slug,))
        return SchemaColumn(
            type=schema_type,
            required=config.required,
            multiple=True,
            embedded=embedded,
        )

    if field.type in ALWAYS_MULTIPLE:
        ref = REACTION_MODEL if field.type == FieldType.REACTION else EVALUATION_MODEL
        return SchemaColumn(type=schema_type, required=False, multiple=True, ref=ref)

    ref = None
    if field.type == FieldType.RELATIONSHIP and config.relationship:
        ref = collection_name(config.relationship.table.id)
    elif field.type == FieldType.FILE:
        ref = STORAGE_MODEL

    return SchemaColumn(
        type=schema_type,
        required=config.required,
        multiple=config.multiple,
        ref=ref,
        default=config.default_value if schema_type == SchemaType.STRING else None,
    )


def _field_columns(
    fields: Sequence[Field],
    groups: Optional[Mapping[str, Sequence[Field]]],
    stack: Tuple[str, ...],
) -> Schema:
    columns: Schema = {}
    for field in fields:
        if field.trashed:
            continue
        columns[field.slug] = map_field(field, groups, stack)
    return columns


def synthesize(
    fields: Sequence[Field],
    groups: Optional[Mapping[str, Sequence[Field]]] = None,
    root: Optional[str] = None,
) -> Schema:
    """
    Build the storage schema for a field list.

    ``groups`` maps a FIELD_GROUP table slug to that table's own fields so
    embedded columns can be shaped recursively. ``root`` is the slug of the
    table being synthesized; a group that embeds it (directly or through
    other groups) raises SchemaCycleError.
    """
    schema = bookkeeping_columns()
    stack = (root,) if root else ()
    schema.update(_field_columns(fields, groups, stack))
    return schema


def dump_schema(schema: Schema) -> dict:
    return {key: column.model_dump(mode="json", exclude_none=True) for key, column in schema.items()}
