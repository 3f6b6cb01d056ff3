import pytest

from tableforge.core.entities import (
    EntityRef,
    Field,
    FieldConfiguration,
    FieldType,
    RelationshipConfig,
    SchemaType,
)
from tableforge.core.schema import (
    BOOKKEEPING_KEYS,
    REACTION_MODEL,
    STORAGE_MODEL,
    SchemaCycleError,
    collect_group_slugs,
    dump_schema,
    map_field,
    synthesize,
)


def make_field(slug, type=FieldType.TEXT_SHORT, trashed=False, **configuration):
    return Field(
        id=f"id-{slug}",
        name=slug.title(),
        slug=slug,
        type=type,
        trashed=trashed,
        configuration=FieldConfiguration(**configuration),
    )


def group_field(slug, group_slug):
    return make_field(slug, FieldType.FIELD_GROUP, group=EntityRef(id=f"table-{group_slug}", slug=group_slug))


def field_columns(schema):
    return {key for key in schema if key not in BOOKKEEPING_KEYS}


def test_one_column_per_live_field():
    fields = [
        make_field("title"),
        make_field("body", FieldType.TEXT_LONG),
        make_field("old", trashed=True),
        make_field("when", FieldType.DATE),
    ]

    schema = synthesize(fields)

    assert field_columns(schema) == {"title", "body", "when"}
    assert set(BOOKKEEPING_KEYS) <= set(schema)


def test_trashed_fields_leave_no_column():
    fields = [make_field("a", trashed=True), make_field("b", trashed=True)]

    assert field_columns(synthesize(fields)) == set()


def test_scalar_types_and_required():
    schema = synthesize([
        make_field("title", required=True, default_value="untitled"),
        make_field("status", FieldType.DROPDOWN, dropdown=["open", "closed"]),
        make_field("when", FieldType.DATE),
    ])

    assert schema["title"].type == SchemaType.STRING
    assert schema["title"].required is True
    assert schema["title"].default == "untitled"
    assert schema["status"].type == SchemaType.STRING
    assert schema["when"].type == SchemaType.DATE


def test_relationship_and_file_are_references():
    relationship = RelationshipConfig(
        table=EntityRef(id="t-authors", slug="authors"),
        field=EntityRef(id="f-name", slug="name"),
    )
    schema = synthesize([
        make_field("author", FieldType.RELATIONSHIP, relationship=relationship),
        make_field("editors", FieldType.RELATIONSHIP, relationship=relationship, multiple=True),
        make_field("cover", FieldType.FILE),
    ])

    assert schema["author"].type == SchemaType.OBJECT_ID
    assert schema["author"].ref == "table_t-authors"
    assert schema["author"].multiple is False
    assert schema["editors"].multiple is True
    assert schema["cover"].ref == STORAGE_MODEL


def test_reactions_are_always_lists_and_never_required():
    column = map_field(make_field("likes", FieldType.REACTION, required=True))

    assert column.multiple is True
    assert column.required is False
    assert column.ref == REACTION_MODEL


def test_field_group_embeds_group_schema():
    groups = {"comments": [make_field("text", required=True), make_field("gone", trashed=True)]}

    schema = synthesize([group_field("comments", "comments")], groups, root="posts")

    column = schema["comments"]
    assert column.type == SchemaType.EMBEDDED
    assert column.multiple is True
    assert set(column.embedded) == {"text"}
    assert column.embedded["text"].required is True


def test_nested_field_groups():
    groups = {
        "sections": [make_field("heading"), group_field("items", "items")],
        "items": [make_field("label")],
    }

    schema = synthesize([group_field("sections", "sections")], groups, root="docs")

    assert set(schema["sections"].embedded["items"].embedded) == {"label"}


def test_group_cycle_is_rejected():
    groups = {
        "a": [group_field("to-b", "b")],
        "b": [group_field("to-a", "a")],
    }

    with pytest.raises(SchemaCycleError) as raised:
        synthesize([group_field("to-a", "a")], groups, root="root")

    assert raised.value.path == ["root", "a", "b", "a"]


def test_group_embedding_its_own_table_is_rejected():
    groups = {"parts": [make_field("name"), group_field("back", "assembly")]}

    with pytest.raises(SchemaCycleError):
        synthesize([group_field("parts", "parts")], groups, root="assembly")


def test_collect_group_slugs_skips_trashed():
    trashed = group_field("old", "old")
    trashed = trashed.model_copy(update={"trashed": True})

    assert collect_group_slugs([group_field("a", "a"), trashed, make_field("x")]) == ["a"]


def test_dump_schema_is_json_ready():
    dumped = dump_schema(synthesize([make_field("title", required=True)]))

    assert dumped["title"] == {"type": "String", "required": True, "multiple": False}
