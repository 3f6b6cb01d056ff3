from tableforge.core.collection import bind, collection_name
from tableforge.core.entities import FieldType, Principal, TableVisibility, UserStatus
from tableforge.core.exceptions import error_of, unwrap
from tableforge.modules.tables.schemas import TableConfigurationUpdate, TableCreate, TableUpdate


def test_create_table_defaults(workspace):
    table = workspace.table("Reading List")

    assert table.slug == "reading-list"
    assert table.configuration.owner == "owner"
    assert table.configuration.visibility == TableVisibility.RESTRICTED
    assert table.fields == []
    assert "_id" in table.synthesized_schema


def test_create_table_conflict_and_blank_name(workspace):
    workspace.table("Books")
    service = workspace.table_service()

    assert error_of(service.create_table(TableCreate(name="books"), "owner")).cause == "TABLE_ALREADY_EXISTS"
    assert error_of(service.create_table(TableCreate(name="  "), "owner")).cause == "INVALID_PARAMETERS"


def test_delete_table_removes_fields_rows_and_groups(workspace):
    workspace.table("Posts")
    title = workspace.field("posts", "Title")
    comments = workspace.field("posts", "Comments", FieldType.FIELD_GROUP)
    text = workspace.field("comments", "Text")
    posts = workspace.reload("posts")
    bind(posts, workspace.rows).create({"title": "Hello"})

    assert unwrap(workspace.table_service().delete_table("posts")) is None

    assert workspace.reload("posts") is None
    assert workspace.reload("comments") is None
    for field in (title, comments, text):
        assert workspace.fields.find_by({"id": field.id}) is None
    assert collection_name(posts) not in workspace.rows.collections


def test_delete_missing_table(workspace):
    error = error_of(workspace.table_service().delete_table("ghost"))

    assert (error.code, error.cause) == (404, "TABLE_NOT_FOUND")


def test_delete_failure_cause(workspace, monkeypatch):
    workspace.table("Posts")

    def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(workspace.rows, "drop", broken)

    error = error_of(workspace.table_service().delete_table("posts"))

    assert (error.code, error.cause) == (500, "DELETE_TABLE_ERROR")


def test_trash_and_restore_table(workspace):
    workspace.table("Posts")
    service = workspace.table_service()

    trashed = unwrap(service.send_to_trash("posts"))
    assert trashed.trashed is True
    assert error_of(service.send_to_trash("posts")).cause == "ALREADY_TRASHED"
    assert error_of(service.get_table("posts")).cause == "TABLE_NOT_FOUND"

    restored = unwrap(service.remove_from_trash("posts"))
    assert restored.trashed is False
    assert error_of(service.remove_from_trash("posts")).cause == "NOT_TRASHED"


def test_restore_refused_while_namesake_is_live(workspace):
    workspace.table("Books")
    service = workspace.table_service()
    unwrap(service.send_to_trash("books"))
    workspace.table("Books")

    error = error_of(service.remove_from_trash("books"))

    assert (error.code, error.cause) == (409, "TABLE_ALREADY_EXISTS")
    assert len(workspace.tables.find_many({"slug": "books", "trashed": False})) == 1


def test_list_hides_private_tables_from_strangers(workspace):
    workspace.table("Open Board", visibility=TableVisibility.OPEN)
    workspace.table("Vault", owner="alice", visibility=TableVisibility.PRIVATE)
    service = workspace.table_service()

    stranger = unwrap(service.list_tables(Principal(sub="bob", role="REGISTERED")))
    alice = unwrap(service.list_tables(Principal(sub="alice", role="REGISTERED")))
    admin = unwrap(service.list_tables(Principal(sub="root", role="ADMINISTRATOR")))

    assert [t.slug for t in stranger["data"]] == ["open-board"]
    assert {t.slug for t in alice["data"]} == {"open-board", "vault"}
    assert admin["meta"].total == 2


def test_list_pagination_and_search(workspace):
    for name in ("Alpha", "Beta", "Gamma"):
        workspace.table(name, visibility=TableVisibility.OPEN)
    service = workspace.table_service()
    principal = Principal(sub="owner", role="REGISTERED")

    page = unwrap(service.list_tables(principal, page=2, per_page=2))
    found = unwrap(service.list_tables(principal, search="amm"))

    assert [t.slug for t in page["data"]] == ["gamma"]
    assert (page["meta"].total, page["meta"].last_page) == (3, 2)
    assert [t.slug for t in found["data"]] == ["gamma"]


def test_update_table_keeps_owner_and_checks_administrators(workspace):
    workspace.user("helper")
    workspace.user("sleepy", status=UserStatus.INACTIVE)
    workspace.table("Posts")
    service = workspace.table_service()

    error = error_of(service.update_table("posts", TableUpdate(
        configuration=TableConfigurationUpdate(administrators=["helper", "sleepy"])
    )))
    assert (error.code, error.cause) == (400, "INACTIVE_ADMINISTRATORS")

    updated = unwrap(service.update_table("posts", TableUpdate(
        name="Articles",
        configuration=TableConfigurationUpdate(administrators=["helper"], visibility=TableVisibility.OPEN),
    )))
    assert updated.slug == "articles"
    assert updated.configuration.owner == "owner"
    assert updated.configuration.administrators == ["helper"]
    assert updated.configuration.visibility == TableVisibility.OPEN


def test_visibility_reaches_field_group_tables(workspace):
    workspace.table("Posts")
    workspace.field("posts", "Comments", FieldType.FIELD_GROUP)

    unwrap(workspace.table_service().update_table("posts", TableUpdate(
        configuration=TableConfigurationUpdate(visibility=TableVisibility.PUBLIC)
    )))

    assert workspace.reload("comments").configuration.visibility == TableVisibility.PUBLIC


def test_rename_conflict(workspace):
    workspace.table("Posts")
    workspace.table("Articles")

    error = error_of(workspace.table_service().update_table("posts", TableUpdate(name="articles")))

    assert error.cause == "TABLE_ALREADY_EXISTS"


def test_slug_drops_accents_and_punctuation(workspace):
    table = workspace.table("Relatório  Anual: 2024!")

    assert table.slug == "relatorio-anual-2024"
