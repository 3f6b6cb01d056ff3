import pytest

from tableforge.core.entities import EntityRef, FieldType, RelationshipConfig
from tableforge.core.exceptions import error_of, unwrap
from tableforge.modules.rows.schemas import RowEvaluation, RowReaction
from tableforge.modules.rows.service import RowService


@pytest.fixture
def books(workspace):
    workspace.user("owner")
    workspace.table("Books")
    workspace.field("books", "Title", required=True)
    workspace.field("books", "Genre", FieldType.DROPDOWN, dropdown=["sf", "drama"])
    workspace.field("books", "Published", FieldType.DATE)
    return RowService(workspace.tables, workspace.rows, workspace.users)


def test_create_row_is_populated(books):
    row = unwrap(books.create_row("books", {"title": "Dune", "genre": "sf"}, creator="owner"))

    assert row["title"] == "Dune"
    assert row["trashed"] is False
    assert row["creator"]["id"] == "owner"


def test_invalid_row_lists_columns(books):
    error = error_of(books.create_row("books", {"published": "someday"}))

    assert (error.code, error.cause) == (400, "INVALID_ROW")
    assert "title" in error.message
    assert "published" in error.message


def test_list_rows_filters_and_paginates(books):
    for title, genre, published in [
        ("Dune", "sf", "2024-01-10"),
        ("Hamlet", "drama", "2024-02-10"),
        ("Foundation", "sf", "2024-03-10"),
    ]:
        unwrap(books.create_row("books", {"title": title, "genre": genre, "published": published}))

    by_genre = unwrap(books.list_rows("books", {"genre": "sf", "order-title": "asc"}))
    by_date = unwrap(books.list_rows("books", {"published-initial": "2024-02-01", "published-final": "2024-02-28"}))
    searched = unwrap(books.list_rows("books", {"search": "HAM"}))
    paged = unwrap(books.list_rows("books", {"page": "2", "per_page": "2"}))

    assert [r["title"] for r in by_genre["data"]] == ["Dune", "Foundation"]
    assert by_genre["meta"].total == 2
    assert [r["title"] for r in by_date["data"]] == ["Hamlet"]
    assert [r["title"] for r in searched["data"]] == ["Hamlet"]
    assert len(paged["data"]) == 1
    assert (paged["meta"].page, paged["meta"].last_page) == (2, 2)


def test_show_update_and_trash_row(books):
    row = unwrap(books.create_row("books", {"title": "Dune"}))

    assert unwrap(books.get_row("books", row["_id"]))["title"] == "Dune"
    assert unwrap(books.update_row("books", row["_id"], {"genre": "sf"}))["genre"] == "sf"
    assert error_of(books.update_row("books", row["_id"], {"title": ""})).cause == "INVALID_ROW"

    trashed = unwrap(books.set_trashed("books", row["_id"], True))
    assert trashed["trashed"] is True
    assert error_of(books.set_trashed("books", row["_id"], True)).cause == "ALREADY_TRASHED"
    assert unwrap(books.list_rows("books", {}))["meta"].total == 0
    assert unwrap(books.list_rows("books", {"trashed": "true"}))["meta"].total == 1

    restored = unwrap(books.set_trashed("books", row["_id"], False))
    assert restored["trashed"] is False
    assert error_of(books.set_trashed("books", row["_id"], False)).cause == "NOT_TRASHED"


def test_missing_row_and_table(books):
    assert error_of(books.get_row("books", "nope")).cause == "ROW_NOT_FOUND"
    assert error_of(books.update_row("books", "nope", {})).cause == "ROW_NOT_FOUND"
    assert error_of(books.create_row("ghost", {})).cause == "TABLE_NOT_FOUND"


def test_field_group_table_has_no_rows(workspace, books):
    workspace.field("books", "Chapters", FieldType.FIELD_GROUP)

    error = error_of(books.create_row("chapters", {}))

    assert (error.code, error.cause) == (400, "INVALID_TABLE_TYPE")


def test_embedded_group_rows(workspace, books):
    workspace.field("books", "Chapters", FieldType.FIELD_GROUP)
    workspace.field("chapters", "Heading", required=True)

    row = unwrap(books.create_row("books", {
        "title": "Dune",
        "chapters": [{"_id": "x", "heading": "Part one"}],
    }))
    bad = error_of(books.create_row("books", {"title": "Dune", "chapters": [{}]}))

    assert row["chapters"] == [{"heading": "Part one"}]
    assert bad.cause == "INVALID_ROW"


def test_relationship_values_are_expanded(workspace, books):
    authors = workspace.table("Authors")
    name = workspace.field("authors", "Name")
    relationship = RelationshipConfig(table=EntityRef(id=authors.id), field=EntityRef(id=name.id))
    workspace.field("books", "Author", FieldType.RELATIONSHIP, relationship=relationship)
    author = unwrap(books.create_row("authors", {"name": "Frank Herbert"}))

    book = unwrap(books.create_row("books", {"title": "Dune", "author": author["_id"]}))
    listed = unwrap(books.list_rows("books", {"author": author["_id"]}))

    assert book["author"]["name"] == "Frank Herbert"
    assert [r["author"]["_id"] for r in listed["data"]] == [author["_id"]]


def test_unresolved_file_id_is_returned_as_is(workspace, books):
    workspace.field("books", "Attachment", FieldType.FILE)

    row = unwrap(books.create_row("books", {"title": "Dune", "attachment": "file-123"}))
    shown = unwrap(books.get_row("books", row["_id"]))

    assert row["attachment"] == "file-123"
    assert shown["attachment"] == "file-123"


@pytest.fixture
def rated(workspace, books):
    workspace.user("reader")
    workspace.field("books", "Likes", FieldType.REACTION)
    workspace.field("books", "Score", FieldType.EVALUATION)
    return unwrap(books.create_row("books", {"title": "Dune"}))


def test_reaction_is_upserted_per_user(books, rated):
    first = unwrap(books.react("books", rated["_id"], RowReaction(type="LIKE", field="likes"), "reader"))
    second = unwrap(books.react("books", rated["_id"], RowReaction(type="UNLIKE", field="likes"), "reader"))
    other = unwrap(books.react("books", rated["_id"], RowReaction(type="LIKE", field="likes"), "owner"))

    assert [r["type"] for r in first["likes"]] == ["LIKE"]
    assert [r["type"] for r in second["likes"]] == ["UNLIKE"]
    assert second["likes"][0]["_id"] == first["likes"][0]["_id"]
    assert [(r["user"], r["type"]) for r in other["likes"]] == [("reader", "UNLIKE"), ("owner", "LIKE")]


def test_evaluation_is_upserted_per_user(books, rated):
    unwrap(books.evaluate("books", rated["_id"], RowEvaluation(value=3, field="score"), "reader"))
    row = unwrap(books.evaluate("books", rated["_id"], RowEvaluation(value=5, field="score"), "reader"))

    assert [e["value"] for e in row["score"]] == [5]
    assert unwrap(books.get_row("books", rated["_id"]))["score"][0]["user"] == "reader"


def test_vote_rejections(books, rated):
    like = RowReaction(type="LIKE", field="likes")

    assert error_of(books.react("books", rated["_id"], like, None)).cause == "AUTHENTICATION_REQUIRED"
    assert error_of(books.react("books", "nope", like, "reader")).cause == "ROW_NOT_FOUND"
    assert error_of(books.react("books", rated["_id"], RowReaction(type="LIKE", field="ghost"), "reader")).cause \
        == "FIELD_NOT_FOUND"
    wrong = error_of(books.evaluate("books", rated["_id"], RowEvaluation(value=1, field="likes"), "reader"))
    assert (wrong.code, wrong.cause) == (400, "INVALID_FIELD_TYPE")


def test_vote_failure_cause(workspace, books, rated, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(workspace.rows, "insert", broken)

    error = error_of(books.evaluate("books", rated["_id"], RowEvaluation(value=1, field="score"), "reader"))

    assert (error.code, error.cause) == (500, "EVALUATION_ROW_ERROR")
