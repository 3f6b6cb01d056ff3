from tableforge.core.entities import FieldType, TableVisibility

API = "/api/v1"


def test_health_endpoints(client):
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/ready").json() == {"status": "ready"}
    assert client.get("/").status_code == 200


def test_anonymous_reads_public_rows(client, workspace):
    workspace.table("Catalog", visibility=TableVisibility.PUBLIC)

    response = client.get(f"{API}/tables/catalog/rows")

    assert response.status_code == 200
    assert response.json()["data"] == []
    assert response.json()["meta"]["total"] == 0


def test_denials_use_error_body(client, workspace):
    workspace.table("Ledger")

    response = client.get(f"{API}/tables/ledger/rows")

    assert response.status_code == 401
    assert response.json() == {
        "message": "User not authenticated",
        "code": 401,
        "cause": "USER_NOT_AUTHENTICATED",
    }


def test_unknown_table_is_404(client, workspace):
    workspace.user("bob")
    workspace.login("bob")

    response = client.get(f"{API}/tables/ghost")

    assert response.status_code == 404
    assert response.json()["cause"] == "TABLE_NOT_FOUND"


def test_listing_tables_requires_a_token(client):
    response = client.get(f"{API}/tables")

    assert response.status_code == 401
    assert response.json()["cause"] == "AUTHENTICATION_REQUIRED"


def test_anonymous_form_submission(client, workspace):
    workspace.table("Survey", visibility=TableVisibility.FORM)
    workspace.field("survey", "Answer", required=True)

    created = client.post(f"{API}/tables/survey/rows", json={"answer": "yes"})
    invalid = client.post(f"{API}/tables/survey/rows", json={})
    listed = client.get(f"{API}/tables/survey/rows")

    assert created.status_code == 201
    assert created.json()["answer"] == "yes"
    assert created.json()["creator"] is None
    assert invalid.status_code == 400
    assert invalid.json()["cause"] == "INVALID_ROW"
    assert listed.status_code == 401


def test_owner_builds_a_table(client, workspace):
    workspace.user("owner")
    workspace.login("owner")

    created = client.post(f"{API}/tables", json={"name": "Books", "visibility": "OPEN"})
    field = client.post(f"{API}/tables/books/fields", json={"name": "Genre", "type": "CATEGORY"})
    field_id = field.json()["id"]
    option = client.post(f"{API}/tables/books/fields/{field_id}/category", json={"label": "Fiction"})
    child = client.post(
        f"{API}/tables/books/fields/{field_id}/category",
        json={"label": "Sci-Fi", "parentId": option.json()["node"]["id"]},
    )
    orphan = client.post(f"{API}/tables/books/fields/{field_id}/category", json={"label": "X", "parentId": "nope"})

    assert created.status_code == 201
    assert created.json()["configuration"]["owner"] == "owner"
    assert field.status_code == 201
    assert option.status_code == 200
    assert child.json()["node"]["parent_id"] == option.json()["node"]["id"]
    assert orphan.status_code == 404
    assert orphan.json()["cause"] == "PARENT_CATEGORY_NOT_FOUND"


def test_field_trash_route(client, workspace):
    workspace.user("owner")
    workspace.login("owner")
    workspace.table("Books")
    title = workspace.field("books", "Title")

    first = client.patch(f"{API}/tables/books/fields/{title.id}/trash")
    second = client.patch(f"{API}/tables/books/fields/{title.id}/trash")
    missing = client.patch(f"{API}/tables/books/fields/nope/trash")

    assert first.status_code == 200
    assert first.json()["trashed"] is True
    assert "title" not in client.get(f"{API}/tables/books").json()["synthesized_schema"]
    assert (second.status_code, second.json()["cause"]) == (409, "ALREADY_TRASHED")
    assert (missing.status_code, missing.json()["cause"]) == (404, "FIELD_NOT_FOUND")


def test_non_owner_cannot_manage_fields(client, workspace):
    workspace.user("bob")
    workspace.login("bob")
    workspace.table("Books", visibility=TableVisibility.OPEN)

    response = client.post(f"{API}/tables/books/fields", json={"name": "Title", "type": "TEXT_SHORT"})

    assert response.status_code == 403
    assert response.json()["cause"] == "OWNER_OR_ADMIN_REQUIRED"


def test_delete_table_route(client, workspace):
    workspace.user("owner")
    workspace.login("owner")
    workspace.table("Books")
    workspace.field("books", "Chapters", FieldType.FIELD_GROUP)

    deleted = client.delete(f"{API}/tables/books")
    again = client.delete(f"{API}/tables/books")

    assert deleted.status_code == 200
    assert workspace.reload("chapters") is None
    assert (again.status_code, again.json()["cause"]) == (404, "TABLE_NOT_FOUND")


def test_restore_route_finds_trashed_table(client, workspace):
    workspace.user("owner")
    workspace.login("owner")
    workspace.table("Books")

    assert client.patch(f"{API}/tables/books/trash").json()["trashed"] is True
    assert client.get(f"{API}/tables/books").status_code == 404
    assert client.patch(f"{API}/tables/books/restore").json()["trashed"] is False


def test_menus_need_a_platform_role(client, workspace):
    workspace.user("bob")
    workspace.user("admin")

    workspace.login("bob")
    refused = client.get(f"{API}/menus")
    workspace.login("admin", role="ADMINISTRATOR")
    created = client.post(f"{API}/menus", json={"name": "About", "type": "PAGE"})
    listed = client.get(f"{API}/menus")

    assert (refused.status_code, refused.json()["cause"]) == (403, "INSUFFICIENT_ROLE")
    assert created.status_code == 201
    assert created.json()["url"] == "/pages/about"
    assert [m["slug"] for m in listed.json()["data"]] == ["about"]


def test_me_lists_group_permissions(client, workspace):
    workspace.user("bob", permissions=[])
    workspace.login("bob")

    response = client.get(f"{API}/auth/me")

    assert response.status_code == 200
    assert response.json()["id"] == "bob"
    assert response.json()["permissions"] == []


def test_reaction_route_returns_populated_row(client, workspace):
    workspace.user("owner")
    workspace.login("owner")
    workspace.table("Posts")
    workspace.field("posts", "Likes", FieldType.REACTION)
    post = client.post(f"{API}/tables/posts/rows", json={}).json()

    liked = client.post(f"{API}/tables/posts/rows/{post['_id']}/reaction", json={"type": "LIKE", "field": "likes"})
    invalid = client.post(f"{API}/tables/posts/rows/{post['_id']}/reaction", json={"type": "LOVE", "field": "likes"})

    assert liked.status_code == 200
    assert [(r["user"], r["type"]) for r in liked.json()["likes"]] == [("owner", "LIKE")]
    assert invalid.status_code == 422


def test_restore_conflicts_with_live_namesake(client, workspace):
    workspace.user("owner")
    workspace.login("owner")
    workspace.table("Books")
    workspace.table_service().send_to_trash("books")
    workspace.table("Books")

    response = client.patch(f"{API}/tables/books/restore")

    assert response.status_code == 409
    assert response.json()["cause"] == "TABLE_ALREADY_EXISTS"
