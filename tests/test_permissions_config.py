from tableforge.config.permissions_config import get_permission_matrix
from tableforge.core.entities import TablePermission


def test_matrix_covers_every_table_permission():
    matrix = get_permission_matrix()

    assert {p["slug"] for p in matrix["permissions"]} == {p.value for p in TablePermission}


def test_registered_group_cannot_create_tables():
    groups = {g["slug"]: set(g["permissions"]) for g in get_permission_matrix()["groups"]}
    everything = {p.value for p in TablePermission}

    assert set(groups) == {"MASTER", "ADMINISTRATOR", "MANAGER", "REGISTERED"}
    assert groups["MANAGER"] == everything
    assert groups["REGISTERED"] == everything - {"CREATE_TABLE"}
