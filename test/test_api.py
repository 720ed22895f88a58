import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text

SUCCESS = 200
FAILURE = 500


def data_of(response):
    assert response.status_code == 200
    body = response.json()
    assert body["code"] == SUCCESS, body["message"]
    assert body["message"] == "success"
    return body["data"]


def error_of(response, status_code=200):
    assert response.status_code == status_code
    body = response.json()
    assert body["code"] == FAILURE
    assert body["data"] is None
    return body["message"]


# ===== list / page / get =====


def test_list_filters_translates_and_orders(client):
    rows = data_of(client.get("/users/list", params={"userName_like": "Al%", "orderBy": "userAge"}))
    assert [(r["userName"], r["userAge"]) for r in rows] == [("Albert", 25), ("Alice", 31)]
    assert "name" not in rows[0]


def test_list_is_unpaginated(client):
    rows = data_of(client.get("/users/list", params={"pageSize": "1"}))
    assert len(rows) == 4


def test_list_with_set_and_descending_order(client):
    rows = data_of(client.get("/users/list", params={"id_in": "1,3", "orderByDesc": "id"}))
    assert [r["id"] for r in rows] == [3, 1]


def test_list_with_boolean_filter(client):
    rows = data_of(client.get("/users/list", params={"active_eq": "false"}))
    assert [r["userName"] for r in rows] == ["Albert"]


def test_list_with_timestamp_range(client):
    params = {"created_at_between": "2024-02-01,2024-04-01", "orderBy": "id"}
    rows = data_of(client.get("/users/list", params=params))
    assert [r["userName"] for r in rows] == ["Albert", "Bob"]


def test_malformed_condition_is_dropped(client):
    rows = data_of(client.get("/users/list", params={"userAge_gt": "old", "utm_source": "mail"}))
    assert len(rows) == 4


def test_strict_mode_rejects_malformed_condition(app_factory):
    with TestClient(app_factory(gate={"strict_conditions": True})) as strict_client:
        message = error_of(strict_client.get("/users/list", params={"userAge_gt": "old"}))
    assert "userAge_gt" in message


def test_page_envelope(client):
    page = data_of(client.get("/users/page", params={"page": "2", "pageSize": "3", "orderBy": "id"}))
    assert page["page"] == 2
    assert page["pageSize"] == 3
    assert page["total"] == 4
    assert [r["id"] for r in page["list"]] == [4]


def test_page_total_ignores_pagination(client):
    page = data_of(client.get("/users/page", params={"userAge_ge": "25", "pageSize": "1", "page": "0"}))
    assert page["page"] == 1
    assert page["total"] == 3
    assert len(page["list"]) == 1


def test_oversized_page_size_is_capped(client):
    page = data_of(client.get("/users/page", params={"pageSize": "99999999999999999999"}))
    assert page["pageSize"] == 2**31 - 1
    assert page["total"] == 4
    assert len(page["list"]) == 4

    page = data_of(client.get("/users/page", params={"page": "99999999999999999999", "pageSize": "2"}))
    assert page["page"] == 2**31 - 1
    assert page["list"] == []


def test_malformed_page_fails_request(client):
    message = error_of(client.get("/users/page", params={"page": "two"}))
    assert "page" in message


def test_get_returns_first_match(client):
    row = data_of(client.get("/users/get", params={"id_eq": "2"}))
    assert row["userName"] == "Albert"
    assert row["created_at"] == "2024-02-01T12:30:00"


def test_binary_column_is_returned_as_base64(client, db_file):
    engine = create_engine(f"sqlite:///{db_file}")
    with engine.begin() as conn:
        conn.execute(text("UPDATE users SET avatar = :avatar WHERE id = 1"), {"avatar": b"\xff\xfe\x00"})
    engine.dispose()

    assert data_of(client.get("/users/get", params={"id": "1"}))["avatar"] == "//4A"
    rows = data_of(client.get("/users/list", params={"id_in": "1,2", "orderBy": "id"}))
    assert [r["avatar"] for r in rows] == ["//4A", None]


def test_get_without_match_is_an_empty_object(client):
    assert data_of(client.get("/users/get", params={"id": "99"})) == {}


def test_projection_fields(app_factory):
    app = app_factory(list_fields=["id", "name"], detail_fields=["id", "age"])
    with TestClient(app) as projected:
        rows = data_of(projected.get("/users/list", params={"orderBy": "id"}))
        row = data_of(projected.get("/users/get", params={"id": "1"}))
    assert rows[0] == {"id": 1, "userName": "Alice"}
    assert row == {"id": 1, "userAge": 31}


# ===== save =====


def test_save_with_zero_id_inserts(client):
    row = data_of(client.post("/users/save", json={"id": 0, "userName": "X", "userAge": "33", "avatar": "abc"}))
    assert row["id"] == 5
    assert row["userName"] == "X"
    assert row["userAge"] == 33
    assert row["avatar"] == "YWJj"
    assert row["created_at"] is not None
    assert row["updated_at"] is not None


def test_save_with_id_updates_and_rereads(client):
    row = data_of(client.post("/users/save", json={"id": 2, "userAge": 26}))
    assert row["userName"] == "Albert"
    assert row["userAge"] == 26
    assert row["created_at"] == "2024-02-01T12:30:00"
    assert row["updated_at"] is not None

    assert data_of(client.get("/users/get", params={"id": "2"}))["userAge"] == 26


def test_save_update_of_missing_row_returns_empty_object(client):
    assert data_of(client.post("/users/save", json={"id": 99, "userName": "ghost"})) == {}


def test_save_keeps_usable_timestamp(client):
    row = data_of(client.post("/users/save", json={"userName": "Y", "created_at": "2023-05-06 07:08:09"}))
    assert row["created_at"] == "2023-05-06T07:08:09"


def test_save_replaces_unparsable_timestamp(client):
    row = data_of(client.post("/users/save", json={"userName": "Z", "created_at": "soon"}))
    assert row["created_at"] not in (None, "soon")


def test_save_rejects_bad_value(client):
    message = error_of(client.post("/users/save", json={"userName": "Q", "userAge": "old"}))
    assert "userAge" in message


def test_save_requires_object_body(client):
    error_of(client.post("/users/save", content=b"[1, 2]", headers={"content-type": "application/json"}))
    error_of(client.post("/users/save", content=b"{broken", headers={"content-type": "application/json"}))
    error_of(client.post("/users/save"))


def test_save_without_primary_key_is_a_schema_error(client):
    message = error_of(client.post("/tags/save", json={"label": "blue"}))
    assert "primary key" in message


# ===== delete =====


def test_batch_delete_echoes_requested_ids(client):
    data = data_of(client.post("/users/delete", json={"ids": [1, 2, 99]}))
    assert data == {"deleted_count": 2, "ids": [1, 2, 99]}
    assert len(data_of(client.get("/users/list"))) == 2


def test_delete_by_conditions(client):
    data = data_of(client.delete("/users/delete", params={"userAge_lt": "20"}))
    assert data == {"deleted_count": 1}
    assert data_of(client.get("/users/get", params={"userName": "Bob"})) == {}


def test_delete_without_match_is_success(client):
    assert data_of(client.post("/users/delete", params={"id_eq": "99"})) == {"deleted_count": 0}


def test_delete_requires_conditions(client):
    error_of(client.delete("/users/delete"))
    assert len(data_of(client.get("/users/list"))) == 4


# ===== table / metadata =====


def test_table_describes_the_catalog(client):
    info = data_of(client.get("/users/table"))
    assert info["table"] == "users"
    assert info["primary_keys"] == ["id"]
    columns = {c["name"]: c for c in info["columns"]}
    assert columns["id"]["primary_key"] is True
    assert columns["id"]["auto_increment"] is True
    assert columns["name"]["field"] == "userName"
    assert columns["age"]["type"] == "int32"
    assert columns["created_at"]["type"] == "timestamp"


def test_metadata_lists_configured_tables(client):
    tables = data_of(client.get("/dt/tables"))
    by_prefix = {t["prefix"]: t for t in tables}
    assert set(by_prefix) == {"/users", "/tags"}
    assert by_prefix["/tags"]["operations"] == ["list", "save"]
    assert by_prefix["/users"]["field_map"] == {"userName": "name", "userAge": "age"}


# ===== routing =====


@pytest.mark.parametrize("path", ["/users/unknown", "/nowhere/list", "/users", "/users/list/extra"])
def test_unknown_paths_are_404(client, path):
    error_of(client.get(path), status_code=404)


def test_disabled_operation_is_404(client):
    error_of(client.get("/tags/get"), status_code=404)


@pytest.mark.parametrize(
    "method, path",
    [("GET", "/users/save"), ("POST", "/users/list"), ("GET", "/users/delete"), ("PUT", "/users/get")],
)
def test_wrong_verb_is_405(client, method, path):
    error_of(client.request(method, path), status_code=405)


def test_route_prefix(app_factory):
    with TestClient(app_factory(gate={"route_prefix": "/api"})) as prefixed:
        assert len(data_of(prefixed.get("/api/users/list"))) == 4
        assert data_of(prefixed.get("/api/dt/tables"))
        assert prefixed.get("/users/list").status_code == 404
