from fastapi.testclient import TestClient

from conftest import education_body, make_account
from portfolio_api.db import connect
from portfolio_api.resources import education as records


def _create(client: TestClient, admin, **overrides) -> dict:
    response = client.post("/api/education", json=education_body(**overrides), headers=admin["headers"])
    assert response.status_code == 201, response.json()
    return response.json()["data"]["education"]


def test_public_list_filters_type_and_sorts(client: TestClient, admin) -> None:
    a = _create(client, admin, startDate="2015-09-01", endDate="2019-06-30", sortOrder=2)
    b = _create(client, admin, startDate="2019-09-01", endDate="2021-06-30", sortOrder=5)
    c = _create(client, admin, startDate="2019-09-01", endDate="2021-06-30", sortOrder=1)
    hidden = _create(client, admin, startDate="2022-01-01", endDate="2022-06-30", isVisible=False)
    _create(client, admin, type="course", startDate="2023-01-01", endDate="2023-02-01")

    response = client.get("/api/education?type=formal&sortBy=startDate&sortOrder=desc")

    assert response.status_code == 200
    items = response.json()["data"]["education"]
    assert [e["id"] for e in items] == [c["id"], b["id"], a["id"]]
    assert hidden["id"] not in [e["id"] for e in items]
    assert all(e["type"] == "formal" and e["isVisible"] for e in items)


def test_admin_sees_hidden_records(client: TestClient, admin, member) -> None:
    hidden = _create(client, admin, isVisible=False)

    assert client.get(f"/api/education/{hidden['id']}").status_code == 404
    assert client.get(f"/api/education/{hidden['id']}", headers=member["headers"]).status_code == 404
    assert client.get(f"/api/education/{hidden['id']}", headers=admin["headers"]).status_code == 200

    public_ids = [e["id"] for e in client.get("/api/education").json()["data"]["education"]]
    admin_ids = [e["id"] for e in client.get("/api/education", headers=admin["headers"]).json()["data"]["education"]]
    assert hidden["id"] not in public_ids
    assert hidden["id"] in admin_ids


def test_visibility_toggle_twice_restores(client: TestClient, admin) -> None:
    record = _create(client, admin)

    first = client.put(f"/api/education/{record['id']}/visibility", headers=admin["headers"])
    second = client.put(f"/api/education/{record['id']}/visibility", headers=admin["headers"])

    assert first.json()["data"]["education"]["isVisible"] is False
    assert second.json()["data"]["education"]["isVisible"] is True
    assert client.put("/api/education/999/visibility", headers=admin["headers"]).status_code == 404


def test_create_requires_admin_and_leaves_store_untouched(client: TestClient, cfg, member) -> None:
    assert client.post("/api/education", json=education_body()).status_code == 401
    assert client.post("/api/education", json=education_body(), headers=member["headers"]).status_code == 403

    with connect(cfg.DB_DSN) as conn:
        assert conn.execute("SELECT COUNT(*) AS n FROM education").fetchone()["n"] == 0


def test_created_record_shape(client: TestClient, admin) -> None:
    record = _create(
        client,
        admin,
        achievements=["Dean's list"],
        skills=["Algorithms"],
        location={"city": "Pune", "country": "India"},
        cgpa=8.7,
    )

    assert record["fieldOfStudy"] == "Computer Science"
    assert record["achievements"] == ["Dean's list"]
    assert record["location"] == {"city": "Pune", "country": "India"}
    assert record["cgpa"] == 8.7
    assert record["duration"] == "3 years 10 months"
    assert record["createdBy"]["id"] == admin["user"]["id"]


def test_currently_studying_with_end_date_is_rejected(client: TestClient, admin) -> None:
    response = client.post(
        "/api/education",
        json=education_body(isCurrentlyStudying=True),
        headers=admin["headers"],
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "endDate"


def test_end_date_before_start_is_rejected(client: TestClient, admin) -> None:
    response = client.post(
        "/api/education",
        json=education_body(startDate="2020-01-01", endDate="2019-01-01"),
        headers=admin["headers"],
    )

    assert response.status_code == 400
    assert response.json()["errors"] == [{"field": "endDate", "message": "End date cannot be before start date"}]


def test_setting_currently_studying_clears_end_date(client: TestClient, admin) -> None:
    record = _create(client, admin)

    updated = client.put(
        f"/api/education/{record['id']}",
        json={"isCurrentlyStudying": True},
        headers=admin["headers"],
    ).json()["data"]["education"]

    assert updated["isCurrentlyStudying"] is True
    assert updated["endDate"] is None

    conflict = client.put(
        f"/api/education/{record['id']}",
        json={"endDate": "2024-01-01"},
        headers=admin["headers"],
    )
    assert conflict.status_code == 400
    assert conflict.json()["errors"][0]["field"] == "endDate"


def test_owner_may_update_but_others_may_not(client: TestClient, cfg, member) -> None:
    with connect(cfg.DB_DSN) as conn:
        record = records.create_education(conn, education_body(), created_by=int(member["user"]["id"]))
    stranger = make_account(cfg, email="stranger@example.com")

    denied = client.put(f"/api/education/{record['id']}", json={"grade": "A"}, headers=stranger["headers"])
    assert denied.status_code == 403
    assert denied.json()["message"] == "Insufficient permissions"

    allowed = client.put(f"/api/education/{record['id']}", json={"grade": "A"}, headers=member["headers"])
    assert allowed.status_code == 200
    assert allowed.json()["data"]["education"]["grade"] == "A"


def test_admin_all_filters_visibility(client: TestClient, admin, member) -> None:
    shown = _create(client, admin)
    hidden = _create(client, admin, isVisible=False)

    assert client.get("/api/education/admin/all", headers=member["headers"]).status_code == 403

    data = client.get("/api/education/admin/all?isVisible=false", headers=admin["headers"]).json()["data"]
    assert [e["id"] for e in data["education"]] == [hidden["id"]]

    everything = client.get("/api/education/admin/all", headers=admin["headers"]).json()["data"]
    assert {e["id"] for e in everything["education"]} == {shown["id"], hidden["id"]}


def test_delete_education(client: TestClient, admin) -> None:
    record = _create(client, admin)

    assert client.delete(f"/api/education/{record['id']}", headers=admin["headers"]).status_code == 200
    assert client.delete(f"/api/education/{record['id']}", headers=admin["headers"]).status_code == 404


def test_owner_cannot_change_visibility_through_update(client: TestClient, cfg, member) -> None:
    with connect(cfg.DB_DSN) as conn:
        record = records.create_education(conn, education_body(), created_by=int(member["user"]["id"]))

    response = client.put(f"/api/education/{record['id']}", json={"isVisible": False}, headers=member["headers"])

    assert response.status_code == 403
    with connect(cfg.DB_DSN) as conn:
        assert records.get_education(conn, record["id"], include_hidden=True)["isVisible"] is True


def test_sorting_by_end_date_places_ongoing_entries_last(client: TestClient, admin) -> None:
    ongoing = _create(client, admin, startDate="2023-09-01", endDate=None, isCurrentlyStudying=True)
    earlier = _create(client, admin, startDate="2015-09-01", endDate="2019-06-30")
    later = _create(client, admin, startDate="2019-09-01", endDate="2021-06-30")

    ascending = client.get("/api/education?sortBy=endDate&sortOrder=asc").json()["data"]["education"]
    descending = client.get("/api/education?sortBy=endDate&sortOrder=desc").json()["data"]["education"]

    assert [e["id"] for e in ascending] == [earlier["id"], later["id"], ongoing["id"]]
    assert [e["id"] for e in descending] == [ongoing["id"], later["id"], earlier["id"]]


def test_id_beyond_storable_range_is_rejected(client: TestClient, admin) -> None:
    response = client.get("/api/education/99999999999999999999", headers=admin["headers"])

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "education_id"
    assert client.put("/api/education/0/visibility", headers=admin["headers"]).status_code == 400
