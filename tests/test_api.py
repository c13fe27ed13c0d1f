import pytest

from timesheet_costing.container import wire_services
from timesheet_costing.main import create_app


@pytest.fixture
def container(users_repo, projects_repo, timesheets_repo, overtime_repo):
    return wire_services(
        users_repo=users_repo,
        projects_repo=projects_repo,
        timesheets_repo=timesheets_repo,
        overtime_repo=overtime_repo,
    )


@pytest.fixture
def client(container, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container)
    app.config["TESTING"] = True
    return app.test_client()


def login(client, user_id, role):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role


def _new_timesheet(client, **overrides):
    payload = {
        "projectId": 7,
        "month": 3,
        "year": 2024,
        "disciplineCodes": ["civ"],
        "entries": [{"date": "2024-03-01", "normalHours": 8}],
    }
    payload.update(overrides)
    return client.post("/api/timesheets", json=payload)


def test_requires_login(client):
    resp = client.get("/api/timesheets")
    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "message": "Authentication required"}


def test_create_and_duplicate_timesheet(client):
    login(client, 2, "employee")

    resp = _new_timesheet(client)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["timesheet"]["status"] == "draft"
    assert body["timesheet"]["disciplineCodes"] == ["CIV"]
    assert body["timesheet"]["totalHours"] == 8

    dup = _new_timesheet(client)
    assert dup.status_code == 409
    assert dup.get_json()["message"] == "Timesheet already exists for this project and period"


def test_validation_errors_are_400(client):
    login(client, 2, "employee")
    resp = _new_timesheet(client, disciplineCodes=[])
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Discipline code is required"

    resp = _new_timesheet(client, projectId="abc")
    assert resp.status_code == 400


def test_ot_without_approval_is_400(client):
    login(client, 2, "employee")
    resp = _new_timesheet(client, entries=[{"date": "2024-03-15", "normalHours": 8, "otHours": 2}])
    assert resp.status_code == 400
    assert "No approved overtime request for 2024-03-15" in resp.get_json()["message"]


def test_review_endpoints_need_manager(client):
    login(client, 2, "employee")
    tid = _new_timesheet(client).get_json()["timesheet"]["id"]

    assert client.patch(f"/api/timesheets/{tid}/approve").status_code == 403

    login(client, 10, "manager")
    resp = client.patch(f"/api/timesheets/{tid}/approve")
    assert resp.status_code == 400
    assert "must be submitted" in resp.get_json()["message"]


def test_submit_review_roundtrip(client):
    login(client, 2, "employee")
    tid = _new_timesheet(client).get_json()["timesheet"]["id"]
    assert client.patch(f"/api/timesheets/{tid}/submit").get_json()["timesheet"]["status"] == "submitted"

    login(client, 10, "manager")
    resp = client.patch(f"/api/timesheets/{tid}/reject", json={"rejectionReason": "Missing day 2"})
    assert resp.get_json()["timesheet"]["rejectionReason"] == "Missing day 2"

    login(client, 2, "employee")
    resp = client.put(
        f"/api/timesheets/{tid}",
        json={"entries": [{"date": "2024-03-01", "normalHours": 8}, {"date": "2024-03-02", "normalHours": 4}]},
    )
    assert resp.status_code == 200
    assert resp.get_json()["timesheet"]["status"] == "draft"

    resp = client.patch(f"/api/timesheets/{tid}/submit")
    assert resp.get_json()["timesheet"]["status"] == "resubmitted"
    assert resp.get_json()["timesheet"]["resubmissionCount"] == 1

    login(client, 10, "manager")
    pending = client.get("/api/timesheets/pending").get_json()
    assert pending["count"] == 1
    assert client.patch(f"/api/timesheets/{tid}/approve").get_json()["timesheet"]["status"] == "approved"

    login(client, 2, "employee")
    resp = client.delete(f"/api/timesheets/{tid}")
    assert resp.status_code == 400


def test_missing_timesheet_is_404(client):
    login(client, 2, "employee")
    resp = client.get("/api/timesheets/999")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_unknown_status_filter(client):
    login(client, 10, "manager")
    assert client.get("/api/timesheets?status=archived").status_code == 400
    assert client.get("/api/timesheets?month=x").status_code == 400


def test_overtime_flow(client):
    login(client, 2, "employee")
    resp = client.post(
        "/api/overtime-requests",
        json={"projectId": 7, "date": "2024-03-15", "requestedHours": 3, "reason": "Crane window"},
    )
    assert resp.status_code == 201
    rid = resp.get_json()["request"]["id"]

    dup = client.post(
        "/api/overtime-requests",
        json={
            "projectId": 7,
            "weekStartDate": "2024-03-12",
            "dailyHours": [{"date": "2024-03-15", "hours": 1}],
            "reason": "Again",
        },
    )
    assert dup.status_code == 409

    assert client.get("/api/overtime-requests").status_code == 403
    assert client.get("/api/overtime-requests/my-requests").get_json()["count"] == 1

    login(client, 10, "manager")
    resp = client.put(f"/api/overtime-requests/{rid}/approve")
    assert resp.get_json()["request"]["status"] == "approved"
    assert client.get("/api/overtime-requests?status=approved").get_json()["count"] == 1

    login(client, 2, "employee")
    check = client.post(
        "/api/overtime-requests/validate",
        json={"projectId": 7, "date": "2024-03-15", "hours": 4, "timesheetType": "ot"},
    ).get_json()
    assert check["valid"] is False

    resp = _new_timesheet(client, entries=[{"date": "2024-03-15", "normalHours": 8, "otHours": 2}])
    assert resp.status_code == 201
    assert resp.get_json()["timesheet"]["totalOTHours"] == 2

    assert client.delete(f"/api/overtime-requests/{rid}").status_code == 400


def test_costing_endpoints(client):
    login(client, 2, "employee")
    tid = _new_timesheet(client).get_json()["timesheet"]["id"]
    client.patch(f"/api/timesheets/{tid}/submit")

    assert client.get("/api/costing/project/7").status_code == 403

    login(client, 10, "manager")
    client.patch(f"/api/timesheets/{tid}/approve")

    resp = client.get("/api/costing/project/7?month=3&year=2024")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["summary"]["totalCost"] == 320
    assert data["disciplineCosts"][0]["disciplineCode"] == "CIV"

    assert client.get("/api/costing/project/abc").status_code == 400
    assert client.get("/api/costing/project/404").status_code == 404

    summary = client.get("/api/costing/summary").get_json()
    assert summary["summary"]["grandTotalCost"] == 320


def test_timesheets_by_user_and_by_project(client):
    login(client, 3, "employee")
    assert _new_timesheet(client).status_code == 201
    login(client, 2, "employee")
    assert _new_timesheet(client).status_code == 201
    assert _new_timesheet(client, projectId=8).status_code == 201

    mine = client.get("/api/timesheets/user/2").get_json()
    assert mine["success"] is True
    assert mine["count"] == 2
    assert {t["userId"] for t in mine["timesheets"]} == {2}

    assert client.get("/api/timesheets/user/3").status_code == 403

    own_on_project = client.get("/api/timesheets/project/7").get_json()
    assert [t["userId"] for t in own_on_project["timesheets"]] == [2]

    login(client, 10, "manager")
    everyone = client.get("/api/timesheets/project/7").get_json()
    assert everyone["count"] == 2
    assert sorted(t["userId"] for t in everyone["timesheets"]) == [2, 3]
    assert client.get("/api/timesheets/user/3").get_json()["count"] == 1


def test_unexpected_errors_are_500(client, container, monkeypatch):
    def boom(**kwargs):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(container.timesheet_service, "list_timesheets", boom)
    login(client, 2, "employee")

    resp = client.get("/api/timesheets")
    assert resp.status_code == 500
    assert resp.get_json()["message"] == "Service temporarily unavailable"
