import main
from storage import ATTENDANCE, HOMEWORK, STUDENTS, StoreError


STUDENT = {
    "name": "Asha",
    "batch": "Morning",
    "class": "10th",
    "parentPhone": "9876543210",
    "joinDate": "2024-01-01",
}


def test_root(client):
    assert client.get("/").json() == {"message": "Tuition Tracker API is running"}


def test_student_lifecycle(client):
    created = client.post("/api/students", json=STUDENT)
    assert created.status_code == 201
    student = created.json()
    assert student["isActive"] is True
    assert student["class"] == "10th"

    updated = client.put(f"/api/students/{student['id']}", json={**STUDENT, "batch": "Evening"})
    assert updated.json()["batch"] == "Evening"
    assert client.get("/api/batches").json() == ["Evening"]

    deleted = client.delete(f"/api/students/{student['id']}")
    assert deleted.json()["status"] == "ok"
    assert client.get("/api/students").json() == []
    assert client.delete(f"/api/students/{student['id']}").status_code == 404


def test_invalid_student_rejected(client):
    response = client.post("/api/students", json={**STUDENT, "joinDate": "01/01/2024"})
    assert response.status_code == 422


def test_daily_then_rankings(client):
    s1 = client.post("/api/students", json=STUDENT).json()
    s2 = client.post("/api/students", json={**STUDENT, "name": "Ravi", "batch": "Evening"}).json()

    for day, s1_present in (("2024-01-02", True), ("2024-01-03", False)):
        response = client.post(f"/api/daily/{day}", json={"entries": [
            {"studentId": s1["id"], "present": s1_present, "homeworkDone": True},
            {"studentId": s2["id"], "present": True, "homeworkDone": True},
        ]})
        assert response.json() == {"status": "ok", "saved": 2}

    sheet = client.get("/api/daily/2024-01-03").json()
    assert [row["present"] for row in sheet] == [False, True]

    body = client.get("/api/rankings", params={"month": "2024-01", "batch": "Morning"}).json()
    [row] = body["rankings"]
    assert row["student"]["id"] == s1["id"]
    assert row["stats"]["attendanceRate"] == 50
    assert row["stats"]["totalScore"] == 70
    assert row["stats"]["rank"] == 1
    assert row["overallRank"] == 2

    everyone = client.get("/api/rankings", params={"month": "2024-01", "batch": "all"}).json()
    assert [r["student"]["name"] for r in everyone["rankings"]] == ["Ravi", "Asha"]

    months = client.get("/api/months", params={"selected": "2024-01"}).json()
    assert months["months"] == ["2024-01"]

    report = client.get(f"/api/reports/monthly/{s1['id']}", params={"month": "2024-01"}).json()
    assert "Present: 1 out of 2 days" in report["message"]


def test_bad_date_in_path(client):
    assert client.get("/api/daily/2024-1-2").status_code == 422


def test_data_management(client):
    s1 = client.post("/api/students", json=STUDENT).json()
    client.post("/api/daily/2024-01-02", json={"entries": [{"studentId": s1["id"], "present": True}]})

    assert client.get("/api/data").json()["totalAttendanceRecords"] == 1
    assert client.get("/api/data/export").json()["exportedBy"] == "Tuition Management System"

    cleared = client.delete("/api/data/months/2024-01").json()
    assert cleared == {"status": "ok", "attendanceRemoved": 1, "homeworkRemoved": 1}

    client.delete("/api/data")
    assert client.get("/api/students").json() == []


def test_seed_is_idempotent(client):
    assert client.post("/seed").json()["message"] == "Seeded demo content"
    assert client.post("/seed").json()["message"] == "Already seeded"
    assert len(client.get("/api/students").json()) == 3
    assert client.get("/api/dashboard").json()["activeStudents"] == 3


def test_store_failure_maps_to_503(client, store, monkeypatch):
    def broken(namespace):
        raise StoreError(namespace, "read_all", OSError("unreadable"))

    monkeypatch.setattr(store, "read_all", broken)

    response = client.get("/api/students")
    assert response.status_code == 503
    assert client.get("/test").json()["store"] == "local"


def test_store_diagnostics(client):
    body = client.get("/test").json()
    assert body["connection_status"] == "Connected"
    assert main.app.title == "Tuition Tracker API"


def test_impossible_dates_rejected(client):
    student = client.post("/api/students", json=STUDENT).json()

    assert client.get(f"/api/reports/monthly/{student['id']}", params={"month": "2024-13"}).status_code == 422
    assert client.get(f"/api/reports/daily/{student['id']}", params={"date": "2024-02-30"}).status_code == 422
    assert client.get("/api/rankings", params={"month": "2024-00"}).status_code == 422
    assert client.get("/api/months", params={"selected": "2024-13"}).status_code == 422
    assert client.get("/api/daily/2024-02-30").status_code == 422
    assert client.delete("/api/data/months/2024-13").status_code == 422
    assert client.post("/api/students", json={**STUDENT, "joinDate": "2023-02-29"}).status_code == 422

    response = client.post("/api/daily/2024-02-30", json={"entries": [{"studentId": student["id"], "present": True}]})
    assert response.status_code == 422
    assert client.get("/api/data").json()["totalAttendanceRecords"] == 0


def test_leap_day_accepted(client):
    student = client.post("/api/students", json=STUDENT).json()

    response = client.post("/api/daily/2024-02-29", json={"entries": [{"studentId": student["id"], "present": True}]})
    assert response.json() == {"status": "ok", "saved": 1}
    assert client.get(f"/api/reports/daily/{student['id']}", params={"date": "2024-02-29"}).status_code == 200


def test_partial_delete_maps_to_500(client, store, monkeypatch):
    student = client.post("/api/students", json=STUDENT).json()
    client.post("/api/daily/2024-01-02", json={"entries": [{"studentId": student["id"], "present": True}]})
    original = store.delete_where

    def failing(namespace, predicate):
        if namespace == HOMEWORK:
            raise StoreError(namespace, "delete_where", OSError("disk full"))
        return original(namespace, predicate)

    monkeypatch.setattr(store, "delete_where", failing)

    response = client.delete(f"/api/students/{student['id']}")

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["completed"] == [STUDENTS, ATTENDANCE]
    assert detail["failed"] == HOMEWORK
