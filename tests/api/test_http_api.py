from __future__ import annotations

import pytest


def test_health_is_public(client):
    res = client.get("/api/health")
    body = res.get_json()
    assert res.status_code == 200
    assert body["success"] is True
    assert body["data"]["status"] == "OK"
    assert body["data"]["environment"] == "testing"


def test_unknown_endpoint_uses_envelope(client):
    res = client.get("/api/nowhere")
    assert res.status_code == 404
    assert res.get_json() == {"success": False, "message": "API endpoint not found"}


def test_wrong_method_is_405(client):
    res = client.patch("/api/health")
    assert res.status_code == 405
    assert res.get_json()["success"] is False


def test_protected_route_without_token(client):
    res = client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.get_json()["message"] == "Access denied. No token provided."


def test_login_then_me(client, people):
    res = client.post("/api/auth/login", json={"email": "john.doe@college.edu", "password": "secret123"})
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["user"]["rollNumber"] == "CS2021001"
    assert "password" not in data["user"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.get_json()["data"]["user"]["email"] == "john.doe@college.edu"


def test_login_bad_password(client, people):
    res = client.post("/api/auth/login", json={"email": "john.doe@college.edu", "password": "wrong-one"})
    assert res.status_code == 401
    assert res.get_json()["message"] == "Invalid email or password"


def test_register_camel_case_fields(client):
    res = client.post(
        "/api/auth/register",
        json={
            "name": "Charlie Brown",
            "email": "charlie.brown@college.edu",
            "password": "student123",
            "role": "student",
            "branch": "Electrical",
            "semester": 6,
            "rollNumber": "EC2021001",
        },
    )
    assert res.status_code == 201
    user = res.get_json()["data"]["user"]
    assert user["rollNumber"] == "EC2021001"
    assert "employeeId" not in user


def test_register_duplicate_email_is_400(client, people):
    res = client.post(
        "/api/auth/register",
        json={"name": "X", "email": "admin@college.edu", "password": "secret123", "role": "teacher",
              "employeeId": "T777", "department": "Physics"},
    )
    assert res.status_code == 400
    assert res.get_json()["success"] is False


def test_users_list_forbidden_for_teacher(client, people, auth_header):
    res = client.get("/api/users", headers=auth_header(people.teacher))
    assert res.status_code == 403
    assert "Required role" in res.get_json()["message"]


def test_users_list_for_admin_has_count(client, people, auth_header):
    res = client.get("/api/users?role=student&branch=Computer%20Science", headers=auth_header(people.admin))
    body = res.get_json()
    assert res.status_code == 200
    assert body["count"] == 2
    assert {u["name"] for u in body["data"]} == {"John Doe", "Jane Smith"}


def test_users_overview(client, people, auth_header):
    res = client.get("/api/users/stats/overview", headers=auth_header(people.admin))
    assert res.get_json()["data"]["totalUsers"] == 6


def test_admin_self_delete_is_400(client, people, auth_header):
    res = client.delete(f"/api/users/{people.admin.user_id}", headers=auth_header(people.admin))
    assert res.status_code == 400
    assert res.get_json()["message"] == "You cannot delete your own account"


def test_deleted_user_token_stops_working(client, people, auth_header):
    student_headers = auth_header(people.student)
    res = client.delete(f"/api/users/{people.student.user_id}", headers=auth_header(people.admin))
    assert res.status_code == 200

    assert client.get("/api/auth/me", headers=student_headers).status_code == 401


def test_profile_update(client, people, auth_header):
    res = client.put("/api/auth/profile", json={"name": "John D."}, headers=auth_header(people.student))
    assert res.status_code == 200
    assert res.get_json()["data"]["user"]["name"] == "John D."


def test_timetable_flow(client, people, auth_header):
    teacher = auth_header(people.teacher)
    payload = {
        "subject": "Data Structures",
        "teacher": people.teacher.user_id,
        "time": "09:00 - 10:00",
        "room": "CS-101",
        "branch": "Computer Science",
        "semester": 6,
        "day": "Monday",
        "type": "lab",
    }
    created = client.post("/api/timetable", json=payload, headers=teacher)
    assert created.status_code == 201
    entry = created.get_json()["data"]
    assert entry["type"] == "lab"
    assert entry["teacherName"] == "Dr. Robert Wilson"

    clash = client.post("/api/timetable", json=payload, headers=auth_header(people.admin))
    assert clash.status_code == 400
    assert clash.get_json()["message"] == "Time slot conflict: Room is already booked for this time"

    forbidden = client.put(f"/api/timetable/{entry['id']}", json={"room": "X"}, headers=auth_header(people.teacher2))
    assert forbidden.status_code == 403

    listed = client.get("/api/timetable?branch=Electrical", headers=auth_header(people.student)).get_json()
    assert [e["id"] for e in listed["data"]] == [entry["id"]]

    assert client.delete(f"/api/timetable/{entry['id']}", headers=teacher).status_code == 200
    assert client.get("/api/timetable", headers=teacher).get_json()["count"] == 0


def test_timetable_invalid_time(client, people, auth_header):
    res = client.post(
        "/api/timetable",
        json={"subject": "S", "teacher": people.teacher.user_id, "time": "9 - 10", "room": "R",
              "branch": "B", "semester": 1, "day": "Monday"},
        headers=auth_header(people.admin),
    )
    assert res.status_code == 400


def test_student_cannot_mark_attendance(client, people, auth_header):
    res = client.post("/api/attendance", json={}, headers=auth_header(people.student))
    assert res.status_code == 403


def test_attendance_flow(client, people, auth_header):
    teacher = auth_header(people.teacher)
    bulk = client.post(
        "/api/attendance/bulk",
        json={
            "subject": "Data Structures",
            "branch": "Computer Science",
            "semester": 6,
            "date": "2026-03-02",
            "attendanceList": [
                {"student": people.student.user_id, "status": "present"},
                {"student": people.student2.user_id, "status": "absent"},
                {"student": 424242, "status": "present"},
            ],
        },
        headers=teacher,
    )
    assert bulk.status_code == 201
    data = bulk.get_json()["data"]
    assert (data["successful"], data["failed"]) == (2, 1)
    assert data["errors"][0]["student"] == 424242

    again = client.post(
        "/api/attendance",
        json={"student": people.student.user_id, "subject": "Data Structures", "status": "late",
              "branch": "Computer Science", "semester": 6, "date": "2026-03-02"},
        headers=teacher,
    )
    assert again.status_code == 400
    assert "already marked" in again.get_json()["message"]

    mine = client.get("/api/attendance", headers=auth_header(people.student)).get_json()
    assert mine["count"] == 1
    assert mine["data"][0]["studentName"] == "John Doe"

    ranged = client.get("/api/attendance?startDate=2026-03-02&endDate=2026-03-02", headers=teacher).get_json()
    assert ranged["count"] == 2

    stats = client.get("/api/attendance/stats", headers=teacher).get_json()["data"]
    assert [(s["student"], s["attendancePercentage"]) for s in stats] == [("John Doe", 100.0), ("Jane Smith", 0.0)]

    record_id = mine["data"][0]["id"]
    updated = client.put(f"/api/attendance/{record_id}", json={"status": "late", "remarks": "bus"}, headers=teacher)
    assert updated.get_json()["data"]["status"] == "late"
    assert updated.get_json()["data"]["remarks"] == "bus"

    assert client.delete(f"/api/attendance/{record_id}", headers=teacher).status_code == 403
    assert client.delete(f"/api/attendance/{record_id}", headers=auth_header(people.admin)).status_code == 200
    assert client.delete(f"/api/attendance/{record_id}", headers=auth_header(people.admin)).status_code == 404


def test_unexpected_error_is_500_envelope(app, client, people, auth_header, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("db is down")

    monkeypatch.setattr(app.extensions["academic_hub"].timetable_repo, "list_active", boom)
    res = client.get("/api/timetable", headers=auth_header(people.admin))
    assert res.status_code == 500
    assert res.get_json() == {"success": False, "message": "Internal Server Error"}


def _seed_two_classes(client, people, auth_header):
    admin = auth_header(people.admin)
    base = {"subject": "Data Structures", "teacher": people.teacher.user_id, "time": "09:00 - 10:00", "day": "Monday"}
    cs = client.post("/api/timetable", json={**base, "room": "CS-101", "branch": "Computer Science", "semester": 6}, headers=admin)
    client.post("/api/timetable", json={**base, "room": "EC-101", "branch": "Electrical", "semester": 4}, headers=admin)
    return cs.get_json()["data"]["id"]


@pytest.mark.parametrize("query", ["semester=9", "semester=abc", "branch=Electrical&semester=4"])
def test_student_timetable_ignores_class_parameters(client, people, auth_header, query):
    cs_id = _seed_two_classes(client, people, auth_header)

    res = client.get(f"/api/timetable?{query}", headers=auth_header(people.student))
    assert res.status_code == 200
    assert [e["id"] for e in res.get_json()["data"]] == [cs_id]


def test_staff_timetable_still_validates_semester(client, people, auth_header):
    res = client.get("/api/timetable?semester=9", headers=auth_header(people.teacher))
    assert res.status_code == 400


@pytest.mark.parametrize("query", ["semester=9", "student=not-a-number&branch=Electrical"])
def test_student_attendance_ignores_scope_parameters(client, people, auth_header, query):
    teacher = auth_header(people.teacher)
    for student in (people.student, people.student2):
        client.post(
            "/api/attendance",
            json={"student": student.user_id, "subject": "Data Structures", "status": "present",
                  "branch": "Computer Science", "semester": 6},
            headers=teacher,
        )

    for path in ("/api/attendance", "/api/attendance/stats"):
        res = client.get(f"{path}?{query}", headers=auth_header(people.student))
        assert res.status_code == 200
        assert res.get_json()["count"] == 1

    mine = client.get(f"/api/attendance?{query}", headers=auth_header(people.student)).get_json()["data"]
    assert mine[0]["student"] == people.student.user_id
