from __future__ import annotations

import threading

from campusconnect.store import Entity, RecordStore


def _submit(client, user_id: str, type: str = "IT Support", details: str = "Cannot access myTUTor"):
    return client.post("/api/requests", json={"userId": user_id, "type": type, "details": details})


def test_submit_request_is_listed_as_pending(client, student) -> None:
    response = _submit(client, student["id"])

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Request submitted successfully"
    assert body["request"]["status"] == "Pending"

    listing = client.get(f"/api/requests/{student['id']}")
    assert listing.status_code == 200
    records = listing.json()
    assert len(records) == 1
    assert records[0]["id"] == body["request"]["id"]
    assert records[0]["status"] == "Pending"
    assert records[0]["details"] == "Cannot access myTUTor"


def test_submit_request_requires_all_fields(client) -> None:
    response = client.post("/api/requests", json={"userId": "1", "type": "IT Support"})

    assert response.status_code == 400
    assert response.json() == {"message": "All fields are required"}


def test_listing_only_returns_the_users_requests(client, student) -> None:
    _submit(client, student["id"])
    _submit(client, "someone-else")

    records = client.get(f"/api/requests/{student['id']}").json()

    assert [record["userId"] for record in records] == [student["id"]]
    assert client.get("/api/requests/nobody").json() == []


def test_double_submission_creates_distinct_records(client, student) -> None:
    first = _submit(client, student["id"]).json()["request"]
    second = _submit(client, student["id"]).json()["request"]

    assert first["id"] != second["id"]
    assert len(client.get(f"/api/requests/{student['id']}").json()) == 2


def test_admin_status_update_is_visible_to_user(client, student) -> None:
    request_id = _submit(client, student["id"]).json()["request"]["id"]

    update = client.put(f"/api/admin/requests/{request_id}", json={"status": "Approved"})

    assert update.status_code == 200
    assert update.json() == {"message": "Request updated successfully"}
    records = client.get(f"/api/requests/{student['id']}").json()
    assert records[0]["status"] == "Approved"


def test_admin_response_is_attached_to_request(client, student) -> None:
    request_id = _submit(client, student["id"]).json()["request"]["id"]

    response = client.put(
        f"/api/admin/requests/{request_id}/response",
        json={"response": "Password reset, please try again."},
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Response added successfully"}
    record = client.get(f"/api/requests/{student['id']}").json()[0]
    assert record["response"] == "Password reset, please try again."
    assert record["status"] == "Pending"


def test_admin_updates_unknown_request_return_not_found(client) -> None:
    status = client.put("/api/admin/requests/404", json={"status": "Approved"})
    response = client.put("/api/admin/requests/404/response", json={"response": "Done"})

    assert status.status_code == 404
    assert status.json() == {"message": "Request not found"}
    assert response.status_code == 404


def test_admin_status_update_requires_status(client, student) -> None:
    request_id = _submit(client, student["id"]).json()["request"]["id"]

    response = client.put(f"/api/admin/requests/{request_id}", json={})

    assert response.status_code == 400
    assert response.json() == {"message": "Status is required"}


def test_admin_requests_join_user_names(client, student) -> None:
    _submit(client, student["id"])
    _submit(client, "ghost")

    rows = client.get("/api/admin/requests").json()

    names = {row["userId"]: row["userName"] for row in rows}
    assert names == {student["id"]: "Thandi Mokoena", "ghost": "Unknown"}


def test_feedback_defaults_type_and_joins_names(client, student, store: RecordStore) -> None:
    created = client.post("/api/feedback", json={"userId": student["id"], "feedback": "More study rooms please"})
    anonymous = client.post(
        "/api/feedback",
        json={"userId": "ghost", "type": "Facilities", "feedback": "Fix the lifts"},
    )

    assert created.status_code == 201
    assert created.json() == {"message": "Feedback submitted successfully"}
    assert anonymous.status_code == 201

    stored = store.read(Entity.FEEDBACK)
    assert [item["type"] for item in stored] == ["General", "Facilities"]

    rows = client.get("/api/admin/feedback").json()
    assert [row["userName"] for row in rows] == ["Thandi Mokoena", "Anonymous"]


def test_feedback_requires_user_and_text(client) -> None:
    response = client.post("/api/feedback", json={"userId": "1", "type": "General"})

    assert response.status_code == 400
    assert response.json() == {"message": "User ID and feedback are required"}


def test_admin_stats_counts_entities(client, student) -> None:
    client.post(
        "/api/register",
        json={
            "userType": "staff",
            "firstName": "Sipho",
            "lastName": "Dlamini",
            "email": "s.dlamini@tut4life.ac.za",
            "password": "staff-pass",
            "staffNumber": "S2002",
        },
    )
    first = _submit(client, student["id"]).json()["request"]["id"]
    _submit(client, student["id"])
    client.put(f"/api/admin/requests/{first}", json={"status": "Approved"})
    client.post("/api/feedback", json={"userId": student["id"], "feedback": "Thanks"})

    stats = client.get("/api/admin/stats").json()

    assert stats == {
        "totalUsers": 2,
        "totalRequests": 2,
        "pendingRequests": 1,
        "totalFeedback": 1,
        "studentCount": 1,
        "staffCount": 1,
    }


def test_write_failure_is_reported_as_server_error(client, student, store: RecordStore, monkeypatch) -> None:
    monkeypatch.setattr(store, "write", lambda entity, records: False)

    response = _submit(client, student["id"])

    assert response.status_code == 500
    assert response.json() == {"message": "Failed to submit request"}


def test_feedback_write_failure_is_reported_as_server_error(client, student, store: RecordStore, monkeypatch) -> None:
    monkeypatch.setattr(store, "write", lambda entity, records: False)

    response = client.post("/api/feedback", json={"userId": student["id"], "feedback": "More study rooms please"})

    assert response.status_code == 500
    assert response.json() == {"message": "Failed to submit feedback"}


def test_admin_update_write_failures_are_reported_as_server_errors(
    client, student, store: RecordStore, monkeypatch
) -> None:
    request_id = _submit(client, student["id"]).json()["request"]["id"]
    monkeypatch.setattr(store, "write", lambda entity, records: False)

    status = client.put(f"/api/admin/requests/{request_id}", json={"status": "Approved"})
    response = client.put(f"/api/admin/requests/{request_id}/response", json={"response": "Done"})

    assert status.status_code == 500
    assert status.json() == {"message": "Failed to update request"}
    assert response.status_code == 500
    assert response.json() == {"message": "Failed to add response"}

    monkeypatch.undo()
    assert store.read(Entity.REQUESTS)[0]["status"] == "Pending"
    assert "response" not in store.read(Entity.REQUESTS)[0]


def test_concurrent_portal_submissions_keep_every_record(portal) -> None:
    workers, per_worker = 6, 10

    def submit(worker: int) -> None:
        for index in range(per_worker):
            portal.submit_request(user_id=f"user-{worker}", type="IT Support", details=f"Request {index}")

    threads = [threading.Thread(target=submit, args=(worker,)) for worker in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    records = portal.list_requests_with_users()
    assert len(records) == workers * per_worker
    assert len({record["id"] for record in records}) == workers * per_worker
    for worker in range(workers):
        assert len(portal.list_requests_for_user(f"user-{worker}")) == per_worker


def test_health_endpoint(client) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}
