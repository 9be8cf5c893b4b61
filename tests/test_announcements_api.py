from __future__ import annotations

from dataclasses import replace

from fastapi.testclient import TestClient

from campusconnect.api import create_app


def _post(client, title: str, content: str = "Details to follow.", **extra):
    return client.post("/api/admin/announcements", json={"title": title, "content": content, **extra})


def test_announcements_start_empty(client) -> None:
    response = client.get("/api/announcements")

    assert response.status_code == 200
    assert response.json() == []


def test_posted_announcements_are_listed_newest_first(client) -> None:
    first = _post(client, "Semester Tests", type="academic")
    second = _post(client, "Career Expo")

    assert first.status_code == 201
    assert first.json()["message"] == "Announcement posted successfully"
    assert second.json()["announcement"]["type"] == "general"

    titles = [item["title"] for item in client.get("/api/announcements").json()]
    assert titles == ["Career Expo", "Semester Tests"]


def test_announcement_requires_title_and_content(client) -> None:
    response = client.post("/api/admin/announcements", json={"title": "Empty"})

    assert response.status_code == 400
    assert response.json() == {"message": "Title and content are required"}


def test_delete_announcement_removes_it(client) -> None:
    keep = _post(client, "Library hours").json()["announcement"]
    drop = _post(client, "Cancelled event").json()["announcement"]

    response = client.delete(f"/api/admin/announcements/{drop['id']}")

    assert response.status_code == 200
    assert response.json() == {"message": "Announcement deleted successfully", "deleted": True}
    assert [item["id"] for item in client.get("/api/announcements").json()] == [keep["id"]]


def test_delete_unknown_announcement_is_a_no_op(client) -> None:
    existing = _post(client, "Library hours").json()["announcement"]

    response = client.delete("/api/admin/announcements/does-not-exist")

    assert response.status_code == 200
    assert response.json()["deleted"] is False
    assert [item["id"] for item in client.get("/api/announcements").json()] == [existing["id"]]


def test_admin_routes_require_token_when_configured(settings, store) -> None:
    app = create_app(settings=replace(settings, admin_tokens=("s3cret-admin",)), store=store)

    with TestClient(app) as client:
        missing = client.get("/api/admin/stats")
        wrong = client.get("/api/admin/stats", headers={"Authorization": "Bearer nope"})
        allowed = client.get("/api/admin/stats", headers={"Authorization": "Bearer s3cret-admin"})
        public = client.get("/api/announcements")

    assert missing.status_code == 401
    assert missing.json() == {"message": "Missing bearer token"}
    assert missing.headers["www-authenticate"] == "Bearer"
    assert wrong.status_code == 403
    assert "www-authenticate" not in wrong.headers
    assert allowed.status_code == 200
    assert public.status_code == 200


def test_static_front_end_is_served_when_configured(settings, store, tmp_path) -> None:
    static_dir = tmp_path / "public"
    static_dir.mkdir()
    (static_dir / "index.html").write_text("<h1>CampusConnect</h1>", encoding="utf-8")

    app = create_app(settings=replace(settings, static_dir=static_dir), store=store)

    with TestClient(app) as client:
        page = client.get("/")
        api = client.get("/api/announcements")

    assert page.status_code == 200
    assert "CampusConnect" in page.text
    assert api.json() == []


def test_announcement_write_failures_are_reported_as_server_errors(client, store, monkeypatch) -> None:
    existing = _post(client, "Library hours").json()["announcement"]
    monkeypatch.setattr(store, "write", lambda entity, records: False)

    posted = _post(client, "Career Expo")
    deleted = client.delete(f"/api/admin/announcements/{existing['id']}")

    assert posted.status_code == 500
    assert posted.json() == {"message": "Failed to post announcement"}
    assert deleted.status_code == 500
    assert deleted.json() == {"message": "Failed to delete announcement"}

    monkeypatch.undo()
    assert [item["id"] for item in client.get("/api/announcements").json()] == [existing["id"]]
