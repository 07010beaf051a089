from __future__ import annotations

from typing import Any

from tests.shared import ApiTestContext


def _create_task(api_context: ApiTestContext, user_id: str | None = None, **fields: Any) -> str:
    payload: dict[str, Any] = {"title": "Audit me", "projectId": api_context.refs.project_id}
    payload.update(fields)
    response = api_context.client.post(
        "/api/v1/tasks",
        json=payload,
        headers=api_context.headers(user_id),
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_task_activity_history_is_newest_first(api_context: ApiTestContext) -> None:
    task_id = _create_task(api_context)
    api_context.client.patch(
        f"/api/v1/tasks/{task_id}",
        json={"status": "COMPLETED"},
        headers=api_context.headers(),
    )

    response = api_context.client.get(f"/api/v1/tasks/{task_id}/activities")

    assert response.status_code == 200
    body = response.json()
    assert body["meta"] == {"total": 2, "page": 1, "perPage": 20, "totalPages": 1}
    updated, created = body["data"]
    assert updated["action"] == "updated"
    assert updated["changes"] == {"status": {"old": "TODO", "new": "COMPLETED"}}
    assert updated["user"]["email"] == "john@example.com"
    assert created["action"] == "created"
    assert created["taskId"] == task_id
    assert created["changes"]["title"] == {"old": None, "new": "Audit me"}


def test_due_date_update_records_canonical_strings(api_context: ApiTestContext) -> None:
    task_id = _create_task(api_context, dueDate="2026-07-01T10:00:00Z")
    api_context.client.patch(
        f"/api/v1/tasks/{task_id}",
        json={"dueDate": "2026-07-01T14:30:00+02:00"},
        headers=api_context.headers(),
    )

    history = api_context.client.get(f"/api/v1/tasks/{task_id}/activities").json()["data"]

    assert history[0]["changes"] == {
        "dueDate": {"old": "2026-07-01T10:00:00.000Z", "new": "2026-07-01T12:30:00.000Z"}
    }


def test_noop_update_adds_no_history(api_context: ApiTestContext) -> None:
    task_id = _create_task(api_context)
    response = api_context.client.patch(
        f"/api/v1/tasks/{task_id}",
        json={"title": "Audit me"},
        headers=api_context.headers(),
    )

    history = api_context.client.get(f"/api/v1/tasks/{task_id}/activities").json()

    assert response.status_code == 200
    assert history["meta"]["total"] == 1


def test_missing_task_history_is_empty(api_context: ApiTestContext) -> None:
    response = api_context.client.get("/api/v1/tasks/unknown/activities")

    assert response.status_code == 200
    assert response.json() == {
        "data": [],
        "meta": {"total": 0, "page": 1, "perPage": 20, "totalPages": 0},
    }


def test_activity_feed_filters(api_context: ApiTestContext) -> None:
    refs = api_context.refs
    _create_task(api_context, title="By John")
    task_id = _create_task(api_context, user_id=refs.other_user_id, title="By Bob")
    api_context.client.patch(
        f"/api/v1/tasks/{task_id}",
        json={"priority": "HIGH"},
        headers=api_context.headers(refs.other_user_id),
    )

    def titles(params: dict[str, str]) -> list[tuple[str, str]]:
        response = api_context.client.get("/api/v1/activities", params=params)
        assert response.status_code == 200, response.text
        return [(item["action"], item["taskTitle"]) for item in response.json()["data"]]

    assert titles({"userId": refs.other_user_id}) == [("updated", "By Bob"), ("created", "By Bob")]
    assert titles({"action": "created"}) == [("created", "By Bob"), ("created", "By John")]
    assert titles({"from": "2000-01-01T00:00:00Z", "to": "2000-01-02T00:00:00Z"}) == []
    assert api_context.client.get("/api/v1/activities", params={"action": "archived"}).status_code == 422


def test_activity_feed_user_filter_ignores_uuid_case(api_context: ApiTestContext) -> None:
    upper_actor = api_context.refs.actor_id.upper()
    _create_task(api_context, user_id=upper_actor, title="Shouted id")

    response = api_context.client.get("/api/v1/activities", params={"userId": upper_actor})

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["meta"]["total"] == 1
    assert body["data"][0]["userId"] == api_context.refs.actor_id
    assert body["data"][0]["taskTitle"] == "Shouted id"


def test_activity_feed_rejects_malformed_user_filter(api_context: ApiTestContext) -> None:
    response = api_context.client.get("/api/v1/activities", params={"userId": "not-a-uuid"})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_activity_feed_paginates(api_context: ApiTestContext) -> None:
    for index in range(3):
        _create_task(api_context, title=f"Task {index}")

    response = api_context.client.get("/api/v1/activities", params={"page": "2", "limit": "2"})

    body = response.json()
    assert body["meta"] == {"total": 3, "page": 2, "perPage": 2, "totalPages": 2}
    assert [item["taskTitle"] for item in body["data"]] == ["Task 0"]


def test_activity_feed_caps_page_size(api_context: ApiTestContext) -> None:
    task_id = _create_task(api_context)
    for index in range(2):
        _create_task(api_context, title=f"Task {index}")

    feed = api_context.client.get("/api/v1/activities", params={"limit": "500"})
    history = api_context.client.get(f"/api/v1/tasks/{task_id}/activities", params={"limit": "500"})

    assert feed.status_code == 200
    assert feed.json()["meta"] == {"total": 3, "page": 1, "perPage": 100, "totalPages": 1}
    assert history.json()["meta"] == {"total": 1, "page": 1, "perPage": 100, "totalPages": 1}


def test_get_missing_activity(api_context: ApiTestContext) -> None:
    response = api_context.client.get("/api/v1/activities/missing")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "ACTIVITY_NOT_FOUND"


def test_reference_listings(api_context: ApiTestContext) -> None:
    projects = api_context.client.get("/api/v1/projects").json()
    users = api_context.client.get("/api/v1/users").json()
    tags = api_context.client.get("/api/v1/tags").json()

    assert [project["name"] for project in projects] == ["Backend API", "Mobile App"]
    assert [user["email"] for user in users] == [
        "bob@example.com",
        "jane@example.com",
        "john@example.com",
    ]
    assert {tag["name"] for tag in tags} == {"bug", "feature"}


def test_create_then_update_by_another_user(api_context: ApiTestContext) -> None:
    refs = api_context.refs
    created = api_context.client.post(
        "/api/v1/tasks",
        json={"title": "T1", "projectId": refs.project_id, "status": "TODO"},
        headers=api_context.headers(refs.actor_id),
    )
    assert created.status_code == 201
    assert created.json()["status"] == "TODO"
    task_id = created.json()["id"]

    by_actor = api_context.client.get("/api/v1/activities", params={"userId": refs.actor_id})
    assert [(item["action"], item["taskTitle"]) for item in by_actor.json()["data"]] == [
        ("created", "T1")
    ]

    api_context.client.patch(
        f"/api/v1/tasks/{task_id}",
        json={"status": "COMPLETED"},
        headers=api_context.headers(refs.other_user_id),
    )
    history = api_context.client.get(f"/api/v1/tasks/{task_id}/activities").json()["data"]
    updated = [item for item in history if item["action"] == "updated"]
    assert len(updated) == 1
    assert updated[0]["userId"] == refs.other_user_id
    assert updated[0]["changes"]["status"] == {"old": "TODO", "new": "COMPLETED"}
    assert "tags" not in updated[0]["changes"]
