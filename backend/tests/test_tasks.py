"""
Tests for task endpoints (/api/tasks).

Tests cover:
- Creating tasks with tags, as any role with edit rights
- Reading tasks of a list and a single task
- Partial updates and tag replacement
- Toggling completion
- Deleting tasks
- Existence hiding for outsiders
"""

import logging

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import models

logger = logging.getLogger(__name__)


def _tag_names(task_json):
    return [tag["name"] for tag in task_json["tags"]]


# ============== Create (7 tests) ==============


def test_member_creates_task(client: TestClient, shared_list: models.TodoList, member_headers):
    """Test that a plain member can add a task with every field."""
    logger.debug("Testing task creation by member")

    response = client.post(
        "/api/tasks",
        json={
            "list_id": shared_list.id,
            "title": "  Buy milk ",
            "description": "Semi-skimmed",
            "priority": "high",
            "due_date": "2026-11-01",
            "tags": ["Errands", "dairy"],
        },
        headers=member_headers,
    )

    assert response.status_code == 201, f"Expected 201, got {response.status_code}: {response.json()}"
    task = response.json()["task"]
    assert task["title"] == "Buy milk"
    assert task["priority"] == "high"
    assert task["due_date"] == "2026-11-01"
    assert task["completed"] is False
    assert _tag_names(task) == ["dairy", "errands"]
    assert task["subtasks"] == []
    logger.info("✓ Member created task")


def test_create_task_outsider_hidden(client: TestClient, shared_list: models.TodoList, outsider_headers):
    response = client.post(
        "/api/tasks", json={"list_id": shared_list.id, "title": "Sneaky"}, headers=outsider_headers
    )

    assert response.status_code == 404, f"Expected 404, got {response.status_code}: {response.json()}"
    assert response.json()["error"] == "List not found or access denied"
    logger.info("✓ Outsider cannot create tasks")


def test_create_task_invalid_fields(client: TestClient, shared_list: models.TodoList, owner_headers):
    """Test that bad priority, date and title are validation failures."""
    response = client.post(
        "/api/tasks",
        json={"list_id": shared_list.id, "title": "", "priority": "urgent", "due_date": "next tuesday"},
        headers=owner_headers,
    )

    assert response.status_code == 400, f"Expected 400, got {response.status_code}: {response.json()}"
    fields = {detail["field"] for detail in response.json()["details"]}
    assert {"title", "priority", "due_date"} <= fields
    logger.info("✓ Invalid task fields rejected")


def test_create_task_tag_too_long(client: TestClient, shared_list: models.TodoList, owner_headers):
    response = client.post(
        "/api/tasks",
        json={"list_id": shared_list.id, "title": "Tagged", "tags": ["x" * 51]},
        headers=owner_headers,
    )

    assert response.status_code == 400, f"Expected 400, got {response.status_code}: {response.json()}"
    logger.info("✓ Over-long tag rejected")


def test_create_task_tag_too_long_after_lowercasing(
    client: TestClient, test_db: Session, shared_list: models.TodoList, owner_headers
):
    """Test that a tag which only exceeds the limit once lower-cased is rejected."""
    # "İ" lower-cases to two code points
    response = client.post(
        "/api/tasks",
        json={"list_id": shared_list.id, "title": "Dotted", "tags": ["İ" * 50]},
        headers=owner_headers,
    )

    assert response.status_code == 400, f"Expected 400, got {response.status_code}: {response.json()}"
    assert response.json()["details"][0]["field"] == "tags"
    assert test_db.query(models.Task).filter(models.Task.title == "Dotted").count() == 0
    logger.info("✓ Tag length checked on the stored form")


def test_create_task_non_ascii_tag(client: TestClient, shared_list: models.TodoList, owner_headers):
    response = client.post(
        "/api/tasks",
        json={"list_id": shared_list.id, "title": "Coffee run", "tags": ["Café"]},
        headers=owner_headers,
    )

    assert response.status_code == 201, f"Expected 201, got {response.status_code}: {response.json()}"
    assert _tag_names(response.json()["task"]) == ["café"]
    logger.info("✓ Non-ASCII tag stored lower-cased")


def test_create_task_description_too_long(client: TestClient, shared_list: models.TodoList, owner_headers):
    response = client.post(
        "/api/tasks",
        json={"list_id": shared_list.id, "title": "Wordy", "description": "x" * 1001},
        headers=owner_headers,
    )

    assert response.status_code == 400, f"Expected 400, got {response.status_code}: {response.json()}"
    logger.info("✓ Over-long description rejected")


# ============== Read (3 tests) ==============


def test_list_tasks_newest_first(client: TestClient, shared_list: models.TodoList, member_headers):
    first = client.post("/api/tasks", json={"list_id": shared_list.id, "title": "One"}, headers=member_headers)
    second = client.post("/api/tasks", json={"list_id": shared_list.id, "title": "Two"}, headers=member_headers)

    response = client.get(f"/api/tasks/list/{shared_list.id}", headers=member_headers)

    assert response.status_code == 200, f"Expected 200, got {response.status_code}: {response.json()}"
    ids = [task["id"] for task in response.json()["tasks"]]
    assert ids == [second.json()["task"]["id"], first.json()["task"]["id"]]
    logger.info("✓ Tasks ordered newest first")


def test_get_task_with_subtasks(
    client: TestClient, task: models.Task, subtask: models.Subtask, member_headers
):
    response = client.get(f"/api/tasks/{task.id}", headers=member_headers)

    assert response.status_code == 200, f"Expected 200, got {response.status_code}: {response.json()}"
    data = response.json()["task"]
    assert data["title"] == "Buy milk"
    assert [sub["id"] for sub in data["subtasks"]] == [subtask.id]
    logger.info("✓ Task read with subtasks")


def test_get_task_outsider_and_missing_match(client: TestClient, task: models.Task, outsider_headers):
    """Test that an inaccessible task and a missing task give identical responses."""
    hidden = client.get(f"/api/tasks/{task.id}", headers=outsider_headers)
    missing = client.get("/api/tasks/999999", headers=outsider_headers)

    assert hidden.status_code == missing.status_code == 404
    assert hidden.json() == missing.json() == {"error": "Task not found or access denied"}
    logger.info("✓ Task existence hidden")


# ============== Update (4 tests) ==============


def test_partial_update_keeps_other_fields(client: TestClient, task: models.Task, member_headers):
    """Test that only supplied fields change."""
    logger.debug("Testing partial task update")

    response = client.put(f"/api/tasks/{task.id}", json={"description": "2 litres"}, headers=member_headers)

    assert response.status_code == 200, f"Expected 200, got {response.status_code}: {response.json()}"
    data = response.json()["task"]
    assert data["description"] == "2 litres"
    assert data["title"] == "Buy milk"
    assert data["priority"] == "high"
    logger.info("✓ Partial update applied")


def test_update_clears_optional_field(client: TestClient, task: models.Task, member_headers):
    response = client.put(f"/api/tasks/{task.id}", json={"priority": None}, headers=member_headers)

    assert response.status_code == 200, f"Expected 200, got {response.status_code}: {response.json()}"
    assert response.json()["task"]["priority"] is None
    logger.info("✓ Optional field cleared")


def test_update_rejects_null_title(client: TestClient, task: models.Task, member_headers):
    response = client.put(f"/api/tasks/{task.id}", json={"title": None}, headers=member_headers)

    assert response.status_code == 400, f"Expected 400, got {response.status_code}: {response.json()}"
    logger.info("✓ Null title rejected")


def test_update_replaces_tags_only_when_supplied(
    client: TestClient, shared_list: models.TodoList, member_headers
):
    """Test that tags are replaced by a list, cleared by [], and untouched when absent."""
    created = client.post(
        "/api/tasks",
        json={"list_id": shared_list.id, "title": "Tagged", "tags": ["home", "work"]},
        headers=member_headers,
    ).json()["task"]

    untouched = client.put(f"/api/tasks/{created['id']}", json={"title": "Renamed"}, headers=member_headers)
    assert _tag_names(untouched.json()["task"]) == ["home", "work"]

    replaced = client.put(f"/api/tasks/{created['id']}", json={"tags": ["Urgent", "home"]}, headers=member_headers)
    assert _tag_names(replaced.json()["task"]) == ["home", "urgent"]

    cleared = client.put(f"/api/tasks/{created['id']}", json={"tags": []}, headers=member_headers)
    assert _tag_names(cleared.json()["task"]) == []
    logger.info("✓ Tag replacement semantics")


# ============== Toggle & Delete (3 tests) ==============


def test_double_toggle_restores(client: TestClient, task: models.Task, member_headers):
    """Test that toggling twice returns the task to its original state."""
    first = client.patch(f"/api/tasks/{task.id}/toggle", headers=member_headers)
    second = client.patch(f"/api/tasks/{task.id}/toggle", headers=member_headers)

    assert first.status_code == 200, f"Expected 200, got {first.status_code}: {first.json()}"
    assert first.json()["task"]["completed"] is True
    assert second.json()["task"]["completed"] is False
    assert first.json()["message"] == "Task completion toggled successfully"
    logger.info("✓ Double toggle restores state")


def test_delete_task(client: TestClient, test_db: Session, task: models.Task, subtask: models.Subtask, member_headers):
    """Test that deleting a task removes its subtasks."""
    task_id = task.id
    response = client.delete(f"/api/tasks/{task_id}", headers=member_headers)

    assert response.status_code == 200, f"Expected 200, got {response.status_code}: {response.json()}"
    assert client.get(f"/api/tasks/{task_id}", headers=member_headers).status_code == 404
    assert test_db.query(models.Subtask).filter(models.Subtask.task_id == task_id).count() == 0
    logger.info("✓ Task and subtasks deleted")


def test_delete_task_outsider_hidden(client: TestClient, task: models.Task, outsider_headers):
    response = client.delete(f"/api/tasks/{task.id}", headers=outsider_headers)

    assert response.status_code == 404, f"Expected 404, got {response.status_code}: {response.json()}"
    logger.info("✓ Outsider cannot delete task")
