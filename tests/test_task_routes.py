"""
tests/test_task_routes.py -- Integration tests for the /tasks endpoints.

Writes go through a logged-in client; reads are public. Lookups answer 302
with a JSON body, empty results 404, and writes that change nothing 304.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from tasks.models import Task


def _insert(client: TestClient, headers: dict, title: str, details: str = "") -> dict:
    resp = client.post("/tasks", json={"non_empty_title": title, "details": details}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestTaskWrites:
    def test_insert_returns_created_task(self, logged_in) -> None:
        task = _insert(logged_in.client, logged_in.auth(), "Spirit Wave", "Genkai's technique")
        assert task["id"] == 1
        assert task["title"] == "Spirit Wave"
        assert logged_in.tasks.find_by_id(1) == Task(id=1, title="Spirit Wave", details="Genkai's technique")

    def test_update_existing(self, logged_in) -> None:
        task = _insert(logged_in.client, logged_in.auth(), "Old")
        resp = logged_in.client.put(
            "/tasks",
            json={"id": task["id"], "new_title": "New", "details": "d"},
            headers=logged_in.auth(),
        )
        assert resp.status_code == 200
        assert resp.text == "Updated 1 tasks."
        assert logged_in.tasks.find_by_id(task["id"]).title == "New"

    def test_update_unknown_is_not_modified(self, logged_in) -> None:
        resp = logged_in.client.put(
            "/tasks",
            json={"id": 99, "new_title": "New", "details": ""},
            headers=logged_in.auth(),
        )
        assert resp.status_code == 304

    def test_delete(self, logged_in) -> None:
        task = _insert(logged_in.client, logged_in.auth(), "Doomed")
        resp = logged_in.client.delete(f"/tasks/{task['id']}", headers=logged_in.auth())
        assert resp.status_code == 200
        assert logged_in.tasks.find_by_id(task["id"]) is None

        resp = logged_in.client.delete(f"/tasks/{task['id']}", headers=logged_in.auth())
        assert resp.status_code == 304

    def test_writes_require_login(self, api) -> None:
        assert api.client.put("/tasks", json={"id": 1, "new_title": "x"}).status_code == 401
        assert api.client.delete("/tasks/1").status_code == 401
        assert api.client.post("/tasks/1/done").status_code == 401
        assert api.client.delete("/tasks/1/undo").status_code == 401


class TestDoneAndUndo:
    def test_done_returns_record_id(self, logged_in) -> None:
        task = _insert(logged_in.client, logged_in.auth(), "Finish")
        resp = logged_in.client.post(f"/tasks/{task['id']}/done", headers=logged_in.auth())
        assert resp.status_code == 201
        assert int(resp.text) >= 1

    def test_done_twice_is_not_modified(self, logged_in) -> None:
        task = _insert(logged_in.client, logged_in.auth(), "Finish")
        logged_in.client.post(f"/tasks/{task['id']}/done", headers=logged_in.auth())
        resp = logged_in.client.post(f"/tasks/{task['id']}/done", headers=logged_in.auth())
        assert resp.status_code == 304

    def test_done_unknown_task_is_not_modified(self, logged_in) -> None:
        resp = logged_in.client.post("/tasks/99/done", headers=logged_in.auth())
        assert resp.status_code == 304

    def test_ongoing_excludes_done(self, logged_in) -> None:
        first = _insert(logged_in.client, logged_in.auth(), "First")
        second = _insert(logged_in.client, logged_in.auth(), "Second")
        logged_in.client.post(f"/tasks/{first['id']}/done", headers=logged_in.auth())

        resp = logged_in.client.get("/tasks/ongoing")
        assert resp.status_code == 302
        assert [t["id"] for t in resp.json()] == [second["id"]]

    def test_undo_restores_ongoing(self, logged_in) -> None:
        task = _insert(logged_in.client, logged_in.auth(), "Again")
        logged_in.client.post(f"/tasks/{task['id']}/done", headers=logged_in.auth())

        resp = logged_in.client.delete(f"/tasks/{task['id']}/undo", headers=logged_in.auth())
        assert resp.status_code == 200
        assert [t["id"] for t in logged_in.client.get("/tasks/ongoing").json()] == [task["id"]]

        resp = logged_in.client.delete(f"/tasks/{task['id']}/undo", headers=logged_in.auth())
        assert resp.status_code == 304

    def test_delete_removes_done_record(self, logged_in) -> None:
        task = _insert(logged_in.client, logged_in.auth(), "Gone")
        logged_in.client.post(f"/tasks/{task['id']}/done", headers=logged_in.auth())
        logged_in.client.delete(f"/tasks/{task['id']}", headers=logged_in.auth())
        assert logged_in.tasks.undo(task["id"]) == 0


class TestTaskReads:
    def test_list_all(self, api) -> None:
        api.tasks.insert_task(Task(title="Alpha", details=""))
        api.tasks.insert_task(Task(title="Beta", details=""))
        resp = api.client.get("/tasks")
        assert resp.status_code == 302
        assert [t["title"] for t in resp.json()] == ["Alpha", "Beta"]

    def test_list_empty(self, api) -> None:
        resp = api.client.get("/tasks")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "tasks_empty"

    def test_ongoing_empty(self, api) -> None:
        assert api.client.get("/tasks/ongoing").status_code == 404

    def test_title_filter(self, api) -> None:
        api.tasks.insert_task(Task(title="Spirit Gun", details=""))
        api.tasks.insert_task(Task(title="Spirit Wave", details=""))
        api.tasks.insert_task(Task(title="Rose Whip", details=""))
        resp = api.client.get("/tasks", params={"title": "Spirit"})
        assert resp.status_code == 302
        assert [t["title"] for t in resp.json()] == ["Spirit Gun", "Spirit Wave"]

    def test_title_filter_no_match(self, api) -> None:
        api.tasks.insert_task(Task(title="Rose Whip", details=""))
        assert api.client.get("/tasks", params={"title": "Spirit"}).status_code == 404

    def test_get_by_id(self, api) -> None:
        task = api.tasks.insert_task(Task(title="One", details="only"))
        resp = api.client.get(f"/tasks/{task.id}")
        assert resp.status_code == 302
        assert resp.json() == {"id": task.id, "title": "One", "details": "only"}

    def test_get_unknown_id(self, api) -> None:
        resp = api.client.get("/tasks/99")
        assert resp.status_code == 404
        assert resp.json()["error"]["message"] == "Could not find any `Task` for id: `99`!"

    def test_non_integer_id_is_validation_error(self, api) -> None:
        resp = api.client.get("/tasks/abc")
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
