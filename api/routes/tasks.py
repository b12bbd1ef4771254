"""
api/routes/tasks.py -- Task CRUD and favorite-task REST endpoints.

Routes:
  POST   /tasks              -- insert (requires login)
  PUT    /tasks              -- update (requires login)
  DELETE /tasks/{id}         -- delete (requires login)
  POST   /tasks/{id}/done    -- mark done (requires login)
  DELETE /tasks/{id}/undo    -- unmark done (requires login)
  GET    /tasks              -- all tasks, or ?title= substring match (302)
  GET    /tasks/ongoing      -- tasks not marked done (302)
  GET    /tasks/{id}         -- one task (302)
  POST   /favorite/{id}      -- toggle the session's favorite task
  GET    /favorite           -- read the session's favorite task

Lookups answer 302 Found with the JSON body (no Location header); "nothing
changed" writes answer 304 with no body.

/tasks/ongoing is registered before /tasks/{task_id} so the literal path wins.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.extract import validated_body
from api.models import InsertTask, TaskResponse, UpdateTask
from auth.dependencies import get_session, require_login
from auth.models import LoggedIdentity
from auth.session import SessionState, bounded_session
from core.errors import TaskNotFound, TasksEmpty
from tasks.favorites import find_favorite as read_favorite
from tasks.favorites import toggle_favorite
from tasks.models import Task
from tasks.store import TaskStore

# Auth policy:
# - writes under /tasks: require login (require_login)
# - reads under /tasks:  public
# - /favorite:           session only -- the slot lives in the caller's own cookie
router = APIRouter()


def _found(tasks: list[Task]) -> JSONResponse:
    if not tasks:
        raise TasksEmpty()
    return JSONResponse(status_code=302, content=[TaskResponse.from_task(t).model_dump() for t in tasks])


# ---------------------------------------------------------------------------
# Writes (authenticated)
# ---------------------------------------------------------------------------


@router.post("/tasks", response_model=TaskResponse, status_code=201)
def insert_task(
    request: Request,
    identity: LoggedIdentity = Depends(require_login),
    body: InsertTask = Depends(validated_body(InsertTask)),
) -> TaskResponse:
    store: TaskStore = request.app.state.task_store
    task = store.insert_task(Task(title=body.non_empty_title, details=body.details))
    return TaskResponse.from_task(task)


@router.put("/tasks")
def update_task(
    request: Request,
    identity: LoggedIdentity = Depends(require_login),
    body: UpdateTask = Depends(validated_body(UpdateTask)),
) -> Response:
    store: TaskStore = request.app.state.task_store
    num_modified = store.update_task(body.id, body.new_title, body.details)
    if num_modified == 0:
        return Response(status_code=304)
    return Response(content=f"Updated {num_modified} tasks.", media_type="text/plain")


@router.delete("/tasks/{task_id}")
def delete_task(
    request: Request,
    task_id: int,
    identity: LoggedIdentity = Depends(require_login),
) -> Response:
    store: TaskStore = request.app.state.task_store
    num_modified = store.delete_task(task_id)
    if num_modified == 0:
        return Response(status_code=304)
    return Response(content=f"Deleted {num_modified} tasks.", media_type="text/plain")


@router.post("/tasks/{task_id}/done")
def done(
    request: Request,
    task_id: int,
    identity: LoggedIdentity = Depends(require_login),
) -> Response:
    """Mark a task done. 201 with the done-record id; 304 if missing or already done."""
    store: TaskStore = request.app.state.task_store
    done_id = store.mark_done(task_id)
    if done_id == 0:
        return Response(status_code=304)
    return Response(content=str(done_id), status_code=201, media_type="text/plain")


@router.delete("/tasks/{task_id}/undo")
def undo(
    request: Request,
    task_id: int,
    identity: LoggedIdentity = Depends(require_login),
) -> Response:
    store: TaskStore = request.app.state.task_store
    num_modified = store.undo(task_id)
    if num_modified == 0:
        return Response(status_code=304)
    return Response(content=f"Undone {num_modified} tasks.", media_type="text/plain")


# ---------------------------------------------------------------------------
# Reads (public)
# ---------------------------------------------------------------------------


@router.get("/tasks")
def list_tasks(request: Request, title: Optional[str] = None) -> JSONResponse:
    store: TaskStore = request.app.state.task_store
    if title:
        return _found(store.find_by_pattern(title))
    return _found(store.find_all())


@router.get("/tasks/ongoing")
def list_ongoing(request: Request) -> JSONResponse:
    store: TaskStore = request.app.state.task_store
    return _found(store.find_ongoing())


@router.get("/tasks/{task_id}")
def get_task(request: Request, task_id: int) -> JSONResponse:
    store: TaskStore = request.app.state.task_store
    task = store.find_by_id(task_id)
    if task is None:
        raise TaskNotFound(task_id)
    return JSONResponse(status_code=302, content=TaskResponse.from_task(task).model_dump())


# ---------------------------------------------------------------------------
# Favorite slot (session)
# ---------------------------------------------------------------------------


@router.post("/favorite/{task_id}")
def favorite(request: Request, task_id: int) -> Response:
    """Toggle the favorite. 302 + Task when set or replaced, 204 when cleared.

    A task too large to carry in the session cookie is refused with
    SessionTooLarge and the slot keeps its previous value.
    """
    store: TaskStore = request.app.state.task_store
    with bounded_session(request) as session:
        task = toggle_favorite(session, task_id, store)
    if task is None:
        return Response(status_code=204)
    return JSONResponse(status_code=302, content=TaskResponse.from_task(task).model_dump())


@router.get("/favorite")
def find_favorite(session: SessionState = Depends(get_session)) -> JSONResponse:
    """Return the cached favorite as stored in the cookie (not re-read from the store)."""
    task = read_favorite(session)
    return JSONResponse(status_code=302, content=TaskResponse.from_task(task).model_dump())
