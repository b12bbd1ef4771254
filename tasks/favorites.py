"""
tasks/favorites.py -- The single-slot favorite task kept in the session.

The slot is SessionState.favorite_task. Toggling task `id`:

  empty slot          -> look up id; missing: NoneFavorite; found: store it
  slot holds id       -> clear the slot (unfavorite), returns None
  slot holds other id -> clear the slot, then look up id;
                         missing: TaskNotFound(id) with the slot left empty;
                         found: store it

The cached Task is a snapshot:
find_favorite() never re-reads the store, so later edits to the task are not
reflected until it is favorited again.

These functions only mutate the SessionState object; the session middleware
re-seals the whole cookie when the response goes out.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Protocol

from core.errors import NoneFavorite, TaskNotFound
from tasks.models import Task

if TYPE_CHECKING:
    from auth.session import SessionState

logger = logging.getLogger("taskboard.tasks")


class TaskLookup(Protocol):
    def find_by_id(self, task_id: int) -> Optional[Task]: ...


def toggle_favorite(session: SessionState, task_id: int, store: TaskLookup) -> Optional[Task]:
    """Favorite or unfavorite `task_id`. Returns the new favorite, or None when cleared."""
    current = session.favorite_task

    if current is None:
        task = store.find_by_id(task_id)
        if task is None:
            raise NoneFavorite()
        session.favorite_task = task
        logger.info("Favorite set to task %d", task_id)
        return task

    if current.id == task_id:
        session.favorite_task = None
        logger.info("Favorite task %d cleared", task_id)
        return None

    session.favorite_task = None
    task = store.find_by_id(task_id)
    if task is None:
        logger.info("Favorite task %d dropped: task %d not found", current.id, task_id)
        raise TaskNotFound(task_id)
    session.favorite_task = task
    logger.info("Favorite replaced: task %d -> task %d", current.id, task_id)
    return task


def find_favorite(session: SessionState) -> Task:
    """Return the cached favorite without touching the store."""
    if session.favorite_task is None:
        raise NoneFavorite()
    return session.favorite_task
