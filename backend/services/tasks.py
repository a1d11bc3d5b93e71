"""
Tasks and subtasks inside a list.

Every operation resolves the resource to its owning list and checks the
principal's role there before touching anything. Writes that span several rows
(task plus tag links) run inside a single atomic() block.
"""

import logging
from typing import List

from sqlalchemy.orm import Session, selectinload

from auth.permissions import ListAction, authorize, resolve_subtask, resolve_task
from database import atomic
from models import Subtask, Task
from schemas import Principal, SubtaskCreate, SubtaskUpdate, TaskCreate, TaskUpdate
from services.tags import replace_task_tags

logger = logging.getLogger(__name__)


def _enum_value(value):
    return value.value if hasattr(value, "value") else value


def tasks_in_list(db: Session, list_id: int) -> List[Task]:
    """Tasks of a list, newest first, with tags and subtasks loaded."""
    return (
        db.query(Task)
        .options(selectinload(Task.tags), selectinload(Task.subtasks))
        .filter(Task.list_id == list_id)
        .order_by(Task.created_at.desc(), Task.id.desc())
        .all()
    )


def list_tasks(db: Session, principal: Principal, list_id: int) -> List[Task]:
    logger.debug(f"Fetching tasks for list {list_id}")
    authorize(principal, list_id, ListAction.read, db)
    return tasks_in_list(db, list_id)


def get_task(db: Session, principal: Principal, task_id: int) -> Task:
    logger.debug(f"Fetching task {task_id}")
    task, _ = resolve_task(principal, task_id, ListAction.read, db)
    return task


def create_task(db: Session, principal: Principal, data: TaskCreate) -> Task:
    """
    Create a task with its tags as one unit.

    Either the task row, every tag and every link exist afterwards, or none of
    them do.
    """
    logger.debug(f"Creating task in list {data.list_id}")
    authorize(principal, data.list_id, ListAction.edit_content, db)

    with atomic(db, "create task"):
        task = Task(
            list_id=data.list_id,
            title=data.title,
            description=data.description,
            priority=_enum_value(data.priority),
            due_date=data.due_date,
        )
        db.add(task)
        db.flush()
        replace_task_tags(db, task.id, data.tags)

    logger.info(f"Task created: {task.id} in list {data.list_id}")
    return task


def update_task(db: Session, principal: Principal, task_id: int, data: TaskUpdate) -> Task:
    """
    Apply a partial update: only fields present in the request change.

    A ``tags`` list replaces the task's tags in the same transaction as the row
    write; an absent or null ``tags`` leaves them untouched.
    """
    logger.debug(f"Updating task {task_id}")
    task, _ = resolve_task(principal, task_id, ListAction.edit_content, db)

    changes = data.model_dump(exclude_unset=True)
    tag_names = changes.pop("tags", None)

    with atomic(db, "update task"):
        for field, value in changes.items():
            setattr(task, field, _enum_value(value))
        db.flush()
        if tag_names is not None:
            replace_task_tags(db, task.id, tag_names)

    logger.info(f"Task updated: {task_id} (fields: {sorted(changes)}, tags replaced: {tag_names is not None})")
    return task


def toggle_task(db: Session, principal: Principal, task_id: int) -> Task:
    # Read-modify-write; two concurrent toggles resolve as last write wins
    task, _ = resolve_task(principal, task_id, ListAction.edit_content, db)

    with atomic(db, "toggle task"):
        task.completed = not task.completed

    logger.info(f"Task {task_id} completion toggled to {task.completed}")
    return task


def delete_task(db: Session, principal: Principal, task_id: int) -> None:
    task, _ = resolve_task(principal, task_id, ListAction.edit_content, db)

    with atomic(db, "delete task"):
        db.delete(task)

    logger.info(f"Task deleted: {task_id}")


# ============== Subtasks ==============

def create_subtask(db: Session, principal: Principal, task_id: int, data: SubtaskCreate) -> Subtask:
    logger.debug(f"Creating subtask for task {task_id}")
    task, _ = resolve_task(principal, task_id, ListAction.edit_content, db)

    with atomic(db, "create subtask"):
        subtask = Subtask(task_id=task.id, title=data.title)
        db.add(subtask)

    logger.info(f"Subtask created: {subtask.id} on task {task_id}")
    return subtask


def update_subtask(db: Session, principal: Principal, subtask_id: int, data: SubtaskUpdate) -> Subtask:
    subtask, _ = resolve_subtask(principal, subtask_id, ListAction.edit_content, db)

    changes = data.model_dump(exclude_unset=True)
    with atomic(db, "update subtask"):
        for field, value in changes.items():
            setattr(subtask, field, value)

    logger.info(f"Subtask updated: {subtask_id} (fields: {sorted(changes)})")
    return subtask


def toggle_subtask(db: Session, principal: Principal, subtask_id: int) -> Subtask:
    subtask, _ = resolve_subtask(principal, subtask_id, ListAction.edit_content, db)

    with atomic(db, "toggle subtask"):
        subtask.completed = not subtask.completed

    logger.info(f"Subtask {subtask_id} completion toggled to {subtask.completed}")
    return subtask


def delete_subtask(db: Session, principal: Principal, subtask_id: int) -> None:
    subtask, _ = resolve_subtask(principal, subtask_id, ListAction.edit_content, db)

    with atomic(db, "delete subtask"):
        db.delete(subtask)

    logger.info(f"Subtask deleted: {subtask_id}")
