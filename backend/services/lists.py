"""
List lifecycle: create, read, rename, delete.

A list is the aggregate root. Deleting it removes its memberships, tasks,
subtasks and tag links through ON DELETE CASCADE; tag rows themselves survive.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

import schemas
from auth.permissions import ListAction, accessible_lists, authorize
from database import atomic
from models import TodoList
from schemas import ListRole, Principal
from services.tasks import tasks_in_list

logger = logging.getLogger(__name__)


def serialize_list(todo_list: TodoList, role: ListRole) -> schemas.TodoList:
    return schemas.TodoList(
        id=todo_list.id,
        name=todo_list.name,
        owner_id=todo_list.owner_id,
        owner_name=todo_list.owner.name if todo_list.owner else None,
        user_role=role,
        created_at=todo_list.created_at,
    )


def list_accessible_lists(db: Session, principal: Principal) -> List[schemas.TodoList]:
    """Lists the principal owns or belongs to, newest first."""
    logger.debug(f"Fetching lists for user {principal.id}")
    return [serialize_list(todo_list, role) for todo_list, role in accessible_lists(principal, db)]


def get_list_with_contents(db: Session, principal: Principal, list_id: int) -> schemas.TodoListWithTasks:
    """
    Get a list with its tasks (newest first), each task's tags and subtasks.

    Raises:
        NotFoundOrDenied: the list is missing or the principal has no role on it
    """
    logger.debug(f"Fetching list {list_id} with contents")
    access = authorize(principal, list_id, ListAction.read, db)

    summary = serialize_list(access.todo_list, access.role)
    tasks = [schemas.TaskWithSubtasks.model_validate(task) for task in tasks_in_list(db, list_id)]
    return schemas.TodoListWithTasks(**summary.model_dump(), tasks=tasks)


def create_list(db: Session, principal: Principal, name: str) -> schemas.TodoList:
    logger.debug(f"Creating list '{name}' for user {principal.id}")

    # The creator owns the list through owner_id only; no membership row is written
    with atomic(db, "create list"):
        todo_list = TodoList(name=name, owner_id=principal.id)
        db.add(todo_list)

    logger.info(f"List created: {todo_list.id} by user {principal.id}")
    return serialize_list(todo_list, ListRole.owner)


def rename_list(db: Session, principal: Principal, list_id: int, name: str) -> schemas.TodoList:
    access = authorize(principal, list_id, ListAction.rename, db)

    with atomic(db, "rename list"):
        access.todo_list.name = name

    logger.info(f"List {list_id} renamed by user {principal.id}")
    return serialize_list(access.todo_list, access.role)


def delete_list(db: Session, principal: Principal, list_id: int) -> None:
    access = authorize(principal, list_id, ListAction.delete, db)

    with atomic(db, "delete list"):
        db.delete(access.todo_list)

    logger.info(f"List deleted: {list_id} by user {principal.id}")
