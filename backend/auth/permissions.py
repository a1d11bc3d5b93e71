"""
List-level permission checking utilities.

This module decides what a principal may do with a list and with the tasks and
subtasks inside it. A principal's effective role over a list is exactly one of:

- owner  (lists.owner_id is the principal)
- admin or member  (a list_members row exists)
- none  (neither)

Callers that only need a yes/no go through check_list_access, which returns a
tagged Allowed/Denied outcome. Callers that must stop the request go through
authorize / resolve_task / resolve_subtask, which raise:

- NotFoundOrDenied (404) when the list is missing or the principal has no role,
  so responses never reveal that a private list exists
- PermissionDenied (403) when the principal can see the list but their role is
  not allowed to perform the action
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Tuple, Union

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from errors import NotFoundOrDenied, PermissionDenied
from models import ListMember, Subtask, Task, TodoList
from schemas import ListRole, Principal

logger = logging.getLogger(__name__)


class ListAction(str, Enum):
    read = "read"
    edit_content = "edit_content"
    rename = "rename"
    manage_members = "manage_members"
    delete = "delete"
    transfer_ownership = "transfer_ownership"
    leave = "leave"


_ALL_ROLES = frozenset({ListRole.owner, ListRole.admin, ListRole.member})
_MANAGERS = frozenset({ListRole.owner, ListRole.admin})
_OWNER_ONLY = frozenset({ListRole.owner})

# Roles allowed to perform each action
PERMISSION_MATRIX: Dict[ListAction, FrozenSet[ListRole]] = {
    ListAction.read: _ALL_ROLES,
    ListAction.edit_content: _ALL_ROLES,
    ListAction.rename: _MANAGERS,
    ListAction.manage_members: _MANAGERS,
    ListAction.delete: _OWNER_ONLY,
    ListAction.transfer_ownership: _OWNER_ONLY,
    ListAction.leave: frozenset({ListRole.admin, ListRole.member}),
}

_DENIAL_MESSAGES = {
    ListAction.rename: "Permission denied - only list owners and admins can rename lists",
    ListAction.manage_members: "Permission denied - only list owners and admins can manage members",
    ListAction.delete: "Permission denied - only list owners can delete lists",
    ListAction.transfer_ownership: "Permission denied - only list owners can transfer ownership",
    ListAction.leave: "Permission denied - list owners cannot leave their own lists",
}


@dataclass(frozen=True)
class Allowed:
    """The principal can see the list, with the given effective role."""

    todo_list: TodoList
    role: ListRole

    def permits(self, action: ListAction) -> bool:
        return self.role in PERMISSION_MATRIX[action]


@dataclass(frozen=True)
class Denied:
    """The list does not exist or the principal has no role on it."""


AccessOutcome = Union[Allowed, Denied]


def effective_role(principal_id: int, todo_list: TodoList, db: Session) -> ListRole:
    """
    Compute a user's effective role over a list.

    Example:
        >>> effective_role(alice.id, groceries, db)
        <ListRole.owner: 'owner'>
    """
    if todo_list.owner_id == principal_id:
        return ListRole.owner

    membership = (
        db.query(ListMember)
        .filter(ListMember.list_id == todo_list.id, ListMember.user_id == principal_id)
        .first()
    )
    if membership is None:
        return ListRole.none
    return ListRole(membership.role)


def check_list_access(principal: Principal, list_id: int, db: Session) -> AccessOutcome:
    """
    Look up a principal's access to a list.

    Args:
        principal: The authenticated caller
        list_id: ID of the list to check
        db: Database session

    Returns:
        Allowed(todo_list, role) if the principal is the owner or a member,
        Denied() if the list is missing or the principal has no role on it.
        The two Denied cases are deliberately indistinguishable.
    """
    logger.debug(f"Checking access for user {principal.id} on list {list_id}")

    todo_list = (
        db.query(TodoList)
        .options(joinedload(TodoList.owner))
        .filter(TodoList.id == list_id)
        .first()
    )
    if todo_list is None:
        logger.debug(f"List {list_id} not found")
        return Denied()

    role = effective_role(principal.id, todo_list, db)
    if role == ListRole.none:
        logger.info(f"User {principal.id} has no role on list {list_id}")
        return Denied()

    return Allowed(todo_list=todo_list, role=role)


def _require(outcome: AccessOutcome, action: ListAction, principal: Principal, resource: str) -> Allowed:
    if isinstance(outcome, Denied):
        raise NotFoundOrDenied(resource)

    if not outcome.permits(action):
        logger.info(
            f"User {principal.id} has role '{outcome.role.value}' on list {outcome.todo_list.id}, "
            f"but '{action.value}' is not allowed"
        )
        raise PermissionDenied(_DENIAL_MESSAGES.get(action))

    return outcome


def authorize(principal: Principal, list_id: int, action: ListAction, db: Session) -> Allowed:
    """
    Require a principal to be allowed an action on a list, or raise.

    Raises:
        NotFoundOrDenied: 404 if the list is missing or the principal has no role
        PermissionDenied: 403 if the principal's role does not permit the action

    Example:
        >>> access = authorize(principal, list_id, ListAction.rename, db)
        >>> access.todo_list.name = "Weekend"
    """
    outcome = check_list_access(principal, list_id, db)
    access = _require(outcome, action, principal, "List")
    logger.debug(f"Permission '{action.value}' granted for user {principal.id} on list {list_id}")
    return access


def resolve_task(principal: Principal, task_id: int, action: ListAction, db: Session) -> Tuple[Task, Allowed]:
    """Load a task and check the action against its owning list."""
    task = db.query(Task).filter(Task.id == task_id).first()
    if task is None:
        logger.debug(f"Task {task_id} not found")
        raise NotFoundOrDenied("Task")

    outcome = check_list_access(principal, task.list_id, db)
    return task, _require(outcome, action, principal, "Task")


def resolve_subtask(
    principal: Principal, subtask_id: int, action: ListAction, db: Session
) -> Tuple[Subtask, Allowed]:
    """Load a subtask and check the action against the list owning its parent task."""
    row = (
        db.query(Subtask, Task.list_id)
        .join(Task, Task.id == Subtask.task_id)
        .filter(Subtask.id == subtask_id)
        .first()
    )
    if row is None:
        logger.debug(f"Subtask {subtask_id} not found")
        raise NotFoundOrDenied("Subtask")

    subtask, list_id = row
    outcome = check_list_access(principal, list_id, db)
    return subtask, _require(outcome, action, principal, "Subtask")


def accessible_lists(principal: Principal, db: Session) -> List[Tuple[TodoList, ListRole]]:
    """
    Get every list a principal owns or is a member of, newest first.

    Returns:
        (todo_list, effective_role) pairs
    """
    logger.debug(f"Getting lists for user {principal.id}")

    rows = (
        db.query(TodoList, ListMember.role)
        .options(joinedload(TodoList.owner))
        .outerjoin(
            ListMember,
            and_(ListMember.list_id == TodoList.id, ListMember.user_id == principal.id),
        )
        .filter(or_(TodoList.owner_id == principal.id, ListMember.user_id.isnot(None)))
        .order_by(TodoList.created_at.desc(), TodoList.id.desc())
        .all()
    )

    result = []
    for todo_list, member_role in rows:
        role = ListRole.owner if todo_list.owner_id == principal.id else ListRole(member_role)
        result.append((todo_list, role))

    logger.debug(f"User {principal.id} has access to {len(result)} lists")
    return result
