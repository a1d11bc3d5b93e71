"""
List membership and ownership transfer.

The owner of a list is never a list_members row (the Store rejects such rows),
so every operation here treats the owner separately from the members.
"""

import logging
from typing import List, Tuple

from sqlalchemy.orm import Session

import schemas
from auth.permissions import Denied, ListAction, authorize, check_list_access
from database import atomic
from errors import Conflict, InvalidOperation, NotFound, NotFoundOrDenied
from models import ListMember, User
from schemas import ListRole, MemberRole, Principal
from services.lists import serialize_list

logger = logging.getLogger(__name__)

ALREADY_MEMBER = "User is already a member of this list"
NOT_A_MEMBER = "User is not a member of this list"
USER_NOT_FOUND = "User not found with this email address"
OWNER_CANNOT_LEAVE = (
    "List owners cannot leave their own lists. Transfer ownership or delete the list instead."
)


def _member_view(user: User, role: ListRole, joined_at) -> schemas.ListMember:
    return schemas.ListMember(id=user.id, name=user.name, email=user.email, role=role, joined_at=joined_at)


def _find_user_by_email(db: Session, email: str) -> User:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if user is None:
        logger.info(f"No user registered with email {email}")
        raise NotFound(USER_NOT_FOUND)
    return user


def _get_membership(db: Session, list_id: int, user_id: int):
    return (
        db.query(ListMember)
        .filter(ListMember.list_id == list_id, ListMember.user_id == user_id)
        .first()
    )


def _drop_membership(db: Session, list_id: int, user_id: int) -> None:
    db.query(ListMember).filter(
        ListMember.list_id == list_id, ListMember.user_id == user_id
    ).delete(synchronize_session="fetch")
    db.flush()


def _add_membership(db: Session, list_id: int, user_id: int, role: MemberRole) -> ListMember:
    membership = ListMember(list_id=list_id, user_id=user_id, role=role.value)
    db.add(membership)
    db.flush()
    return membership


def list_members(db: Session, principal: Principal, list_id: int) -> List[schemas.ListMember]:
    """The owner first (joined when the list was created), then members by join time."""
    logger.debug(f"Fetching members of list {list_id}")
    access = authorize(principal, list_id, ListAction.read, db)
    todo_list = access.todo_list

    rows = (
        db.query(ListMember, User)
        .join(User, User.id == ListMember.user_id)
        .filter(ListMember.list_id == list_id)
        .order_by(ListMember.created_at, ListMember.user_id)
        .all()
    )

    members = [_member_view(todo_list.owner, ListRole.owner, todo_list.created_at)]
    members.extend(_member_view(user, ListRole(membership.role), membership.created_at) for membership, user in rows)
    return members


def add_member(
    db: Session, principal: Principal, list_id: int, email: str, role: MemberRole = MemberRole.member
) -> schemas.ListMember:
    """
    Share a list with a registered user.

    Raises:
        NotFound: no user has this email
        Conflict: the user already owns or belongs to the list, including when a
            concurrent request added them first
    """
    logger.debug(f"Adding {email} to list {list_id} as {role.value}")
    access = authorize(principal, list_id, ListAction.manage_members, db)
    user = _find_user_by_email(db, email)

    if user.id == access.todo_list.owner_id:
        raise Conflict("User is already the owner of this list")
    if _get_membership(db, list_id, user.id) is not None:
        raise Conflict(ALREADY_MEMBER)

    with atomic(db, "add member", conflict_message=ALREADY_MEMBER):
        membership = _add_membership(db, list_id, user.id, role)

    logger.info(f"User {user.id} added to list {list_id} as {role.value} by user {principal.id}")
    return _member_view(user, ListRole(membership.role), membership.created_at)


def update_member_role(
    db: Session, principal: Principal, list_id: int, user_id: int, role: MemberRole
) -> schemas.ListMember:
    access = authorize(principal, list_id, ListAction.manage_members, db)

    if user_id == access.todo_list.owner_id:
        raise InvalidOperation("Cannot change the role of the list owner")

    membership = _get_membership(db, list_id, user_id)
    if membership is None:
        raise NotFound(NOT_A_MEMBER)

    with atomic(db, "update member role"):
        membership.role = role.value

    logger.info(f"User {user_id} role on list {list_id} set to {role.value} by user {principal.id}")
    return _member_view(membership.user, ListRole(membership.role), membership.created_at)


def remove_member(db: Session, principal: Principal, list_id: int, user_id: int) -> None:
    access = authorize(principal, list_id, ListAction.manage_members, db)

    if user_id == access.todo_list.owner_id:
        raise InvalidOperation("Cannot remove the list owner")

    if _get_membership(db, list_id, user_id) is None:
        raise NotFound(NOT_A_MEMBER)

    with atomic(db, "remove member"):
        _drop_membership(db, list_id, user_id)

    logger.info(f"User {user_id} removed from list {list_id} by user {principal.id}")


def leave_list(db: Session, principal: Principal, list_id: int) -> None:
    """
    Remove the principal's own membership.

    Raises:
        NotFoundOrDenied: the list is missing or the principal is not on it
        InvalidOperation: the principal owns the list
    """
    outcome = check_list_access(principal, list_id, db)
    if isinstance(outcome, Denied):
        raise NotFoundOrDenied("List")
    if outcome.role == ListRole.owner:
        logger.info(f"Owner {principal.id} attempted to leave list {list_id}")
        raise InvalidOperation(OWNER_CANNOT_LEAVE)

    with atomic(db, "leave list"):
        _drop_membership(db, list_id, principal.id)

    logger.info(f"User {principal.id} left list {list_id}")


def transfer_ownership(
    db: Session, principal: Principal, list_id: int, new_owner_email: str
) -> Tuple[User, schemas.TodoList]:
    """
    Hand a list to another registered user.

    The new owner's membership row (if any) is removed, owner_id is switched
    and the previous owner stays on the list as an admin. All three writes
    commit together or not at all. The membership is dropped before owner_id
    changes and the previous owner is re-added after, so the owner is never
    also a member at any point inside the transaction.

    Returns:
        (new_owner, list as seen by the previous owner)

    Raises:
        NotFound: no user has this email
        InvalidOperation: the user already owns the list
    """
    logger.debug(f"Transferring list {list_id} to {new_owner_email}")
    access = authorize(principal, list_id, ListAction.transfer_ownership, db)
    todo_list = access.todo_list
    new_owner = _find_user_by_email(db, new_owner_email)

    if new_owner.id == todo_list.owner_id:
        raise InvalidOperation("You are already the owner of this list")

    previous_owner_id = todo_list.owner_id
    with atomic(db, "transfer ownership"):
        _drop_membership(db, list_id, new_owner.id)
        todo_list.owner = new_owner
        db.flush()
        _add_membership(db, list_id, previous_owner_id, MemberRole.admin)

    logger.info(f"List {list_id} ownership transferred from user {previous_owner_id} to user {new_owner.id}")
    return new_owner, serialize_list(todo_list, ListRole.admin)
