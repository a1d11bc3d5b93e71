"""
Tag reconciliation for tasks.

Tags are global rows shared by every list. A task's tag set is always written
as a whole: the existing links are dropped and the new set is linked, inside
the caller's transaction.
"""

import logging
from typing import Iterable, List

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from models import Tag, TaskTag

logger = logging.getLogger(__name__)


def normalize_tag_names(names: Iterable[str]) -> List[str]:
    """
    Trim, lower-case, drop blanks and collapse duplicates, keeping first-seen order.

    Example:
        >>> normalize_tag_names([" Work", "work", "", "Home "])
        ['work', 'home']
    """
    seen = []
    for name in names:
        cleaned = name.strip().lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


def _insert_for(db: Session):
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return postgresql_insert


def upsert_tags(db: Session, names: List[str]) -> List[Tag]:
    """
    Ensure a Tag row exists for every name and return them ordered by name.

    Uses INSERT ... ON CONFLICT (name) DO NOTHING followed by a read, so a
    concurrent request creating the same tag sees the row that won.
    """
    if not names:
        return []

    insert = _insert_for(db)
    statement = insert(Tag).values([{"name": name} for name in names])
    db.execute(statement.on_conflict_do_nothing(index_elements=["name"]))

    tags = db.query(Tag).filter(Tag.name.in_(names)).order_by(Tag.name).all()
    logger.debug(f"Resolved {len(tags)} tags: {[tag.name for tag in tags]}")
    return tags


def replace_task_tags(db: Session, task_id: int, names: Iterable[str]) -> List[Tag]:
    """Replace every tag link of a task with the given names. Must run inside atomic()."""
    cleaned = normalize_tag_names(names)

    db.query(TaskTag).filter(TaskTag.task_id == task_id).delete(synchronize_session="fetch")

    tags = upsert_tags(db, cleaned)
    if tags:
        db.execute(TaskTag.__table__.insert(), [{"task_id": task_id, "tag_id": tag.id} for tag in tags])
    db.flush()

    logger.debug(f"Task {task_id} now linked to tags {cleaned}")
    return tags


def list_tags(db: Session) -> List[Tag]:
    """Every tag, ordered by name."""
    return db.query(Tag).order_by(Tag.name).all()
