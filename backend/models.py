from sqlalchemy import (
    DDL,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    event,
    false,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    # Always stored lower-cased and trimmed
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    security_question = Column(String(255), nullable=False)
    security_answer_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class TodoList(Base):
    __tablename__ = "lists"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    owner = relationship("User")
    memberships = relationship(
        "ListMember", back_populates="todo_list", cascade="all, delete-orphan", passive_deletes=True
    )
    tasks = relationship("Task", back_populates="todo_list", cascade="all, delete-orphan", passive_deletes=True)


class ListMember(Base):
    """
    A non-owner's access to a list.

    The owner is implicit (lists.owner_id) and never has a row here; the triggers
    installed below reject any row that would break that.
    """

    __tablename__ = "list_members"
    __table_args__ = (
        CheckConstraint("role IN ('member', 'admin')", name="ck_list_members_role"),
    )

    list_id = Column(Integer, ForeignKey("lists.id", ondelete="CASCADE"), primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    role = Column(String(20), nullable=False, default="member")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    todo_list = relationship("TodoList", back_populates="memberships")
    user = relationship("User")


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint(
            "priority IS NULL OR priority IN ('low', 'medium', 'high')", name="ck_tasks_priority"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    list_id = Column(Integer, ForeignKey("lists.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    priority = Column(String(10), nullable=True)
    due_date = Column(Date, nullable=True, index=True)
    completed = Column(Boolean, nullable=False, default=False, server_default=false(), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    todo_list = relationship("TodoList", back_populates="tasks")
    subtasks = relationship(
        "Subtask",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Subtask.id",
    )
    tag_links = relationship("TaskTag", cascade="all, delete-orphan", passive_deletes=True)

    # Read side of the many-to-many; writes go through TaskTag rows (see services/tags.py)
    tags = relationship("Tag", secondary="task_tags", order_by="Tag.name", viewonly=True)


class Subtask(Base):
    __tablename__ = "subtasks"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    completed = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    task = relationship("Task", back_populates="subtasks")


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, index=True)
    # Lower-cased and trimmed; shared by every list
    name = Column(String(50), unique=True, nullable=False)


class TaskTag(Base):
    __tablename__ = "task_tags"

    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True, index=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True)


# ============== Owner-is-never-a-member guard ==============

OWNER_MEMBERSHIP_ERROR = "list owner cannot also be a list member"

_SQLITE_OWNER_GUARDS = [
    f"""
    CREATE TRIGGER IF NOT EXISTS list_members_owner_guard_insert
    BEFORE INSERT ON list_members
    FOR EACH ROW WHEN EXISTS (
        SELECT 1 FROM lists WHERE id = NEW.list_id AND owner_id = NEW.user_id
    )
    BEGIN SELECT RAISE(ABORT, '{OWNER_MEMBERSHIP_ERROR}'); END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS list_members_owner_guard_update
    BEFORE UPDATE OF list_id, user_id ON list_members
    FOR EACH ROW WHEN EXISTS (
        SELECT 1 FROM lists WHERE id = NEW.list_id AND owner_id = NEW.user_id
    )
    BEGIN SELECT RAISE(ABORT, '{OWNER_MEMBERSHIP_ERROR}'); END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS lists_owner_guard_update
    BEFORE UPDATE OF owner_id ON lists
    FOR EACH ROW WHEN EXISTS (
        SELECT 1 FROM list_members WHERE list_id = NEW.id AND user_id = NEW.owner_id
    )
    BEGIN SELECT RAISE(ABORT, '{OWNER_MEMBERSHIP_ERROR}'); END
    """,
]

_POSTGRES_OWNER_GUARDS = [
    f"""
    CREATE OR REPLACE FUNCTION forbid_owner_membership() RETURNS trigger AS $$
    BEGIN
        IF TG_TABLE_NAME = 'list_members' THEN
            IF EXISTS (SELECT 1 FROM lists WHERE id = NEW.list_id AND owner_id = NEW.user_id) THEN
                RAISE EXCEPTION '{OWNER_MEMBERSHIP_ERROR}' USING ERRCODE = 'check_violation';
            END IF;
        ELSIF EXISTS (SELECT 1 FROM list_members WHERE list_id = NEW.id AND user_id = NEW.owner_id) THEN
            RAISE EXCEPTION '{OWNER_MEMBERSHIP_ERROR}' USING ERRCODE = 'check_violation';
        END IF;
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
    """,
    "DROP TRIGGER IF EXISTS list_members_owner_guard ON list_members",
    """
    CREATE TRIGGER list_members_owner_guard
    BEFORE INSERT OR UPDATE OF list_id, user_id ON list_members
    FOR EACH ROW EXECUTE FUNCTION forbid_owner_membership()
    """,
    "DROP TRIGGER IF EXISTS lists_owner_guard ON lists",
    """
    CREATE TRIGGER lists_owner_guard
    BEFORE UPDATE OF owner_id ON lists
    FOR EACH ROW EXECUTE FUNCTION forbid_owner_membership()
    """,
]

# list_members is created after lists, so both tables exist when these run
for _statement in _SQLITE_OWNER_GUARDS:
    event.listen(ListMember.__table__, "after_create", DDL(_statement).execute_if(dialect="sqlite"))
for _statement in _POSTGRES_OWNER_GUARDS:
    event.listen(ListMember.__table__, "after_create", DDL(_statement).execute_if(dialect="postgresql"))
