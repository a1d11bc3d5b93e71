"""
Test configuration and fixtures for the To-Do API tests.

Provides:
- A fresh in-memory SQLite Store per test (foreign keys and owner triggers on)
- FastAPI test client built with create_app(store) and the session overridden
- Authentication helpers (JWT token generation, principals for service calls)
- Common fixtures for users and a shared list
"""

import os
import sys
import logging
from datetime import timedelta
from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Store, get_db
from main import create_app
import models
import schemas
from auth.security import create_access_token, hash_password, hash_security_answer

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

# SQLite in-memory database for fast testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

DEFAULT_SECURITY_QUESTION = "What was the name of your first pet?"
DEFAULT_SECURITY_ANSWER = "Rex"


@pytest.fixture(scope="function")
def store() -> Generator[Store, None, None]:
    """
    Create a fresh in-memory SQLite Store for each test.

    StaticPool keeps a single connection so every session sees the same database.
    """
    logger.debug("Creating test store")
    test_store = Store(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    test_store.create_schema()
    try:
        yield test_store
    finally:
        test_store.drop_schema()
        test_store.dispose()
        logger.debug("Test store cleaned up")


@pytest.fixture(scope="function")
def test_db(store: Store) -> Generator[Session, None, None]:
    db = store.session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(store: Store, test_db: Session) -> TestClient:
    """
    Create FastAPI test client with database dependency override.
    """
    app = create_app(store)

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_user(db: Session, name: str, email: str, password: str = "secret123") -> models.User:
    """Insert a user directly, bypassing the register endpoint."""
    user = models.User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        security_question=DEFAULT_SECURITY_QUESTION,
        security_answer_hash=hash_security_answer(DEFAULT_SECURITY_ANSWER),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created user {email} with ID: {user.id}")
    return user


@pytest.fixture(scope="function")
def owner_user(test_db: Session) -> models.User:
    """User who owns the shared list."""
    return make_user(test_db, "Alice Owner", "alice@test.com", "alice123")


@pytest.fixture(scope="function")
def admin_user(test_db: Session) -> models.User:
    """User with the admin role on the shared list."""
    return make_user(test_db, "Carol Admin", "carol@test.com", "carol123")


@pytest.fixture(scope="function")
def member_user(test_db: Session) -> models.User:
    """User with the member role on the shared list."""
    return make_user(test_db, "Bob Member", "bob@test.com", "bob123")


@pytest.fixture(scope="function")
def outsider_user(test_db: Session) -> models.User:
    """User with no role on the shared list."""
    return make_user(test_db, "Dave Outsider", "dave@test.com", "dave123")


def create_auth_token(user: models.User, expires_delta: timedelta = None) -> str:
    """
    Helper to create JWT access token for a user.

    Args:
        user: User to create token for
        expires_delta: Optional expiration time override

    Returns:
        JWT access token string
    """
    logger.debug(f"Creating auth token for user {user.id}")
    token_data = {"sub": str(user.id), "email": user.email}
    return create_access_token(token_data, expires_delta)


def auth_headers_for(user: models.User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_auth_token(user)}"}


def principal_for(user: models.User) -> schemas.Principal:
    """Principal value for calling services directly."""
    return schemas.Principal.model_validate(user)


@pytest.fixture(scope="function")
def owner_headers(owner_user: models.User) -> Dict[str, str]:
    return auth_headers_for(owner_user)


@pytest.fixture(scope="function")
def admin_headers(admin_user: models.User) -> Dict[str, str]:
    return auth_headers_for(admin_user)


@pytest.fixture(scope="function")
def member_headers(member_user: models.User) -> Dict[str, str]:
    return auth_headers_for(member_user)


@pytest.fixture(scope="function")
def outsider_headers(outsider_user: models.User) -> Dict[str, str]:
    return auth_headers_for(outsider_user)


@pytest.fixture(scope="function")
def shared_list(
    test_db: Session,
    owner_user: models.User,
    admin_user: models.User,
    member_user: models.User,
) -> models.TodoList:
    """
    Create a list owned by owner_user, with admin_user as admin and member_user as member.
    """
    logger.debug("Creating shared list")
    todo_list = models.TodoList(name="Shared List", owner_id=owner_user.id)
    test_db.add(todo_list)
    test_db.commit()
    test_db.refresh(todo_list)

    test_db.add_all([
        models.ListMember(list_id=todo_list.id, user_id=admin_user.id, role="admin"),
        models.ListMember(list_id=todo_list.id, user_id=member_user.id, role="member"),
    ])
    test_db.commit()

    logger.info(f"Created shared list with ID: {todo_list.id}")
    return todo_list


@pytest.fixture(scope="function")
def task(test_db: Session, shared_list: models.TodoList) -> models.Task:
    """A pending task in the shared list."""
    task = models.Task(list_id=shared_list.id, title="Buy milk", priority="high")
    test_db.add(task)
    test_db.commit()
    test_db.refresh(task)
    return task


@pytest.fixture(scope="function")
def subtask(test_db: Session, task: models.Task) -> models.Subtask:
    subtask = models.Subtask(task_id=task.id, title="Check fridge")
    test_db.add(subtask)
    test_db.commit()
    test_db.refresh(subtask)
    return subtask
