"""
Pytest fixtures shared by every test.
"""

import pytest
import os
from types import SimpleNamespace
from typing import Generator, Dict, Any
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# in-memory database for tests
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from main import app
from database.db import get_db
from database.models import Base, UserORM, RoleORM, PostORM, TagORM
from stores.memory_store import (
    EntityKind,
    MemoryDatabase,
    belongs_to,
    belongs_to_many,
    has_many,
)
from repositories import (
    BaseRepository,
    UserRepository,
    RoleRepository,
    PostRepository,
    TagRepository,
)

# ==================== Database Fixtures ====================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a new database session for a test."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=db_engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database session override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ==================== Data Fixtures ====================

@pytest.fixture
def user_data() -> Dict[str, Any]:
    """Sample user data for testing."""
    return {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "bio": "First programmer",
        "is_active": True,
    }


@pytest.fixture
def user(db_session: Session, user_data: Dict[str, Any]) -> UserORM:
    """Create a user in the database."""
    user = UserORM(**user_data)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def other_user(db_session: Session) -> UserORM:
    user = UserORM(name="Grace Hopper", email="grace@example.com", is_active=False)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def roles(db_session: Session) -> Dict[str, RoleORM]:
    """Create the admin, editor and viewer roles."""
    created = {
        name: RoleORM(name=name, label=name.title())
        for name in ("admin", "editor", "viewer")
    }
    db_session.add_all(created.values())
    db_session.commit()
    for role in created.values():
        db_session.refresh(role)
    return created


@pytest.fixture
def posts(db_session: Session, user: UserORM) -> list:
    """Three posts written by ``user``."""
    created = [
        PostORM(user_id=user.id, title=f"Post {number}", body="...", published=number != 2)
        for number in (1, 2, 3)
    ]
    db_session.add_all(created)
    db_session.commit()
    for post in created:
        db_session.refresh(post)
    return created


@pytest.fixture
def tags(db_session: Session) -> list:
    created = [TagORM(name=name) for name in ("python", "sql")]
    db_session.add_all(created)
    db_session.commit()
    for tag in created:
        db_session.refresh(tag)
    return created


# ==================== In-memory store Fixtures ====================

@pytest.fixture
def memory_db() -> MemoryDatabase:
    """A fresh in-memory database with users, roles, posts and tags."""
    return MemoryDatabase([
        EntityKind(
            "User",
            fields=("name", "email", "bio", "is_active", "is_admin"),
            fillable=("name", "email", "bio", "is_active"),
            required=("name", "email"),
            unique=("email",),
            relations=(
                has_many("posts", "Post", "user_id"),
                belongs_to_many("roles", "Role", "role_user", "user_id", "role_id", ("granted_by",)),
            ),
        ),
        EntityKind(
            "Role",
            fields=("name", "label"),
            fillable=("name", "label"),
            required=("name",),
            unique=("name",),
            relations=(
                belongs_to_many("users", "User", "role_user", "role_id", "user_id", ("granted_by",)),
            ),
        ),
        EntityKind(
            "Post",
            fields=("user_id", "title", "body", "published"),
            fillable=("title", "body", "published"),
            required=("user_id", "title"),
            relations=(
                belongs_to("author", "User", "user_id"),
                belongs_to_many("tags", "Tag", "post_tag", "post_id", "tag_id"),
            ),
        ),
        EntityKind(
            "Tag",
            fields=("name",),
            fillable=("name",),
            required=("name",),
            unique=("name",),
            timestamps=False,
            relations=(
                belongs_to_many("posts", "Post", "post_tag", "tag_id", "post_id"),
            ),
        ),
    ])


@pytest.fixture(params=["sqlalchemy", "memory"])
def repos(request, db_session: Session, memory_db: MemoryDatabase) -> SimpleNamespace:
    """
    Repositories for every kind, on the SQLAlchemy store and on the
    in-memory store in turn.
    """
    if request.param == "sqlalchemy":
        return SimpleNamespace(
            backend=request.param,
            users=UserRepository(db_session),
            roles=RoleRepository(db_session),
            posts=PostRepository(db_session),
            tags=TagRepository(db_session),
        )
    return SimpleNamespace(
        backend=request.param,
        users=BaseRepository(memory_db.store("User")),
        roles=BaseRepository(memory_db.store("Role")),
        posts=BaseRepository(memory_db.store("Post")),
        tags=BaseRepository(memory_db.store("Tag")),
    )
