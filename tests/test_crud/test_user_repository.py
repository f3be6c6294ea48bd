"""
Tests for the SQLAlchemy-backed repositories.

Tests cover:
- Entity finders on UserRepository, RoleRepository, PostRepository and TagRepository
- Unit of work: commit and rollback
- Database constraint translation
"""

import pytest
from sqlalchemy.orm import Session

from database.models import UserORM
from repositories import PostRepository, RoleRepository, TagRepository, UserRepository
from core.exceptions import (
    ConstraintViolationException,
    NotFoundException,
    ValidationException,
)


@pytest.fixture
def user_repository(db_session: Session) -> UserRepository:
    """Create a UserRepository instance."""
    return UserRepository(db_session)


class TestUserFinders:

    def test_find_by_email(self, user_repository, user):
        assert user_repository.find_by_email(user.email).id == user.id
        assert user_repository.find_by_email("nobody@example.com") is None

    def test_find_by_email_throwing(self, user_repository):
        with pytest.raises(NotFoundException):
            user_repository.find_by_email("nobody@example.com", throw_if_missing=True)

    def test_find_active(self, user_repository, user, other_user):
        assert [found.id for found in user_repository.find_active()] == [user.id]

    def test_search_by_name(self, user_repository, user, other_user):
        assert [found.id for found in user_repository.search_by_name("grace")] == [other_user.id]


class TestOtherFinders:

    def test_role_find_by_name(self, db_session, roles):
        repository = RoleRepository(db_session)

        assert repository.find_by_name("editor").id == roles["editor"].id
        assert repository.find_by_name("owner", throw_if_missing=False) is None

    def test_role_find_by_names(self, db_session, roles):
        found = RoleRepository(db_session).find_by_names(["viewer", "admin", "owner"])

        assert [role.name for role in found] == ["admin", "viewer"]

    def test_posts_by_author(self, db_session, user, posts):
        repository = PostRepository(db_session)

        assert len(repository.find_by_author(user.id)) == 3
        assert [post.title for post in repository.find_by_author(user.id, published_only=True)] == [
            "Post 3",
            "Post 1",
        ]

    def test_posts_by_author_without_posts(self, db_session, other_user):
        assert PostRepository(db_session).find_by_author(other_user.id) == []

    def test_tag_find_or_create(self, db_session, tags):
        repository = TagRepository(db_session)

        assert repository.find_or_create("python").id == tags[0].id
        assert repository.find_or_create("rust").id not in {tag.id for tag in tags}


class TestUnitOfWork:

    def test_commit_persists(self, user_repository, db_session):
        created = user_repository.create({"name": "Ada", "email": "ada@example.com"})
        created_id = created.id

        user_repository.commit()
        db_session.expunge_all()

        assert user_repository.get(created_id).name == "Ada"

    def test_rollback_discards(self, user_repository):
        created = user_repository.create({"name": "Ada", "email": "ada@example.com"})
        created_id = created.id

        user_repository.rollback()

        assert user_repository.get(created_id, throw_if_missing=False) is None


class TestConstraints:

    def test_duplicate_email_is_a_validation_error(self, user_repository, user):
        with pytest.raises(ValidationException):
            user_repository.create({"name": "Copy", "email": user.email})

    def test_missing_required_column(self, user_repository):
        with pytest.raises(ValidationException):
            user_repository.create({"name": "No email"})

    def test_delete_with_posts_is_blocked(self, user_repository, user, posts):
        with pytest.raises(ConstraintViolationException):
            user_repository.delete(user.id)

        assert user_repository.get(user.id).email == user.email

    def test_attach_missing_role(self, user_repository, user):
        with pytest.raises(ConstraintViolationException):
            user_repository.attach(user, "roles", [999])

    def test_new_instance_existing_is_the_session_instance(self, user_repository, user):
        handle = user_repository.new_instance({"id": user.id, "name": user.name}, exists=True)

        assert handle is user
        assert user_repository.store.is_persisted(handle) is True

    def test_update_existing_new_instance_outside_session(self, user_repository, db_session, user):
        user_id = user.id
        db_session.expunge_all()

        handle = user_repository.new_instance({"id": user_id}, exists=True)

        assert isinstance(handle, UserORM)
        assert handle.email == "ada@example.com"
        assert user_repository.update(handle, {"bio": "Countess"}) is True
        user_repository.commit()
        db_session.expunge_all()
        assert user_repository.get(user_id).bio == "Countess"
