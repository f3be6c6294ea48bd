"""
Repository for users.
"""

from typing import List, Optional
from sqlalchemy.orm import Session

from repositories.base_repository import BaseRepository
from database.models import UserORM
from stores.sqlalchemy_store import SQLAlchemyStore
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[UserORM]):
    """Data access for users and their roles and posts."""

    def __init__(self, db: Session):
        """
        Args:
            db: SQLAlchemy session
        """
        super().__init__(SQLAlchemyStore(db, UserORM))

    def find_by_email(self, email: str, throw_if_missing: bool = False) -> Optional[UserORM]:
        """
        Look a user up by email address.

        Returns:
            The user, or None when missing and throw_if_missing is off
        """
        return self.first_where("email", email, throw_if_missing=throw_if_missing)

    def find_active(self, related: Optional[List[str]] = None) -> List[UserORM]:
        return self.get_where("is_active", True, throw_if_missing=False, order_by="name", related=related)

    def search_by_name(self, fragment: str) -> List[UserORM]:
        return self.query().where("name", "like", f"%{fragment}%").order_by("name").get()
