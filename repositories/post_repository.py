"""
Repository for posts.
"""

from typing import Any, List
from sqlalchemy.orm import Session

from repositories.base_repository import BaseRepository
from database.models import PostORM
from stores.sqlalchemy_store import SQLAlchemyStore


class PostRepository(BaseRepository[PostORM]):

    def __init__(self, db: Session):
        super().__init__(SQLAlchemyStore(db, PostORM))

    def find_by_author(self, user_id: Any, published_only: bool = False) -> List[PostORM]:
        """Posts written by one user, newest first. Empty list when there are none."""
        extra_filters = {"published": True} if published_only else None
        return self.get_where("user_id", user_id, extra_filters=extra_filters, throw_if_missing=False)
