"""
Repository for tags.
"""

from sqlalchemy.orm import Session

from repositories.base_repository import BaseRepository
from database.models import TagORM
from stores.sqlalchemy_store import SQLAlchemyStore


class TagRepository(BaseRepository[TagORM]):

    def __init__(self, db: Session):
        super().__init__(SQLAlchemyStore(db, TagORM))

    def find_or_create(self, name: str) -> TagORM:
        return self.first_or_create({"name": name})
