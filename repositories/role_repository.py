"""
Repository for roles.
"""

from typing import List, Optional
from sqlalchemy.orm import Session

from repositories.base_repository import BaseRepository
from database.models import RoleORM
from stores.sqlalchemy_store import SQLAlchemyStore


class RoleRepository(BaseRepository[RoleORM]):

    def __init__(self, db: Session):
        super().__init__(SQLAlchemyStore(db, RoleORM))

    def find_by_name(self, name: str, throw_if_missing: bool = True) -> Optional[RoleORM]:
        return self.first_where("name", name, throw_if_missing=throw_if_missing)

    def find_by_names(self, names: List[str]) -> List[RoleORM]:
        return self.get_where_in("name", names, throw_if_missing=False, order_by="name")
