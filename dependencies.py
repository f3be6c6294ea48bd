"""
Dependency injection for repositories and request parameters.

This module provides FastAPI dependencies for injecting repositories into
route handlers, one session per request.
"""

from typing import List, Optional
from sqlalchemy.orm import Session
from fastapi import Depends, Query

from config import settings
from core.utils import parse_includes
from database.db import get_db
from repositories.user_repository import UserRepository
from repositories.role_repository import RoleRepository
from repositories.post_repository import PostRepository
from repositories.tag_repository import TagRepository


# ==================== Repository Dependencies ====================

def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    """
    Get UserRepository instance.

    Args:
        db: Database session (injected by FastAPI)

    Returns:
        UserRepository instance
    """
    return UserRepository(db)


def get_role_repository(db: Session = Depends(get_db)) -> RoleRepository:
    return RoleRepository(db)


def get_post_repository(db: Session = Depends(get_db)) -> PostRepository:
    return PostRepository(db)


def get_tag_repository(db: Session = Depends(get_db)) -> TagRepository:
    return TagRepository(db)


# ==================== Request Parameters ====================

def get_includes(
    includes: Optional[str] = Query(None, description="Comma separated relations to include"),
    include: Optional[str] = Query(None, description="Alias of includes"),
) -> List[str]:
    """Relation names requested through ``includes`` and ``include``."""
    return parse_includes(includes, include)


class PageParams:
    """``page`` and ``per_page`` query parameters."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-indexed)"),
        per_page: int = Query(
            settings.default_page_size,
            ge=1,
            le=settings.max_page_size,
            description="Items per page",
        ),
    ):
        self.page = page
        self.per_page = per_page
