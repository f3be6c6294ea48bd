"""
Repository layer for data access.

Repositories give uniform read, write and relation operations over one
entity kind and hold no business logic.
"""

from .contracts import Repository
from .base_repository import BaseRepository
from .user_repository import UserRepository
from .role_repository import RoleRepository
from .post_repository import PostRepository
from .tag_repository import TagRepository

__all__ = [
    "Repository",
    "BaseRepository",
    "UserRepository",
    "RoleRepository",
    "PostRepository",
    "TagRepository",
]
