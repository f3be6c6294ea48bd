from .users import router as users_router
from .posts import router as posts_router
from .roles import router as roles_router

__all__ = [
    "users_router",
    "posts_router",
    "roles_router",
]
