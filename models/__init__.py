from .users import UserCreate, UserUpdate, UserOut
from .roles import RoleCreate, RoleMembership, RoleDetach, RoleOut
from .posts import PostCreate, PostBatchCreate, PostTags, PostOut
from .tags import TagOut

__all__ = [
    "UserCreate",
    "UserUpdate",
    "UserOut",
    "RoleCreate",
    "RoleMembership",
    "RoleDetach",
    "RoleOut",
    "PostCreate",
    "PostBatchCreate",
    "PostTags",
    "PostOut",
    "TagOut",
]
