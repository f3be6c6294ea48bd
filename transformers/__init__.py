from .user_transformer import UserTransformer
from .role_transformer import RoleTransformer
from .post_transformer import PostTransformer
from .tag_transformer import TagTransformer

__all__ = [
    "UserTransformer",
    "RoleTransformer",
    "PostTransformer",
    "TagTransformer",
]
