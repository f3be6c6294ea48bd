from typing import Any, Dict

from core.transform import Collection, Transformer
from models.users import UserOut


class UserTransformer(Transformer):
    available_includes = ("posts", "roles")

    def transform(self, user: Any) -> Dict[str, Any]:
        return UserOut.model_validate(user).model_dump()

    def include_posts(self, user: Any) -> Collection:
        from transformers.post_transformer import PostTransformer
        return self.collection(user.posts, PostTransformer())

    def include_roles(self, user: Any) -> Collection:
        from transformers.role_transformer import RoleTransformer
        return self.collection(user.roles, RoleTransformer())
