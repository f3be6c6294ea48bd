from typing import Any, Dict

from core.transform import Collection, Transformer
from models.roles import RoleOut


class RoleTransformer(Transformer):
    available_includes = ("users",)

    def transform(self, role: Any) -> Dict[str, Any]:
        return RoleOut.model_validate(role).model_dump()

    def include_users(self, role: Any) -> Collection:
        from transformers.user_transformer import UserTransformer
        return self.collection(role.users, UserTransformer())
