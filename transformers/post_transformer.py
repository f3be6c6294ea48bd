from typing import Any, Dict, Optional

from core.transform import Collection, Item, Transformer
from models.posts import PostOut


class PostTransformer(Transformer):
    available_includes = ("author", "tags")

    def transform(self, post: Any) -> Dict[str, Any]:
        return PostOut.model_validate(post).model_dump()

    def include_author(self, post: Any) -> Optional[Item]:
        from transformers.user_transformer import UserTransformer
        if post.author is None:
            return None
        return self.item(post.author, UserTransformer())

    def include_tags(self, post: Any) -> Collection:
        from transformers.tag_transformer import TagTransformer
        return self.collection(post.tags, TagTransformer())
