from typing import Any, Dict

from core.transform import Collection, Transformer
from models.tags import TagOut


class TagTransformer(Transformer):
    available_includes = ("posts",)

    def transform(self, tag: Any) -> Dict[str, Any]:
        return TagOut.model_validate(tag).model_dump()

    def include_posts(self, tag: Any) -> Collection:
        from transformers.post_transformer import PostTransformer
        return self.collection(tag.posts, PostTransformer())
