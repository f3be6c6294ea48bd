"""
Post routes.
"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional
import logging

from models.posts import PostTags
from core.responses import success, with_meta
from core.transform import transform_item, transform_page
from dependencies import PageParams, get_includes, get_post_repository, get_tag_repository
from repositories.post_repository import PostRepository
from repositories.tag_repository import TagRepository
from transformers import PostTransformer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("")
async def list_posts(
    user_id: Optional[int] = Query(None, description="Only posts by this user"),
    params: PageParams = Depends(),
    includes: List[str] = Depends(get_includes),
    posts: PostRepository = Depends(get_post_repository),
):
    """
    Paginated posts, newest first.

    Returns:
        ``data`` with the posts and ``meta.pagination``
    """
    query = posts.query()
    if user_id is not None:
        query = query.where("user_id", user_id)

    page = query.latest().paginate(params.per_page, params.page)
    return with_meta(transform_page(page, PostTransformer(), includes))


@router.put("/{post_id}/tags")
async def sync_post_tags(
    post_id: int,
    payload: PostTags,
    posts: PostRepository = Depends(get_post_repository),
    tags: TagRepository = Depends(get_tag_repository),
):
    """Replace the post's tags with the given names, creating missing tags."""
    post = posts.get(post_id)
    names = list(dict.fromkeys(name.strip() for name in payload.tags if name.strip()))
    tag_ids = [tags.find_or_create(name).id for name in names]

    changes = posts.sync(post, "tags", tag_ids)
    posts.commit()
    logger.info(f"Post {post_id} tags synced: {changes}")
    return success(transform_item(post, PostTransformer(), ["tags"]))
