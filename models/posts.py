from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime


class PostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    body: Optional[str] = None
    published: bool = False


class PostBatchCreate(BaseModel):
    """Payload of a bulk post creation (``bulk`` set)."""
    posts: List[PostCreate] = Field(..., min_length=1)


class PostTags(BaseModel):
    """Tag names a post should carry; unknown names are created."""
    tags: List[str] = Field(default_factory=list)


class PostOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    title: str
    body: Optional[str] = None
    published: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
