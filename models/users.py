from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=150, pattern=r"^[^@\s]+@[^@\s]+$")
    bio: Optional[str] = None
    is_active: bool = True


class UserUpdate(BaseModel):
    """Partial update; only the fields sent are applied."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, min_length=3, max_length=150, pattern=r"^[^@\s]+@[^@\s]+$")
    bio: Optional[str] = None
    is_active: Optional[bool] = None


class UserOut(BaseModel):
    """Public representation of a user; ``is_admin`` is not part of it."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    bio: Optional[str] = None
    is_active: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
