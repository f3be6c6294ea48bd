from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    label: Optional[str] = Field(None, max_length=100)


class RoleMembership(BaseModel):
    """Role ids to sync, attach or detach for one user."""
    roles: List[int] = Field(default_factory=list, description="Role ids")
    granted_by: Optional[str] = Field(None, max_length=100, description="Stored on each new membership")


class RoleDetach(BaseModel):
    """Role ids to detach; every role when omitted."""
    roles: Optional[List[int]] = Field(None, description="Role ids, all when omitted")


class RoleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    label: Optional[str] = None
