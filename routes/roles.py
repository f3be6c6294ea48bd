"""
Role routes.
"""

from fastapi import APIRouter, Depends, status
from typing import List

from models.roles import RoleCreate
from core.exceptions import ValidationException
from core.responses import success
from core.transform import transform_collection, transform_item
from dependencies import get_includes, get_role_repository
from repositories.role_repository import RoleRepository
from transformers import RoleTransformer

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("")
async def list_roles(
    includes: List[str] = Depends(get_includes),
    roles: RoleRepository = Depends(get_role_repository),
):
    """Every role, by name."""
    return success(transform_collection(roles.query().order_by("name").get(), RoleTransformer(), includes))


@router.post("")
async def create_role(
    payload: RoleCreate,
    roles: RoleRepository = Depends(get_role_repository),
):
    if roles.find_by_name(payload.name, throw_if_missing=False) is not None:
        raise ValidationException("Role already exists", field="name")

    role = roles.create(payload.model_dump())
    roles.commit()
    return success(transform_item(role, RoleTransformer()), status.HTTP_201_CREATED)
