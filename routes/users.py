"""
User routes.

Handles HTTP requests/responses for users, their role memberships and
their posts. Data access is delegated to the repositories; application
errors propagate to the handlers registered in ``main``.
"""

from fastapi import APIRouter, Body, Depends, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from typing import Any, Dict, List, Optional
import logging

from models.users import UserCreate, UserUpdate
from models.roles import RoleMembership, RoleDetach
from models.posts import PostCreate, PostBatchCreate
from core.exceptions import NotFoundException, ValidationException
from core.responses import success, with_meta, no_content
from core.transform import transform_collection, transform_item, transform_page
from core.utils import filter_boolean_inputs
from dependencies import PageParams, get_includes, get_role_repository, get_user_repository
from repositories.user_repository import UserRepository
from repositories.role_repository import RoleRepository
from transformers import PostTransformer, UserTransformer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _existing_role_ids(role_ids: List[int], roles: RoleRepository) -> List[int]:
    """
    Check that every role id exists.

    Raises:
        NotFoundException: Naming the missing ids
    """
    if not role_ids:
        return []
    found = {role.id for role in roles.get_where_in("id", role_ids, throw_if_missing=False)}
    missing = [role_id for role_id in role_ids if role_id not in found]
    if missing:
        raise NotFoundException("Role", identifier=", ".join(str(role_id) for role_id in missing))
    return list(dict.fromkeys(role_ids))


def _validated(model: Any, inputs: Dict[str, Any]) -> Any:
    try:
        return model.model_validate(inputs)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False)) from e


# ==================== Users ====================

@router.get("")
async def list_users(
    params: PageParams = Depends(),
    includes: List[str] = Depends(get_includes),
    users: UserRepository = Depends(get_user_repository),
):
    """
    Paginated users, newest first.

    Returns:
        ``data`` with the users and ``meta.pagination``
    """
    page = users.paginate(per_page=params.per_page, page=params.page)
    return with_meta(transform_page(page, UserTransformer(), includes))


@router.post("")
async def create_user(
    payload: UserCreate,
    includes: List[str] = Depends(get_includes),
    users: UserRepository = Depends(get_user_repository),
):
    if users.find_by_email(payload.email) is not None:
        raise ValidationException("Email is already registered", field="email")

    user = users.create(payload.model_dump())
    users.commit()
    return success(transform_item(user, UserTransformer(), includes), status.HTTP_201_CREATED)


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    includes: List[str] = Depends(get_includes),
    users: UserRepository = Depends(get_user_repository),
):
    user = users.get(user_id)
    return success(transform_item(user, UserTransformer(), includes))


@router.patch("/{user_id}")
async def update_user(
    user_id: int,
    payload: UserUpdate,
    includes: List[str] = Depends(get_includes),
    users: UserRepository = Depends(get_user_repository),
):
    """
    Update the fields sent. Attributes outside the user's fillable list
    are ignored.
    """
    user = users.get(user_id)
    changes = payload.model_dump(exclude_unset=True)

    if "email" in changes and changes["email"] != user.email:
        if users.find_by_email(changes["email"]) is not None:
            raise ValidationException("Email is already registered", field="email")

    applied = sorted(name for name in changes if name in users.store.fillable)
    if users.update(user, changes):
        users.commit()
        logger.info(f"User {user_id} updated: {applied}")

    return success(transform_item(user, UserTransformer(), includes))


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    users: UserRepository = Depends(get_user_repository),
):
    users.delete(user_id)
    users.commit()
    return no_content()


# ==================== Roles ====================

@router.put("/{user_id}/roles")
async def sync_user_roles(
    payload: RoleMembership,
    user_id: int,
    users: UserRepository = Depends(get_user_repository),
    roles: RoleRepository = Depends(get_role_repository),
):
    """
    Make the user's roles exactly the given ids.

    Returns:
        The attached, detached and updated role ids
    """
    user = users.get(user_id)
    role_ids = _existing_role_ids(payload.roles, roles)

    ids: Any = role_ids
    if payload.granted_by is not None:
        ids = {role_id: {"granted_by": payload.granted_by} for role_id in role_ids}

    changes = users.sync(user, "roles", ids)
    users.commit()
    return success(changes)


@router.post("/{user_id}/roles")
async def attach_user_roles(
    payload: RoleMembership,
    user_id: int,
    users: UserRepository = Depends(get_user_repository),
    roles: RoleRepository = Depends(get_role_repository),
):
    user = users.get(user_id)
    role_ids = _existing_role_ids(payload.roles, roles)

    attributes = {"granted_by": payload.granted_by} if payload.granted_by is not None else None
    users.attach(user, "roles", role_ids, attributes)
    users.commit()
    return success(transform_item(user, UserTransformer(), ["roles"]), status.HTTP_201_CREATED)


@router.delete("/{user_id}/roles")
async def detach_user_roles(
    user_id: int,
    payload: Optional[RoleDetach] = Body(None),
    users: UserRepository = Depends(get_user_repository),
):
    """Detach the given roles, or every role when no ids are sent."""
    user = users.get(user_id)
    ids = payload.roles if payload is not None else None

    detached = users.detach(user, "roles", ids)
    users.commit()
    return success({"detached": detached})


# ==================== Posts ====================

@router.post("/{user_id}/posts")
async def create_user_posts(
    user_id: int,
    inputs: Dict[str, Any] = Body(...),
    users: UserRepository = Depends(get_user_repository),
):
    """
    Create one post, or several when ``bulk`` is truthy.

    Single: ``{"title": ..., "body": ..., "published": ...}``
    Bulk: ``{"bulk": "true", "posts": [{...}, ...]}``
    """
    user = users.get(user_id)
    inputs = filter_boolean_inputs(inputs)
    bulk = inputs.pop("bulk", False)

    if bulk is None:
        raise ValidationException("bulk must be a boolean", field="bulk")

    if bulk:
        batch = _validated(PostBatchCreate, inputs)
        created = [
            users.create_relationally(user, "posts", post.model_dump())
            for post in batch.posts
        ]
        users.commit()
        return success(transform_collection(created, PostTransformer()), status.HTTP_201_CREATED)

    post = _validated(PostCreate, inputs)
    created = users.create_relationally(user, "posts", post.model_dump())
    users.commit()
    return success(transform_item(created, PostTransformer()), status.HTTP_201_CREATED)
