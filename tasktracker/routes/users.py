import logging
from typing import List
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from ..auth import get_current_user, get_policy, get_roles, get_settings
from ..catalogs import RoleCatalog
from ..config import Settings
from ..crud import users as crud
from ..db import get_db
from ..models import User
from ..policy import AccessPolicy, Action
from ..schemas import MessageResponse, RoleUpdate, UserCreate, UserResponse, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
async def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    policy: AccessPolicy = Depends(get_policy),
    current_user: User = Depends(get_current_user),
):
    """List all users (admin only)"""
    logger.info("%s is attempting to retrieve all users", current_user.username)
    policy.enforce(current_user, Action.LIST_USERS)
    users = await crud.list_users(db, skip=skip, limit=limit)
    if not users:
        return Response(status_code=204)
    return [UserResponse.model_validate(user) for user in users]


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Details of the authenticated user"""
    return UserResponse.model_validate(current_user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    policy: AccessPolicy = Depends(get_policy),
    current_user: User = Depends(get_current_user),
):
    """Get a user by ID (the user themselves or an admin)"""
    policy.enforce(current_user, Action.VIEW_USER, user_id)
    user = await crud.get_user(db, user_id)
    return UserResponse.model_validate(user)


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    user: UserCreate,
    db: AsyncSession = Depends(get_db),
    roles: RoleCatalog = Depends(get_roles),
    settings: Settings = Depends(get_settings),
    policy: AccessPolicy = Depends(get_policy),
):
    """Register a new user (open to everyone)"""
    policy.enforce(None, Action.REGISTER)
    logger.info("Attempting to create user %s", user.username)
    db_user = await crud.register_user(
        db,
        roles,
        user.username,
        user.email,
        user.password,
        rounds=settings.bcrypt_rounds,
    )
    return UserResponse.model_validate(db_user)


@router.patch("", response_model=UserResponse)
async def update_self(
    update: UserUpdate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    policy: AccessPolicy = Depends(get_policy),
    current_user: User = Depends(get_current_user),
):
    """Update the authenticated user's email and/or password"""
    policy.enforce(current_user, Action.UPDATE_SELF, current_user)
    user = await crud.update_self(
        db,
        current_user,
        update.current_password,
        email=update.email,
        new_password=update.new_password,
        rounds=settings.bcrypt_rounds,
    )
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    policy: AccessPolicy = Depends(get_policy),
    current_user: User = Depends(get_current_user),
):
    """Delete a user (admin only)"""
    policy.enforce(current_user, Action.DELETE_USER)
    await crud.delete_user(db, user_id)
    return {"message": f"User with ID {user_id} has been deleted by {current_user.username}"}


@router.patch("/{user_id}/roles/add", response_model=UserResponse)
async def add_role(
    user_id: int,
    role: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    roles: RoleCatalog = Depends(get_roles),
    policy: AccessPolicy = Depends(get_policy),
    current_user: User = Depends(get_current_user),
):
    """Grant a role to a user (admin only)"""
    policy.enforce(current_user, Action.MANAGE_ROLES)
    user = await crud.get_user(db, user_id, for_update=True)
    user = await crud.add_role(db, roles, user, role.role)
    return UserResponse.model_validate(user)


@router.patch("/{user_id}/roles/remove", response_model=UserResponse)
async def remove_role(
    user_id: int,
    role: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    roles: RoleCatalog = Depends(get_roles),
    policy: AccessPolicy = Depends(get_policy),
    current_user: User = Depends(get_current_user),
):
    """Take a role away from a user (admin only)"""
    policy.enforce(current_user, Action.MANAGE_ROLES)
    user = await crud.get_user(db, user_id, for_update=True)
    user = await crud.remove_role(db, roles, user, role.role)
    return UserResponse.model_validate(user)
