# gmao/domains/usr/routers.py

"""
API endpoints of the 'usr' domain: login, current user and user administration.
"""

from typing import List
from datetime import timedelta

from fastapi import APIRouter, Depends, status, Query
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.config import settings
from gmao.core.database import get_session
from gmao.core import dependencies as deps
from gmao.core.exceptions import InvalidInputError, NotFoundError, UnauthorizedError
from gmao.core.roles import UserRole

from . import crud as usr_crud
from . import models as usr_models
from . import schemas as usr_schemas


router = APIRouter(
    tags=["User Management"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. Authentication
# =============================================================================
@router.post("/auth/token", response_model=usr_schemas.Token, summary="Obtain an access token")
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_session),
):
    """OAuth2 password flow; `username` is the account e-mail."""
    user = await usr_crud.user.authenticate(db, email=form_data.username, password=form_data.password)
    if not user:
        raise UnauthorizedError("Incorrect email or password")
    if not user.is_active:
        raise UnauthorizedError("Inactive user")

    access_token = deps.create_access_token(
        data={"sub": str(user.id), "roles": user.roles},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/users/me", response_model=usr_schemas.UserRead, summary="Current user")
async def read_users_me(current_user: usr_models.User = Depends(deps.get_current_active_user)):
    return current_user


# =============================================================================
# 2. User administration (admin only)
# =============================================================================
@router.post("/users", response_model=usr_schemas.UserRead, status_code=status.HTTP_201_CREATED, summary="Create a user")
async def create_user(
    user_in: usr_schemas.UserCreate,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    return await usr_crud.user.create(db, obj_in=user_in)


@router.get("/users", response_model=List[usr_schemas.UserRead], summary="List users")
async def read_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    return await usr_crud.user.get_multi(db, skip=skip, limit=limit)


@router.get("/users/{user_id}", response_model=usr_schemas.UserRead, summary="Read a user")
async def read_user(
    user_id: int,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    db_user = await usr_crud.user.get(db, id=user_id)
    if not db_user:
        raise NotFoundError("User", user_id)
    return db_user


@router.put("/users/{user_id}", response_model=usr_schemas.UserRead, summary="Update a user")
async def update_user(
    user_id: int,
    user_in: usr_schemas.UserUpdate,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    """Updates profile fields, roles, password or the active flag."""
    db_user = await usr_crud.user.get(db, id=user_id)
    if not db_user:
        raise NotFoundError("User", user_id)
    return await usr_crud.user.update(db, db_obj=db_user, obj_in=user_in)


@router.put("/users/{user_id}/role", response_model=usr_schemas.UserRead, summary="Replace a user's roles")
async def update_user_roles(
    user_id: int,
    roles_in: usr_schemas.UserRoleUpdate,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    """An administrator cannot drop their own admin role."""
    db_user = await usr_crud.user.get(db, id=user_id)
    if not db_user:
        raise NotFoundError("User", user_id)
    if db_user.id == current_admin_user.id and UserRole.ADMIN not in roles_in.roles:
        raise InvalidInputError("roles", "an administrator cannot remove their own admin role")
    return await usr_crud.user.set_roles(db, db_obj=db_user, roles=roles_in.roles)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a user")
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    if user_id == current_admin_user.id:
        raise InvalidInputError("user_id", "an administrator cannot delete their own account")
    if not await usr_crud.user.get(db, id=user_id):
        raise NotFoundError("User", user_id)
    await usr_crud.user.delete(db, id=user_id)
    return None
