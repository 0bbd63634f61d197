# gmao/core/security.py

"""
Security utilities and authorization dependencies.

- Password hashing and verification (passlib bcrypt).
- JWT access token creation and decoding (python-jose).
- Current user resolution through the OAuth2 password bearer scheme.
- Role based authorization through `require_roles`.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import jwt, JWTError
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao import API_PREFIX
from gmao.core.config import settings
from gmao.core.database import get_session
from gmao.core.exceptions import ForbiddenError, UnauthorizedError
from gmao.core.roles import UserRole, has_role
from gmao.domains.usr import models as usr_models

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{API_PREFIX}/usr/auth/token")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Creates a signed access token. `data` should carry `sub` (the user id)
    and `roles`.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY.get_secret_value(), algorithm=settings.ALGORITHM)


async def get_current_user_from_token(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_session),
) -> usr_models.User:
    """
    Decodes the bearer token and loads the matching user.
    Roles are read from the database row, not from the token claim, so a
    role change takes effect immediately.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY.get_secret_value(), algorithms=[settings.ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            raise UnauthorizedError()
        user_id = int(subject)
    except (JWTError, ValueError) as e:
        logger.info("Rejected access token: %s", e)
        raise UnauthorizedError() from e

    user = await db.get(usr_models.User, user_id)
    if user is None:
        raise UnauthorizedError()
    return user


def get_current_active_user(
    current_user: usr_models.User = Depends(get_current_user_from_token),
) -> usr_models.User:
    """Returns the authenticated user; a disabled account is rejected with 401."""
    if not current_user.is_active:
        raise UnauthorizedError("Inactive user")
    return current_user


def require_roles(*required: UserRole) -> Callable[..., usr_models.User]:
    """
    Builds a dependency accepting users holding (directly or through the role
    hierarchy) at least one of the `required` roles.
    """
    def _checker(
        current_user: usr_models.User = Depends(get_current_active_user),
    ) -> usr_models.User:
        if not any(has_role(current_user.role_set, role) for role in required):
            raise ForbiddenError(" or ".join(role.value for role in required))
        return current_user

    return _checker


get_current_admin_user = require_roles(UserRole.ADMIN)
get_current_staff_user = require_roles(UserRole.ADMIN, UserRole.RECEPTIONIST)
