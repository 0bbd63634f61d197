# gmao/core/dependencies.py

"""
Dependency injection entry points used by the routers.

Routers import this module as `deps` so the session and the current-user
dependencies can be overridden in one place (tests do so).
"""

from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.database import get_session as get_main_app_session

from gmao.core.security import (  # noqa: F401
    create_access_token,
    get_password_hash,
    verify_password,
    oauth2_scheme,
    get_current_user_from_token,
    get_current_active_user,
    get_current_admin_user,
    get_current_staff_user,
    require_roles,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Wraps gmao.core.database.get_session."""
    async for session in get_main_app_session():
        yield session


def get_arq_redis(request: Request) -> Optional[object]:
    """arq Redis pool created in the lifespan, or None when it is unavailable."""
    return getattr(request.app.state, "redis", None)
