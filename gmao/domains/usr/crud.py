# gmao/domains/usr/crud.py

"""
CRUD operations of the 'usr' domain.
"""

import logging
from typing import List, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.crud_base import CRUDBase
from gmao.core.exceptions import ConflictError
from gmao.core.roles import UserRole
from gmao.core.security import get_password_hash, verify_password
from . import models as usr_models
from . import schemas as usr_schemas

logger = logging.getLogger(__name__)


# =============================================================================
# 1. users table CRUD
# =============================================================================
class CRUDUser(CRUDBase[usr_models.User, usr_schemas.UserCreate, usr_schemas.UserUpdate]):
    def __init__(self):
        super().__init__(model=usr_models.User)

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[usr_models.User]:
        return await self.get_by_attribute(db, attribute="email", value=email.lower())

    async def build(self, db: AsyncSession, *, obj_in: usr_schemas.UserCreate) -> usr_models.User:
        """
        Checks e-mail uniqueness and adds a new user to the session without
        committing, so callers can create dependent rows in the same transaction.
        """
        if await self.get_by_email(db, email=obj_in.email):
            raise ConflictError("Email already registered")

        user_data = obj_in.model_dump(exclude={"password", "roles", "email"})
        db_user = usr_models.User(
            **user_data,
            email=obj_in.email.lower(),
            roles=[role.value for role in obj_in.roles],
            password_hash=get_password_hash(obj_in.password),
        )
        db.add(db_user)
        await db.flush()
        return db_user

    async def create(self, db: AsyncSession, *, obj_in: usr_schemas.UserCreate) -> usr_models.User:
        db_user = await self.build(db, obj_in=obj_in)
        await db.commit()
        await db.refresh(db_user)
        return db_user

    async def update(
        self, db: AsyncSession, *, db_obj: usr_models.User, obj_in: usr_schemas.UserUpdate
    ) -> usr_models.User:
        update_data = obj_in.model_dump(exclude_unset=True)

        if "email" in update_data and update_data["email"]:
            email = update_data.pop("email").lower()
            if email != db_obj.email and await self.get_by_email(db, email=email):
                raise ConflictError("Email already registered")
            db_obj.email = email
        if "password" in update_data:
            password = update_data.pop("password")
            if password:
                db_obj.password_hash = get_password_hash(password)
        if "roles" in update_data:
            roles = update_data.pop("roles")
            if roles:
                db_obj.roles = [role.value for role in roles]

        for key, value in update_data.items():
            setattr(db_obj, key, value)

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def set_roles(
        self, db: AsyncSession, *, db_obj: usr_models.User, roles: List[UserRole]
    ) -> usr_models.User:
        db_obj.roles = [role.value for role in roles]
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        logger.info("User %s roles set to %s", db_obj.id, db_obj.roles)
        return db_obj

    async def delete(self, db: AsyncSession, *, id: int) -> Optional[usr_models.User]:
        """
        Deletes a user account. An account bound to a technician profile is
        removed by deleting that profile instead.
        """
        db_user = await self.get(db, id=id)
        if db_user is None:
            return None
        await db.refresh(db_user, attribute_names=["technicien"])
        if db_user.technicien is not None:
            raise ConflictError(f"User {id} has technician profile {db_user.technicien.id}")
        return await super().delete(db, id=id)

    async def authenticate(self, db: AsyncSession, *, email: str, password: str) -> Optional[usr_models.User]:
        """Returns the user matching the credentials, or None."""
        user = await self.get_by_email(db, email=email)
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user


user = CRUDUser()
