# gmao/domains/usr/schemas.py

"""
Request and response schemas of the 'usr' domain.
"""

from typing import Optional, List
from datetime import datetime
from sqlmodel import SQLModel, Field
from pydantic import EmailStr

from gmao.core.roles import UserRole


# =============================================================================
# 1. User schemas
# =============================================================================
class UserBase(SQLModel):
    email: EmailStr = Field(..., max_length=100)
    nom: str = Field(..., max_length=100)
    prenom: str = Field(..., max_length=100)
    telephone: Optional[str] = Field(None, max_length=30)
    roles: List[UserRole] = Field(default_factory=lambda: [UserRole.USER], min_length=1)
    is_active: bool = True


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)


class UserUpdate(SQLModel):
    email: Optional[EmailStr] = None
    nom: Optional[str] = Field(None, max_length=100)
    prenom: Optional[str] = Field(None, max_length=100)
    telephone: Optional[str] = None
    roles: Optional[List[UserRole]] = Field(None, min_length=1)
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=8)


class UserRoleUpdate(SQLModel):
    roles: List[UserRole] = Field(..., min_length=1)


class UserRead(UserBase):
    """User as returned by the API; the password hash is never exposed."""
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserSummary(SQLModel):
    id: int
    nom: str
    prenom: str
    email: str


# =============================================================================
# 2. Token schemas
# =============================================================================
class Token(SQLModel):
    access_token: str
    token_type: str = "bearer"


class TokenData(SQLModel):
    sub: Optional[str] = None
    roles: List[UserRole] = []
