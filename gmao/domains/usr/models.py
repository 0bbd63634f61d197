# gmao/domains/usr/models.py

"""
ORM models of the 'usr' domain (users table).
"""

from typing import Optional, List, TYPE_CHECKING
from datetime import datetime, UTC
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import JSON
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP

from gmao.core.roles import UserRole

if TYPE_CHECKING:
    from gmao.domains.tech.models import Technicien


# =============================================================================
# 1. users table model
# =============================================================================
class UserBase(SQLModel):
    """
    Base attributes of the users table.
    """
    id: Optional[int] = Field(default=None, primary_key=True, description="User id")
    email: str = Field(max_length=100, sa_column_kwargs={"unique": True}, description="Login e-mail")
    password_hash: str = Field(max_length=255, description="bcrypt password hash")
    nom: str = Field(max_length=100, description="Last name")
    prenom: str = Field(max_length=100, description="First name")
    telephone: Optional[str] = Field(default=None, max_length=30)
    # Stored as role values ("ROLE_ADMIN", ...); validated against UserRole by the schemas.
    roles: List[str] = Field(
        default_factory=lambda: [UserRole.USER.value],
        sa_column=Column(JSON, nullable=False),
        description="Granted roles"
    )
    is_active: bool = Field(default=True, description="Account enabled")

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class User(UserBase, table=True):
    __tablename__ = "users"

    technicien: Optional["Technicien"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"uselist": False}
    )

    @property
    def role_set(self) -> List[UserRole]:
        return [UserRole(role) for role in self.roles or []]

    @property
    def full_name(self) -> str:
        return f"{self.prenom} {self.nom}"
