# gmao/domains/tech/models.py

"""
ORM models of the 'tech' domain (techniciens table).
"""

import enum
from decimal import Decimal
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime, UTC
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP

if TYPE_CHECKING:
    from gmao.domains.usr.models import User
    from gmao.domains.wo.models import WorkOrder


class TechnicienStatut(str, enum.Enum):
    DISPONIBLE = "Disponible"
    EN_INTERVENTION = "En intervention"
    ABSENT = "Absent"


# =============================================================================
# 1. techniciens table model
# =============================================================================
class TechnicienBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("users.id", onupdate="CASCADE", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        ),
        description="Bound user account (FK, 1:1)"
    )
    specialite: Optional[str] = Field(default=None, max_length=100)
    taux_horaire: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(10, 2)),
        description="Hourly rate"
    )
    statut: TechnicienStatut = Field(
        default=TechnicienStatut.DISPONIBLE.value,
        sa_column=Column(String(30), nullable=False, server_default=TechnicienStatut.DISPONIBLE.value),
    )

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class Technicien(TechnicienBase, table=True):
    __tablename__ = "techniciens"

    user: Optional["User"] = Relationship(back_populates="technicien")
    work_orders: List["WorkOrder"] = Relationship(back_populates="technicien")
