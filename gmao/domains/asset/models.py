# gmao/domains/asset/models.py

"""
ORM models of the 'asset' domain (clients and machines tables).
"""

import enum
from typing import Optional, List, TYPE_CHECKING
from datetime import date, datetime, UTC
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP

if TYPE_CHECKING:
    from gmao.domains.wo.models import WorkOrder


class MachineStatut(str, enum.Enum):
    """Operational status of a machine. Values are stored verbatim."""
    EN_SERVICE = "En service"
    EN_MAINTENANCE = "En maintenance"
    HORS_SERVICE = "Hors service"


# =============================================================================
# 1. clients table model
# =============================================================================
class ClientBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    nom: str = Field(max_length=150, description="Client or company name")
    email: Optional[str] = Field(default=None, max_length=100)
    telephone: Optional[str] = Field(default=None, max_length=30)
    adresse: Optional[str] = Field(default=None, max_length=255)

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class Client(ClientBase, table=True):
    __tablename__ = "clients"

    machines: List["Machine"] = Relationship(back_populates="client")


# =============================================================================
# 2. machines table model
# =============================================================================
class MachineBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    reference: str = Field(max_length=50, sa_column_kwargs={"unique": True}, description="Asset reference")
    modele: Optional[str] = Field(default=None, max_length=100)
    marque: Optional[str] = Field(default=None, max_length=100)
    type: Optional[str] = Field(default=None, max_length=100)
    date_acquisition: Optional[date] = Field(default=None)
    statut: MachineStatut = Field(
        default=MachineStatut.EN_SERVICE.value,
        sa_column=Column(String(30), nullable=False, server_default=MachineStatut.EN_SERVICE.value),
        description="Projected from open work orders; never edited directly"
    )
    client_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("clients.id", onupdate="CASCADE", ondelete="RESTRICT")),
        description="Owning client (FK)"
    )

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class Machine(MachineBase, table=True):
    __tablename__ = "machines"

    client: Optional["Client"] = Relationship(back_populates="machines")
    work_orders: List["WorkOrder"] = Relationship(back_populates="machine")
