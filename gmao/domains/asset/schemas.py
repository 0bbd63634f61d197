# gmao/domains/asset/schemas.py

"""
Request and response schemas of the 'asset' domain.
"""

from typing import Optional
from datetime import date, datetime
from sqlmodel import SQLModel, Field
from pydantic import EmailStr

from .models import MachineStatut


# =============================================================================
# 1. Client schemas
# =============================================================================
class ClientBase(SQLModel):
    nom: str = Field(..., max_length=150)
    email: Optional[EmailStr] = Field(None, max_length=100)
    telephone: Optional[str] = Field(None, max_length=30)
    adresse: Optional[str] = Field(None, max_length=255)


class ClientCreate(ClientBase):
    pass


class ClientUpdate(SQLModel):
    nom: Optional[str] = Field(None, max_length=150)
    email: Optional[EmailStr] = None
    telephone: Optional[str] = None
    adresse: Optional[str] = None


class ClientRead(ClientBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# 2. Machine schemas
# =============================================================================
class MachineBase(SQLModel):
    reference: str = Field(..., max_length=50)
    modele: Optional[str] = Field(None, max_length=100)
    marque: Optional[str] = Field(None, max_length=100)
    type: Optional[str] = Field(None, max_length=100)
    date_acquisition: Optional[date] = None
    client_id: Optional[int] = None


class MachineCreate(MachineBase):
    pass


class MachineUpdate(SQLModel):
    """`statut` is not editable here; the work order engine owns it."""
    reference: Optional[str] = Field(None, max_length=50)
    modele: Optional[str] = None
    marque: Optional[str] = None
    type: Optional[str] = None
    date_acquisition: Optional[date] = None
    client_id: Optional[int] = None


class MachineStatusUpdate(SQLModel):
    """Manual out-of-service declaration. 'En maintenance' belongs to work orders."""
    statut: MachineStatut


class MachineRead(MachineBase):
    id: int
    statut: MachineStatut
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MachineWithClient(MachineRead):
    client: Optional[ClientRead] = None
