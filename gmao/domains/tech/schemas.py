# gmao/domains/tech/schemas.py

"""
Request and response schemas of the 'tech' domain.
"""

from decimal import Decimal
from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field
from pydantic import EmailStr

from gmao.domains.usr.schemas import UserSummary
from .models import TechnicienStatut


class TechnicienCreate(SQLModel):
    """Creates the user account (role ROLE_TECHNICIEN) and the profile together."""
    email: EmailStr
    nom: str = Field(..., max_length=100)
    prenom: str = Field(..., max_length=100)
    telephone: Optional[str] = Field(None, max_length=30)
    password: str = Field(..., min_length=8)
    specialite: Optional[str] = Field(None, max_length=100)
    taux_horaire: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)


class TechnicienUpdate(SQLModel):
    specialite: Optional[str] = Field(None, max_length=100)
    taux_horaire: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)


class TechnicienStatusUpdate(SQLModel):
    statut: TechnicienStatut


class TechnicienRead(SQLModel):
    id: int
    user_id: int
    specialite: Optional[str] = None
    taux_horaire: Optional[Decimal] = None
    statut: TechnicienStatut
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TechnicienWithUser(TechnicienRead):
    user: Optional[UserSummary] = None
