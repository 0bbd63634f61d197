# gmao/domains/inv/schemas.py

"""
Request and response schemas of the 'inv' domain.
"""

from decimal import Decimal
from typing import Optional, List
from datetime import datetime
from sqlmodel import SQLModel, Field
from pydantic import ConfigDict, EmailStr

from .models import MouvementType


# =============================================================================
# 1. Fournisseur (supplier) schemas
# =============================================================================
class FournisseurBase(SQLModel):
    nom: str = Field(..., max_length=150)
    contact: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    telephone: Optional[str] = Field(None, max_length=30)


class FournisseurCreate(FournisseurBase):
    pass


class FournisseurUpdate(SQLModel):
    nom: Optional[str] = Field(None, max_length=150)
    contact: Optional[str] = None
    email: Optional[EmailStr] = None
    telephone: Optional[str] = None


class FournisseurRead(FournisseurBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FournisseurPiece(SQLModel):
    id: int
    reference: str
    nom: str
    quantite_stock: int


class FournisseurDetail(FournisseurRead):
    """Supplier with the parts it provides."""
    pieces: List[FournisseurPiece] = []


# =============================================================================
# 2. Piece (part) schemas
# =============================================================================
class PieceBase(SQLModel):
    reference: str = Field(..., max_length=50)
    nom: str = Field(..., max_length=150)
    description: Optional[str] = None
    prix_unitaire: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    seuil_alerte: Optional[int] = Field(None, ge=0, description="Defaults to DEFAULT_LOW_STOCK_THRESHOLD")
    fournisseur_id: Optional[int] = None


class PieceCreate(PieceBase):
    quantite_stock: int = Field(0, ge=0, description="Initial stock, recorded as an 'entree' movement")


class PieceUpdate(SQLModel):
    """Catalog fields only. Stock changes go through the stock endpoint."""
    model_config = ConfigDict(extra="forbid")

    reference: Optional[str] = Field(None, max_length=50)
    nom: Optional[str] = Field(None, max_length=150)
    description: Optional[str] = None
    prix_unitaire: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    seuil_alerte: Optional[int] = Field(None, ge=0)
    fournisseur_id: Optional[int] = None


class PieceRead(SQLModel):
    id: int
    reference: str
    nom: str
    description: Optional[str] = None
    prix_unitaire: Decimal
    quantite_stock: int
    seuil_alerte: int
    fournisseur_id: Optional[int] = None
    is_low_stock: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# 3. Stock movement schemas
# =============================================================================
class StockAdjustment(SQLModel):
    type: MouvementType
    quantite: int = Field(..., gt=0)
    motif: Optional[str] = Field(None, max_length=255)


class MouvementStockRead(SQLModel):
    id: int
    piece_id: int
    type: MouvementType
    quantite: int
    quantite_avant: int
    quantite_apres: int
    motif: Optional[str] = None
    user_id: Optional[int] = None
    date_mouvement: datetime


class StockAdjustmentResult(SQLModel):
    piece: PieceRead
    mouvement: MouvementStockRead


class MouvementTotals(SQLModel):
    total_quantite: int = 0
    total_count: int = 0


class MouvementSummary(SQLModel):
    entree: MouvementTotals
    sortie: MouvementTotals


class MouvementPage(SQLModel):
    items: List[MouvementStockRead]
    total: int
