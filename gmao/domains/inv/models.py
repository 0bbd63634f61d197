# gmao/domains/inv/models.py

"""
ORM models of the 'inv' domain (fournisseurs, pieces, mouvements_stock tables).
"""

import enum
from decimal import Decimal
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime, UTC
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP

if TYPE_CHECKING:
    from gmao.domains.wo.models import PieceIntervention


class MouvementType(str, enum.Enum):
    ENTREE = "entree"  # stock in
    SORTIE = "sortie"  # stock out


# =============================================================================
# 1. fournisseurs table model
# =============================================================================
class FournisseurBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    nom: str = Field(max_length=150)
    contact: Optional[str] = Field(default=None, max_length=100)
    email: Optional[str] = Field(default=None, max_length=100)
    telephone: Optional[str] = Field(default=None, max_length=30)

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class Fournisseur(FournisseurBase, table=True):
    __tablename__ = "fournisseurs"

    pieces: List["Piece"] = Relationship(back_populates="fournisseur")


# =============================================================================
# 2. pieces table model
# =============================================================================
class PieceBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    reference: str = Field(max_length=50, sa_column_kwargs={"unique": True})
    nom: str = Field(max_length=150)
    description: Optional[str] = Field(default=None)
    prix_unitaire: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(10, 2), nullable=False, server_default="0"),
        description="Current catalog unit price"
    )
    quantite_stock: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, server_default="0"),
        description="On-hand quantity; written only by the stock ledger"
    )
    seuil_alerte: int = Field(
        default=5,
        sa_column=Column(Integer, nullable=False, server_default="5"),
        description="Reorder threshold"
    )
    fournisseur_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("fournisseurs.id", onupdate="CASCADE", ondelete="SET NULL")),
    )

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class Piece(PieceBase, table=True):
    __tablename__ = "pieces"
    __table_args__ = (
        CheckConstraint("quantite_stock >= 0", name="ck_pieces_quantite_stock_non_negative"),
    )

    fournisseur: Optional["Fournisseur"] = Relationship(back_populates="pieces")
    mouvements: List["MouvementStock"] = Relationship(back_populates="piece")
    usages: List["PieceIntervention"] = Relationship(back_populates="piece")

    @property
    def is_low_stock(self) -> bool:
        return self.quantite_stock <= self.seuil_alerte


# =============================================================================
# 3. mouvements_stock table model (append-only)
# =============================================================================
class MouvementStockBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    piece_id: int = Field(
        sa_column=Column(Integer, ForeignKey("pieces.id", onupdate="CASCADE", ondelete="RESTRICT"), nullable=False),
    )
    type: MouvementType = Field(sa_column=Column(String(10), nullable=False))
    quantite: int = Field(sa_column=Column(Integer, nullable=False))
    quantite_avant: int = Field(sa_column=Column(Integer, nullable=False), description="Stock before the movement")
    quantite_apres: int = Field(sa_column=Column(Integer, nullable=False), description="Stock after the movement")
    motif: Optional[str] = Field(default=None, max_length=255, description="Reason")
    user_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id", onupdate="CASCADE", ondelete="SET NULL")),
        description="Operator who triggered the movement"
    )
    date_mouvement: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False),
    )


class MouvementStock(MouvementStockBase, table=True):
    __tablename__ = "mouvements_stock"
    __table_args__ = (
        CheckConstraint("quantite > 0", name="ck_mouvements_stock_quantite_positive"),
    )

    piece: Optional["Piece"] = Relationship(back_populates="mouvements")
