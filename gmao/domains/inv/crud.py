# gmao/domains/inv/crud.py

"""
CRUD operations of the 'inv' domain, including the stock ledger.
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.config import settings
from gmao.core.crud_base import CRUDBase
from gmao.core.database import atomic
from gmao.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    InvalidInputError,
    NotFoundError,
)
from gmao.domains.wo import models as wo_models
from . import models as inv_models
from . import schemas as inv_schemas

logger = logging.getLogger(__name__)

MOTIF_STOCK_INITIAL = "Stock initial"


# =============================================================================
# 1. fournisseurs table CRUD
# =============================================================================
class FournisseurCRUD(
    CRUDBase[inv_models.Fournisseur, inv_schemas.FournisseurCreate, inv_schemas.FournisseurUpdate]
):
    async def get_with_pieces(self, db: AsyncSession, id: int) -> Optional[inv_models.Fournisseur]:
        result = await db.execute(
            select(inv_models.Fournisseur)
            .where(inv_models.Fournisseur.id == id)
            .options(selectinload(inv_models.Fournisseur.pieces))
        )
        return result.scalar_one_or_none()

    async def delete(self, db: AsyncSession, *, id: int) -> Optional[inv_models.Fournisseur]:
        """Refuses to delete a supplier still linked to parts."""
        count = (await db.execute(
            select(func.count()).select_from(inv_models.Piece).where(inv_models.Piece.fournisseur_id == id)
        )).scalar_one()
        if count:
            raise ConflictError(f"Fournisseur {id} still supplies {count} piece(s)")
        return await super().delete(db, id=id)


# =============================================================================
# 2. pieces table CRUD
# =============================================================================
class PieceCRUD(CRUDBase[inv_models.Piece, inv_schemas.PieceCreate, inv_schemas.PieceUpdate]):
    """
    Catalog operations on parts. `quantite_stock` is never written here
    except through the ledger (initial stock is seeded as a movement).
    """

    async def get_by_reference(self, db: AsyncSession, *, reference: str) -> Optional[inv_models.Piece]:
        return await self.get_by_attribute(db, attribute="reference", value=reference)

    async def _check_fournisseur(self, db: AsyncSession, fournisseur_id: Optional[int]) -> None:
        if fournisseur_id is not None and not await db.get(inv_models.Fournisseur, fournisseur_id):
            raise NotFoundError("Fournisseur", fournisseur_id)

    async def create(
        self, db: AsyncSession, *, obj_in: inv_schemas.PieceCreate, user_id: Optional[int] = None
    ) -> inv_models.Piece:
        if await self.get_by_reference(db, reference=obj_in.reference):
            raise ConflictError(f"Piece reference '{obj_in.reference}' already exists")
        await self._check_fournisseur(db, obj_in.fournisseur_id)

        seuil_alerte = obj_in.seuil_alerte
        if seuil_alerte is None:
            seuil_alerte = settings.DEFAULT_LOW_STOCK_THRESHOLD

        async with atomic(db):
            db_piece = inv_models.Piece(
                **obj_in.model_dump(exclude={"quantite_stock", "seuil_alerte"}),
                seuil_alerte=seuil_alerte,
                quantite_stock=0,
            )
            db.add(db_piece)
            await db.flush()
            if obj_in.quantite_stock > 0:
                await mouvement_stock.adjust_stock(
                    db,
                    piece_id=db_piece.id,
                    direction=inv_models.MouvementType.ENTREE,
                    quantity=obj_in.quantite_stock,
                    motif=MOTIF_STOCK_INITIAL,
                    user_id=user_id,
                )
        await db.refresh(db_piece)
        return db_piece

    async def update(
        self, db: AsyncSession, *, db_obj: inv_models.Piece, obj_in: inv_schemas.PieceUpdate
    ) -> inv_models.Piece:
        if obj_in.reference and obj_in.reference != db_obj.reference:
            if await self.get_by_reference(db, reference=obj_in.reference):
                raise ConflictError(f"Piece reference '{obj_in.reference}' already exists")
        if "fournisseur_id" in obj_in.model_fields_set:
            await self._check_fournisseur(db, obj_in.fournisseur_id)
        return await super().update(db, db_obj=db_obj, obj_in=obj_in)

    async def delete(self, db: AsyncSession, *, id: int) -> Optional[inv_models.Piece]:
        """A part with usages or movement history cannot be deleted."""
        usages = (await db.execute(
            select(func.count()).select_from(wo_models.PieceIntervention)
            .where(wo_models.PieceIntervention.piece_id == id)
        )).scalar_one()
        mouvements = (await db.execute(
            select(func.count()).select_from(inv_models.MouvementStock)
            .where(inv_models.MouvementStock.piece_id == id)
        )).scalar_one()
        if usages or mouvements:
            raise ConflictError(f"Piece {id} has {usages} usage(s) and {mouvements} stock movement(s)")
        return await super().delete(db, id=id)

    async def get_low_stock(self, db: AsyncSession) -> List[inv_models.Piece]:
        result = await db.execute(
            select(inv_models.Piece)
            .where(inv_models.Piece.quantite_stock <= inv_models.Piece.seuil_alerte)
            .order_by(inv_models.Piece.quantite_stock, inv_models.Piece.id)
        )
        return result.scalars().all()

    async def count_low_stock(self, db: AsyncSession) -> int:
        return (await db.execute(
            select(func.count()).select_from(inv_models.Piece)
            .where(inv_models.Piece.quantite_stock <= inv_models.Piece.seuil_alerte)
        )).scalar_one()


# =============================================================================
# 3. mouvements_stock table CRUD and stock ledger
# =============================================================================
class MouvementStockCRUD(
    CRUDBase[inv_models.MouvementStock, inv_schemas.StockAdjustment, inv_schemas.StockAdjustment]
):
    """
    The stock ledger. `adjust_stock` is the only code path allowed to change
    `Piece.quantite_stock`, and each change produces exactly one movement.
    """

    async def adjust_stock(
        self,
        db: AsyncSession,
        *,
        piece_id: int,
        direction: inv_models.MouvementType,
        quantity: int,
        motif: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> inv_models.MouvementStock:
        """
        Changes the stock of one part by `quantity` in `direction` and
        records the movement with its before/after snapshot.

        The quantity is changed with a single conditional UPDATE
        (`quantite_stock >= quantity` for an out movement), so two concurrent
        deductions can never both pass the available quantity. The caller
        owns the transaction: this method only flushes.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidInputError("quantite", "must be a positive integer")
        direction = inv_models.MouvementType(direction)
        piece_table = inv_models.Piece

        if direction == inv_models.MouvementType.SORTIE:
            statement = (
                update(piece_table)
                .where(piece_table.id == piece_id, piece_table.quantite_stock >= quantity)
                .values(quantite_stock=piece_table.quantite_stock - quantity)
            )
        else:
            statement = (
                update(piece_table)
                .where(piece_table.id == piece_id)
                .values(quantite_stock=piece_table.quantite_stock + quantity)
            )
        statement = statement.returning(piece_table.quantite_stock).execution_options(synchronize_session=False)

        result = await db.execute(statement)
        quantite_apres = result.scalar_one_or_none()

        db_piece = await db.get(piece_table, piece_id)
        if db_piece is None:
            raise NotFoundError("Piece", piece_id)
        await db.refresh(db_piece)

        if quantite_apres is None:
            raise InsufficientStockError(available=db_piece.quantite_stock, requested=quantity)

        if direction == inv_models.MouvementType.SORTIE:
            quantite_avant = quantite_apres + quantity
        else:
            quantite_avant = quantite_apres - quantity

        mouvement = inv_models.MouvementStock(
            piece_id=piece_id,
            type=direction.value,
            quantite=quantity,
            quantite_avant=quantite_avant,
            quantite_apres=quantite_apres,
            motif=motif,
            user_id=user_id,
        )
        db.add(mouvement)
        await db.flush()
        logger.info(
            "Stock movement piece=%s %s %s: %s -> %s (%s)",
            piece_id, direction.value, quantity, quantite_avant, quantite_apres, motif,
        )
        return mouvement

    def _conditions(
        self,
        piece_id: Optional[int],
        type: Optional[inv_models.MouvementType],
    ) -> Dict[str, object]:
        return {"piece_id": piece_id, "type": type.value if type else None}

    async def get_history(
        self,
        db: AsyncSession,
        *,
        piece_id: Optional[int] = None,
        type: Optional[inv_models.MouvementType] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[inv_models.MouvementStock], int]:
        """Movements matching the filters, newest first."""
        return await self.get_filtered(
            db,
            filters=self._conditions(piece_id, type),
            date_range_field="date_mouvement",
            start_date=date_from,
            end_date=date_to,
            order_by_field="date_mouvement",
            order_desc=True,
            skip=skip,
            limit=limit,
        )

    async def get_summary(
        self,
        db: AsyncSession,
        *,
        piece_id: Optional[int] = None,
        type: Optional[inv_models.MouvementType] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> inv_schemas.MouvementSummary:
        """Total quantity and number of movements per type."""
        conditions = self._build_conditions(
            self._conditions(piece_id, type), "date_mouvement", date_from, date_to
        )
        query = select(
            inv_models.MouvementStock.type,
            func.coalesce(func.sum(inv_models.MouvementStock.quantite), 0),
            func.count(inv_models.MouvementStock.id),
        ).group_by(inv_models.MouvementStock.type)
        if conditions:
            query = query.where(*conditions)

        totals = {
            inv_models.MouvementType.ENTREE.value: inv_schemas.MouvementTotals(),
            inv_models.MouvementType.SORTIE.value: inv_schemas.MouvementTotals(),
        }
        for mouvement_type, total_quantite, total_count in (await db.execute(query)).all():
            totals[mouvement_type] = inv_schemas.MouvementTotals(
                total_quantite=int(total_quantite), total_count=total_count
            )
        return inv_schemas.MouvementSummary(
            entree=totals[inv_models.MouvementType.ENTREE.value],
            sortie=totals[inv_models.MouvementType.SORTIE.value],
        )


fournisseur = FournisseurCRUD(inv_models.Fournisseur)
piece = PieceCRUD(inv_models.Piece)
mouvement_stock = MouvementStockCRUD(inv_models.MouvementStock)
