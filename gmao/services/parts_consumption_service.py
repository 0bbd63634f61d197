# gmao/services/parts_consumption_service.py

"""
Parts consumed by a work order.

Attaching a part records the usage with the unit price frozen at that moment,
takes the quantity out of stock through the ledger and recomputes the order's
parts cost. Detaching reverses the three steps. Each call is one transaction.
"""

import logging
from typing import Any, Optional, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.database import atomic
from gmao.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    InvalidInputError,
    NotFoundError,
)
from gmao.domains.inv import crud as inv_crud
from gmao.domains.inv import models as inv_models
from gmao.domains.inv.services import notify_if_low_stock
from gmao.domains.wo import crud as wo_crud
from gmao.domains.wo import models as wo_models

logger = logging.getLogger(__name__)


def consumption_motif(work_order_id: int) -> str:
    return f"WorkOrder #{work_order_id}"


def cancellation_motif(work_order_id: int) -> str:
    return f"Cancel WorkOrder #{work_order_id}"


class PartsConsumptionService:

    def __init__(self, db: AsyncSession, arq_redis_pool: Optional[Any] = None):
        self.db = db
        self.arq_redis_pool = arq_redis_pool

    async def _get_open_work_order(self, work_order_id: int) -> wo_models.WorkOrder:
        db_work_order = await wo_crud.work_order.get(self.db, id=work_order_id)
        if db_work_order is None:
            raise NotFoundError("WorkOrder", work_order_id)
        if db_work_order.status in {s.value for s in wo_models.TERMINAL_STATUSES}:
            raise ConflictError(
                f"Work order {work_order_id} is {db_work_order.status}; its parts can no longer change"
            )
        return db_work_order

    async def attach_part(
        self,
        work_order_id: int,
        piece_id: int,
        quantity: int,
        *,
        user_id: Optional[int] = None,
    ) -> Tuple[wo_models.PieceIntervention, wo_models.WorkOrder, inv_models.Piece]:
        """
        Returns the usage, the work order with its new parts cost and the
        part with its new stock level.
        """
        db_work_order = await self._get_open_work_order(work_order_id)
        db_piece = await inv_crud.piece.get(self.db, id=piece_id)
        if db_piece is None:
            raise NotFoundError("Piece", piece_id)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidInputError("quantite", "must be a positive integer")
        if quantity > db_piece.quantite_stock:
            raise InsufficientStockError(available=db_piece.quantite_stock, requested=quantity)

        async with atomic(self.db):
            usage = wo_models.PieceIntervention(
                work_order_id=db_work_order.id,
                piece_id=db_piece.id,
                quantite=quantity,
                prix_unitaire_applique=db_piece.prix_unitaire,
            )
            self.db.add(usage)
            await self.db.flush()

            # The ledger re-checks the stock atomically; a concurrent
            # deduction since the check above fails here and rolls back.
            mouvement = await inv_crud.mouvement_stock.adjust_stock(
                self.db,
                piece_id=db_piece.id,
                direction=inv_models.MouvementType.SORTIE,
                quantity=quantity,
                motif=consumption_motif(db_work_order.id),
                user_id=user_id,
            )

            db_work_order.parts_cost = await wo_crud.work_order.compute_parts_cost(self.db, db_work_order.id)
            self.db.add(db_work_order)

        logger.info(
            "Work order %s: %s x piece %s attached at %s (parts cost %s)",
            db_work_order.id, quantity, db_piece.id, usage.prix_unitaire_applique, db_work_order.parts_cost,
        )
        await self.db.refresh(db_piece)
        await self.db.refresh(db_work_order)
        await notify_if_low_stock(self.arq_redis_pool, db_piece, mouvement)
        return usage, db_work_order, db_piece

    async def detach_part(
        self,
        usage_id: int,
        *,
        work_order_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> wo_models.WorkOrder:
        """Returns the usage quantity to stock, removes it and recomputes the parts cost."""
        usage = await wo_crud.piece_intervention.get(self.db, id=usage_id)
        if usage is None or (work_order_id is not None and usage.work_order_id != work_order_id):
            raise NotFoundError("PieceIntervention", usage_id)
        db_work_order = await self._get_open_work_order(usage.work_order_id)

        async with atomic(self.db):
            await inv_crud.mouvement_stock.adjust_stock(
                self.db,
                piece_id=usage.piece_id,
                direction=inv_models.MouvementType.ENTREE,
                quantity=usage.quantite,
                motif=cancellation_motif(db_work_order.id),
                user_id=user_id,
            )
            await self.db.delete(usage)
            await self.db.flush()

            db_work_order.parts_cost = await wo_crud.work_order.compute_parts_cost(self.db, db_work_order.id)
            self.db.add(db_work_order)

        logger.info(
            "Work order %s: usage %s detached, %s x piece %s returned to stock",
            db_work_order.id, usage_id, usage.quantite, usage.piece_id,
        )
        await self.db.refresh(db_work_order)
        return db_work_order
