# gmao/domains/inv/services.py

"""
Transactional stock operations exposed to the routers.
"""

import logging
from typing import Any, Optional, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.database import atomic
from gmao.core.exceptions import NotFoundError
from gmao.domains.shared.services import notify
from . import crud as inv_crud
from . import models as inv_models
from . import schemas as inv_schemas

logger = logging.getLogger(__name__)

EVENT_LOW_STOCK = "part.low_stock"


def default_motif(direction: inv_models.MouvementType) -> str:
    return f"Ajustement manuel ({direction.value})"


async def notify_if_low_stock(
    arq_redis_pool: Optional[Any],
    piece: inv_models.Piece,
    mouvement: inv_models.MouvementStock,
) -> None:
    """Emits a low-stock event when an out movement crosses the reorder threshold."""
    if mouvement.type != inv_models.MouvementType.SORTIE.value:
        return
    if mouvement.quantite_avant > piece.seuil_alerte >= mouvement.quantite_apres:
        await notify(arq_redis_pool, EVENT_LOW_STOCK, {
            "piece_id": piece.id,
            "reference": piece.reference,
            "quantite_stock": mouvement.quantite_apres,
            "seuil_alerte": piece.seuil_alerte,
        })


async def adjust_piece_stock(
    db: AsyncSession,
    *,
    piece_id: int,
    adjustment: inv_schemas.StockAdjustment,
    user_id: Optional[int] = None,
    arq_redis_pool: Optional[Any] = None,
) -> Tuple[inv_models.Piece, inv_models.MouvementStock]:
    """Manual stock adjustment: one ledger movement in its own transaction."""
    db_piece = await inv_crud.piece.get(db, id=piece_id)
    if db_piece is None:
        raise NotFoundError("Piece", piece_id)

    async with atomic(db):
        mouvement = await inv_crud.mouvement_stock.adjust_stock(
            db,
            piece_id=piece_id,
            direction=adjustment.type,
            quantity=adjustment.quantite,
            motif=adjustment.motif or default_motif(adjustment.type),
            user_id=user_id,
        )
    await db.refresh(db_piece)
    await notify_if_low_stock(arq_redis_pool, db_piece, mouvement)
    return db_piece, mouvement
