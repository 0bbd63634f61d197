# gmao/domains/inv/tasks.py

import logging

from gmao.core.database import get_async_session_context
from gmao.domains.inv import crud as inv_crud

logger = logging.getLogger(__name__)


async def low_stock_report_task(ctx):
    """
    Daily arq task logging every part at or below its reorder threshold.
    """
    async with get_async_session_context() as db:
        pieces = await inv_crud.piece.get_low_stock(db)

    if not pieces:
        logger.info("Low stock report: no part below its threshold.")
        return {"status": "success", "count": 0, "pieces": []}

    for db_piece in pieces:
        logger.warning(
            "Low stock: %s (%s) quantite_stock=%s seuil_alerte=%s",
            db_piece.reference, db_piece.nom, db_piece.quantite_stock, db_piece.seuil_alerte,
        )
    return {
        "status": "success",
        "count": len(pieces),
        "pieces": [db_piece.reference for db_piece in pieces],
    }
