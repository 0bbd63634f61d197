# gmao/domains/wo/crud.py

"""
Read queries and aggregates of the 'wo' domain.
Lifecycle commands live in gmao.services.
"""

import math
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.crud_base import CRUDBase
from gmao.domains.asset import models as asset_models
from gmao.domains.tech import models as tech_models
from . import models as wo_models
from . import schemas as wo_schemas


def _detail_options():
    return (
        selectinload(wo_models.WorkOrder.machine).selectinload(asset_models.Machine.client),
        selectinload(wo_models.WorkOrder.technicien).selectinload(tech_models.Technicien.user),
        selectinload(wo_models.WorkOrder.pieces_utilisees).selectinload(wo_models.PieceIntervention.piece),
    )


class WorkOrderCRUD(CRUDBase[wo_models.WorkOrder, wo_schemas.WorkOrderCreate, wo_schemas.WorkOrderUpdate]):

    async def get_detail(self, db: AsyncSession, id: int) -> Optional[wo_models.WorkOrder]:
        """Work order with machine (and client), technician (and user) and parts usages loaded."""
        result = await db.execute(
            select(wo_models.WorkOrder)
            .where(wo_models.WorkOrder.id == id)
            .options(*_detail_options())
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_page(
        self,
        db: AsyncSession,
        *,
        status: Optional[wo_models.WorkOrderStatus] = None,
        type: Optional[wo_models.WorkOrderType] = None,
        priority: Optional[wo_models.WorkOrderPriority] = None,
        machine_id: Optional[int] = None,
        technicien_id: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[wo_models.WorkOrder], int, int]:
        """Filtered listing ordered by report date, newest first."""
        extra_conditions = []
        if search:
            extra_conditions.append(wo_models.WorkOrder.description.ilike(f"%{search}%"))

        items, total = await self.get_filtered(
            db,
            filters={
                "status": status.value if status else None,
                "type": type.value if type else None,
                "priority": priority.value if priority else None,
                "machine_id": machine_id,
                "technicien_id": technicien_id,
            },
            extra_conditions=extra_conditions,
            order_by_field="date_reported",
            order_desc=True,
            skip=(page - 1) * limit,
            limit=limit,
        )
        total_pages = math.ceil(total / limit) if total else 0
        return items, total, total_pages

    async def compute_parts_cost(self, db: AsyncSession, work_order_id: int) -> Decimal:
        """Sum of quantite x prix_unitaire_applique over the order's parts usages."""
        usage = wo_models.PieceIntervention
        result = await db.execute(
            select(func.coalesce(func.sum(usage.quantite * usage.prix_unitaire_applique), 0))
            .where(usage.work_order_id == work_order_id)
        )
        return Decimal(str(result.scalar_one())).quantize(Decimal("0.01"))

    async def count_usages(self, db: AsyncSession, work_order_id: int) -> int:
        return (await db.execute(
            select(func.count()).select_from(wo_models.PieceIntervention)
            .where(wo_models.PieceIntervention.work_order_id == work_order_id)
        )).scalar_one()


class PieceInterventionCRUD(
    CRUDBase[wo_models.PieceIntervention, wo_schemas.PartAttach, wo_schemas.PartAttach]
):
    async def get_with_piece(self, db: AsyncSession, id: int) -> Optional[wo_models.PieceIntervention]:
        result = await db.execute(
            select(wo_models.PieceIntervention)
            .where(wo_models.PieceIntervention.id == id)
            .options(selectinload(wo_models.PieceIntervention.piece))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_work_order(self, db: AsyncSession, work_order_id: int) -> List[wo_models.PieceIntervention]:
        result = await db.execute(
            select(wo_models.PieceIntervention)
            .where(wo_models.PieceIntervention.work_order_id == work_order_id)
            .options(selectinload(wo_models.PieceIntervention.piece))
            .order_by(wo_models.PieceIntervention.id)
        )
        return result.scalars().all()


work_order = WorkOrderCRUD(wo_models.WorkOrder)
piece_intervention = PieceInterventionCRUD(wo_models.PieceIntervention)
