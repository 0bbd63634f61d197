# gmao/domains/asset/crud.py

"""
CRUD operations of the 'asset' domain and the machine status projector.
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.crud_base import CRUDBase
from gmao.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from gmao.domains.wo import models as wo_models
from . import models as asset_models
from . import schemas as asset_schemas

logger = logging.getLogger(__name__)


# =============================================================================
# 1. clients table CRUD
# =============================================================================
class ClientCRUD(CRUDBase[asset_models.Client, asset_schemas.ClientCreate, asset_schemas.ClientUpdate]):
    async def delete(self, db: AsyncSession, *, id: int) -> Optional[asset_models.Client]:
        """Refuses to delete a client that still owns machines."""
        count = (await db.execute(
            select(func.count()).select_from(asset_models.Machine).where(asset_models.Machine.client_id == id)
        )).scalar_one()
        if count:
            raise ConflictError(f"Client {id} still owns {count} machine(s)")
        return await super().delete(db, id=id)


client = ClientCRUD(asset_models.Client)


# =============================================================================
# 2. machines table CRUD
# =============================================================================
class MachineCRUD(CRUDBase[asset_models.Machine, asset_schemas.MachineCreate, asset_schemas.MachineUpdate]):
    async def get_by_reference(self, db: AsyncSession, *, reference: str) -> Optional[asset_models.Machine]:
        return await self.get_by_attribute(db, attribute="reference", value=reference)

    async def _check_client(self, db: AsyncSession, client_id: Optional[int]) -> None:
        if client_id is not None and not await db.get(asset_models.Client, client_id):
            raise NotFoundError("Client", client_id)

    async def create(self, db: AsyncSession, *, obj_in: asset_schemas.MachineCreate) -> asset_models.Machine:
        if await self.get_by_reference(db, reference=obj_in.reference):
            raise ConflictError(f"Machine reference '{obj_in.reference}' already exists")
        await self._check_client(db, obj_in.client_id)
        return await super().create(db, obj_in=obj_in)

    async def update(
        self, db: AsyncSession, *, db_obj: asset_models.Machine, obj_in: asset_schemas.MachineUpdate
    ) -> asset_models.Machine:
        if obj_in.reference and obj_in.reference != db_obj.reference:
            if await self.get_by_reference(db, reference=obj_in.reference):
                raise ConflictError(f"Machine reference '{obj_in.reference}' already exists")
        if "client_id" in obj_in.model_fields_set:
            await self._check_client(db, obj_in.client_id)
        return await super().update(db, db_obj=db_obj, obj_in=obj_in)

    async def delete(self, db: AsyncSession, *, id: int) -> Optional[asset_models.Machine]:
        """Refuses to delete a machine that has work orders."""
        count = (await db.execute(
            select(func.count()).select_from(wo_models.WorkOrder).where(wo_models.WorkOrder.machine_id == id)
        )).scalar_one()
        if count:
            raise ConflictError(f"Machine {id} is referenced by {count} work order(s)")
        return await super().delete(db, id=id)


    async def set_status(
        self, db: AsyncSession, *, db_obj: asset_models.Machine, statut: asset_models.MachineStatut
    ) -> asset_models.Machine:
        """
        Declares a machine out of service or back in service. Refused while a
        work order keeps it under repair; 'En maintenance' is never set by hand.
        """
        if statut == asset_models.MachineStatut.EN_MAINTENANCE:
            raise InvalidInputError("statut", "is set by work orders only")
        active = await self.count_active_work_orders(db, db_obj.id)
        if active:
            raise ConflictError(f"Machine {db_obj.id} is under repair by {active} work order(s)")

        db_obj.statut = statut.value
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        logger.info("Machine %s manually set to %s", db_obj.id, statut.value)
        return db_obj

    # -------------------------------------------------------------------------
    # Machine status projector
    # -------------------------------------------------------------------------
    async def count_active_work_orders(
        self, db: AsyncSession, machine_id: int, *, excluding_work_order_id: Optional[int] = None
    ) -> int:
        """Number of work orders keeping the machine under repair."""
        query = select(func.count()).select_from(wo_models.WorkOrder).where(
            wo_models.WorkOrder.machine_id == machine_id,
            wo_models.WorkOrder.status.in_([s.value for s in wo_models.MACHINE_ACTIVE_STATUSES]),
        )
        if excluding_work_order_id is not None:
            query = query.where(wo_models.WorkOrder.id != excluding_work_order_id)
        return (await db.execute(query)).scalar_one()

    async def apply_active_work_effect(self, db: AsyncSession, machine_id: int) -> Optional[asset_models.MachineStatut]:
        """
        Puts the machine in maintenance. Runs inside the caller's transaction
        (flush only). A missing machine is logged and skipped.
        """
        machine = await db.get(asset_models.Machine, machine_id)
        if machine is None:
            logger.warning("Machine %s not found while applying active work effect", machine_id)
            return None
        machine.statut = asset_models.MachineStatut.EN_MAINTENANCE.value
        db.add(machine)
        await db.flush()
        return machine.statut

    async def release_if_idle(
        self, db: AsyncSession, machine_id: int, *, excluding_work_order_id: Optional[int] = None
    ) -> Optional[asset_models.MachineStatut]:
        """
        Restores the machine to service when no other work order keeps it
        under repair; otherwise leaves it unchanged. Only a machine in
        maintenance is restored, so a machine declared out of service stays
        so. Runs inside the caller's transaction (flush only). A missing
        machine is logged and skipped.
        """
        machine = await db.get(asset_models.Machine, machine_id)
        if machine is None:
            logger.warning("Machine %s not found while releasing", machine_id)
            return None
        if machine.statut != asset_models.MachineStatut.EN_MAINTENANCE.value:
            return machine.statut

        remaining = await self.count_active_work_orders(
            db, machine_id, excluding_work_order_id=excluding_work_order_id
        )
        if remaining == 0:
            machine.statut = asset_models.MachineStatut.EN_SERVICE.value
            db.add(machine)
            await db.flush()
        else:
            logger.info("Machine %s kept in maintenance: %s other active work order(s)", machine_id, remaining)
        return machine.statut


machine = MachineCRUD(asset_models.Machine)
