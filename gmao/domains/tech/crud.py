# gmao/domains/tech/crud.py

"""
CRUD operations of the 'tech' domain and the technician availability tracker.
"""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.crud_base import CRUDBase
from gmao.core.database import atomic
from gmao.core.exceptions import ConflictError
from gmao.core.roles import UserRole
from gmao.domains.usr import crud as usr_crud
from gmao.domains.usr import schemas as usr_schemas
from gmao.domains.wo import models as wo_models
from . import models as tech_models
from . import schemas as tech_schemas

logger = logging.getLogger(__name__)


class TechnicienCRUD(CRUDBase[tech_models.Technicien, tech_schemas.TechnicienCreate, tech_schemas.TechnicienUpdate]):
    async def get_with_user(self, db: AsyncSession, id: int) -> Optional[tech_models.Technicien]:
        result = await db.execute(
            select(tech_models.Technicien)
            .where(tech_models.Technicien.id == id)
            .options(selectinload(tech_models.Technicien.user))
        )
        return result.scalar_one_or_none()

    async def get_by_user_id(self, db: AsyncSession, user_id: int) -> Optional[tech_models.Technicien]:
        return await self.get_by_attribute(db, attribute="user_id", value=user_id)

    async def get_multi_with_user(
        self, db: AsyncSession, *, statut: Optional[tech_models.TechnicienStatut] = None,
        skip: int = 0, limit: int = 100,
    ) -> List[tech_models.Technicien]:
        query = select(tech_models.Technicien).options(selectinload(tech_models.Technicien.user))
        if statut is not None:
            query = query.where(tech_models.Technicien.statut == statut.value)
        query = query.order_by(tech_models.Technicien.id).offset(skip).limit(limit)
        return (await db.execute(query)).scalars().all()

    async def create(self, db: AsyncSession, *, obj_in: tech_schemas.TechnicienCreate) -> tech_models.Technicien:
        """Creates the user account and the technician profile in one transaction."""
        async with atomic(db):
            db_user = await usr_crud.user.build(
                db,
                obj_in=usr_schemas.UserCreate(
                    email=obj_in.email,
                    nom=obj_in.nom,
                    prenom=obj_in.prenom,
                    telephone=obj_in.telephone,
                    password=obj_in.password,
                    roles=[UserRole.TECHNICIEN],
                ),
            )
            db_tech = tech_models.Technicien(
                user_id=db_user.id,
                specialite=obj_in.specialite,
                taux_horaire=obj_in.taux_horaire,
            )
            db.add(db_tech)
            await db.flush()
        return await self.get_with_user(db, db_tech.id)

    async def delete(self, db: AsyncSession, *, id: int) -> Optional[tech_models.Technicien]:
        """
        Deletes the technician profile and its user account in one transaction.
        Refused while the technician holds an active work order. Finished work
        orders keep their history without a technician.
        """
        db_tech = await self.get(db, id=id)
        if db_tech is None:
            return None
        active = await self.count_active_assignments(db, id)
        if active:
            raise ConflictError(f"Technicien {id} holds {active} active work order(s)")

        user_id = db_tech.user_id
        async with atomic(db):
            await db.delete(db_tech)
            await db.flush()
            db_user = await usr_crud.user.get(db, id=user_id)
            if db_user is not None:
                await db.delete(db_user)
        logger.info("Technician %s deleted with user %s", id, user_id)
        return db_tech

    # -------------------------------------------------------------------------
    # Technician availability tracker
    # -------------------------------------------------------------------------
    async def count_active_assignments(
        self, db: AsyncSession, technicien_id: int, *, excluding_work_order_id: Optional[int] = None
    ) -> int:
        query = select(func.count()).select_from(wo_models.WorkOrder).where(
            wo_models.WorkOrder.technicien_id == technicien_id,
            wo_models.WorkOrder.status.in_([s.value for s in wo_models.TECHNICIAN_ACTIVE_STATUSES]),
        )
        if excluding_work_order_id is not None:
            query = query.where(wo_models.WorkOrder.id != excluding_work_order_id)
        return (await db.execute(query)).scalar_one()

    async def mark_in_intervention(self, db: AsyncSession, technicien_id: int) -> Optional[tech_models.TechnicienStatut]:
        """Sets the technician 'En intervention' (flush only). A missing technician is logged."""
        db_tech = await db.get(tech_models.Technicien, technicien_id)
        if db_tech is None:
            logger.warning("Technician %s not found while marking in intervention", technicien_id)
            return None
        db_tech.statut = tech_models.TechnicienStatut.EN_INTERVENTION.value
        db.add(db_tech)
        await db.flush()
        return db_tech.statut

    async def release_if_free(
        self, db: AsyncSession, technicien_id: int, *, excluding_work_order_id: Optional[int] = None
    ) -> Optional[tech_models.TechnicienStatut]:
        """
        Sets the technician back to 'Disponible' unless another work order
        still holds them. Flush only; a missing technician is logged.
        """
        db_tech = await db.get(tech_models.Technicien, technicien_id)
        if db_tech is None:
            logger.warning("Technician %s not found while releasing", technicien_id)
            return None

        remaining = await self.count_active_assignments(
            db, technicien_id, excluding_work_order_id=excluding_work_order_id
        )
        if remaining == 0:
            db_tech.statut = tech_models.TechnicienStatut.DISPONIBLE.value
            db.add(db_tech)
            await db.flush()
        else:
            logger.info("Technician %s kept busy: %s other active assignment(s)", technicien_id, remaining)
        return db_tech.statut

    async def set_status(
        self, db: AsyncSession, *, db_obj: tech_models.Technicien, statut: tech_models.TechnicienStatut
    ) -> tech_models.Technicien:
        """Self-service status change, not gated by work order state."""
        db_obj.statut = statut.value
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        logger.info("Technician %s set own status to %s", db_obj.id, statut.value)
        return db_obj


technicien = TechnicienCRUD(tech_models.Technicien)
