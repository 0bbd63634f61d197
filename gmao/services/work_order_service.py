# gmao/services/work_order_service.py

"""
Work order lifecycle.

Every command validates first and then applies the work order change and its
cascades (technician availability, machine status) inside one transaction.
Cascade targets that no longer exist are logged and skipped; the work order's
own state is authoritative. Notifications are emitted after commit and never
affect the outcome.
"""

import logging
from datetime import datetime, UTC
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Optional

from fastapi import UploadFile
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.config import settings
from gmao.core.database import atomic
from gmao.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
)
from gmao.core.roles import UserRole, has_role
from gmao.domains.asset import crud as asset_crud
from gmao.domains.asset import models as asset_models
from gmao.domains.asset.schemas import ClientRead
from gmao.domains.shared.services import ImageStorageError, image_storage, notify
from gmao.domains.tech import crud as tech_crud
from gmao.domains.tech import models as tech_models
from gmao.domains.usr import models as usr_models
from gmao.domains.wo import crud as wo_crud
from gmao.domains.wo import models as wo_models
from gmao.domains.wo import schemas as wo_schemas

logger = logging.getLogger(__name__)

WorkOrderStatus = wo_models.WorkOrderStatus

EVENT_CREATED = "work_order.created"
EVENT_ASSIGNED = "work_order.assigned"
EVENT_STATUS_CHANGED = "work_order.status_changed"


def _as_utc(value: datetime) -> datetime:
    """Timestamps read back from SQLite are naive; they are stored in UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def duration_minutes(started: datetime, completed: datetime) -> int:
    """Elapsed whole minutes, rounded half up."""
    seconds = Decimal(str((_as_utc(completed) - _as_utc(started)).total_seconds()))
    return int((seconds / 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class WorkOrderService:
    """
    Work order state machine and its cascades.
    """

    def __init__(self, db: AsyncSession, arq_redis_pool: Optional[Any] = None):
        self.db = db
        self.arq_redis_pool = arq_redis_pool

    async def get_or_404(self, work_order_id: int) -> wo_models.WorkOrder:
        db_work_order = await wo_crud.work_order.get(self.db, id=work_order_id)
        if db_work_order is None:
            raise NotFoundError("WorkOrder", work_order_id)
        return db_work_order

    # =========================================================================
    # 1. Creation and descriptive updates
    # =========================================================================
    async def create(
        self, obj_in: wo_schemas.WorkOrderCreate, *, reported_by_id: Optional[int] = None
    ) -> wo_models.WorkOrder:
        if not obj_in.description or not obj_in.description.strip():
            raise InvalidInputError("description", "is required")
        if await self.db.get(asset_models.Machine, obj_in.machine_id) is None:
            raise NotFoundError("Machine", obj_in.machine_id)

        async with atomic(self.db):
            db_work_order = wo_models.WorkOrder(
                machine_id=obj_in.machine_id,
                reported_by_id=reported_by_id,
                type=obj_in.type.value,
                origin=obj_in.origin.value,
                priority=obj_in.priority.value,
                severity=obj_in.severity.value if obj_in.severity else None,
                status=WorkOrderStatus.REPORTED.value,
                description=obj_in.description.strip(),
                scheduled_date=obj_in.scheduled_date,
                estimated_duration=obj_in.estimated_duration,
                date_reported=datetime.now(UTC),
            )
            self.db.add(db_work_order)
            await self.db.flush()

        logger.info("Work order %s reported on machine %s", db_work_order.id, db_work_order.machine_id)
        await notify(self.arq_redis_pool, EVENT_CREATED, {
            "work_order_id": db_work_order.id,
            "machine_id": db_work_order.machine_id,
            "priority": db_work_order.priority,
        })
        await self.db.refresh(db_work_order)
        return db_work_order

    async def update(self, work_order_id: int, obj_in: wo_schemas.WorkOrderUpdate) -> wo_models.WorkOrder:
        """Updates priority, severity, description, scheduled date or estimated duration."""
        db_work_order = await self.get_or_404(work_order_id)
        update_data = obj_in.model_dump(exclude_unset=True)
        if "description" in update_data and not (update_data["description"] or "").strip():
            raise InvalidInputError("description", "is required")
        if "description" in update_data:
            update_data["description"] = update_data["description"].strip()

        async with atomic(self.db):
            for key, value in update_data.items():
                setattr(db_work_order, key, value.value if hasattr(value, "value") else value)
            self.db.add(db_work_order)
        await self.db.refresh(db_work_order)
        return db_work_order

    # =========================================================================
    # 2. Assignment
    # =========================================================================
    async def assign(self, work_order_id: int, technicien_id: int) -> wo_models.WorkOrder:
        """
        Assigns a technician and moves the order to 'assigned'.

        Allowed from 'reported' and, as a re-assignment, from 'assigned'.
        Any later state is rejected so assignment never moves an order back.
        """
        db_work_order = await self.get_or_404(work_order_id)
        db_tech = await self.db.get(tech_models.Technicien, technicien_id)
        if db_tech is None:
            raise NotFoundError("Technicien", technicien_id)

        current = WorkOrderStatus(db_work_order.status)
        if current not in (WorkOrderStatus.REPORTED, WorkOrderStatus.ASSIGNED):
            raise InvalidTransitionError(
                current.value,
                WorkOrderStatus.ASSIGNED.value,
                [s.value for s in wo_models.allowed_transitions(current)],
            )

        previous_technicien_id = db_work_order.technicien_id
        async with atomic(self.db):
            db_work_order.technicien_id = db_tech.id
            db_work_order.status = WorkOrderStatus.ASSIGNED.value
            self.db.add(db_work_order)
            await self.db.flush()

            await tech_crud.technicien.mark_in_intervention(self.db, db_tech.id)
            if previous_technicien_id is not None and previous_technicien_id != db_tech.id:
                await tech_crud.technicien.release_if_free(
                    self.db, previous_technicien_id, excluding_work_order_id=db_work_order.id
                )

        logger.info(
            "Work order %s assigned to technician %s (was %s, status %s)",
            db_work_order.id, db_tech.id, previous_technicien_id, current.value,
        )
        await notify(self.arq_redis_pool, EVENT_ASSIGNED, {
            "work_order_id": db_work_order.id,
            "technicien_id": db_tech.id,
            "user_id": db_tech.user_id,
        })
        await self.db.refresh(db_work_order)
        return db_work_order

    # =========================================================================
    # 3. Status transitions
    # =========================================================================
    async def transition_status(
        self, work_order_id: int, status_in: wo_schemas.WorkOrderStatusUpdate
    ) -> wo_models.WorkOrder:
        db_work_order = await self.get_or_404(work_order_id)
        current = WorkOrderStatus(db_work_order.status)
        target = WorkOrderStatus(status_in.status)

        if not wo_models.can_transition(current, target):
            raise InvalidTransitionError(
                current.value, target.value, [s.value for s in wo_models.allowed_transitions(current)]
            )

        now = datetime.now(UTC)
        async with atomic(self.db):
            db_work_order.status = target.value

            if target == WorkOrderStatus.IN_PROGRESS and db_work_order.date_started is None:
                db_work_order.date_started = now

            if target == WorkOrderStatus.COMPLETED:
                await self._apply_completion(db_work_order, status_in, now)

            self.db.add(db_work_order)
            await self.db.flush()
            await self._cascade(db_work_order, target)

        logger.info("Work order %s: %s -> %s", db_work_order.id, current.value, target.value)
        await notify(self.arq_redis_pool, EVENT_STATUS_CHANGED, {
            "work_order_id": db_work_order.id,
            "from": current.value,
            "to": target.value,
        })
        await self.db.refresh(db_work_order)
        return db_work_order

    async def _apply_completion(
        self,
        db_work_order: wo_models.WorkOrder,
        status_in: wo_schemas.WorkOrderStatusUpdate,
        now: datetime,
    ) -> None:
        db_work_order.date_completed = now
        if status_in.resolution is not None:
            db_work_order.resolution = status_in.resolution
        if status_in.labor_cost is not None:
            db_work_order.labor_cost = status_in.labor_cost

        # Recorded parts usages always win over a caller supplied parts cost.
        if await wo_crud.work_order.count_usages(self.db, db_work_order.id):
            db_work_order.parts_cost = await wo_crud.work_order.compute_parts_cost(self.db, db_work_order.id)
        elif status_in.parts_cost is not None:
            db_work_order.parts_cost = status_in.parts_cost

        if db_work_order.date_started is not None:
            db_work_order.actual_duration = duration_minutes(db_work_order.date_started, now)

    async def _cascade(self, db_work_order: wo_models.WorkOrder, target: WorkOrderStatus) -> None:
        """Applies machine status and technician availability side effects."""
        if target in wo_models.MACHINE_ACTIVE_STATUSES:
            await asset_crud.machine.apply_active_work_effect(self.db, db_work_order.machine_id)

        if target == WorkOrderStatus.IN_PROGRESS and db_work_order.technicien_id is not None:
            await tech_crud.technicien.mark_in_intervention(self.db, db_work_order.technicien_id)

        if target in wo_models.TERMINAL_STATUSES:
            await self._release(db_work_order)

    async def _release(self, db_work_order: wo_models.WorkOrder) -> None:
        await asset_crud.machine.release_if_idle(
            self.db, db_work_order.machine_id, excluding_work_order_id=db_work_order.id
        )
        if db_work_order.technicien_id is not None:
            await tech_crud.technicien.release_if_free(
                self.db, db_work_order.technicien_id, excluding_work_order_id=db_work_order.id
            )

    # =========================================================================
    # 4. Signature and technician confirmation
    # =========================================================================
    async def attach_signature(
        self, work_order_id: int, signature_in: wo_schemas.WorkOrderSignature
    ) -> wo_models.WorkOrder:
        """Stores the client signature; independent of the status."""
        db_work_order = await self.get_or_404(work_order_id)
        async with atomic(self.db):
            db_work_order.signature_client = signature_in.signature
            db_work_order.signature_client_name = signature_in.signer_name
            db_work_order.signature_client_at = datetime.now(UTC)
            self.db.add(db_work_order)
        logger.info("Signature attached to work order %s", db_work_order.id)
        await self.db.refresh(db_work_order)
        return db_work_order

    async def confirm_by_technician(self, work_order_id: int, user: usr_models.User) -> wo_models.WorkOrder:
        """The assigned technician (or staff) confirms the intervention."""
        db_work_order = await self.get_or_404(work_order_id)
        if db_work_order.technicien_id is None:
            raise InvalidInputError("technicien_id", "work order has no assigned technician")

        if not has_role(user.role_set, UserRole.RECEPTIONIST):
            db_tech = await tech_crud.technicien.get_by_user_id(self.db, user.id)
            if db_tech is None or db_tech.id != db_work_order.technicien_id:
                raise ForbiddenError(UserRole.RECEPTIONIST.value)

        async with atomic(self.db):
            db_work_order.confirmed_by_tech = True
            db_work_order.confirmed_by_tech_at = datetime.now(UTC)
            self.db.add(db_work_order)
        await self.db.refresh(db_work_order)
        return db_work_order

    # =========================================================================
    # 5. Images
    # =========================================================================
    async def add_images(self, work_order_id: int, files: List[UploadFile]) -> wo_models.WorkOrder:
        """
        Stores each file and appends the resulting URLs. A file that cannot
        be stored is logged and skipped; the call fails only when none was.
        """
        db_work_order = await self.get_or_404(work_order_id)
        if not files:
            raise InvalidInputError("images", "no file provided")
        if len(files) > settings.MAX_IMAGES_PER_UPLOAD:
            raise InvalidInputError("images", f"at most {settings.MAX_IMAGES_PER_UPLOAD} files per upload")

        urls = []
        for upload_file in files:
            try:
                urls.append(await image_storage.store(upload_file, f"work_orders/{db_work_order.id}"))
            except (ImageStorageError, OSError) as e:
                logger.warning("Image upload skipped for work order %s: %s", db_work_order.id, e)
        if not urls:
            raise StorageError()

        async with atomic(self.db):
            db_work_order.images = [*(db_work_order.images or []), *urls]
            self.db.add(db_work_order)
        await self.db.refresh(db_work_order)
        return db_work_order

    async def remove_image(self, work_order_id: int, url: str) -> wo_models.WorkOrder:
        db_work_order = await self.get_or_404(work_order_id)
        if url not in (db_work_order.images or []):
            raise NotFoundError("Image", url)

        async with atomic(self.db):
            db_work_order.images = [image for image in db_work_order.images if image != url]
            self.db.add(db_work_order)

        try:
            await image_storage.delete(url)
        except (ImageStorageError, OSError) as e:
            logger.warning("Could not delete stored image %s: %s", url, e)
        await self.db.refresh(db_work_order)
        return db_work_order

    # =========================================================================
    # 6. Invoice snapshot and administrative delete
    # =========================================================================
    async def build_invoice(self, work_order_id: int) -> wo_schemas.Invoice:
        """Read-only invoice data of a completed work order."""
        db_work_order = await wo_crud.work_order.get_detail(self.db, work_order_id)
        if db_work_order is None:
            raise NotFoundError("WorkOrder", work_order_id)
        if db_work_order.status != WorkOrderStatus.COMPLETED.value:
            raise ConflictError(f"Work order {work_order_id} is not completed; no invoice available")

        machine = db_work_order.machine
        technicien = db_work_order.technicien
        lignes = [
            wo_schemas.InvoiceLine(
                reference=usage.piece.reference if usage.piece else str(usage.piece_id),
                designation=usage.piece.nom if usage.piece else "",
                quantite=usage.quantite,
                prix_unitaire=usage.prix_unitaire_applique,
                total=usage.line_total,
            )
            for usage in db_work_order.pieces_utilisees
        ]
        return wo_schemas.Invoice(
            numero=f"FAC-{db_work_order.id:06d}",
            filename=f"facture_{db_work_order.id:06d}.pdf",
            work_order_id=db_work_order.id,
            date_emission=datetime.now(UTC),
            date_completed=db_work_order.date_completed,
            client=ClientRead.model_validate(machine.client) if machine and machine.client else None,
            machine=wo_schemas.InvoiceParty(
                nom=machine.reference if machine else str(db_work_order.machine_id),
                detail=" ".join(filter(None, [machine.marque, machine.modele])) if machine else None,
            ),
            technicien=wo_schemas.InvoiceParty(
                nom=technicien.user.full_name if technicien and technicien.user else f"#{technicien.id}",
                detail=technicien.specialite,
            ) if technicien else None,
            description=db_work_order.description,
            resolution=db_work_order.resolution,
            actual_duration=db_work_order.actual_duration,
            lignes=lignes,
            labor_cost=db_work_order.labor_cost,
            parts_cost=db_work_order.parts_cost,
            total=db_work_order.total_cost,
            signature_client_name=db_work_order.signature_client_name,
            signature_client_at=db_work_order.signature_client_at,
        )

    async def hard_delete(self, work_order_id: int) -> None:
        """
        Administrative delete. Parts usages go with the order and stock is
        not restored. Machine and technician are released if the order held them.
        """
        # Usages are loaded so the ORM cascade can delete them without lazy IO.
        db_work_order = await wo_crud.work_order.get_detail(self.db, work_order_id)
        if db_work_order is None:
            raise NotFoundError("WorkOrder", work_order_id)
        status = WorkOrderStatus(db_work_order.status)
        machine_id = db_work_order.machine_id
        technicien_id = db_work_order.technicien_id

        async with atomic(self.db):
            await self.db.delete(db_work_order)
            await self.db.flush()
            if status in wo_models.MACHINE_ACTIVE_STATUSES:
                await asset_crud.machine.release_if_idle(self.db, machine_id)
            if technicien_id is not None and status in wo_models.TECHNICIAN_ACTIVE_STATUSES:
                await tech_crud.technicien.release_if_free(self.db, technicien_id)

        logger.warning("Work order %s (%s) hard deleted", work_order_id, status.value)
