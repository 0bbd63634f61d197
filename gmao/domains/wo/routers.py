# gmao/domains/wo/routers.py

"""
API endpoints of the 'wo' domain.

- work order creation, listing, detail and descriptive updates
- lifecycle commands (assign, status, signature, technician confirmation)
- images, invoice snapshot and administrative delete
- parts usages attached to a work order
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.database import get_session
from gmao.core import dependencies as deps
from gmao.core.exceptions import NotFoundError
from gmao.domains.usr import models as usr_models
from gmao.services.parts_consumption_service import PartsConsumptionService
from gmao.services.work_order_service import WorkOrderService

from . import crud as wo_crud
from . import models as wo_models
from . import schemas as wo_schemas


router = APIRouter(
    tags=["Work Order Management"],
    responses={404: {"description": "Not found"}},
)


async def _detail_or_404(db: AsyncSession, work_order_id: int) -> wo_models.WorkOrder:
    db_work_order = await wo_crud.work_order.get_detail(db, work_order_id)
    if db_work_order is None:
        raise NotFoundError("WorkOrder", work_order_id)
    return db_work_order


# =============================================================================
# 1. Work orders
# =============================================================================
@router.post("/work_orders", response_model=wo_schemas.WorkOrderRead, status_code=status.HTTP_201_CREATED)
async def create_work_order(
    work_order_in: wo_schemas.WorkOrderCreate,
    db: AsyncSession = Depends(get_session),
    arq_redis_pool=Depends(deps.get_arq_redis),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """Reports a new work order on a machine. It starts in status 'reported'."""
    service = WorkOrderService(db, arq_redis_pool)
    return await service.create(work_order_in, reported_by_id=current_user.id)


@router.get("/work_orders", response_model=wo_schemas.WorkOrderPage)
async def read_work_orders(
    status: Optional[wo_models.WorkOrderStatus] = Query(None),
    type: Optional[wo_models.WorkOrderType] = Query(None),
    priority: Optional[wo_models.WorkOrderPriority] = Query(None),
    machine_id: Optional[int] = Query(None),
    technicien_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, description="Matches the description"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    items, total, total_pages = await wo_crud.work_order.get_page(
        db,
        status=status,
        type=type,
        priority=priority,
        machine_id=machine_id,
        technicien_id=technicien_id,
        search=search,
        page=page,
        limit=limit,
    )
    return {"items": items, "total": total, "page": page, "total_pages": total_pages}


@router.get("/work_orders/{work_order_id}", response_model=wo_schemas.WorkOrderDetail)
async def read_work_order(
    work_order_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await _detail_or_404(db, work_order_id)


@router.put("/work_orders/{work_order_id}", response_model=wo_schemas.WorkOrderRead)
async def update_work_order(
    work_order_id: int,
    work_order_in: wo_schemas.WorkOrderUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await WorkOrderService(db).update(work_order_id, work_order_in)


@router.delete("/work_orders/{work_order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_work_order(
    work_order_id: int,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    """Hard delete. Parts usages are removed with the order; stock is not restored."""
    await WorkOrderService(db).hard_delete(work_order_id)
    return None


# =============================================================================
# 2. Lifecycle commands
# =============================================================================
@router.post("/work_orders/{work_order_id}/assign", response_model=wo_schemas.WorkOrderRead)
async def assign_work_order(
    work_order_id: int,
    assign_in: wo_schemas.WorkOrderAssign,
    db: AsyncSession = Depends(get_session),
    arq_redis_pool=Depends(deps.get_arq_redis),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    service = WorkOrderService(db, arq_redis_pool)
    return await service.assign(work_order_id, assign_in.technicien_id)


@router.patch("/work_orders/{work_order_id}/status", response_model=wo_schemas.WorkOrderRead)
async def update_work_order_status(
    work_order_id: int,
    status_in: wo_schemas.WorkOrderStatusUpdate,
    db: AsyncSession = Depends(get_session),
    arq_redis_pool=Depends(deps.get_arq_redis),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """
    Moves the work order along the state machine. An edge that does not exist
    fails with 400 and lists the statuses reachable from the current one.
    """
    service = WorkOrderService(db, arq_redis_pool)
    return await service.transition_status(work_order_id, status_in)


@router.post("/work_orders/{work_order_id}/signature", response_model=wo_schemas.WorkOrderRead)
async def sign_work_order(
    work_order_id: int,
    signature_in: wo_schemas.WorkOrderSignature,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await WorkOrderService(db).attach_signature(work_order_id, signature_in)


@router.post("/work_orders/{work_order_id}/confirm", response_model=wo_schemas.WorkOrderRead)
async def confirm_work_order(
    work_order_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await WorkOrderService(db).confirm_by_technician(work_order_id, current_user)


# =============================================================================
# 3. Images and invoice
# =============================================================================
@router.post("/work_orders/{work_order_id}/images", response_model=wo_schemas.WorkOrderRead)
async def upload_work_order_images(
    work_order_id: int,
    files: List[UploadFile] = File(...),
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await WorkOrderService(db).add_images(work_order_id, files)


@router.delete("/work_orders/{work_order_id}/images", response_model=wo_schemas.WorkOrderRead)
async def delete_work_order_image(
    work_order_id: int,
    url: str = Query(..., description="URL returned by the upload"),
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await WorkOrderService(db).remove_image(work_order_id, url)


@router.get("/work_orders/{work_order_id}/invoice", response_model=wo_schemas.Invoice)
async def read_work_order_invoice(
    work_order_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await WorkOrderService(db).build_invoice(work_order_id)


# =============================================================================
# 4. Parts usages
# =============================================================================
@router.get("/work_orders/{work_order_id}/pieces", response_model=List[wo_schemas.PieceInterventionRead])
async def read_work_order_pieces(
    work_order_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    if not await wo_crud.work_order.get(db, id=work_order_id):
        raise NotFoundError("WorkOrder", work_order_id)
    return await wo_crud.piece_intervention.get_by_work_order(db, work_order_id)


@router.post(
    "/work_orders/{work_order_id}/pieces",
    response_model=wo_schemas.PartAttachResult,
    status_code=status.HTTP_201_CREATED,
)
async def attach_piece(
    work_order_id: int,
    part_in: wo_schemas.PartAttach,
    db: AsyncSession = Depends(get_session),
    arq_redis_pool=Depends(deps.get_arq_redis),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """Consumes a part: the stock is decremented and the unit price is frozen on the usage."""
    service = PartsConsumptionService(db, arq_redis_pool)
    usage, db_work_order, db_piece = await service.attach_part(
        work_order_id, part_in.piece_id, part_in.quantite, user_id=current_user.id
    )
    return {
        "usage": await wo_crud.piece_intervention.get_with_piece(db, usage.id),
        "parts_cost": db_work_order.parts_cost,
        "quantite_stock": db_piece.quantite_stock,
    }


@router.delete("/work_orders/{work_order_id}/pieces/{usage_id}", response_model=wo_schemas.WorkOrderRead)
async def detach_piece(
    work_order_id: int,
    usage_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """Cancels a usage: its quantity goes back to stock."""
    service = PartsConsumptionService(db)
    return await service.detach_part(usage_id, work_order_id=work_order_id, user_id=current_user.id)
