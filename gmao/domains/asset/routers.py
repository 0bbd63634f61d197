# gmao/domains/asset/routers.py

"""
API endpoints of the 'asset' domain: clients and machines.
Reads are open to any authenticated user; writes require a staff role.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.database import get_session
from gmao.core import dependencies as deps
from gmao.core.exceptions import NotFoundError
from gmao.domains.usr import models as usr_models

from . import crud as asset_crud
from . import models as asset_models
from . import schemas as asset_schemas


router = APIRouter(
    tags=["Asset Management"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. Clients
# =============================================================================
@router.post("/clients", response_model=asset_schemas.ClientRead, status_code=status.HTTP_201_CREATED)
async def create_client(
    client_in: asset_schemas.ClientCreate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    return await asset_crud.client.create(db, obj_in=client_in)


@router.get("/clients", response_model=List[asset_schemas.ClientRead])
async def read_clients(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await asset_crud.client.get_multi(db, skip=skip, limit=limit)


@router.get("/clients/{client_id}", response_model=asset_schemas.ClientRead)
async def read_client(
    client_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    db_client = await asset_crud.client.get(db, id=client_id)
    if not db_client:
        raise NotFoundError("Client", client_id)
    return db_client


@router.put("/clients/{client_id}", response_model=asset_schemas.ClientRead)
async def update_client(
    client_id: int,
    client_in: asset_schemas.ClientUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    db_client = await asset_crud.client.get(db, id=client_id)
    if not db_client:
        raise NotFoundError("Client", client_id)
    return await asset_crud.client.update(db, db_obj=db_client, obj_in=client_in)


@router.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    if not await asset_crud.client.get(db, id=client_id):
        raise NotFoundError("Client", client_id)
    await asset_crud.client.delete(db, id=client_id)
    return None


# =============================================================================
# 2. Machines
# =============================================================================
@router.post("/machines", response_model=asset_schemas.MachineRead, status_code=status.HTTP_201_CREATED)
async def create_machine(
    machine_in: asset_schemas.MachineCreate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    return await asset_crud.machine.create(db, obj_in=machine_in)


@router.get("/machines", response_model=List[asset_schemas.MachineRead])
async def read_machines(
    client_id: Optional[int] = Query(None),
    statut: Optional[asset_models.MachineStatut] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    machines, _ = await asset_crud.machine.get_filtered(
        db,
        filters={"client_id": client_id, "statut": statut.value if statut else None},
        order_desc=False,
        skip=skip,
        limit=limit,
    )
    return machines


@router.get("/machines/{machine_id}", response_model=asset_schemas.MachineRead)
async def read_machine(
    machine_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    db_machine = await asset_crud.machine.get(db, id=machine_id)
    if not db_machine:
        raise NotFoundError("Machine", machine_id)
    return db_machine


@router.put("/machines/{machine_id}", response_model=asset_schemas.MachineRead)
async def update_machine(
    machine_id: int,
    machine_in: asset_schemas.MachineUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    db_machine = await asset_crud.machine.get(db, id=machine_id)
    if not db_machine:
        raise NotFoundError("Machine", machine_id)
    return await asset_crud.machine.update(db, db_obj=db_machine, obj_in=machine_in)


@router.patch("/machines/{machine_id}/status", response_model=asset_schemas.MachineRead)
async def update_machine_status(
    machine_id: int,
    status_in: asset_schemas.MachineStatusUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    """Declares a machine 'Hors service' or puts it back 'En service'."""
    db_machine = await asset_crud.machine.get(db, id=machine_id)
    if not db_machine:
        raise NotFoundError("Machine", machine_id)
    return await asset_crud.machine.set_status(db, db_obj=db_machine, statut=status_in.statut)


@router.delete("/machines/{machine_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_machine(
    machine_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    if not await asset_crud.machine.get(db, id=machine_id):
        raise NotFoundError("Machine", machine_id)
    await asset_crud.machine.delete(db, id=machine_id)
    return None
