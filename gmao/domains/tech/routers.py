# gmao/domains/tech/routers.py

"""
API endpoints of the 'tech' domain.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.database import get_session
from gmao.core import dependencies as deps
from gmao.core.exceptions import ForbiddenError, NotFoundError
from gmao.core.roles import UserRole, has_role
from gmao.domains.usr import models as usr_models

from . import crud as tech_crud
from . import models as tech_models
from . import schemas as tech_schemas


router = APIRouter(
    tags=["Technician Management"],
    responses={404: {"description": "Not found"}},
)


@router.post("/techniciens", response_model=tech_schemas.TechnicienWithUser, status_code=status.HTTP_201_CREATED)
async def create_technicien(
    tech_in: tech_schemas.TechnicienCreate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    return await tech_crud.technicien.create(db, obj_in=tech_in)


@router.get("/techniciens", response_model=List[tech_schemas.TechnicienWithUser])
async def read_techniciens(
    statut: Optional[tech_models.TechnicienStatut] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await tech_crud.technicien.get_multi_with_user(db, statut=statut, skip=skip, limit=limit)


@router.get("/techniciens/available", response_model=List[tech_schemas.TechnicienWithUser])
async def read_available_techniciens(
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await tech_crud.technicien.get_multi_with_user(db, statut=tech_models.TechnicienStatut.DISPONIBLE)


@router.get("/techniciens/{technicien_id}", response_model=tech_schemas.TechnicienWithUser)
async def read_technicien(
    technicien_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    db_tech = await tech_crud.technicien.get_with_user(db, technicien_id)
    if not db_tech:
        raise NotFoundError("Technicien", technicien_id)
    return db_tech


@router.put("/techniciens/{technicien_id}", response_model=tech_schemas.TechnicienRead)
async def update_technicien(
    technicien_id: int,
    tech_in: tech_schemas.TechnicienUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    db_tech = await tech_crud.technicien.get(db, id=technicien_id)
    if not db_tech:
        raise NotFoundError("Technicien", technicien_id)
    return await tech_crud.technicien.update(db, db_obj=db_tech, obj_in=tech_in)


@router.patch("/techniciens/{technicien_id}/status", response_model=tech_schemas.TechnicienRead)
async def update_technicien_status(
    technicien_id: int,
    status_in: tech_schemas.TechnicienStatusUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """
    Self-service availability (e.g. marking an absence). Allowed for the
    technician's own account and for staff.
    """
    db_tech = await tech_crud.technicien.get(db, id=technicien_id)
    if not db_tech:
        raise NotFoundError("Technicien", technicien_id)
    is_staff = has_role(current_user.role_set, UserRole.RECEPTIONIST)
    if db_tech.user_id != current_user.id and not is_staff:
        raise ForbiddenError(UserRole.RECEPTIONIST.value)
    return await tech_crud.technicien.set_status(db, db_obj=db_tech, statut=status_in.statut)


@router.delete("/techniciens/{technicien_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_technicien(
    technicien_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    """Removes the technician profile together with its user account."""
    if not await tech_crud.technicien.get(db, id=technicien_id):
        raise NotFoundError("Technicien", technicien_id)
    await tech_crud.technicien.delete(db, id=technicien_id)
    return None
