# gmao/domains/rpt/routers.py

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.database import get_session
from gmao.core import dependencies as deps
from gmao.domains.usr import models as usr_models

from . import crud as rpt_crud
from . import schemas as rpt_schemas


router = APIRouter(
    tags=["Reporting"],
    responses={404: {"description": "Not found"}},
)


@router.get("/dashboard/stats", response_model=rpt_schemas.DashboardStats)
async def read_dashboard_stats(
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await rpt_crud.get_dashboard_stats(db)


@router.get("/dashboard/charts", response_model=rpt_schemas.DashboardCharts)
async def read_dashboard_charts(
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """Work orders per month, type and status, and the most serviced machines."""
    return await rpt_crud.get_dashboard_charts(db)
