# gmao/domains/rpt/crud.py

from datetime import date, datetime, time, UTC
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.domains.asset import models as asset_models
from gmao.domains.inv import crud as inv_crud
from gmao.domains.tech import models as tech_models
from gmao.domains.wo import models as wo_models
from . import schemas


async def _count_by(db: AsyncSession, column) -> Dict[str, int]:
    result = await db.execute(select(column, func.count()).group_by(column))
    return {value: count for value, count in result.all()}


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


async def get_dashboard_stats(db: AsyncSession) -> schemas.DashboardStats:
    """Counts and cost totals shown on the dashboard."""
    machines_par_statut = await _count_by(db, asset_models.Machine.statut)
    techniciens_par_statut = await _count_by(db, tech_models.Technicien.statut)
    work_orders_par_statut = await _count_by(db, wo_models.WorkOrder.status)

    terminal = [s.value for s in wo_models.TERMINAL_STATUSES]
    urgents = (await db.execute(
        select(func.count()).select_from(wo_models.WorkOrder).where(
            wo_models.WorkOrder.status.not_in(terminal),
            wo_models.WorkOrder.priority == wo_models.WorkOrderPriority.CRITICAL.value,
        )
    )).scalar_one()

    labor_cost, parts_cost = (await db.execute(
        select(
            func.coalesce(func.sum(wo_models.WorkOrder.labor_cost), 0),
            func.coalesce(func.sum(wo_models.WorkOrder.parts_cost), 0),
        ).where(wo_models.WorkOrder.status == wo_models.WorkOrderStatus.COMPLETED.value)
    )).one()

    return schemas.DashboardStats(
        machines=schemas.MachineStats(
            total=sum(machines_par_statut.values()),
            par_statut=machines_par_statut,
        ),
        techniciens=schemas.TechnicienStats(
            total=sum(techniciens_par_statut.values()),
            disponibles=techniciens_par_statut.get(tech_models.TechnicienStatut.DISPONIBLE.value, 0),
        ),
        work_orders=schemas.WorkOrderStats(
            total=sum(work_orders_par_statut.values()),
            ouverts=sum(count for value, count in work_orders_par_statut.items() if value not in terminal),
            urgents=urgents,
            par_statut=work_orders_par_statut,
        ),
        pieces_stock_bas=await inv_crud.piece.count_low_stock(db),
        couts_completes=schemas.CostStats(
            labor_cost=_money(labor_cost),
            parts_cost=_money(parts_cost),
            total=_money(labor_cost) + _money(parts_cost),
        ),
    )


CHART_MONTHS = 12
TOP_MACHINES = 5

STATUS_LABELS: Dict[str, str] = {
    wo_models.WorkOrderStatus.REPORTED.value: "Signalé",
    wo_models.WorkOrderStatus.ASSIGNED.value: "Assigné",
    wo_models.WorkOrderStatus.IN_PROGRESS.value: "En cours",
    wo_models.WorkOrderStatus.PENDING_PARTS.value: "Attente pièces",
    wo_models.WorkOrderStatus.COMPLETED.value: "Terminé",
    wo_models.WorkOrderStatus.CANCELLED.value: "Annulé",
}


def _month_starts(today: date, count: int) -> List[date]:
    """First day of the `count` months ending with the month of `today`, oldest first."""
    year, month = today.year, today.month
    starts = []
    for _ in range(count):
        starts.append(date(year, month, 1))
        year, month = (year - 1, 12) if month == 1 else (year, month - 1)
    return starts[::-1]


async def get_dashboard_charts(db: AsyncSession, *, today: Optional[date] = None) -> schemas.DashboardCharts:
    today = today or datetime.now(UTC).date()
    months = _month_starts(today, CHART_MONTHS)
    window_start = datetime.combine(months[0], time.min, tzinfo=UTC)

    par_mois = {start.strftime("%Y-%m"): 0 for start in months}
    created = await db.execute(
        select(wo_models.WorkOrder.created_at).where(wo_models.WorkOrder.created_at >= window_start)
    )
    for (created_at,) in created.all():
        key = created_at.strftime("%Y-%m")
        if key in par_mois:
            par_mois[key] += 1

    par_type = await _count_by(db, wo_models.WorkOrder.type)
    par_statut = await _count_by(db, wo_models.WorkOrder.status)

    interventions = func.count(wo_models.WorkOrder.id).label("interventions")
    top = await db.execute(
        select(asset_models.Machine.id, asset_models.Machine.reference, asset_models.Machine.modele, interventions)
        .join(wo_models.WorkOrder, wo_models.WorkOrder.machine_id == asset_models.Machine.id)
        .group_by(asset_models.Machine.id, asset_models.Machine.reference, asset_models.Machine.modele)
        .order_by(interventions.desc(), asset_models.Machine.reference)
        .limit(TOP_MACHINES)
    )

    return schemas.DashboardCharts(
        par_mois=[schemas.MonthlyCount(mois=mois, count=count) for mois, count in par_mois.items()],
        par_type=[
            schemas.TypeCount(type=t.value, label=t.value.capitalize(), count=par_type.get(t.value, 0))
            for t in wo_models.WorkOrderType
        ],
        par_statut=[
            schemas.StatusCount(status=s.value, label=STATUS_LABELS[s.value], count=par_statut.get(s.value, 0))
            for s in wo_models.WorkOrderStatus
        ],
        top_machines=[
            schemas.TopMachine(machine_id=machine_id, reference=reference, modele=modele, interventions=count)
            for machine_id, reference, modele, count in top.all()
        ],
    )
