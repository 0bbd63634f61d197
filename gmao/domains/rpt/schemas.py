# gmao/domains/rpt/schemas.py

from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class MachineStats(BaseModel):
    total: int = 0
    par_statut: Dict[str, int] = Field(default_factory=dict, description="Machine count per statut")


class TechnicienStats(BaseModel):
    total: int = 0
    disponibles: int = 0


class WorkOrderStats(BaseModel):
    """`ouverts` counts every non-terminal order; `urgents` the open critical ones."""
    total: int = 0
    ouverts: int = 0
    urgents: int = 0
    par_statut: Dict[str, int] = Field(default_factory=dict)


class CostStats(BaseModel):
    labor_cost: Decimal = Decimal("0.00")
    parts_cost: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")


class DashboardStats(BaseModel):
    machines: MachineStats
    techniciens: TechnicienStats
    work_orders: WorkOrderStats
    pieces_stock_bas: int = 0
    couts_completes: CostStats


# Chart series
class MonthlyCount(BaseModel):
    mois: str = Field(..., description="YYYY-MM")
    count: int = 0


class TypeCount(BaseModel):
    type: str
    label: str
    count: int = 0


class StatusCount(BaseModel):
    status: str
    label: str
    count: int = 0


class TopMachine(BaseModel):
    machine_id: int
    reference: str
    modele: Optional[str] = None
    interventions: int = 0


class DashboardCharts(BaseModel):
    """
    `par_mois` always holds the last twelve months, oldest first, including
    months without any work order.
    """
    par_mois: List[MonthlyCount] = Field(default_factory=list)
    par_type: List[TypeCount] = Field(default_factory=list)
    par_statut: List[StatusCount] = Field(default_factory=list)
    top_machines: List[TopMachine] = Field(default_factory=list)
