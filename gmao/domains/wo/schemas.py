# gmao/domains/wo/schemas.py

"""
Request and response schemas of the 'wo' domain.
"""

from decimal import Decimal
from typing import Optional, List
from datetime import date, datetime
from sqlmodel import SQLModel, Field

from gmao.domains.asset.schemas import ClientRead, MachineWithClient
from gmao.domains.tech.schemas import TechnicienWithUser
from .models import (
    WorkOrderOrigin,
    WorkOrderPriority,
    WorkOrderSeverity,
    WorkOrderStatus,
    WorkOrderType,
)


# =============================================================================
# 1. Work order commands
# =============================================================================
class WorkOrderCreate(SQLModel):
    machine_id: int
    description: str
    type: WorkOrderType = WorkOrderType.CORRECTIVE
    origin: WorkOrderOrigin = WorkOrderOrigin.BREAKDOWN
    priority: WorkOrderPriority = WorkOrderPriority.MEDIUM
    severity: Optional[WorkOrderSeverity] = None
    scheduled_date: Optional[date] = None
    estimated_duration: Optional[int] = Field(None, ge=0, description="Minutes")


class WorkOrderUpdate(SQLModel):
    """Descriptive fields only; status, assignment and costs have their own commands."""
    priority: Optional[WorkOrderPriority] = None
    severity: Optional[WorkOrderSeverity] = None
    description: Optional[str] = None
    scheduled_date: Optional[date] = None
    estimated_duration: Optional[int] = Field(None, ge=0)


class WorkOrderAssign(SQLModel):
    technicien_id: int


class WorkOrderStatusUpdate(SQLModel):
    status: WorkOrderStatus
    resolution: Optional[str] = None
    labor_cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    parts_cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)


class WorkOrderSignature(SQLModel):
    signature: str = Field(..., min_length=1, description="Signature image as a data URL or base64 text")
    signer_name: Optional[str] = Field(None, max_length=150)


class PartAttach(SQLModel):
    piece_id: int
    quantite: int = Field(..., gt=0)


# =============================================================================
# 2. Work order reads
# =============================================================================
class WorkOrderRead(SQLModel):
    id: int
    machine_id: int
    technicien_id: Optional[int] = None
    reported_by_id: Optional[int] = None
    type: WorkOrderType
    origin: WorkOrderOrigin
    priority: WorkOrderPriority
    severity: Optional[WorkOrderSeverity] = None
    status: WorkOrderStatus
    description: str
    resolution: Optional[str] = None
    images: List[str] = []
    date_reported: datetime
    scheduled_date: Optional[date] = None
    date_started: Optional[datetime] = None
    date_completed: Optional[datetime] = None
    estimated_duration: Optional[int] = None
    actual_duration: Optional[int] = None
    labor_cost: Decimal
    parts_cost: Decimal
    total_cost: Decimal
    signature_client_name: Optional[str] = None
    signature_client_at: Optional[datetime] = None
    confirmed_by_tech: bool
    confirmed_by_tech_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PieceSummary(SQLModel):
    id: int
    reference: str
    nom: str


class PieceInterventionRead(SQLModel):
    id: int
    work_order_id: int
    piece_id: int
    quantite: int
    prix_unitaire_applique: Decimal
    line_total: Decimal
    date_utilisation: datetime
    piece: Optional[PieceSummary] = None


class WorkOrderDetail(WorkOrderRead):
    signature_client: Optional[str] = None
    machine: Optional[MachineWithClient] = None
    technicien: Optional[TechnicienWithUser] = None
    pieces_utilisees: List[PieceInterventionRead] = []


class WorkOrderPage(SQLModel):
    items: List[WorkOrderRead]
    total: int
    page: int
    total_pages: int


class PartAttachResult(SQLModel):
    usage: PieceInterventionRead
    parts_cost: Decimal
    quantite_stock: int


# =============================================================================
# 3. Invoice snapshot
# =============================================================================
class InvoiceLine(SQLModel):
    reference: str
    designation: str
    quantite: int
    prix_unitaire: Decimal
    total: Decimal


class InvoiceParty(SQLModel):
    nom: str
    detail: Optional[str] = None


class Invoice(SQLModel):
    """Read-only snapshot handed to an external document renderer."""
    numero: str
    filename: str
    work_order_id: int
    date_emission: datetime
    date_completed: Optional[datetime] = None
    client: Optional[ClientRead] = None
    machine: InvoiceParty
    technicien: Optional[InvoiceParty] = None
    description: str
    resolution: Optional[str] = None
    actual_duration: Optional[int] = None
    lignes: List[InvoiceLine]
    labor_cost: Decimal
    parts_cost: Decimal
    total: Decimal
    signature_client_name: Optional[str] = None
    signature_client_at: Optional[datetime] = None
