# gmao/domains/wo/models.py

"""
ORM models of the 'wo' domain (work_orders, pieces_interventions tables)
and the work order state table.
"""

import enum
from decimal import Decimal
from typing import Dict, FrozenSet, List, Optional, TYPE_CHECKING
from datetime import date, datetime, UTC
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import JSON, Boolean, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP

if TYPE_CHECKING:
    from gmao.domains.asset.models import Machine
    from gmao.domains.inv.models import Piece
    from gmao.domains.tech.models import Technicien


# =============================================================================
# Enumerations
# =============================================================================
class WorkOrderType(str, enum.Enum):
    CORRECTIVE = "corrective"
    PREVENTIVE = "preventive"
    INSPECTION = "inspection"


class WorkOrderOrigin(str, enum.Enum):
    BREAKDOWN = "breakdown"
    SCHEDULED = "scheduled"
    REQUEST = "request"


class WorkOrderPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class WorkOrderSeverity(str, enum.Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CRITICAL = "critical"


class WorkOrderStatus(str, enum.Enum):
    REPORTED = "reported"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    PENDING_PARTS = "pending_parts"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Every legal edge of the lifecycle. Anything absent is rejected.
STATUS_TRANSITIONS: Dict[WorkOrderStatus, List[WorkOrderStatus]] = {
    WorkOrderStatus.REPORTED: [WorkOrderStatus.ASSIGNED, WorkOrderStatus.CANCELLED],
    WorkOrderStatus.ASSIGNED: [WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.CANCELLED],
    WorkOrderStatus.IN_PROGRESS: [
        WorkOrderStatus.PENDING_PARTS, WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED
    ],
    WorkOrderStatus.PENDING_PARTS: [WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.CANCELLED],
    WorkOrderStatus.COMPLETED: [],
    WorkOrderStatus.CANCELLED: [],
}

TERMINAL_STATUSES: FrozenSet[WorkOrderStatus] = frozenset(
    {WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED}
)

# Statuses that keep a machine under repair.
MACHINE_ACTIVE_STATUSES: FrozenSet[WorkOrderStatus] = frozenset(
    {WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.PENDING_PARTS}
)

# Statuses that keep the assigned technician busy.
TECHNICIAN_ACTIVE_STATUSES: FrozenSet[WorkOrderStatus] = frozenset(
    {WorkOrderStatus.ASSIGNED, WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.PENDING_PARTS}
)


def allowed_transitions(current: WorkOrderStatus) -> List[WorkOrderStatus]:
    return list(STATUS_TRANSITIONS[WorkOrderStatus(current)])


def can_transition(current: WorkOrderStatus, target: WorkOrderStatus) -> bool:
    return WorkOrderStatus(target) in STATUS_TRANSITIONS[WorkOrderStatus(current)]


# =============================================================================
# 1. work_orders table model
# =============================================================================
class WorkOrderBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    machine_id: int = Field(
        sa_column=Column(Integer, ForeignKey("machines.id", onupdate="CASCADE", ondelete="RESTRICT"), nullable=False),
    )
    technicien_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("techniciens.id", onupdate="CASCADE", ondelete="SET NULL")),
    )
    reported_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id", onupdate="CASCADE", ondelete="SET NULL")),
        description="User who reported the work"
    )

    type: WorkOrderType = Field(
        default=WorkOrderType.CORRECTIVE.value, sa_column=Column(String(20), nullable=False)
    )
    origin: WorkOrderOrigin = Field(
        default=WorkOrderOrigin.BREAKDOWN.value, sa_column=Column(String(20), nullable=False)
    )
    priority: WorkOrderPriority = Field(
        default=WorkOrderPriority.MEDIUM.value, sa_column=Column(String(20), nullable=False)
    )
    severity: Optional[WorkOrderSeverity] = Field(default=None, sa_column=Column(String(20)))
    status: WorkOrderStatus = Field(
        default=WorkOrderStatus.REPORTED.value,
        sa_column=Column(String(20), nullable=False, index=True),
    )

    description: str = Field(sa_column=Column(Text, nullable=False))
    resolution: Optional[str] = Field(default=None, sa_column=Column(Text))
    images: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False),
        description="Ordered image URLs"
    )

    date_reported: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False),
    )
    scheduled_date: Optional[date] = Field(default=None)
    date_started: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    date_completed: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    estimated_duration: Optional[int] = Field(default=None, description="Minutes")
    actual_duration: Optional[int] = Field(default=None, description="Minutes")

    labor_cost: Decimal = Field(
        default=Decimal("0"), sa_column=Column(Numeric(10, 2), nullable=False, server_default="0")
    )
    parts_cost: Decimal = Field(
        default=Decimal("0"), sa_column=Column(Numeric(10, 2), nullable=False, server_default="0"),
        description="Sum of quantite x prix_unitaire_applique over the parts usages"
    )

    signature_client: Optional[str] = Field(default=None, sa_column=Column(Text))
    signature_client_name: Optional[str] = Field(default=None, max_length=150)
    signature_client_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    confirmed_by_tech: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False, server_default="0")
    )
    confirmed_by_tech_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class WorkOrder(WorkOrderBase, table=True):
    __tablename__ = "work_orders"

    machine: Optional["Machine"] = Relationship(back_populates="work_orders")
    technicien: Optional["Technicien"] = Relationship(back_populates="work_orders")
    pieces_utilisees: List["PieceIntervention"] = Relationship(
        back_populates="work_order",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "PieceIntervention.id"},
    )

    @property
    def total_cost(self) -> Decimal:
        return (self.labor_cost or Decimal("0")) + (self.parts_cost or Decimal("0"))


# =============================================================================
# 2. pieces_interventions table model (parts usage)
# =============================================================================
class PieceInterventionBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    work_order_id: int = Field(
        sa_column=Column(Integer, ForeignKey("work_orders.id", onupdate="CASCADE", ondelete="CASCADE"), nullable=False),
    )
    piece_id: int = Field(
        sa_column=Column(Integer, ForeignKey("pieces.id", onupdate="CASCADE", ondelete="RESTRICT"), nullable=False),
    )
    quantite: int = Field(sa_column=Column(Integer, nullable=False))
    prix_unitaire_applique: Decimal = Field(
        sa_column=Column(Numeric(10, 2), nullable=False),
        description="Unit price frozen when the part was used"
    )
    date_utilisation: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False),
    )


class PieceIntervention(PieceInterventionBase, table=True):
    __tablename__ = "pieces_interventions"

    work_order: Optional["WorkOrder"] = Relationship(back_populates="pieces_utilisees")
    piece: Optional["Piece"] = Relationship(back_populates="usages")

    @property
    def line_total(self) -> Decimal:
        return self.prix_unitaire_applique * self.quantite
