# gmao/domains/models/__init__.py

"""
Imports every table model of every domain in one place so that
SQLModel.metadata knows all tables and relationships resolve by name.
"""

# usr (User)
from gmao.domains.usr.models import User

# asset (Client, Machine)
from gmao.domains.asset.models import Client, Machine

# tech (Technicien)
from gmao.domains.tech.models import Technicien

# inv (Fournisseur, Piece, MouvementStock)
from gmao.domains.inv.models import Fournisseur, Piece, MouvementStock

# wo (WorkOrder, PieceIntervention)
from gmao.domains.wo.models import WorkOrder, PieceIntervention

__all__ = [
    "User",
    "Client",
    "Machine",
    "Technicien",
    "Fournisseur",
    "Piece",
    "MouvementStock",
    "WorkOrder",
    "PieceIntervention",
]
