"""initial schema

Revision ID: 0001
Revises:
Create Date: 2024-03-01 09:00:00

"""
from typing import Sequence, Union

from alembic import op
from sqlmodel import SQLModel

from gmao.domains import models  # noqa: F401

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Baseline: every table as declared on the models at this revision.
    # Later changes go into autogenerated revisions.
    SQLModel.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    SQLModel.metadata.drop_all(bind=op.get_bind())
