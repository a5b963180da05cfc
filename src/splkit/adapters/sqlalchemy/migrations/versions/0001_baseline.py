"""Baseline labeling schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op

from splkit.adapters.sqlalchemy.mappings import mapper_registry, start_mappers

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    start_mappers()
    mapper_registry.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    start_mappers()
    mapper_registry.metadata.drop_all(bind=op.get_bind())
