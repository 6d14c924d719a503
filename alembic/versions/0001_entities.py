"""add entities document table

Revision ID: 0001_entities
Revises:
Create Date: 2026-10-19 10:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import context, op


revision = "0001_entities"
down_revision = None
branch_labels = None
depends_on = None


def _is_offline() -> bool:
    try:
        return bool(context.is_offline_mode())
    except Exception:
        return False


def _inspector():
    return sa.inspect(op.get_bind())


def _has_table(name: str) -> bool:
    if _is_offline():
        return False
    return bool(_inspector().has_table(name))


def _has_index(table: str, index_name: str) -> bool:
    if _is_offline() or not _has_table(table):
        return False
    names = {str(i.get("name") or "") for i in _inspector().get_indexes(table)}
    return index_name in names


def _create_index(name: str, table: str, cols: list) -> None:
    if not _has_index(table, name):
        op.create_index(name, table, cols)


def upgrade() -> None:
    if not _has_table("entities"):
        op.create_table(
            "entities",
            sa.Column("collection", sa.String(length=64), primary_key=True),
            sa.Column("id", sa.String(length=64), primary_key=True),
            sa.Column("owner_id", sa.String(length=128), nullable=True),
            sa.Column("seq", sa.BigInteger(), nullable=False, server_default="0"),
            sa.Column("data_json", sa.Text(), nullable=False, server_default="{}"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        )

    _create_index("ix_entities_owner_id", "entities", ["owner_id"])
    _create_index("ix_entities_updated_at", "entities", ["updated_at"])
    _create_index("ix_entities_collection_owner", "entities", ["collection", "owner_id"])
    _create_index("ix_entities_collection_created", "entities", ["collection", "created_at"])


def downgrade() -> None:
    if not _has_table("entities"):
        return

    for idx in [
        "ix_entities_collection_created",
        "ix_entities_collection_owner",
        "ix_entities_updated_at",
        "ix_entities_owner_id",
    ]:
        if _has_index("entities", idx):
            op.drop_index(idx, table_name="entities")
    op.drop_table("entities")
