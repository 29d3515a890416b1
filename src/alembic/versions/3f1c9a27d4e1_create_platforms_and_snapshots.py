"""create platforms and snapshots

Revision ID: 3f1c9a27d4e1
Revises:
Create Date: 2025-10-02 09:14:27.518304

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel


# revision identifiers, used by Alembic.
revision: str = "3f1c9a27d4e1"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "platforms",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("key", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("network", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("vault_addr", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_platforms_key"), "platforms", ["key"], unique=True)

    op.create_table(
        "snapshots",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("platform_id", sa.Uuid(), nullable=False),
        sa.Column("taken_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("apy_1d", sa.Float(), nullable=True),
        sa.Column("apy_7d", sa.Float(), nullable=True),
        sa.Column("apy_30d", sa.Float(), nullable=True),
        sa.Column("tvl_usd", sa.Float(), nullable=True),
        sa.Column("balance_usd", sa.Float(), nullable=True),
        sa.Column("earnings_to_date", sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(["platform_id"], ["platforms.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_snapshots_platform_id"), "snapshots", ["platform_id"], unique=False
    )
    op.create_index(
        op.f("ix_snapshots_taken_at"), "snapshots", ["taken_at"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_snapshots_taken_at"), table_name="snapshots")
    op.drop_index(op.f("ix_snapshots_platform_id"), table_name="snapshots")
    op.drop_table("snapshots")
    op.drop_index(op.f("ix_platforms_key"), table_name="platforms")
    op.drop_table("platforms")
