"""init stations and readings

Revision ID: 00001
Revises: 
Create Date: 2026-10-18 09:00:00
"""

from alembic import op
import sqlalchemy as sa


revision = "00001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "stations",
        sa.Column("station_id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("name", sa.Text(), nullable=False),
    )

    op.create_table(
        "readings",
        sa.Column("source_id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("station_id", sa.Integer(), sa.ForeignKey("stations.station_id"), nullable=False),
        sa.Column("speed_kmh", sa.Float(), nullable=True),
        sa.Column("direction_deg", sa.Float(), nullable=True),
        sa.Column("measured_at", sa.DateTime(timezone=False), nullable=False),
        sa.Column("inserted_at", sa.DateTime(timezone=False), nullable=False),
    )
    op.create_index("ix_readings_station_measured_at", "readings", ["station_id", "measured_at"])
    op.create_index("ix_readings_measured_at", "readings", ["measured_at"])


def downgrade() -> None:
    op.drop_index("ix_readings_measured_at", table_name="readings")
    op.drop_index("ix_readings_station_measured_at", table_name="readings")
    op.drop_table("readings")
    op.drop_table("stations")
