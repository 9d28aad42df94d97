"""Initial schema for fire dispatch.

Revision ID: e1a7c4b9d230
Revises: None
Create Date: 2024-01-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "e1a7c4b9d230"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "stations",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("call_sign", sa.String(length=50), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("location_url", sa.String(length=500), nullable=True),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lng", sa.Float(), nullable=True),
        sa.Column("region", sa.String(length=100), nullable=True),
        sa.Column("phone_number", sa.String(length=50), nullable=True),
        sa.Column("place_id", sa.String(length=255), nullable=True),
        sa.Column(
            "status",
            sa.String(length=30),
            server_default=sa.text("'in commission'"),
            nullable=False,
        ),
        sa.Column("has_active_alert", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("has_active_incident", sa.Boolean(), server_default=sa.false(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("call_sign"),
        sa.UniqueConstraint("place_id"),
        if_not_exists=True,
    )
    op.create_index("ix_stations_region", "stations", ["region"], if_not_exists=True)
    op.create_index("idx_stations_coordinates", "stations", ["lat", "lng"], if_not_exists=True)

    op.create_table(
        "departments",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "station_id",
            sa.Uuid(),
            sa.ForeignKey("stations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _timestamp("created_at"),
        if_not_exists=True,
    )
    op.create_index("ix_departments_station_id", "departments", ["station_id"], if_not_exists=True)
    op.create_index(
        "uq_departments_station_name",
        "departments",
        ["station_id", "name"],
        unique=True,
        if_not_exists=True,
    )

    op.create_table(
        "units",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("color", sa.String(length=20), server_default=sa.text("'#000000'"), nullable=False),
        sa.Column(
            "department_id",
            sa.Uuid(),
            sa.ForeignKey("departments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        if_not_exists=True,
    )
    op.create_index("ix_units_department_id", "units", ["department_id"], if_not_exists=True)
    op.create_index(
        "uq_units_department_name", "units", ["department_id", "name"], unique=True, if_not_exists=True
    )
    op.create_index(
        "idx_units_department_active", "units", ["department_id", "is_active"], if_not_exists=True
    )
    op.create_index(
        "idx_units_active_since", "units", ["is_active", "activated_at"], if_not_exists=True
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        _timestamp("created_at"),
        sa.UniqueConstraint("email"),
        if_not_exists=True,
    )

    op.create_table(
        "fire_personnel",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("rank", sa.String(length=100), nullable=True),
        sa.Column("role", sa.String(length=100), nullable=True),
        sa.Column("station_id", sa.Uuid(), sa.ForeignKey("stations.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "department_id", sa.Uuid(), sa.ForeignKey("departments.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("unit_id", sa.Uuid(), sa.ForeignKey("units.id", ondelete="SET NULL"), nullable=True),
        _timestamp("created_at"),
        if_not_exists=True,
    )

    op.create_table(
        "emergency_alerts",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("incident_type", sa.String(length=50), nullable=False),
        sa.Column("incident_name", sa.String(length=255), nullable=False),
        sa.Column("priority", sa.String(length=20), server_default=sa.text("'high'"), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("estimated_casualties", sa.Integer(), nullable=True),
        sa.Column("estimated_damage", sa.String(length=255), nullable=True),
        sa.Column("location_name", sa.String(length=255), nullable=True),
        sa.Column("location_url", sa.String(length=500), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("station_id", sa.Uuid(), sa.ForeignKey("stations.id"), nullable=False),
        sa.Column("department_id", sa.Uuid(), sa.ForeignKey("departments.id"), nullable=True),
        sa.Column("unit_id", sa.Uuid(), sa.ForeignKey("units.id"), nullable=True),
        sa.Column("reporter_id", sa.Uuid(), nullable=False),
        sa.Column("reporter_type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), server_default=sa.text("'active'"), nullable=False),
        sa.Column("dispatched", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("declined", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("declined_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decline_reason", sa.Text(), nullable=True),
        sa.Column("referred", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("referred_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("referred_to_station_id", sa.Uuid(), sa.ForeignKey("stations.id"), nullable=True),
        sa.Column("refer_reason", sa.Text(), nullable=True),
        _timestamp("reported_at"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        if_not_exists=True,
    )
    op.create_index("ix_emergency_alerts_station_id", "emergency_alerts", ["station_id"], if_not_exists=True)
    op.create_index("ix_emergency_alerts_reporter_id", "emergency_alerts", ["reporter_id"], if_not_exists=True)
    op.create_index(
        "idx_alerts_station_status", "emergency_alerts", ["station_id", "status"], if_not_exists=True
    )
    op.create_index(
        "idx_alerts_reported",
        "emergency_alerts",
        [sa.text("reported_at DESC")],
        if_not_exists=True,
    )

    op.create_table(
        "incidents",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "alert_id",
            sa.Uuid(),
            sa.ForeignKey("emergency_alerts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("station_id", sa.Uuid(), sa.ForeignKey("stations.id"), nullable=False),
        sa.Column("department_id", sa.Uuid(), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("unit_id", sa.Uuid(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("status", sa.String(length=20), server_default=sa.text("'pending'"), nullable=False),
        sa.Column("turnout_slip", sa.JSON(), nullable=True),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("arrived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("referred", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("referred_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("referred_to_station_id", sa.Uuid(), sa.ForeignKey("stations.id"), nullable=True),
        sa.Column("refer_reason", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        if_not_exists=True,
    )
    op.create_index("ix_incidents_alert_id", "incidents", ["alert_id"], if_not_exists=True)
    op.create_index("ix_incidents_department_id", "incidents", ["department_id"], if_not_exists=True)
    op.create_index("ix_incidents_unit_id", "incidents", ["unit_id"], if_not_exists=True)
    op.create_index(
        "idx_incidents_station_status", "incidents", ["station_id", "status"], if_not_exists=True
    )
    op.create_index(
        "idx_incidents_created",
        "incidents",
        [sa.text("created_at DESC")],
        if_not_exists=True,
    )


def downgrade() -> None:
    op.drop_table("incidents", if_exists=True)
    op.drop_table("emergency_alerts", if_exists=True)
    op.drop_table("fire_personnel", if_exists=True)
    op.drop_table("users", if_exists=True)
    op.drop_table("units", if_exists=True)
    op.drop_table("departments", if_exists=True)
    op.drop_table("stations", if_exists=True)
