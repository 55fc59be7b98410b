"""Create stops, routes, route_legs and stop_times

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:12:40.118204
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "stops",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("bench", sa.String(50), nullable=True),
        sa.Column("shelter", sa.String(50), nullable=True),
        sa.Column("wheelchair_access", sa.Boolean(), nullable=True),
    )

    op.create_table(
        "routes",
        sa.Column("route_id", sa.String(50), primary_key=True),
        sa.Column("bus_number", sa.String(40), nullable=False),
        sa.Column("direction", sa.Integer(), nullable=False),
        sa.Column("route_short_name", sa.String(100), nullable=False),
        sa.Column("route_long_name", sa.String(255), nullable=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("idx_route_direction", "routes", ["direction"])
    op.create_index("idx_route_short_name", "routes", ["route_short_name"])

    # Deleting a route removes its legs, deleting a leg removes its stop-times
    op.create_table(
        "route_legs",
        sa.Column("leg_id", sa.String(80), primary_key=True),
        sa.Column(
            "route_id", sa.String(50),
            sa.ForeignKey("routes.route_id", ondelete="CASCADE"), nullable=False,
        ),
    )
    op.create_index("ix_route_legs_route_id", "route_legs", ["route_id"])

    op.create_table(
        "stop_times",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "leg_id", sa.String(80),
            sa.ForeignKey("route_legs.leg_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("stop_id", sa.Integer(), sa.ForeignKey("stops.id"), nullable=False),
        sa.Column("stop_sequence", sa.Integer(), nullable=False),
    )
    op.create_index("ix_stop_times_leg_id", "stop_times", ["leg_id"])
    op.create_index("ix_stop_times_stop_id", "stop_times", ["stop_id"])


def downgrade():
    op.drop_index("ix_stop_times_stop_id", table_name="stop_times")
    op.drop_index("ix_stop_times_leg_id", table_name="stop_times")
    op.drop_table("stop_times")

    op.drop_index("ix_route_legs_route_id", table_name="route_legs")
    op.drop_table("route_legs")

    op.drop_index("idx_route_short_name", table_name="routes")
    op.drop_index("idx_route_direction", table_name="routes")
    op.drop_table("routes")

    op.drop_table("stops")
