"""cars and owner assignments

Revision ID: 0002_cars_schema
Revises: 0001_identity_schema
Create Date: 2026-10-12
"""

from alembic import op
import sqlalchemy as sa

revision = "0002_cars_schema"
down_revision = "0001_identity_schema"
branch_labels = None
depends_on = None


def _auditable_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_by", sa.String(length=64), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.String(length=64), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
    ]


def upgrade() -> None:
    op.create_table(
        "cars",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("make", sa.String(length=100), nullable=False),
        sa.Column("model", sa.String(length=100), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("vin", sa.String(length=17), nullable=False),
        *_auditable_columns(),
    )
    op.create_index("ix_cars_vin", "cars", ["vin"], unique=True)

    op.create_table(
        "owner_cars",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("car_id", sa.Integer(), sa.ForeignKey("cars.id", ondelete="CASCADE"), nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("ownership_type", sa.String(length=50), nullable=False, server_default="Owner"),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        *_auditable_columns(),
        sa.UniqueConstraint("car_id", "owner_id", name="uq_owner_cars_car_owner"),
    )
    op.create_index("ix_owner_cars_car_id", "owner_cars", ["car_id"])
    op.create_index("ix_owner_cars_owner_id", "owner_cars", ["owner_id"])


def downgrade() -> None:
    op.drop_index("ix_owner_cars_owner_id", table_name="owner_cars")
    op.drop_index("ix_owner_cars_car_id", table_name="owner_cars")
    op.drop_table("owner_cars")
    op.drop_index("ix_cars_vin", table_name="cars")
    op.drop_table("cars")
