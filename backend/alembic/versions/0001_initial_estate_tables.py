"""Initial estate schema: fields, harvests, expenses, collectors, master data.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-19

Run with:
    alembic upgrade head
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    # ── Setup / lookup tables ────────────────────────────────

    op.create_table(
        "fields",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("area_acres", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "activity_master",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("default_rate", sa.Float(), nullable=False, server_default="0"),
    )

    op.create_table(
        "inventory_master",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("unit", sa.String(20), nullable=True),
        sa.Column("unit_price", sa.Float(), nullable=False, server_default="0"),
    )

    # ── Tea collectors ───────────────────────────────────────

    op.create_table(
        "tea_collectors",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("contact", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "collector_rates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "collector_id", sa.Integer(),
            sa.ForeignKey("tea_collectors.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("month", sa.SmallInteger(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("rate", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("collector_id", "month", "year", name="uq_collector_rate_period"),
        sa.CheckConstraint("month BETWEEN 1 AND 12", name="ck_collector_rate_month"),
    )
    op.create_index("ix_collector_rates_collector_id", "collector_rates", ["collector_id"])
    op.create_index("ix_collector_rates_year", "collector_rates", ["year"])

    op.create_table(
        "collector_advances",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "collector_id", sa.Integer(),
            sa.ForeignKey("tea_collectors.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_collector_advances_collector_id", "collector_advances", ["collector_id"])
    op.create_index("ix_collector_advances_date", "collector_advances", ["date"])

    # ── Income & expenses ────────────────────────────────────

    op.create_table(
        "harvests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("field_id", sa.Integer(), sa.ForeignKey("fields.id"), nullable=True),
        sa.Column("crop_type", sa.String(50), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False, server_default="0"),
        sa.Column("rate", sa.Float(), nullable=True),
        sa.Column("collector_id", sa.Integer(), sa.ForeignKey("tea_collectors.id"), nullable=True),
        sa.Column("total_amount", sa.Float(), nullable=True, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_harvests_date", "harvests", ["date"])
    op.create_index("ix_harvests_field_id", "harvests", ["field_id"])
    op.create_index("ix_harvests_crop_type", "harvests", ["crop_type"])
    op.create_index("ix_harvests_collector_id", "harvests", ["collector_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("field_id", sa.Integer(), sa.ForeignKey("fields.id"), nullable=True),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("quantity", sa.Float(), nullable=False, server_default="1"),
        sa.Column("hours_worked", sa.Float(), nullable=True),
        sa.Column("rate", sa.Float(), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_transactions_date", "transactions", ["date"])
    op.create_index("ix_transactions_field_id", "transactions", ["field_id"])
    op.create_index("ix_transactions_type", "transactions", ["type"])


def downgrade() -> None:
    op.drop_table("transactions")
    op.drop_table("harvests")
    op.drop_table("collector_advances")
    op.drop_table("collector_rates")
    op.drop_table("tea_collectors")
    op.drop_table("inventory_master")
    op.drop_table("activity_master")
    op.drop_table("fields")
