"""initial_schema

Revision ID: 3c9e1f7a2b40
Revises:
Create Date: 2026-03-02 00:00:00.000000

Creates the Trayline schema: users, catalog (customer types, recipes,
products, price variations), orders and recurring orders, planting
schedules, crops, consumables, activity log, user preferences and task runs.
Requires the uuid-ossp extension (created here if missing).
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3c9e1f7a2b40"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# ── Enum type names (PostgreSQL CREATE TYPE) ────────────────────────────────
ENUM_USER_ROLE = postgresql.ENUM(
    "admin", "manager", "employee", "customer", name="user_role", create_type=False
)
ENUM_PRICING_TYPE = postgresql.ENUM(
    "retail", "wholesale", "bulk", "special", "custom", name="pricing_type", create_type=False
)
ENUM_ORDER_STATUS = postgresql.ENUM(
    "draft",
    "pending",
    "confirmed",
    "in_production",
    "ready",
    "delivered",
    "cancelled",
    name="order_status",
    create_type=False,
)
ENUM_RECURRENCE_FREQUENCY = postgresql.ENUM(
    "weekly", "biweekly", "monthly", "custom", name="recurrence_frequency", create_type=False
)
ENUM_INTERVAL_UNIT = postgresql.ENUM(
    "days", "weeks", "months", name="interval_unit", create_type=False
)
ENUM_PLANTING_STATUS = postgresql.ENUM(
    "pending",
    "partially_planted",
    "fully_planted",
    "completed",
    name="planting_status",
    create_type=False,
)
ENUM_CROP_STAGE = postgresql.ENUM(
    "soaking", "germination", "blackout", "light", "harvested", name="crop_stage", create_type=False
)
ENUM_CONSUMABLE_TYPE = postgresql.ENUM(
    "seed", "soil", "packaging", "label", "other", name="consumable_type", create_type=False
)
ENUM_TASK_STATUS = postgresql.ENUM(
    "queued", "running", "succeeded", "failed", name="task_status", create_type=False
)

ALL_ENUMS = (
    ENUM_USER_ROLE,
    ENUM_PRICING_TYPE,
    ENUM_ORDER_STATUS,
    ENUM_RECURRENCE_FREQUENCY,
    ENUM_INTERVAL_UNIT,
    ENUM_PLANTING_STATUS,
    ENUM_CROP_STAGE,
    ENUM_CONSUMABLE_TYPE,
    ENUM_TASK_STATUS,
)


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("uuid_generate_v4()"),
        nullable=False,
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _flag(name: str, default: bool) -> sa.Column:
    return sa.Column(
        name,
        sa.Boolean(),
        server_default=sa.text("true" if default else "false"),
        nullable=False,
    )


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── 1. Create enum types ────────────────────────────────────────────
    for enum_type in ALL_ENUMS:
        enum_type.create(op.get_bind(), checkfirst=True)

    # ── 2. Users & catalog ──────────────────────────────────────────────

    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(128), nullable=False),
        sa.Column(
            "role", ENUM_USER_ROLE, server_default=sa.text("'employee'"), nullable=False
        ),
        sa.Column("customer_type", sa.String(50), nullable=True),
        _flag("is_active", True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "customer_types",
        _uuid_pk(),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _flag("is_active", True),
        sa.Column("sort_order", sa.Integer(), server_default=sa.text("0"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )

    op.create_table(
        "recipes",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("germination_days", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("blackout_days", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("light_days", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("days_to_maturity", sa.Float(), nullable=True),
        sa.Column("seed_soak_hours", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("expected_yield_grams", sa.Float(), nullable=True),
        sa.Column("seed_density_grams_per_tray", sa.Float(), nullable=True),
        _flag("is_active", True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "products",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("wholesale_discount_percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("recipe_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("expected_yield_grams", sa.Float(), nullable=True),
        _flag("is_active", True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["recipe_id"], ["recipes.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "price_variations",
        _uuid_pk(),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("template_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("packaging_type", sa.String(100), nullable=True),
        sa.Column(
            "pricing_type", ENUM_PRICING_TYPE, server_default=sa.text("'retail'"), nullable=False
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(100), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("pricing_unit", sa.String(20), server_default=sa.text("'each'"), nullable=False),
        sa.Column("fill_weight_grams", sa.Numeric(10, 2), nullable=True),
        sa.Column("min_quantity", sa.Numeric(10, 2), server_default=sa.text("1"), nullable=False),
        _flag("is_default", False),
        _flag("is_global", False),
        _flag("is_active", True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["template_id"], ["price_variations.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_price_variations_product_active", "price_variations", ["product_id", "is_active"]
    )

    # ── 3. Orders ───────────────────────────────────────────────────────

    op.create_table(
        "recurring_orders",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "frequency",
            ENUM_RECURRENCE_FREQUENCY,
            server_default=sa.text("'weekly'"),
            nullable=False,
        ),
        sa.Column(
            "delivery_days",
            postgresql.ARRAY(sa.Integer()),
            server_default=sa.text("'{}'"),
            nullable=False,
        ),
        sa.Column("interval", sa.Integer(), nullable=True),
        sa.Column("interval_unit", ENUM_INTERVAL_UNIT, nullable=True),
        sa.Column("customer_type", sa.String(50), server_default=sa.text("'retail'"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        _flag("is_active", True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_recurring_orders_active_window",
        "recurring_orders",
        ["is_active", "start_date", "end_date"],
    )

    op.create_table(
        "recurring_order_items",
        _uuid_pk(),
        sa.Column("recurring_order_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quantity", sa.Numeric(10, 2), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["recurring_order_id"], ["recurring_orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_recurring_order_items_recurring_order_id",
        "recurring_order_items",
        ["recurring_order_id"],
    )

    op.create_table(
        "orders",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("recurring_order_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("customer_type", sa.String(50), server_default=sa.text("'retail'"), nullable=False),
        sa.Column("delivery_date", sa.Date(), nullable=False),
        sa.Column("harvest_date", sa.Date(), nullable=False),
        sa.Column("status", ENUM_ORDER_STATUS, server_default=sa.text("'pending'"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["recurring_order_id"], ["recurring_orders.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_orders_delivery_date", "orders", ["delivery_date"])
    op.create_index("ix_orders_recurring_order_id", "orders", ["recurring_order_id"])

    op.create_table(
        "order_items",
        _uuid_pk(),
        sa.Column("order_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("price_variation_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("quantity", sa.Numeric(10, 2), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["price_variation_id"], ["price_variations.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    # ── 4. Production ───────────────────────────────────────────────────

    op.create_table(
        "planting_schedules",
        _uuid_pk(),
        sa.Column("recipe_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("planting_date", sa.Date(), nullable=False),
        sa.Column("target_harvest_date", sa.Date(), nullable=False),
        sa.Column("trays_required", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("trays_planted", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column(
            "status", ENUM_PLANTING_STATUS, server_default=sa.text("'pending'"), nullable=False
        ),
        sa.Column("related_orders", postgresql.JSONB(), nullable=True),
        sa.Column("related_recurring_orders", postgresql.JSONB(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["recipe_id"], ["recipes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "recipe_id",
            "planting_date",
            "target_harvest_date",
            name="uq_planting_schedules_recipe_dates",
        ),
    )
    op.create_index(
        "ix_planting_schedules_planting_date", "planting_schedules", ["planting_date"]
    )

    op.create_table(
        "crops",
        _uuid_pk(),
        sa.Column("recipe_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("order_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("planting_schedule_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("tray_number", sa.String(50), nullable=False),
        sa.Column(
            "current_stage", ENUM_CROP_STAGE, server_default=sa.text("'germination'"), nullable=False
        ),
        _flag("requires_soaking", False),
        sa.Column("planted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("soaking_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("germination_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("blackout_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("light_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("harvested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["recipe_id"], ["recipes.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["planting_schedule_id"], ["planting_schedules.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_crops_recipe_stage", "crops", ["recipe_id", "current_stage"])
    op.create_index("ix_crops_planted_at", "crops", ["planted_at"])

    op.create_table(
        "consumables",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("consumable_type", ENUM_CONSUMABLE_TYPE, nullable=False),
        sa.Column("unit", sa.String(20), server_default=sa.text("'unit'"), nullable=False),
        sa.Column("current_stock", sa.Numeric(12, 3), server_default=sa.text("0"), nullable=False),
        sa.Column(
            "restock_threshold", sa.Numeric(12, 3), server_default=sa.text("0"), nullable=False
        ),
        _flag("is_active", True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    # ── 5. Audit, preferences & tasks ───────────────────────────────────

    op.create_table(
        "activity_log",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("log_name", sa.String(100), server_default=sa.text("'default'"), nullable=False),
        sa.Column("event", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("subject_type", sa.String(255), nullable=True),
        sa.Column("subject_id", sa.String(64), nullable=True),
        sa.Column("causer_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("properties", postgresql.JSONB(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["causer_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activity_log_created_at", "activity_log", ["created_at"])
    op.create_index("ix_activity_log_causer_id", "activity_log", ["causer_id"])
    op.create_index(
        "ix_activity_log_log_name_created", "activity_log", ["log_name", "created_at"]
    )
    op.create_index(
        "ix_activity_log_subject", "activity_log", ["subject_type", "subject_id"]
    )

    op.create_table(
        "user_preferences",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "preferences",
            postgresql.JSONB(),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    op.create_table(
        "task_runs",
        _uuid_pk(),
        sa.Column("task_name", sa.String(100), nullable=False),
        sa.Column("status", ENUM_TASK_STATUS, server_default=sa.text("'queued'"), nullable=False),
        sa.Column("parameters", postgresql.JSONB(), nullable=True),
        sa.Column("result", postgresql.JSONB(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error", sa.String(2048), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_task_runs_name_status", "task_runs", ["task_name", "status"])


def downgrade() -> None:
    # ── Drop tables in reverse dependency order ─────────────────────────
    op.drop_table("task_runs")
    op.drop_table("user_preferences")
    op.drop_table("activity_log")
    op.drop_table("consumables")
    op.drop_table("crops")
    op.drop_table("planting_schedules")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("recurring_order_items")
    op.drop_table("recurring_orders")
    op.drop_table("price_variations")
    op.drop_table("products")
    op.drop_table("recipes")
    op.drop_table("customer_types")
    op.drop_table("users")

    # ── Drop enum types ─────────────────────────────────────────────────
    for enum_type in reversed(ALL_ENUMS):
        enum_type.drop(op.get_bind(), checkfirst=True)
