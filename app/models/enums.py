"""PostgreSQL-backed enum types for all ORM models.

Each StrEnum maps 1:1 to a PostgreSQL CREATE TYPE ... AS ENUM.
"""

from enum import StrEnum

# ── Production enums ────────────────────────────────────────────────────────


class CropStageEnum(StrEnum):
    """Growth stages of a tray, in progression order."""

    soaking = "soaking"
    germination = "germination"
    blackout = "blackout"
    light = "light"
    harvested = "harvested"


class PlantingStatusEnum(StrEnum):
    """Fulfilment state of a planting schedule."""

    pending = "pending"
    partially_planted = "partially_planted"
    fully_planted = "fully_planted"
    completed = "completed"


class ConsumableTypeEnum(StrEnum):
    seed = "seed"
    soil = "soil"
    packaging = "packaging"
    label = "label"
    other = "other"


# ── Sales enums ─────────────────────────────────────────────────────────────


class RecurrenceFrequencyEnum(StrEnum):
    """Cadence of a recurring order template."""

    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"
    custom = "custom"


class IntervalUnitEnum(StrEnum):
    days = "days"
    weeks = "weeks"
    months = "months"


class PricingTypeEnum(StrEnum):
    """Customer segment a price variation is intended for."""

    retail = "retail"
    wholesale = "wholesale"
    bulk = "bulk"
    special = "special"
    custom = "custom"


class OrderStatusEnum(StrEnum):
    draft = "draft"
    pending = "pending"
    confirmed = "confirmed"
    in_production = "in_production"
    ready = "ready"
    delivered = "delivered"
    cancelled = "cancelled"


# ── Background task enums ───────────────────────────────────────────────────


class TaskStatusEnum(StrEnum):
    queued = "queued"
    running = "running"
    succeeded = "succeeded"
    failed = "failed"


# ── Auth enums ──────────────────────────────────────────────────────────────


class UserRoleEnum(StrEnum):
    """User authorization roles for RBAC."""

    admin = "admin"
    manager = "manager"
    employee = "employee"
    customer = "customer"
