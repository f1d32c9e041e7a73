"""ORM model registry: importing this module registers every table on Base.metadata.

Alembic ``env.py`` imports ``Base`` from here (not from ``base.py``) so that
autogenerate sees all tables.  Application code can also do::

    from app.models import Crop, Recipe, PlantingSchedule, ...
"""

# ── Base & Mixins ───────────────────────────────────────────────────────────
from app.models.base import (
    AppendOnlyMixin,
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)

# ── Users ───────────────────────────────────────────────────────────────────
from app.models.users import User

# ── Catalog ─────────────────────────────────────────────────────────────────
from app.models.catalog import CustomerType, PriceVariation, Product, Recipe

# ── Sales ───────────────────────────────────────────────────────────────────
from app.models.orders import Order, OrderItem, RecurringOrder, RecurringOrderItem

# ── Production ──────────────────────────────────────────────────────────────
from app.models.planting import PlantingSchedule
from app.models.crops import Crop
from app.models.inventory import Consumable

# ── Audit, preferences & tasks ──────────────────────────────────────────────
from app.models.activity import ActivityLog
from app.models.jobs import TaskRun
from app.models.preferences import UserPreference

# ── Enums ───────────────────────────────────────────────────────────────────
from app.models.enums import (
    ConsumableTypeEnum,
    CropStageEnum,
    IntervalUnitEnum,
    OrderStatusEnum,
    PlantingStatusEnum,
    PricingTypeEnum,
    RecurrenceFrequencyEnum,
    TaskStatusEnum,
    UserRoleEnum,
)

__all__ = [
    "ActivityLog",
    "AppendOnlyMixin",
    "Base",
    "Consumable",
    "ConsumableTypeEnum",
    "Crop",
    "CropStageEnum",
    "CustomerType",
    "IntervalUnitEnum",
    "Order",
    "OrderItem",
    "OrderStatusEnum",
    "PlantingSchedule",
    "PlantingStatusEnum",
    "PriceVariation",
    "PricingTypeEnum",
    "Product",
    "Recipe",
    "RecurrenceFrequencyEnum",
    "RecurringOrder",
    "RecurringOrderItem",
    "TaskRun",
    "TaskStatusEnum",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "User",
    "UserPreference",
    "UserRoleEnum",
]
