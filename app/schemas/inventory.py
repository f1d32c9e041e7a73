"""Pydantic schemas for consumable stock."""

from __future__ import annotations

import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from app.models.enums import ConsumableTypeEnum


class ConsumableRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	name: str
	consumable_type: ConsumableTypeEnum
	unit: str
	current_stock: Decimal
	restock_threshold: Decimal
	is_active: bool
