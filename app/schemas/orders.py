"""Pydantic schemas for recurring orders and the orders they generate."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import IntervalUnitEnum, OrderStatusEnum, RecurrenceFrequencyEnum


class RecurringOrderRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	user_id: uuid.UUID | None = None
	name: str
	frequency: RecurrenceFrequencyEnum
	delivery_days: list[int]
	interval: int | None = None
	interval_unit: IntervalUnitEnum | None = None
	customer_type: str
	start_date: date
	end_date: date | None = None
	is_active: bool
	notes: str | None = None


class DeliveryDatesResponse(BaseModel):
	recurring_order_id: uuid.UUID
	dates: list[date]


class GenerateOrderRequest(BaseModel):
	delivery_date: date


class OrderItemRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	product_id: uuid.UUID
	price_variation_id: uuid.UUID | None = None
	quantity: Decimal
	price: Decimal


class OrderRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	recurring_order_id: uuid.UUID | None = None
	customer_type: str
	delivery_date: date
	harvest_date: date
	status: OrderStatusEnum
	notes: str | None = None
	items: list[OrderItemRead] = Field(default_factory=list)


class RecurringOrderStats(BaseModel):
	total: int
	active: int
	paused: int


class ProcessRecurringResponse(BaseModel):
	processed: int
	orders_created: int
	deactivated: int
	errors: list[dict[str, str]]
