"""Pydantic schemas for price quotes."""

from __future__ import annotations

import uuid
from decimal import Decimal

from pydantic import BaseModel, Field


class PriceQuoteRequest(BaseModel):
	product_id: uuid.UUID
	customer_type: str | None = Field(default=None, max_length=50)
	quantity: Decimal = Field(default=Decimal("1"), gt=0)
	packaging_type: str | None = Field(default=None, max_length=100)


class PriceQuoteRead(BaseModel):
	product_id: uuid.UUID
	customer_type: str
	pricing_type: str
	variation_id: uuid.UUID | None = None
	unit_price: Decimal
	quantity: Decimal
	total: Decimal
	source: str
