"""Pydantic schemas for navigation preferences and badges."""

from __future__ import annotations

from pydantic import BaseModel, Field


class NavigationState(BaseModel):
	collapsed_groups: dict[str, bool] = Field(default_factory=dict)


class NavigationPreferences(BaseModel):
	navigation: NavigationState


class ToggleGroupRequest(BaseModel):
	group: str = Field(min_length=1, max_length=100)
	collapsed: bool


class ToggleAllRequest(BaseModel):
	collapsed: bool


class NavigationBadges(BaseModel):
	pending_planting_schedules: int | None = None
	crops_due_for_transition: int | None = None
	low_stock_consumables: int | None = None
