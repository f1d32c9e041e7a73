"""Pydantic schemas for login and token refresh."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
	email: str = Field(min_length=3, max_length=320)
	password: str = Field(min_length=1, max_length=256)


class RefreshRequest(BaseModel):
	refresh_token: str = Field(min_length=1)


class TokenResponse(BaseModel):
	access_token: str
	refresh_token: str
	token_type: str = "bearer"
