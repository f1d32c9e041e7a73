"""Shared pytest fixtures: async test client, fake DB session, fake Redis."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.auth.dependencies import get_current_user
from app.auth.jwt import create_access_token
from app.database import get_db
from app.main import app
from app.models.enums import UserRoleEnum


class FakeSavepoint:
	"""Async context manager standing in for ``AsyncSession.begin_nested()``."""

	async def __aenter__(self) -> "FakeSavepoint":
		return self

	async def __aexit__(self, *exc_info: object) -> bool:
		return False


class FakeAsyncSession:
	"""Records ``add``/``add_all`` calls; every async method is an ``AsyncMock``."""

	def __init__(self) -> None:
		self.added: list[Any] = []
		self.commit = AsyncMock()
		self.rollback = AsyncMock()
		self.close = AsyncMock()
		self.flush = AsyncMock()
		self.refresh = AsyncMock()
		self.execute = AsyncMock()

	def begin_nested(self) -> FakeSavepoint:
		return FakeSavepoint()

	def add(self, obj: Any) -> None:
		self.added.append(obj)

	def add_all(self, objs: list[Any]) -> None:
		self.added.extend(objs)


class FakeRedis:
	"""Just enough of ``redis.asyncio.Redis`` for task locks and status caching."""

	def __init__(self) -> None:
		self.store: dict[str, str] = {}
		self.setex = AsyncMock(side_effect=self._setex)
		self.ping = AsyncMock(return_value=True)

	async def set(self, key: str, value: str, nx: bool = False, ex: int | None = None) -> bool | None:
		if nx and key in self.store:
			return None
		self.store[key] = value
		return True

	async def get(self, key: str) -> str | None:
		return self.store.get(key)

	async def delete(self, key: str) -> int:
		return 1 if self.store.pop(key, None) is not None else 0

	async def _setex(self, key: str, _ttl: int, value: str) -> bool:
		self.store[key] = value
		return True


def make_user(role: UserRoleEnum = UserRoleEnum.admin, customer_type: str | None = None) -> SimpleNamespace:
	return SimpleNamespace(
		id=uuid.uuid4(),
		role=role,
		is_active=True,
		email=f"{role.value}@test.local",
		name=role.value.title(),
		customer_type=customer_type,
	)


@pytest.fixture
def fake_db_session() -> FakeAsyncSession:
	"""A lightweight async-session stub for dependency overrides in API tests."""
	return FakeAsyncSession()


@pytest.fixture
def fake_redis() -> FakeRedis:
	return FakeRedis()


@pytest.fixture
def user_factory() -> Any:
	return make_user


@pytest.fixture
def current_user() -> SimpleNamespace:
	return make_user()


@asynccontextmanager
async def _noop_lifespan(_: Any) -> AsyncGenerator[None, None]:
	yield


@pytest.fixture
async def client(
	fake_db_session: FakeAsyncSession,
	current_user: SimpleNamespace,
) -> AsyncGenerator[AsyncClient, None]:
	"""HTTPX async client with lifespan disabled, DB mocked and an admin signed in."""

	async def override_get_db() -> AsyncGenerator[Any, None]:
		yield fake_db_session

	async def override_current_user() -> Any:
		return current_user

	app.dependency_overrides[get_db] = override_get_db
	app.dependency_overrides[get_current_user] = override_current_user
	original_lifespan = app.router.lifespan_context
	app.router.lifespan_context = _noop_lifespan
	app.state.redis = None
	app.state.scheduler = None

	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://test") as test_client:
		yield test_client

	app.router.lifespan_context = original_lifespan
	app.dependency_overrides.clear()


@pytest.fixture
async def auth_client(fake_db_session: FakeAsyncSession) -> AsyncGenerator[AsyncClient, None]:
	"""HTTPX async client with DB override only (real auth dependencies active)."""

	async def override_get_db() -> AsyncGenerator[Any, None]:
		yield fake_db_session

	app.dependency_overrides[get_db] = override_get_db
	original_lifespan = app.router.lifespan_context
	app.router.lifespan_context = _noop_lifespan

	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://test") as test_client:
		yield test_client

	app.router.lifespan_context = original_lifespan
	app.dependency_overrides.clear()


@pytest.fixture
def auth_user_id() -> uuid.UUID:
	return uuid.UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture
def access_token(auth_user_id: uuid.UUID) -> str:
	return create_access_token(str(auth_user_id), expires_minutes=30)


@pytest.fixture
def now_utc() -> datetime:
	return datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
