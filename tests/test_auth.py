from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient

from app.auth.dependencies import get_current_user, hash_password
from app.auth.jwt import AuthError, create_access_token, create_refresh_token, decode_token
from app.main import app
from app.models.enums import UserRoleEnum


def _user_result(user: object | None) -> AsyncMock:
	result = MagicMock()
	result.scalar_one_or_none.return_value = user
	return AsyncMock(return_value=result)


@pytest.mark.asyncio
async def test_missing_jwt_rejected_on_protected_endpoint(auth_client: AsyncClient) -> None:
	response = await auth_client.get("/api/v1/crops")
	assert response.status_code == 401
	assert response.json()["detail"]["error"] == "auth_required"


def test_jwt_create_decode_roundtrip(auth_user_id: UUID) -> None:
	token = create_access_token(str(auth_user_id), expires_minutes=5)
	payload = decode_token(token, expected_type="access")
	assert payload["sub"] == str(auth_user_id)
	assert payload["typ"] == "access"


def test_decode_invalid_token_raises_auth_error() -> None:
	with pytest.raises(AuthError) as exc_info:
		decode_token("invalid.token.payload", expected_type="access")
	assert exc_info.value.code == "token_invalid"


def test_refresh_token_cannot_be_used_as_access_token(auth_user_id: UUID) -> None:
	token = create_refresh_token(str(auth_user_id))
	with pytest.raises(AuthError) as exc_info:
		decode_token(token, expected_type="access")
	assert exc_info.value.code == "token_type_invalid"


def test_expired_token_rejected(auth_user_id: UUID) -> None:
	token = create_access_token(str(auth_user_id), expires_minutes=-1)
	with pytest.raises(AuthError) as exc_info:
		decode_token(token, expected_type="access")
	assert exc_info.value.code == "token_expired"


@pytest.mark.asyncio
async def test_bearer_token_resolves_active_user(
	auth_client: AsyncClient,
	fake_db_session: object,
	access_token: str,
	auth_user_id: UUID,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	from app.services.inventory_service import InventoryService

	user = SimpleNamespace(id=auth_user_id, role=UserRoleEnum.employee, is_active=True)
	fake_db_session.execute = _user_result(user)  # type: ignore[attr-defined]
	monkeypatch.setattr(InventoryService, "low_stock", AsyncMock(return_value=[]))

	response = await auth_client.get(
		"/api/v1/inventory/low-stock",
		headers={"Authorization": f"Bearer {access_token}"},
	)

	assert response.status_code == 200
	assert response.json() == []


@pytest.mark.asyncio
async def test_inactive_user_rejected(auth_client: AsyncClient, fake_db_session: object, access_token: str) -> None:
	fake_db_session.execute = _user_result(  # type: ignore[attr-defined]
		SimpleNamespace(id=uuid4(), role=UserRoleEnum.admin, is_active=False)
	)

	response = await auth_client.get("/api/v1/crops", headers={"Authorization": f"Bearer {access_token}"})

	assert response.status_code == 401
	assert response.json()["detail"]["error"] == "user_invalid"


@pytest.mark.asyncio
async def test_login_issues_token_pair(auth_client: AsyncClient, fake_db_session: object) -> None:
	user = SimpleNamespace(
		id=uuid4(),
		role=UserRoleEnum.manager,
		is_active=True,
		hashed_password=hash_password("s3cret-pass"),
	)
	fake_db_session.execute = _user_result(user)  # type: ignore[attr-defined]

	response = await auth_client.post(
		"/api/v1/auth/login",
		json={"email": "Manager@Farm.test", "password": "s3cret-pass"},
	)

	assert response.status_code == 200
	body = response.json()
	assert body["token_type"] == "bearer"
	assert decode_token(body["access_token"], expected_type="access")["sub"] == str(user.id)
	assert decode_token(body["refresh_token"], expected_type="refresh")["sub"] == str(user.id)


@pytest.mark.asyncio
async def test_login_with_wrong_password(auth_client: AsyncClient, fake_db_session: object) -> None:
	user = SimpleNamespace(id=uuid4(), role=UserRoleEnum.manager, is_active=True, hashed_password=hash_password("right"))
	fake_db_session.execute = _user_result(user)  # type: ignore[attr-defined]

	response = await auth_client.post("/api/v1/auth/login", json={"email": "m@farm.test", "password": "wrong"})

	assert response.status_code == 401
	assert response.json()["detail"]["error"] == "credentials_invalid"


@pytest.mark.asyncio
async def test_rbac_forbidden_for_customer_on_staff_endpoint(client: AsyncClient) -> None:
	async def _customer() -> object:
		return SimpleNamespace(
			id=uuid4(),
			role=UserRoleEnum.customer,
			is_active=True,
			email="customer@test.local",
			customer_type="retail",
		)

	app.dependency_overrides[get_current_user] = _customer

	response = await client.get("/api/v1/crops")

	assert response.status_code == 403
	assert response.json()["detail"]["error"] == "forbidden"


@pytest.mark.asyncio
async def test_employee_cannot_run_manager_tasks(client: AsyncClient) -> None:
	async def _employee() -> object:
		return SimpleNamespace(id=uuid4(), role=UserRoleEnum.employee, is_active=True, email="e@test.local")

	app.dependency_overrides[get_current_user] = _employee

	response = await client.post("/api/v1/jobs/process_crop_tasks")

	assert response.status_code == 403
