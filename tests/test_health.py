from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from app import main


@pytest.mark.asyncio
async def test_health_reports_service(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "trayline", "version": main.SERVICE_VERSION}


@pytest.mark.asyncio
async def test_health_ready_ok(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def _ok(_app):
        return {
            "database": {"ok": True, "message": "ok"},
            "redis": {"ok": True, "message": "ok"},
            "scheduler": {"ok": True, "message": "running"},
        }

    monkeypatch.setattr(main, "_run_readiness_checks", _ok)

    response = await client.get("/health/ready")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["checks"]["database"]["ok"] is True


@pytest.mark.asyncio
async def test_health_ready_degraded(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def _bad(_app):
        return {
            "database": {"ok": False, "message": "db down"},
            "redis": {"ok": True, "message": "not configured"},
            "scheduler": {"ok": True, "message": "disabled"},
        }

    monkeypatch.setattr(main, "_run_readiness_checks", _bad)

    response = await client.get("/health/ready")
    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "degraded"
    assert body["checks"]["database"]["ok"] is False


@pytest.mark.asyncio
async def test_readiness_checks_without_redis_or_scheduler(
    client: AsyncClient,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(main, "_check_database", AsyncMock(return_value={"ok": True, "message": "ok"}))

    checks = await main._run_readiness_checks(main.app)

    assert checks["redis"] == {"ok": True, "message": "not configured"}
    assert checks["scheduler"] == {"ok": True, "message": "disabled"}


@pytest.mark.asyncio
async def test_readiness_reports_unreachable_redis(
    client: AsyncClient,
    fake_redis,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    fake_redis.ping = AsyncMock(side_effect=ConnectionError("connection refused"))
    main.app.state.redis = fake_redis

    check = await main._check_redis(main.app)

    assert check == {"ok": False, "message": "connection refused"}


@pytest.mark.asyncio
async def test_request_id_is_propagated(client: AsyncClient) -> None:
    request_id = "trayline-request-id"
    response = await client.get("/health", headers={"x-request-id": request_id})
    assert response.status_code == 200
    assert response.headers.get("x-request-id") == request_id


@pytest.mark.asyncio
async def test_request_id_generated_when_missing(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    generated = response.headers.get("x-request-id")
    assert generated is not None
    assert len(generated) >= 8
