from __future__ import annotations

from unittest.mock import AsyncMock

import pytest


@pytest.mark.asyncio
async def test_list_packages_by_type(monkeypatch, loaded) -> None:
    from zapgen.api.routes import generation as routes

    monkeypatch.setattr(routes.pool_module, "get_default_pool", lambda: loaded.db)

    zcl = await routes.list_packages(package_type="zclProperties")
    everything = await routes.list_packages(package_type=None)

    assert [p.id for p in zcl] == [loaded.zcl_package_id]
    assert zcl[0].type == "zclProperties"
    # ZCL + template set + three single templates.
    assert len(everything) == 5


@pytest.mark.asyncio
async def test_list_packages_unknown_type() -> None:
    from fastapi import HTTPException

    from zapgen.api.routes import generation as routes

    with pytest.raises(HTTPException) as excinfo:
        await routes.list_packages(package_type="notAType")
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_generate_route_returns_content_and_errors(monkeypatch, loaded) -> None:
    from zapgen.api.routes import generation as routes
    from zapgen.models import GenerateRequest

    monkeypatch.setattr(routes.pool_module, "get_default_pool", lambda: loaded.db)

    result = await routes.generate(
        GenerateRequest(session_id=loaded.session_id, template_package_id=loaded.template_package_id)
    )

    assert "endpoints.out" in result.content
    assert "test-fail.out" in result.errors
    assert result.partial is False


@pytest.mark.asyncio
async def test_generate_route_maps_errors(monkeypatch) -> None:
    from fastapi import HTTPException

    from zapgen.api.routes import generation as routes
    from zapgen.exceptions import PackageNotFoundError, ZapGenError
    from zapgen.models import GenerateRequest

    monkeypatch.setattr(routes.pool_module, "get_default_pool", lambda: object())
    request = GenerateRequest(session_id=1, template_package_id=2, templates=["a.out"])

    missing = AsyncMock(side_effect=PackageNotFoundError("Template package 2 not found"))
    monkeypatch.setattr(routes.generation_engine, "generate", missing)
    with pytest.raises(HTTPException) as excinfo:
        await routes.generate(request)
    assert excinfo.value.status_code == 404
    assert missing.await_args.args[4] == {"disable_deprecation_warnings": False, "templates": ["a.out"]}

    monkeypatch.setattr(
        routes.generation_engine, "generate", AsyncMock(side_effect=ZapGenError("Invalid template metafile"))
    )
    with pytest.raises(HTTPException) as excinfo:
        await routes.generate(request)
    assert excinfo.value.status_code == 400
    assert "Invalid template metafile" in excinfo.value.detail


@pytest.mark.asyncio
async def test_health_reports_database_state(monkeypatch) -> None:
    from zapgen import main

    class _StubPool:
        database = ":memory:"

        def __init__(self, healthy: bool):
            self._healthy = healthy

        async def is_healthy(self) -> bool:
            return self._healthy

    monkeypatch.setattr(main.sqlite_pool, "get_default_pool", lambda: _StubPool(True))
    healthy = await main.health_check()
    assert healthy["status"] == "healthy"
    assert healthy["checks"]["database"]["status"] == "healthy"

    monkeypatch.setattr(main.sqlite_pool, "get_default_pool", lambda: _StubPool(False))
    degraded = await main.health_check()
    assert degraded["status"] == "degraded"


def test_app_serves_routes_over_http(monkeypatch) -> None:
    from fastapi.testclient import TestClient

    from zapgen import main
    from zapgen.api.routes import generation as routes
    from zapgen.exceptions import PackageNotFoundError

    row = {"id": 1, "parent_id": None, "path": "/zcl.json", "type": "zclProperties", "crc": 7}
    monkeypatch.setattr(routes.pool_module, "get_default_pool", lambda: object())
    monkeypatch.setattr(routes.query_package, "get_all_packages", AsyncMock(return_value=[row]))
    monkeypatch.setattr(
        routes.generation_engine, "generate", AsyncMock(side_effect=PackageNotFoundError("Template package 42 not found"))
    )

    # No `with`: the lifespan (and its database) stays out of this test.
    client = TestClient(main.app, raise_server_exceptions=False)

    packages = client.get("/api/packages")
    assert packages.status_code == 200
    assert packages.json()[0]["path"] == "/zcl.json"

    assert client.get("/api/packages", params={"type": "notAType"}).status_code == 400

    missing = client.post("/api/generate", json={"session_id": 1, "template_package_id": 42})
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Template package 42 not found"

    assert client.post("/api/generate", json={"session_id": 1}).status_code == 422

    class _DownPool:
        database = ":memory:"

        async def is_healthy(self) -> bool:
            return False

    monkeypatch.setattr(main.sqlite_pool, "get_default_pool", lambda: _DownPool())
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "degraded"
