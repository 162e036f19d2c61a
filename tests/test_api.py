"""
Tests for FastAPI REST API endpoints.

Covers:
- Root/health endpoint
- Scene building from a posted response
- Scene building for a GMLID via the geometry service
- Error handling
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from envelope3d import __version__
from envelope3d.api.main import app, get_controller_factory
from envelope3d.controller import GeometryVisualizationController
from envelope3d.core.errors import LayerLoadFailure
from envelope3d.visualization import InMemorySurface

from conftest import FakeAuth


@pytest.fixture
def client():
    """Create test client for API."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def geometry_client():
    stub = MagicMock()
    stub.fetch_geometry = AsyncMock()
    return stub


@pytest.fixture
def stubbed_service(geometry_client, test_settings):
    """Route controller creation through a stubbed geometry client."""
    def factory():
        return lambda: GeometryVisualizationController(
            surface=InMemorySurface(), auth=FakeAuth(True), client=geometry_client, config=test_settings
        )
    app.dependency_overrides[get_controller_factory] = factory
    return geometry_client


class TestRootEndpoint:
    """Tests for root/health check endpoint."""

    def test_root_returns_ok(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == __version__
        assert "build_scene" in data["endpoints"]


class TestSceneEndpoint:
    """Tests for POST /scene."""

    def test_build_scene(self, client, stubbed_service, geometry_response):
        response = client.post("/scene", json={"response": geometry_response})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["attribute"] == "surface_type"
        assert data["attributes"] == ["surface_type", "orientation"]
        assert len(data["layers"]) == 7
        assert data["camera"]["heading"] == 45
        assert data["surface_areas"][0] == {"label": "WallSurface", "value": 812.4, "unit": "m²"}

    def test_build_scene_with_attribute(self, client, stubbed_service, geometry_response):
        response = client.post("/scene", json={"response": geometry_response, "attribute": "orientation"})
        data = response.json()
        assert data["attribute"] == "orientation"
        assert len(data["layers"]) == 11
        assert data["camera"] is not None
        assert data["camera"]["heading"] == 45

    def test_unknown_attribute(self, client, stubbed_service, geometry_response):
        response = client.post("/scene", json={"response": geometry_response, "attribute": "colour"})
        assert response.status_code == 422

    def test_empty_response(self, client, stubbed_service):
        response = client.post("/scene", json={"response": {}})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["messages"]

    def test_missing_body(self, client):
        response = client.post("/scene", json={})
        assert response.status_code == 422


class TestBuildingEndpoint:
    """Tests for GET /scene/{gmlid}."""

    def test_building_scene(self, client, stubbed_service, geometry_response):
        stubbed_service.fetch_geometry.return_value = geometry_response
        response = client.get("/scene/DEBY_LOD2_4909255")
        assert response.status_code == 200
        assert response.json()["success"] is True
        stubbed_service.fetch_geometry.assert_awaited_once_with(["DEBY_LOD2_4909255"])

    def test_service_failure(self, client, stubbed_service):
        stubbed_service.fetch_geometry.side_effect = LayerLoadFailure("HTTP error! status: 503", status_code=503)
        response = client.get("/scene/DEBY_LOD2_4909255")
        data = response.json()
        assert data["success"] is False
        assert "503" in data["messages"][0]
