"""API tests for the export service."""

import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from api.main import app, serve
from api.routes.export import error_status
from planexport.config import ExportConfig
from planexport.errors import (
    EmptySceneError,
    InvalidDocumentError,
    PipelineStateError,
    TextureUnavailableError,
)
from planexport.export import read_glb
from tests.plan_fixtures import png_data_uri


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


def test_health_check(client):
    """Test health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Floor Plan Export"
    assert data["status"] == "running"


class TestExportEndpoint:
    """Tests for POST /export/glb."""

    def test_bare_scene(self, client, floor_scene):
        response = client.post("/export/glb", json=floor_scene)
        assert response.status_code == 200
        assert response.headers["content-type"] == "model/gltf-binary"
        assert response.headers["content-disposition"] == 'attachment; filename="floorplan.glb"'

        gltf, _ = read_glb(response.content)
        assert len(gltf["meshes"]) == 1

    def test_envelope(self, client, floor_scene, png_bytes):
        floor_scene["layers"]["layer-1"]["areas"]["a1"]["properties"]["texture"] = "parquet"
        body = {
            "scene": floor_scene,
            "texturesByType": {"area": {"parquet": {"uri": png_data_uri(png_bytes)}}},
        }
        response = client.post("/export/glb", json=body)
        assert response.status_code == 200
        gltf, _ = read_glb(response.content)
        assert len(gltf["images"]) == 1

    def test_invalid_json(self, client):
        response = client.post(
            "/export/glb", content=b"{nope", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        data = response.json()
        assert data["ok"] is False
        assert data["error_type"] == "invalid_document"

    def test_non_object_body(self, client):
        response = client.post("/export/glb", json=[1, 2, 3])
        assert response.status_code == 400

    def test_invalid_envelope(self, client):
        response = client.post("/export/glb", json={"scene": "nope"})
        assert response.status_code == 400
        assert response.json()["error_type"] == "invalid_document"

    def test_empty_scene(self, client):
        response = client.post("/export/glb", json={"layers": []})
        assert response.status_code == 422
        assert response.json()["error_type"] == "empty_scene"

    def test_texture_unavailable(self, client, floor_scene):
        floor_scene["layers"]["layer-1"]["areas"]["a1"]["properties"]["texture"] = "parquet"
        body = {
            "scene": floor_scene,
            "texturesByType": {"area": {"parquet": {"uri": "data:image/png;base64,abc"}}},
        }
        response = client.post("/export/glb", json=body)
        assert response.status_code == 502
        assert response.json()["error_type"] == "texture_unavailable"

    def test_body_too_large(self, client, floor_scene, monkeypatch):
        monkeypatch.setattr(app.state, "config", ExportConfig(max_body_bytes=64))
        response = client.post("/export/glb", content=json.dumps(floor_scene).encode("utf-8"))
        assert response.status_code == 413
        assert response.json()["ok"] is False


def test_error_status_mapping():
    assert error_status(InvalidDocumentError("x")) == 400
    assert error_status(EmptySceneError()) == 422
    assert error_status(TextureUnavailableError("u", "r")) == 502
    assert error_status(PipelineStateError("x")) == 500


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("PLANEXPORT_FETCH_TIMEOUT", "5")
    monkeypatch.setenv("PLANEXPORT_MAX_BODY_BYTES", "not-a-number")
    monkeypatch.setenv("PLANEXPORT_CORS_ORIGINS", "https://a.test, https://b.test")
    config = ExportConfig.from_env()
    assert config.fetch_timeout == 5.0
    assert config.max_body_bytes == 10 * 1024 * 1024
    assert config.cors_origins == ["https://a.test", "https://b.test"]


def test_serve_runs_uvicorn(monkeypatch):
    monkeypatch.setattr(app.state, "config", ExportConfig())
    with patch("api.main.uvicorn.run") as run:
        serve()
    run.assert_called_once()
    assert run.call_args.args[0] is app
    assert run.call_args.kwargs["port"] == 8000
