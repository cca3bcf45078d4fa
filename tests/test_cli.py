"""Tests for the command-line entry point."""

import json

import pytest

from planexport.cli import EXIT_EXPORT_ERROR, EXIT_INPUT_ERROR, EXIT_OK, main
from planexport.export import read_glb
from tests.plan_fixtures import png_data_uri


@pytest.fixture
def scene_file(tmp_path, floor_scene):
    path = tmp_path / "plan.json"
    path.write_text(json.dumps(floor_scene), encoding="utf-8")
    return path


class TestCli:
    """Tests for planexport.cli.main."""

    def test_export_file(self, scene_file, tmp_path, capsys):
        output = tmp_path / "out" / "plan.glb"
        assert main([str(scene_file), str(output)]) == EXIT_OK

        gltf, _ = read_glb(output.read_bytes())
        assert len(gltf["meshes"]) == 1
        assert "Wrote" in capsys.readouterr().out

    def test_envelope_with_textures(self, tmp_path, floor_scene, png_bytes):
        floor_scene["layers"]["layer-1"]["areas"]["a1"]["properties"]["texture"] = "parquet"
        envelope = {
            "scene": floor_scene,
            "texturesByType": {"area": {"parquet": {"uri": png_data_uri(png_bytes)}}},
        }
        source = tmp_path / "request.json"
        source.write_text(json.dumps(envelope), encoding="utf-8")
        output = tmp_path / "plan.glb"

        assert main([str(source), str(output), "--verbose"]) == EXIT_OK
        gltf, _ = read_glb(output.read_bytes())
        assert len(gltf["images"]) == 1

    def test_textures_file(self, tmp_path, floor_scene, png_bytes):
        floor_scene["layers"]["layer-1"]["areas"]["a1"]["properties"]["texture"] = "parquet"
        source = tmp_path / "plan.json"
        source.write_text(json.dumps(floor_scene), encoding="utf-8")
        catalog = tmp_path / "textures.json"
        catalog.write_text(json.dumps({"area": {"parquet": {"uri": png_data_uri(png_bytes)}}}), encoding="utf-8")
        output = tmp_path / "plan.glb"

        assert main([str(source), str(output), "--textures", str(catalog)]) == EXIT_OK
        gltf, _ = read_glb(output.read_bytes())
        assert gltf["images"][0]["mimeType"] == "image/png"

    def test_missing_input(self, tmp_path, capsys):
        code = main([str(tmp_path / "missing.json"), str(tmp_path / "out.glb")])
        assert code == EXIT_INPUT_ERROR
        assert "cannot read input" in capsys.readouterr().err

    def test_malformed_json(self, tmp_path):
        source = tmp_path / "plan.json"
        source.write_text("{", encoding="utf-8")
        assert main([str(source), str(tmp_path / "out.glb")]) == EXIT_INPUT_ERROR

    def test_empty_plan(self, tmp_path, capsys):
        source = tmp_path / "plan.json"
        source.write_text(json.dumps({"layers": []}), encoding="utf-8")
        output = tmp_path / "out.glb"

        assert main([str(source), str(output)]) == EXIT_EXPORT_ERROR
        assert not output.exists()
        assert "export failed" in capsys.readouterr().err
