"""Shared fixtures for the export tests."""

import pytest

from tests.plan_fixtures import make_png, rectangle_layer, wall_layer


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def floor_scene():
    """Single-layer plan with one 400x300 floor and nothing else."""
    return {"layers": {"layer-1": rectangle_layer()}}


@pytest.fixture
def door_scene():
    """One 300 long wall with a centered 90x210 door."""
    return {
        "layers": {
            "layer-1": wall_layer(
                holes={
                    "h1": {
                        "id": "h1",
                        "type": "door",
                        "line": "l1",
                        "offset": 0.5,
                        "properties": {
                            "width": {"length": 90},
                            "height": {"length": 210},
                            "altitude": {"length": 0},
                        },
                    }
                }
            )
        }
    }


@pytest.fixture
def furnished_scene():
    """Floor plus two items, one of them with zero width."""
    items = {
        "i1": {"id": "i1", "type": "table", "x": 100, "y": 100, "rotation": 90,
               "properties": {"width": 120, "depth": 60, "height": 75}},
        "i2": {"id": "i2", "type": "rug", "x": 200, "y": 150,
               "properties": {"width": 0, "depth": 100, "height": 1}},
    }
    return {"layers": [rectangle_layer(items=items)]}
