"""
Tests for palette, partitioning, framing, detail switching and layers.

Run with: pytest tests/test_visualization.py -v
"""

import pytest

from envelope3d.core.config import Settings
from envelope3d.core.errors import EmptyGeometry
from envelope3d.geometry import GeometryRecordBuilder
from envelope3d.visualization import (
    PALETTE,
    CategoricalColorAssigner,
    DetailState,
    ExtentFramer,
    LayerPartitioner,
    ScenePass,
    ViewportDetailSwitcher,
    available_attributes,
    category_layers,
    compute_extent,
    context_layer,
    single_layers,
)
from envelope3d.visualization.layers import field_definitions, representative_point
from envelope3d.visualization.palette import CONTEXT_COLOR, DEFAULT_FILL_COLOR, hex_to_rgba, rgba_to_hex

from conftest import X0, Y0, make_polygon_feature


@pytest.fixture
def category_records(category_features):
    return GeometryRecordBuilder().build_records(category_features).records


class TestPalette:
    """Tests for categorical colors."""

    def test_palette_has_twelve_colors(self):
        assert len(PALETTE) == 12
        assert rgba_to_hex(PALETTE[0]) == "#fc3e5a"
        assert all(color[3] == 1.0 for color in PALETTE)

    def test_hex_round_trip(self):
        assert hex_to_rgba("#4c81cd") == (76, 129, 205, 1.0)

    def test_invalid_hex(self):
        with pytest.raises(ValueError):
            hex_to_rgba("#fff")

    def test_first_seen_order(self):
        colors = CategoricalColorAssigner().assign(["B", "A", "B", "C"])
        assert list(colors) == ["B", "A", "C"]
        assert colors["B"] == PALETTE[0]
        assert colors["A"] == PALETTE[1]

    def test_palette_cycles(self):
        values = [f"v{i}" for i in range(14)]
        colors = CategoricalColorAssigner().assign(values)
        assert colors["v12"] == colors["v0"]
        assert colors["v13"] == colors["v1"]


class TestPartition:
    """Tests for LayerPartitioner."""

    def test_groups_by_value(self, category_records):
        groups = LayerPartitioner().partition(category_records, "surface_type")
        assert [g.value for g in groups] == ["A", "B", "C"]
        assert [len(g) for g in groups] == [3, 1, 1]
        assert [g.color for g in groups] == list(PALETTE[:3])

    def test_every_record_in_exactly_one_group(self, category_records):
        groups = LayerPartitioner().partition(category_records, "surface_type")
        ids = [r.id for g in groups for r in g.records]
        assert sorted(ids) == [r.id for r in category_records]

    def test_null_values_dropped(self):
        features = [
            make_polygon_feature(surface_type="A"),
            make_polygon_feature(surface_type=None),
            make_polygon_feature(other=1),
        ]
        records = GeometryRecordBuilder().build_records(features).records
        groups = LayerPartitioner().partition(records, "surface_type")
        assert len(groups) == 1
        assert len(groups[0]) == 1

    def test_distinct_values(self, category_records):
        assert LayerPartitioner.distinct_values(category_records, "surface_type") == ["A", "B", "C"]

    def test_available_attributes(self, category_records):
        assert available_attributes(category_records) == ["surface_type", "orientation"]


class TestFraming:
    """Tests for extent and camera framing."""

    def test_close_regime(self, category_records):
        framer = ExtentFramer(Settings())
        single = category_records[:1]
        framing = framer.frame([single])
        assert framing.zoom == 19
        assert framing.tilt == 60
        assert framing.heading == 45

    def test_far_regime(self):
        framer = ExtentFramer(Settings())
        assert framer.zoom_for_span(0.002) == pytest.approx(17.0)
        assert framer.tilt_for_span(0.002) == 45

    def test_zoom_clamped(self):
        framer = ExtentFramer(Settings())
        assert framer.zoom_for_span(1000.0) == 3
        assert framer.zoom_for_span(0.001) == 18

    def test_zoom_never_increases_with_span(self):
        framer = ExtentFramer(Settings())
        spans = [0.0001, 0.0009, 0.001, 0.003, 0.01, 0.1, 1.0, 10.0, 100.0]
        zooms = [framer.zoom_for_span(s) for s in spans]
        assert zooms == sorted(zooms, reverse=True)

    def test_target_inside_extent(self, category_records, shading_features):
        context = GeometryRecordBuilder().build_records(shading_features).records
        framer = ExtentFramer(Settings())
        framing = framer.frame([category_records, context])

        points = [(p[0], p[1]) for r in category_records + context for p in r.rings[0]]
        extent = compute_extent(points)
        assert extent.contains(framing.target_x, framing.target_y)
        assert (framing.target_x, framing.target_y) == pytest.approx(extent.center)

    def test_empty_geometry(self):
        with pytest.raises(EmptyGeometry):
            ExtentFramer(Settings()).frame([[], []])

    def test_camera_move(self):
        framer = ExtentFramer(Settings())
        move = framer.move_to(framer.default_framing())
        data = move.to_dict()
        assert data["duration_ms"] == 3000
        assert data["easing"] == "ease-in-out"
        assert data["target"]["spatialReference"]["wkid"] == 4326
        assert data["zoom"] == 12

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            ExtentFramer(Settings(close_zoom=10, far_max_zoom=18))


class TestDetailSwitcher:
    """Tests for zoom-driven detail switching."""

    def test_overview_detailed_overview(self):
        switcher = ViewportDetailSwitcher(threshold=14, hysteresis=0)
        transitions = [switcher.update(z) for z in [12, 13, 15, 16, 13]]
        assert transitions == [
            DetailState.OVERVIEW, None, DetailState.DETAILED, None, DetailState.OVERVIEW,
        ]
        assert switcher.history == [DetailState.OVERVIEW, DetailState.DETAILED, DetailState.OVERVIEW]

    def test_threshold_inclusive(self):
        switcher = ViewportDetailSwitcher(threshold=14)
        assert switcher.update(14) is DetailState.DETAILED
        assert switcher.detailed_visible
        assert not switcher.overview_visible

    def test_hysteresis_suppresses_flapping(self):
        switcher = ViewportDetailSwitcher(threshold=14, hysteresis=0.5)
        switcher.update(15)
        assert switcher.update(13.8) is None
        assert switcher.update(13.4) is DetailState.OVERVIEW
        assert switcher.update(14.2) is None
        assert switcher.update(14.5) is DetailState.DETAILED

    def test_listeners_notified(self):
        seen = []
        switcher = ViewportDetailSwitcher(threshold=14)
        switcher.on_change(seen.append)
        switcher.update(10)
        switcher.update(11)
        switcher.update(18)
        assert seen == [DetailState.OVERVIEW, DetailState.DETAILED]

    def test_negative_hysteresis_rejected(self):
        with pytest.raises(ValueError):
            ViewportDetailSwitcher(hysteresis=-1)


class TestLayers:
    """Tests for renderer-ready layer descriptions."""

    def test_category_layers_pairs(self, category_records):
        groups = LayerPartitioner().partition(category_records, "surface_type")
        layers = category_layers(groups)
        assert len(layers) == 6
        assert [layer.kind for layer in layers[:2]] == ["fill", "point"]
        assert layers[0].detail is DetailState.DETAILED
        assert layers[1].detail is DetailState.OVERVIEW
        assert layers[0].title == "A"
        assert layers[0].color == layers[1].color == PALETTE[0]

    def test_single_and_context_colors(self, category_records):
        assert single_layers(category_records)[0].color == DEFAULT_FILL_COLOR
        context = context_layer(category_records)
        assert context.color == CONTEXT_COLOR
        assert context.detail is None
        assert context.apply_detail(DetailState.OVERVIEW) is False
        assert context.visible

    def test_fields_typed(self, category_records):
        fields = {f["name"]: f["type"] for f in field_definitions(category_records)}
        assert fields == {"ObjectID": "oid", "surface_type": "string", "orientation": "integer"}

    def test_representative_point_is_centroid(self, category_records):
        x, y = representative_point(category_records[0])
        assert x == pytest.approx(X0 + 0.00025)
        assert y == pytest.approx(Y0 + 0.00025)

    def test_to_dict(self, category_records):
        layer = single_layers(category_records)[0]
        data = layer.to_dict()
        assert data["renderer"]["symbol"]["type"] == "polygon-3d"
        assert len(data["source"]) == 5
        feature = data["source"][0]
        assert feature["attributes"]["ObjectID"] == 0
        assert feature["geometry"]["spatialReference"] == {"wkid": 4326}
        assert "surface_type" in [f["fieldName"] for f in data["popupTemplate"]["fieldInfos"]]

        point = single_layers(category_records)[1].to_dict()
        assert point["renderer"]["symbol"]["type"] == "simple-marker"
        assert point["source"][0]["geometry"]["type"] == "point"

    def test_pass_assigns_layer_ids(self, category_records):
        layers = single_layers(category_records)
        scene_pass = ScenePass(layers=layers, generation=3)
        assert [layer.layer_id for layer in scene_pass.layers] == ["pass-3-layer-0", "pass-3-layer-1"]
        assert scene_pass.to_dict()["layers"][0]["id"] == "pass-3-layer-0"
