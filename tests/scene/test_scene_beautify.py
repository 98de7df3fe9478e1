"""
Tests for recentering, colour normalization and fallback scenes.
"""

import math

import pytest

from scene import (
    Kind,
    SceneElement,
    beautify_scene,
    build_fallback,
    compute_bounds,
    normalize_colors,
    recenter,
)


class TestRecenter:
    """Tests for recenter()."""

    def test_single_box_gains_lid(self):
        body = SceneElement(type="box", position=(5, 5, 5), dimensions=(60, 20, 40), name="body")
        result = recenter([body], Kind.ENCLOSURE)

        assert len(result) == 2
        lids = [e for e in result if "lid" in e.label]
        assert len(lids) == 1
        assert result[0].type == "rounded-box"
        assert result[0].position == (0.0, 0.0, 0.0)
        assert result[0].smoothness == 8.0
        assert 1 <= result[0].radius <= 12

    def test_lid_geometry(self):
        body = SceneElement(type="box", dimensions=(80, 20, 40))
        lid = recenter([body], Kind.ENCLOSURE)[1]
        assert lid.name == "enclosure-lid"
        assert lid.dimensions == pytest.approx((78.4, 3.0, 38.4))
        assert lid.position[1] == pytest.approx(10 - 1.5 + 0.4)
        assert lid.radius == pytest.approx(2.2)

    def test_existing_lid_not_duplicated(self):
        elements = [
            SceneElement(type="box", dimensions=(60, 20, 40), name="shell"),
            SceneElement(type="box", position=(0, 11, 0), dimensions=(60, 2, 40), name="Top Lid"),
        ]
        result = recenter(elements, Kind.ENCLOSURE)
        assert len(result) == 2

    def test_object_kind_untouched(self):
        elements = [
            SceneElement(type="box", position=(1, 2, 3), dimensions=(60, 20, 40)),
            SceneElement(type="sphere", position=(1, 30, 3), dimensions=(5, 0, 0)),
        ]
        result = recenter(elements, Kind.OBJECT)
        assert len(result) == 2
        assert result[0].type == "box"
        assert result[1].position == (0.0, 28.0, 0.0)

    def test_translates_and_clamps_rotation(self):
        elements = [
            SceneElement(type="sphere", position=(0, 0, 0), rotation=(9, -9, 1), dimensions=(2, 0, 0)),
            SceneElement(type="sphere", position=(10, 10, 10), dimensions=(20, 0, 0), name="head"),
        ]
        result = recenter(elements)
        assert result[1].position == (0.0, 0.0, 0.0)
        assert result[0].position == (-10.0, -10.0, -10.0)
        assert result[0].rotation == (math.pi, -math.pi, 1.0)

    def test_input_not_mutated(self):
        body = SceneElement(type="box", position=(5, 5, 5), dimensions=(10, 10, 10))
        recenter([body], Kind.ENCLOSURE)
        assert body.position == (5, 5, 5)
        assert body.type == "box"

    def test_empty(self):
        assert recenter([]) == []


class TestNormalizeColors:
    """Tests for normalize_colors()."""

    def test_valid_colors_kept(self):
        element = SceneElement(type="box", dimensions=(1, 1, 1), color="#123456")
        assert normalize_colors([element]) == [element]

    def test_defaults_by_material(self):
        elements = [
            SceneElement(type="box", dimensions=(10, 10, 10)),
            SceneElement(type="box", dimensions=(1, 1, 1)),
            SceneElement(type="box", dimensions=(1, 1, 1), material="metal"),
            SceneElement(type="box", dimensions=(1, 1, 1), material="glass"),
            SceneElement(type="box", dimensions=(1, 1, 1), material="rubber"),
        ]
        result = normalize_colors(elements)
        assert [e.color for e in result] == ["#D4A574", "#C4956A", "#C0C0C0", "#E5E7EB", "#8B7355"]
        assert result[0].material == "plastic"


class TestBuildFallback:
    """Tests for build_fallback()."""

    def test_plain_description_gives_enclosure(self):
        elements = build_fallback("A weather station housing")
        assert len(elements) == 6
        assert {e.type for e in elements} <= {"box", "rounded-box", "cylinder"}
        names = [e.name for e in elements]
        assert names == ["enclosure-body", "enclosure-lid", "screw-1", "screw-2", "screw-3", "screw-4"]

    def test_size_keywords(self):
        assert build_fallback("small sensor")[0].dimensions == (40.0, 16.0, 28.0)
        assert build_fallback("large hub")[0].dimensions == (120.0, 40.0, 80.0)
        assert build_fallback("sensor")[0].dimensions == (80.0, 22.0, 35.0)

    def test_screws_inside_corners(self):
        elements = build_fallback("sensor")
        for screw in elements[2:]:
            x, _, z = screw.position
            assert abs(x) == pytest.approx(40 - 6.0)
            assert abs(z) == pytest.approx(17.5 - 6.0)
            assert screw.rotation == (math.pi / 2, 0.0, 0.0)

    def test_object_description_gives_figure(self):
        elements = build_fallback("A small plush teddy bear toy")
        assert len(elements) == 12
        names = {e.name for e in elements}
        assert {"head", "body", "nose", "muzzle"} <= names
        assert {e.type for e in elements} == {"sphere", "capsule"}

    def test_forced_kind(self):
        assert len(build_fallback("teddy", kind=Kind.ENCLOSURE)) == 6
        assert len(build_fallback("router", kind="object")) == 12

    def test_fallback_has_bounds(self):
        assert compute_bounds(build_fallback("sensor")) is not None
        assert compute_bounds(build_fallback("teddy bear")) is not None


class TestBeautifyScene:
    """Tests for beautify_scene()."""

    def test_empty_scene_uses_fallback(self):
        result = beautify_scene([], "A small plush teddy bear toy")
        assert any(e.name == "head" for e in result)

    def test_enclosure_gets_lid_and_colors(self):
        body = SceneElement(type="box", position=(3, 3, 3), dimensions=(50, 20, 30))
        result = beautify_scene([body], "Raspberry Pi case")
        assert len(result) == 2
        assert all(e.color for e in result)
        assert result[0].color == "#D4A574"

    def test_object_description_skips_lid(self):
        head = SceneElement(type="sphere", dimensions=(20, 0, 0), name="head")
        result = beautify_scene([head], "teddy bear")
        assert not any("lid" in e.label for e in result)
