"""
Tests for kind classification, scene wire helpers and fallback OpenSCAD.
"""

import json

import pytest

from scene import (
    KeywordKindClassifier,
    Kind,
    KindClassifier,
    SceneElement,
    classify_kind,
    dump_scene,
    fallback_openscad,
    infer_kind_from_text,
    parse_scene_elements,
    set_kind_classifier,
)


class TestClassifyKind:
    """Tests for classify_kind on elements and text."""

    def test_anatomical_name(self):
        elements = [{"type": "box", "dimensions": [1, 1, 1], "name": "left-ear"}]
        assert classify_kind(elements) == Kind.OBJECT

    def test_anatomical_plural(self):
        elements = [SceneElement(type="box", dimensions=(1, 1, 1), name="eyes")]
        assert classify_kind(elements) == Kind.OBJECT

    def test_header_is_not_head(self):
        elements = [
            SceneElement(type="box", dimensions=(1, 1, 1), name="pin-header"),
            SceneElement(type="box", dimensions=(1, 1, 1), name="gear"),
        ]
        assert classify_kind(elements) == Kind.ENCLOSURE

    def test_organic_share(self):
        elements = [
            SceneElement(type="sphere", dimensions=(1, 0, 0)),
            SceneElement(type="capsule", dimensions=(1, 2, 0)),
            SceneElement(type="box", dimensions=(1, 1, 1)),
        ]
        assert classify_kind(elements) == Kind.OBJECT

    def test_organic_must_outnumber_box_like(self):
        elements = [
            SceneElement(type="sphere", dimensions=(1, 0, 0)),
            SceneElement(type="sphere", dimensions=(1, 0, 0)),
            SceneElement(type="box", dimensions=(1, 1, 1)),
            SceneElement(type="box", dimensions=(1, 1, 1)),
        ]
        assert classify_kind(elements) == Kind.ENCLOSURE

    def test_empty_defaults_to_enclosure(self):
        assert classify_kind([]) == Kind.ENCLOSURE
        assert classify_kind(None) == Kind.ENCLOSURE

    def test_text(self):
        assert classify_kind("A small plush teddy bear toy") == Kind.OBJECT
        assert classify_kind("Soft  toy for kids") == Kind.OBJECT
        assert classify_kind("ESP32 weather station enclosure") == Kind.ENCLOSURE
        assert classify_kind("ball bearing mount") == Kind.ENCLOSURE

    def test_infer_kind_uses_analysis(self):
        analysis = {"summary": "A plush companion", "components": ["speaker"], "features": []}
        assert infer_kind_from_text("Bluetooth speaker", analysis) == Kind.OBJECT
        assert infer_kind_from_text("Bluetooth speaker", {"summary": 3}) == Kind.ENCLOSURE


class TestClassifierStrategy:
    """Tests for swapping the kind classifier."""

    def test_custom_classifier(self):
        class AlwaysObject(KindClassifier):
            def classify_text(self, text):
                return Kind.OBJECT

            def classify_elements(self, elements):
                return Kind.OBJECT

        previous = set_kind_classifier(AlwaysObject())
        try:
            assert classify_kind("router case") == Kind.OBJECT
        finally:
            set_kind_classifier(previous)
        assert classify_kind("router case") == Kind.ENCLOSURE

    def test_per_call_classifier(self):
        strict = KeywordKindClassifier(object_keywords=("robot",))
        assert classify_kind("robot arm", classifier=strict) == Kind.OBJECT
        assert classify_kind("teddy", classifier=strict) == Kind.ENCLOSURE


class TestSceneWire:
    """Tests for parse_scene_elements and dump_scene."""

    def test_bare_array(self):
        text = json.dumps([{"type": "box", "dimensions": [10, 10, 10]}])
        elements = parse_scene_elements(text)
        assert len(elements) == 1
        assert elements[0].type == "box"

    def test_wrapped_object(self):
        text = json.dumps({"elements": [{"type": "sphere", "dimensions": [5, 0, 0]}]})
        assert parse_scene_elements(text)[0].type == "sphere"

    def test_code_fence_and_prose(self):
        text = "Here you go:\n```json\n[{\"type\": \"cube\", \"dimensions\": [2, 2, 2]}]\n```\nEnjoy!"
        elements = parse_scene_elements(text)
        assert elements[0].type == "box"

    def test_fenced_only(self):
        text = "```json\n[{\"type\": \"box\", \"dimensions\": [2, 2, 2]}]\n```"
        assert len(parse_scene_elements(text)) == 1

    @pytest.mark.parametrize("text", [None, "", "not json", "{}", "[\"x\", 1]"])
    def test_unusable_returns_none(self, text):
        assert parse_scene_elements(text) is None

    def test_dump_emits_bare_array(self):
        elements = [SceneElement(type="sphere", dimensions=(20, 0, 0), name="head", color="#A0522D")]
        payload = json.loads(dump_scene(elements))
        assert payload == [{
            "type": "sphere",
            "position": [0, 0, 0],
            "rotation": [0, 0, 0],
            "dimensions": [20, 0, 0],
            "color": "#A0522D",
            "name": "head",
        }]

    def test_dump_then_parse(self):
        elements = [SceneElement(type="capsule", position=(1.5, 0, 0), dimensions=(3, 9, 0), material="rubber")]
        assert parse_scene_elements(dump_scene(elements)) == elements


class TestFallbackOpenSCAD:
    """Tests for fallback_openscad."""

    def test_enclosure_sizes_from_bounds(self):
        source = fallback_openscad("Sensor box", {"width": 70, "height": 30, "depth": 40})
        assert "w = 80;" in source
        assert "d = 50;" in source
        assert "h = 36;" in source
        assert "difference()" in source

    def test_enclosure_minimums(self):
        source = fallback_openscad("Tiny box", {"width": 5, "height": 5, "depth": 5})
        assert "w = 60;" in source
        assert "d = 25;" in source
        assert "h = 18;" in source

    def test_enclosure_without_bounds(self):
        source = fallback_openscad("Sensor box", None)
        assert "w = 90;" in source

    def test_toy_figure(self):
        source = fallback_openscad("teddy bear", {"width": 10, "height": 50, "depth": 10})
        assert "h = 160;" in source
        assert "module capsule" in source
        assert source.startswith("// Project: teddy bear")
