"""
Tests for the six scene-pipeline agents.

Covers:
1. Model path: prompt built, response validated into typed results
2. Fallback path: no client, invocation errors, unparseable responses
3. Stage-specific fallbacks (text vision, emergency refine, default polish)
"""

import json

import pytest

from scene import SceneElement
from automation.agents import (
    AGENT_CLASSES,
    AgentKind,
    CriticAgent,
    CritiqueResult,
    RefinerAgent,
    StageContext,
    StructurePlannerAgent,
    VisionAgent,
    VisualCriticAgent,
    VisualRefinerAgent,
    apply_fallback_polish,
    build_pipeline_agents,
    detect_type_mismatch,
    infer_from_description,
    organic_to_boxes,
)
from automation.llm_healthcheck import TransientLLMError


class MockLLMClient:
    """Mock LLM client returning canned responses in order."""

    def __init__(self, responses: list = None):
        self.responses = list(responses or [])
        self.prompts = []
        self.images = []

    def invoke(self, prompt: str, image=None) -> str:
        self.prompts.append(prompt)
        self.images.append(image)
        if not self.responses:
            return ""
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


TEDDY = "A small plush teddy bear toy"
ENCLOSURE = "ESP32 weather station enclosure"


def _box(name="body"):
    return SceneElement(type="box", dimensions=(60, 20, 40), name=name)


def _sphere(name="head"):
    return SceneElement(type="sphere", dimensions=(10, 0, 0), name=name)


class TestRegistry:
    """Tests for the agent registry."""

    def test_every_kind_registered(self):
        assert set(AGENT_CLASSES) == set(AgentKind)

    def test_pipeline_agents_share_client(self):
        client = MockLLMClient()
        agents = build_pipeline_agents(client)
        assert all(agent.llm_client is client for agent in agents.values())
        assert isinstance(agents[AgentKind.CRITIC], CriticAgent)


class TestVisionAgent:
    """Tests for the vision stage."""

    def test_text_inference_organic(self):
        analysis = infer_from_description(TEDDY)
        assert analysis.object_type == "organic"
        assert analysis.confidence == pytest.approx(0.4)
        assert "head" in [p.name for p in analysis.main_parts]

    def test_text_inference_mechanical(self):
        assert infer_from_description("Motor mount bracket").object_type == "mechanical"

    def test_text_inference_word_boundaries(self):
        # "category" must not match "cat"
        assert infer_from_description("Product category display").object_type == "enclosure"

    def test_no_image_skips_model(self):
        client = MockLLMClient(['{"objectType": "mechanical"}'])
        run = VisionAgent(client).run(StageContext(description=TEDDY))

        assert run.used_fallback
        assert client.prompts == []
        assert run.value.object_type == "organic"

    def test_image_analysis(self):
        response = json.dumps({
            "objectType": "organic",
            "objectName": "Teddy",
            "mainParts": [{"name": "head", "shape": "sphere", "relativeSize": "medium"}],
            "suggestedColors": ["#8B4513", "brown"],
            "confidence": 0.9,
        })
        client = MockLLMClient([f"Here you go:\n```json\n{response}\n```"])
        run = VisionAgent(client).run(StageContext(description="", image="data:image/png;base64,AAAA"))

        assert not run.used_fallback
        assert client.images == ["data:image/png;base64,AAAA"]
        assert run.value.object_name == "Teddy"
        assert run.value.suggested_colors == ["#8B4513"]
        assert run.value.confidence == pytest.approx(0.9)

    def test_image_failure_lowers_confidence(self):
        client = MockLLMClient([TransientLLMError("timed out")])
        run = VisionAgent(client).run(StageContext(description=TEDDY, image="AAAA"))

        assert run.used_fallback
        assert "timed out" in run.error
        assert run.value.confidence == pytest.approx(0.3)
        assert run.value.object_type == "organic"


class TestStructurePlannerAgent:
    """Tests for the structure planner."""

    def test_model_elements_sanitized(self):
        response = json.dumps({
            "elements": [
                {"type": "ball", "position": [0, 40, 0], "dimensions": [30, 0, 0], "name": "head"},
                {"type": "pill", "position": [0, 0, 0], "dimensions": [20, 50, 0], "name": "torso"},
            ],
            "reasoning": "Two parts",
        })
        context = StageContext(description=TEDDY, analysis=infer_from_description(TEDDY))
        run = StructurePlannerAgent(MockLLMClient([response])).run(context)

        assert not run.used_fallback
        assert [e.type for e in run.value.elements] == ["sphere", "capsule"]
        assert run.value.reasoning == "Two parts"

    def test_empty_elements_fall_back(self):
        context = StageContext(description=TEDDY, analysis=infer_from_description(TEDDY))
        run = StructurePlannerAgent(MockLLMClient(['{"elements": []}'])).run(context)

        assert run.used_fallback
        names = [e.label for e in run.value.elements]
        assert "head" in names

    def test_no_client_enclosure_fallback(self):
        context = StageContext(description=ENCLOSURE, analysis=infer_from_description(ENCLOSURE))
        run = StructurePlannerAgent(None).run(context)

        assert run.used_fallback
        assert len(run.value.elements) == 6


class TestCriticAgent:
    """Tests for the structural critic."""

    def test_validate_clamps_and_defaults(self):
        context = StageContext(description=ENCLOSURE, scene=[_box()])
        run = CriticAgent(MockLLMClient(['{"score": 12, "matchesInput": false}'])).run(context)

        assert not run.used_fallback
        assert run.value.score == 10
        assert run.value.is_acceptable is True
        assert run.value.matches_input is False

    def test_unparseable_falls_back(self):
        context = StageContext(
            description=ENCLOSURE,
            analysis=infer_from_description(ENCLOSURE),
            scene=[_box()],
        )
        run = CriticAgent(MockLLMClient(["I think it looks fine!"])).run(context)

        assert run.used_fallback
        assert run.value.score == 6
        assert run.value.matches_input

    def test_fallback_detects_mismatch(self):
        context = StageContext(
            description=ENCLOSURE,
            analysis=infer_from_description(ENCLOSURE),
            scene=[_sphere(), _sphere("body")],
        )
        critique = CriticAgent(None).run(context).value

        assert critique.score == 2
        assert not critique.matches_input
        assert critique.issues[0].severity == "critical"

    def test_detect_type_mismatch(self):
        assert detect_type_mismatch("organic", [_box()])
        assert not detect_type_mismatch("organic", [_box(), _sphere()])
        assert not detect_type_mismatch("mechanical", [_sphere()])


class TestRefinerAgent:
    """Tests for the structural refiner."""

    def _context(self, description, scene, matches_input=True):
        return StageContext(
            description=description,
            analysis=infer_from_description(description),
            scene=scene,
            critique=CritiqueResult(score=3, is_acceptable=False, matches_input=matches_input),
        )

    def test_bare_array_response(self):
        response = '[{"type": "box", "dimensions": [50, 20, 30], "name": "shell"}]'
        run = RefinerAgent(MockLLMClient([response])).run(self._context(ENCLOSURE, [_box()]))

        assert run.value.success
        assert run.value.changes == ["Refinement applied"]
        assert run.value.elements[0].name == "shell"

    def test_emergency_fix_for_enclosure_mismatch(self):
        context = self._context(ENCLOSURE, [_sphere()], matches_input=False)
        run = RefinerAgent(None).run(context)

        assert run.value.success
        assert run.value.elements[0].type == "rounded-box"
        assert run.value.elements[0].dimensions == (20, 10, 20)

    def test_failure_without_mismatch(self):
        scene = [_box()]
        run = RefinerAgent(MockLLMClient([RuntimeError("boom")])).run(self._context(ENCLOSURE, scene))

        assert run.used_fallback
        assert not run.value.success
        assert run.value.elements == scene

    def test_organic_to_boxes_keeps_boxes(self):
        scene = [_box(), _sphere()]
        fixed = organic_to_boxes(scene)
        assert fixed[0] is scene[0]
        assert fixed[1].type == "rounded-box"


class TestVisualAgents:
    """Tests for the visual critic and visual refiner."""

    def test_visual_critic_fallback(self):
        critique = VisualCriticAgent(None).run(StageContext(description=ENCLOSURE, scene=[_box()])).value
        assert critique.score == 6
        assert not critique.is_acceptable
        assert critique.issues[0].category == "polish"

    def test_visual_critic_clamps_score(self):
        run = VisualCriticAgent(MockLLMClient(['{"score": 0}'])).run(
            StageContext(description=ENCLOSURE, scene=[_box()])
        )
        assert run.value.score == 1
        assert not run.value.is_acceptable

    def test_visual_refiner_wrapped_scene(self):
        response = json.dumps({
            "refinedScene": {"elements": [{"type": "rounded-box", "dimensions": [60, 20, 40], "color": "#F8FAFC"}]},
            "changesApplied": ["Lighter body"],
        })
        run = VisualRefinerAgent(MockLLMClient([response])).run(
            StageContext(description=ENCLOSURE, scene=[_box()])
        )
        assert run.value.success
        assert run.value.changes == ["Lighter body"]
        assert run.value.elements[0].color == "#F8FAFC"

    def test_fallback_polish(self):
        scene = [
            SceneElement(type="rounded-box", dimensions=(60, 20, 40), color="#808080", radius=1.0),
            SceneElement(type="cylinder", dimensions=(2, 5, 0), color="#333333"),
        ]
        polished = apply_fallback_polish(scene)

        assert polished[0].color == "#F8FAFC"
        assert polished[1].color == "#E2E8F0"
        assert polished[0].radius == 3.0
        assert polished[0].smoothness == 8.0
        assert polished[0].material == "plastic"
        assert polished[1].material == "metal"

    def test_fallback_polish_noop_is_not_success(self):
        scene = [SceneElement(
            type="box", dimensions=(60, 20, 40), color="#F8FAFC", material="plastic",
        )]
        run = VisualRefinerAgent(None).run(StageContext(description=ENCLOSURE, scene=scene))

        assert run.used_fallback
        assert not run.value.success
        assert run.value.elements == scene
