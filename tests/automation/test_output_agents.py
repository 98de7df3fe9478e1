"""
Tests for the scheduler output agents, the failure hook and plan drafting.
"""

import json

import pytest

from scene import SceneElement, parse_scene_elements
from taskgraph import (
    ExecutionResult,
    OutputType,
    Plan,
    ProjectContext,
    RequestedOutput,
    Task,
    TaskAction,
    TaskExecutionContext,
)
from automation.output_agents import (
    OUTPUT_AGENTS,
    BOMAgent,
    FirmwareAgent,
    OpenSCADAgent,
    SafetyAgent,
    SceneJsonAgent,
    execute_agent_plan,
    recover,
    scene_from_context,
)
from automation.plan_agent import draft_plan


class MockLLMClient:
    """Mock LLM client returning canned responses in order."""

    def __init__(self, responses: list = None):
        self.responses = list(responses or [])
        self.prompts = []

    def invoke(self, prompt: str, image=None) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            return ""
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


BOM_TABLE = "| Item | Qty |\n| --- | --- |\n| ESP32 | 1 |"
BOX = SceneElement(type="box", dimensions=(60, 20, 40), name="body")


def make_ctx(output_type, outputs=None, action=TaskAction.UPDATE, instruction="", depends_on=None,
             dependency_results=None, description="USB hub enclosure"):
    task = Task(
        id="t9",
        output_type=output_type,
        action=action,
        instruction=instruction,
        depends_on=depends_on or [],
    )
    return TaskExecutionContext(
        task=task,
        project=ProjectContext(description=description),
        outputs=outputs or {},
        dependency_results=dependency_results or {},
    )


def scene_dependency():
    return {
        "t1": ExecutionResult(OutputType.SCENE_JSON, "[]", "Generated 3D scene", payload=[BOX]),
    }


class TestRegistry:
    """Tests for the output agent table."""

    def test_every_output_type_has_agent(self):
        assert set(OUTPUT_AGENTS) == set(OutputType)

    def test_text_agent_classes(self):
        assert FirmwareAgent.__name__ == "FirmwareAgent"
        assert FirmwareAgent.output_type == OutputType.FIRMWARE


class TestSceneFromContext:
    """Tests for scene_from_context()."""

    def test_dependency_payload_wins(self):
        current = json.dumps([{"type": "sphere", "dimensions": [5, 0, 0]}])
        ctx = make_ctx(
            OutputType.OPENSCAD,
            outputs={"scene-json": current},
            depends_on=["t1"],
            dependency_results=scene_dependency(),
        )
        assert scene_from_context(ctx) == [BOX]

    def test_current_scene_parsed_with_colors(self):
        current = json.dumps([{"type": "box", "dimensions": [10, 10, 10]}])
        scene = scene_from_context(make_ctx(OutputType.OPENSCAD, outputs={"scene-json": current}))
        assert scene[0].color.startswith("#")

    def test_nothing_available(self):
        assert scene_from_context(make_ctx(OutputType.OPENSCAD)) is None


class TestOpenSCADAgent:
    """Tests for OpenSCADAgent."""

    def test_source_from_model(self):
        client = MockLLMClient(["```openscad\ncube([60, 40, 20]);\n```"])
        ctx = make_ctx(OutputType.OPENSCAD, depends_on=["t1"], dependency_results=scene_dependency())
        result = OpenSCADAgent(client).run(ctx)

        assert result.content == "cube([60, 40, 20]);"
        assert result.summary == "Generated OpenSCAD model"
        assert "Derived from 3D scene bounds" in client.prompts[0]

    def test_empty_response_uses_fallback(self):
        result = OpenSCADAgent(MockLLMClient([""])).run(make_ctx(OutputType.OPENSCAD))

        assert result.summary.startswith("Used fallback OpenSCAD")
        assert "No response from model" in result.summary
        assert "// Project:" in result.content

    def test_error_keeps_current_source(self):
        ctx = make_ctx(OutputType.OPENSCAD, outputs={"openscad": "sphere(5);"})
        result = OpenSCADAgent(MockLLMClient([RuntimeError("boom")])).run(ctx)

        assert result.content == "sphere(5);"
        assert result.summary == "Used fallback OpenSCAD (error: boom)"

    def test_object_size_hint_without_scene(self):
        client = MockLLMClient(["cube(1);"])
        OpenSCADAgent(client).run(make_ctx(OutputType.OPENSCAD, description="A small plush teddy bear toy"))
        assert "hand-sized object" in client.prompts[0]


class TestBOMAgent:
    """Tests for BOMAgent."""

    def test_table_extracted_from_prose(self):
        client = MockLLMClient([f"Here is the BOM:\n\n{BOM_TABLE}\n\nLet me know!"])
        result = BOMAgent(client).run(make_ctx(OutputType.BOM))

        assert result.content == BOM_TABLE
        assert result.summary == "Generated BOM"

    def test_update_prompt_includes_current(self):
        client = MockLLMClient([BOM_TABLE])
        ctx = make_ctx(OutputType.BOM, outputs={"bom": BOM_TABLE}, instruction="Add a USB-C port")
        result = BOMAgent(client).run(ctx)

        assert result.summary == "Updated BOM"
        assert "| ESP32 | 1 |" in client.prompts[0]
        assert "Instruction: Add a USB-C port" in client.prompts[0]

    def test_regenerate_ignores_current(self):
        client = MockLLMClient([BOM_TABLE])
        ctx = make_ctx(OutputType.BOM, outputs={"bom": BOM_TABLE}, action=TaskAction.REGENERATE)
        result = BOMAgent(client).run(ctx)

        assert result.summary == "Generated BOM"
        assert "Current version" not in client.prompts[0]

    def test_empty_response_keeps_current(self):
        ctx = make_ctx(OutputType.BOM, outputs={"bom": BOM_TABLE})
        result = BOMAgent(MockLLMClient([""])).run(ctx)
        assert result.content == BOM_TABLE


class TestTextAgents:
    """Tests for the single-prompt text agents."""

    def test_prompt_includes_bom(self):
        client = MockLLMClient(["1. Hot surfaces"])
        result = SafetyAgent(client).run(make_ctx(OutputType.SAFETY, outputs={"bom": BOM_TABLE}))

        assert result.content == "1. Hot surfaces"
        assert result.summary == "Generated safety review"
        assert BOM_TABLE in client.prompts[0]

    def test_missing_bom_marked(self):
        client = MockLLMClient(["ok"])
        SafetyAgent(client).run(make_ctx(OutputType.SAFETY))
        assert "Not generated" in client.prompts[0]

    def test_empty_response_keeps_current(self):
        ctx = make_ctx(OutputType.FIRMWARE, outputs={"firmware": "void setup() {}"})
        result = FirmwareAgent(MockLLMClient(["  "])).run(ctx)
        assert result.content == "void setup() {}"

    def test_no_client_raises(self):
        with pytest.raises(RuntimeError, match="No model client"):
            FirmwareAgent(None).run(make_ctx(OutputType.FIRMWARE))


class TestSceneJsonAgent:
    """Tests for SceneJsonAgent without a model."""

    def test_fallback_pipeline_scene(self):
        result = SceneJsonAgent(None).run(make_ctx(OutputType.SCENE_JSON, action=TaskAction.REGENERATE))

        assert result.output_type == OutputType.SCENE_JSON
        assert result.summary.startswith("Generated 3D scene (")
        assert isinstance(result.payload, list) and result.payload
        assert parse_scene_elements(result.content) is not None
        # enclosures always end up with a lid
        assert any("lid" in e.label for e in result.payload)


class TestRecover:
    """Tests for the runner failure hook."""

    def test_failed_scene_task_gets_fallback_scene(self):
        result = recover(make_ctx(OutputType.SCENE_JSON), RuntimeError("model down"))

        assert result.summary == "Generated fallback 3D scene (error: model down)"
        assert len(result.payload) == 6
        assert all(e.color for e in result.payload)
        assert len(json.loads(result.content)) == 6

    def test_other_tasks_keep_current(self):
        ctx = make_ctx(OutputType.MARKETING, outputs={"marketing": "Buy it"})
        result = recover(ctx, ValueError("nope"))

        assert result.content == "Buy it"
        assert result.summary == "Failed to update (nope)"


class TestExecuteAgentPlan:
    """End to end over the output agents with no model."""

    def test_offline_plan(self):
        plan = {
            "requestedOutputs": ["3d-model", "bom"],
            "tasks": [
                {"id": "t1", "outputType": "scene-json", "action": "regenerate"},
                {"id": "t2", "outputType": "openscad", "dependsOn": ["t1"]},
                {"id": "t3", "outputType": "bom"},
            ],
        }
        outcome = execute_agent_plan(plan, {"description": "USB hub enclosure"}, None)

        assert set(outcome.outputs) == {"scene-json", "openscad"}
        assert outcome.failed == ["t3"]
        assert outcome.summaries["openscad"].startswith("Used fallback OpenSCAD")
        assert outcome.results["t3"].summary.startswith("Failed to update")
        assert "// Project:" in outcome.outputs["openscad"]


class TestDraftPlan:
    """Tests for draft_plan()."""

    def test_without_client(self):
        plan = draft_plan("Make it waterproof", ["3d-model", "safety"])

        assert [t.output_type for t in plan.tasks] == [
            OutputType.SCENE_JSON,
            OutputType.OPENSCAD,
            OutputType.SAFETY,
        ]
        assert plan.summary == "Proposed updates: 3d-model, safety"
        assert all(t.instruction == "Make it waterproof" for t in plan.tasks)

    def test_model_plan_normalized(self):
        response = json.dumps({
            "summary": "Rework the BOM",
            "tasks": [
                {"id": "a", "outputType": "bom", "action": "regenerate", "instruction": "Cheaper parts"},
                {"id": "b", "outputType": "marketing"},
            ],
        })
        client = MockLLMClient([response])
        project = ProjectContext(description="Desk lamp", outputs={"bom": BOM_TABLE})
        plan = draft_plan("cut costs", ["bom"], project, client)

        assert len(plan.tasks) == 1
        assert plan.tasks[0].action == TaskAction.REGENERATE
        assert plan.tasks[0].instruction == "Cheaper parts"
        assert plan.summary == "Rework the BOM"
        assert "Existing outputs: bom" in client.prompts[0]

    def test_garbage_response(self):
        plan = draft_plan("go", [RequestedOutput.FIRMWARE], llm_client=MockLLMClient(["no idea"]))
        assert [t.output_type for t in plan.tasks] == [OutputType.FIRMWARE]
        assert isinstance(plan, Plan)

    def test_client_error(self):
        plan = draft_plan("go", ["dfm"], llm_client=MockLLMClient([RuntimeError("down")]))
        assert [t.output_type for t in plan.tasks] == [OutputType.DFM]
