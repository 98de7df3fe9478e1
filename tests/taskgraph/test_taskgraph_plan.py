"""
Tests for the plan/task model and plan normalization.
"""

import pytest

from taskgraph import (
    OutputType,
    Plan,
    PlanRule,
    PlanValidationError,
    RequestedOutput,
    Task,
    TaskAction,
    build_project_description,
    check_task_ids,
    execution_rounds,
    expand_requested_outputs,
    normalize_plan_for_request,
)


def task(task_id, output_type="bom", depends_on=None):
    return Task(id=task_id, output_type=OutputType(output_type), depends_on=depends_on or [])


class TestTaskFromDict:
    """Tests for Task and Plan JSON parsing."""

    def test_camel_case(self):
        t = Task.from_dict({
            "id": "t2",
            "agent": "OpenSCADAgent",
            "outputType": "openscad",
            "action": "regenerate",
            "instruction": "Make it taller",
            "dependsOn": ["t1"],
        })
        assert t.output_type == OutputType.OPENSCAD
        assert t.action == TaskAction.REGENERATE
        assert t.depends_on == ["t1"]
        assert t.to_dict()["dependsOn"] == ["t1"]

    def test_defaults(self):
        t = Task.from_dict({"id": "a", "output_type": "bom"})
        assert t.action == TaskAction.UPDATE
        assert t.agent == "BOMAgent"
        assert t.depends_on == []
        assert "dependsOn" not in t.to_dict()

    def test_unknown_output_type(self):
        with pytest.raises(ValueError, match="unknown output type"):
            Task.from_dict({"id": "a", "outputType": "poster"})

    def test_plan_skips_unreadable_tasks(self):
        plan = Plan.from_dict({
            "requestedOutputs": ["bom", "poster", "bom"],
            "tasks": [
                {"id": "t1", "outputType": "bom"},
                {"outputType": "firmware"},
                "not a task",
            ],
        })
        assert [t.id for t in plan.tasks] == ["t1"]
        assert plan.requested_outputs == [RequestedOutput.BOM]
        assert plan.version == 1


class TestExpandRequestedOutputs:
    """Tests for expand_requested_outputs()."""

    def test_3d_model_expands(self):
        assert expand_requested_outputs(["bom", "3d-model"]) == [
            OutputType.BOM,
            OutputType.SCENE_JSON,
            OutputType.OPENSCAD,
        ]

    def test_no_duplicates(self):
        assert expand_requested_outputs(["safety", "safety"]) == [OutputType.SAFETY]


class TestNormalizePlan:
    """Tests for normalize_plan_for_request()."""

    def test_3d_model_pairs_scene_and_openscad(self):
        plan = normalize_plan_for_request(Plan(), ["3d-model"], "Make it smaller")

        assert [t.id for t in plan.tasks] == ["t1", "t2"]
        scene, openscad = plan.tasks
        assert scene.output_type == OutputType.SCENE_JSON
        assert openscad.output_type == OutputType.OPENSCAD
        assert openscad.depends_on == ["t1"]
        assert scene.instruction == "Make it smaller"
        assert scene.action == TaskAction.UPDATE

    def test_assembly_depends_on_bom(self):
        plan = normalize_plan_for_request(Plan(), ["bom", "assembly"], "go")
        assert plan.tasks[1].depends_on == ["t1"]

    def test_assembly_without_bom(self):
        plan = normalize_plan_for_request(Plan(), ["assembly"], "go")
        assert plan.tasks[0].depends_on == []

    def test_drops_unrequested_and_keeps_drafted_details(self):
        drafted = Plan(tasks=[
            Task(id="x", output_type=OutputType.MARKETING, instruction="Write copy"),
            Task(id="y", output_type=OutputType.FIRMWARE, action=TaskAction.REGENERATE, instruction="Use ESP-IDF"),
            Task(id="z", output_type=OutputType.FIRMWARE, instruction="ignored duplicate"),
        ])
        plan = normalize_plan_for_request(drafted, ["firmware"], "message")

        assert len(plan.tasks) == 1
        fw = plan.tasks[0]
        assert fw.id == "t1"
        assert fw.action == TaskAction.REGENERATE
        assert fw.instruction == "Use ESP-IDF"
        assert plan.requested_outputs == [RequestedOutput.FIRMWARE]

    def test_normalized_plan_is_schedulable(self):
        plan = normalize_plan_for_request(Plan(), ["3d-model", "bom", "assembly", "dfm"], "go")
        rounds = execution_rounds(plan.tasks)
        assert [[t.output_type.value for t in r] for r in rounds] == [
            ["scene-json", "bom", "dfm"],
            ["openscad", "assembly"],
        ]


class TestTaskIdChecks:
    """Tests for check_task_ids() and execution_rounds()."""

    def test_duplicate_id(self):
        with pytest.raises(PlanValidationError) as exc_info:
            check_task_ids([task("a"), task("a", "firmware")])
        assert exc_info.value.rule == PlanRule.DUPLICATE_ID
        assert exc_info.value.task_ids == ["a"]

    def test_self_dependency(self):
        with pytest.raises(PlanValidationError) as exc_info:
            check_task_ids([task("a", depends_on=["a"])])
        assert exc_info.value.rule == PlanRule.SELF_DEPENDENCY

    def test_unknown_dependency(self):
        with pytest.raises(PlanValidationError) as exc_info:
            check_task_ids([task("a", depends_on=["ghost"])])
        assert exc_info.value.rule == PlanRule.UNKNOWN_DEPENDENCY
        assert "ghost" in str(exc_info.value)

    def test_cycle(self):
        tasks = [task("a", "bom", ["b"]), task("b", "assembly", ["a"])]
        with pytest.raises(PlanValidationError) as exc_info:
            execution_rounds(tasks)
        assert exc_info.value.rule == PlanRule.CYCLIC_DEPENDENCY
        assert set(exc_info.value.task_ids) == {"a", "b"}

    def test_rounds_keep_plan_order(self):
        tasks = [task("c", "safety"), task("a", "bom"), task("b", "assembly", ["a"])]
        rounds = execution_rounds(tasks)
        assert [[t.id for t in r] for r in rounds] == [["c", "a"], ["b"]]


class TestProjectDescription:
    """Tests for build_project_description()."""

    def test_both_empty(self):
        assert build_project_description(None, "  ") == ""

    def test_one_side(self):
        assert build_project_description("Desk lamp", None) == "Desk lamp"
        assert build_project_description("", "Smart lamp") == "Smart lamp"

    def test_containment(self):
        assert build_project_description("A smart desk lamp with USB-C", "smart desk lamp") == \
            "A smart desk lamp with USB-C"
        assert build_project_description("lamp", "A LAMP with a dimmer") == "A LAMP with a dimmer"

    def test_merge(self):
        assert build_project_description("make it blue", "Smart lamp") == \
            "Smart lamp\nUser notes: make it blue"
