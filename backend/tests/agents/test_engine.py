"""
End-to-end tests for the page generation engine

Every generation call is scripted, so each test spells out the exact
conversation a run has with the model.
"""
import json

import pytest

from page_agent.pipeline import build_engine, create_docs_associator, PipelineError
from page_agent.core import RoutingPolicy, SearchDocsAssociator
from page_agent.schemas import RunState, StructuredData, TaskStatus

from conftest import transport_error


FORM_PLAN = json.dumps([
    {"id": "task-1", "description": "Text input for the user name", "type": "form-item-input-text",
     "priority": 1},
    {"id": "task-2", "description": "Assemble the form page", "type": "form-assembly", "priority": 3},
])

INPUT_FRAGMENT = '{"type": "input-text", "name": "username", "label": "User name"}'
FORM_FRAGMENT = '{"type": "form", "body": [{"type": "input-text", "name": "username"}]}'
PAGE = {"type": "page", "body": {"type": "form", "body": [{"type": "input-text", "name": "username"}]}}


@pytest.fixture
def checkpoints():
    return []


@pytest.fixture
def make_engine(generation, indexer, checkpoints):
    def _make(max_repair_attempts=3, max_replans=2, max_steps=100, docs_associator="heuristic"):
        return build_engine(
            generation,
            indexer,
            checkpointer=lambda state: checkpoints.append(state.model_dump_json()),
            docs_associator=docs_associator,
            policy=RoutingPolicy(max_repair_attempts=max_repair_attempts, max_replans=max_replans),
            max_steps=max_steps,
        )
    return _make


class TestHappyPath:
    """Tests for runs that succeed first time"""

    def test_single_field_form(self, make_engine, generation, checkpoints):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))

        outcome = make_engine().run(RunState(requirement="A single text field form"))

        assert outcome.status == "completed"
        assert outcome.artifact == PAGE
        assert outcome.error is None
        assert generation.calls == 4
        assert [t.status for t in outcome.tasks] == [TaskStatus.COMPLETED, TaskStatus.COMPLETED]
        assert outcome.tasks[-1].is_assembly
        assert outcome.tasks[0].doc_hints[0].path == "components/form/input-text.md"

        event_types = [e.type for e in outcome.execution_log]
        assert event_types[0] == "task_start"
        assert "docs_found" in event_types
        assert event_types.count("task_complete") == 3

    def test_context_reaches_executor_prompt(self, make_engine, generation):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))
        make_engine().run(RunState(requirement="A single text field form"))
        executor_prompt = generation.prompt_text(1)
        assert "components/form/input-text.md" in executor_prompt
        assert '"name": "text"' in executor_prompt

    def test_cursor_never_moves_backwards(self, make_engine, generation, checkpoints):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))
        make_engine().run(RunState(requirement="A single text field form"))

        cursors = [json.loads(c)["cursor"] for c in checkpoints]
        assert cursors == sorted(cursors)
        assert cursors[-1] == 2

    def test_checkpoint_after_every_component_call(self, make_engine, generation, checkpoints):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))
        outcome = make_engine().run(RunState(requirement="A single text field form"))
        # plan, associate, (prepare, execute, validate) x 2, compose
        assert len(checkpoints) == 9
        assert json.loads(checkpoints[-1])["artifact"] == PAGE
        assert outcome.steps == 5

    def test_search_associator(self, make_engine, generation):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))
        outcome = make_engine(docs_associator="search").run(RunState(requirement="A single text field form"))
        assert outcome.status == "completed"
        assert outcome.tasks[0].doc_hints[0].summary

    def test_generation_associator_uses_calls(self, make_engine, generation):
        generation.push(
            FORM_PLAN,
            '["components/form/input-text.md"]',
            '["components/form/index.md"]',
            INPUT_FRAGMENT,
            FORM_FRAGMENT,
            json.dumps(PAGE),
        )
        outcome = make_engine(docs_associator="generation").run(RunState(requirement="A single text field form"))
        assert outcome.status == "completed"
        assert [h.path for h in outcome.tasks[0].doc_hints] == ["components/form/input-text.md"]
        assert outcome.tasks[1].doc_hints == []


class TestRepairLoop:
    """Tests for the Validator → Fixer loop"""

    def test_missing_dependency_fixed_once(self, make_engine, generation):
        plan = json.dumps([
            {"id": "task-1", "description": "Text showing the total", "type": "tpl", "dataDependencies": ["total"]},
            {"id": "task-2", "description": "Assemble the page", "type": "page-assembly"},
        ])
        generation.push(
            plan,
            '{"type": "tpl", "tpl": "Sum"}',
            '{"type": "tpl", "tpl": "${total}"}',
            '{"type": "page", "body": []}',
            '{"type": "page", "body": [{"type": "tpl", "tpl": "${total}"}]}',
        )
        state = RunState(requirement="Show the total", structured_data=StructuredData(content={"total": 42}))

        outcome = make_engine().run(state)

        task = outcome.tasks[0]
        assert task.status == TaskStatus.COMPLETED
        assert task.retry_count == 1
        assert task.result == {"type": "tpl", "tpl": "${total}"}
        assert outcome.artifact["data"] == {"total": 42}
        assert generation.calls == 5

    def test_exhausted_repairs_fail_the_task(self, make_engine, generation):
        plan = json.dumps([{"id": "task-1", "description": "Assemble the form page", "type": "page-assembly"}])
        generation.push(plan, "not json", "still not json", "nope")

        outcome = make_engine(max_repair_attempts=2, max_replans=0).run(RunState(requirement="A form"))

        assert outcome.status == "completed"
        assert outcome.tasks[0].status == TaskStatus.FAILED
        assert "Repair attempts exhausted" in outcome.tasks[0].error_message
        assert outcome.artifact == {"type": "container", "body": []}
        assert generation.calls == 4

    def test_exhausted_repairs_trigger_replan(self, make_engine, generation):
        plan = json.dumps([{"id": "task-1", "description": "Assemble the form page", "type": "page-assembly"}])
        generation.push(
            plan, "not json", "nope",
            plan, FORM_FRAGMENT, json.dumps(PAGE),
        )

        outcome = make_engine(max_repair_attempts=1, max_replans=1).run(RunState(requirement="A form"))

        assert outcome.artifact == PAGE
        assert "Repair attempts exhausted" in generation.prompt_text(3)


class TestFailurePaths:
    """Tests for transport failures and fallbacks"""

    def test_executor_failure_replans_instead_of_fixing(self, make_engine, generation):
        generation.push(
            FORM_PLAN,
            transport_error("quota exceeded"),
            FORM_PLAN,
            INPUT_FRAGMENT,
            FORM_FRAGMENT,
            json.dumps(PAGE),
        )

        outcome = make_engine().run(RunState(requirement="A single text field form"))

        assert outcome.artifact == PAGE
        replan_prompt = generation.prompt_text(2)
        assert "quota exceeded" in replan_prompt
        assert all(t.retry_count == 0 for t in outcome.tasks)

    def test_every_call_fails(self, make_engine, generation):
        generation.push(transport_error(), transport_error(), transport_error())

        outcome = make_engine(max_replans=2).run(RunState(requirement="A single text field form"))

        assert outcome.status == "completed"
        assert outcome.artifact == {"type": "container", "body": []}
        assert "No task produced a result" in outcome.error
        assert generation.calls == 3

    def test_all_generation_after_planning_fails(self, make_engine, generation):
        generation.push(FORM_PLAN, transport_error(), transport_error())

        outcome = make_engine(max_replans=1).run(RunState(requirement="A single text field form"))

        assert len(outcome.tasks) >= 1
        assert outcome.artifact == {"type": "container", "body": []}

    def test_composer_failure_falls_back(self, make_engine, generation):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, transport_error())

        outcome = make_engine().run(RunState(requirement="A single text field form"))

        assert outcome.status == "completed"
        assert outcome.artifact["type"] == "container"
        assert len(outcome.artifact["body"]) == 2
        assert "Composition failed" in outcome.error

    def test_step_ceiling(self, make_engine, generation):
        generation.push(FORM_PLAN, "garbage")

        outcome = make_engine(max_steps=3).run(RunState(requirement="A single text field form"))

        assert outcome.status == "error"
        assert outcome.steps == 3
        assert "step ceiling" in outcome.error
        assert outcome.artifact is None
        assert outcome.tasks[0].status == TaskStatus.JSON_ERROR
        assert outcome.execution_log[-1].type == "error"


class TestResumeAndRetry:
    """Tests for continuing a run from persisted state"""

    def test_resume_from_checkpoint(self, make_engine, generation, checkpoints):
        generation.push(FORM_PLAN, RuntimeError("worker killed"))
        with pytest.raises(RuntimeError):
            make_engine().run(RunState(requirement="A single text field form"))

        restored = RunState.model_validate_json(checkpoints[-1])
        assert restored.docs_associated is True
        assert restored.tasks[0].status == TaskStatus.PENDING
        assert restored.context_documents[0].path == "components/form/input-text.md"

        generation.push(INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))
        outcome = make_engine().run(restored)

        assert outcome.artifact == PAGE
        assert outcome.run_id == restored.run_id
        # No second planning call
        assert generation.calls == 5

    def test_retry_regenerates_one_task(self, make_engine, generation):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))
        engine = make_engine()
        state = RunState(requirement="A single text field form")
        engine.run(state)

        state.artifact = None
        state.tasks_to_retry = [0]
        generation.push('{"type": "input-text", "name": "nickname"}', '{"type": "page", "body": []}')
        outcome = engine.run(state)

        assert outcome.tasks[0].result["name"] == "nickname"
        assert outcome.tasks[1].result == json.loads(FORM_FRAGMENT)
        assert outcome.artifact == {"type": "page", "body": []}
        assert state.retry_index is None
        assert state.cursor == 2

    def test_retry_prompt_carries_document_context(self, make_engine, generation):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))
        engine = make_engine()
        state = RunState(requirement="A single text field form")
        engine.run(state)
        assert state.context_documents == []

        state.artifact = None
        state.tasks_to_retry = [0]
        generation.push('{"type": "input-text", "name": "nickname"}', '{"type": "page", "body": []}')
        engine.run(state)

        retry_prompt = generation.prompt_text(4)
        assert "components/form/input-text.md" in retry_prompt
        assert "Single-line text input." in retry_prompt

    def test_unknown_retry_index_ignored(self, make_engine, generation):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))
        engine = make_engine()
        state = RunState(requirement="A single text field form")
        engine.run(state)

        state.artifact = None
        state.tasks_to_retry = [7]
        generation.push(json.dumps(PAGE))
        outcome = engine.run(state)

        assert outcome.artifact == PAGE
        assert generation.calls == 5


class TestPipelineWiring:
    """Tests for engine assembly"""

    def test_unknown_associator(self, generation, indexer):
        with pytest.raises(PipelineError):
            create_docs_associator("telepathy", indexer, generation)

    def test_search_associator_wiring(self, generation, indexer):
        assert isinstance(create_docs_associator("search", indexer, generation), SearchDocsAssociator)
