"""
Unit tests for the Validator and the Error Fixer

Tests the validator.py and error_fixer.py modules including:
- Shape and data dependency checks
- Cursor advancement and retry-target handling
- Repair calls and their bookkeeping
"""
import pytest

from page_agent.core.validator import Validator, check_payload, missing_dependencies
from page_agent.core.error_fixer import ErrorFixer
from page_agent.schemas import ContextDocument, StructuredData, TaskStatus

from conftest import make_state, make_task, transport_error


@pytest.fixture
def validator():
    return Validator()


@pytest.fixture
def fixer(generation):
    return ErrorFixer(generation)


class TestCheckPayload:
    """Tests for the shallow payload checks"""

    def test_object_with_type(self):
        assert check_payload({"type": "form"}, []) is None

    def test_array_fragment(self):
        assert check_payload([{"type": "tpl"}], []) is None

    def test_object_without_type(self):
        assert "type" in check_payload({"name": "x"}, [])

    def test_scalar(self):
        assert "str" in check_payload("hello", [])

    def test_missing_dependencies(self):
        payload = {"type": "tpl", "tpl": "${name}"}
        assert missing_dependencies(payload, ["name", "email"]) == ["email"]
        error = check_payload(payload, ["name", "email"])
        assert "email" in error
        assert "${email}" in error


class TestValidator:
    """Tests for accepting and rejecting candidates"""

    def test_accepts_and_advances(self, validator):
        task = make_task(status=TaskStatus.IN_PROGRESS,
                         raw_result='Sure:\n```json\n{"type": "input-text", "name": "username"}\n```')
        state = make_state(task, make_task("task-2"),
                           context_documents=[ContextDocument(path="a.md")])

        validator.validate(state)

        assert task.status == TaskStatus.COMPLETED
        assert task.result == {"type": "input-text", "name": "username"}
        assert state.cursor == 1
        assert state.context_documents == []
        assert state.execution_log[-1].type == "task_complete"

    def test_rejects_unparseable(self, validator):
        task = make_task(status=TaskStatus.IN_PROGRESS, raw_result="I am not JSON")
        state = make_state(task)

        validator.validate(state)

        assert task.status == TaskStatus.JSON_ERROR
        assert task.error_message.startswith("JSON extraction failed")
        assert state.cursor == 0
        assert state.execution_log[-1].type == "error"

    def test_rejects_missing_dependency(self, validator):
        task = make_task(status=TaskStatus.IN_PROGRESS, data_dependencies=["email"],
                         raw_result='{"type": "input-text", "name": "username"}')
        state = make_state(task)

        validator.validate(state)

        assert task.status == TaskStatus.JSON_ERROR
        assert "email" in task.error_message
        assert task.result is None

    def test_accepts_with_dependency_present(self, validator):
        task = make_task(status=TaskStatus.IN_PROGRESS, data_dependencies=["email"],
                         raw_result='{"type": "input-email", "name": "email"}')
        state = make_state(task)
        validator.validate(state)
        assert task.status == TaskStatus.COMPLETED

    def test_failed_task_untouched(self, validator):
        task = make_task(status=TaskStatus.FAILED, error_message="Generation failed: timeout")
        state = make_state(task)
        validator.validate(state)
        assert task.status == TaskStatus.FAILED
        assert state.execution_log == []

    def test_retry_success_keeps_cursor(self, validator):
        first = make_task("task-1", status=TaskStatus.IN_PROGRESS, raw_result='{"type": "input-text"}')
        second = make_task("task-2", status=TaskStatus.COMPLETED, result={"type": "tpl"})
        state = make_state(first, second, cursor=2, retry_index=0)

        validator.validate(state)

        assert first.status == TaskStatus.COMPLETED
        assert state.retry_index is None
        assert state.cursor == 2


class TestErrorFixer:
    """Tests for repair calls"""

    def test_replaces_raw_result_and_counts(self, fixer, generation):
        task = make_task(status=TaskStatus.JSON_ERROR, raw_result="{type: input-text",
                         error_message="JSON extraction failed: Invalid JSON")
        state = make_state(task)
        generation.push('{"type": "input-text", "name": "username"}')

        fixer.fix(state)

        assert task.retry_count == 1
        assert task.raw_result == '{"type": "input-text", "name": "username"}'
        assert task.status == TaskStatus.JSON_ERROR
        assert state.execution_log[-1].message == "Repairing JSON (attempt 1)"

        prompt = generation.prompt_text()
        assert "{type: input-text" in prompt
        assert "JSON extraction failed" in prompt

    def test_prompt_includes_binding_rules(self, fixer, generation):
        task = make_task(status=TaskStatus.JSON_ERROR, raw_result="{}", error_message="Missing data dependencies: city",
                         data_dependencies=["city"])
        state = make_state(task, structured_data=StructuredData(content={"city": "Oslo"}))
        generation.push('{"type": "tpl", "tpl": "${city}"}')

        fixer.fix(state)

        assert "MUST reference these fields: city" in generation.prompt_text()

    def test_transport_failure_still_counts(self, fixer, generation):
        task = make_task(status=TaskStatus.JSON_ERROR, raw_result="oops", error_message="bad")
        state = make_state(task)
        generation.push(transport_error())

        fixer.fix(state)

        assert task.retry_count == 1
        assert task.raw_result == "oops"
        assert task.status == TaskStatus.JSON_ERROR
        assert state.execution_log[-1].type == "error"

    def test_ignores_other_statuses(self, fixer, generation):
        state = make_state(make_task(status=TaskStatus.IN_PROGRESS))
        fixer.fix(state)
        assert generation.calls == 0

    def test_fix_then_validate(self, fixer, validator, generation):
        task = make_task(status=TaskStatus.JSON_ERROR, raw_result="garbage", error_message="bad")
        state = make_state(task)
        generation.push('{"type": "input-text", "name": "username",}')

        fixer.fix(state)
        validator.validate(state)

        assert task.status == TaskStatus.COMPLETED
        assert state.cursor == 1
