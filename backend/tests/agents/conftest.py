"""
Shared fixtures for pipeline tests

ScriptedGenerationService replays canned replies in order so every test
controls exactly what the "model" says.
"""
import sys
import os
from pathlib import Path
from typing import List, Union

import pytest
from sqlalchemy.orm import sessionmaker

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from database import make_engine, init_db
from page_agent.core import InputProcessor, RoutingPolicy
from page_agent.generation import GenerationTransportError
from page_agent.pipeline import build_engine
from page_agent.schemas import Generation, RunState, Task, TextGeneration, ToolCallGeneration
from page_agent.docs_index import DocsIndexer
from services import CheckpointStore, RunRecordStore, RunService


Reply = Union[str, Exception, TextGeneration, ToolCallGeneration]


class ScriptedGenerationService:
    """GenerationService fake: returns (or raises) the scripted replies in order"""

    def __init__(self, replies: List[Reply] = None):
        self.replies = list(replies or [])
        self.prompts = []

    def push(self, *replies: Reply):
        self.replies.extend(replies)

    def invoke(self, prompt, prior_messages=None) -> Generation:
        self.prompts.append(prompt)
        if not self.replies:
            raise AssertionError(f"Unexpected generation call #{len(self.prompts)}")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            return TextGeneration(value=reply)
        return reply

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def prompt_text(self, index: int = -1) -> str:
        """Concatenated message contents of one recorded prompt"""
        prompt = self.prompts[index]
        if isinstance(prompt, str):
            return prompt
        return "\n".join(str(message.content) for message in prompt)


def transport_error(message: str = "connection reset") -> GenerationTransportError:
    return GenerationTransportError(message)


@pytest.fixture
def generation():
    return ScriptedGenerationService()


@pytest.fixture
def docs_root(tmp_path) -> Path:
    """Small documentation tree"""
    root = tmp_path / "docs"
    (root / "components" / "form").mkdir(parents=True)
    (root / ".hidden").mkdir()

    (root / "components" / "form" / "input-text.md").write_text(
        "---\ntitle: InputText\n---\n\n# InputText\n\nSingle-line text input.\n\n"
        "## Basic usage\n\n```schema\n{\"type\": \"input-text\", \"name\": \"text\"}\n```\n",
        encoding="utf-8",
    )
    (root / "components" / "form" / "select.md").write_text(
        "---\ntitle: Select\n---\n\n# Select\n\nDropdown selector.\n\n"
        "```json\n{\"type\": \"select\", \"name\": \"s\"}\n```\n",
        encoding="utf-8",
    )
    (root / "components" / "crud.md").write_text(
        "# CRUD\n\nTable with pagination.\n\n## Columns\n\nColumn config.\n",
        encoding="utf-8",
    )
    (root / "components" / "chart.md").write_text(
        "# Chart\n\nBar and line charts.\n",
        encoding="utf-8",
    )
    (root / ".hidden" / "secret.md").write_text("# Hidden form\n", encoding="utf-8")
    (root / "notes.txt").write_text("not markdown", encoding="utf-8")
    return root


@pytest.fixture
def indexer(docs_root) -> DocsIndexer:
    return DocsIndexer(docs_root).build()


@pytest.fixture
def session_factory(tmp_path):
    """Session factory bound to a throwaway SQLite database"""
    engine = make_engine(f"sqlite:///{tmp_path / 'runs.db'}")
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def run_service(generation, indexer, session_factory) -> RunService:
    policy = RoutingPolicy(max_repair_attempts=3, max_replans=2)
    return RunService(
        engine_factory=lambda checkpointer: build_engine(
            generation, indexer, checkpointer, docs_associator="heuristic", policy=policy
        ),
        checkpoints=CheckpointStore(session_factory),
        records=RunRecordStore(session_factory),
        input_processor=InputProcessor(generation),
    )


def make_state(*tasks: Task, **kwargs) -> RunState:
    """RunState with the given tasks, already associated with documents"""
    fields = {"requirement": "A single text field form", "docs_associated": True}
    fields.update(kwargs)
    return RunState(tasks=list(tasks), **fields)


def make_task(task_id: str = "task-1", **kwargs) -> Task:
    fields = {"id": task_id, "description": "Text input for the user name", "type": "form-item-input-text"}
    fields.update(kwargs)
    return Task(**fields)
