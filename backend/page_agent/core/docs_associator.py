"""
Doc Associator - Attach reference documentation to tasks

Responsibilities:
- Run once per plan (RunState.docs_associated guards re-entry)
- Skip tasks that have nothing to do with page building
- Attach at most three DocHints per relevant task
- Report what was found in a docs_found event

Three interchangeable strategies:
- HeuristicDocsAssociator: path scoring, no generation call
- SearchDocsAssociator: ranked hits from a search capability
- GenerationDocsAssociator: the generation service picks from a path list
"""
import logging
from typing import Callable, Dict, List, Sequence

from page_agent.docs_index import DocHit, tokenize
from page_agent.generation import GenerationService, GenerationTransportError
from page_agent.schemas import DocHint, RunState, Task, generation_text
from page_agent.core.prompts import DOCS_ASSOCIATION_PROMPT
from utils.json_extract import ExtractionError, extract

logger = logging.getLogger(__name__)


MAX_HINTS = 3
MIN_DESCRIPTION_WORD = 3

# Vocabulary deciding whether a task builds page components
RELEVANCE_KEYWORDS = [
    "amis",
    "form",
    "input",
    "select",
    "table",
    "crud",
    "page",
    "dialog",
    "drawer",
    "tabs",
    "wizard",
    "card",
    "button",
    "chart",
]

TYPE_TOKEN_WEIGHT = 3.0
KEYWORD_WEIGHT = 2.0
DESCRIPTION_WORD_WEIGHT = 1.0

SearchFn = Callable[[str, int], List[DocHit]]


def task_text(task: Task) -> str:
    return f"{task.type} {task.description}".lower()


def is_domain_relevant(task: Task) -> bool:
    """True if the task's type or description mentions a page-building keyword"""
    text = task_text(task)
    return any(keyword in text for keyword in RELEVANCE_KEYWORDS)


class DocsAssociator:
    """Base class: idempotency, relevance filtering and reporting"""

    name = "base"

    def associate(self, state: RunState) -> RunState:
        if state.docs_associated:
            logger.info("[DocsAssociator] Documents already associated, skipping")
            return state

        logger.info(f"[DocsAssociator] Associating documents for {len(state.tasks)} task(s) ({self.name})")
        found: Dict[str, List[str]] = {}
        for task in state.tasks:
            if not is_domain_relevant(task):
                continue
            task.doc_hints = self.select_hints(task, state)[:MAX_HINTS]
            found[task.id] = [hint.path for hint in task.doc_hints]

        total = sum(len(paths) for paths in found.values())
        state.docs_associated = True
        state.record(
            "docs_found",
            f"Associated {total} document(s) with {len(found)} of {len(state.tasks)} task(s)",
            data=found,
        )
        logger.info(f"[DocsAssociator] Associated {total} document(s)")
        return state

    def select_hints(self, task: Task, state: RunState) -> List[DocHint]:
        raise NotImplementedError


# =============================================================================
# Heuristic
# =============================================================================
class HeuristicDocsAssociator(DocsAssociator):
    """
    Scores every candidate path against the task

    score = 3.0 per task-type token among the path tokens
          + 2.0 per relevance keyword found in both the task and the path
          + 1.0 per description word (3+ chars) found in the path
    """

    name = "heuristic"

    def __init__(self, candidate_paths: Sequence[str]):
        self.candidate_paths = list(candidate_paths)

    @staticmethod
    def score(task: Task, path: str) -> float:
        lowered_path = path.lower()
        path_tokens = set(tokenize(path))
        text = task_text(task)

        score = 0.0
        score += TYPE_TOKEN_WEIGHT * sum(1 for token in tokenize(task.type) if token in path_tokens)
        score += KEYWORD_WEIGHT * sum(
            1 for keyword in RELEVANCE_KEYWORDS if keyword in text and keyword in lowered_path
        )
        description_words = {w for w in tokenize(task.description) if len(w) >= MIN_DESCRIPTION_WORD}
        score += DESCRIPTION_WORD_WEIGHT * sum(1 for word in description_words if word in lowered_path)
        return score

    def select_hints(self, task: Task, state: RunState) -> List[DocHint]:
        scored = [(self.score(task, path), path) for path in self.candidate_paths]
        ranked = sorted((item for item in scored if item[0] > 0), key=lambda item: (-item[0], item[1]))
        return [DocHint(path=path, score=score) for score, path in ranked[:MAX_HINTS]]


# =============================================================================
# Search
# =============================================================================
class SearchDocsAssociator(DocsAssociator):
    """Takes the top hits of a search(query, limit) capability, caching summaries"""

    name = "search"

    def __init__(self, search: SearchFn):
        self.search = search

    def select_hints(self, task: Task, state: RunState) -> List[DocHint]:
        hits = self.search(f"{task.type} {task.description}", MAX_HINTS)
        return [
            DocHint(path=hit.path, summary=hit.summary, score=hit.score, code_examples=list(hit.code_examples))
            for hit in hits[:MAX_HINTS]
        ]


# =============================================================================
# Generation
# =============================================================================
class GenerationDocsAssociator(DocsAssociator):
    """Lets the generation service choose 1-3 documents from the candidate list"""

    name = "generation"

    def __init__(self, generation_service: GenerationService, candidate_paths: Sequence[str]):
        self.generation_service = generation_service
        self.candidate_paths = list(candidate_paths)

    def select_hints(self, task: Task, state: RunState) -> List[DocHint]:
        if not self.candidate_paths:
            return []

        messages = DOCS_ASSOCIATION_PROMPT.format_messages(
            description=task.description,
            task_type=task.type,
            documents="\n".join(self.candidate_paths),
        )
        try:
            selected = extract(generation_text(self.generation_service.invoke(messages)))
        except (GenerationTransportError, ExtractionError) as e:
            logger.error(f"[DocsAssociator] Document selection failed for {task.id}: {e}")
            state.record("error", f"Document selection failed: {e}", task_id=task.id)
            return []

        if not isinstance(selected, list):
            logger.warning(f"[DocsAssociator] Selection for {task.id} is not a list, ignoring")
            return []

        known = set(self.candidate_paths)
        hints: List[DocHint] = []
        for path in selected:
            if isinstance(path, str) and path in known and all(h.path != path for h in hints):
                hints.append(DocHint(path=path))
            elif isinstance(path, str):
                logger.warning(f"[DocsAssociator] {path} is not in the document list, dropped")
        return hints


__all__ = [
    "DocsAssociator",
    "HeuristicDocsAssociator",
    "SearchDocsAssociator",
    "GenerationDocsAssociator",
    "is_domain_relevant",
    "RELEVANCE_KEYWORDS",
    "MAX_HINTS",
]
