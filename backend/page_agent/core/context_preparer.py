"""
Context Preparer - DocHints → per-task context digest

Loads the documents hinted for the active task and trims each to a summary
and its code examples. The digest lives on RunState.context_documents until
the Validator accepts the task.
"""
import logging
from typing import List

from page_agent.docs_index import DocumentLoader, extract_code_examples, extract_summary
from page_agent.schemas import ContextDocument, RunState

logger = logging.getLogger(__name__)


MAX_CONTEXT_HINTS = 5


class ContextPreparer:
    """Builds the context digest for the active task"""

    def __init__(self, loader: DocumentLoader):
        self.loader = loader

    def prepare(self, state: RunState) -> RunState:
        task = state.active_task
        if task is None:
            state.context_documents = []
            return state

        documents: List[ContextDocument] = []
        for hint in task.doc_hints[:MAX_CONTEXT_HINTS]:
            try:
                if not self.loader.exists(hint.path):
                    logger.warning(f"[ContextPreparer] Document no longer available: {hint.path}")
                    continue
                content = self.loader.read(hint.path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"[ContextPreparer] Could not read {hint.path}: {e}")
                continue

            documents.append(ContextDocument(
                path=hint.path,
                summary=hint.summary or extract_summary(content),
                code_examples=hint.code_examples or extract_code_examples(content),
                score=hint.score,
            ))

        state.context_documents = documents
        state.record(
            "generating",
            f"Prepared {len(documents)} context document(s)" if documents
            else "No context documents available, continuing",
            task_id=task.id,
        )
        logger.info(f"[ContextPreparer] {task.id}: {len(documents)} context document(s)")
        return state


__all__ = ["ContextPreparer", "MAX_CONTEXT_HINTS"]
