"""
Pipeline wiring - Builds a ready-to-run engine

This module wires together all pipeline components:
Planner → DocsAssociator → ContextPreparer → Executor → Validator → ErrorFixer → Composer

Usage:
    engine = build_engine(create_generation_service(), DocsIndexer(DOCS_ROOT).build())
    outcome = engine.run(RunState(requirement="A feedback form with name and email"))
"""
import logging
from typing import Optional

from config import DOCS_ASSOCIATOR, MAX_REPAIR_ATTEMPTS, MAX_REPLANS, MAX_RUN_STEPS
from page_agent.docs_index import DocsIndexer
from page_agent.generation import GenerationService
from page_agent.core import (
    Composer,
    ContextPreparer,
    DocsAssociator,
    ErrorFixer,
    Executor,
    GenerationDocsAssociator,
    HeuristicDocsAssociator,
    PageGenerationEngine,
    Planner,
    RoutingPolicy,
    SearchDocsAssociator,
    Validator,
)
from page_agent.core.engine import Checkpointer

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Raised when the pipeline cannot be assembled"""
    pass


def create_docs_associator(
    kind: str,
    indexer: DocsIndexer,
    generation_service: GenerationService
) -> DocsAssociator:
    """Pick a doc association strategy by name: heuristic, search or generation"""
    if kind == "heuristic":
        return HeuristicDocsAssociator(indexer.paths())
    if kind == "search":
        return SearchDocsAssociator(indexer.search)
    if kind == "generation":
        return GenerationDocsAssociator(generation_service, indexer.paths())
    raise PipelineError(f"Unknown docs associator: {kind}")


def build_engine(
    generation_service: GenerationService,
    indexer: DocsIndexer,
    checkpointer: Optional[Checkpointer] = None,
    docs_associator: str = DOCS_ASSOCIATOR,
    policy: Optional[RoutingPolicy] = None,
    max_steps: int = MAX_RUN_STEPS
) -> PageGenerationEngine:
    """Assemble an engine whose components share one generation service"""
    logger.info(f"[Pipeline] Building engine with {docs_associator} doc association")
    return PageGenerationEngine(
        planner=Planner(generation_service),
        docs_associator=create_docs_associator(docs_associator, indexer, generation_service),
        context_preparer=ContextPreparer(indexer),
        executor=Executor(generation_service),
        validator=Validator(),
        fixer=ErrorFixer(generation_service),
        composer=Composer(generation_service),
        policy=policy or RoutingPolicy(max_repair_attempts=MAX_REPAIR_ATTEMPTS, max_replans=MAX_REPLANS),
        max_steps=max_steps,
        checkpointer=checkpointer,
    )


__all__ = ["PipelineError", "create_docs_associator", "build_engine"]
