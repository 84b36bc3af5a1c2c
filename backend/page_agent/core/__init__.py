"""
Core Pipeline Components

These components form the page generation pipeline:
1. Planner - Requirement → ordered tasks
2. Doc Associator - Tasks → reference document hints
3. Context Preparer - Hints → per-task context digest
4. Executor - Task → raw generated candidate
5. Validator - Candidate → accepted result (or json_error)
6. Error Fixer - json_error → repaired candidate
7. Composer - Results → final page artifact
8. Router / Engine - Step selection and execution
"""
from .planner import Planner
from .docs_associator import (
    DocsAssociator,
    HeuristicDocsAssociator,
    SearchDocsAssociator,
    GenerationDocsAssociator,
)
from .context_preparer import ContextPreparer
from .executor import Executor
from .validator import Validator
from .error_fixer import ErrorFixer
from .composer import Composer
from .input_processor import InputProcessor
from .router import Route, RouteDecision, RoutingPolicy, route
from .engine import PageGenerationEngine, StepCeilingExceeded

__all__ = [
    "Planner",
    "DocsAssociator",
    "HeuristicDocsAssociator",
    "SearchDocsAssociator",
    "GenerationDocsAssociator",
    "ContextPreparer",
    "Executor",
    "Validator",
    "ErrorFixer",
    "Composer",
    "InputProcessor",
    "Route",
    "RouteDecision",
    "RoutingPolicy",
    "route",
    "PageGenerationEngine",
    "StepCeilingExceeded",
]
