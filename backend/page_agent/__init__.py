"""
Page Generation Agent - Natural-language requirement → amis page JSON
"""
from .generation import (
    GenerationService,
    GenerationTransportError,
    LangChainGenerationService,
    create_generation_service,
)
from .docs_index import DocsIndexer, FileDocumentLoader, DocHit
from .pipeline import PipelineError, build_engine, create_docs_associator

__all__ = [
    "GenerationService",
    "GenerationTransportError",
    "LangChainGenerationService",
    "create_generation_service",
    "DocsIndexer",
    "FileDocumentLoader",
    "DocHit",
    "PipelineError",
    "build_engine",
    "create_docs_associator",
]
