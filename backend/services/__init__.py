"""
Services package
Run execution and run persistence
"""
from .checkpoint_store import CheckpointStore, RunRecordStore
from .run_service import RunService, RunNotFoundError, InvalidRetryError, InvalidStructuredDataError

__all__ = [
    "CheckpointStore",
    "RunRecordStore",
    "RunService",
    "RunNotFoundError",
    "InvalidRetryError",
    "InvalidStructuredDataError",
]
