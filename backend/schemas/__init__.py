"""
Pydantic schemas for API request/response validation
"""
from .run import (
    RunCreate,
    RetryRequest,
    RunEventResponse,
    RunResponse,
)

__all__ = [
    # Run
    "RunCreate",
    "RetryRequest",
    "RunEventResponse",
    "RunResponse",
]
