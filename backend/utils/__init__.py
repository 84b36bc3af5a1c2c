"""
Utils package
Utility functions (generation rate limiting, structured-text extraction)
"""
from .rate_limit import (
    RateLimiter,
    WindowState,
    FileWindowStore,
    RedisWindowStore,
    default_state_path,
    create_rate_limiter,
)
from .json_extract import (
    extract,
    try_extract,
    repair,
    strip_comments,
    ExtractionError,
)

__all__ = [
    # Rate limiting
    "RateLimiter",
    "WindowState",
    "FileWindowStore",
    "RedisWindowStore",
    "default_state_path",
    "create_rate_limiter",
    # Extraction
    "extract",
    "try_extract",
    "repair",
    "strip_comments",
    "ExtractionError",
]
