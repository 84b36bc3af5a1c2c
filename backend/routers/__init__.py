"""
Routers package
FastAPI route handlers organized by domain
"""
from . import runs

__all__ = [
    "runs",
]
