"""Adapter implementations for external services."""

from .baseline_cache import BaselineCache
from .database import DatabaseAdapter

__all__ = ["BaselineCache", "DatabaseAdapter"]
