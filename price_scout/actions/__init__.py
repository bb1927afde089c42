"""Caller-facing actions built on the orchestrator."""
from .search import SearchAction

__all__ = ["SearchAction"]
