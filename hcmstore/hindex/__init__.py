"""Hindex — keyword classification and glob-scoped search over the store."""

from hcmstore.hindex.memory import MemoryQuery
from hcmstore.hindex.router import HindexRouter

__all__ = ["HindexRouter", "MemoryQuery"]
