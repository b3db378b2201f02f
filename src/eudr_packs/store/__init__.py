from .base import PackRepository
from .duckdb_store import DuckDBPackStore
from .memory import InMemoryPackStore

__all__ = ["DuckDBPackStore", "InMemoryPackStore", "PackRepository"]
