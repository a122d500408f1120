"""Document store backends."""

from .blob import LocalObjectStore
from .memory import MemoryDocumentStore
from .table import SqlAlchemyTableStore

__all__ = ["LocalObjectStore", "MemoryDocumentStore", "SqlAlchemyTableStore"]
