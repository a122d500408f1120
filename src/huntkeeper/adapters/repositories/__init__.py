"""Repository implementations of the registry and event ports."""

from .document import INDEX_UPDATE_ATTEMPTS, DocumentEventRepo, DocumentRegistryRepo
from .table import TableEventRepo, TableRegistryRepo

__all__ = [
    "INDEX_UPDATE_ATTEMPTS",
    "DocumentEventRepo",
    "DocumentRegistryRepo",
    "TableEventRepo",
    "TableRegistryRepo",
]
