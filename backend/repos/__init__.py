"""
Repository layer for DocHub.

All persistence lives here and ONLY here. Everything above talks to the
DocumentStore contract.
"""

from backend.repos.memory_store import MemoryStore
from backend.repos.postgres_store import PostgresStore
from backend.repos.store import (
    SERVER_TIMESTAMP,
    Document,
    DocumentNotFound,
    DocumentStore,
    PermissionDenied,
    StoreError,
)

__all__ = [
    "Document",
    "DocumentStore",
    "DocumentNotFound",
    "MemoryStore",
    "PermissionDenied",
    "PostgresStore",
    "SERVER_TIMESTAMP",
    "StoreError",
]
