"""
Dual-backend persistence layer.

SQLite (embedded, in-memory + file): local development.
Remote SQL service: production. libSQL URLs go through libsql_client,
SQLAlchemy async URLs through an async engine.
"""

from .base import DatabaseBackend, ExecutionResult, QueryResult
from .embedded import EmbeddedBackend
from .errors import DatabaseConfigError
from .gateway import PersistenceGateway, create_backend, create_gateway
from .libsql import LibsqlBackend
from .remote import RemoteBackend

__all__ = [
    'DatabaseBackend',
    'DatabaseConfigError',
    'EmbeddedBackend',
    'ExecutionResult',
    'LibsqlBackend',
    'PersistenceGateway',
    'QueryResult',
    'RemoteBackend',
    'create_backend',
    'create_gateway',
]
