"""Storage collaborators: hosted backend interfaces and the local flag store."""

from .errors import (
    AuthError,
    BackendError,
    ForeignKeyViolation,
    UniqueViolation,
    backend_error_from_code,
)
from .interfaces import AuthBackendIface, BackendIface, DataStoreIface, LocalStoreIface
from .local import SqlLocalStore
from .session import create_local_engine, get_sessionmaker, init_local_store

__all__ = [
    "AuthBackendIface",
    "BackendIface",
    "DataStoreIface",
    "LocalStoreIface",
    "SqlLocalStore",
    "create_local_engine",
    "get_sessionmaker",
    "init_local_store",
    "AuthError",
    "BackendError",
    "ForeignKeyViolation",
    "UniqueViolation",
    "backend_error_from_code",
]
