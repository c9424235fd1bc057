"""Registry of PostgreSQL connections addressed by generated ids."""

from __future__ import annotations

__version__ = "0.1.0"

from .config import ConnectionConfig, RegistryConfig, load_config
from .connections import (
    AlreadyConnectedError,
    AsyncpgClient,
    ClientClosedError,
    ClientStateError,
    ConfigurationError,
    DatabaseClient,
    DemoDatabaseClient,
    NotConnectedError,
)
from .models import TableDescriptor, TableType
from .registry import TABLES_QUERY, ConnectionHandle, ConnectionRegistry, UnknownConnectionError

__all__ = [
    "AlreadyConnectedError",
    "AsyncpgClient",
    "ClientClosedError",
    "ClientStateError",
    "ConfigurationError",
    "ConnectionConfig",
    "ConnectionHandle",
    "ConnectionRegistry",
    "DatabaseClient",
    "DemoDatabaseClient",
    "NotConnectedError",
    "RegistryConfig",
    "TABLES_QUERY",
    "TableDescriptor",
    "TableType",
    "UnknownConnectionError",
    "__version__",
    "load_config",
]
