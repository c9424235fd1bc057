"""Database clients owned by registry handles."""

from __future__ import annotations

import re
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

import asyncpg
from pydantic import ValidationError

from .config import ConnectionConfig

Row = Mapping[str, Any]


class ConfigurationError(ValueError):
    """Raised when connection options cannot be turned into driver arguments."""


class ClientStateError(RuntimeError):
    """Raised when a client is used out of lifecycle order."""


class NotConnectedError(ClientStateError):
    """Raised when a query is issued before the client has connected."""


class AlreadyConnectedError(ClientStateError):
    """Raised when ``connect`` is called on a client that already connected."""


class ClientClosedError(ClientStateError):
    """Raised when a closed client is used again."""


@runtime_checkable
class DatabaseClient(Protocol):
    """Protocol implemented by the clients a handle wraps."""

    @property
    def connected(self) -> bool: ...

    @property
    def closed(self) -> bool: ...

    async def connect(self) -> None:
        """Open the session; fails with the driver's connection errors."""

    async def query(self, sql: str) -> Sequence[Row]:
        """Run ``sql`` and return its rows in server order."""

    async def close(self) -> None:
        """Release the session. Safe to call more than once."""


class _LifecycleMixin:
    """Shared connect/query/close state checks for clients."""

    _connected: bool
    _connecting: bool
    _closed: bool

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_connectable(self) -> None:
        if self._closed:
            raise ClientClosedError("Client has been closed and cannot be reused.")
        if self._connected or self._connecting:
            raise AlreadyConnectedError("Client is already connected.")

    def _check_queryable(self) -> None:
        if self._closed:
            raise ClientClosedError("Client has been closed.")
        if not self._connected:
            raise NotConnectedError("Client is not connected; call connect() first.")


class AsyncpgClient(_LifecycleMixin):
    """Single PostgreSQL session backed by an asyncpg connection."""

    def __init__(self, config: ConnectionConfig | Mapping[str, Any]) -> None:
        self._config = config
        self._conn: asyncpg.Connection | None = None
        self._connected = False
        self._connecting = False
        self._closed = False

    async def connect(self) -> None:
        self._check_connectable()
        kwargs = self._connect_kwargs()
        self._connecting = True
        try:
            conn = await asyncpg.connect(**kwargs)
        finally:
            self._connecting = False
        if self._closed:
            await conn.close()
            raise ClientClosedError("Client was closed while connecting.")
        self._conn = conn
        self._connected = True

    async def query(self, sql: str) -> Sequence[Row]:
        self._check_queryable()
        assert self._conn is not None
        return await self._conn.fetch(sql)

    async def close(self) -> None:
        self._closed = True
        self._connected = False
        conn, self._conn = self._conn, None
        if conn is not None:
            await conn.close()

    def _connect_kwargs(self) -> dict[str, object]:
        if isinstance(self._config, ConnectionConfig):
            return self._config.connect_kwargs()
        try:
            config = ConnectionConfig.model_validate(dict(self._config))
        except (TypeError, ValueError, ValidationError) as exc:
            raise ConfigurationError(f"Invalid connection options: {exc}") from exc
        return config.connect_kwargs()


DemoCatalog = Mapping[str, Mapping[str, str]]

DEMO_CATALOG_PRESETS: Mapping[str, DemoCatalog] = {
    "demo": {
        "public": {
            "accounts": "BASE TABLE",
            "orders": "BASE TABLE",
            "payments": "BASE TABLE",
            "active_accounts": "VIEW",
        },
    },
    "analytics": {
        "public": {
            "daily_revenue": "VIEW",
        },
        "analytics": {
            "sessions": "BASE TABLE",
            "events": "BASE TABLE",
        },
    },
}

_SCHEMA_FILTER = re.compile(r"table_schema\s*=\s*'([^']*)'", re.IGNORECASE)


class DemoDatabaseClient(_LifecycleMixin):
    """Offline client answering catalog queries from preset schemas.

    The preset is picked by the ``database`` option of the config. Only
    queries against ``information_schema.tables`` are understood; rows come
    back sorted by table name the way the server's ``ORDER BY`` would.

    An unknown ``database`` fails ``connect`` with the builtin
    ``ConnectionError``, standing in for the server refusing the session.
    ``ClientStateError`` subclasses are reserved for lifecycle misuse.
    """

    def __init__(
        self,
        config: ConnectionConfig | Mapping[str, Any],
        catalogs: Mapping[str, DemoCatalog] | None = None,
    ) -> None:
        options = config.model_dump() if isinstance(config, ConnectionConfig) else dict(config)
        self._database = options.get("database") or "demo"
        self._catalogs = catalogs if catalogs is not None else DEMO_CATALOG_PRESETS
        self._connected = False
        self._connecting = False
        self._closed = False

    async def connect(self) -> None:
        self._check_connectable()
        if self._database not in self._catalogs:
            raise ConnectionError(f"Demo database '{self._database}' does not exist.")
        self._connected = True

    async def query(self, sql: str) -> Sequence[Row]:
        self._check_queryable()
        if "information_schema.tables" not in sql.lower():
            raise ValueError("Demo client only answers information_schema.tables queries.")
        catalog = self._catalogs[self._database]
        match = _SCHEMA_FILTER.search(sql)
        schemas = [match.group(1)] if match else sorted(catalog)
        rows: list[dict[str, str]] = []
        for schema in schemas:
            for name, kind in catalog.get(schema, {}).items():
                rows.append({"table_schema": schema, "table_name": name, "table_type": kind})
        rows.sort(key=lambda row: row["table_name"])
        return rows

    async def close(self) -> None:
        self._closed = True
        self._connected = False


__all__ = [
    "AlreadyConnectedError",
    "AsyncpgClient",
    "ClientClosedError",
    "ClientStateError",
    "ConfigurationError",
    "DEMO_CATALOG_PRESETS",
    "DatabaseClient",
    "DemoDatabaseClient",
    "NotConnectedError",
    "Row",
]
