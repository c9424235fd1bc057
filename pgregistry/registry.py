"""Connection registry keyed by generated connection ids."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Iterator, Mapping

from .config import ConnectionConfig
from .connections import AsyncpgClient, DatabaseClient
from .models import TableDescriptor

LOG = logging.getLogger(__name__)

TABLES_QUERY = """
    SELECT table_name, table_type
    FROM information_schema.tables
    WHERE table_schema = 'public'
    ORDER BY table_name
"""

ClientFactory = Callable[[Any], DatabaseClient]
IdFactory = Callable[[], str]


class UnknownConnectionError(KeyError):
    """Raised by ``ConnectionRegistry.get`` for ids that are not registered."""


def _new_id() -> str:
    return str(uuid.uuid4())


class ConnectionHandle:
    """One logical database session registered under an immutable id."""

    __slots__ = ("_id", "_client", "_registry")

    def __init__(self, connection_id: str, client: DatabaseClient, registry: ConnectionRegistry) -> None:
        self._id = connection_id
        self._client = client
        self._registry = registry

    @property
    def id(self) -> str:
        return self._id

    @property
    def client(self) -> DatabaseClient:
        return self._client

    @property
    def connected(self) -> bool:
        return self._client.connected

    @property
    def closed(self) -> bool:
        return self._client.closed

    async def connect(self) -> None:
        await self._registry.connect(self)

    async def fetch_tables(self) -> list[TableDescriptor]:
        return await self._registry.fetch_tables(self)

    async def close(self) -> None:
        await self._registry.close(self)

    def __repr__(self) -> str:
        return f"<ConnectionHandle id={self._id!r} connected={self.connected}>"


class ConnectionRegistry:
    """Owns connection handles and the id -> handle mapping.

    Registries are independent: each keeps its own mapping, so callers (and
    tests) can hold isolated registries. Insertions, lookups and removals are
    serialized with a lock and are safe from multiple threads.
    """

    def __init__(
        self,
        *,
        client_factory: ClientFactory = AsyncpgClient,
        id_factory: IdFactory = _new_id,
    ) -> None:
        self._client_factory = client_factory
        self._id_factory = id_factory
        self._handles: dict[str, ConnectionHandle] = {}
        self._lock = threading.Lock()

    def create(self, config: ConnectionConfig | Mapping[str, Any]) -> ConnectionHandle:
        """Build a client for ``config`` and register it under a fresh id.

        No network I/O happens here; ``config`` is handed to the client
        untouched and only checked when the client connects.
        """

        client = self._client_factory(config)
        connection_id = self._id_factory()
        handle = ConnectionHandle(connection_id, client, self)
        with self._lock:
            if connection_id in self._handles:
                raise RuntimeError(f"Connection id '{connection_id}' is already registered.")
            self._handles[connection_id] = handle
        LOG.debug("Registered connection", extra={"connection_id": connection_id})
        return handle

    async def connect(self, handle: ConnectionHandle | str) -> None:
        """Open the handle's session; client errors propagate unchanged."""

        handle = self._resolve(handle)
        try:
            await handle.client.connect()
        except Exception as exc:
            LOG.warning("Connection attempt failed", extra={"connection_id": handle.id})
            exc.add_note(f"connection id: {handle.id}")
            raise
        LOG.debug("Connected", extra={"connection_id": handle.id})

    async def fetch_tables(self, handle: ConnectionHandle | str) -> list[TableDescriptor]:
        """List tables and views in the public schema, ordered by name."""

        handle = self._resolve(handle)
        try:
            rows = await handle.client.query(TABLES_QUERY)
        except Exception as exc:
            LOG.warning("Table listing failed", extra={"connection_id": handle.id})
            exc.add_note(f"connection id: {handle.id}")
            raise
        return [TableDescriptor.from_row(row) for row in rows]

    def find(self, connection_id: str) -> ConnectionHandle | None:
        """Return the registered handle for ``connection_id``, if any."""

        with self._lock:
            return self._handles.get(connection_id)

    def get(self, connection_id: str) -> ConnectionHandle:
        handle = self.find(connection_id)
        if handle is None:
            raise UnknownConnectionError(connection_id)
        return handle

    def remove(self, connection_id: str) -> ConnectionHandle | None:
        """Unregister a handle without closing its client."""

        with self._lock:
            handle = self._handles.pop(connection_id, None)
        if handle is not None:
            LOG.debug("Unregistered connection", extra={"connection_id": connection_id})
        return handle

    async def close(self, handle: ConnectionHandle | str) -> None:
        """Close the handle's client and unregister it."""

        if isinstance(handle, str):
            handle = self.find(handle)
            if handle is None:
                return
        try:
            await handle.client.close()
        finally:
            with self._lock:
                if self._handles.get(handle.id) is handle:
                    del self._handles[handle.id]
        LOG.debug("Closed connection", extra={"connection_id": handle.id})

    async def close_all(self) -> None:
        """Close every registered handle, reporting all failures together."""

        with self._lock:
            handles = list(self._handles.values())
        errors: list[Exception] = []
        for handle in handles:
            try:
                await self.close(handle)
            except Exception as exc:
                LOG.warning("Failed to close connection", extra={"connection_id": handle.id})
                errors.append(exc)
        if errors:
            raise ExceptionGroup("Failed to close connections", errors)

    async def __aenter__(self) -> ConnectionRegistry:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close_all()

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)

    def __contains__(self, connection_id: object) -> bool:
        with self._lock:
            return connection_id in self._handles

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(tuple(self._handles))

    def _resolve(self, handle: ConnectionHandle | str) -> ConnectionHandle:
        if isinstance(handle, str):
            return self.get(handle)
        return handle


__all__ = [
    "ConnectionHandle",
    "ConnectionRegistry",
    "TABLES_QUERY",
    "UnknownConnectionError",
]
