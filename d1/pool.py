"""
d1/pool.py
----------
Name → database-id cache with lazy expiry.

Resolving a database name costs a listing call; the pool remembers the id
for ``max_cache_age`` seconds. Expiry is checked when an entry is read,
there is no background eviction.

All cache state is guarded by one lock. Queries themselves run outside the
lock, each through a short-lived :class:`D1Client`.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Callable

from config import CONFIG
from d1.client import D1Client, Envelope
from d1.errors import D1Error
from logger import get_logger

log = get_logger(__name__)

ClientFactory = Callable[..., D1Client]


@dataclass
class ConnectionInfo:
    database_id: str
    name: str
    cached_at: float


class ConnectionPool:
    """
    Caches database ids by name and routes queries to the current database.

    Args:
        account_id:     Account identifier.
        api_token:      Bearer token.
        max_cache_age:  Seconds a resolved id stays valid (0 disables caching).
        client_factory: Builds clients; defaults to :class:`D1Client`.
        clock:          Monotonic time source, injectable for tests.

    Raises:
        ValueError: If *account_id* or *api_token* is empty.
    """

    def __init__(
        self,
        account_id: str,
        api_token: str,
        max_cache_age: float | None = None,
        client_factory: ClientFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not account_id or not api_token:
            raise ValueError("account_id and api_token are required")
        self._account_id = account_id
        self._api_token = api_token
        self._max_cache_age = (
            max_cache_age if max_cache_age is not None else CONFIG.d1.cache_max_age
        )
        self._client_factory = client_factory or D1Client
        self._clock = clock
        self._connections: dict[str, ConnectionInfo] = {}
        self._current: str = ""
        self._lock = threading.RLock()

    def _client(self, database_id: str | None = None) -> D1Client:
        return self._client_factory(
            account_id=self._account_id,
            api_token=self._api_token,
            database_id=database_id,
        )

    def _is_fresh(self, info: ConnectionInfo) -> bool:
        return self._clock() - info.cached_at < self._max_cache_age

    # ------------------------------------------------------------------
    # Connecting
    # ------------------------------------------------------------------

    def connect(self, name: str) -> None:
        """
        Select database *name*, resolving its id unless a fresh entry is cached.

        Raises:
            D1Error: The name could not be resolved.
        """
        with self._lock:
            info = self._connections.get(name)
            if info is not None and self._is_fresh(info):
                self._current = name
                return

            client = self._client()
            try:
                database_id = client.connect(name)
            except D1Error as exc:
                raise D1Error(f"failed to connect to database {name}: {exc}") from exc
            finally:
                client.close()

            self._connections[name] = ConnectionInfo(database_id, name, self._clock())
            self._current = name
            log.debug("Cached database '%s' → %s.", name, database_id)

    def connect_with_id(self, name: str, database_id: str) -> None:
        """Cache a known id for *name* and select it, without a lookup."""
        with self._lock:
            self._connections[name] = ConnectionInfo(database_id, name, self._clock())
            self._current = name

    def _database_id_for(self, name: str | None = None) -> str:
        with self._lock:
            target = self._current if name is None else name
            info = self._connections.get(target)
        if info is None:
            if name is None:
                raise D1Error("no database connected, call connect() first")
            raise D1Error(f"database {name} not connected, call connect() first")
        return info.database_id

    def _with_client(self, name: str | None, call: Callable[[D1Client], Any]) -> Any:
        client = self._client(self._database_id_for(name))
        try:
            return call(client)
        finally:
            client.close()

    # ------------------------------------------------------------------
    # Queries on the current database
    # ------------------------------------------------------------------

    def query(self, sql: str, params: list[str] | None = None) -> Envelope:
        return self._with_client(None, lambda c: c.query(sql, params))

    def select(self, record_type: type, sql: str, *args: Any) -> list[Any]:
        return self._with_client(None, lambda c: c.select(record_type, sql, *args))

    def get(self, record_type: type, sql: str, *args: Any) -> Any:
        return self._with_client(None, lambda c: c.get(record_type, sql, *args))

    def exec(self, sql: str, *args: Any) -> int:
        return self._with_client(None, lambda c: c.exec(sql, *args))

    def create_table(self, create_sql: str) -> Envelope:
        return self._with_client(None, lambda c: c.create_table(create_sql))

    def remove_table(self, table_name: str) -> Envelope:
        return self._with_client(None, lambda c: c.remove_table(table_name))

    # ------------------------------------------------------------------
    # Queries on a named database
    # ------------------------------------------------------------------

    def query_database(self, name: str, sql: str, params: list[str] | None = None) -> Envelope:
        return self._with_client(name, lambda c: c.query(sql, params))

    def create_table_in(self, name: str, create_sql: str) -> Envelope:
        return self._with_client(name, lambda c: c.create_table(create_sql))

    def remove_table_in(self, name: str, table_name: str) -> Envelope:
        return self._with_client(name, lambda c: c.remove_table(table_name))

    # ------------------------------------------------------------------
    # Cache inspection
    # ------------------------------------------------------------------

    @property
    def current_database(self) -> str:
        with self._lock:
            return self._current

    def database_id(self, name: str) -> str:
        with self._lock:
            info = self._connections.get(name)
            return info.database_id if info else ""

    def clear_cache(self, name: str) -> None:
        with self._lock:
            self._connections.pop(name, None)

    def clear_all(self) -> None:
        with self._lock:
            self._connections.clear()
            self._current = ""

    def set_cache_age(self, seconds: float) -> None:
        with self._lock:
            self._max_cache_age = seconds

    def cached_databases(self) -> list[str]:
        with self._lock:
            return list(self._connections)

    def is_cached(self, name: str) -> bool:
        with self._lock:
            info = self._connections.get(name)
            return info is not None and self._is_fresh(info)

    def cache_info(self, name: str) -> ConnectionInfo | None:
        """Return a copy of the cache entry for *name*, or None."""
        with self._lock:
            info = self._connections.get(name)
            return replace(info) if info else None
