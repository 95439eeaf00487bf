"""
d1/client.py
------------
HTTP client for the D1 REST API.

Design Decisions:
    * ``D1Client`` is a context manager so callers can use it with ``with``
      statements and be guaranteed the HTTP session is closed on exit.
    * Every call returns the decoded JSON envelope unchanged; interpreting it
      (success flag, rows, meta) is the job of :mod:`d1.envelope`.
    * Query values are never interpolated into SQL. They are sent in the
      ``params`` list and bound by the service (``?`` placeholders).
    * No retries: a failed request raises :class:`TransportError` and the
      caller decides.

Example::

    with D1Client.from_config() as client:
        client.connect("app-db")
        users = client.select(User, "SELECT * FROM users WHERE age > ?", 25)
        changed = client.exec("UPDATE users SET age = ? WHERE id = ?", 30, 1)
"""
from __future__ import annotations

from typing import Any

import requests

from config import CONFIG
from d1 import envelope as env
from d1.errors import D1Error, TransportError
from d1.type_converter import convert_params
from logger import get_logger

log = get_logger(__name__)

Envelope = dict[str, Any]


class D1Client:
    """
    Thin wrapper around the account-scoped D1 endpoints.

    Args:
        account_id:  Account identifier.
        api_token:   Bearer token.
        database_id: Database to query; set later by :meth:`connect`.
        base_url:    API root, defaults to the configured one.
        timeout:     Per-request timeout in seconds.
        session:     Optional pre-built :class:`requests.Session`.

    Raises:
        ValueError: If *account_id* or *api_token* is empty.
    """

    def __init__(
        self,
        account_id: str,
        api_token: str,
        database_id: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if not account_id or not api_token:
            raise ValueError("account_id and api_token are required")
        self.account_id = account_id
        self.api_token = api_token
        self.database_id = database_id
        self._base_url = (base_url or CONFIG.d1.base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else CONFIG.d1.timeout
        self._session = session or requests.Session()
        # sent per request; a caller-supplied session is left unmodified
        self._headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_token}",
        }

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, **kwargs: Any) -> "D1Client":
        """Convenience factory using credentials from the application config."""
        return cls(
            account_id=CONFIG.d1.account_id,
            api_token=CONFIG.d1.api_token,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> "D1Client":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    @property
    def _databases_url(self) -> str:
        return f"{self._base_url}/accounts/{self.account_id}/d1/database"

    def _request(self, method: str, url: str, payload: dict[str, Any] | None = None) -> Envelope:
        try:
            response = self._session.request(
                method, url, json=payload, headers=self._headers, timeout=self._timeout
            )
        except requests.RequestException as exc:
            log.error("%s %s failed: %s", method, url, exc)
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                f"{method} {url} returned a non-JSON body (HTTP {response.status_code})"
            ) from exc

    # ------------------------------------------------------------------
    # Database management
    # ------------------------------------------------------------------

    def list_databases(self) -> Envelope:
        return self._request("GET", self._databases_url)

    def create_database(self, name: str) -> Envelope:
        return self._request("POST", self._databases_url, {"name": name})

    def delete_database(self, database_id: str) -> Envelope:
        return self._request("DELETE", f"{self._databases_url}/{database_id}")

    def connect(self, name: str | None = None) -> str:
        """
        Look up the database called *name* (default
        ``CONFIG.d1.database_name``) and make it the target of :meth:`query`.

        Returns:
            The database id.

        Raises:
            D1Error: No database with that name exists.
            APIError: The listing call reported failure.
        """
        name = name or CONFIG.d1.database_name
        if not name:
            raise D1Error("no database name given and CLOUDFLARE_DB_NAME is not set")
        listing = env.raise_for_envelope(self.list_databases())
        for item in listing.result or []:
            if isinstance(item, dict) and item.get("name") == name:
                self.database_id = item["uuid"]
                log.info("Connected to database '%s' (%s).", name, self.database_id)
                return self.database_id
        raise D1Error(f"database with name {name} not found")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query_database(self, database_id: str, sql: str, params: list[str] | None = None) -> Envelope:
        """Run *sql* against a specific database via the ``/raw`` endpoint."""
        log.debug("SQL: %.500s | params=%s", sql, params)
        return self._request(
            "POST",
            f"{self._databases_url}/{database_id}/raw",
            {"sql": sql, "params": list(params or [])},
        )

    def query(self, sql: str, params: list[str] | None = None) -> Envelope:
        """
        Run *sql* against the connected database.

        Raises:
            D1Error: No database is connected.
            TransportError: The request failed.
        """
        if not self.database_id:
            raise D1Error("no database connected, call connect() first")
        return self.query_database(self.database_id, sql, params)

    def create_table(self, create_sql: str) -> Envelope:
        return self.query(create_sql)

    def remove_table(self, table_name: str) -> Envelope:
        return self.query(f"DROP TABLE IF EXISTS {table_name};")

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------

    def select(self, record_type: type, sql: str, *args: Any) -> list[Any]:
        """Run a query and build one *record_type* per row."""
        return env.scan_all(self.query(sql, convert_params(*args)), record_type)

    def get(self, record_type: type, sql: str, *args: Any) -> Any:
        """
        Run a query and build a *record_type* from the first row.

        Raises:
            NoRows: The query returned no rows.
        """
        return env.get(self.query(sql, convert_params(*args)), record_type)

    def exec(self, sql: str, *args: Any) -> int:
        """Run a write statement and return the number of rows affected."""
        return env.to_result(self.query(sql, convert_params(*args))).rows_affected
