"""
Query backend for analytics tools.

Tools depend only on the ``QueryExecutor`` protocol. ``KustoRestExecutor``
implements it over the Kusto REST API (v1 query and management endpoints)
with httpx; credentials are supplied by an async token provider.

Results are returned as ``QueryResult``: JSON text (a list of row objects)
plus its UTF-8 byte length. The core never looks inside the text.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from core.constants import DEFAULT_PAGE_SIZE, KUSTO_CLUSTERS, QUERY_TIMEOUT_SECONDS, ClusterConfig
from models.error_models import ClusterLookupError, QueryExecutionError
from utils.json_utils import json_compact, json_pretty
from utils.logger import ChatLogger

TokenProvider = Callable[[], Awaitable[str]]

ADMIN_SUCCESS = {"success": True, "message": "Command executed successfully."}


@dataclass(frozen=True)
class QueryResult:
    """Serialized query output."""

    text: str
    byte_length: int

    @classmethod
    def from_text(cls, text: str) -> QueryResult:
        return cls(text=text, byte_length=len(text.encode("utf-8")))

    def __str__(self) -> str:
        return self.text


class QueryExecutor(Protocol):
    """Executes queries against a named analytics cluster.

    Cancellation is asyncio task cancellation; ``timeout`` bounds the
    server-side execution time in seconds.
    """

    async def execute_query(
        self,
        cluster_key: str,
        query: str,
        paginated: bool = False,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_index: int = 0,
        timeout: float | None = None,
    ) -> QueryResult: ...

    async def execute_admin_command(
        self,
        cluster_key: str,
        command: str,
        timeout: float | None = None,
    ) -> QueryResult: ...


class ClusterCatalog:
    """Fixed lookup table of clusters keyed by short name."""

    def __init__(self, clusters: Iterable[ClusterConfig] = KUSTO_CLUSTERS):
        self._clusters = {cluster.key: cluster for cluster in clusters}

    def get(self, cluster_key: str) -> ClusterConfig:
        """Raises ClusterLookupError for unknown keys."""
        try:
            return self._clusters[cluster_key]
        except KeyError:
            raise ClusterLookupError(cluster_key) from None

    def keys(self) -> list[str]:
        return list(self._clusters)

    def __contains__(self, cluster_key: object) -> bool:
        return cluster_key in self._clusters

    def __iter__(self) -> Iterator[ClusterConfig]:
        return iter(self._clusters.values())

    def __len__(self) -> int:
        return len(self._clusters)


def paginate_query(query: str, page_size: int = DEFAULT_PAGE_SIZE, page_index: int = 0) -> str:
    """Restrict a query to one page of rows.

    Rows are numbered after serializing the result, so pages are stable for a
    query with a deterministic order.
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    if page_index < 0:
        raise ValueError("page_index must not be negative")

    start = page_size * page_index
    end = start + page_size
    return (
        f"{query.rstrip().rstrip(';')} | serialize _row = row_number() "
        f"| where _row > {start} and _row <= {end} | project-away _row"
    )


def format_timespan(seconds: float) -> str:
    """Seconds to the hh:mm:ss form Kusto expects for servertimeout."""
    total = max(int(seconds), 1)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def rows_to_records(payload: dict[str, Any]) -> list[dict[str, Any]]:
    """Convert the first table of a v1 REST response into row objects."""
    tables = payload.get("Tables") or []
    if not tables:
        return []
    table = tables[0]
    columns = [column["ColumnName"] for column in table.get("Columns", [])]
    return [dict(zip(columns, row)) for row in table.get("Rows", [])]


def static_token(token: str) -> TokenProvider:
    """Token provider for a pre-acquired bearer token."""

    async def provide() -> str:
        return token

    return provide


class KustoRestExecutor:
    """QueryExecutor over the Kusto REST API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_provider: TokenProvider,
        logger: ChatLogger,
        catalog: ClusterCatalog | None = None,
        default_timeout: float = QUERY_TIMEOUT_SECONDS,
    ):
        self.http_client = http_client
        self.token_provider = token_provider
        self.logger = logger
        self.catalog = catalog or ClusterCatalog()
        self.default_timeout = default_timeout

    async def execute_query(
        self,
        cluster_key: str,
        query: str,
        paginated: bool = False,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_index: int = 0,
        timeout: float | None = None,
    ) -> QueryResult:
        cluster = self.catalog.get(cluster_key)
        csl = paginate_query(query, page_size, page_index) if paginated else query

        payload = await self._post(cluster, "query", csl, timeout)
        records = rows_to_records(payload)
        self.logger.info(f"Kusto query on {cluster_key} returned {len(records)} rows")
        return QueryResult.from_text(json_pretty(records))

    async def execute_admin_command(
        self,
        cluster_key: str,
        command: str,
        timeout: float | None = None,
    ) -> QueryResult:
        cluster = self.catalog.get(cluster_key)

        payload = await self._post(cluster, "mgmt", command, timeout)
        records = rows_to_records(payload)
        self.logger.info(f"Kusto command on {cluster_key} returned {len(records)} rows")
        if not records:
            return QueryResult.from_text(json_pretty(ADMIN_SUCCESS))
        return QueryResult.from_text(json_pretty(records))

    async def _post(self, cluster: ClusterConfig, endpoint: str, csl: str, timeout: float | None) -> dict[str, Any]:
        server_timeout = timeout if timeout is not None else self.default_timeout
        token = await self.token_provider()
        body = {
            "db": cluster.database,
            "csl": csl,
            "properties": json_compact({"Options": {"servertimeout": format_timespan(server_timeout)}}),
        }
        url = f"{cluster.uri.rstrip('/')}/v1/rest/{endpoint}"

        try:
            response = await self.http_client.post(
                url,
                json=body,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                # Leave headroom past the server timeout for the response to arrive
                timeout=httpx.Timeout(server_timeout + 30.0, connect=30.0),
            )
        except httpx.HTTPError as e:
            raise QueryExecutionError(f"Request to cluster '{cluster.key}' failed: {e}") from e

        if response.status_code >= 400:
            raise QueryExecutionError(
                f"Cluster '{cluster.key}' returned {response.status_code}: {_error_message(response)}"
            )

        try:
            data: dict[str, Any] = response.json()
        except ValueError as e:
            raise QueryExecutionError(f"Cluster '{cluster.key}' returned invalid JSON") from e
        return data


def _error_message(response: httpx.Response) -> str:
    try:
        error = response.json().get("error", {})
    except ValueError:
        return response.text[:200]
    if isinstance(error, dict):
        return str(error.get("@message") or error.get("message") or error)
    return str(error)
