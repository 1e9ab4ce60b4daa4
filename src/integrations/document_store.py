"""
Document query backends for the Cosmos DB and AI Search tools.

Tools depend only on the ``DocumentQueryExecutor`` and ``SearchExecutor``
protocols. The Azure implementations wrap the async SDK clients, read every
page of results into plain dicts and translate SDK failures into
``QueryExecutionError`` so the orchestrator reports them like any other
backend failure.
"""

from __future__ import annotations

from typing import Any, Protocol

from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError
from azure.cosmos.aio import CosmosClient
from azure.search.documents.aio import SearchClient

from models.error_models import QueryExecutionError
from utils.logger import ChatLogger


class DocumentQueryExecutor(Protocol):
    """Runs SQL queries against one document container."""

    async def query_items(self, sql_query: str) -> list[dict[str, Any]]: ...


class SearchExecutor(Protocol):
    """Runs full-text queries against one search index."""

    async def search(self, search_text: str, top: int) -> list[dict[str, Any]]: ...


class CosmosDocumentExecutor:
    """DocumentQueryExecutor over a Cosmos DB container.

    Queries run cross-partition; the container must already exist.
    """

    def __init__(self, endpoint: str, key: str, database: str, container: str, logger: ChatLogger):
        self.logger = logger
        self.database = database
        self.container_name = container
        self._client = CosmosClient(endpoint, credential=key)
        self._container = self._client.get_database_client(database).get_container_client(container)

    async def query_items(self, sql_query: str) -> list[dict[str, Any]]:
        self.logger.info(f"Cosmos DB query on {self.database}/{self.container_name}: {sql_query}")
        try:
            return [item async for item in self._container.query_items(query=sql_query)]
        except AzureError as e:
            self.logger.error(f"Cosmos DB query failed: {e}")
            raise QueryExecutionError(f"Cosmos DB query failed: {e.message or e}") from e

    async def aclose(self) -> None:
        await self._client.close()


class AzureSearchExecutor:
    """SearchExecutor over an Azure AI Search index."""

    def __init__(self, endpoint: str, key: str, index_name: str, logger: ChatLogger):
        self.logger = logger
        self.index_name = index_name
        self._client = SearchClient(endpoint=endpoint, index_name=index_name, credential=AzureKeyCredential(key))

    async def search(self, search_text: str, top: int) -> list[dict[str, Any]]:
        self.logger.info(f"AI Search on {self.index_name} (top={top}): {search_text}")
        try:
            results = await self._client.search(search_text=search_text, top=top)
            return [dict(document) async for document in results]
        except AzureError as e:
            self.logger.error(f"AI Search query failed: {e}")
            raise QueryExecutionError(f"AI Search query failed: {e.message or e}") from e

    async def aclose(self) -> None:
        await self._client.close()
