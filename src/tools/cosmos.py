"""Cosmos DB document queries."""

from __future__ import annotations

from typing import Any

from integrations.document_store import DocumentQueryExecutor
from models.tool_models import ToolDescriptor, ToolParameter
from utils.json_utils import error_response, json_pretty

GROUP = "cosmosdb"

COSMOS_PLUGIN_HELP = (
    "CosmosDBPlugin runs SQL queries against the {container} container of the {database} Cosmos DB "
    "database and returns every matching item as JSON. Select only the properties you need and add a "
    "TOP clause when many items could match."
)


def cosmos_tools(executor: DocumentQueryExecutor, database: str, container: str) -> list[ToolDescriptor]:
    """Build the Cosmos DB plugin tools.

    Args:
        executor: Document query backend bound to one container
        database: Database name shown in help
        container: Container name shown in help
    """

    def plugin_help() -> str:
        return COSMOS_PLUGIN_HELP.format(database=database, container=container)

    async def query_cosmos_db(args: dict[str, Any]) -> str:
        sql_query = args["sql_query"].strip()
        if not sql_query:
            return error_response("The 'sql_query' parameter cannot be null or empty.")
        return json_pretty(await executor.query_items(sql_query))

    return [
        ToolDescriptor(
            name="query_cosmos_db",
            description="Queries Cosmos DB for items based on a SQL query. Returns the results as JSON.",
            invoke=query_cosmos_db,
            parameters=(
                ToolParameter(
                    name="sql_query",
                    description="The SQL query to execute (e.g., 'SELECT TOP 10 c.id FROM c').",
                ),
            ),
            group=GROUP,
            help_provider=plugin_help,
        )
    ]
