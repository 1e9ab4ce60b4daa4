"""
Kusto tools: cluster discovery, schema lookup and query execution.

Every query tool validates its inputs and returns an error payload for bad
input or an unknown cluster. Backend failures propagate to the registry, which
reports them as ToolExecutionError. Size limits are applied by the
orchestrator's ResultSizeGuard, not here.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from core.constants import DEFAULT_PAGE_SIZE
from integrations.query_executor import ClusterCatalog, QueryExecutor
from models.error_models import ClusterLookupError
from models.tool_models import ParameterType, ToolDescriptor, ToolParameter
from utils.file_utils import write_text_file
from utils.json_utils import error_response, json_pretty
from utils.logger import ChatLogger

GROUP = "kusto"

KUSTO_BEST_PRACTICES = """The following are best practices for GPT to use Kusto
1. When getting errors always check that you have the correct columns for the table.
    Semantic error: 'summarize' operator: Failed to resolve scalar expression named
    Semantic error: 'project' operator: Failed to resolve scalar expression named
2. If you have trouble finding a specific value, check the distinct values of the column
3. Run kusto_query_count before pulling rows when you are unsure how large a result is.
4. Use ' | project' to select only the columns you need and ' | take' to limit rows.
"""

KUSTO_PLUGIN_HELP = (
    "KustoPlugin runs read-only Kusto queries. Known cluster keys: {clusters}. "
    "Use list_kusto_tables to see a database schema, kusto_query_count before pulling many rows "
    "and kusto_query_page to walk through large results."
)

CLUSTER_KEY_PARAM = ToolParameter(
    name="cluster_key",
    description="Key of the Kusto cluster to query (e.g., 'azuredevops', 'safefly', etc.).",
)
QUERY_PARAM = ToolParameter(name="query", description="The Kusto query string to execute.")


def escape_kusto_literal(value: str) -> str:
    """Escape a value for use inside a single-quoted Kusto string literal."""
    return value.replace("'", "''")


async def run_query(
    executor: QueryExecutor,
    catalog: ClusterCatalog,
    cluster_key: str,
    query: str,
    **kwargs: Any,
) -> str:
    """Validate inputs and execute a query, returning JSON text."""
    if not cluster_key or not cluster_key.strip():
        return error_response("The 'cluster_key' parameter cannot be null or empty.")
    if not query or not query.strip():
        return error_response("The 'query' parameter cannot be null or empty.")
    if cluster_key not in catalog:
        return error_response(str(ClusterLookupError(cluster_key)))

    result = await executor.execute_query(cluster_key, query, **kwargs)
    return result.text or "No results found."


def kusto_tools(
    executor: QueryExecutor,
    catalog: ClusterCatalog,
    logger: ChatLogger,
    functions_log: Path,
) -> list[ToolDescriptor]:
    """Build the Kusto plugin tools.

    Args:
        executor: Query backend
        catalog: Known clusters
        logger: Shared application logger
        functions_log: File that collects proposed Kusto functions
    """

    def plugin_help() -> str:
        return KUSTO_PLUGIN_HELP.format(clusters=", ".join(catalog.keys()))

    async def best_practices(_: dict[str, Any]) -> str:
        return KUSTO_BEST_PRACTICES

    async def list_databases(_: dict[str, Any]) -> str:
        databases = {f"{cluster.key} database: {cluster.database}": cluster.description for cluster in catalog}
        return json_pretty(databases)

    async def list_tables(args: dict[str, Any]) -> str:
        cluster_key = args["cluster_key"]
        if cluster_key not in catalog:
            logger.warning(f"Cluster with key '{cluster_key}' not found.")
            return error_response(str(ClusterLookupError(cluster_key)))

        cluster = catalog.get(cluster_key)
        result = await executor.execute_admin_command(cluster_key, f".show database {cluster.database} cslschema")
        return result.text or error_response("No tables found.")

    async def query(args: dict[str, Any]) -> str:
        return await run_query(executor, catalog, args["cluster_key"], args["query"])

    async def query_page(args: dict[str, Any]) -> str:
        page_index = int(args["page_index"])
        page_size = int(args["page_size"])
        if page_index < 0 or page_size <= 0:
            return error_response("'page_index' must be >= 0 and 'page_size' must be > 0.")
        return await run_query(
            executor,
            catalog,
            args["cluster_key"],
            args["query"],
            paginated=True,
            page_size=page_size,
            page_index=page_index,
        )

    async def query_count(args: dict[str, Any]) -> str:
        text = args["query"].rstrip().rstrip(";")
        if not text:
            return error_response("The 'query' parameter cannot be null or empty.")
        return await run_query(executor, catalog, args["cluster_key"], f"{text} | count")

    async def save_function(args: dict[str, Any]) -> str:
        name = args["function_name"].strip()
        definition = args["function_definition"].strip()
        if not name or not definition:
            return error_response("Both 'function_name' and 'function_definition' are required.")

        entry = f"{datetime.now(UTC).isoformat()}: Function Name: {name}\nDefinition:\n{definition}\n"
        await write_text_file(functions_log, entry + "\n", append=args["append"])
        logger.info(f"Saved Kusto function idea {name}")
        return "Kusto function saved successfully."

    return [
        ToolDescriptor(
            name="kusto_query_best_practices",
            description=(
                "Should always run this step before using kusto_query. Retrieve a set of Kusto Best Practices "
                "that can be used before running a kusto query."
            ),
            invoke=best_practices,
            group=GROUP,
            help_provider=plugin_help,
        ),
        ToolDescriptor(
            name="list_kusto_databases",
            description="Lists the available Kusto clusters and their databases.",
            invoke=list_databases,
            group=GROUP,
            help_provider=plugin_help,
        ),
        ToolDescriptor(
            name="list_kusto_tables",
            description="Lists all the tables in the specified Kusto database.",
            invoke=list_tables,
            parameters=(CLUSTER_KEY_PARAM,),
            group=GROUP,
            help_provider=plugin_help,
        ),
        ToolDescriptor(
            name="kusto_query",
            description="Executes a query against the specified Kusto database. Returns the rows as JSON.",
            invoke=query,
            parameters=(CLUSTER_KEY_PARAM, QUERY_PARAM),
            group=GROUP,
            help_provider=plugin_help,
        ),
        ToolDescriptor(
            name="kusto_query_page",
            description=(
                "Executes a query and returns one page of rows. Use this to walk through results "
                "that are too large to return at once."
            ),
            invoke=query_page,
            parameters=(
                CLUSTER_KEY_PARAM,
                QUERY_PARAM,
                ToolParameter(
                    name="page_index",
                    type=ParameterType.INTEGER,
                    description="Zero-based page number.",
                    optional=True,
                    default=0,
                ),
                ToolParameter(
                    name="page_size",
                    type=ParameterType.INTEGER,
                    description="Rows per page.",
                    optional=True,
                    default=DEFAULT_PAGE_SIZE,
                ),
            ),
            group=GROUP,
            help_provider=plugin_help,
        ),
        ToolDescriptor(
            name="kusto_query_count",
            description="Returns the number of rows a query would produce, without returning the rows.",
            invoke=query_count,
            parameters=(CLUSTER_KEY_PARAM, QUERY_PARAM),
            group=GROUP,
            help_provider=plugin_help,
        ),
        ToolDescriptor(
            name="save_kusto_function",
            description=(
                "Captures ideas for Kusto functions that could make query planning more efficient. "
                "Consider saving one after running a kusto query that took several steps."
            ),
            invoke=save_function,
            parameters=(
                ToolParameter(name="function_name", description="The name of the Kusto function to save."),
                ToolParameter(name="function_definition", description="The function definition/query."),
                ToolParameter(
                    name="append",
                    type=ParameterType.BOOLEAN,
                    description="Append to the existing log (true) or replace it (false).",
                    optional=True,
                    default=True,
                ),
            ),
            group=GROUP,
            help_provider=plugin_help,
        ),
    ]
