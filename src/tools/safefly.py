"""SafeFly deployment request tools (queries the ``safefly`` cluster)."""

from __future__ import annotations

import re

from typing import Any

from integrations.query_executor import ClusterCatalog, QueryExecutor
from models.tool_models import ToolDescriptor, ToolParameter
from tools.kusto import KUSTO_BEST_PRACTICES, run_query
from utils.json_utils import error_response

GROUP = "safefly"
SAFEFLY_CLUSTER = "safefly"

#: SafeFlyRequest keeps one row per status change; this keeps the latest per request
DEDUPLICATE_CLAUSE = "summarize arg_max(LastStatusUpdateDate, *) by Id"

SAFEFLY_BEST_PRACTICES = f"""If you have any issues, consider the following best practices querying SafeFly.
1. When getting project errors, check that you have the correct columns.
2. If you have trouble finding a specific value, check the distinct values of the column.
3. The most common table is SafeFly Requests, the Id, ServiceName, and LastStatusUpdateDate are useful fields.
4. The service names may or may not start with 'Azure', use lookup_safefly_services for a full list of service names.
5. When querying for SafeFly requests, always remove duplicates 'SafeFlyRequest | {DEDUPLICATE_CLAUSE}'

{KUSTO_BEST_PRACTICES}"""

SAFEFLY_PLUGIN_HELP = (
    "SafeFlyPlugin looks up SafeFly deployment requests in the {database} database of the 'safefly' cluster. "
    "Read safefly_query_best_practices first, use lookup_safefly_services to find exact service names, "
    "then lookup_safefly_requests_kusto. Requests are de-duplicated to the latest status update per Id."
)

_TABLE_PREFIX = re.compile(r"^\s*SafeFlyRequest\b\s*(\|)?", re.IGNORECASE)


def deduplicated_request_query(query: str, service_name: str | None = None) -> str:
    """Rewrite a SafeFlyRequest query to use only the latest row per request.

    Queries that start with the table get the de-duplication inserted after it;
    anything else is treated as the pipeline that follows it. A blank query
    becomes the de-duplicated table alone.
    """
    query = query.strip()
    if DEDUPLICATE_CLAUSE not in query:
        match = _TABLE_PREFIX.match(query)
        rest = query[match.end() :] if match else query
        rest = rest.strip().lstrip("|").strip()
        query = f"SafeFlyRequest | {DEDUPLICATE_CLAUSE}"
        if rest:
            query += f" | {rest}"

    if service_name and service_name.strip():
        service = service_name.strip().replace('"', "")
        query += f' | where ServiceName contains "{service}"'
    return query


def services_query(filters: str | None = None) -> str:
    query = "SafeFlyRequest | distinct ServiceName"
    if filters and filters.strip():
        extra = filters.strip()
        query += f" {extra}" if extra.startswith("|") else f" | {extra}"
    return query


def safefly_tools(executor: QueryExecutor, catalog: ClusterCatalog) -> list[ToolDescriptor]:
    """Build the SafeFly plugin tools."""

    def plugin_help() -> str:
        # Raises ClusterLookupError when the cluster is missing; help then omits these tools
        return SAFEFLY_PLUGIN_HELP.format(database=catalog.get(SAFEFLY_CLUSTER).database)

    async def best_practices(_: dict[str, Any]) -> str:
        return SAFEFLY_BEST_PRACTICES

    async def lookup_requests(args: dict[str, Any]) -> str:
        if not args["query"].strip():
            return error_response("The 'query' parameter cannot be null or empty.")
        query = deduplicated_request_query(args["query"], args["service_name"])
        return await run_query(executor, catalog, SAFEFLY_CLUSTER, query)

    async def lookup_services(args: dict[str, Any]) -> str:
        return await run_query(executor, catalog, SAFEFLY_CLUSTER, services_query(args["filters"]))

    return [
        ToolDescriptor(
            name="safefly_query_best_practices",
            description=(
                "Should always use this step before using lookup_safefly_requests_kusto. This contains helpful "
                "information that should be considered before querying SafeFly with Kusto."
            ),
            invoke=best_practices,
            group=GROUP,
            help_provider=plugin_help,
        ),
        ToolDescriptor(
            name="lookup_safefly_requests_kusto",
            description=(
                "Retrieves the SafeFly requests from Kusto. Users can provide a service name for filtering results. "
                "Use safefly_query_best_practices first to remember the quirks of querying SafeFly."
            ),
            invoke=lookup_requests,
            parameters=(
                ToolParameter(
                    name="query",
                    description="The Kusto query string to execute, e.g., 'SafeFlyRequest | count' or similar.",
                ),
                ToolParameter(
                    name="service_name",
                    description="Service name to filter results. If not provided, retrieves all requests.",
                    optional=True,
                ),
            ),
            group=GROUP,
            help_provider=plugin_help,
        ),
        ToolDescriptor(
            name="lookup_safefly_services",
            description=(
                "Retrieves the list of SafeFly service teams from Kusto which can be used to help lookup "
                "services for users."
            ),
            invoke=lookup_services,
            parameters=(
                ToolParameter(
                    name="filters",
                    description="Filters appended to 'SafeFlyRequest | distinct ServiceName', e.g. \"| where ServiceName startswith 'Azure'\".",
                    optional=True,
                ),
            ),
            group=GROUP,
            help_provider=plugin_help,
        ),
    ]
