"""Azure DevOps build lookups over the ``azuredevops`` Kusto cluster."""

from __future__ import annotations

import json

from typing import Any

from integrations.query_executor import ClusterCatalog, QueryExecutor
from models.error_models import ClusterLookupError
from models.tool_models import ToolDescriptor, ToolParameter
from tools.kusto import CLUSTER_KEY_PARAM, escape_kusto_literal
from utils.json_utils import error_response

GROUP = "devops"
DEFAULT_CLUSTER = "azuredevops"

ORG_PARAM = ToolParameter(name="org_name", description="The name of the organization (e.g., 'msazure').")
BUILD_PARAM = ToolParameter(name="build_id", description="The build ID to look up.")

DEVOPS_PLUGIN_HELP = (
    "DevOpsPlugin looks up Azure DevOps builds in the {database} database of the 'azuredevops' cluster. "
    "Start with get_build_info, then follow up with work items, commits or pull requests for the same "
    "organization and build ID."
)


def build_filter_query(table: str, org_name: str, build_id: str) -> str:
    return (
        f"{table} | where BuildId == '{escape_kusto_literal(build_id)}' "
        f"and OrganizationName == '{escape_kusto_literal(org_name)}'"
    )


def pull_requests_query(org_name: str, build_id: str) -> str:
    return (
        f"{build_filter_query('BuildChange', org_name, build_id)} "
        "| join kind=inner PullRequest on $left.BuildChangeId == $right.LastMergeSourceCommitId "
        "| project PullRequestId, Title, Status, CreatedDate, UpdatedDate"
    )


def _is_empty(text: str) -> bool:
    if not text.strip():
        return True
    try:
        return json.loads(text) == []
    except ValueError:
        return False


def devops_tools(executor: QueryExecutor, catalog: ClusterCatalog) -> list[ToolDescriptor]:
    """Build the DevOps plugin tools."""

    def plugin_help() -> str:
        return DEVOPS_PLUGIN_HELP.format(database=catalog.get(DEFAULT_CLUSTER).database)

    async def lookup(cluster_key: str, query: str, no_data: str, org_name: str, build_id: str) -> str:
        if not org_name.strip() or not build_id.strip():
            return error_response("Both 'org_name' and 'build_id' are required.")
        if cluster_key not in catalog:
            return error_response(str(ClusterLookupError(cluster_key)))

        result = await executor.execute_query(cluster_key, query)
        if _is_empty(result.text):
            return f"{no_data} for Org: {org_name} and BuildId: {build_id}"
        return result.text

    def by_table(table: str, no_data: str) -> Any:
        async def invoke(args: dict[str, Any]) -> str:
            org_name, build_id = args["org_name"], args["build_id"]
            query = build_filter_query(table, org_name, build_id)
            return await lookup(DEFAULT_CLUSTER, query, no_data, org_name, build_id)

        return invoke

    async def pull_requests(args: dict[str, Any]) -> str:
        org_name, build_id = args["org_name"], args["build_id"]
        query = pull_requests_query(org_name, build_id)
        return await lookup(args["cluster_key"], query, "No pull requests found", org_name, build_id)

    return [
        ToolDescriptor(
            name="get_pull_requests_by_build",
            description=(
                "Retrieves Pull Requests linked to a specific build by performing a join between "
                "BuildChange and PullRequest."
            ),
            invoke=pull_requests,
            parameters=(CLUSTER_KEY_PARAM, ORG_PARAM, BUILD_PARAM),
            group=GROUP,
            help_provider=plugin_help,
        ),
        ToolDescriptor(
            name="get_build_info",
            description="Retrieves build information by organization name and build ID.",
            invoke=by_table("Build", "No build found"),
            parameters=(ORG_PARAM, BUILD_PARAM),
            group=GROUP,
            help_provider=plugin_help,
        ),
        ToolDescriptor(
            name="get_workitem_by_org_build",
            description="Retrieves work items linked to a specific build.",
            invoke=by_table("BuildWorkItem", "No work items found"),
            parameters=(ORG_PARAM, BUILD_PARAM),
            group=GROUP,
            help_provider=plugin_help,
        ),
        ToolDescriptor(
            name="get_commits_by_org_build",
            description="Retrieves commits linked to a specific build.",
            invoke=by_table("BuildChange", "No commits found"),
            parameters=(ORG_PARAM, BUILD_PARAM),
            group=GROUP,
            help_provider=plugin_help,
        ),
    ]
