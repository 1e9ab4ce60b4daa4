"""Azure AI Search queries."""

from __future__ import annotations

from typing import Any

from core.constants import AI_SEARCH_DEFAULT_TOP, AI_SEARCH_MAX_TOP
from integrations.document_store import SearchExecutor
from models.tool_models import ParameterType, ToolDescriptor, ToolParameter
from utils.json_utils import error_response, json_pretty

GROUP = "aisearch"

AI_SEARCH_PLUGIN_HELP = (
    "AISearchPlugin runs full-text searches against the {index} index and returns the best matching "
    "documents as JSON, at most {max_top} per call."
)


def ai_search_tools(executor: SearchExecutor, index_name: str) -> list[ToolDescriptor]:
    """Build the AI Search plugin tools."""

    def plugin_help() -> str:
        return AI_SEARCH_PLUGIN_HELP.format(index=index_name, max_top=AI_SEARCH_MAX_TOP)

    async def query_ai_search(args: dict[str, Any]) -> str:
        search_query = args["search_query"].strip()
        if not search_query:
            return error_response("The 'search_query' parameter cannot be null or empty.")
        top = args["top"]
        if not 1 <= top <= AI_SEARCH_MAX_TOP:
            return error_response(f"The 'top' parameter must be between 1 and {AI_SEARCH_MAX_TOP}.")
        return json_pretty(await executor.search(search_query, top))

    return [
        ToolDescriptor(
            name="query_ai_search",
            description="Queries AI Search for documents based on a search query. Returns the results as JSON.",
            invoke=query_ai_search,
            parameters=(
                ToolParameter(name="search_query", description="The search query to execute."),
                ToolParameter(
                    name="top",
                    type=ParameterType.INTEGER,
                    description="Maximum number of documents to return.",
                    optional=True,
                    default=AI_SEARCH_DEFAULT_TOP,
                ),
            ),
            group=GROUP,
            help_provider=plugin_help,
        )
    ]
