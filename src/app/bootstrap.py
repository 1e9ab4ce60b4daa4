"""Application initialization and configuration for Clearwater Assistant.

This module handles all bootstrap operations required before entering the main
loop: environment loading, settings validation, client creation, tool catalog
construction and orchestrator wiring.
"""

from __future__ import annotations

import os
import sys

from functools import partial

import httpx

from agents import set_default_openai_client, set_tracing_disabled
from dotenv import load_dotenv

from app.state import AppState, AsyncCloseable
from core.agent import AgentRunnerBackend, ModelBackend
from core.constants import KUSTO_FUNCTIONS_LOG, QUERY_AUDIT_LOG, Settings, get_settings
from core.orchestrator import DialogueOrchestrator
from core.prompts import SYSTEM_INSTRUCTIONS
from core.result_guard import ResultSizeGuard
from core.session_manager import SessionStore
from integrations.audit import JsonlQueryAuditSink
from integrations.document_store import AzureSearchExecutor, CosmosDocumentExecutor
from integrations.issue_trackers import AzureDevOpsWorkItemClient, GitHubIssueClient
from integrations.query_executor import ClusterCatalog, KustoRestExecutor, static_token
from tools.ai_search import ai_search_tools
from tools.cosmos import cosmos_tools
from tools.devops import devops_tools
from tools.issues import azure_devops_tools, github_tools
from tools.kusto import kusto_tools
from tools.meta import meta_tools
from tools.registry import ToolFactory, build_registry
from tools.safefly import safefly_tools
from utils.client_factory import create_http_client, create_openai_client
from utils.logger import ChatLogger
from utils.token_utils import count_tokens


def resolve_deployment(settings: Settings) -> str:
    if settings.api_provider == "azure":
        return settings.azure_openai_deployment
    return settings.openai_model


def build_tool_factories(
    settings: Settings,
    logger: ChatLogger,
    http_client: httpx.AsyncClient,
    closeables: list[AsyncCloseable] | None = None,
) -> list[ToolFactory]:
    """Select the plugins whose collaborators are configured.

    Feedback tools are always available; Kusto, GitHub, Azure DevOps, Cosmos DB
    and AI Search tools need credentials. SDK executors opened here are added
    to ``closeables`` so the caller can close them on shutdown.
    """
    if closeables is None:
        closeables = []
    factories: list[ToolFactory] = [partial(meta_tools, settings.log_dir, logger)]

    if settings.kusto_access_token:
        catalog = ClusterCatalog()
        executor = KustoRestExecutor(http_client, static_token(settings.kusto_access_token), logger, catalog)
        factories.append(partial(kusto_tools, executor, catalog, logger, settings.log_dir / KUSTO_FUNCTIONS_LOG))
        factories.append(partial(safefly_tools, executor, catalog))
        factories.append(partial(devops_tools, executor, catalog))
    else:
        logger.warning("KUSTO_ACCESS_TOKEN not set - Kusto, SafeFly and DevOps tools disabled")

    if settings.github_enabled and settings.github_token:
        client = GitHubIssueClient(
            http_client,
            settings.github_token,
            logger,
            default_owner=settings.github_owner,
            default_repo=settings.github_repo,
        )
        factories.append(partial(github_tools, client))

    if settings.azure_devops_enabled and settings.azure_devops_pat:
        ado_client = AzureDevOpsWorkItemClient(
            http_client,
            str(settings.azure_devops_org_url),
            settings.azure_devops_pat,
            logger,
            default_project=settings.azure_devops_project,
        )
        factories.append(partial(azure_devops_tools, ado_client))

    if settings.cosmos_enabled:
        cosmos = CosmosDocumentExecutor(
            str(settings.cosmos_endpoint),
            settings.cosmos_key or "",
            settings.cosmos_database or "",
            settings.cosmos_container or "",
            logger,
        )
        closeables.append(cosmos)
        factories.append(partial(cosmos_tools, cosmos, cosmos.database, cosmos.container_name))

    if settings.ai_search_enabled:
        search = AzureSearchExecutor(
            str(settings.ai_search_endpoint), settings.ai_search_key or "", settings.ai_search_index or "", logger
        )
        closeables.append(search)
        factories.append(partial(ai_search_tools, search, search.index_name))

    return factories


def build_app_state(
    settings: Settings,
    logger: ChatLogger,
    backend: ModelBackend | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AppState:
    """Wire the session store, tool catalog and orchestrator.

    Args:
        settings: Validated settings
        logger: Application logger
        backend: Reasoning backend (default: AgentRunnerBackend for the configured deployment)
        http_client: Client for tool backends (default: a new client owned by the state)
    """
    deployment = resolve_deployment(settings)
    closeables: list[AsyncCloseable] = []
    if http_client is None:
        http_client = create_http_client(logger if settings.http_request_logging else None)
        closeables.append(http_client)

    registry = build_registry(build_tool_factories(settings, logger, http_client, closeables), logger)
    sessions = SessionStore()

    orchestrator = DialogueOrchestrator(
        store=sessions,
        registry=registry,
        backend=backend or AgentRunnerBackend(deployment, SYSTEM_INSTRUCTIONS, logger),
        guard=ResultSizeGuard(chunk_policy=settings.chunk_policy),
        logger=logger,
        audit_sink=JsonlQueryAuditSink(settings.log_dir / QUERY_AUDIT_LOG) if settings.query_audit_enabled else None,
        token_counter=lambda text: count_tokens(text, deployment)["exact_tokens"],
    )

    return AppState(
        orchestrator=orchestrator,
        sessions=sessions,
        registry=registry,
        logger=logger,
        deployment=deployment,
        closeables=closeables,
    )


async def initialize_application() -> AppState:
    """Initialize Clearwater Assistant and return populated state.

    1. Load environment variables and validate configuration
    2. Create OpenAI client (Azure or OpenAI provider)
    3. Configure Agent/Runner framework defaults
    4. Build the tool catalog and orchestrator

    Raises:
        SystemExit: If configuration validation fails (prints helpful error message)
    """
    env_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env")
    load_dotenv(env_path)

    try:
        settings = get_settings()
    except Exception as e:
        sys.stderr.write(f"Error: Configuration validation failed: {e}\n")
        sys.stderr.write("Please check your .env file has required variables:\n")
        sys.stderr.write("API_PROVIDER=azure (default): AZURE_OPENAI_API_KEY, AZURE_OPENAI_ENDPOINT\n")
        sys.stderr.write("API_PROVIDER=openai: OPENAI_API_KEY, OPENAI_MODEL\n")
        sys.exit(1)

    logger = ChatLogger(debug=settings.debug, log_dir=settings.log_dir)

    if settings.api_provider == "azure":
        api_key = settings.azure_openai_api_key or ""
        base_url: str | None = settings.azure_endpoint_str
    else:
        api_key = settings.openai_api_key or ""
        base_url = None

    model_http_client = create_http_client(logger if settings.http_request_logging else None)
    if settings.http_request_logging:
        logger.info("HTTP request/response logging enabled")
    client = create_openai_client(api_key, base_url=base_url, http_client=model_http_client)

    # Set as default client for Agent/Runner
    set_default_openai_client(client)

    # Disable tracing to avoid 401 errors with Azure
    set_tracing_disabled(True)

    state = build_app_state(settings, logger)
    state.closeables.append(model_http_client)

    provider = "Azure OpenAI" if settings.api_provider == "azure" else "OpenAI"
    sys.stderr.write(f"Connected to {provider}\n")
    sys.stderr.write(f"Using model: {state.deployment}\n")
    logger.info(f"App initialized with {len(state.registry)} tools")
    return state
