"""
Constants and configuration for Clearwater Assistant.
Centralizes all magic numbers and configuration values.
Includes Pydantic validation for environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from models.tool_models import ChunkPolicy

# ============================================================================
# Project Paths
# ============================================================================

#: Project root directory (parent of src/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

#: Default directory for JSON logs, audit trail and feedback files
DEFAULT_LOG_DIR = PROJECT_ROOT / "logs"

# ============================================================================
# Model Configuration
# ============================================================================


@dataclass(frozen=True, slots=True)
class ModelConfig:
    """Model capabilities used when building the agent.

    Attributes:
        id: API model name (e.g., "gpt-4o")
        supports_reasoning: Whether model supports reasoning_effort parameter
    """

    id: str
    supports_reasoning: bool


#: Known models
MODEL_CONFIGS: tuple[ModelConfig, ...] = (
    ModelConfig("gpt-5.1", True),
    ModelConfig("gpt-5", True),
    ModelConfig("gpt-5-mini", True),
    ModelConfig("gpt-4.1", False),
    ModelConfig("gpt-4.1-mini", False),
    ModelConfig("gpt-4o", False),
    ModelConfig("gpt-4o-mini", False),
    ModelConfig("gpt-4-turbo", False),
    ModelConfig("o1", True),
    ModelConfig("o3", True),
    ModelConfig("o3-mini", True),
)

#: Model prefixes that accept reasoning_effort
REASONING_MODELS: tuple[str, ...] = tuple(m.id for m in MODEL_CONFIGS if m.supports_reasoning)

#: Default deployment when the provider does not name one
DEFAULT_MODEL = "gpt-4o"

# ============================================================================
# Conversation Configuration
# ============================================================================

#: Greeting stored as the first (system) turn of every new session
SESSION_GREETING = "How can I assist you today?"

#: Fixed reply used when the model call fails for a user turn
APOLOGY_MESSAGE = "I'm sorry, something went wrong while generating a response. Please try again."

#: Maximum model rounds (tool call loops) per user turn
MAX_CONVERSATION_TURNS = 50

#: Maximum characters of a tool failure message handed back to the model
TOOL_ERROR_MAX_CHARS = 500

#: Agent display name
AGENT_NAME = "Clearwater"

# ============================================================================
# Result Size Guard Configuration
# ============================================================================

#: Divisor for the character-based token estimate (len(text) // CHARS_PER_TOKEN)
CHARS_PER_TOKEN = 4

#: Estimated token count above which a tool result is replaced with guidance
RESULT_TOKEN_CEILING = 120_000

#: Raw UTF-8 byte ceiling checked before the token estimate (1MB)
TRANSPORT_MAX_BYTES = 1_048_576

#: Characters per chunk when an oversized payload is split.
#: One chunk stays under RESULT_TOKEN_CEILING after the estimate.
TRANSPORT_CHUNK_CHARS = 400_000

#: Bytes kept free in a transport chunk for the truncation note
CHUNK_NOTE_RESERVE_BYTES = 256

#: Separator between chunks for ChunkPolicy.ALL_CHUNKS
CHUNK_SEPARATOR = "\n---\n"

#: Suggestions returned instead of data when a result is too large
OVERSIZED_RESULT_SUGGESTIONS: tuple[str, ...] = (
    "try again after choosing important columns from the schema and select them using ' | project'.",
    "Use 'kusto_query_count' to determine the number of results in your previous query.",
    "If the issue continues, add a 'take' statement or decrease the number of rows taken if it was already included.",
)

# ============================================================================
# Kusto Configuration
# ============================================================================


@dataclass(frozen=True, slots=True)
class ClusterConfig:
    """Connection details for one Kusto cluster.

    Attributes:
        key: Short name used by tools (e.g., "safefly")
        uri: Cluster endpoint URI
        database: Database queried on that cluster
        description: What the data is, shown to the model
    """

    key: str
    uri: str
    database: str
    description: str


#: Known clusters. Tools refer to these by key.
KUSTO_CLUSTERS: tuple[ClusterConfig, ...] = (
    ClusterConfig(
        "safefly",
        "https://safeflycluster.westus.kusto.windows.net/",
        "safefly",
        "Deployment Requests linked with Build ID",
    ),
    ClusterConfig(
        "copilot",
        "https://az-copilot-kusto.eastus.kusto.windows.net/",
        "copilotDevFeedback",
        "Copilot Risk reports for SafeFly requests based on compared builds of sequential requests",
    ),
    ClusterConfig(
        "azuredevops",
        "https://1es.kusto.windows.net/",
        "AzureDevOps",
        "Contains Builds, Pull Requests, Commits, and Work Items",
    ),
    ClusterConfig(
        "r2d",
        "https://az-copilot-kusto.eastus.kusto.windows.net/",
        "r2d",
        "Contains helpful functions saved by Copilot.",
    ),
)

#: Default rows per page for paginated queries
DEFAULT_PAGE_SIZE = 1000

#: Server-side query timeout in seconds (5 minutes)
QUERY_TIMEOUT_SECONDS = 300

#: File (under the log dir) that collects proposed Kusto functions
KUSTO_FUNCTIONS_LOG = "kusto_functions.log"

#: Audit trail file for successful tool results
QUERY_AUDIT_LOG = "successful_queries.jsonl"

#: Feedback log files by entry type
FEEDBACK_LOG_FILES: dict[str, str] = {
    "user_feedback": "user_feedback.log",
    "bug": "bugs.log",
    "error": "errors.log",
    "kernel_improvement": "kernel_improvements.log",
}

# ============================================================================
# Logging Configuration
# ============================================================================

#: Maximum size in bytes for log files before rotation (10MB).
LOG_MAX_SIZE = 10 * 1024 * 1024

#: Number of conversation log backups to retain during rotation.
LOG_BACKUP_COUNT_CONVERSATIONS = 5

#: Number of error log backups to retain during rotation.
LOG_BACKUP_COUNT_ERRORS = 3

#: Maximum characters shown in log previews of user input and responses.
LOG_PREVIEW_LENGTH = 50

#: Length of generated logger session ids
SESSION_ID_LENGTH = 8

# ============================================================================
# Token Counting
# ============================================================================

#: LRU cache size for tiktoken counts
TOKEN_CACHE_SIZE = 128

# ============================================================================
# External Services
# ============================================================================

#: GitHub REST API root
GITHUB_API_URL = "https://api.github.com"

#: Azure DevOps REST API version for work item creation
AZURE_DEVOPS_API_VERSION = "7.0"

#: Timeout in seconds for issue tracker HTTP calls
ISSUE_TRACKER_TIMEOUT = 30.0

#: Default number of documents returned by an AI Search query
AI_SEARCH_DEFAULT_TOP = 10

#: Upper bound on documents returned by an AI Search query
AI_SEARCH_MAX_TOP = 50


class Settings(BaseSettings):
    """Environment settings with validation.

    Loads from environment variables and .env file.
    Validates at startup to fail fast on configuration errors.
    Supports both Azure OpenAI and base OpenAI API providers.
    """

    # API provider selection
    api_provider: str = Field(default="azure", description="API provider: 'azure' or 'openai'")

    # Azure OpenAI settings (required if provider=azure)
    azure_openai_api_key: str | None = Field(default=None, description="Azure OpenAI API key for authentication")
    azure_openai_endpoint: HttpUrl | None = Field(default=None, description="Azure OpenAI endpoint URL")
    azure_openai_deployment: str = Field(default=DEFAULT_MODEL, description="Azure OpenAI deployment name")

    # Base OpenAI settings (required if provider=openai)
    openai_api_key: str | None = Field(default=None, description="OpenAI API key for authentication")
    openai_model: str = Field(default="gpt-4o", description="OpenAI model name")

    debug: bool = Field(default=False, description="Enable debug logging")
    http_request_logging: bool = Field(default=False, description="Enable HTTP request/response logging")

    # Kusto (tools are only registered when a token is available)
    kusto_access_token: str | None = Field(default=None, description="Bearer token for the Kusto REST API")

    # Tool result handling
    chunk_policy: ChunkPolicy = Field(
        default=ChunkPolicy.FIRST_CHUNK,
        description="What to do with payloads over the transport limit: first_chunk, all_chunks or discard",
    )

    # Logging and audit
    log_dir: Path = Field(default=DEFAULT_LOG_DIR, description="Directory for JSON logs and feedback files")
    query_audit_enabled: bool = Field(default=True, description="Record successful tool results to the audit log")

    # GitHub issue creation (optional)
    github_token: str | None = Field(default=None, description="GitHub token for issue creation")
    github_owner: str | None = Field(default=None, description="Default repository owner")
    github_repo: str | None = Field(default=None, description="Default repository name")

    # Azure DevOps work item creation (optional)
    azure_devops_org_url: HttpUrl | None = Field(default=None, description="Organization URL, e.g. https://dev.azure.com/org")
    azure_devops_project: str | None = Field(default=None, description="Default Azure DevOps project")
    azure_devops_pat: str | None = Field(default=None, description="Personal access token for Azure DevOps")

    # Cosmos DB document queries (optional)
    cosmos_endpoint: HttpUrl | None = Field(default=None, description="Cosmos DB account endpoint")
    cosmos_key: str | None = Field(default=None, description="Cosmos DB account key")
    cosmos_database: str | None = Field(default=None, description="Cosmos DB database queried by query_cosmos_db")
    cosmos_container: str | None = Field(default=None, description="Cosmos DB container queried by query_cosmos_db")

    # Azure AI Search (optional)
    ai_search_endpoint: HttpUrl | None = Field(default=None, description="Azure AI Search service endpoint")
    ai_search_key: str | None = Field(default=None, description="Azure AI Search query key")
    ai_search_index: str | None = Field(default=None, description="Index searched by query_ai_search")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow both AZURE_OPENAI_API_KEY and azure_openai_api_key
        extra="ignore",
    )

    @field_validator("api_provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        """Validate API provider selection."""
        value = v.lower()
        if value not in ["azure", "openai"]:
            raise ValueError("api_provider must be 'azure' or 'openai'")
        return value

    @field_validator("azure_openai_endpoint")
    @classmethod
    def ensure_endpoint_format(cls, v: HttpUrl | None) -> HttpUrl | None:
        """Ensure endpoint URL ends with trailing slash for OpenAI client."""
        if v is None:
            return None
        url_str = str(v)
        if not url_str.endswith("/"):
            return HttpUrl(url_str + "/")
        return v

    @field_validator("azure_openai_api_key", "openai_api_key")
    @classmethod
    def validate_api_key(cls, v: str | None) -> str | None:
        """Basic validation of API key format."""
        if v is not None and len(v) < 10:
            raise ValueError("Invalid API key format")
        return v

    def model_post_init(self, __context: Any) -> None:
        """Validate that required keys are present for selected provider."""
        if self.api_provider == "azure":
            if not self.azure_openai_api_key:
                raise ValueError("azure_openai_api_key is required when api_provider='azure'")
            if not self.azure_openai_endpoint:
                raise ValueError("azure_openai_endpoint is required when api_provider='azure'")
        elif self.api_provider == "openai":
            if not self.openai_api_key:
                raise ValueError("openai_api_key is required when api_provider='openai'")

    @property
    def azure_endpoint_str(self) -> str:
        """Get endpoint as string for OpenAI client."""
        if self.azure_openai_endpoint is None:
            return ""
        return str(self.azure_openai_endpoint)

    @property
    def github_enabled(self) -> bool:
        return bool(self.github_token)

    @property
    def azure_devops_enabled(self) -> bool:
        return bool(self.azure_devops_pat and self.azure_devops_org_url)

    @property
    def cosmos_enabled(self) -> bool:
        return bool(self.cosmos_endpoint and self.cosmos_key and self.cosmos_database and self.cosmos_container)

    @property
    def ai_search_enabled(self) -> bool:
        return bool(self.ai_search_endpoint and self.ai_search_key and self.ai_search_index)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses LRU cache to ensure we only load and validate settings once.
    This function will raise validation errors at startup if config is invalid.
    """
    return Settings()
