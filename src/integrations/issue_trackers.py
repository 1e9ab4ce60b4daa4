"""
Issue tracker clients (GitHub issues and Azure DevOps work items).

Both clients wrap an httpx.AsyncClient and raise ``IssueTrackerError`` with a
message suitable for showing to the user when the service refuses a request.
"""

from __future__ import annotations

from typing import Any

import httpx

from core.constants import AZURE_DEVOPS_API_VERSION, GITHUB_API_URL, ISSUE_TRACKER_TIMEOUT
from models.error_models import IssueTrackerError
from utils.logger import ChatLogger

GITHUB_NOT_FOUND = "Repository not found. Please ensure the owner and repository names are correct."
GITHUB_UNAUTHORIZED = "Authorization failed. Please check your GitHub token permissions."
AZURE_DEVOPS_NOT_FOUND = "Project or work item type not found. Please check the project name and work item type."
AZURE_DEVOPS_UNAUTHORIZED = "Authorization failed. Please check your Azure DevOps token permissions."


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated list, dropping blanks."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class GitHubIssueClient:
    """Create issues through the GitHub REST API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token: str,
        logger: ChatLogger,
        default_owner: str | None = None,
        default_repo: str | None = None,
        api_url: str = GITHUB_API_URL,
    ):
        self.http_client = http_client
        self.token = token
        self.logger = logger
        self.default_owner = default_owner
        self.default_repo = default_repo
        self.api_url = api_url.rstrip("/")

    async def create_issue(
        self,
        title: str,
        body: str,
        assignees: list[str] | None = None,
        labels: list[str] | None = None,
        owner: str | None = None,
        repo: str | None = None,
    ) -> dict[str, Any]:
        """Create an issue and return its number, URL, title and state."""
        owner = owner or self.default_owner
        repo = repo or self.default_repo
        if not owner or not repo:
            raise IssueTrackerError("Repository owner and name are required.")

        payload: dict[str, Any] = {"title": title, "body": body}
        if assignees:
            payload["assignees"] = assignees
        if labels:
            payload["labels"] = labels

        try:
            response = await self.http_client.post(
                f"{self.api_url}/repos/{owner}/{repo}/issues",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": "application/vnd.github+json",
                },
                timeout=ISSUE_TRACKER_TIMEOUT,
            )
        except httpx.HTTPError as e:
            raise IssueTrackerError(f"Failed to reach GitHub: {e}") from e

        if response.status_code == 404:
            raise IssueTrackerError(GITHUB_NOT_FOUND)
        if response.status_code in (401, 403):
            raise IssueTrackerError(GITHUB_UNAUTHORIZED)
        if response.status_code >= 400:
            raise IssueTrackerError(f"GitHub returned {response.status_code}: {response.text[:200]}")

        data = response.json()
        self.logger.info(f"Created GitHub issue #{data.get('number')} in {owner}/{repo}")
        return {
            "number": data.get("number"),
            "url": data.get("html_url"),
            "title": data.get("title"),
            "state": data.get("state"),
        }


class AzureDevOpsWorkItemClient:
    """Create work items through the Azure DevOps REST API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        organization_url: str,
        personal_access_token: str,
        logger: ChatLogger,
        default_project: str | None = None,
    ):
        self.http_client = http_client
        self.organization_url = organization_url.rstrip("/")
        self.personal_access_token = personal_access_token
        self.logger = logger
        self.default_project = default_project

    @staticmethod
    def build_patch_document(
        title: str,
        description: str,
        assigned_to: str = "",
        tags: str = "",
    ) -> list[dict[str, str]]:
        """JSON-patch operations for a new work item."""
        operations = [
            {"op": "add", "path": "/fields/System.Title", "value": title},
            {"op": "add", "path": "/fields/System.Description", "value": description},
        ]
        if assigned_to:
            operations.append({"op": "add", "path": "/fields/System.AssignedTo", "value": assigned_to})
        if tags:
            operations.append({"op": "add", "path": "/fields/System.Tags", "value": "; ".join(split_csv(tags))})
        return operations

    async def create_work_item(
        self,
        work_item_type: str,
        title: str,
        description: str,
        assigned_to: str = "",
        tags: str = "",
        project: str | None = None,
    ) -> dict[str, Any]:
        """Create a work item and return its id, URL and title."""
        project = project or self.default_project
        if not project:
            raise IssueTrackerError("Azure DevOps project is required.")

        url = f"{self.organization_url}/{project}/_apis/wit/workitems/${work_item_type}"
        try:
            response = await self.http_client.post(
                url,
                params={"api-version": AZURE_DEVOPS_API_VERSION},
                json=self.build_patch_document(title, description, assigned_to, tags),
                headers={"Content-Type": "application/json-patch+json"},
                auth=("", self.personal_access_token),
                timeout=ISSUE_TRACKER_TIMEOUT,
            )
        except httpx.HTTPError as e:
            raise IssueTrackerError(f"Failed to reach Azure DevOps: {e}") from e

        if response.status_code == 404:
            raise IssueTrackerError(AZURE_DEVOPS_NOT_FOUND)
        if response.status_code in (401, 403):
            raise IssueTrackerError(AZURE_DEVOPS_UNAUTHORIZED)
        if response.status_code >= 400:
            raise IssueTrackerError(f"Azure DevOps returned {response.status_code}: {response.text[:200]}")

        data = response.json()
        fields = data.get("fields", {})
        self.logger.info(f"Created {work_item_type} {data.get('id')} in {project}")
        return {
            "id": data.get("id"),
            "url": data.get("_links", {}).get("html", {}).get("href") or data.get("url"),
            "title": fields.get("System.Title", title),
        }
