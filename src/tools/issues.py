"""Issue creation tools for GitHub and Azure DevOps."""

from __future__ import annotations

from typing import Any

from integrations.issue_trackers import AzureDevOpsWorkItemClient, GitHubIssueClient, split_csv
from models.error_models import IssueTrackerError
from models.tool_models import ToolDescriptor, ToolParameter
from utils.json_utils import error_response, json_pretty

GITHUB_PLUGIN_HELP = (
    "GitHubPlugin creates issues on GitHub. Default repository: {repository}. "
    "Pass owner and repo to target another repository; assignees and labels are comma-separated."
)

AZURE_DEVOPS_PLUGIN_HELP = (
    "AzureDevOpsPlugin creates work items in {organization}. Default project: {project}. "
    "Use a work item type such as Bug, Task or User Story; tags are comma-separated."
)


def github_tools(client: GitHubIssueClient) -> list[ToolDescriptor]:
    def plugin_help() -> str:
        repository = f"{client.default_owner}/{client.default_repo}" if client.default_repo else "none"
        return GITHUB_PLUGIN_HELP.format(repository=repository)

    async def create_issue(args: dict[str, Any]) -> str:
        if not args["title"].strip():
            return error_response("The 'title' parameter cannot be null or empty.")
        try:
            issue = await client.create_issue(
                title=args["title"],
                body=args["body"],
                assignees=split_csv(args["assignees"]),
                labels=split_csv(args["labels"]),
                owner=args["owner"],
                repo=args["repo"],
            )
        except IssueTrackerError as e:
            return error_response(str(e))
        return json_pretty(issue)

    return [
        ToolDescriptor(
            name="create_github_issue",
            description="Creates an issue on the specified GitHub repository.",
            invoke=create_issue,
            parameters=(
                ToolParameter(name="title", description="The title of the issue."),
                ToolParameter(name="body", description="The body/content of the issue."),
                ToolParameter(
                    name="assignees",
                    description="A comma-separated list of GitHub usernames to assign to the issue.",
                    optional=True,
                    default="",
                ),
                ToolParameter(
                    name="labels",
                    description="A comma-separated list of labels to add to the issue.",
                    optional=True,
                    default="",
                ),
                ToolParameter(
                    name="owner",
                    description="The owner of the repository (username or organization).",
                    optional=True,
                ),
                ToolParameter(name="repo", description="The name of the repository.", optional=True),
            ),
            group="github",
            help_provider=plugin_help,
        )
    ]


def azure_devops_tools(client: AzureDevOpsWorkItemClient) -> list[ToolDescriptor]:
    def plugin_help() -> str:
        return AZURE_DEVOPS_PLUGIN_HELP.format(
            organization=client.organization_url, project=client.default_project or "none"
        )

    async def create_work_item(args: dict[str, Any]) -> str:
        if not args["title"].strip() or not args["work_item_type"].strip():
            return error_response("Both 'work_item_type' and 'title' are required.")
        try:
            item = await client.create_work_item(
                work_item_type=args["work_item_type"],
                title=args["title"],
                description=args["description"],
                assigned_to=args["assigned_to"],
                tags=args["tags"],
                project=args["project"],
            )
        except IssueTrackerError as e:
            return error_response(str(e))
        return json_pretty(item)

    return [
        ToolDescriptor(
            name="create_work_item",
            description="Creates a work item in the specified Azure DevOps project.",
            invoke=create_work_item,
            parameters=(
                ToolParameter(
                    name="work_item_type",
                    description="The type of work item to create (e.g., 'Bug', 'Task', 'User Story').",
                ),
                ToolParameter(name="title", description="The title of the work item."),
                ToolParameter(name="description", description="The description of the work item."),
                ToolParameter(
                    name="assigned_to",
                    description="The email address of the user to assign the work item to.",
                    optional=True,
                    default="",
                ),
                ToolParameter(
                    name="tags",
                    description="A comma-separated list of tags to add to the work item.",
                    optional=True,
                    default="",
                ),
                ToolParameter(name="project", description="The name of the Azure DevOps project.", optional=True),
            ),
            group="azuredevops",
            help_provider=plugin_help,
        )
    ]
