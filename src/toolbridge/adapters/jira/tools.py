"""Jira tool declarations."""

from __future__ import annotations

from typing import Any, ClassVar, Literal

from pydantic import Field

from toolbridge.foundation.registry import BaseTool, EmptyParams, ToolMetadata, ToolParams, ToolRegistry

from .client import JiraClient


class JiraTool(BaseTool[Any]):
    """Tool bound to a JiraClient."""

    def __init__(self, client: JiraClient) -> None:
        self.client = client


# ═══════════════════════════════════════════════════════════════════════════════
# Parameter Schemas
# ═══════════════════════════════════════════════════════════════════════════════


class IssueParams(ToolParams):
    issue_key: str = Field(..., min_length=1, description="Issue key, e.g. PROJ-123")
    mode: Literal["summary", "standard", "full"] = Field(
        default="standard", description="Response detail: summary (minimal), standard, or full",
    )


class SearchIssuesParams(ToolParams):
    jql: str = Field(..., min_length=1, description="JQL query")
    max_results: int = Field(default=25, ge=1, le=1000, description="Maximum number of results")
    mode: Literal["summary", "standard"] = Field(
        default="summary", description="Response detail: summary (recommended) or standard",
    )


class CreateIssueParams(ToolParams):
    project_key: str = Field(..., min_length=1, description="Project key, e.g. PROJ")
    issue_type: str = Field(..., min_length=1, description="Issue type, e.g. Task, Bug, Story")
    summary: str = Field(..., min_length=1, description="Issue title")
    description: str = Field(default="", description="Issue description")
    assignee: str | None = Field(default=None, description="Assignee username (optional)")


class UpdateIssueParams(ToolParams):
    issue_key: str = Field(..., min_length=1, description="Issue key, e.g. PROJ-123")
    fields: dict[str, Any] = Field(..., description="Fields to update, as a JSON object")


class CommentParams(ToolParams):
    issue_key: str = Field(..., min_length=1, description="Issue key, e.g. PROJ-123")
    comment: str = Field(..., min_length=1, description="Comment text")


class OptionalProjectParams(ToolParams):
    project_key: str | None = Field(default=None, description="Project key (optional)")


class LabelsParams(OptionalProjectParams):
    max_results: int = Field(default=50, ge=1, le=1000, description="Maximum number of results")


class ProjectParams(ToolParams):
    project_key: str = Field(..., min_length=1, description="Project key")


# ═══════════════════════════════════════════════════════════════════════════════
# Tools
# ═══════════════════════════════════════════════════════════════════════════════


class GetProjectsTool(JiraTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(name="get_projects", description="List Jira projects (compact)")
    params_schema: ClassVar[type[ToolParams]] = EmptyParams

    async def invoke(self, params: EmptyParams) -> Any:
        return await self.client.get_projects()


class GetIssueTool(JiraTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_issue", description="Get one issue with its essential fields",
    )
    params_schema: ClassVar[type[ToolParams]] = IssueParams

    async def invoke(self, params: IssueParams) -> Any:
        return await self.client.get_issue(params.issue_key, params.mode)


class SearchIssuesTool(JiraTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="search_issues", description="Search issues with JQL, returning compact results",
    )
    params_schema: ClassVar[type[ToolParams]] = SearchIssuesParams

    async def invoke(self, params: SearchIssuesParams) -> Any:
        return await self.client.search_issues(params.jql, params.max_results, params.mode)


class CreateIssueTool(JiraTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(name="create_issue", description="Create a new Jira issue")
    params_schema: ClassVar[type[ToolParams]] = CreateIssueParams

    async def invoke(self, params: CreateIssueParams) -> Any:
        return await self.client.create_issue(
            params.project_key, params.issue_type, params.summary, params.description, params.assignee,
        )


class UpdateIssueTool(JiraTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(name="update_issue", description="Update fields of a Jira issue")
    params_schema: ClassVar[type[ToolParams]] = UpdateIssueParams

    async def invoke(self, params: UpdateIssueParams) -> Any:
        return await self.client.update_issue(params.issue_key, params.fields)


class GetIssueTypesTool(JiraTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_issue_types", description="List issue types, globally or for one project",
    )
    params_schema: ClassVar[type[ToolParams]] = OptionalProjectParams

    async def invoke(self, params: OptionalProjectParams) -> Any:
        return await self.client.get_issue_types(params.project_key)


class AddCommentTool(JiraTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(name="add_comment", description="Add a comment to a Jira issue")
    params_schema: ClassVar[type[ToolParams]] = CommentParams

    async def invoke(self, params: CommentParams) -> Any:
        return await self.client.add_comment(params.issue_key, params.comment)


class GetCurrentUserTool(JiraTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_current_user", description="Get the user the API token belongs to",
    )
    params_schema: ClassVar[type[ToolParams]] = EmptyParams

    async def invoke(self, params: EmptyParams) -> Any:
        return await self.client.get_current_user()


class GetLabelsTool(JiraTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_labels", description="List labels, globally or those used in one project",
    )
    params_schema: ClassVar[type[ToolParams]] = LabelsParams

    async def invoke(self, params: LabelsParams) -> Any:
        return await self.client.get_labels(params.project_key, params.max_results)


class GetFixVersionsTool(JiraTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_fix_versions", description="List the fix versions of a project",
    )
    params_schema: ClassVar[type[ToolParams]] = ProjectParams

    async def invoke(self, params: ProjectParams) -> Any:
        return await self.client.get_fix_versions(params.project_key)


class GetComponentsTool(JiraTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_components", description="List the components of a project",
    )
    params_schema: ClassVar[type[ToolParams]] = ProjectParams

    async def invoke(self, params: ProjectParams) -> Any:
        return await self.client.get_components(params.project_key)


TOOLS: tuple[type[JiraTool], ...] = (
    GetProjectsTool,
    GetIssueTool,
    SearchIssuesTool,
    CreateIssueTool,
    UpdateIssueTool,
    GetIssueTypesTool,
    AddCommentTool,
    GetCurrentUserTool,
    GetLabelsTool,
    GetFixVersionsTool,
    GetComponentsTool,
)


def build_registry(client: JiraClient) -> ToolRegistry:
    """Registry of every Jira tool, in listing order."""
    return ToolRegistry(tool(client) for tool in TOOLS)
