"""Confluence tool declarations.

Each tool is a static declaration: metadata, a pydantic parameter schema
(camelCase on the wire) and an ``invoke`` body delegating to ConfluenceClient.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import Field

from toolbridge.foundation.registry import BaseTool, EmptyParams, ToolMetadata, ToolParams, ToolRegistry

from .client import ConfluenceClient


def _limit(default: int = 25) -> Any:
    return Field(default=default, ge=1, le=500, description="Maximum number of results")


class ConfluenceTool(BaseTool[Any]):
    """Tool bound to a ConfluenceClient."""

    def __init__(self, client: ConfluenceClient) -> None:
        self.client = client


# ═══════════════════════════════════════════════════════════════════════════════
# Parameter Schemas
# ═══════════════════════════════════════════════════════════════════════════════


class LimitParams(ToolParams):
    limit: int = _limit()


class PageParams(ToolParams):
    page_id: str = Field(..., min_length=1, description="Page ID")


class PageLimitParams(PageParams):
    limit: int = _limit()


class SpaceParams(ToolParams):
    space_key: str = Field(..., min_length=1, description="Space key")


class SearchParams(ToolParams):
    query: str = Field(..., min_length=1, description='CQL query, e.g. space = "DOC" AND title ~ "release"')
    limit: int = _limit(10)


class CreatePageParams(ToolParams):
    space_key: str = Field(..., min_length=1, description="Space key")
    title: str = Field(..., min_length=1, description="Page title")
    content: str = Field(..., description="Page body in storage format (XHTML)")
    parent_page_id: str | None = Field(default=None, description="Parent page ID (optional)")


class UpdatePageParams(PageParams):
    title: str = Field(..., min_length=1, description="Page title")
    content: str = Field(..., description="Page body in storage format (XHTML)")
    version: int = Field(..., ge=1, description="New version number (current version + 1)")


class CommentParams(PageParams):
    comment: str = Field(..., min_length=1, description="Comment body in storage format")


class SpacePagesParams(SpaceParams):
    limit: int = _limit(50)
    start: int = Field(default=0, ge=0, description="Offset of the first result")


class AddLabelParams(PageParams):
    labels: list[str] = Field(..., min_length=1, description="Label names to add")


class OptionalSpaceParams(ToolParams):
    limit: int = _limit()
    space_key: str | None = Field(default=None, description="Restrict to one space (optional)")


class LabelSearchParams(OptionalSpaceParams):
    label: str = Field(..., min_length=1, description="Label name")


# ═══════════════════════════════════════════════════════════════════════════════
# Spaces
# ═══════════════════════════════════════════════════════════════════════════════


class GetSpacesTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(name="get_spaces", description="List Confluence spaces (compact)")
    params_schema: ClassVar[type[ToolParams]] = LimitParams

    async def invoke(self, params: LimitParams) -> Any:
        return await self.client.get_spaces(params.limit)


class GetSpaceDetailsTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_space_details", description="Get details of a Confluence space",
    )
    params_schema: ClassVar[type[ToolParams]] = SpaceParams

    async def invoke(self, params: SpaceParams) -> Any:
        return await self.client.get_space_details(params.space_key)


class GetSpacePagesTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_space_pages", description="List the pages of a space, with paging",
    )
    params_schema: ClassVar[type[ToolParams]] = SpacePagesParams

    async def invoke(self, params: SpacePagesParams) -> Any:
        return await self.client.get_space_pages(params.space_key, params.limit, params.start)


class GetPageTemplatesTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_page_templates", description="List the page templates of a space",
    )
    params_schema: ClassVar[type[ToolParams]] = SpaceParams

    async def invoke(self, params: SpaceParams) -> Any:
        return await self.client.get_page_templates(params.space_key)


# ═══════════════════════════════════════════════════════════════════════════════
# Pages
# ═══════════════════════════════════════════════════════════════════════════════


class GetPageTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_page", description="Get a page by ID with its body as plain text",
    )
    params_schema: ClassVar[type[ToolParams]] = PageParams

    async def invoke(self, params: PageParams) -> Any:
        return await self.client.get_page(params.page_id)


class SearchPagesTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="search_pages",
        description=(
            "Search pages with CQL. Falls back to simpler searches when the backend fails with a server error; "
            "the result names the strategy used and whether it was exact."
        ),
    )
    params_schema: ClassVar[type[ToolParams]] = SearchParams

    async def invoke(self, params: SearchParams) -> Any:
        return await self.client.search_pages(params.query, params.limit)


class CreatePageTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(name="create_page", description="Create a new page in a space")
    params_schema: ClassVar[type[ToolParams]] = CreatePageParams

    async def invoke(self, params: CreatePageParams) -> Any:
        return await self.client.create_page(params.space_key, params.title, params.content, params.parent_page_id)


class UpdatePageTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="update_page", description="Update a page's title and body",
    )
    params_schema: ClassVar[type[ToolParams]] = UpdatePageParams

    async def invoke(self, params: UpdatePageParams) -> Any:
        return await self.client.update_page(params.page_id, params.title, params.content, params.version)


class DeletePageTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(name="delete_page", description="Delete a page by ID")
    params_schema: ClassVar[type[ToolParams]] = PageParams

    async def invoke(self, params: PageParams) -> Any:
        return await self.client.delete_page(params.page_id)


class GetPageHistoryTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_page_history", description="Get the version history of a page",
    )
    params_schema: ClassVar[type[ToolParams]] = PageLimitParams

    async def invoke(self, params: PageLimitParams) -> Any:
        return await self.client.get_page_history(params.page_id, params.limit)


class GetChildPagesTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(name="get_child_pages", description="List the child pages of a page")
    params_schema: ClassVar[type[ToolParams]] = PageLimitParams

    async def invoke(self, params: PageLimitParams) -> Any:
        return await self.client.get_child_pages(params.page_id, params.limit)


class GetRecentPagesTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_recent_pages", description="List recently modified pages, optionally in one space",
    )
    params_schema: ClassVar[type[ToolParams]] = OptionalSpaceParams

    async def invoke(self, params: OptionalSpaceParams) -> Any:
        return await self.client.get_recent_pages(params.limit, params.space_key)


class GetMyPagesTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_my_pages", description="List pages created by the current user",
    )
    params_schema: ClassVar[type[ToolParams]] = OptionalSpaceParams

    async def invoke(self, params: OptionalSpaceParams) -> Any:
        return await self.client.get_my_pages(params.limit, params.space_key)


class GetPagesByLabelTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_pages_by_label", description="List pages carrying a label, optionally in one space",
    )
    params_schema: ClassVar[type[ToolParams]] = LabelSearchParams

    async def invoke(self, params: LabelSearchParams) -> Any:
        return await self.client.get_pages_by_label(params.label, params.limit, params.space_key)


# ═══════════════════════════════════════════════════════════════════════════════
# Comments, Labels, Attachments, Users
# ═══════════════════════════════════════════════════════════════════════════════


class GetPageCommentsTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_page_comments", description="List the comments on a page as plain text",
    )
    params_schema: ClassVar[type[ToolParams]] = PageLimitParams

    async def invoke(self, params: PageLimitParams) -> Any:
        return await self.client.get_page_comments(params.page_id, params.limit)


class AddPageCommentTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(name="add_page_comment", description="Add a comment to a page")
    params_schema: ClassVar[type[ToolParams]] = CommentParams

    async def invoke(self, params: CommentParams) -> Any:
        return await self.client.add_page_comment(params.page_id, params.comment)


class GetPageLabelsTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(name="get_page_labels", description="List the labels of a page")
    params_schema: ClassVar[type[ToolParams]] = PageParams

    async def invoke(self, params: PageParams) -> Any:
        return await self.client.get_page_labels(params.page_id)


class AddPageLabelTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(name="add_page_label", description="Add labels to a page")
    params_schema: ClassVar[type[ToolParams]] = AddLabelParams

    async def invoke(self, params: AddLabelParams) -> Any:
        return await self.client.add_page_label(params.page_id, params.labels)


class GetPageAttachmentsTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_page_attachments", description="List the attachments of a page",
    )
    params_schema: ClassVar[type[ToolParams]] = PageLimitParams

    async def invoke(self, params: PageLimitParams) -> Any:
        return await self.client.get_page_attachments(params.page_id, params.limit)


class GetCurrentUserTool(ConfluenceTool):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_current_user", description="Get the user the API token belongs to",
    )
    params_schema: ClassVar[type[ToolParams]] = EmptyParams

    async def invoke(self, params: EmptyParams) -> Any:
        return await self.client.get_current_user()


TOOLS: tuple[type[ConfluenceTool], ...] = (
    GetSpacesTool,
    GetPageTool,
    SearchPagesTool,
    CreatePageTool,
    UpdatePageTool,
    DeletePageTool,
    GetPageHistoryTool,
    GetChildPagesTool,
    GetPageCommentsTool,
    AddPageCommentTool,
    GetSpacePagesTool,
    GetPageLabelsTool,
    AddPageLabelTool,
    GetPageAttachmentsTool,
    GetRecentPagesTool,
    GetMyPagesTool,
    GetPagesByLabelTool,
    GetPageTemplatesTool,
    GetSpaceDetailsTool,
    GetCurrentUserTool,
)


def build_registry(client: ConfluenceClient) -> ToolRegistry:
    """Registry of every Confluence tool, in listing order."""
    return ToolRegistry(tool(client) for tool in TOOLS)
