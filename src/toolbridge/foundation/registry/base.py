"""Core tool abstractions: BaseTool, ToolMetadata, and parameter schemas.

A tool is a static declaration (name, description, pydantic parameter schema)
plus an async ``invoke`` body. The dispatcher only ever talks to tools through
the uniform ``validate(arguments)`` / ``invoke(params)`` contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import RpcErrorCode, RpcException, format_validation_error


class ToolMetadata(BaseModel):
    """Metadata describing a tool.

    Attributes:
        name: Unique identifier (snake_case, e.g., "get_page")
        description: What the tool does (shown to the client in tools/list)
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., pattern=r"^[a-z][a-z0-9_]*$")
    description: str = Field(..., min_length=10)


class ToolParams(BaseModel):
    """Base for parameter schemas.

    Field names are snake_case in Python and camelCase on the wire. Required
    fields declare no default; optional fields declare theirs, so defaults are
    resolved once here rather than in handler bodies. Unknown keys are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class EmptyParams(ToolParams):
    """Schema for tools with no inputs."""


TParams = TypeVar("TParams", bound=ToolParams)


class BaseTool(ABC, Generic[TParams]):
    """Abstract base class for all tools.

    Subclasses must:
    - Define `metadata` class variable with ToolMetadata
    - Define `params_schema` class variable with the ToolParams model type
    - Implement `invoke(params)` returning a JSON-serializable value

    Example:
        >>> class PageParams(ToolParams):
        ...     page_id: str = Field(..., description="ID of the page")
        ...
        >>> class GetPageTool(BaseTool[PageParams]):
        ...     metadata = ToolMetadata(name="get_page", description="Fetch a page by ID")
        ...     params_schema = PageParams
        ...
        ...     async def invoke(self, params: PageParams) -> dict:
        ...         return await self.client.get_page(params.page_id)
    """

    metadata: ClassVar[ToolMetadata]
    params_schema: ClassVar[type[ToolParams]] = EmptyParams

    @property
    def name(self) -> str:
        return self.metadata.name

    def validate(self, arguments: object) -> TParams:
        """Check arguments against the schema. Raises RpcException(INVALID_PARAMS) on mismatch."""
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise RpcException.create(RpcErrorCode.INVALID_PARAMS, f"arguments for {self.name} must be an object")
        try:
            return self.params_schema.model_validate(arguments)  # type: ignore[return-value]
        except ValidationError as e:
            raise RpcException.create(
                RpcErrorCode.INVALID_PARAMS, format_validation_error(e, tool_name=self.name),
            ) from e

    @abstractmethod
    async def invoke(self, params: TParams) -> Any:
        """Run the tool body. Any exception raised here is a tool execution error."""
        ...

    # ─────────────────────────────────────────────────────────────────
    # Schema
    # ─────────────────────────────────────────────────────────────────

    def input_schema(self) -> dict[str, object]:
        """JSON schema of the parameters in ``{type, properties, required}`` form."""
        schema = self.params_schema.model_json_schema(by_alias=True)
        properties = {
            name: {k: v for k, v in prop.items() if k != "title"}
            for name, prop in schema.get("properties", {}).items()
        }
        return {"type": "object", "properties": properties, "required": schema.get("required", [])}

    def describe(self) -> dict[str, object]:
        return {"name": self.name, "description": self.metadata.description, "inputSchema": self.input_schema()}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
