"""Static registry of the tools an adapter exposes.

Built once at startup and consulted for two things: answering tools/list
(in registration order) and resolving a tools/call name to a tool.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from .base import BaseTool


class ToolRegistry:
    """Ordered name -> tool table.

    Example:
        >>> registry = ToolRegistry([GetPageTool(client), SearchPagesTool(client)])
        >>> registry.get("get_page")
        GetPageTool(name='get_page')
        >>> [t["name"] for t in registry.listing()]
        ['get_page', 'search_pages']
    """

    __slots__ = ("_tools",)

    def __init__(self, tools: Iterable[BaseTool[Any]] = ()) -> None:
        self._tools: dict[str, BaseTool[Any]] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: BaseTool[Any]) -> None:
        """Register a tool instance. Names must be unique."""
        name = tool.metadata.name
        if name in self._tools:
            raise ValueError(f"Tool '{name}' already registered")
        self._tools[name] = tool

    def get(self, name: str) -> BaseTool[Any] | None:
        return self._tools.get(name)

    def listing(self) -> list[dict[str, object]]:
        """Tool descriptors for tools/list, in registration order."""
        return [tool.describe() for tool in self._tools.values()]

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __getitem__(self, name: str) -> BaseTool[Any]:
        return self._tools[name]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[BaseTool[Any]]:
        return iter(self._tools.values())
