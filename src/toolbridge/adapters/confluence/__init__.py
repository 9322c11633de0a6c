"""Confluence adapter: REST operations and their tool declarations."""

from .client import ConfluenceClient, compact_content, page_listing
from .tools import TOOLS, ConfluenceTool, build_registry

__all__ = ["ConfluenceClient", "ConfluenceTool", "TOOLS", "build_registry", "compact_content", "page_listing"]
