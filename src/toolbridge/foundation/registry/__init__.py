"""Tool declarations and the static registry."""

from .base import BaseTool, EmptyParams, ToolMetadata, ToolParams
from .registry import ToolRegistry

__all__ = ["BaseTool", "ToolMetadata", "ToolParams", "EmptyParams", "ToolRegistry"]
