"""Jira adapter: REST operations and their tool declarations."""

from .client import JiraClient, fields_for_mode
from .tools import TOOLS, JiraTool, build_registry

__all__ = ["JiraClient", "JiraTool", "TOOLS", "build_registry", "fields_for_mode"]
