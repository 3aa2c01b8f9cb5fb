"""Tools exposed through list_tools / call_tool."""

from instabridge.tools.catalog import ToolCatalog, build_tool_catalog, register_tool_handlers
from instabridge.tools.instagram_posts import TOOL_NAME, tool_descriptor

__all__ = ["TOOL_NAME", "ToolCatalog", "build_tool_catalog", "register_tool_handlers", "tool_descriptor"]
