from mcp_git.app.tools.base import BaseTool, ToolArguments, ToolContext, ToolHandler, text_result
from mcp_git.app.tools.registry import RegisteredTool, ToolRegistry

__all__ = [
    "BaseTool",
    "RegisteredTool",
    "ToolArguments",
    "ToolContext",
    "ToolHandler",
    "ToolRegistry",
    "text_result",
]
