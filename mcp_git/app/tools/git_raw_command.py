"""임의의 git 명령을 셸 없이 실행하는 도구예요."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp_git.app.git_operations import GitOperations
from mcp_git.app.mcp_protocol import TextContent
from mcp_git.app.tools.arguments import get_str
from mcp_git.app.tools.base import BaseTool, ToolArguments, ToolContext, text_result
from mcp_git.app.tools.git_tools import build_schema
from libs.common.errors import ValidationError


class GitRawCommandTool(BaseTool):
    """``git``으로 시작하는 명령 문자열을 그대로 실행해요.

    명령은 셸 규칙으로 토큰화하지만 셸을 거치지 않으므로 파이프나 리다이렉션은
    동작하지 않아요.
    """

    def __init__(
        self,
        *,
        operations: GitOperations,
        resolve_repo_path: Callable[[ToolArguments], str],
        timeout_seconds: float = 60.0,
    ) -> None:
        self._ops = operations
        self._resolve_repo_path = resolve_repo_path
        self._timeout_seconds = timeout_seconds

    @property
    def name(self) -> str:
        return "git_raw_command"

    @property
    def description(self) -> str:
        return "Execute a raw Git command directly (bypasses shell wrapping issues)"

    @property
    def input_schema(self) -> dict[str, Any]:
        return build_schema(
            "GitRawCommand",
            {
                "repo_path": {"type": "string", "description": "Path to Git repository"},
                "command": {
                    "type": "string",
                    "description": "Raw Git command to execute (e.g., 'git tag -a v0.0.1 -m \"Release v0.0.1\"')",
                },
            },
            ["repo_path", "command"],
        )

    async def execute(self, context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
        command = get_str(arguments, "command").strip()
        if not command:
            raise ValidationError("command 파라미터가 필요해요.")

        context.raise_if_cancelled()
        output = await self._ops.raw_command(
            self._resolve_repo_path(arguments),
            command,
            timeout_seconds=self._timeout_seconds,
        )
        return text_result(output)
