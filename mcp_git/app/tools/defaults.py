"""Git 도구 20개를 등록한 ToolRegistry를 생성하는 팩토리예요."""

from __future__ import annotations

from mcp_git.app.git_operations import GitOperations
from mcp_git.app.tools.git_raw_command import GitRawCommandTool
from mcp_git.app.tools.git_tools import GitToolSet
from mcp_git.app.tools.registry import ToolRegistry


def build_git_tool_registry(
    *,
    operations: GitOperations,
    repository: str = "",
    raw_command_timeout_seconds: float = 60.0,
) -> ToolRegistry:
    """기본 Git 도구가 모두 등록된 `ToolRegistry`를 생성해요.

    Args:
        operations: 도구가 공유하는 Git 작업 객체예요.
        repository: ``repo_path``가 생략됐을 때 사용할 기본 저장소 경로예요.
        raw_command_timeout_seconds: ``git_raw_command``의 실행 제한 시간이에요.

    Returns:
        20개 Git 도구가 등록된 `ToolRegistry` 인스턴스예요.
    """
    tool_set = GitToolSet(operations=operations, default_repository=repository)
    tool_set.attach(
        GitRawCommandTool(
            operations=operations,
            resolve_repo_path=tool_set.resolve_repo_path,
            timeout_seconds=raw_command_timeout_seconds,
        )
    )

    registry = ToolRegistry()
    tool_set.register_all(registry)
    return registry
