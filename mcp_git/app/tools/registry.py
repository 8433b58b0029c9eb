"""도구 디스크립터와 핸들러를 이름으로 관리하는 레지스트리예요."""

from __future__ import annotations

from dataclasses import dataclass

from mcp_git.app.mcp_protocol import ToolDescriptor
from mcp_git.app.tools.base import BaseTool, ToolHandler
from libs.common.logging import get_logger

logger = get_logger("mcp_git.tool_registry")


@dataclass(frozen=True, slots=True)
class RegisteredTool:
    descriptor: ToolDescriptor
    handler: ToolHandler


class ToolRegistry:
    """이름 → (디스크립터, 핸들러) 쌍을 등록 순서대로 보관해요.

    도구 이름이 해석되는 곳은 여기 하나뿐이에요. 등록은 전송 루프가 시작되기
    전에 끝나야 하고, 그 뒤로는 읽기만 하므로 잠금이 필요 없어요.

    사용법::

        registry = ToolRegistry()
        registry.register(descriptor, handler)
        registry.register_tool(GitRawCommandTool(...))

        descriptors = registry.list_tools()
        handler = registry.lookup("git_status")
    """

    def __init__(self) -> None:
        self._tools: dict[str, RegisteredTool] = {}

    def register(self, descriptor: ToolDescriptor, handler: ToolHandler) -> None:
        """도구를 등록해요. 같은 이름이면 오류 없이 마지막 등록이 이겨요.

        덮어쓴 항목은 처음 등록된 자리를 그대로 유지해요.
        """
        if descriptor.name in self._tools:
            logger.warning("tool_registration_overwritten", tool_name=descriptor.name)
        self._tools[descriptor.name] = RegisteredTool(descriptor=descriptor, handler=handler)

    def register_tool(self, tool: BaseTool) -> None:
        self.register(tool.to_descriptor(), tool.execute)

    def list_tools(self) -> list[ToolDescriptor]:
        """등록된 모든 디스크립터를 등록 순서대로 반환해요."""
        return [entry.descriptor for entry in self._tools.values()]

    def lookup(self, name: str) -> ToolHandler | None:
        entry = self._tools.get(name)
        if entry is None:
            return None
        return entry.handler

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
