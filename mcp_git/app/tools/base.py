"""도구 핸들러 계약과 실행 컨텍스트예요.

디스패처는 핸들러를 불투명한 함수로만 다뤄요. 핸들러는 `ToolContext`와
인자 매핑을 받아 text 블록 목록을 돌려주거나, 실패하면 예외를 던지면 돼요.

새 도구를 클래스로 만들려면 `BaseTool`을 상속하고 `name`, `description`,
`input_schema`, `execute`를 구현한 뒤 `ToolRegistry.register_tool()`로 등록해요.
"""

from __future__ import annotations

import abc
import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from mcp_git.app.mcp_protocol import JsonValue, RequestId, TextContent, ToolDescriptor
from libs.common.errors import ToolCancelledError

ToolArguments = dict[str, JsonValue]
ToolHandler = Callable[["ToolContext", ToolArguments], Awaitable[Sequence[TextContent]]]


@dataclass(slots=True)
class ToolContext:
    """핸들러 한 번의 호출에 전달되는 취소 가능한 실행 컨텍스트예요."""

    tool_name: str
    request_id: RequestId | None = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    """서버 종료가 요청되면 set 돼요. 핸들러는 협조적으로 확인해야 해요."""

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise ToolCancelledError(f"{self.tool_name} 실행이 취소됐어요.")


def text_result(text: str) -> list[TextContent]:
    """text 블록 하나짜리 결과를 만들어요."""
    return [TextContent(text=text)]


class BaseTool(abc.ABC):
    """클래스로 정의하는 도구의 추상 기반이에요."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """도구의 고유 이름이에요. 호출자가 tools/call에 사용해요."""

    @property
    @abc.abstractmethod
    def description(self) -> str:
        """도구가 무엇을 하는지 설명하는 문장이에요."""

    @property
    @abc.abstractmethod
    def input_schema(self) -> dict[str, Any]:
        """JSON Schema 형식의 입력 파라미터 정의예요. 서버는 검증하지 않고 전달만 해요."""

    @abc.abstractmethod
    async def execute(self, context: ToolContext, arguments: ToolArguments) -> Sequence[TextContent]:
        """도구를 실행해요. 실패하면 설명이 담긴 예외를 던져요."""

    def to_descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
        )
