from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass

from mcp_git.app.dispatcher import McpDispatcher
from mcp_git.app.git_operations import GitIdentity, GitOperations
from mcp_git.app.settings import Settings
from mcp_git.app.tools.defaults import build_git_tool_registry
from mcp_git.app.tools.registry import ToolRegistry
from libs.common.errors import ConfigurationError


@dataclass(slots=True)
class RuntimeComponents:
    settings: Settings
    operations: GitOperations
    registry: ToolRegistry
    dispatcher: McpDispatcher
    stop_event: asyncio.Event


def build_runtime_components(settings: Settings) -> RuntimeComponents:
    if settings.repository and not os.path.isdir(settings.repository):
        raise ConfigurationError(f"저장소 경로가 디렉터리가 아니에요: {settings.repository}")

    operations = GitOperations(
        identity=GitIdentity(name=settings.user_name, email=settings.user_email),
    )
    registry = build_git_tool_registry(
        operations=operations,
        repository=settings.repository,
        raw_command_timeout_seconds=settings.raw_command_timeout_seconds,
    )
    # 종료 신호와 도구 취소가 같은 이벤트를 공유해요.
    stop_event = asyncio.Event()
    dispatcher = McpDispatcher(
        server_name=settings.server_name,
        server_version=settings.server_version,
        registry=registry,
        cancel_event=stop_event,
    )
    return RuntimeComponents(
        settings=settings,
        operations=operations,
        registry=registry,
        dispatcher=dispatcher,
        stop_event=stop_event,
    )
