from __future__ import annotations

import json
import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import git
import pytest

from mcp_git.app.dispatcher import McpDispatcher
from mcp_git.app.mcp_protocol import JsonRpcResponse, TextContent, ToolDescriptor
from mcp_git.app.tools.base import BaseTool, ToolArguments, ToolContext, text_result
from mcp_git.app.tools.registry import ToolRegistry

SERVER_NAME = "mcp-git-test"
SERVER_VERSION = "9.9.9"

INITIALIZE_PARAMS: dict[str, Any] = {
    "protocolVersion": "2024-11-05",
    "capabilities": {},
    "clientInfo": {"name": "pytest", "version": "1"},
}


class EchoTool(BaseTool):
    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return "받은 text를 그대로 돌려주는 테스트 도구예요."

    @property
    def input_schema(self) -> dict[str, Any]:
        return {"type": "object", "properties": {"text": {"type": "string"}}}

    async def execute(self, context: ToolContext, arguments: ToolArguments) -> Sequence[TextContent]:
        return text_result(f"echo: {arguments.get('text', '')}")


async def failing_handler(context: ToolContext, arguments: ToolArguments) -> list[TextContent]:
    raise RuntimeError("디스크가 가득 찼어요")


@pytest.fixture
def registry() -> ToolRegistry:
    """echo 도구와 항상 실패하는 도구가 등록된 레지스트리예요."""
    registry = ToolRegistry()
    registry.register_tool(EchoTool())
    registry.register(ToolDescriptor(name="explode", description="항상 실패해요."), failing_handler)
    return registry


@pytest.fixture
def dispatcher(registry: ToolRegistry) -> McpDispatcher:
    return McpDispatcher(server_name=SERVER_NAME, server_version=SERVER_VERSION, registry=registry)


def frame(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode("utf-8")


def wire(response: JsonRpcResponse | None) -> dict[str, Any]:
    """응답을 실제로 직렬화했을 때의 dict 모양으로 바꿔요."""
    assert response is not None
    return response.to_wire()


async def initialize(dispatcher: McpDispatcher, request_id: int = 0) -> JsonRpcResponse | None:
    return await dispatcher.handle_frame(
        frame({"jsonrpc": "2.0", "id": request_id, "method": "initialize", "params": INITIALIZE_PARAMS})
    )


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git 바이너리가 필요해요.")


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """커밋 하나가 있는 임시 저장소예요."""
    if shutil.which("git") is None:
        pytest.skip("git 바이너리가 필요해요.")

    repo_path = tmp_path / "repo"
    repo = git.Repo.init(repo_path)
    with repo.config_writer() as config:
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")
    (repo_path / "README.md").write_text("hello\n", encoding="utf-8")
    repo.index.add(["README.md"])
    repo.index.commit("initial commit")
    repo.close()
    return repo_path
