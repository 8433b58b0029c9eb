"""세션 상태를 소유하고 요청 한 건을 응답 한 건으로 바꾸는 디스패처예요."""

from __future__ import annotations

import asyncio

from mcp_git.app.mcp_protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    MCP_PROTOCOL_VERSION,
    METHOD_CALL_TOOL,
    METHOD_INITIALIZE,
    METHOD_LIST_TOOLS,
    METHOD_NOT_FOUND,
    NOTIFICATION_PREFIX,
    PARSE_ERROR,
    SERVER_NOT_INITIALIZED,
    CallToolRequest,
    CallToolResult,
    EnvelopeDecodeError,
    InitializeRequest,
    InitializeResult,
    JsonRpcRequest,
    JsonRpcResponse,
    ListToolsResult,
    ServerCapabilities,
    ServerInfo,
    ToolsCapability,
    decode_model,
    make_error,
    make_result,
    validate_model,
)
from mcp_git.app.tools.base import ToolContext
from mcp_git.app.tools.registry import ToolRegistry
from libs.common.logging import get_logger

logger = get_logger("mcp_git.dispatcher")


class McpDispatcher:
    """MCP 요청을 메서드 이름으로 라우팅해요.

    상태는 `Uninitialized → Initialized` 두 가지뿐이고 한 방향으로만 바뀌어요.
    `initialized` 플래그는 인스턴스 필드라서 테스트마다 독립된 디스패처를
    만들 수 있어요.

    프로토콜 수준의 실패는 모두 오류 응답으로 바뀌어요. 디스패처가 서버를
    멈추는 일은 없어요.
    """

    def __init__(
        self,
        *,
        server_name: str,
        server_version: str,
        registry: ToolRegistry,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self._server_name = server_name
        self._server_version = server_version
        self._registry = registry
        self._capabilities = ServerCapabilities(tools=ToolsCapability(list_changed=False))
        self._cancel_event = cancel_event if cancel_event is not None else asyncio.Event()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def cancel_event(self) -> asyncio.Event:
        return self._cancel_event

    async def handle_frame(self, raw: str | bytes) -> JsonRpcResponse | None:
        """프레임 하나를 처리해요. 응답하지 않아야 하면 ``None``을 반환해요."""
        try:
            request = decode_model(JsonRpcRequest, raw)
        except EnvelopeDecodeError as exc:
            logger.debug("frame_parse_failed", kind=exc.kind, error=exc.detail)
            return make_error(None, PARSE_ERROR, "Parse error")
        return await self.handle_request(request)

    async def handle_request(self, request: JsonRpcRequest) -> JsonRpcResponse | None:
        method = request.method
        if method == METHOD_INITIALIZE:
            return self._handle_initialize(request)
        if method == METHOD_LIST_TOOLS:
            return self._handle_list_tools(request)
        if method == METHOD_CALL_TOOL:
            return await self._handle_call_tool(request)
        if request.is_notification and method.startswith(NOTIFICATION_PREFIX):
            logger.debug("notification_received", method=method)
            return None
        return make_error(request.id, METHOD_NOT_FOUND, "Method not found")

    def _handle_initialize(self, request: JsonRpcRequest) -> JsonRpcResponse:
        try:
            init_request = validate_model(InitializeRequest, request.params)
        except EnvelopeDecodeError as exc:
            logger.info("initialize_invalid_params", request_id=request.id, error=exc.detail)
            return make_error(request.id, INVALID_PARAMS, "Invalid params")

        self._initialized = True
        logger.info(
            "session_initialized",
            client_name=init_request.client_info.name,
            client_version=init_request.client_info.version,
            requested_protocol_version=init_request.protocol_version,
        )
        # 클라이언트가 요청한 버전과 협상하지 않고 서버 버전을 그대로 알려요.
        return make_result(
            request.id,
            InitializeResult(
                protocol_version=MCP_PROTOCOL_VERSION,
                capabilities=self._capabilities,
                server_info=ServerInfo(name=self._server_name, version=self._server_version),
            ),
        )

    def _handle_list_tools(self, request: JsonRpcRequest) -> JsonRpcResponse:
        if not self._initialized:
            return self._not_initialized(request)
        return make_result(request.id, ListToolsResult(tools=self._registry.list_tools()))

    async def _handle_call_tool(self, request: JsonRpcRequest) -> JsonRpcResponse:
        if not self._initialized:
            return self._not_initialized(request)

        try:
            call_request = validate_model(CallToolRequest, request.params)
        except EnvelopeDecodeError as exc:
            logger.info("tool_call_invalid_params", request_id=request.id, error=exc.detail)
            return make_error(request.id, INVALID_PARAMS, "Invalid params")

        handler = self._registry.lookup(call_request.name)
        if handler is None:
            return make_error(request.id, METHOD_NOT_FOUND, f"Unknown tool: {call_request.name}")

        context = ToolContext(
            tool_name=call_request.name,
            request_id=request.id,
            cancel_event=self._cancel_event,
        )
        try:
            content = await handler(context, call_request.arguments)
            result = CallToolResult(content=list(content))
        except Exception as exc:
            logger.warning(
                "tool_call_failed",
                tool_name=call_request.name,
                request_id=request.id,
                error=str(exc),
            )
            return make_error(request.id, INTERNAL_ERROR, f"Tool execution error: {exc}")

        logger.debug("tool_call_succeeded", tool_name=call_request.name, request_id=request.id)
        return make_result(request.id, result)

    def _not_initialized(self, request: JsonRpcRequest) -> JsonRpcResponse:
        return make_error(request.id, SERVER_NOT_INITIALIZED, "Server not initialized")
