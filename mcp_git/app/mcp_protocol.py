"""JSON-RPC 2.0 / MCP 와이어 레코드를 정의하고 직렬화해요.

요청·응답·오류·도구 디스크립터의 JSON 모양은 여기서만 결정돼요.
디코딩 실패를 어떤 오류 코드로 바꿀지는 디스패처가 정해요. 이 모듈은
"이 바이트로는 T를 만들 수 없어요"라는 사실만 `EnvelopeDecodeError`로 알려요.
"""

from __future__ import annotations

import json
from typing import Any, Literal, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    StrictStr,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

JSONRPC_VERSION = "2.0"
MCP_PROTOCOL_VERSION = "2024-11-05"

METHOD_INITIALIZE = "initialize"
METHOD_LIST_TOOLS = "tools/list"
METHOD_CALL_TOOL = "tools/call"
NOTIFICATION_PREFIX = "notifications/"

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
SERVER_NOT_INITIALIZED = -32002

RequestId = StrictInt | StrictFloat | StrictStr
JsonValue = Any

ModelT = TypeVar("ModelT", bound=BaseModel)


class EnvelopeDecodeError(Exception):
    """바이트나 JSON 값으로 특정 레코드를 만들지 못했을 때 발생해요.

    ``kind`` 는 JSON 문법 자체가 깨진 경우 ``"syntax"``, 문법은 맞지만
    필드가 빠졌거나 타입이 다른 경우 ``"schema"`` 예요.
    """

    def __init__(self, type_name: str, kind: Literal["syntax", "schema"], detail: str) -> None:
        super().__init__(f"{type_name} 레코드를 만들지 못했어요 ({kind}): {detail}")
        self.type_name = type_name
        self.kind = kind
        self.detail = detail


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class JsonRpcRequest(_WireModel):
    jsonrpc: str = JSONRPC_VERSION
    id: RequestId | None = None
    method: StrictStr = ""
    # 메서드별로 나중에 디코딩해요.
    params: Any = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


class RpcError(_WireModel):
    code: StrictInt
    message: str
    data: Any = None


class JsonRpcResponse(_WireModel):
    jsonrpc: str = JSONRPC_VERSION
    id: RequestId | None = None
    result: Any = None
    error: RpcError | None = None

    @model_validator(mode="after")
    def _result_xor_error(self) -> "JsonRpcResponse":
        if (self.result is None) == (self.error is None):
            raise ValueError("result와 error 중 정확히 하나만 있어야 해요.")
        return self

    def to_wire(self) -> dict[str, Any]:
        """비어 있는 선택 필드를 null 대신 아예 빼고 dict로 만들어요."""
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.id is not None:
            payload["id"] = self.id
        if self.error is not None:
            error_payload: dict[str, Any] = {"code": self.error.code, "message": self.error.message}
            if self.error.data is not None:
                error_payload["data"] = self.error.data
            payload["error"] = error_payload
        else:
            payload["result"] = self.result
        return payload


class TextContent(_WireModel):
    type: Literal["text"] = "text"
    text: str


# 지금은 text 블록뿐이에요. 새 블록은 type 태그로 구분되는 union에 추가하면 돼요.
ContentBlock = TextContent


class ToolDescriptor(_WireModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(min_length=1)
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")


class RootsCapability(_WireModel):
    list_changed: bool | None = Field(default=None, alias="listChanged")


class ClientCapabilities(_WireModel):
    roots: RootsCapability | None = None


class ClientInfo(_WireModel):
    name: StrictStr
    version: StrictStr


class InitializeRequest(_WireModel):
    protocol_version: StrictStr = Field(alias="protocolVersion")
    capabilities: ClientCapabilities = Field(default_factory=ClientCapabilities)
    client_info: ClientInfo = Field(alias="clientInfo")

    @field_validator("capabilities", mode="before")
    @classmethod
    def _null_capabilities(cls, value: object) -> object:
        return {} if value is None else value


class ToolsCapability(_WireModel):
    list_changed: bool = Field(default=False, alias="listChanged")


class ServerCapabilities(_WireModel):
    tools: ToolsCapability | None = None


class ServerInfo(_WireModel):
    name: str
    version: str


class InitializeResult(_WireModel):
    protocol_version: str = Field(alias="protocolVersion")
    capabilities: ServerCapabilities
    server_info: ServerInfo = Field(alias="serverInfo")


class ListToolsResult(_WireModel):
    tools: list[ToolDescriptor]


class CallToolRequest(_WireModel):
    name: StrictStr
    arguments: dict[str, JsonValue] = Field(default_factory=dict)

    @field_validator("arguments", mode="before")
    @classmethod
    def _null_arguments(cls, value: object) -> object:
        return {} if value is None else value


class CallToolResult(_WireModel):
    content: list[ContentBlock]


def _first_error_type(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    return str(errors[0].get("type", "")) if errors else ""


def decode_model(model_cls: type[ModelT], raw: str | bytes) -> ModelT:
    """원본 바이트(또는 문자열)를 `model_cls` 인스턴스로 디코딩해요."""
    try:
        return model_cls.model_validate_json(raw)
    except PydanticValidationError as exc:
        kind: Literal["syntax", "schema"] = "syntax" if _first_error_type(exc) == "json_invalid" else "schema"
        raise EnvelopeDecodeError(model_cls.__name__, kind, str(exc)) from exc


def validate_model(model_cls: type[ModelT], payload: JsonValue) -> ModelT:
    """이미 파싱된 JSON 값(예: 요청의 params)을 `model_cls` 인스턴스로 바꿔요."""
    try:
        return model_cls.model_validate(payload)
    except PydanticValidationError as exc:
        raise EnvelopeDecodeError(model_cls.__name__, "schema", str(exc)) from exc


def make_result(request_id: RequestId | None, result: BaseModel | dict[str, Any]) -> JsonRpcResponse:
    payload = result.model_dump(by_alias=True, exclude_none=True, mode="json") if isinstance(result, BaseModel) else result
    return JsonRpcResponse(id=request_id, result=payload)


def make_error(
    request_id: RequestId | None,
    code: int,
    message: str,
    data: Any = None,
) -> JsonRpcResponse:
    return JsonRpcResponse(id=request_id, error=RpcError(code=code, message=message, data=data))


def encode_response(response: JsonRpcResponse) -> str:
    """응답을 개행 없는 한 줄 JSON으로 직렬화해요."""
    return json.dumps(response.to_wire(), ensure_ascii=False, separators=(",", ":"))
