from __future__ import annotations

import json

import pytest

from mcp_git.app.mcp_protocol import (
    INTERNAL_ERROR,
    CallToolRequest,
    EnvelopeDecodeError,
    InitializeRequest,
    JsonRpcRequest,
    JsonRpcResponse,
    ListToolsResult,
    TextContent,
    ToolDescriptor,
    decode_model,
    encode_response,
    make_error,
    make_result,
    validate_model,
)

# ─── 디코딩 테스트 ───


def test_decode_request_keeps_id_type() -> None:
    numeric = decode_model(JsonRpcRequest, b'{"jsonrpc":"2.0","id":7,"method":"tools/list"}')
    text = decode_model(JsonRpcRequest, '{"jsonrpc":"2.0","id":"abc","method":"tools/list"}')
    assert numeric.id == 7
    assert isinstance(numeric.id, int)
    assert text.id == "abc"
    assert numeric.is_notification is False


def test_decode_request_without_id_is_notification() -> None:
    request = decode_model(JsonRpcRequest, b'{"jsonrpc":"2.0","method":"notifications/initialized"}')
    assert request.id is None
    assert request.is_notification is True


def test_decode_syntax_error_is_distinct_from_schema_error() -> None:
    with pytest.raises(EnvelopeDecodeError) as syntax:
        decode_model(JsonRpcRequest, b'{"jsonrpc": "2.0", "id": 1, ')
    with pytest.raises(EnvelopeDecodeError) as schema:
        decode_model(JsonRpcRequest, b'{"jsonrpc":"2.0","id":1,"method":42}')

    assert syntax.value.kind == "syntax"
    assert schema.value.kind == "schema"
    assert schema.value.type_name == "JsonRpcRequest"


def test_validate_initialize_requires_client_info() -> None:
    with pytest.raises(EnvelopeDecodeError) as exc_info:
        validate_model(InitializeRequest, {"protocolVersion": "2024-11-05", "capabilities": {}})
    assert exc_info.value.kind == "schema"


def test_validate_initialize_reads_aliases() -> None:
    request = validate_model(
        InitializeRequest,
        {
            "protocolVersion": "x",
            "capabilities": {"roots": {"listChanged": True}},
            "clientInfo": {"name": "t", "version": "1"},
        },
    )
    assert request.protocol_version == "x"
    assert request.capabilities.roots is not None
    assert request.capabilities.roots.list_changed is True
    assert request.client_info.name == "t"


def test_validate_initialize_accepts_null_capabilities() -> None:
    request = validate_model(
        InitializeRequest,
        {"protocolVersion": "x", "capabilities": None, "clientInfo": {"name": "t", "version": "1"}},
    )
    assert request.capabilities.roots is None


def test_call_tool_request_defaults_arguments() -> None:
    assert validate_model(CallToolRequest, {"name": "echo"}).arguments == {}
    assert validate_model(CallToolRequest, {"name": "echo", "arguments": None}).arguments == {}
    with pytest.raises(EnvelopeDecodeError):
        validate_model(CallToolRequest, {"name": 3})
    with pytest.raises(EnvelopeDecodeError):
        validate_model(CallToolRequest, {"name": "echo", "arguments": ["a"]})


# ─── 응답 직렬화 테스트 ───


def test_error_response_omits_absent_fields() -> None:
    line = encode_response(make_error(None, -32700, "Parse error"))
    assert json.loads(line) == {"jsonrpc": "2.0", "error": {"code": -32700, "message": "Parse error"}}
    assert "null" not in line
    assert "\n" not in line


def test_error_response_keeps_data_when_present() -> None:
    payload = json.loads(encode_response(make_error(5, INTERNAL_ERROR, "boom", data={"hint": "x"})))
    assert payload["id"] == 5
    assert payload["error"]["data"] == {"hint": "x"}
    assert "result" not in payload


def test_result_response_uses_wire_field_names() -> None:
    descriptor = ToolDescriptor(name="echo", description="d", input_schema={"type": "object"})
    payload = json.loads(encode_response(make_result("r1", ListToolsResult(tools=[descriptor]))))
    assert payload == {
        "jsonrpc": "2.0",
        "id": "r1",
        "result": {"tools": [{"name": "echo", "description": "d", "inputSchema": {"type": "object"}}]},
    }


def test_response_survives_encode_and_decode() -> None:
    original = make_result(11, {"content": [TextContent(text="안녕").model_dump()]})
    restored = decode_model(JsonRpcResponse, encode_response(original))
    assert restored == original
    assert "안녕" in encode_response(original)


def test_response_requires_exactly_one_of_result_or_error() -> None:
    with pytest.raises(ValueError):
        JsonRpcResponse(id=1)


def test_tool_descriptor_rejects_empty_name() -> None:
    with pytest.raises(ValueError):
        ToolDescriptor(name="")
