"""줄 단위 JSON 프레임을 읽어 디스패처에 넘기고 응답을 쓰는 전송 루프예요.

프레임은 개행으로 끝나는 JSON 문서 하나예요. 요청 하나를 끝까지 처리한 뒤에
다음 프레임을 읽으므로 응답 순서는 요청 순서와 항상 같아요.
"""

from __future__ import annotations

import asyncio
import contextlib
import sys
from typing import Protocol

from mcp_git.app.dispatcher import McpDispatcher
from mcp_git.app.mcp_protocol import PARSE_ERROR, JsonRpcResponse, encode_response, make_error
from libs.common.errors import TransportError
from libs.common.logging import get_logger

logger = get_logger("mcp_git.transport")

DEFAULT_FRAME_LIMIT = 16 * 1024 * 1024
FRAME_SEPARATOR = b"\n"


class FrameTooLargeError(Exception):
    """프레임 하나가 스트림 한도를 넘었어요. 해당 프레임은 이미 버려진 상태예요."""


class FrameReader(Protocol):
    async def readuntil(self, separator: bytes = ...) -> bytes: ...

    async def readexactly(self, n: int) -> bytes: ...


class FrameWriter(Protocol):
    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


async def serve(
    dispatcher: McpDispatcher,
    reader: FrameReader,
    writer: FrameWriter,
    *,
    stop_event: asyncio.Event | None = None,
) -> None:
    """입력 스트림이 끝나거나 `stop_event`가 set 될 때까지 프레임을 처리해요.

    입력 스트림 읽기 실패만 치명적이에요(`TransportError`). 디스패치·직렬화·쓰기
    실패는 로그만 남기고 다음 프레임으로 넘어가요.
    """
    stop = stop_event if stop_event is not None else dispatcher.cancel_event
    while not stop.is_set():
        try:
            line = await _read_frame(reader, stop)
        except FrameTooLargeError as exc:
            # 세션은 유지하고 프레임 하나당 오류 응답 하나만 보내요.
            logger.warning("frame_too_large", error=str(exc))
            await _emit(writer, make_error(None, PARSE_ERROR, "Parse error"))
            continue

        if line is None:
            logger.info("transport_stop_requested")
            return
        if not line:
            logger.info("transport_eof")
            return
        if not line.endswith(b"\n"):
            logger.warning("trailing_partial_frame_dropped", size=len(line))
            return
        if not line.strip():
            continue

        try:
            response = await dispatcher.handle_frame(line)
        except Exception as exc:
            logger.exception("frame_dispatch_failed", error=str(exc))
            continue

        if response is None:
            continue
        await _emit(writer, response)

    logger.info("transport_stop_requested")


async def _read_frame(reader: FrameReader, stop: asyncio.Event) -> bytes | None:
    """다음 줄을 읽어요. 읽는 도중 종료가 요청되면 ``None``을 반환해요."""
    read_task = asyncio.ensure_future(_next_line(reader))
    stop_task = asyncio.ensure_future(stop.wait())
    try:
        done, _ = await asyncio.wait({read_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (read_task, stop_task):
            if not task.done():
                task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await stop_task

    if read_task not in done:
        with contextlib.suppress(asyncio.CancelledError):
            await read_task
        return None

    try:
        return read_task.result()
    except (ConnectionError, OSError) as exc:
        raise TransportError(f"요청을 읽지 못했어요: {exc}") from exc


async def _next_line(reader: FrameReader) -> bytes:
    """개행까지 읽어요. EOF면 남은 조각(없으면 ``b""``)을 반환해요."""
    try:
        return await reader.readuntil(FRAME_SEPARATOR)
    except asyncio.IncompleteReadError as exc:
        return exc.partial
    except asyncio.LimitOverrunError as exc:
        await _discard_frame(reader, exc.consumed)
        raise FrameTooLargeError(str(exc)) from exc


async def _discard_frame(reader: FrameReader, pending: int) -> None:
    """한도를 넘은 프레임을 끝 개행이나 EOF까지 버려요.

    프레임이 여러 번에 나눠 도착해도 나머지 조각이 새 프레임으로 읽히지 않아요.
    """
    while True:
        await reader.readexactly(pending)
        try:
            await reader.readuntil(FRAME_SEPARATOR)
            return
        except asyncio.IncompleteReadError:
            return
        except asyncio.LimitOverrunError as exc:
            pending = exc.consumed


async def _emit(writer: FrameWriter, response: JsonRpcResponse) -> None:
    try:
        data = encode_response(response).encode("utf-8") + b"\n"
    except (TypeError, ValueError) as exc:
        logger.error("response_serialize_failed", request_id=response.id, error=str(exc))
        return

    try:
        writer.write(data)
        await writer.drain()
    except Exception as exc:
        logger.error("response_write_failed", request_id=response.id, error=str(exc))


async def open_stdio_streams(
    *, limit: int = DEFAULT_FRAME_LIMIT
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """프로세스 stdin/stdout을 asyncio 스트림으로 감싸요."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    reader_protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: reader_protocol, sys.stdin)

    writer_transport, writer_protocol = await loop.connect_write_pipe(
        lambda: asyncio.StreamReaderProtocol(asyncio.StreamReader()), sys.stdout
    )
    writer = asyncio.StreamWriter(writer_transport, writer_protocol, reader, loop)
    return reader, writer
