"""stdio 위에서 MCP 세션 하나를 끝까지 실행해요."""

from __future__ import annotations

import asyncio
import contextlib
import signal

from mcp_git.app.settings import Settings
from mcp_git.app.transport import open_stdio_streams, serve
from mcp_git.bootstrap.container import build_runtime_components
from libs.common.errors import ConfigurationError, TransportError
from libs.common.logging import get_logger

logger = get_logger("mcp_git.server")


async def run_stdio_server(settings: Settings) -> None:
    components = build_runtime_components(settings)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Windows 이벤트 루프는 시그널 핸들러를 지원하지 않아요.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, components.stop_event.set)

    reader, writer = await open_stdio_streams(limit=settings.max_frame_bytes)
    logger.info(
        "server_started",
        server_name=settings.server_name,
        server_version=settings.server_version,
        repository=settings.repository or None,
        tool_count=len(components.registry),
    )
    try:
        await serve(components.dispatcher, reader, writer, stop_event=components.stop_event)
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.remove_signal_handler(sig)
        writer.close()
        logger.info("server_stopped")


def run(settings: Settings) -> int:
    """서버를 실행하고 프로세스 종료 코드를 반환해요."""
    try:
        asyncio.run(run_stdio_server(settings))
    except ConfigurationError as exc:
        logger.error("configuration_invalid", error_code=exc.error_code, error=exc.message)
        return 2
    except TransportError as exc:
        logger.error("transport_failed", error_code=exc.error_code, error=exc.message)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0
