"""
Moodle MCP Server — Main Orchestrator

Ties together:
  Transport → Protocol → Router → Tool handlers → Moodle client

Flow:
  1. Transport reads one JSON-RPC line from stdin
  2. Protocol validates JSON-RPC 2.0
  3. Router dispatches to the owning tool handler
  4. Transport writes the response (or error) to stdout

One message is handled at a time; a tool call runs to completion before the
next line is read.
"""

import asyncio
import signal
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .config import Config
from .logger import get_logger
from .transport import StdioTransport
from .protocol import (
    validate_message,
    make_response,
    make_error,
    ProtocolError,
    INTERNAL_ERROR,
)
from .router import Router

log = get_logger("server")


class MoodleMCPServer:
    """
    Main server orchestrator.

    Usage:
        server = MoodleMCPServer()
        # register tools before running
        server.register_tools(ALL_TOOLS, make_tool_handler(client, default_course_id))
        server.on_shutdown(client.aclose)
        await server.run()
    """

    def __init__(self, transport: Optional[StdioTransport] = None):
        Config.ensure_dirs()

        self._transport = transport or StdioTransport()
        self._router = Router()
        self._running = False
        self._shutdown_callbacks: List[Callable[[], Awaitable[Any]]] = []
        self._main_task: Optional[asyncio.Task] = None

    # ── registration (call before run) ───────────────────────────

    def register_tools(self, tools_list, handler):
        """Register a tools module with the router."""
        self._router.register_tools_module(tools_list, handler)

    def on_shutdown(self, callback: Callable[[], Awaitable[Any]]):
        """Run an async callback (e.g. closing the HTTP client) at shutdown."""
        self._shutdown_callbacks.append(callback)

    @property
    def router(self) -> Router:
        return self._router

    # ── main loop ────────────────────────────────────────────────

    async def run(self):
        """Start the server and process messages until EOF or signal."""
        log.info(f"Starting {Config.SERVER_NAME} v{Config.SERVER_VERSION}")

        await self._transport.start()

        # A signal cancels the loop itself; shutdown then runs in the finally block
        self._main_task = asyncio.current_task()
        loop = asyncio.get_running_loop()
        handled_signals = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
                handled_signals.append(sig)
            except (NotImplementedError, RuntimeError):
                pass  # Windows, or not on the main thread

        self._running = True
        log.info(f"Server ready, tools={self._router.tool_count}")

        try:
            while self._running:
                try:
                    msg = await self._transport.read_message()
                except ProtocolError as exc:
                    # Unparseable line: no id to answer to
                    await self._transport.write_message(make_error(None, exc.code, exc.message))
                    continue

                if msg is None:
                    log.info("EOF on stdin, shutting down")
                    break

                response = await self.process_message(msg)
                if response is not None:
                    await self._transport.write_message(response)

        except asyncio.CancelledError:
            log.info("Server cancelled")
        except Exception as exc:
            log.error(f"Server error: {exc}", exc_info=True)
        finally:
            for sig in handled_signals:
                loop.remove_signal_handler(sig)
            self._main_task = None
            await self.shutdown()

    def stop(self):
        """Interrupt run(), even while it is blocked reading stdin."""
        task = self._main_task
        if task is not None and not task.done():
            log.info("Stop requested")
            task.cancel()

    async def process_message(self, msg: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Run one message through validate → route.

        Returns the JSON-RPC response to send, or None when nothing should be
        sent (notifications, and failures of messages without an id).
        """
        request_id = msg.get("id") if isinstance(msg, dict) else None

        try:
            msg_type = validate_message(msg)

            if msg_type in ("response", "error"):
                return None  # this server never issues requests

            result = await self._router.route(msg_type, msg)

            # Notifications get no response
            if result is None or msg_type == "notification":
                return None

            return make_response(request_id, result)

        except ProtocolError as exc:
            log.warning(f"Protocol error: {exc.message} (code={exc.code})")
            if request_id is None:
                return None
            return make_error(request_id, exc.code, exc.message, exc.data)

        except Exception as exc:
            log.error(f"Unhandled error: {exc}", exc_info=True)
            if request_id is None:
                return None
            return make_error(request_id, INTERNAL_ERROR, str(exc))

    async def shutdown(self):
        """Graceful shutdown — close transport, release upstream resources."""
        if not self._running:
            return
        self._running = False

        await self._transport.close()
        for callback in self._shutdown_callbacks:
            try:
                await callback()
            except Exception as exc:
                log.error(f"Shutdown callback failed: {exc}")

        log.info("Server stopped")
