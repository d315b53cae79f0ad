"""
Method Router — Dispatch MCP methods to handlers

Routes:
  initialize       → server capabilities handshake
  initialized      → notification (no response)
  tools/list       → registered tool definitions
  tools/call       → tool handler dispatch
  ping             → pong

Failure classification for tools/call:
  MoodleAPIError   → successful result with isError=true ("Moodle API error: ...")
  ProtocolError    → propagated; the server answers with a JSON-RPC error
  anything else    → propagated; the server answers with INTERNAL_ERROR
"""

from typing import Any, Callable, Dict, List, Optional, Tuple

from .client import MoodleAPIError
from .config import Config
from .logger import get_logger
from .protocol import (
    initialize_result,
    tools_list_result,
    tool_result_content,
    text_content,
    ProtocolError,
    METHOD_NOT_FOUND,
    INVALID_PARAMS,
)

log = get_logger("router")

_NOTIFICATIONS = frozenset({
    "initialized",
    "notifications/initialized",
    "notifications/cancelled",
})


class Router:
    """MCP method dispatcher."""

    def __init__(self):
        self._tools: List[Dict[str, Any]] = []
        self._tool_handlers: List[Tuple[set, Callable]] = []
        self._initialized = False

    # ── registration ─────────────────────────────────────────────

    def register_tools_module(self, tools_list: List[Dict], handler: Callable):
        """
        Register a tools module.

        Args:
            tools_list: List of MCP tool definition dicts.
            handler:    async fn(name, args) -> dict with "content" key.
        """
        self._tools.extend(tools_list)
        self._tool_handlers.append((
            {t["name"] for t in tools_list},
            handler,
        ))
        log.info(f"Registered {len(tools_list)} tools: {[t['name'] for t in tools_list]}")

    # ── dispatch ─────────────────────────────────────────────────

    async def route(self, msg_type: str, msg: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Route a validated message to the appropriate handler.

        Returns the result payload (to be wrapped in a JSON-RPC response),
        or None for notifications that need no response.
        """
        method = msg.get("method", "")
        params = msg.get("params") or {}
        if not isinstance(params, dict):
            params = {}  # positional params are not used by any MCP method

        if method in _NOTIFICATIONS:
            if method != "notifications/cancelled":
                self._initialized = True
            return None

        if method == "initialize":
            return self._handle_initialize(params)

        if method == "ping":
            return {}

        if method == "tools/list":
            return self._handle_tools_list()

        if method == "tools/call":
            return await self._handle_tools_call(params)

        raise ProtocolError(METHOD_NOT_FOUND, f"Unknown method: {method}")

    # ── handlers ─────────────────────────────────────────────────

    def _handle_initialize(self, params: Dict) -> Dict[str, Any]:
        log.info(
            f"Client initialize: {params.get('clientInfo', {}).get('name', '?')} "
            f"protocol={params.get('protocolVersion', '?')}"
        )
        return initialize_result(
            server_name=Config.SERVER_NAME,
            server_version=Config.SERVER_VERSION,
            protocol_version=Config.PROTOCOL_VERSION,
        )

    def _handle_tools_list(self) -> Dict[str, Any]:
        return tools_list_result(self._tools)

    async def _handle_tools_call(self, params: Dict) -> Dict[str, Any]:
        name = params.get("name", "")
        args = params.get("arguments") or {}

        if not name:
            raise ProtocolError(INVALID_PARAMS, "Missing tool name")
        if not isinstance(args, dict):
            raise ProtocolError(INVALID_PARAMS, "Tool arguments must be an object")

        # Find the handler that owns this tool
        for tool_names, handler in self._tool_handlers:
            if name in tool_names:
                log.info(f"[Tool] Executing tool: {name}")
                try:
                    return await handler(name, args)
                except MoodleAPIError as exc:
                    log.error(f"Tool {name} upstream failure: {exc.message}")
                    return tool_result_content(
                        [text_content(f"Moodle API error: {exc.message}")],
                        is_error=True,
                    )
                except ProtocolError as exc:
                    log.warning(f"Tool {name} rejected: {exc.message} (code={exc.code})")
                    raise

        raise ProtocolError(METHOD_NOT_FOUND, f"Unknown tool: {name}")

    @property
    def tool_count(self) -> int:
        return len(self._tools)

    @property
    def initialized(self) -> bool:
        return self._initialized
