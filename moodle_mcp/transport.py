"""
STDIO Transport — newline-delimited JSON-RPC

Reads from stdin, writes to stdout.
NEVER pollutes stdout with logs.
"""

import sys
import json
import asyncio
from typing import Optional, Dict, Any, BinaryIO

from .logger import get_logger
from .protocol import ProtocolError, PARSE_ERROR

log = get_logger("transport")


class StdioTransport:
    """Line-oriented JSON-RPC transport over the process's stdio"""

    def __init__(self, stdout: Optional[BinaryIO] = None):
        self.running = False
        self._reader: Optional[asyncio.StreamReader] = None
        self._stdout = stdout  # raw stdout buffer for synchronous writes

    async def start(self):
        """Initialize async stdin reader and direct stdout writer"""
        loop = asyncio.get_running_loop()

        # Moodle payloads (course contents, submissions) can exceed the default limit
        self._reader = asyncio.StreamReader(limit=2**22)
        protocol = asyncio.StreamReaderProtocol(self._reader)
        await loop.connect_read_pipe(lambda: protocol, sys.stdin.buffer)

        # Direct stdout: connect_write_pipe fails when stdout is not a proper pipe
        if self._stdout is None:
            self._stdout = sys.stdout.buffer
        self.running = True
        log.info("Transport initialized")

    async def read_message(self) -> Optional[Dict[str, Any]]:
        """
        Read one JSON-RPC message from stdin.
        Returns the parsed message, or None on EOF.
        Raises ProtocolError(PARSE_ERROR) for a line that is not JSON.
        """
        if not self._reader:
            raise RuntimeError("Transport not started")

        while True:
            raw_bytes = await self._reader.readline()
            if not raw_bytes:
                return None  # EOF
            if raw_bytes.strip():
                break

        try:
            return json.loads(raw_bytes)
        except json.JSONDecodeError as exc:
            log.error(f"JSON parse error: {exc}")
            raise ProtocolError(PARSE_ERROR, f"Parse error: {exc}")

    async def write_message(self, message: Dict[str, Any]):
        """Write a JSON-RPC message to stdout"""
        if self._stdout is None:
            raise RuntimeError("Transport not started")

        raw_text = json.dumps(message, separators=(",", ":"), ensure_ascii=False) + "\n"
        self._stdout.write(raw_text.encode("utf-8"))
        self._stdout.flush()

    async def close(self):
        self.running = False
        log.info("Transport closed")
