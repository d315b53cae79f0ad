#!/usr/bin/env python3
"""
Entry point: python -m moodle_mcp  (or the moodle-mcp-server console script)

Reads MOODLE_API_URL / MOODLE_API_TOKEN / MOODLE_COURSE_ID, then serves the
Moodle tools over stdio until EOF or a signal.
"""

import argparse
import asyncio
import sys

from . import __version__
from .client import MoodleClient
from .config import ConfigError, MoodleSettings
from .logger import get_logger
from .server import MoodleMCPServer
from .tools import ALL_TOOLS, make_tool_handler

log = get_logger("main")


def build_server(settings: MoodleSettings) -> MoodleMCPServer:
    client = MoodleClient.from_settings(settings)
    server = MoodleMCPServer()
    server.register_tools(ALL_TOOLS, make_tool_handler(client, settings.default_course_id))
    server.on_shutdown(client.aclose)

    if settings.default_course_id:
        log.info(f"Default course ID: {settings.default_course_id}")
    else:
        log.info("No default course ID configured; tools need courseId per call")
    return server


async def main(settings: MoodleSettings):
    server = build_server(settings)
    await server.run()


def cli(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="moodle-mcp-server",
        description="MCP server exposing Moodle courses, assignments, quizzes and forums over stdio.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.parse_args(argv)

    try:
        settings = MoodleSettings.from_env()
    except ConfigError as exc:
        print(f"moodle-mcp-server: {exc}", file=sys.stderr)
        return 1

    try:
        asyncio.run(main(settings))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(cli())
