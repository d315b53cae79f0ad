"""
Moodle MCP Server — Moodle web services exposed as MCP tools

Raw JSON-RPC over stdio. Courses, enrolments, assignments, quizzes, forums.
"""

__version__ = "1.2.0"

from .client import MoodleClient, MoodleAPIError
from .config import Config, MoodleSettings, ConfigError
from .router import Router
from .server import MoodleMCPServer
