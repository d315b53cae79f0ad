"""
Moodle MCP Tools

Modules:
  course_tools      — list_courses, get_course_contents
  student_tools     — get_students
  assignment_tools  — get_assignments, get_submissions, provide_feedback, get_submission_content
  quiz_tools        — get_quizzes, get_quiz_grade
  forum_tools       — get_forums, get_forum_discussions, create_forum_discussion,
                      reply_to_forum_discussion

Every module handler has the signature
  handle_tool(name, args, client, default_course_id) -> dict
and make_tool_handler() binds the client and default course once at startup.
"""

from typing import Any, Awaitable, Callable, Dict, Optional

from moodle_mcp.client import MoodleClient

from . import course_tools
from . import student_tools
from . import assignment_tools
from . import quiz_tools
from . import forum_tools

_MODULES = (course_tools, student_tools, assignment_tools, quiz_tools, forum_tools)

# Catalog order advertised by tools/list
TOOL_ORDER = [
    "list_courses",
    "get_course_contents",
    "get_students",
    "get_assignments",
    "get_quizzes",
    "get_submissions",
    "provide_feedback",
    "get_submission_content",
    "get_quiz_grade",
    "get_forums",
    "get_forum_discussions",
    "create_forum_discussion",
    "reply_to_forum_discussion",
]

# Dispatch map: tool_name -> module handler
_DISPATCH = {}
for _module in _MODULES:
    for tool_def in _module.TOOLS:
        _DISPATCH[tool_def["name"]] = _module.handle_tool

ALL_TOOLS = sorted(
    (tool_def for _module in _MODULES for tool_def in _module.TOOLS),
    key=lambda t: TOOL_ORDER.index(t["name"]),
)

ToolHandler = Callable[[str, Dict[str, Any]], Awaitable[Dict[str, Any]]]


def make_tool_handler(client: MoodleClient, default_course_id: Optional[str] = None) -> ToolHandler:
    """Bind the upstream client and default course into a router handler."""

    async def handle_tool(name: str, args: Dict[str, Any]) -> Dict[str, Any]:
        # The router only forwards names from ALL_TOOLS
        return await _DISPATCH[name](name, args or {}, client, default_course_id)

    return handle_tool
