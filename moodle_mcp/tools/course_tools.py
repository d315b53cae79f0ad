"""
Course Tools — course discovery and structure

Tools:
  list_courses         — every course the token can see (site course excluded)
  get_course_contents  — sections and their modules for one course
"""

from typing import Any, Dict, List, Optional

from moodle_mcp.client import MoodleClient
from moodle_mcp.context import resolve_course_id
from moodle_mcp.logger import get_logger
from moodle_mcp.normalize import (
    COURSE_SUMMARY_LIMIT,
    flag_to_bool,
    require_array,
    strip_markup,
)
from moodle_mcp.protocol import text_content, tool_result_content
from moodle_mcp.tools.validation import json_text

log = get_logger("tools.course")

# Moodle's front page is stored as course 1
SITE_COURSE_ID = 1

_COURSE_ID_PROPERTY = {
    "type": "number",
    "description": "ID of the course. If not provided, uses the default configured course.",
}

# ── Tool definitions ─────────────────────────────────────────────────────────

TOOLS: List[Dict[str, Any]] = [
    {
        "name": "list_courses",
        "description": (
            "Lists all courses the authenticated user has access to. "
            "Use this to discover available course IDs before querying specific courses."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {},
            "required": [],
        },
    },
    {
        "name": "get_course_contents",
        "description": (
            "Gets the contents (sections, modules, activities) of a specific course. "
            "Useful for seeing the course structure."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {"courseId": _COURSE_ID_PROPERTY},
            "required": [],
        },
    },
]


# ── Dispatcher ───────────────────────────────────────────────────────────────

async def handle_tool(
    name: str,
    args: Dict[str, Any],
    client: MoodleClient,
    default_course_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Route course tool calls to implementations."""
    handlers = {
        "list_courses": _list_courses,
        "get_course_contents": _get_course_contents,
    }

    return await handlers[name](client, args, default_course_id)


# ── Implementations ──────────────────────────────────────────────────────────

def _format_course(course: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": course.get("id"),
        "shortname": course.get("shortname"),
        "fullname": course.get("fullname"),
        "visible": flag_to_bool(course.get("visible")),
        "summary": strip_markup(course.get("summary"), limit=COURSE_SUMMARY_LIMIT),
        "categoryid": course.get("categoryid"),
    }


def _format_section(section: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": section.get("id"),
        "name": section.get("name") or f"Section {section.get('section')}",
        "summary": strip_markup(section.get("summary")),
        "visible": flag_to_bool(section.get("visible")),
        "modules": [
            {
                "id": mod.get("id"),
                "name": mod.get("name"),
                "modname": mod.get("modname"),  # assign, quiz, forum, page, ...
                "visible": flag_to_bool(mod.get("visible")),
                "url": mod.get("url"),
            }
            for mod in section.get("modules") or []
        ],
    }


async def _list_courses(client: MoodleClient, args: Dict, default_course_id: Optional[str]) -> Dict:
    log.info("[API] Requesting all accessible courses")

    data = await client.call("core_course_get_courses")
    raw_courses = require_array(data, "list_courses")

    courses = [
        _format_course(course)
        for course in raw_courses
        if course.get("id") != SITE_COURSE_ID
    ]

    if default_course_id:
        note = f"\n\nDefault course ID: {default_course_id}"
    else:
        note = "\n\nNo default course ID configured. Pass courseId to other tools."

    return tool_result_content([text_content(json_text(courses) + note)])


async def _get_course_contents(client: MoodleClient, args: Dict, default_course_id: Optional[str]) -> Dict:
    course_id = resolve_course_id(args, default_course_id)
    log.info(f"[API] Requesting course contents for course {course_id}")

    data = await client.call("core_course_get_contents", courseid=course_id)
    raw_sections = require_array(data, f"get_course_contents (courseId: {course_id})")

    sections = [_format_section(section) for section in raw_sections]
    return tool_result_content([text_content(json_text(sections))])
