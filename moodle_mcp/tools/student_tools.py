"""
Student Tools — course enrolment

Tools:
  get_students  — enrolled users holding the "student" role
"""

from typing import Any, Dict, List, Optional

from moodle_mcp.client import MoodleClient
from moodle_mcp.context import resolve_course_id
from moodle_mcp.logger import get_logger
from moodle_mcp.normalize import epoch_to_iso, require_array
from moodle_mcp.protocol import text_content, tool_result_content
from moodle_mcp.tools.validation import json_text

log = get_logger("tools.student")

STUDENT_ROLE = "student"

TOOLS: List[Dict[str, Any]] = [
    {
        "name": "get_students",
        "description": "Gets the list of students enrolled in a course.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "courseId": {
                    "type": "number",
                    "description": "ID of the course. If not provided, uses the default configured course.",
                },
            },
            "required": [],
        },
    },
]


async def handle_tool(
    name: str,
    args: Dict[str, Any],
    client: MoodleClient,
    default_course_id: Optional[str] = None,
) -> Dict[str, Any]:
    return await _get_students(client, args, default_course_id)


def is_student(user: Dict[str, Any]) -> bool:
    # A user can hold several roles in one course (e.g. editingteacher + student)
    return any(role.get("shortname") == STUDENT_ROLE for role in user.get("roles") or [])


async def _get_students(client: MoodleClient, args: Dict, default_course_id: Optional[str]) -> Dict:
    course_id = resolve_course_id(args, default_course_id)
    log.info(f"[API] Requesting enrolled users for course {course_id}")

    data = await client.call("core_enrol_get_enrolled_users", courseid=course_id)
    users = require_array(data, f"get_students (courseId: {course_id})")

    students = [
        {
            "id": user.get("id"),
            "username": user.get("username"),
            "firstname": user.get("firstname"),
            "lastname": user.get("lastname"),
            "email": user.get("email"),
            "lastaccess": epoch_to_iso(user.get("lastaccess")),
        }
        for user in users
        if is_student(user)
    ]

    return tool_result_content([text_content(json_text({"courseId": course_id, "students": students}))])
