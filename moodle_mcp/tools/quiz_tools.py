"""
Quiz Tools — quizzes and quiz grades

Tools:
  get_quizzes     — quizzes of one course
  get_quiz_grade  — a student's best grade on one quiz
"""

from typing import Any, Dict, List, Optional

from moodle_mcp.client import MoodleClient
from moodle_mcp.context import resolve_course_id
from moodle_mcp.logger import get_logger
from moodle_mcp.normalize import epoch_to_iso, require_object
from moodle_mcp.protocol import text_content, tool_result_content
from moodle_mcp.tools.validation import json_text, require_args

log = get_logger("tools.quiz")

NOT_GRADED = "Not graded"
QUIZ_DATE_FIELDS = ("timeopen", "timeclose")

TOOLS: List[Dict[str, Any]] = [
    {
        "name": "get_quizzes",
        "description": "Gets the list of quizzes in a course.",
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
    {
        "name": "get_quiz_grade",
        "description": "Gets a student's grade for a specific quiz.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "studentId": {"type": "number", "description": "ID of the student"},
                "quizId": {"type": "number", "description": "ID of the quiz"},
            },
            "required": ["studentId", "quizId"],
        },
    },
]


async def handle_tool(
    name: str,
    args: Dict[str, Any],
    client: MoodleClient,
    default_course_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Route quiz tool calls to implementations."""
    handlers = {
        "get_quizzes": _get_quizzes,
        "get_quiz_grade": _get_quiz_grade,
    }
    return await handlers[name](client, args, default_course_id)


def format_quiz(quiz: Dict[str, Any]) -> Dict[str, Any]:
    formatted = dict(quiz)
    for field in QUIZ_DATE_FIELDS:
        formatted[field] = epoch_to_iso(quiz.get(field))
    return formatted


async def _get_quizzes(client: MoodleClient, args: Dict, default_course_id: Optional[str]) -> Dict:
    course_id = resolve_course_id(args, default_course_id)
    log.info(f"[API] Requesting quizzes for course {course_id}")

    data = await client.call("mod_quiz_get_quizzes_by_courses", courseids=[course_id])
    response = require_object(data, f"get_quizzes (courseId: {course_id})")

    quizzes = [format_quiz(q) for q in response.get("quizzes") or []]
    return tool_result_content([text_content(json_text({"courseId": course_id, "quizzes": quizzes}))])


async def _get_quiz_grade(client: MoodleClient, args: Dict, default_course_id: Optional[str]) -> Dict:
    require_args(args, ("studentId", "quizId"), "Student ID and Quiz ID are required")
    student_id = args["studentId"]
    quiz_id = args["quizId"]
    log.info(f"[API] Requesting quiz grade for student {student_id} on quiz {quiz_id}")

    data = await client.call("mod_quiz_get_user_best_grade", quizid=quiz_id, userid=student_id)
    response = require_object(data, f"get_quiz_grade (quizId: {quiz_id}, studentId: {student_id})")

    has_grade = response.get("hasgrade")
    result = {
        "quizId": quiz_id,
        "studentId": student_id,
        "hasGrade": has_grade,
        "grade": response.get("grade") if has_grade else NOT_GRADED,
    }
    return tool_result_content([text_content(json_text(result))])
