"""
Assignment Tools — assignments, submissions, grading

Tools:
  get_assignments         — assignments of one course
  get_submissions         — submissions joined with grades, per assignment
  provide_feedback        — save a grade and feedback comment
  get_submission_content  — online text and attached files of one submission

get_submissions is the only multi-call tool: one assignment listing, then a
submissions fetch and a grades fetch per assignment, all run concurrently and
joined on userid once every fetch has returned.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Dict, List, Optional, Tuple

from moodle_mcp.client import MoodleClient
from moodle_mcp.context import resolve_course_id
from moodle_mcp.logger import get_logger
from moodle_mcp.normalize import epoch_to_iso, id_string, require_object, same_id
from moodle_mcp.protocol import text_content, tool_result_content
from moodle_mcp.tools.validation import json_text, require_args

log = get_logger("tools.assignment")

NOT_GRADED = "Not graded"
NO_SUBMISSIONS = "No submissions"
NO_ASSIGNMENTS = "No assignments found for the specified criteria."

ASSIGNMENT_DATE_FIELDS = ("duedate", "allowsubmissionsfromdate", "cutoffdate")

# mod_assign_save_grade fixed policy
LATEST_ATTEMPT = -1
WORKFLOW_RELEASED = "released"
FORMAT_HTML = 1


class SubmissionPlugin(str, Enum):
    """Submission plugin kinds whose content is extracted. Others are ignored."""

    ONLINETEXT = "onlinetext"
    FILE = "file"


ONLINETEXT_EDITOR_FIELD = "onlinetext"
SUBMISSION_FILE_AREA = "submission_files"


# ── Tool definitions ─────────────────────────────────────────────────────────

_COURSE_ID_PROPERTY = {
    "type": "number",
    "description": "ID of the course. If not provided, uses the default configured course.",
}

TOOLS: List[Dict[str, Any]] = [
    {
        "name": "get_assignments",
        "description": "Gets the list of assignments in a course.",
        "inputSchema": {
            "type": "object",
            "properties": {"courseId": _COURSE_ID_PROPERTY},
            "required": [],
        },
    },
    {
        "name": "get_submissions",
        "description": "Gets assignment submissions for a course.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "courseId": _COURSE_ID_PROPERTY,
                "studentId": {
                    "type": "number",
                    "description": "Optional student ID. If not provided, returns submissions from all students.",
                },
                "assignmentId": {
                    "type": "number",
                    "description": "Optional assignment ID. If not provided, returns all submissions.",
                },
            },
            "required": [],
        },
    },
    {
        "name": "provide_feedback",
        "description": "Provides feedback and grade for a student assignment submission.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "studentId": {"type": "number", "description": "ID of the student"},
                "assignmentId": {"type": "number", "description": "ID of the assignment"},
                "grade": {"type": "number", "description": "Numeric grade to assign"},
                "feedback": {"type": "string", "description": "Feedback text to provide"},
            },
            "required": ["studentId", "assignmentId", "feedback"],
        },
    },
    {
        "name": "get_submission_content",
        "description": (
            "Gets the detailed content of a specific submission, "
            "including text and attached files."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "studentId": {"type": "number", "description": "ID of the student"},
                "assignmentId": {"type": "number", "description": "ID of the assignment"},
            },
            "required": ["studentId", "assignmentId"],
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
    """Route assignment tool calls to implementations."""
    handlers = {
        "get_assignments": _get_assignments,
        "get_submissions": _get_submissions,
        "provide_feedback": _provide_feedback,
        "get_submission_content": _get_submission_content,
    }

    return await handlers[name](client, args, default_course_id)


# ── Pure helpers (no I/O) ────────────────────────────────────────────────────

def course_assignments(payload: Dict[str, Any], course_id: str) -> List[Dict[str, Any]]:
    """Assignments from the per-course wrapper whose id matches course_id."""
    for course in payload.get("courses") or []:
        if same_id(course.get("id"), course_id):
            return course.get("assignments") or []
    return []


def select_assignments(assignments: List[Dict[str, Any]], assignment_id: Any) -> List[Dict[str, Any]]:
    if not assignment_id:
        return list(assignments)
    return [a for a in assignments if same_id(a.get("id"), assignment_id)]


def assignment_entries(payload: Dict[str, Any], assignment_id: Any, key: str) -> List[Dict[str, Any]]:
    """Records under `key` for one assignment in a submissions/grades response."""
    for entry in payload.get("assignments") or []:
        if same_id(entry.get("assignmentid"), assignment_id):
            return entry.get(key) or []
    return []


def join_grades(
    submissions: List[Dict[str, Any]],
    grades: List[Dict[str, Any]],
    student_id: Any = None,
) -> List[Dict[str, Any]]:
    """
    Left outer join of submissions to grades on userid.

    Submissions drive the join: a submission without a grade record is kept
    with grade "Not graded". Filters to student_id first when given.
    """
    grade_by_user: Dict[str, Any] = {}
    for grade in grades:
        grade_by_user.setdefault(id_string(grade.get("userid")), grade)

    if student_id:
        submissions = [s for s in submissions if same_id(s.get("userid"), student_id)]

    joined = []
    for submission in submissions:
        grade = grade_by_user.get(id_string(submission.get("userid")))
        joined.append({
            "userid": submission.get("userid"),
            "status": submission.get("status"),
            "timemodified": epoch_to_iso(submission.get("timemodified")),
            "grade": grade.get("grade") if grade is not None else NOT_GRADED,
        })
    return joined


def summarize_assignment(
    assignment: Dict[str, Any],
    submissions: List[Dict[str, Any]],
    grades: List[Dict[str, Any]],
    student_id: Any = None,
) -> Dict[str, Any]:
    joined = join_grades(submissions, grades, student_id)
    return {
        "assignment": assignment.get("name"),
        "assignmentId": assignment.get("id"),
        "submissions": joined if joined else NO_SUBMISSIONS,
    }


def format_assignment(assignment: Dict[str, Any]) -> Dict[str, Any]:
    # All upstream fields pass through; only the dates are rewritten
    formatted = dict(assignment)
    for field in ASSIGNMENT_DATE_FIELDS:
        formatted[field] = epoch_to_iso(assignment.get(field))
    return formatted


def extract_submission_plugins(plugins: List[Dict[str, Any]]) -> Tuple[str, List[Dict[str, Any]]]:
    """Online text and submission files from a submission's plugin list."""
    text = ""
    files: List[Dict[str, Any]] = []

    for plugin in plugins:
        try:
            kind = SubmissionPlugin(plugin.get("type"))
        except ValueError:
            continue

        if kind is SubmissionPlugin.ONLINETEXT:
            for field in plugin.get("editorfields") or []:
                if field.get("name") == ONLINETEXT_EDITOR_FIELD:
                    text = field.get("text") or ""
                    break

        elif kind is SubmissionPlugin.FILE:
            for area in plugin.get("fileareas") or []:
                if area.get("area") == SUBMISSION_FILE_AREA:
                    files.extend(
                        {
                            "filename": f.get("filename"),
                            "fileurl": f.get("fileurl"),
                            "filesize": f.get("filesize"),
                            "filetype": f.get("mimetype"),
                        }
                        for f in area.get("files") or []
                    )
                    break

    return text, files


# ── Implementations ──────────────────────────────────────────────────────────

async def gather_all(*aws: Awaitable[Any]) -> List[Any]:
    """
    Run awaitables concurrently and return their results in argument order.

    If any of them fails (or the caller is cancelled), the others are
    cancelled and awaited before the exception propagates.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def _fetch_course_assignments(client: MoodleClient, course_id: str, context: str) -> List[Dict[str, Any]]:
    data = await client.call("mod_assign_get_assignments", courseids=[course_id])
    return course_assignments(require_object(data, context), course_id)


async def _fetch_submissions_and_grades(
    client: MoodleClient,
    assignment_id: Any,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    submissions_data, grades_data = await gather_all(
        client.call("mod_assign_get_submissions", assignmentids=[assignment_id]),
        client.call("mod_assign_get_grades", assignmentids=[assignment_id]),
    )
    submissions = assignment_entries(
        require_object(submissions_data, f"get_submissions (assignmentId: {assignment_id})"),
        assignment_id,
        "submissions",
    )
    grades = assignment_entries(
        require_object(grades_data, f"get_grades (assignmentId: {assignment_id})"),
        assignment_id,
        "grades",
    )
    return submissions, grades


async def _get_assignments(client: MoodleClient, args: Dict, default_course_id: Optional[str]) -> Dict:
    course_id = resolve_course_id(args, default_course_id)
    log.info(f"[API] Requesting assignments for course {course_id}")

    assignments = await _fetch_course_assignments(
        client, course_id, f"get_assignments (courseId: {course_id})"
    )
    payload = {
        "courseId": course_id,
        "assignments": [format_assignment(a) for a in assignments],
    }
    return tool_result_content([text_content(json_text(payload))])


async def _get_submissions(client: MoodleClient, args: Dict, default_course_id: Optional[str]) -> Dict:
    course_id = resolve_course_id(args, default_course_id)
    student_id = args.get("studentId")
    assignment_id = args.get("assignmentId")

    log.info(
        f"[API] Requesting submissions for course {course_id}"
        + (f" for student {student_id}" if student_id else "")
    )

    assignments = await _fetch_course_assignments(
        client, course_id, f"get_submissions (courseId: {course_id})"
    )
    targets = select_assignments(assignments, assignment_id)
    if not targets:
        return tool_result_content([text_content(NO_ASSIGNMENTS)])

    # gather_all preserves argument order, so results follow the assignment listing
    fetched = await gather_all(
        *(_fetch_submissions_and_grades(client, a.get("id")) for a in targets)
    )

    results = [
        summarize_assignment(assignment, submissions, grades, student_id)
        for assignment, (submissions, grades) in zip(targets, fetched)
    ]
    return tool_result_content([text_content(json_text({"courseId": course_id, "results": results}))])


async def _provide_feedback(client: MoodleClient, args: Dict, default_course_id: Optional[str]) -> Dict:
    require_args(
        args,
        ("studentId", "assignmentId", "feedback"),
        "Student ID, Assignment ID, and feedback are required",
    )
    student_id = args["studentId"]
    assignment_id = args["assignmentId"]
    log.info(f"[API] Providing feedback for student {student_id} on assignment {assignment_id}")

    # Response body is not inspected; transport failures still raise
    await client.call(
        "mod_assign_save_grade",
        assignmentid=assignment_id,
        userid=student_id,
        grade=args.get("grade") or 0,
        attemptnumber=LATEST_ATTEMPT,
        addattempt=0,
        workflowstate=WORKFLOW_RELEASED,
        applytoall=0,
        plugindata={
            "assignfeedbackcomments_editor": {
                "text": args["feedback"],
                "format": FORMAT_HTML,
            },
        },
    )

    return tool_result_content([text_content(
        f"Feedback successfully provided for student {student_id} on assignment {assignment_id}."
    )])


async def _get_submission_content(client: MoodleClient, args: Dict, default_course_id: Optional[str]) -> Dict:
    require_args(args, ("studentId", "assignmentId"), "Student ID and Assignment ID are required")
    student_id = args["studentId"]
    assignment_id = args["assignmentId"]
    log.info(f"[API] Requesting submission content for student {student_id} on assignment {assignment_id}")

    data = await client.call(
        "mod_assign_get_submission_status",
        assignid=assignment_id,
        userid=student_id,
    )
    status = require_object(
        data, f"get_submission_content (assignmentId: {assignment_id}, studentId: {student_id})"
    )

    submission = (status.get("lastattempt") or {}).get("submission") or status.get("submission") or {}
    text, files = extract_submission_plugins(submission.get("plugins") or [])

    content = {
        "assignment": assignment_id,
        "userid": student_id,
        "status": submission.get("status") or "unknown",
        "submissiontext": text,
        "plugins": [
            {"type": SubmissionPlugin.ONLINETEXT.value, "content": text},
            {"type": SubmissionPlugin.FILE.value, "files": files},
        ],
        "timemodified": epoch_to_iso(submission.get("timemodified")),
    }
    return tool_result_content([text_content(json_text(content))])
