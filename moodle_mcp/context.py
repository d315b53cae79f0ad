"""Course context — which course a course-scoped tool call targets."""

from typing import Any, Dict, Optional

from .normalize import id_string
from .protocol import ProtocolError, INVALID_PARAMS

COURSE_ID_REQUIRED = (
    "courseId is required. Either pass it as a parameter "
    "or set MOODLE_COURSE_ID environment variable."
)


def resolve_course_id(args: Optional[Dict[str, Any]], default_course_id: Optional[str]) -> str:
    """
    Explicit ``courseId`` argument wins; otherwise the configured default.

    Raises ProtocolError(INVALID_PARAMS) when neither is available. Never
    returns an empty identifier.
    """
    course_id = (args or {}).get("courseId")
    if course_id is not None and course_id != "":
        return id_string(course_id)
    if default_course_id:
        return default_course_id
    raise ProtocolError(INVALID_PARAMS, COURSE_ID_REQUIRED)
