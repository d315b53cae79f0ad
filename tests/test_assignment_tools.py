"""
Tests for moodle_mcp/tools/assignment_tools.py

get_assignments, provide_feedback and get_submission_content; the
aggregating get_submissions has its own module.
"""

import json

import pytest

from moodle_mcp.protocol import ProtocolError, INTERNAL_ERROR, INVALID_PARAMS
from moodle_mcp.tools.assignment_tools import SubmissionPlugin, extract_submission_plugins


def _text(result):
    return result["content"][0]["text"]


# ═══════════════════════════════════════════════════════════════
# get_assignments
# ═══════════════════════════════════════════════════════════════

class TestGetAssignments:

    @pytest.mark.asyncio
    async def test_matching_course_wrapper(self, moodle, call_tool):
        moodle.on("mod_assign_get_assignments", {
            "courses": [
                {"id": 6, "assignments": [{"id": 99, "name": "Other course"}]},
                {"id": 5, "assignments": [
                    {"id": 20, "name": "Essay", "intro": "<p>Write</p>",
                     "duedate": 1700000000, "allowsubmissionsfromdate": 0, "cutoffdate": 0},
                ]},
            ],
            "warnings": [],
        })

        data = json.loads(_text(await call_tool("get_assignments", {"courseId": 5})))

        assert data["courseId"] == "5"
        assert len(data["assignments"]) == 1
        essay = data["assignments"][0]
        assert essay["name"] == "Essay"
        assert essay["intro"] == "<p>Write</p>"
        assert essay["duedate"] == "2023-11-14T22:13:20.000Z"
        assert essay["allowsubmissionsfromdate"] is None
        assert essay["cutoffdate"] is None
        assert moodle.calls("mod_assign_get_assignments")[0]["courseids[0]"] == "5"

    @pytest.mark.asyncio
    async def test_no_matching_course_gives_empty_list(self, moodle, call_tool):
        moodle.on("mod_assign_get_assignments", {"courses": []})

        data = json.loads(_text(await call_tool("get_assignments", {"courseId": 5})))
        assert data["assignments"] == []

    @pytest.mark.asyncio
    async def test_embedded_error(self, moodle, call_tool):
        moodle.on("mod_assign_get_assignments", {"exception": "required_capability_exception",
                                                 "message": "Sorry, no access"})

        with pytest.raises(ProtocolError) as exc_info:
            await call_tool("get_assignments", {"courseId": 5})
        assert exc_info.value.code == INTERNAL_ERROR
        assert exc_info.value.message == "Moodle API error in get_assignments (courseId: 5): Sorry, no access"


# ═══════════════════════════════════════════════════════════════
# provide_feedback
# ═══════════════════════════════════════════════════════════════

class TestProvideFeedback:

    @pytest.mark.asyncio
    async def test_save_grade_parameters(self, moodle, call_tool):
        moodle.on("mod_assign_save_grade", None)

        result = await call_tool("provide_feedback", {
            "studentId": 3, "assignmentId": 20, "grade": 85, "feedback": "<p>Well argued</p>",
        })

        assert _text(result) == "Feedback successfully provided for student 3 on assignment 20."
        params = moodle.calls("mod_assign_save_grade")[0]
        assert params["assignmentid"] == "20"
        assert params["userid"] == "3"
        assert params["grade"] == "85"
        assert params["attemptnumber"] == "-1"
        assert params["addattempt"] == "0"
        assert params["workflowstate"] == "released"
        assert params["applytoall"] == "0"
        assert params["plugindata[assignfeedbackcomments_editor][text]"] == "<p>Well argued</p>"
        assert params["plugindata[assignfeedbackcomments_editor][format]"] == "1"

    @pytest.mark.asyncio
    async def test_grade_defaults_to_zero(self, moodle, call_tool):
        moodle.on("mod_assign_save_grade", None)

        await call_tool("provide_feedback", {"studentId": 3, "assignmentId": 20, "feedback": "Late"})

        assert moodle.calls("mod_assign_save_grade")[0]["grade"] == "0"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("args", [
        {"assignmentId": 20, "feedback": "x"},
        {"studentId": 3, "feedback": "x"},
        {"studentId": 3, "assignmentId": 20},
        {"studentId": 3, "assignmentId": 20, "feedback": ""},
    ])
    async def test_required_arguments(self, moodle, call_tool, args):
        with pytest.raises(ProtocolError) as exc_info:
            await call_tool("provide_feedback", args)

        assert exc_info.value.code == INVALID_PARAMS
        assert exc_info.value.message == "Student ID, Assignment ID, and feedback are required"
        assert moodle.requests == []

    @pytest.mark.asyncio
    async def test_upstream_500_is_error_result(self, moodle, call_tool):
        moodle.fail("mod_assign_save_grade", status=500, message="Grade locked")

        result = await call_tool("provide_feedback", {"studentId": 3, "assignmentId": 20, "feedback": "Late"})

        assert result["isError"] is True
        assert _text(result) == "Moodle API error: Grade locked"


# ═══════════════════════════════════════════════════════════════
# get_submission_content
# ═══════════════════════════════════════════════════════════════

_PLUGINS = [
    {"type": "comments", "name": "Submission comments"},
    {
        "type": "file",
        "fileareas": [
            {"area": "submission_files", "files": [
                {"filename": "essay.pdf", "fileurl": "https://moodle.test/f/essay.pdf",
                 "filesize": 2048, "mimetype": "application/pdf"},
            ]},
        ],
    },
    {
        "type": "onlinetext",
        "editorfields": [
            {"name": "onlinetext", "text": "<p>My <b>answer</b></p>", "format": 1},
        ],
    },
]


class TestExtractSubmissionPlugins:

    def test_text_and_files(self):
        text, files = extract_submission_plugins(_PLUGINS)

        assert text == "<p>My <b>answer</b></p>"
        assert files == [{
            "filename": "essay.pdf",
            "fileurl": "https://moodle.test/f/essay.pdf",
            "filesize": 2048,
            "filetype": "application/pdf",
        }]

    def test_unknown_plugins_only(self):
        assert extract_submission_plugins([{"type": "comments"}]) == ("", [])

    def test_plugin_kinds(self):
        assert SubmissionPlugin("onlinetext") is SubmissionPlugin.ONLINETEXT
        assert SubmissionPlugin.FILE.value == "file"


class TestGetSubmissionContent:

    @pytest.mark.asyncio
    async def test_last_attempt_submission(self, moodle, call_tool):
        moodle.on("mod_assign_get_submission_status", {
            "lastattempt": {
                "submission": {"status": "submitted", "timemodified": 1700000000, "plugins": _PLUGINS},
            },
            "warnings": [],
        })

        data = json.loads(_text(await call_tool("get_submission_content", {"studentId": 3, "assignmentId": 20})))

        assert data["assignment"] == 20
        assert data["userid"] == 3
        assert data["status"] == "submitted"
        assert data["submissiontext"] == "<p>My <b>answer</b></p>"
        assert [p["type"] for p in data["plugins"]] == ["onlinetext", "file"]
        assert data["plugins"][0]["content"] == "<p>My <b>answer</b></p>"
        assert data["plugins"][1]["files"][0]["filetype"] == "application/pdf"
        assert data["timemodified"] == "2023-11-14T22:13:20.000Z"

        params = moodle.calls("mod_assign_get_submission_status")[0]
        assert params["assignid"] == "20"
        assert params["userid"] == "3"

    @pytest.mark.asyncio
    async def test_no_submission(self, moodle, call_tool):
        moodle.on("mod_assign_get_submission_status", {"warnings": []})

        data = json.loads(_text(await call_tool("get_submission_content", {"studentId": 3, "assignmentId": 20})))

        assert data["status"] == "unknown"
        assert data["submissiontext"] == ""
        assert data["plugins"][1]["files"] == []
        assert data["timemodified"] is None

    @pytest.mark.asyncio
    async def test_requires_both_ids(self, call_tool):
        with pytest.raises(ProtocolError) as exc_info:
            await call_tool("get_submission_content", {"studentId": 3})
        assert exc_info.value.message == "Student ID and Assignment ID are required"

    @pytest.mark.asyncio
    async def test_transport_failure_is_error_result(self, moodle, call_tool):
        moodle.fail("mod_assign_get_submission_status", status=502)

        result = await call_tool("get_submission_content", {"studentId": 3, "assignmentId": 20})

        assert result["isError"] is True
        assert _text(result) == "Moodle API error: HTTP 502 from Moodle"
