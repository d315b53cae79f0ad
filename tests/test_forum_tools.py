"""Tests for moodle_mcp/tools/forum_tools.py"""

import json

import pytest

from moodle_mcp.protocol import ProtocolError, INTERNAL_ERROR, INVALID_PARAMS


def _text(result):
    return result["content"][0]["text"]


class TestGetForums:

    @pytest.mark.asyncio
    async def test_forums_are_reshaped(self, moodle, call_tool):
        moodle.on("mod_forum_get_forums_by_courses", [
            {"id": 4, "course": 5, "type": "general", "name": "Class talk",
             "intro": "<p>" + "y" * 250 + "</p>", "duedate": 0, "cutoffdate": 0,
             "timemodified": 1700000000, "numdiscussions": 3},
        ])

        data = json.loads(_text(await call_tool("get_forums", {"courseId": 5})))

        assert data["courseId"] == "5"
        forum = data["forums"][0]
        assert forum["intro"] == "y" * 200
        assert forum["duedate"] is None
        assert forum["timemodified"] == "2023-11-14T22:13:20.000Z"
        assert "numdiscussions" not in forum
        assert moodle.calls("mod_forum_get_forums_by_courses")[0]["courseids[0]"] == "5"

    @pytest.mark.asyncio
    async def test_error_object(self, moodle, call_tool):
        moodle.on("mod_forum_get_forums_by_courses", {"errorcode": "nopermissions"})

        with pytest.raises(ProtocolError) as exc_info:
            await call_tool("get_forums", {"courseId": 5})
        assert exc_info.value.code == INTERNAL_ERROR
        assert exc_info.value.message == "Moodle API error in get_forums: nopermissions"


class TestGetForumDiscussions:

    @pytest.mark.asyncio
    async def test_message_is_capped_not_stripped(self, moodle, call_tool):
        message = "<p>" + "z" * 600 + "</p>"
        moodle.on("mod_forum_get_forum_discussions", {
            "discussions": [
                {"id": 70, "discussion": 12, "name": "Welcome", "subject": "Welcome",
                 "message": message, "userfullname": "Dr. Lee", "userid": 2,
                 "created": 1700000000, "modified": 1700000000, "numreplies": 4,
                 "pinned": False, "locked": False, "canreply": True},
            ],
            "warnings": [],
        })

        data = json.loads(_text(await call_tool("get_forum_discussions", {"forumId": 4})))

        assert data["forumId"] == 4
        discussion = data["discussions"][0]
        assert discussion["message"] == message[:500]
        assert discussion["message"].startswith("<p>")
        assert discussion["id"] == 70
        assert discussion["numreplies"] == 4
        assert moodle.calls("mod_forum_get_forum_discussions")[0]["forumid"] == "4"

    @pytest.mark.asyncio
    async def test_requires_forum_id(self, moodle, call_tool):
        with pytest.raises(ProtocolError) as exc_info:
            await call_tool("get_forum_discussions", {})
        assert exc_info.value.code == INVALID_PARAMS
        assert exc_info.value.message == "Forum ID is required"
        assert moodle.requests == []


class TestPosting:

    @pytest.mark.asyncio
    async def test_create_discussion(self, moodle, call_tool):
        moodle.on("mod_forum_add_discussion", {"discussionid": 13, "warnings": []})

        result = await call_tool("create_forum_discussion", {
            "forumId": 4, "subject": "Exam prep", "message": "<p>Questions here</p>",
        })

        assert _text(result) == "Discussion created successfully in forum 4. Discussion ID: 13"
        params = moodle.calls("mod_forum_add_discussion")[0]
        assert params["subject"] == "Exam prep"
        assert params["message"] == "<p>Questions here</p>"

    @pytest.mark.asyncio
    async def test_create_requires_all_fields(self, call_tool):
        with pytest.raises(ProtocolError) as exc_info:
            await call_tool("create_forum_discussion", {"forumId": 4, "subject": "Exam prep"})
        assert exc_info.value.message == "Forum ID, subject, and message are required"

    @pytest.mark.asyncio
    async def test_reply_default_subject(self, moodle, call_tool):
        moodle.on("mod_forum_add_discussion_post", {"postid": 81, "warnings": []})

        result = await call_tool("reply_to_forum_discussion", {"postId": 70, "message": "<p>Thanks</p>"})

        assert _text(result) == "Reply posted successfully. Post ID: 81"
        params = moodle.calls("mod_forum_add_discussion_post")[0]
        assert params["postid"] == "70"
        assert params["subject"] == "Re: "

    @pytest.mark.asyncio
    async def test_reply_custom_subject(self, moodle, call_tool):
        moodle.on("mod_forum_add_discussion_post", {"postid": 82})

        await call_tool("reply_to_forum_discussion", {"postId": 70, "message": "ok", "subject": "Agreed"})

        assert moodle.calls("mod_forum_add_discussion_post")[0]["subject"] == "Agreed"

    @pytest.mark.asyncio
    async def test_reply_requires_post_and_message(self, call_tool):
        with pytest.raises(ProtocolError) as exc_info:
            await call_tool("reply_to_forum_discussion", {"postId": 70})
        assert exc_info.value.message == "Post ID and message are required"


class TestUpstreamFailures:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name, function, args", [
        ("get_forums", "mod_forum_get_forums_by_courses", {"courseId": 5}),
        ("get_forum_discussions", "mod_forum_get_forum_discussions", {"forumId": 4}),
        ("create_forum_discussion", "mod_forum_add_discussion",
         {"forumId": 4, "subject": "Exam prep", "message": "<p>Hi</p>"}),
        ("reply_to_forum_discussion", "mod_forum_add_discussion_post", {"postId": 70, "message": "<p>Hi</p>"}),
    ])
    async def test_http_500_is_error_result(self, moodle, call_tool, name, function, args):
        moodle.fail(function, status=500, message="Forum service down")

        result = await call_tool(name, args)

        assert result["isError"] is True
        assert _text(result) == "Moodle API error: Forum service down"
