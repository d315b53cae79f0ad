"""
Forum Tools — read and post to course forums

Tools:
  get_forums                 — forums of one course
  get_forum_discussions      — discussions in one forum (with post ids for replying)
  create_forum_discussion    — start a new discussion
  reply_to_forum_discussion  — reply to an existing post
"""

from typing import Any, Dict, List, Optional

from moodle_mcp.client import MoodleClient
from moodle_mcp.context import resolve_course_id
from moodle_mcp.logger import get_logger
from moodle_mcp.normalize import (
    COURSE_SUMMARY_LIMIT,
    DISCUSSION_MESSAGE_LIMIT,
    epoch_to_iso,
    require_array,
    require_object,
    strip_markup,
    truncate,
)
from moodle_mcp.protocol import text_content, tool_result_content
from moodle_mcp.tools.validation import json_text, require_args

log = get_logger("tools.forum")

DEFAULT_REPLY_SUBJECT = "Re: "

# ── Tool definitions ─────────────────────────────────────────────────────────

TOOLS: List[Dict[str, Any]] = [
    {
        "name": "get_forums",
        "description": "Lists all forums in a course.",
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
        "name": "get_forum_discussions",
        "description": (
            "Lists discussions in a forum. Returns discussion subjects, authors, "
            "reply counts, and post IDs needed for replying."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "forumId": {"type": "number", "description": "ID of the forum"},
            },
            "required": ["forumId"],
        },
    },
    {
        "name": "create_forum_discussion",
        "description": (
            "Creates a new discussion thread in a forum. "
            "The message should be in HTML format."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "forumId": {"type": "number", "description": "ID of the forum"},
                "subject": {"type": "string", "description": "Discussion subject/title"},
                "message": {"type": "string", "description": "Discussion message body (HTML format)"},
            },
            "required": ["forumId", "subject", "message"],
        },
    },
    {
        "name": "reply_to_forum_discussion",
        "description": (
            "Replies to an existing forum post. Use get_forum_discussions to find "
            "the post ID to reply to. The message should be in HTML format."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "postId": {
                    "type": "number",
                    "description": 'ID of the post to reply to (use the "id" field from get_forum_discussions)',
                },
                "message": {"type": "string", "description": "Reply message body (HTML format)"},
                "subject": {
                    "type": "string",
                    "description": 'Optional reply subject. If not provided, defaults to "Re: ".',
                },
            },
            "required": ["postId", "message"],
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
    """Route forum tool calls to implementations."""
    handlers = {
        "get_forums": _get_forums,
        "get_forum_discussions": _get_forum_discussions,
        "create_forum_discussion": _create_forum_discussion,
        "reply_to_forum_discussion": _reply_to_forum_discussion,
    }
    return await handlers[name](client, args, default_course_id)


# ── Implementations ──────────────────────────────────────────────────────────

def _format_forum(forum: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": forum.get("id"),
        "course": forum.get("course"),
        "type": forum.get("type"),
        "name": forum.get("name"),
        "intro": strip_markup(forum.get("intro"), limit=COURSE_SUMMARY_LIMIT),
        "duedate": epoch_to_iso(forum.get("duedate")),
        "cutoffdate": epoch_to_iso(forum.get("cutoffdate")),
        "timemodified": epoch_to_iso(forum.get("timemodified")),
    }


def _format_discussion(discussion: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": discussion.get("id"),
        "discussion": discussion.get("discussion"),
        "name": discussion.get("name"),
        "subject": discussion.get("subject"),
        # HTML is kept; only the length is capped
        "message": truncate(discussion.get("message"), DISCUSSION_MESSAGE_LIMIT),
        "userfullname": discussion.get("userfullname"),
        "userid": discussion.get("userid"),
        "created": epoch_to_iso(discussion.get("created")),
        "modified": epoch_to_iso(discussion.get("modified")),
        "numreplies": discussion.get("numreplies"),
        "pinned": discussion.get("pinned"),
        "locked": discussion.get("locked"),
        "canreply": discussion.get("canreply"),
    }


async def _get_forums(client: MoodleClient, args: Dict, default_course_id: Optional[str]) -> Dict:
    course_id = resolve_course_id(args, default_course_id)
    log.info(f"[API] Requesting forums for course {course_id}")

    data = await client.call("mod_forum_get_forums_by_courses", courseids=[course_id])
    forums = [_format_forum(f) for f in require_array(data, "get_forums")]

    return tool_result_content([text_content(json_text({"courseId": course_id, "forums": forums}))])


async def _get_forum_discussions(client: MoodleClient, args: Dict, default_course_id: Optional[str]) -> Dict:
    require_args(args, ("forumId",), "Forum ID is required")
    forum_id = args["forumId"]
    log.info(f"[API] Requesting discussions for forum {forum_id}")

    data = await client.call("mod_forum_get_forum_discussions", forumid=forum_id)
    response = require_object(data, f"get_forum_discussions (forumId: {forum_id})")

    discussions = [_format_discussion(d) for d in response.get("discussions") or []]
    return tool_result_content([text_content(json_text({"forumId": forum_id, "discussions": discussions}))])


async def _create_forum_discussion(client: MoodleClient, args: Dict, default_course_id: Optional[str]) -> Dict:
    require_args(
        args,
        ("forumId", "subject", "message"),
        "Forum ID, subject, and message are required",
    )
    forum_id = args["forumId"]
    log.info(f"[API] Creating discussion in forum {forum_id}")

    data = await client.call(
        "mod_forum_add_discussion",
        forumid=forum_id,
        subject=args["subject"],
        message=args["message"],
    )
    response = require_object(data, f"create_forum_discussion (forumId: {forum_id})")

    return tool_result_content([text_content(
        f"Discussion created successfully in forum {forum_id}. "
        f"Discussion ID: {response.get('discussionid')}"
    )])


async def _reply_to_forum_discussion(client: MoodleClient, args: Dict, default_course_id: Optional[str]) -> Dict:
    require_args(args, ("postId", "message"), "Post ID and message are required")
    post_id = args["postId"]
    log.info(f"[API] Replying to post {post_id}")

    data = await client.call(
        "mod_forum_add_discussion_post",
        postid=post_id,
        subject=args.get("subject") or DEFAULT_REPLY_SUBJECT,
        message=args["message"],
    )
    response = require_object(data, f"reply_to_forum_discussion (postId: {post_id})")

    return tool_result_content([text_content(f"Reply posted successfully. Post ID: {response.get('postid')}")])
