"""Input validation helpers for MCP tool parameters."""

import json
from typing import Any, Dict, Iterable

from moodle_mcp.protocol import ProtocolError, INVALID_PARAMS


def require_args(args: Dict[str, Any], names: Iterable[str], message: str) -> None:
    """Raise INVALID_PARAMS unless every named argument is present and truthy."""
    if not all(args.get(name) for name in names):
        raise ProtocolError(INVALID_PARAMS, message)


def json_text(payload: Any) -> str:
    """Pretty JSON for a text content block."""
    return json.dumps(payload, indent=2, ensure_ascii=False)
