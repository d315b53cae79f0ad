"""Moodle web-service client — every call is a GET to the REST endpoint.

One endpoint, one token. Each call names a web-service function via
``wsfunction`` and carries its arguments as query parameters, encoded the
way Moodle's REST server expects (``courseids[0]=3``,
``plugindata[assignfeedbackcomments_editor][text]=...``).
"""

from typing import Any, Dict, List, Optional, Tuple

import httpx

from .config import Config
from .logger import get_logger

log = get_logger("client")

REST_FORMAT = "json"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class MoodleAPIError(Exception):
    """The upstream call itself failed (network, HTTP status, unreadable body)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        function: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.function = function


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def encode_params(params: Dict[str, Any], prefix: str = "") -> List[Tuple[str, str]]:
    """Flatten nested arguments into Moodle's bracketed query-string form."""
    pairs: List[Tuple[str, str]] = []
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        pairs.extend(_encode_value(name, value))
    return pairs


def _encode_value(name: str, value: Any) -> List[Tuple[str, str]]:
    if value is None:
        return []
    if isinstance(value, dict):
        return encode_params(value, prefix=name)
    if isinstance(value, (list, tuple)):
        return encode_params({i: v for i, v in enumerate(value)}, prefix=name)
    if isinstance(value, bool):
        return [(name, "1" if value else "0")]
    return [(name, str(value))]


def _upstream_message(response: httpx.Response) -> Optional[str]:
    """Pull Moodle's own error message out of a failed response, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return None


# ---------------------------------------------------------------------------
# Main client
# ---------------------------------------------------------------------------

class MoodleClient:
    """Async client bound to one Moodle endpoint and token.

    Usage:
        async with MoodleClient(url, token) as client:
            courses = await client.call("core_course_get_courses")
    """

    def __init__(
        self,
        url: str,
        token: str,
        *,
        timeout: float = Config.DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url
        self._token = token
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "MoodleClient":
        return cls(settings.api_url, settings.api_token, timeout=settings.timeout, **kwargs)

    async def call(self, function: str, **params: Any) -> Any:
        """Invoke a web-service function and return the decoded JSON body.

        Raises MoodleAPIError when the request fails or Moodle answers with a
        non-2xx status. Anything a 2xx response carries is returned as-is,
        including exception objects and bodies that are not JSON (as text);
        shape validation belongs to the caller.
        """
        query = [
            ("wstoken", self._token),
            ("moodlewsrestformat", REST_FORMAT),
            ("wsfunction", function),
        ] + encode_params(params)

        try:
            response = await self._http.get(self._url, params=query)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = _upstream_message(exc.response) or f"HTTP {status} from Moodle"
            log.error(f"[API] {function} failed: {message}")
            raise MoodleAPIError(message, status_code=status, function=function) from exc
        except httpx.HTTPError as exc:
            message = str(exc) or "Request to Moodle failed"
            log.error(f"[API] {function} failed: {message}")
            raise MoodleAPIError(message, function=function) from exc

        try:
            return response.json()
        except ValueError:
            log.warning(f"[API] {function} returned a body that is not JSON")
            return response.text

    async def aclose(self):
        await self._http.aclose()

    async def __aenter__(self) -> "MoodleClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
