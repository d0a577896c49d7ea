"""
Root pytest configuration and shared fixtures.

Provides a GitLab session backed by ``httpx.MockTransport`` plus helpers for
inspecting recorded requests and tool responses.
"""

import json
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
from urllib.parse import parse_qs, quote

import httpx
import pytest
from mcp.types import TextContent

from gitlab_mcp.config import GitLabSettings
from gitlab_mcp.core.session import GitLabSession, InstanceInfo

API_URL = "https://gitlab.example.com/api/v4"

# Response contract version from responses.py
RESPONSE_CONTRACT_VERSION = "response-v2"


def extract_response_dict(result: Union[Dict[str, Any], TextContent, List[TextContent]]) -> Dict[str, Any]:
    """Extract dict from a tool result, handling dict, TextContent or a list of them.

    Args:
        result: Tool result as returned by the server handlers

    Returns:
        Parsed dictionary from the response

    Raises:
        TypeError: If result is not one of the supported shapes
    """
    if isinstance(result, list) and len(result) == 1:
        result = result[0]
    if isinstance(result, dict):
        return result
    if isinstance(result, TextContent):
        return json.loads(result.text)
    raise TypeError(f"Expected dict or TextContent, got {type(result).__name__}")


def request_path(request: httpx.Request) -> str:
    """Path of a recorded request with percent escapes preserved (no query)."""
    return request.url.raw_path.decode().split("?", 1)[0]


def form_body(request: httpx.Request) -> Dict[str, str]:
    """Decode a form-encoded request body into single values."""
    parsed = parse_qs(request.content.decode())
    return {key: values[0] for key, values in parsed.items()}


def json_body(request: httpx.Request) -> Any:
    return json.loads(request.content.decode())


class RecordingTransport:
    """Route requests to a handler and remember every request made.

    Example:
        transport = RecordingTransport(lambda request: httpx.Response(200, json={}))
        ...
        assert transport.requests[0].method == "GET"
    """

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def calls(self, method: Optional[str] = None) -> List[httpx.Request]:
        return [r for r in self.requests if method is None or r.method == method]


@pytest.fixture
def gitlab_settings():
    """Connection settings pointing at a fake instance."""
    return GitLabSettings(api_url=API_URL, token="test-token")


@pytest.fixture
async def make_session(gitlab_settings):
    """Factory building sessions whose HTTP traffic goes to a handler.

    The returned session is not initialized unless ``instance`` is given.
    Sessions are closed at teardown.
    """
    sessions: List[GitLabSession] = []

    def factory(
        handler: Callable[[httpx.Request], httpx.Response],
        instance: Optional[InstanceInfo] = None,
    ):
        recorder = RecordingTransport(handler)
        session = GitLabSession(gitlab_settings, transport=recorder.transport)
        if instance is not None:
            session.set_instance_info(instance)
        sessions.append(session)
        return session, recorder

    yield factory

    for session in sessions:
        await session.close()


def gitlab_handler(
    routes: Optional[Dict[tuple, Any]] = None,
    *,
    projects: Sequence[str] = (),
    groups: Sequence[str] = (),
) -> Callable[[httpx.Request], httpx.Response]:
    """Build a fake GitLab API.

    Args:
        routes: ``(method, path) -> (status, payload)`` or ``-> callable(request)``.
            Paths are the raw request paths, e.g. ``/api/v4/projects/g%2Fp/labels``.
        projects: Project paths answering namespace probes with 200
        groups: Group paths answering namespace probes with 200

    Unknown requests get a GitLab-style 404.
    """
    routes = routes or {}
    existing = {f"/api/v4/projects/{quote(p, safe='')}" for p in projects}
    existing |= {f"/api/v4/groups/{quote(g, safe='')}" for g in groups}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request_path(request)
        target = routes.get((request.method, path))
        if callable(target):
            return target(request)
        if target is not None:
            status, payload = target
            if payload is None:
                return httpx.Response(status)
            return httpx.Response(status, json=payload)
        if request.method == "GET" and path in existing:
            return httpx.Response(200, json={"id": 1})
        return httpx.Response(404, json={"message": "404 Not Found"})

    return handler
