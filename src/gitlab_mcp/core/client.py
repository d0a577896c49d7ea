"""HTTP transport for the GitLab REST and GraphQL APIs.

One ``GitLabClient`` wraps one ``httpx.AsyncClient``. Credentials (bearer
token and optional cookie file) are bound to the client instance and never
shared through module state.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import httpx

from gitlab_mcp.config import GitLabSettings
from gitlab_mcp.core.errors import GitLabAPIError
from gitlab_mcp.core.query import ContentType, to_body, to_query

logger = logging.getLogger(__name__)

_GID_RE = re.compile(r"^gid://gitlab/[A-Za-z:]+/(.+)$")


def clean_gids(value: Any) -> Any:
    """Replace GitLab global IDs (``gid://gitlab/Type/42``) with their last segment."""
    if isinstance(value, str):
        match = _GID_RE.match(value)
        return match.group(1) if match else value
    if isinstance(value, list):
        return [clean_gids(item) for item in value]
    if isinstance(value, dict):
        return {key: clean_gids(item) for key, item in value.items()}
    return value


def load_cookie_header(path: Path) -> Optional[str]:
    """Read a Netscape cookie file into a ``Cookie`` header value.

    Each non-comment line is ``domain flag path secure expiry name value``
    separated by tabs. Returns None when the file holds no cookies or cannot
    be read.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Failed to load GitLab authentication cookies from %s: %s", path, exc)
        return None

    cookies = []
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        parts = stripped.split("\t")
        if len(parts) >= 7:
            cookies.append(f"{parts[5]}={parts[6]}")

    return "; ".join(cookies) if cookies else None


def extract_error_message(response: httpx.Response) -> Optional[str]:
    """Pull a readable message out of a GitLab error body.

    GitLab reports errors as ``{"message": "..."}``, ``{"message": {"field":
    ["..."]}}``, ``{"message": {"value": [...]}}`` or ``{"error": "..."}``.
    Returns None when the body is not JSON.
    """
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    parts = []
    message = data.get("message")
    if isinstance(message, str):
        parts.append(message)
    elif isinstance(message, dict):
        value = message.get("value")
        if isinstance(value, list):
            parts.append(", ".join(str(item) for item in value))
        else:
            parts.append(json.dumps(message))
    elif message is not None:
        parts.append(str(message))

    error = data.get("error")
    if error:
        parts.append(str(error))
    if data.get("error_description"):
        parts.append(str(data["error_description"]))

    return " - ".join(parts) if parts else None


class GitLabClient:
    """Async client for one GitLab instance.

    Args:
        settings: Connection settings (API URL, token, cookie file, timeout)
        transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in tests

    Example:
        async with GitLabClient(settings) as client:
            project = await client.get("projects/42")
    """

    def __init__(
        self,
        settings: GitLabSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings
        headers = {"Accept": "application/json", "User-Agent": "gitlab-mcp"}
        if settings.token:
            headers["Authorization"] = f"Bearer {settings.token}"
        if settings.auth_cookie_path:
            cookie_header = load_cookie_header(settings.auth_cookie_path)
            if cookie_header:
                headers["Cookie"] = cookie_header

        self._http = httpx.AsyncClient(
            base_url=settings.api_url.rstrip("/") + "/",
            headers=headers,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    @property
    def api_url(self) -> str:
        return self._settings.api_url

    async def __aenter__(self) -> "GitLabClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        query: Optional[Mapping[str, Any]] = None,
        body: Optional[Mapping[str, Any]] = None,
        content_type: ContentType = "form",
        raw: bool = False,
    ) -> Any:
        """Perform one API call and return the decoded response.

        Args:
            method: HTTP verb
            path: Path relative to the API root, e.g. ``projects/42/labels``
            query: Query parameters (``None`` values dropped)
            body: Request body, sent as JSON or form data
            content_type: ``json`` or ``form``
            raw: Skip global-ID cleanup of the response

        Returns:
            Decoded JSON, response text for non-JSON bodies, or None for
            empty responses.

        Raises:
            GitLabAPIError: If GitLab responds with a non-2xx status
        """
        kwargs: Dict[str, Any] = {}
        if query:
            kwargs["params"] = to_query(query)
        if body is not None:
            if content_type == "json":
                kwargs["json"] = to_body(body, content_type="json")
            else:
                kwargs["data"] = to_body(body, content_type="form")

        logger.debug("%s %s", method, path)
        response = await self._http.request(method, path.lstrip("/"), **kwargs)
        self._raise_for_status(response, method, path)
        return self._decode(response, raw=raw)

    async def get(self, path: str, *, query: Optional[Mapping[str, Any]] = None, raw: bool = False) -> Any:
        return await self.request("GET", path, query=query, raw=raw)

    async def post(self, path: str, *, query=None, body=None, content_type: ContentType = "form", raw: bool = False) -> Any:
        return await self.request("POST", path, query=query, body=body, content_type=content_type, raw=raw)

    async def put(self, path: str, *, query=None, body=None, content_type: ContentType = "form", raw: bool = False) -> Any:
        return await self.request("PUT", path, query=query, body=body, content_type=content_type, raw=raw)

    async def patch(self, path: str, *, query=None, body=None, content_type: ContentType = "form", raw: bool = False) -> Any:
        return await self.request("PATCH", path, query=query, body=body, content_type=content_type, raw=raw)

    async def delete(self, path: str, *, query=None, body=None, content_type: ContentType = "form") -> Any:
        return await self.request("DELETE", path, query=query, body=body, content_type=content_type)

    async def probe(self, path: str) -> int:
        """Issue a GET and return only the status code (no error raised)."""
        response = await self._http.get(path.lstrip("/"))
        return response.status_code

    async def graphql(self, query: str, variables: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Run a GraphQL query against ``/api/graphql`` and return its ``data``.

        Raises:
            GitLabAPIError: On HTTP errors, or when GraphQL reports errors and
                returns no data
        """
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = dict(variables)

        response = await self._http.post(self._settings.graphql_url, json=payload)
        self._raise_for_status(response, "POST", "graphql")
        result = response.json()

        errors = result.get("errors")
        if errors and not result.get("data"):
            details = "; ".join(str(err.get("message", err)) for err in errors)
            raise GitLabAPIError(response.status_code, "GraphQL Error", details)
        return clean_gids(result.get("data") or {})

    def _raise_for_status(self, response: httpx.Response, method: str, path: str) -> None:
        if response.status_code < 400:
            return
        details = extract_error_message(response)
        logger.info(
            "GitLab %s %s failed with %s%s",
            method,
            path,
            response.status_code,
            f": {details}" if details else "",
        )
        raise GitLabAPIError(response.status_code, response.reason_phrase, details)

    @staticmethod
    def _decode(response: httpx.Response, *, raw: bool) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        content_type = response.headers.get("content-type", "")
        if "json" not in content_type:
            return response.text
        data = response.json()
        return data if raw else clean_gids(data)
