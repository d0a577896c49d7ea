"""Tests for the GitLab HTTP client."""

import httpx
import pytest

from gitlab_mcp.config import GitLabSettings
from gitlab_mcp.core.client import (
    GitLabClient,
    clean_gids,
    extract_error_message,
    load_cookie_header,
)
from gitlab_mcp.core.errors import GitLabAPIError
from tests.conftest import API_URL, RecordingTransport, form_body, json_body, request_path


@pytest.fixture
async def client_factory():
    clients = []

    def factory(handler, **settings_kwargs):
        recorder = RecordingTransport(handler)
        settings = GitLabSettings(api_url=API_URL, **settings_kwargs)
        client = GitLabClient(settings, transport=recorder.transport)
        clients.append(client)
        return client, recorder

    yield factory

    for client in clients:
        await client.aclose()


class TestCleanGids:
    """Tests for global ID cleanup."""

    def test_nested_values(self):
        data = {"id": "gid://gitlab/Project/42", "items": [{"id": "gid://gitlab/Ci::Variable/7"}]}
        assert clean_gids(data) == {"id": "42", "items": [{"id": "7"}]}

    def test_plain_strings_untouched(self):
        assert clean_gids("gitlab rocks") == "gitlab rocks"


class TestExtractErrorMessage:
    """Tests for GitLab error body parsing."""

    def _response(self, **kwargs):
        return httpx.Response(400, **kwargs)

    def test_string_message(self):
        assert extract_error_message(self._response(json={"message": "title is missing"})) == "title is missing"

    def test_field_errors(self):
        message = extract_error_message(self._response(json={"message": {"name": ["has already been taken"]}}))
        assert "has already been taken" in message

    def test_value_list(self):
        message = extract_error_message(self._response(json={"message": {"value": ["a", "b"]}}))
        assert message == "a, b"

    def test_error_key(self):
        assert extract_error_message(self._response(json={"error": "invalid_token"})) == "invalid_token"

    def test_non_json(self):
        assert extract_error_message(self._response(text="<html>oops</html>")) is None


class TestLoadCookieHeader:
    """Tests for Netscape cookie file loading."""

    def test_reads_cookies(self, tmp_path):
        cookie_file = tmp_path / "cookies.txt"
        cookie_file.write_text(
            "# Netscape HTTP Cookie File\n"
            ".gitlab.example.com\tTRUE\t/\tTRUE\t0\t_gitlab_session\tabc\n"
            ".gitlab.example.com\tTRUE\t/\tTRUE\t0\tremember_user_token\txyz\n"
        )
        assert load_cookie_header(cookie_file) == "_gitlab_session=abc; remember_user_token=xyz"

    def test_missing_file(self, tmp_path):
        assert load_cookie_header(tmp_path / "absent.txt") is None

    def test_no_cookies(self, tmp_path):
        cookie_file = tmp_path / "cookies.txt"
        cookie_file.write_text("# only comments\n")
        assert load_cookie_header(cookie_file) is None


class TestGitLabClient:
    """Tests for GitLabClient requests."""

    @pytest.mark.asyncio
    async def test_headers(self, client_factory, tmp_path):
        cookie_file = tmp_path / "cookies.txt"
        cookie_file.write_text(".example.com\tTRUE\t/\tTRUE\t0\tsession\ts1\n")
        client, recorder = client_factory(
            lambda r: httpx.Response(200, json={}), token="tok", auth_cookie_path=cookie_file
        )

        await client.get("projects")

        request = recorder.requests[0]
        assert request.headers["Authorization"] == "Bearer tok"
        assert request.headers["Cookie"] == "session=s1"
        assert request.headers["User-Agent"] == "gitlab-mcp"

    @pytest.mark.asyncio
    async def test_get_with_query(self, client_factory):
        client, recorder = client_factory(lambda r: httpx.Response(200, json=[{"id": 1}]))

        result = await client.get("projects/g%2Fp/labels", query={"with_counts": True, "search": None})

        assert result == [{"id": 1}]
        request = recorder.requests[0]
        assert request_path(request) == "/api/v4/projects/g%2Fp/labels"
        assert dict(request.url.params) == {"with_counts": "true"}

    @pytest.mark.asyncio
    async def test_post_json_body(self, client_factory):
        client, recorder = client_factory(lambda r: httpx.Response(201, json={"id": 3}))

        await client.post("projects/1/releases", body={"tag_name": "v1", "milestones": ["m1"]}, content_type="json")

        request = recorder.requests[0]
        assert request.headers["content-type"] == "application/json"
        assert json_body(request) == {"tag_name": "v1", "milestones": ["m1"]}

    @pytest.mark.asyncio
    async def test_post_form_body(self, client_factory):
        client, recorder = client_factory(lambda r: httpx.Response(201, json={}))

        await client.post("projects/1/merge_requests", body={"labels": ["a", "b"], "squash": True})

        request = recorder.requests[0]
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert form_body(request) == {"labels": "a,b", "squash": "true"}

    @pytest.mark.asyncio
    async def test_empty_response_is_none(self, client_factory):
        client, _ = client_factory(lambda r: httpx.Response(204))
        assert await client.delete("projects/1/labels/2") is None

    @pytest.mark.asyncio
    async def test_non_json_returns_text(self, client_factory):
        client, _ = client_factory(
            lambda r: httpx.Response(200, text="plain", headers={"content-type": "text/plain"})
        )
        assert await client.get("projects/1/repository/files/x/raw") == "plain"

    @pytest.mark.asyncio
    async def test_error_raises_api_error(self, client_factory):
        client, _ = client_factory(lambda r: httpx.Response(404, json={"message": "404 Project Not Found"}))

        with pytest.raises(GitLabAPIError) as exc_info:
            await client.get("projects/missing")

        assert exc_info.value.status == 404
        assert exc_info.value.status_text == "Not Found"
        assert exc_info.value.details == "404 Project Not Found"

    @pytest.mark.asyncio
    async def test_probe_returns_status(self, client_factory):
        client, _ = client_factory(lambda r: httpx.Response(404, json={}))
        assert await client.probe("groups/x") == 404

    @pytest.mark.asyncio
    async def test_graphql(self, client_factory):
        client, recorder = client_factory(
            lambda r: httpx.Response(200, json={"data": {"project": {"id": "gid://gitlab/Project/9"}}})
        )

        data = await client.graphql("query { project { id } }")

        assert data == {"project": {"id": "9"}}
        assert str(recorder.requests[0].url) == "https://gitlab.example.com/api/graphql"

    @pytest.mark.asyncio
    async def test_graphql_errors_without_data(self, client_factory):
        client, _ = client_factory(
            lambda r: httpx.Response(200, json={"errors": [{"message": "Field missing"}], "data": None})
        )
        with pytest.raises(GitLabAPIError, match="Field missing"):
            await client.graphql("query { nope }")
