"""Tests for project/group namespace resolution."""

import httpx
import pytest

from gitlab_mcp.core.namespace import detect_namespace_type, resolve_namespace

from tests.conftest import request_path


def _existing(*paths):
    """Handler answering 200 for the given API paths and 404 otherwise."""

    def handler(request):
        if request_path(request) in paths:
            return httpx.Response(200, json={"id": 1})
        return httpx.Response(404, json={"message": "404 Not Found"})

    return handler


class TestDetectNamespaceType:
    """Tests for the path-shape heuristic."""

    def test_slash_means_project(self):
        assert detect_namespace_type("group/project") == "projects"

    def test_single_segment_means_group(self):
        assert detect_namespace_type("group") == "groups"


class TestResolveNamespace:
    """Tests for resolve_namespace."""

    @pytest.mark.asyncio
    async def test_project_confirmed_first(self, make_session):
        session, recorder = make_session(_existing("/api/v4/projects/g%2Fp"))
        resolution = await resolve_namespace(session.client, "g/p")

        assert resolution.entity_type == "projects"
        assert resolution.base_path == "projects/g%2Fp"
        assert resolution.is_project
        assert [request_path(r) for r in recorder.requests] == ["/api/v4/projects/g%2Fp"]

    @pytest.mark.asyncio
    async def test_nested_group_found_after_project_miss(self, make_session):
        session, recorder = make_session(_existing("/api/v4/groups/parent%2Fchild"))
        resolution = await resolve_namespace(session.client, "parent/child")

        assert resolution.base_path == "groups/parent%2Fchild"
        assert not resolution.is_project
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_group_probed_first_without_slash(self, make_session):
        session, recorder = make_session(_existing("/api/v4/groups/team"))
        resolution = await resolve_namespace(session.client, "team")

        assert resolution.base_path == "groups/team"
        assert [request_path(r) for r in recorder.requests] == ["/api/v4/groups/team"]

    @pytest.mark.asyncio
    async def test_unconfirmed_falls_back_to_heuristic(self, make_session):
        session, _ = make_session(_existing())
        resolution = await resolve_namespace(session.client, "g/p")
        assert resolution.base_path == "projects/g%2Fp"

    @pytest.mark.asyncio
    async def test_transport_failure_counts_as_unconfirmed(self, make_session):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        session, _ = make_session(handler)
        resolution = await resolve_namespace(session.client, "team")
        assert resolution.base_path == "groups/team"

    @pytest.mark.asyncio
    async def test_repeated_resolution_is_stable(self, make_session):
        session, recorder = make_session(_existing("/api/v4/groups/parent%2Fchild"))

        first = await resolve_namespace(session.client, "parent/child")
        first_requests = len(recorder.requests)
        second = await resolve_namespace(session.client, "parent/child")

        assert second == first
        assert len(recorder.requests) == 2 * first_requests
