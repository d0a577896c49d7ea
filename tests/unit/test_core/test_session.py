"""Tests for GitLab session and instance detection."""

import httpx
import pytest

from gitlab_mcp.core.errors import ConnectionNotInitializedError
from gitlab_mcp.core.session import InstanceInfo, tier_from_features, tier_from_plan
from tests.conftest import json_body, request_path


def _instance(version_response, graphql_response):
    def handler(request):
        if request_path(request) == "/api/v4/version":
            return version_response
        if request_path(request) == "/api/graphql":
            return graphql_response
        return httpx.Response(404)

    return handler


def _licensed(license_data, features_data):
    """GraphQL handler answering the license query and the group features query."""

    def handler(request):
        if request_path(request) == "/api/v4/version":
            return httpx.Response(200, json={"version": "16.0.0"})
        if "currentLicense" in json_body(request)["query"]:
            return httpx.Response(200, json={"data": license_data})
        return httpx.Response(200, json={"data": features_data})

    return handler


def _group(epics=True, work_items=()):
    return {
        "epicsEnabled": epics,
        "iterationCadences": {"nodes": []},
        "workItemTypes": {"nodes": [{"name": name} for name in work_items]},
    }


class TestTierFromPlan:
    """Tests for license plan mapping."""

    @pytest.mark.parametrize(
        "plan,tier",
        [
            ("ultimate", "ultimate"),
            ("gold", "ultimate"),
            ("Premium", "premium"),
            ("silver", "premium"),
            ("starter", "free"),
            (None, "free"),
        ],
    )
    def test_mapping(self, plan, tier):
        assert tier_from_plan(plan) == tier


class TestTierFromFeatures:
    """Tests for feature-based tier inference."""

    @pytest.mark.parametrize(
        "group,tier",
        [
            (None, "free"),
            (_group(epics=False, work_items=["Objective"]), "free"),
            (_group(work_items=["Issue", "Task"]), "premium"),
            (_group(work_items=["Issue", "Key Result"]), "ultimate"),
            (_group(work_items=["REQUIREMENT"]), "ultimate"),
        ],
    )
    def test_mapping(self, group, tier):
        assert tier_from_features(group) == tier


class TestGitLabSession:
    """Tests for GitLabSession."""

    @pytest.mark.asyncio
    async def test_instance_info_before_initialize(self, make_session):
        session, _ = make_session(lambda r: httpx.Response(200, json={}))
        assert not session.is_initialized
        with pytest.raises(ConnectionNotInitializedError):
            session.instance_info

    @pytest.mark.asyncio
    async def test_initialize_detects_version_and_tier(self, make_session):
        session, _ = make_session(
            _instance(
                httpx.Response(200, json={"version": "16.4.1-ee", "revision": "abc"}),
                httpx.Response(200, json={"data": {"currentLicense": {"plan": "premium"}}}),
            )
        )

        info = await session.initialize()

        assert info == InstanceInfo(version="16.4.1-ee", tier="premium")
        assert session.is_initialized
        assert session.instance_info is info

    @pytest.mark.asyncio
    async def test_detection_failures_fall_back(self, make_session):
        session, _ = make_session(
            _instance(httpx.Response(401, json={"message": "401 Unauthorized"}), httpx.Response(500))
        )

        info = await session.initialize()

        assert info == InstanceInfo(version="unknown", tier="free")

    @pytest.mark.asyncio
    async def test_missing_license_is_free(self, make_session):
        session, _ = make_session(
            _instance(
                httpx.Response(200, json={"version": "15.0.0"}),
                httpx.Response(200, json={"data": {"currentLicense": None}}),
            )
        )
        info = await session.initialize()
        assert info.tier == "free"

    @pytest.mark.asyncio
    async def test_paid_license_skips_feature_detection(self, make_session):
        session, recorder = make_session(_licensed({"currentLicense": {"plan": "ultimate"}}, {}))

        info = await session.initialize()

        assert info.tier == "ultimate"
        assert len([r for r in recorder.requests if request_path(r) == "/api/graphql"]) == 1

    @pytest.mark.asyncio
    async def test_free_license_falls_back_to_first_group_features(self, make_session):
        session, recorder = make_session(
            _licensed({"currentLicense": {"plan": "free"}}, {"groups": {"nodes": [_group()]}})
        )

        info = await session.initialize()

        assert info.tier == "premium"
        features_query = json_body(recorder.requests[-1])
        assert "groups(first: 1)" in features_query["query"]
        assert "variables" not in features_query

    @pytest.mark.asyncio
    async def test_license_query_error_uses_configured_group(self, make_session, gitlab_settings):
        gitlab_settings.tier_group = "team"

        def handler(request):
            if request_path(request) == "/api/v4/version":
                return httpx.Response(200, json={"version": "16.0.0"})
            if "currentLicense" in json_body(request)["query"]:
                errors = [{"message": "Field 'currentLicense' doesn't exist on type 'Query'"}]
                return httpx.Response(200, json={"errors": errors})
            return httpx.Response(200, json={"data": {"group": _group(work_items=["Objective"])}})

        session, recorder = make_session(handler)

        info = await session.initialize()

        assert info.tier == "ultimate"
        assert json_body(recorder.requests[-1])["variables"] == {"fullPath": "team"}

    @pytest.mark.asyncio
    async def test_no_visible_group_is_free(self, make_session):
        session, _ = make_session(_licensed({"currentLicense": None}, {"groups": {"nodes": []}}))

        info = await session.initialize()

        assert info.tier == "free"

    @pytest.mark.asyncio
    async def test_set_instance_info(self, make_session):
        info = InstanceInfo(version="17.0.0", tier="ultimate")
        session, _ = make_session(lambda r: httpx.Response(200, json={}), instance=info)
        assert session.instance_info == info
