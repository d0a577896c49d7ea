"""Tests for query-string and body construction."""

from gitlab_mcp.core.query import to_body, to_query


class TestToQuery:
    """Tests for to_query."""

    def test_excludes_and_drops_none(self):
        query = to_query({"action": "list", "state": "active", "search": None}, ["action"])
        assert query == {"state": "active"}

    def test_booleans_rendered_lowercase(self):
        assert to_query({"with_counts": True, "archived": False}) == {
            "with_counts": "true",
            "archived": "false",
        }

    def test_lists_comma_joined(self):
        assert to_query({"labels": ["bug", "ui"]}) == {"labels": "bug,ui"}

    def test_dicts_json_encoded(self):
        assert to_query({"position": {"new_line": 3}}) == {"position": '{"new_line": 3}'}

    def test_numbers_pass_through(self):
        assert to_query({"per_page": 10}) == {"per_page": 10}


class TestToBody:
    """Tests for to_body."""

    def test_json_keeps_structure(self):
        body = to_body({"assets": {"links": [{"name": "bin"}]}, "draft": True})
        assert body == {"assets": {"links": [{"name": "bin"}]}, "draft": True}

    def test_form_flattens(self):
        body = to_body({"labels": ["a", "b"], "squash": True}, content_type="form")
        assert body == {"labels": "a,b", "squash": "true"}

    def test_exclude(self):
        assert to_body({"key": "X", "value": "1"}, exclude=["key"]) == {"value": "1"}
