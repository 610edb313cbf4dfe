"""Tests for request matching predicates."""

import re

import pytest

from reqhook.pipeline import Conditions, InterceptorConfig, RequestView, matches, matches_conditions, matches_pattern
from reqhook.pipeline.matcher import matches_record


class TestMatchesPattern:
    """Test path pattern matching."""

    def test_string_pattern_is_regex_source(self, make_request) -> None:
        assert matches_pattern(make_request("/admin/users"), r"^/admin/\w+$")
        assert not matches_pattern(make_request("/admin/"), r"^/admin/\w+$")

    def test_string_pattern_not_anchored(self, make_request) -> None:
        """A pattern without anchors matches anywhere in the path."""
        assert matches_pattern(make_request("/api/v1/admin/x"), "/admin")

    def test_compiled_pattern(self, make_request) -> None:
        assert matches_pattern(make_request("/Docs"), re.compile("^/docs", re.IGNORECASE))

    def test_or_semantics(self, make_request) -> None:
        patterns = ["/a", "/b"]
        assert matches_pattern(make_request("/a"), patterns)
        assert matches_pattern(make_request("/b"), patterns)
        assert not matches_pattern(make_request("/c"), patterns)

    def test_mixed_pattern_list(self, make_request) -> None:
        patterns = ["^/static", re.compile(r"\.png$")]
        assert matches_pattern(make_request("/img/logo.png"), patterns)
        assert matches_pattern(make_request("/static/app.js"), patterns)
        assert not matches_pattern(make_request("/img/logo.svg"), patterns)

    def test_empty_pattern_list_never_matches(self, make_request) -> None:
        assert not matches_pattern(make_request("/anything"), [])

    def test_query_string_is_not_part_of_path(self, make_request) -> None:
        assert not matches_pattern(make_request("/search?q=admin"), "admin")

    def test_malformed_pattern_raises(self, make_request) -> None:
        with pytest.raises(re.error):
            matches_pattern(make_request("/x"), "([unclosed")


class TestMatchesRecord:
    """Test key/value record matching."""

    def test_exact_string_match(self) -> None:
        assert matches_record({"role": "admin"}, {"role": "admin"})
        assert not matches_record({"role": "administrator"}, {"role": "admin"})

    def test_regex_is_containment(self) -> None:
        assert matches_record({"ua": "Mozilla/5.0 Firefox/120"}, {"ua": re.compile("Firefox")})

    def test_missing_key_fails(self) -> None:
        assert not matches_record({}, {"role": re.compile(".*")})

    def test_empty_value_fails(self) -> None:
        """An empty actual value behaves like an absent one."""
        assert not matches_record({"role": ""}, {"role": ""})
        assert not matches_record({"role": ""}, {"role": re.compile(".*")})

    def test_all_keys_required(self) -> None:
        assert not matches_record({"a": "1"}, {"a": "1", "b": "2"})
        assert matches_record({"a": "1", "b": "2", "c": "3"}, {"a": "1", "b": "2"})

    def test_empty_expectation_is_vacuous(self) -> None:
        assert matches_record({}, {})


class TestMatchesConditions:
    """Test header/query/cookie condition matching."""

    def test_no_conditions(self, make_request) -> None:
        assert matches_conditions(make_request("/"), None)
        assert matches_conditions(make_request("/"), Conditions())

    def test_header_names_case_insensitive(self, make_request) -> None:
        request = make_request("/", headers={"X-Role": "admin"})
        assert matches_conditions(request, Conditions(headers={"x-role": "admin"}))
        assert matches_conditions(request, Conditions(headers={"X-ROLE": "admin"}))

    def test_header_values_case_sensitive(self, make_request) -> None:
        request = make_request("/", headers={"x-role": "Admin"})
        assert not matches_conditions(request, Conditions(headers={"x-role": "admin"}))

    def test_and_across_categories(self, make_request) -> None:
        conditions = Conditions(headers={"x-role": "admin"}, query={"debug": re.compile("^1$")})

        both = make_request("/?debug=1", headers={"x-role": "admin"})
        header_only = make_request("/?debug=0", headers={"x-role": "admin"})
        query_only = make_request("/?debug=1")

        assert matches_conditions(both, conditions)
        assert not matches_conditions(header_only, conditions)
        assert not matches_conditions(query_only, conditions)

    def test_duplicate_query_keys_last_wins(self, make_request) -> None:
        request = make_request("/?variant=a&variant=b")
        assert matches_conditions(request, Conditions(query={"variant": "b"}))
        assert not matches_conditions(request, Conditions(query={"variant": "a"}))

    def test_cookie_regex(self, make_request) -> None:
        conditions = Conditions(cookies={"session": re.compile("^valid-")})

        assert matches_conditions(make_request("/", cookies={"session": "valid-123"}), conditions)
        assert not matches_conditions(make_request("/", cookies={"session": ""}), conditions)
        assert not matches_conditions(make_request("/"), conditions)
        assert not matches_conditions(make_request("/", cookies={"session": "expired-1"}), conditions)

    def test_cookies_parsed_from_header(self) -> None:
        request = RequestView.from_url("/", headers={"Cookie": "session=valid-9; theme=dark"})
        assert matches_conditions(request, Conditions(cookies={"session": re.compile("^valid-"), "theme": "dark"}))

    def test_malformed_cookie_does_not_hide_others(self) -> None:
        request = RequestView.from_url("/", headers={"Cookie": "a@b=1; session=valid-1"})

        assert request.cookies["session"] == "valid-1"
        assert matches_conditions(request, Conditions(cookies={"session": re.compile("^valid-")}))


class TestMatches:
    """Test combined pattern and condition matching."""

    def test_pattern_and_conditions(self, make_request) -> None:
        config = InterceptorConfig(
            id="admin",
            pattern="^/admin",
            conditions=Conditions(headers={"x-role": "admin"}),
        )

        assert matches(make_request("/admin/x", headers={"x-role": "admin"}), config)
        assert not matches(make_request("/admin/x"), config)
        assert not matches(make_request("/public", headers={"x-role": "admin"}), config)

    def test_conditions_from_mapping(self, make_request) -> None:
        config = InterceptorConfig(id="beta", pattern="/", conditions={"query": {"beta": "1"}})

        assert isinstance(config.conditions, Conditions)
        assert matches(make_request("/?beta=1"), config)
        assert not matches(make_request("/"), config)

    def test_accepts_url_string(self) -> None:
        assert matches("/admin?x=1", InterceptorConfig(id="a", pattern="^/admin$"))

    def test_rejects_unknown_request_type(self) -> None:
        with pytest.raises(TypeError):
            matches(42, InterceptorConfig(id="a", pattern="/"))
