"""Unit tests for visitor_filter/guard/urls.py — self-URL guard.

Verifies:
  - absolute targets match on host, path and query; scheme ignored
  - a differing query string never matches
  - relative targets match path+query or the bare path
  - non-default ports are significant, default ports are not
  - malformed URLs fall back to substring containment without raising
  - current URL derivation from requests and manual events
"""

from __future__ import annotations

import pytest

from visitor_filter.guard.urls import (
    current_url_from_event,
    current_url_from_request,
    request_domain,
    request_event,
    trusted_origin,
    urls_match,
)


class TestUrlsMatchAbsolute:

    def test_identical(self) -> None:
        assert urls_match("https://example.com/blocked", "https://example.com/blocked") is True

    def test_query_differs_does_not_match(self) -> None:
        assert urls_match("https://example.com/blocked?x=1", "https://example.com/blocked") is False

    def test_scheme_ignored(self) -> None:
        assert urls_match("http://example.com/blocked", "https://example.com/blocked") is True

    def test_host_case_insensitive(self) -> None:
        assert urls_match("https://EXAMPLE.com/blocked", "https://example.com/blocked") is True

    def test_different_host(self) -> None:
        assert urls_match("https://other.com/blocked", "https://example.com/blocked") is False

    def test_different_path(self) -> None:
        assert urls_match("https://example.com/home", "https://example.com/blocked") is False

    def test_same_query(self) -> None:
        assert urls_match("https://example.com/b?x=1", "https://example.com/b?x=1") is True

    def test_empty_path_equals_root(self) -> None:
        assert urls_match("https://example.com/", "https://example.com") is True

    def test_default_port_ignored(self) -> None:
        assert urls_match("https://example.com:443/blocked", "https://example.com/blocked") is True

    def test_non_default_port_significant(self) -> None:
        assert urls_match("https://example.com:8443/blocked", "https://example.com/blocked") is False
        assert urls_match("https://example.com:8443/b", "https://example.com:8443/b") is True


class TestUrlsMatchRelative:

    def test_bare_path(self) -> None:
        assert urls_match("https://example.com/blocked", "/blocked") is True

    def test_path_with_query_matches_bare_target(self) -> None:
        assert urls_match("https://example.com/blocked?x=1", "/blocked") is True

    def test_path_and_query_target(self) -> None:
        assert urls_match("https://example.com/blocked?x=1", "/blocked?x=1") is True
        assert urls_match("https://example.com/blocked?x=2", "/blocked?x=1") is False

    def test_other_path(self) -> None:
        assert urls_match("https://example.com/home", "/blocked") is False


class TestUrlsMatchFallback:

    def test_malformed_port_falls_back_to_substring(self) -> None:
        assert urls_match("https://example.com:notaport/blocked", "https://example.com:notaport/blocked") is True

    def test_malformed_no_substring(self) -> None:
        assert urls_match("https://example.com:notaport/home", "https://example.com:xx/blocked") is False


class TestCurrentUrlFromEvent:

    def test_absolute_event_used_as_is(self) -> None:
        assert current_url_from_event("http://a.test/p?q=1", "b.test") == "http://a.test/p?q=1"

    def test_path_event(self) -> None:
        assert current_url_from_event("/blocked", "example.com") == "https://example.com/blocked"

    def test_leading_slash_added(self) -> None:
        assert current_url_from_event("blocked", "example.com") == "https://example.com/blocked"


class TestCurrentUrlFromRequest:

    def test_scheme_host_path_query(self, make_request) -> None:
        request = make_request(path="/blocked", query="x=1", host="example.com", scheme="https")
        assert current_url_from_request(request) == "https://example.com/blocked?x=1"

    def test_host_header_port_kept(self, make_request) -> None:
        request = make_request(path="/", host="example.com:8080", scheme="http")
        assert current_url_from_request(request) == "http://example.com:8080/"

    @pytest.mark.parametrize("path", ["/a/b", "/caf%C3%A9"])
    def test_raw_path_preferred(self, make_request, path: str) -> None:
        request = make_request(path=path)
        assert current_url_from_request(request) == f"https://example.com{path}"

    def test_malformed_host_does_not_raise(self, make_request) -> None:
        request = make_request(path="/blocked", host="[")
        assert current_url_from_request(request) == "https://[/blocked"
        assert urls_match(current_url_from_request(request), "/blocked") is True


class TestRequestSignals:

    def test_event_path_and_query(self, make_request) -> None:
        assert request_event(make_request(path="/p", query="a=1")) == "/p?a=1"
        assert request_event(make_request(path="/p")) == "/p"

    def test_domain_lowercased_without_port(self, make_request) -> None:
        assert request_domain(make_request(host="Shop.Example.com:8443")) == "shop.example.com"

    def test_domain_of_malformed_host_is_empty(self, make_request) -> None:
        assert request_domain(make_request(host="[")) == ""


class TestTrustedOrigin:

    def test_from_server_not_host_header(self, make_request) -> None:
        request = make_request(host="attacker.test", server=("example.com", 443))
        assert trusted_origin(request) == "https://example.com"

    def test_non_default_port_kept(self, make_request) -> None:
        request = make_request(scheme="http", server=("127.0.0.1", 8000))
        assert trusted_origin(request) == "http://127.0.0.1:8000"

    def test_ipv6_server_bracketed(self, make_request) -> None:
        request = make_request(server=("::1", 8443))
        assert trusted_origin(request) == "https://[::1]:8443"

    def test_unknown_port(self, make_request) -> None:
        assert trusted_origin(make_request(server=("/tmp/app.sock", None))) is None
