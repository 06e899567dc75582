"""
Bouncer router: Unit Tests
"""

import logging
from unittest.mock import MagicMock

import pytest

from bouncer.router import Bouncer, GET, POST, RouteConfigError


def handler_a(params, event):
    return {"statusCode": 200, "body": "hello from A"}


def handler_b(params, event):
    return {"statusCode": 200, "body": "hello from B"}


def param_printer(params, event):
    return {"statusCode": 200, "body": dict(params)}


def _make_event(path, method="GET"):
    return {"httpMethod": method, "path": path, "headers": {}}


class TestRouting:
    def test_simple(self):
        b = Bouncer("")
        b.handle(GET, "/hello", handler_a)
        res = b.route(_make_event("/hello"))
        assert res["body"] == "hello from A"

    def test_handler_called_once_with_empty_params(self):
        spy = MagicMock(return_value={"statusCode": 200, "body": ""})
        b = Bouncer("")
        b.handle(GET, "/hello", spy)
        event = _make_event("/hello")
        b.route(event)
        spy.assert_called_once_with({}, event)

    def test_returns_not_found_without_match(self):
        spy = MagicMock()
        b = Bouncer("")
        b.handle(GET, "/hello", spy)
        res = b.route(_make_event("/world"))
        assert res["statusCode"] == 404
        assert "GET" in res["body"]
        assert "/world" in res["body"]
        spy.assert_not_called()

    def test_base_path(self):
        b = Bouncer("/my/base")
        b.handle(GET, "/hello", handler_a)
        res = b.route(_make_event("/my/base/hello"))
        assert res["body"] == "hello from A"
        assert b.route(_make_event("/hello"))["statusCode"] == 404
        assert b.route(_make_event("/my/hello"))["statusCode"] == 404
        assert b.route(_make_event("/my/base/hello/again"))["statusCode"] == 404

    def test_multiple_handlers(self):
        b = Bouncer("")
        b.handle(GET, "/handlerA", handler_a)
        b.handle(GET, "/handlerB", handler_b)
        assert b.route(_make_event("/handlerA"))["body"] == "hello from A"
        assert b.route(_make_event("/handlerB"))["body"] == "hello from B"

    def test_nested_handlers(self):
        b = Bouncer("")
        b.handle(GET, "/root/handlerA", handler_a)
        assert b.route(_make_event("/root/handlerA"))["body"] == "hello from A"

    def test_prefix_without_handler_is_not_found(self):
        b = Bouncer("")
        b.handle(GET, "/root/handlerA", handler_a)
        assert b.route(_make_event("/root"))["statusCode"] == 404

    def test_trailing_slash_is_a_separate_path(self):
        b = Bouncer("")
        b.handle(GET, "/hello", handler_a)
        assert b.route(_make_event("/hello/"))["statusCode"] == 404

    def test_get_and_post_are_independent(self):
        get_spy = MagicMock(return_value={"statusCode": 200, "body": "get"})
        post_spy = MagicMock(return_value={"statusCode": 200, "body": "post"})
        b = Bouncer("")
        b.handle(GET, "/only-get", get_spy)
        b.handle(POST, "/only-post", post_spy)

        assert b.route(_make_event("/only-get", "POST"))["statusCode"] == 404
        assert b.route(_make_event("/only-post", "GET"))["statusCode"] == 404
        get_spy.assert_not_called()
        post_spy.assert_not_called()

    def test_same_path_different_methods(self):
        b = Bouncer("")
        b.handle(GET, "/thing", handler_a)
        b.handle(POST, "/thing", handler_b)
        assert b.route(_make_event("/thing", "GET"))["body"] == "hello from A"
        assert b.route(_make_event("/thing", "POST"))["body"] == "hello from B"

    def test_last_registration_wins(self):
        b = Bouncer("")
        b.handle(GET, "/hello", handler_a)
        b.handle(GET, "/hello", handler_b)
        assert b.route(_make_event("/hello"))["body"] == "hello from B"

    def test_unknown_method_falls_back_to_get(self):
        b = Bouncer("")
        b.handle(GET, "/hello", handler_a)
        assert b.route(_make_event("/hello", "HEAD"))["body"] == "hello from A"

    def test_lowercase_method(self):
        b = Bouncer("")
        b.handle("post", "/hello", handler_a)
        assert b.route(_make_event("/hello", "post"))["body"] == "hello from A"

    def test_api_gateway_v2_event(self):
        b = Bouncer("")
        b.handle(POST, "/hello", handler_a)
        event = {"requestContext": {"http": {"method": "POST"}}, "rawPath": "/hello"}
        assert b.route(event)["body"] == "hello from A"

    def test_repeated_routing_is_stable(self):
        def mutating(params, event):
            params["username"] = "someone"
            return {"statusCode": 200, "body": dict(params)}

        b = Bouncer("")
        b.handle(GET, "/authors/{authorId}", mutating)
        event = _make_event("/authors/1")
        first = b.route(event)
        second = b.route(event)
        assert first == second
        assert b.match(GET, "/authors/1")[1] == {"authorId": "1"}


class TestParameters:
    def test_simple_parameter(self):
        b = Bouncer("")
        b.handle(GET, "/{paramA}", param_printer)
        assert b.route(_make_event("/hello"))["body"] == {"paramA": "hello"}

    def test_parameter_in_path(self):
        b = Bouncer("")
        b.handle(GET, "/authors/{authorId}", param_printer)
        assert b.route(_make_event("/authors/123"))["body"] == {"authorId": "123"}

    def test_multiple_parameters_in_path(self):
        b = Bouncer("")
        b.handle(GET, "/authors/{authorId}/books/{bookId}", param_printer)
        res = b.route(_make_event("/authors/123/books/666"))
        assert res["body"] == {"authorId": "123", "bookId": "666"}

    def test_rest_use_case(self):
        b = Bouncer("")
        b.handle(GET, "/authors/{authorId}", param_printer)
        b.handle(GET, "/authors/{authorId}/books/{bookId}", param_printer)
        b.handle(GET, "/authors/{authorId}/books/{bookId}/pages/{pageNumber}", param_printer)

        assert b.route(_make_event("/authors/123"))["body"] == {"authorId": "123"}
        assert b.route(_make_event("/authors/123/books/666"))["body"] == {
            "authorId": "123",
            "bookId": "666",
        }
        assert b.route(_make_event("/authors/123/books/666/pages/41"))["body"] == {
            "authorId": "123",
            "bookId": "666",
            "pageNumber": "41",
        }

    def test_placeholder_must_match_following_literal(self):
        b = Bouncer("")
        b.handle(GET, "/authors/{authorId}/books", param_printer)
        assert b.route(_make_event("/authors/123/pages"))["statusCode"] == 404
        assert b.route(_make_event("/authors/123"))["statusCode"] == 404

    def test_literal_beats_placeholder(self):
        b = Bouncer("")
        b.handle(GET, "/users/me", handler_a)
        b.handle(GET, "/users/{id}", param_printer)
        assert b.route(_make_event("/users/me"))["body"] == "hello from A"
        assert b.route(_make_event("/users/42"))["body"] == {"id": "42"}

    def test_empty_segment_binds_empty_value(self):
        b = Bouncer("")
        b.handle(GET, "/a/{x}/b", param_printer)
        assert b.route(_make_event("/a//b"))["body"] == {"x": ""}

    def test_empty_literal_segment(self):
        b = Bouncer("")
        b.handle(GET, "/a//b", handler_a)
        assert b.route(_make_event("/a//b"))["body"] == "hello from A"
        assert b.route(_make_event("/a/b"))["statusCode"] == 404

    def test_parameters_with_base_path(self):
        b = Bouncer("/.netlify/functions/jockey")
        b.handle(GET, "/leagues/{leagueName}", param_printer)
        res = b.route(_make_event("/.netlify/functions/jockey/leagues/devetry"))
        assert res["body"] == {"leagueName": "devetry"}


class TestRegistration:
    def test_conflicting_placeholder_names(self):
        b = Bouncer("")
        b.handle(GET, "/users/{id}", param_printer)
        with pytest.raises(RouteConfigError) as exc_info:
            b.handle(GET, "/users/{name}/posts", param_printer)
        assert "/users/{id}" in str(exc_info.value)
        assert "/users/{name}/posts" in str(exc_info.value)

    def test_same_placeholder_names_per_method_are_independent(self):
        b = Bouncer("")
        b.handle(GET, "/users/{id}", param_printer)
        b.handle(POST, "/users/{name}", param_printer)
        assert b.route(_make_event("/users/1", "POST"))["body"] == {"name": "1"}

    def test_rejected_pattern_leaves_trie_untouched(self):
        b = Bouncer("")
        with pytest.raises(RouteConfigError):
            b.handle(GET, "/p/{a}/q/{a}", param_printer)
        b.handle(GET, "/p/{b}", param_printer)
        assert b.route(_make_event("/p/1"))["body"] == {"b": "1"}
        assert b.route(_make_event("/p/1/q/2"))["statusCode"] == 404

    def test_conflict_found_before_any_node_is_added(self):
        b = Bouncer("")
        b.handle(GET, "/users/{id}/posts", param_printer)
        with pytest.raises(RouteConfigError):
            b.handle(GET, "/users/{name}/posts/{postId}", param_printer)
        assert b.match(GET, "/users/7/posts/9") == (None, {})
        b.handle(GET, "/users/{id}/posts/{postId}", param_printer)
        assert b.route(_make_event("/users/7/posts/9"))["body"] == {"id": "7", "postId": "9"}

    def test_replacement_warning_uses_normalized_method(self, caplog):
        b = Bouncer("")
        b.handle("post", "/hello", handler_a)
        with caplog.at_level(logging.WARNING, logger="bouncer.router"):
            b.handle("post", "/hello", handler_b)
        assert "Replacing handler for POST /hello" in caplog.text

    def test_duplicate_placeholder_in_pattern(self):
        b = Bouncer("")
        with pytest.raises(RouteConfigError):
            b.handle(GET, "/a/{id}/b/{id}", param_printer)

    def test_empty_placeholder(self):
        b = Bouncer("")
        with pytest.raises(RouteConfigError):
            b.handle(GET, "/a/{}", param_printer)

    def test_unsupported_method(self):
        b = Bouncer("")
        with pytest.raises(RouteConfigError):
            b.handle("OPTIONS", "/a", handler_a)

    def test_frozen_router_rejects_routes(self):
        b = Bouncer("")
        b.get("/a", handler_a)
        b.freeze()
        with pytest.raises(RouteConfigError):
            b.post("/b", handler_b)
        assert b.route(_make_event("/a"))["body"] == "hello from A"
