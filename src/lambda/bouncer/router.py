"""
Bouncer: path router for Lambda proxy events.
Dispatches (method, path) to registered handlers, binding {placeholder}
segments to named parameters.
"""

import logging
from typing import Callable

from common.request import request_method, request_path
from common.response import text

logger = logging.getLogger(__name__)

GET = "GET"
POST = "POST"
PUT = "PUT"
PATCH = "PATCH"
DELETE = "DELETE"
OPTIONS = "OPTIONS"

METHODS = (GET, POST, PUT, PATCH, DELETE)

Handler = Callable[[dict, dict], dict]


class RouteConfigError(ValueError):
    """Raised when a route cannot be registered."""


class _Node:
    __slots__ = ("handler", "children", "param_name", "param_pattern", "param_child")

    def __init__(self):
        self.handler: Handler | None = None
        self.children: dict[str, _Node] = {}
        # Only one placeholder per position
        self.param_name: str | None = None
        self.param_pattern: str = ""
        self.param_child: _Node | None = None


def _placeholder_name(segment: str) -> str | None:
    """Return the parameter name for a `{name}` segment, else None."""
    if len(segment) >= 2 and segment[0] == "{" and segment[-1] == "}":
        return segment[1:-1]
    return None


class Bouncer:
    def __init__(self, base_path: str = ""):
        self.base_path = base_path
        self._roots: dict[str, _Node] = {m: _Node() for m in METHODS}
        self._frozen = False

    def handle(self, method: str, pattern: str, handler: Handler) -> None:
        """
        Register `handler` for `method` at `base_path + pattern`.
        Registering the same method and pattern again replaces the handler.
        A rejected pattern leaves the trie untouched.
        """
        method = method.upper()
        if self._frozen:
            raise RouteConfigError(f"Router is frozen, cannot register {method} {pattern}")
        root = self._roots.get(method)
        if root is None:
            raise RouteConfigError(f"Unsupported method {method!r} for {pattern}")

        full_pattern = self.base_path + pattern
        segments = self._parse(full_pattern)
        self._check_conflicts(root, method, full_pattern, segments)

        node = root
        for segment, name in segments:
            if name is None:
                node = node.children.setdefault(segment, _Node())
                continue
            if node.param_child is None:
                node.param_name = name
                node.param_pattern = full_pattern
                node.param_child = _Node()
            node = node.param_child

        if node.handler is not None:
            logger.warning("Replacing handler for %s %s", method, full_pattern)
        node.handler = handler

    @staticmethod
    def _parse(full_pattern: str) -> list[tuple[str, str | None]]:
        """Split a pattern into (segment, placeholder name or None) pairs."""
        segments = []
        seen: set[str] = set()
        for segment in full_pattern.split("/"):
            name = _placeholder_name(segment)
            if name is not None:
                if not name:
                    raise RouteConfigError(f"Empty placeholder in {full_pattern}")
                if name in seen:
                    raise RouteConfigError(f"Duplicate placeholder {{{name}}} in {full_pattern}")
                seen.add(name)
            segments.append((segment, name))
        return segments

    @staticmethod
    def _check_conflicts(root: _Node, method: str, full_pattern: str, segments) -> None:
        """Walk the existing trie read-only looking for a clashing placeholder."""
        node = root
        for segment, name in segments:
            if name is None:
                node = node.children.get(segment)
            elif node.param_child is None:
                return
            elif node.param_name != name:
                raise RouteConfigError(
                    f"Placeholder {{{name}}} in {method} {full_pattern} conflicts with "
                    f"{{{node.param_name}}} in {method} {node.param_pattern}"
                )
            else:
                node = node.param_child
            if node is None:
                return

    def get(self, pattern: str, handler: Handler) -> None:
        self.handle(GET, pattern, handler)

    def post(self, pattern: str, handler: Handler) -> None:
        self.handle(POST, pattern, handler)

    def freeze(self) -> "Bouncer":
        """Reject further registrations. Returns self for chaining."""
        self._frozen = True
        return self

    def match(self, method: str, path: str) -> tuple[Handler | None, dict[str, str]]:
        """Walk the method's trie; return (handler, params) or (None, {})."""
        root = self._roots.get(method.upper())
        if root is None:
            # Unknown methods are looked up as GET
            logger.warning("Unrecognized method %s for %s, falling back to GET", method, path)
            root = self._roots[GET]

        params: dict[str, str] = {}
        node = root
        for segment in path.split("/"):
            child = node.children.get(segment)
            if child is not None:
                node = child
            elif node.param_child is not None:
                params[node.param_name] = segment
                node = node.param_child
            else:
                return None, {}

        if node.handler is None:
            return None, {}
        return node.handler, params

    def route(self, event: dict) -> dict:
        """Dispatch a Lambda proxy event, answering 404 when nothing matches."""
        method = request_method(event)
        path = request_path(event)
        handler, params = self.match(method, path)
        if handler is None:
            logger.info("No handler found for %s %s", method, path)
            return text(f"No handler found for {method} {path}", 404)
        return handler(params, event)
