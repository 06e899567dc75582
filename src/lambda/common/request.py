"""
Accessors for API Gateway proxy events.
Netlify forwards the v1 shape (httpMethod/path); API Gateway HTTP APIs
send v2 (requestContext.http/rawPath). Both are accepted.
"""

import base64
import json


def request_method(event: dict) -> str:
    method = event.get("httpMethod")
    if not method:
        method = event.get("requestContext", {}).get("http", {}).get("method", "GET")
    return method.upper()


def request_path(event: dict) -> str:
    return event.get("path") or event.get("rawPath") or "/"


def header(event: dict, name: str) -> str:
    """Case-insensitive header lookup."""
    headers = event.get("headers") or {}
    if name in headers:
        return headers[name] or ""
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value or ""
    return ""


def query(event: dict) -> dict:
    """Return query-string parameters."""
    return event.get("queryStringParameters") or {}


def raw_body(event: dict) -> str:
    raw = event.get("body") or ""
    if raw and event.get("isBase64Encoded"):
        raw = base64.b64decode(raw).decode("utf-8")
    return raw


def json_body(event: dict) -> dict:
    """Parse the JSON body. Raises ValueError when it is not a JSON object."""
    raw = raw_body(event)
    if not raw:
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object body")
    return data


REDACTED_HEADERS = ("authorization", "cookie")


def redacted(event: dict) -> dict:
    """Shallow copy of the event with credential headers masked, for logging."""
    copy = dict(event)
    for key in ("headers", "multiValueHeaders"):
        headers = event.get(key)
        if headers:
            copy[key] = {
                k: ("[redacted]" if k.lower() in REDACTED_HEADERS else v)
                for k, v in headers.items()
            }
    return copy
