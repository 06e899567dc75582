import json
import logging
from decimal import Decimal

logger = logging.getLogger(__name__)

# TODO: restrict origins once the site has a fixed domain list
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS, DELETE",
    "Access-Control-Max-Age": "86400",
}


class ItemEncoder(json.JSONEncoder):
    """Handle DynamoDB Decimal and set types in JSON responses."""

    def default(self, o):
        if isinstance(o, Decimal):
            return int(o) if o == int(o) else float(o)
        if isinstance(o, (set, frozenset)):
            return sorted(o)
        return super().default(o)


def _response(body: str, status: int, content_type: str | None = None, **headers) -> dict:
    all_headers = dict(CORS_HEADERS)
    if content_type:
        all_headers["Content-Type"] = content_type
    all_headers.update(headers)
    return {
        "statusCode": status,
        "headers": all_headers,
        "body": body,
    }


def ok(body, status=200):
    try:
        payload = json.dumps(body, cls=ItemEncoder, indent=4)
    except (TypeError, ValueError):
        logger.exception("Failed to serialize response body")
        return _response("Internal server error", 500, "text/plain")
    return _response(payload, status, "application/json")


def error(message, status=400):
    return ok({"Message": message}, status)


def text(body, status=200):
    return _response(body, status, "text/plain")


def preflight():
    return _response("", 204)


def redirect(location, status=302):
    return _response("", status, Location=location)
