"""
Leagues Lambda Handler
Returns a league with its current submit and vote themes.
"""

import logging
import os

from botocore.exceptions import ClientError

from common.request import query
from common.response import error, ok
from mxtpdb.db import DB, InvalidIdError, ItemNotFoundError

logger = logging.getLogger()
logger.setLevel(logging.INFO)

DEFAULT_LEAGUE = os.environ.get("DEFAULT_LEAGUE", "devetry")

_database: DB | None = None


def get_db() -> DB:
    """Table handle, reused across warm invocations."""
    global _database
    if _database is None:
        _database = DB.connect()
    return _database


def handler(event, context):
    league_name = query(event).get("league") or DEFAULT_LEAGUE
    try:
        league = get_db().get_league(league_name)
    except InvalidIdError as exc:
        return error(str(exc))
    except ItemNotFoundError:
        return error("League not found", 404)
    except ClientError:
        logger.exception("Failed to fetch league %s", league_name)
        return error("Failed to fetch league", 500)
    return ok(league)
