"""
Leagues and hello functions: Unit Tests
"""

import base64
import json
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError

from hello.handler import handler as hello_handler
from leagues.handler import handler as leagues_handler
from mxtpdb.db import DB

LEAGUE_ITEMS = [
    {"PK": "league#devetry", "SK": "~meta", "Name": "devetry"},
    {"PK": "league#devetry", "SK": "theme#2020-02-01", "Name": "Covers", "Date": "2020-02-01"},
]


def _league_db(items):
    table = MagicMock()
    table.query.return_value = {"Items": items}
    return DB(table)


class TestLeaguesFunction:
    def test_default_league(self):
        db = _league_db(LEAGUE_ITEMS)
        with patch("leagues.handler.DEFAULT_LEAGUE", "devetry"), \
             patch("leagues.handler.get_db", return_value=db):
            response = leagues_handler({"httpMethod": "GET", "path": "/"}, None)
        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["Name"] == "devetry"
        assert body["SubmitTheme"]["Name"] == "Covers"
        pk = db.table.query.call_args.kwargs["ExpressionAttributeValues"][":pk"]
        assert pk == "league#devetry"

    def test_league_from_query(self):
        db = _league_db([])
        event = {"httpMethod": "GET", "path": "/", "queryStringParameters": {"league": "other"}}
        with patch("leagues.handler.get_db", return_value=db):
            response = leagues_handler(event, None)
        assert response["statusCode"] == 404
        pk = db.table.query.call_args.kwargs["ExpressionAttributeValues"][":pk"]
        assert pk == "league#other"

    def test_backend_failure(self):
        db = _league_db([])
        db.table.query.side_effect = ClientError({"Error": {"Code": "Boom", "Message": "x"}}, "Query")
        with patch("leagues.handler.get_db", return_value=db):
            response = leagues_handler({"httpMethod": "GET", "path": "/"}, None)
        assert response["statusCode"] == 500
        assert json.loads(response["body"]) == {"Message": "Failed to fetch league"}

    def test_table_handle_is_reused(self):
        db = _league_db(LEAGUE_ITEMS)
        with patch("leagues.handler._database", None), \
             patch("leagues.handler.DB.connect", return_value=db) as connect:
            leagues_handler({"httpMethod": "GET", "path": "/"}, None)
            leagues_handler({"httpMethod": "GET", "path": "/"}, None)
        connect.assert_called_once_with()


class TestHelloFunction:
    def test_hello(self):
        response = hello_handler({"body": "world"}, None)
        assert response["statusCode"] == 200
        assert response["body"] == "Hello, world"

    def test_hello_base64_body(self):
        event = {"body": base64.b64encode(b"netlify").decode("ascii"), "isBase64Encoded": True}
        assert hello_handler(event, None)["body"] == "Hello, netlify"
