"""
mxtp DynamoDB access.
Everything lives in one table keyed by PK/SK with `#`-joined compound keys:

    league#<name>                  ~meta            league info
    league#<name>                  theme#<date>     theme
    league#<name>#theme#<date>     song#<user>      submitted song
    league#<name>#theme#<date>     votes#<user>     a user's votes
    secret#<user>                  spotify          spotify oauth token
    state#<state>                  state            pending oauth state
"""

import logging
import os

import boto3

logger = logging.getLogger(__name__)

TABLE_NAME = os.environ.get("TABLE_NAME", "mxtp")
AWS_REGION = os.environ.get("AWS_REGION", "us-west-2")

LEAGUE_META_SK = "~meta"
SPOTIFY_TOKEN_SK = "spotify"
STATE_SK = "state"


class InvalidIdError(ValueError):
    """An id can't be used inside a compound key."""


class ItemValidationError(ValueError):
    """A stored item does not have the expected key layout."""


class ItemNotFoundError(LookupError):
    pass


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

def validate_ids(*ids: str) -> None:
    bad_ids = [i for i in ids if "#" in i]
    if bad_ids:
        raise InvalidIdError("Invalid ids: " + ",".join(bad_ids))


def validate_compound_key(key: str, *expected_parts: str) -> None:
    """
    Check that `key` looks like `<part0>#<x>#<part1>#<y>...`.
    Raises ItemValidationError otherwise.
    """
    key_parts = key.split("#")
    if len(key_parts) != len(expected_parts) * 2:
        raise ItemValidationError(f"Expected {key} to have {len(expected_parts) * 2} parts")
    for actual, expected in zip(key_parts[::2], expected_parts):
        if actual != expected:
            raise ItemValidationError(f"Expected {actual} to be {expected}")


def league_pk(league_name: str) -> str:
    validate_ids(league_name)
    return f"league#{league_name}"


def theme_items_pk(league_name: str, theme_id: str) -> str:
    validate_ids(league_name, theme_id)
    return f"league#{league_name}#theme#{theme_id}"


def song_keys(league_name: str, theme_id: str, user_id: str) -> tuple[str, str]:
    validate_ids(user_id)
    return theme_items_pk(league_name, theme_id), f"song#{user_id}"


def votes_keys(league_name: str, theme_id: str, user_id: str) -> tuple[str, str]:
    validate_ids(user_id)
    return theme_items_pk(league_name, theme_id), f"votes#{user_id}"


def spotify_token_keys(user_id: str) -> tuple[str, str]:
    validate_ids(user_id)
    return f"secret#{user_id}", SPOTIFY_TOKEN_SK


def user_state_keys(state: str) -> tuple[str, str]:
    validate_ids(state)
    return f"state#{state}", STATE_SK


# ---------------------------------------------------------------------------
# Item conversion
# ---------------------------------------------------------------------------

def empty_theme() -> dict:
    return {"Name": "", "Description": "", "Date": ""}


def empty_song() -> dict:
    return {
        "UserId": "",
        "SubmissionId": "",
        "SongUrl": "",
        "SpotifyTrackId": "",
        "Name": "",
        "Artists": [],
    }


def empty_votes() -> dict:
    return {"UserId": "", "SubmissionIds": []}


def _compact(item: dict) -> dict:
    """Drop empty attributes; DynamoDB rejects empty sets."""
    return {k: v for k, v in item.items() if v not in ("", None) and v != [] and v != set()}


def to_league(item: dict) -> dict:
    try:
        validate_compound_key(item.get("PK", ""), "league")
    except ItemValidationError as exc:
        raise ItemValidationError(f"Failed to validate League: {exc}") from exc
    if item.get("SK") != LEAGUE_META_SK:
        raise ItemValidationError(
            f"Failed to validate League: Expected SK to be {LEAGUE_META_SK} but was {item.get('SK')}"
        )
    return {
        "Name": item.get("Name", ""),
        "Description": item.get("Description", ""),
        "SpotifyPlaylistId": item.get("SpotifyPlaylistId", ""),
        "SubmitTheme": empty_theme(),
        "VoteTheme": empty_theme(),
    }


def to_theme(item: dict) -> dict:
    try:
        validate_compound_key(item.get("PK", ""), "league")
        validate_compound_key(item.get("SK", ""), "theme")
    except ItemValidationError as exc:
        raise ItemValidationError(f"Failed to validate Theme: {exc}") from exc
    return {
        "Name": item.get("Name", ""),
        "Description": item.get("Description", ""),
        "Date": item.get("Date", ""),
    }


def to_song(item: dict) -> dict:
    try:
        validate_compound_key(item.get("PK", ""), "league", "theme")
        validate_compound_key(item.get("SK", ""), "song")
    except ItemValidationError as exc:
        raise ItemValidationError(f"Failed to validate Song: {exc}") from exc
    return {
        "UserId": item.get("UserId", ""),
        "SubmissionId": item.get("SubmissionId", ""),
        "SongUrl": item.get("SongUrl", ""),
        "SpotifyTrackId": item.get("SpotifyTrackId", ""),
        "Name": item.get("Name", ""),
        "Artists": list(item.get("Artists", [])),
    }


def to_votes(item: dict) -> dict:
    try:
        validate_compound_key(item.get("PK", ""), "league", "theme")
        validate_compound_key(item.get("SK", ""), "votes")
    except ItemValidationError as exc:
        raise ItemValidationError(f"Failed to validate Votes: {exc}") from exc
    return {
        "UserId": item.get("UserId", ""),
        "SubmissionIds": sorted(item.get("SubmissionIds", [])),
    }


def to_token(item: dict) -> dict:
    validate_compound_key(item.get("PK", ""), "secret")
    return {
        "AccessToken": item.get("AccessToken", ""),
        "TokenType": item.get("TokenType", ""),
        "RefreshToken": item.get("RefreshToken", ""),
        "Expiry": item.get("Expiry", ""),
    }


# ---------------------------------------------------------------------------
# DB
# ---------------------------------------------------------------------------

class DB:
    def __init__(self, table):
        self.table = table

    @classmethod
    def connect(cls, table_name: str = TABLE_NAME) -> "DB":
        """
        Open the table. PERSONAL_AWS_* static credentials are used when set
        (Netlify has no IAM role), otherwise the default boto3 chain.
        """
        access_key_id = os.environ.get("PERSONAL_AWS_ACCESS_KEY_ID", "")
        secret_access_key = os.environ.get("PERSONAL_AWS_SECRET_ACCESS_KEY", "")
        kwargs = {"region_name": AWS_REGION}
        if access_key_id and secret_access_key:
            kwargs["aws_access_key_id"] = access_key_id
            kwargs["aws_secret_access_key"] = secret_access_key
        dynamodb = boto3.resource("dynamodb", **kwargs)
        return cls(dynamodb.Table(table_name))

    def _get_one(self, pk: str, sk: str) -> dict | None:
        resp = self.table.get_item(Key={"PK": pk, "SK": sk})
        return resp.get("Item")

    def _query_all(self, pk: str) -> list[dict]:
        query_params = {
            "KeyConditionExpression": "PK = :pk",
            "ExpressionAttributeValues": {":pk": pk},
        }
        items: list[dict] = []
        while True:
            resp = self.table.query(**query_params)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                break
            query_params["ExclusiveStartKey"] = last_key
        return items

    # -- leagues -----------------------------------------------------------

    def get_league(self, league_name: str) -> dict:
        """
        Return the league with its current submit and vote themes.
        "~meta" sorts after every "theme#" key, so a descending query yields
        the league item followed by the two most recent themes.
        """
        pk = league_pk(league_name)
        resp = self.table.query(
            KeyConditionExpression="PK = :pk",
            ExpressionAttributeValues={":pk": pk},
            ScanIndexForward=False,
            Limit=3,
        )
        items = resp.get("Items", [])
        if not items:
            raise ItemNotFoundError(f"No items found for league {league_name}")

        league = to_league(items[0])
        if len(items) > 1:
            league["SubmitTheme"] = to_theme(items[1])
        if len(items) > 2:
            league["VoteTheme"] = to_theme(items[2])
        return league

    # -- theme items ---------------------------------------------------------

    def get_theme_items(self, league_name: str, theme_id: str) -> dict:
        pk = theme_items_pk(league_name, theme_id)
        items = self._query_all(pk)

        # song# items sort before votes#
        songs = []
        idx = 0
        while idx < len(items):
            try:
                songs.append(to_song(items[idx]))
            except ItemValidationError:
                break
            idx += 1
        votes = [to_votes(item) for item in items[idx:]]

        return {"Id": theme_id, "Songs": songs, "Votes": votes}

    def get_song(self, league_name: str, theme_id: str, user_id: str) -> dict:
        pk, sk = song_keys(league_name, theme_id, user_id)
        item = self._get_one(pk, sk)
        if item is None:
            raise ItemNotFoundError(f"No song for {user_id} in {pk}")
        return to_song(item)

    def update_song(
        self,
        league_name: str,
        theme_id: str,
        user_id: str,
        song_url: str,
        submission_id: str,
        spotify_track_id: str = "",
        song_name: str = "",
        song_artists: list[str] | None = None,
    ) -> None:
        pk, sk = song_keys(league_name, theme_id, user_id)
        self.table.put_item(Item=_compact({
            "PK": pk,
            "SK": sk,
            "UserId": user_id,
            "SongUrl": song_url,
            "SubmissionId": submission_id,
            "SpotifyTrackId": spotify_track_id,
            "Name": song_name,
            "Artists": list(song_artists or []),
        }))
        logger.info("Stored submission %s for %s in %s", submission_id, user_id, pk)

    def update_votes(self, league_name: str, theme_id: str, user_id: str, submission_ids: list[str]) -> None:
        pk, sk = votes_keys(league_name, theme_id, user_id)
        self.table.put_item(Item=_compact({
            "PK": pk,
            "SK": sk,
            "UserId": user_id,
            "SubmissionIds": set(submission_ids),
        }))
        logger.info("Stored %d votes for %s in %s", len(set(submission_ids)), user_id, pk)

    # -- spotify -------------------------------------------------------------

    def get_spotify_token(self, user_id: str) -> dict:
        pk, sk = spotify_token_keys(user_id)
        item = self._get_one(pk, sk)
        if item is None:
            raise ItemNotFoundError(f"No spotify token for {user_id}")
        return to_token(item)

    def update_spotify_token(self, token: dict, user_id: str) -> None:
        pk, sk = spotify_token_keys(user_id)
        self.table.put_item(Item=_compact({
            "PK": pk,
            "SK": sk,
            "AccessToken": token.get("AccessToken", ""),
            "TokenType": token.get("TokenType", ""),
            "RefreshToken": token.get("RefreshToken", ""),
            "Expiry": token.get("Expiry", ""),
        }))

    def get_user_from_state(self, state: str) -> str:
        pk, sk = user_state_keys(state)
        item = self._get_one(pk, sk)
        if item is None:
            raise ItemNotFoundError(f"Unknown oauth state {state}")
        return item.get("UserId", "")

    def update_user_state(self, user_id: str, state: str) -> None:
        pk, sk = user_state_keys(state)
        self.table.put_item(Item={"PK": pk, "SK": sk, "UserId": user_id})
