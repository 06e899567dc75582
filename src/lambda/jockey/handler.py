"""
Jockey API Lambda Handler
Song submissions, votes, games, and the Spotify connection for mxtp leagues.
"""

import json
import logging
import os
import uuid

from botocore.exceptions import ClientError

from bouncer.router import Bouncer, GET, OPTIONS, POST
from common.auth import auth_middleware
from common.request import json_body, query, redacted, request_method
from common.response import error, ok, preflight, redirect
from jockey import spotify
from mxtpdb.db import DB, InvalidIdError, ItemNotFoundError, empty_song, empty_votes

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

logger = logging.getLogger()
logger.setLevel(logging.INFO)

JOCKEY_BASE_PATH = os.environ.get("JOCKEY_BASE_PATH", "/.netlify/functions/jockey")

_database: DB | None = None


def get_db() -> DB:
    """Table handle, reused across warm invocations."""
    global _database
    if _database is None:
        _database = DB.connect()
    return _database


def _new_id() -> str:
    return str(uuid.uuid4())


def _require(params: dict, *names: str) -> dict | None:
    """Return an error response when a path parameter is missing."""
    for name in names:
        if not params.get(name):
            logger.error("Parameter '%s' not found", name)
            return error("Internal Server Error", 500)
    return None


# ---------------------------------------------------------------------------
# Route: Leagues
# ---------------------------------------------------------------------------

def get_league_handler(params, event):
    err = _require(params, "leagueName")
    if err:
        return err
    try:
        league = get_db().get_league(params["leagueName"])
    except InvalidIdError as exc:
        return error(str(exc))
    except ItemNotFoundError:
        return error("League not found", 404)
    return ok(league)


def get_theme_items_handler(params, event):
    err = _require(params, "leagueName", "themeId")
    if err:
        return err
    try:
        theme_items = get_db().get_theme_items(params["leagueName"], params["themeId"])
    except InvalidIdError as exc:
        return error(str(exc))

    if "ADMIN" not in params:
        for song in theme_items["Songs"]:
            song["UserId"] = ""
        theme_items["Votes"] = []
    return ok(theme_items)


# ---------------------------------------------------------------------------
# Route: Songs and votes
# ---------------------------------------------------------------------------

def post_songs_handler(params, event):
    username = params.get("username")
    if not username:
        return error("Invalid Authorization header")
    err = _require(params, "leagueName", "themeId")
    if err:
        return err

    try:
        data = json_body(event)
    except ValueError:
        logger.exception("Failed to parse song")
        return error("Bad song")
    song_url = data.get("SongUrl", "")
    if not isinstance(song_url, str) or not song_url.strip():
        return error("Bad song")
    song_url = song_url.strip()

    track = None
    try:
        track = spotify.lookup_track(song_url)
    except spotify.SpotifyError:
        logger.exception("Spotify lookup failed for %s", song_url)
    track = track or {}

    try:
        get_db().update_song(
            params["leagueName"],
            params["themeId"],
            username,
            song_url,
            _new_id(),
            spotify_track_id=track.get("SpotifyTrackId", ""),
            song_name=track.get("Name", ""),
            song_artists=track.get("Artists", []),
        )
    except InvalidIdError as exc:
        return error(str(exc))
    return ok({"Message": "Successfully put submission"})


def post_votes_handler(params, event):
    username = params.get("username")
    if not username:
        return error("Invalid Authorization header")
    err = _require(params, "leagueName", "themeId")
    if err:
        return err

    try:
        data = json_body(event)
    except ValueError:
        logger.exception("Failed to parse votes")
        return error("Bad votes")
    submission_ids = data.get("SubmissionIds") or []
    if not isinstance(submission_ids, list) or not all(isinstance(s, str) for s in submission_ids):
        return error("Bad votes")

    try:
        get_db().update_votes(params["leagueName"], params["themeId"], username, submission_ids)
    except InvalidIdError as exc:
        return error(str(exc))
    return ok({"Message": "Successfully updated votes"})


# ---------------------------------------------------------------------------
# Route: Games
# ---------------------------------------------------------------------------

def _player_view(username: str, submit_items: dict, vote_items: dict) -> tuple[dict, dict]:
    """Strip what a player must not see while the game is running."""
    submit_items["Votes"] = []
    own_song = next((s for s in submit_items["Songs"] if s["UserId"] == username), empty_song())
    submit_items["Songs"] = [own_song]

    for song in vote_items["Songs"]:
        song["UserId"] = ""
    own_votes = next((v for v in vote_items["Votes"] if v["UserId"] == username), empty_votes())
    vote_items["Votes"] = [own_votes]
    return submit_items, vote_items


def get_games_handler(params, event):
    username = params.get("username")
    if not username:
        return error("Invalid Authorization header")
    # gameId is ignored for now, the current game is always returned
    err = _require(params, "leagueName", "gameId")
    if err:
        return err

    league_name = params["leagueName"]
    db = get_db()
    try:
        league = db.get_league(league_name)
        submit_items = db.get_theme_items(league_name, league["SubmitTheme"]["Date"])
        vote_items = db.get_theme_items(league_name, league["VoteTheme"]["Date"])
    except InvalidIdError as exc:
        return error(str(exc))
    except ItemNotFoundError:
        return error("League not found", 404)

    if "ADMIN" not in params:
        submit_items, vote_items = _player_view(username, submit_items, vote_items)

    return ok({
        "League": league,
        "SubmitThemeItems": submit_items,
        "VoteThemeItems": vote_items,
    })


# ---------------------------------------------------------------------------
# Route: Spotify
# ---------------------------------------------------------------------------

def authorize_spotify_handler(params, event):
    username = params.get("username")
    if not username:
        return error("Invalid Authorization header")

    state = _new_id()
    try:
        get_db().update_user_state(username, state)
    except InvalidIdError as exc:
        return error(str(exc))
    return redirect(spotify.authorize_url(state))


def callback_handler(params, event):
    qs = query(event)
    if "error" in qs:
        logger.warning("Spotify authorization failed: %s", qs["error"])
        return error(f"Spotify authorization failed: {qs['error']}")

    code = qs.get("code", "")
    state = qs.get("state", "")
    if not code or not state:
        return error("Missing code or state")

    db = get_db()
    try:
        user_id = db.get_user_from_state(state)
    except (InvalidIdError, ItemNotFoundError):
        logger.warning("Unknown oauth state %s", state)
        return error("Unknown state")

    try:
        token = spotify.exchange_code(code)
    except spotify.SpotifyError as exc:
        logger.exception("Token exchange failed for %s", user_id)
        return error(str(exc), 502)

    db.update_spotify_token(token, user_id)
    return ok({"Message": "Spotify connected"})


# ---------------------------------------------------------------------------
# Main router
# ---------------------------------------------------------------------------

def build_router(base_path: str = JOCKEY_BASE_PATH) -> Bouncer:
    b = Bouncer(base_path)
    b.handle(GET, "/leagues/{leagueName}", auth_middleware(get_league_handler))
    b.handle(GET, "/leagues/{leagueName}/themes/{themeId}/items", auth_middleware(get_theme_items_handler))
    b.handle(POST, "/leagues/{leagueName}/themes/{themeId}/songs", auth_middleware(post_songs_handler))
    b.handle(POST, "/leagues/{leagueName}/themes/{themeId}/votes", auth_middleware(post_votes_handler))
    b.handle(GET, "/leagues/{leagueName}/games/{gameId}", auth_middleware(get_games_handler))
    b.handle(GET, "/spotify", auth_middleware(authorize_spotify_handler))
    b.handle(GET, "/callback", auth_middleware(callback_handler))
    return b.freeze()


router = build_router()


def handler(event, context):
    """Lambda entry point for the jockey function."""
    logger.info("Event: %s", json.dumps(redacted(event), default=str))

    # Handle OPTIONS preflight
    if request_method(event) == OPTIONS:
        return preflight()

    try:
        return router.route(event)
    except ClientError:
        logger.exception("DynamoDB request failed")
        return error("Internal Server Error", 500)
    except Exception:
        logger.exception("Unhandled exception")
        return error("Internal server error", 500)
