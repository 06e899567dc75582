"""
Minimal Spotify Web API client: OAuth authorization-code flow for the
jockey account and catalogue lookups for submitted songs.
"""

import base64
import json
import logging
import os
import re
import urllib.error
import urllib.parse
import urllib.request
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

SPOTIFY_CLIENT_ID = os.environ.get("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.environ.get("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_REDIRECT_URI = os.environ.get(
    "SPOTIFY_REDIRECT_URI", "https://www.mxtp.xyz/.netlify/functions/jockey/callback"
)

AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"
API_URL = "https://api.spotify.com/v1"
SCOPE = "playlist-modify-public"
TIMEOUT = 10

_TRACK_URL_RE = re.compile(r"^https?://open\.spotify\.com/(?:intl-[\w-]+/)?track/([A-Za-z0-9]+)")
_TRACK_URI_RE = re.compile(r"^spotify:track:([A-Za-z0-9]+)$")


class SpotifyError(Exception):
    pass


def authorize_url(state: str) -> str:
    params = urllib.parse.urlencode({
        "client_id": SPOTIFY_CLIENT_ID,
        "response_type": "code",
        "redirect_uri": SPOTIFY_REDIRECT_URI,
        "scope": SCOPE,
        "state": state,
    })
    return f"{AUTHORIZE_URL}?{params}"


def track_id_from_url(song_url: str) -> str | None:
    """Extract the track id from an open.spotify.com link or spotify: URI."""
    song_url = (song_url or "").strip()
    match = _TRACK_URL_RE.match(song_url) or _TRACK_URI_RE.match(song_url)
    return match.group(1) if match else None


def _request_json(req: urllib.request.Request) -> dict:
    try:
        with urllib.request.urlopen(req, timeout=TIMEOUT) as resp:
            return json.loads(resp.read())
    except urllib.error.HTTPError as exc:
        raise SpotifyError(f"Spotify returned {exc.code} for {req.full_url}") from exc
    except (urllib.error.URLError, ValueError) as exc:
        raise SpotifyError(f"Spotify request to {req.full_url} failed: {exc}") from exc


def _token_request(form: dict) -> dict:
    data = urllib.parse.urlencode(form).encode("utf-8")
    credentials = base64.b64encode(f"{SPOTIFY_CLIENT_ID}:{SPOTIFY_CLIENT_SECRET}".encode("utf-8"))
    req = urllib.request.Request(
        TOKEN_URL,
        data=data,
        method="POST",
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": "Basic " + credentials.decode("ascii"),
        },
    )
    payload = _request_json(req)
    if "access_token" not in payload:
        raise SpotifyError("Token response did not contain an access token")

    expiry = datetime.now(timezone.utc) + timedelta(seconds=int(payload.get("expires_in", 3600)))
    return {
        "AccessToken": payload["access_token"],
        "TokenType": payload.get("token_type", "Bearer"),
        "RefreshToken": payload.get("refresh_token", ""),
        "Expiry": expiry.isoformat(),
    }


def exchange_code(code: str) -> dict:
    """Trade an authorization code for a user token."""
    return _token_request({
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": SPOTIFY_REDIRECT_URI,
    })


def client_credentials_token() -> dict:
    """App-only token, enough for catalogue lookups."""
    return _token_request({"grant_type": "client_credentials"})


def get_track(access_token: str, track_id: str) -> dict:
    req = urllib.request.Request(
        f"{API_URL}/tracks/{urllib.parse.quote(track_id)}",
        headers={"Authorization": f"Bearer {access_token}"},
    )
    payload = _request_json(req)
    return {
        "SpotifyTrackId": payload.get("id", track_id),
        "Name": payload.get("name", ""),
        "Artists": [a.get("name", "") for a in payload.get("artists", [])],
    }


def lookup_track(song_url: str) -> dict | None:
    """
    Resolve name and artists for a Spotify song url.
    Returns None when the url is not a Spotify track link.
    """
    track_id = track_id_from_url(song_url)
    if track_id is None:
        return None
    token = client_credentials_token()
    logger.info("Looking up spotify track %s", track_id)
    return get_track(token["AccessToken"], track_id)
