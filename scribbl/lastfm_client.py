import logging
import time
from typing import Callable
from urllib.parse import urlencode

import requests

from scribbl.models import DEFAULT_TRACK_DURATION, Album, ScrobbleRecord, Session, SubmittedTrack
from scribbl.signer import Signer
from scribbl.storage import HistoryStore, SessionStore

log = logging.getLogger("lastfm")

API_ROOT = "https://ws.audioscrobbler.com/2.0/"
AUTH_URL = "https://www.last.fm/api/auth/"
MAX_SCROBBLES_PER_REQUEST = 50  # track.scrobble batch ceiling

# Custom error classes so callers can branch
class LastFMError(Exception): ...
class NotAuthenticated(LastFMError): ...
class AuthenticationFailed(LastFMError): ...
class ScrobbleFailed(LastFMError): ...
class LastFMNetworkError(LastFMError): ...


def pick_profile_image(images: list | None) -> str | None:
    """Largest usable avatar: extralarge, then large, else None."""
    by_size = {}
    for img in images or []:
        url = img.get("#text") or img.get("url")
        if url:
            by_size[img.get("size")] = url
    return by_size.get("extralarge") or by_size.get("large")


def synthesize_timestamps(album: Album, start: int) -> list[SubmittedTrack]:
    """
    Walk forward from start through the first 50 tracks; each track begins
    when the previous one ends. Tracks past the batch ceiling are dropped.
    """
    out = []
    clock = start
    for track in album.tracks[:MAX_SCROBBLES_PER_REQUEST]:
        out.append(SubmittedTrack(name=track.name, timestamp=clock))
        clock += track.duration or DEFAULT_TRACK_DURATION
    return out


class ScrobbleClient:
    """Last.fm web auth + batch scrobbling over signed requests."""

    def __init__(self, api_key: str, signer: Signer, callback_url: str,
                 sessions: SessionStore, history: HistoryStore, timeout: float = 10,
                 http: requests.Session | None = None, clock: Callable[[], float] = time.time):
        if not api_key:
            raise ValueError("Missing Last.fm API key")
        self.api_key = api_key
        self.signer = signer
        self.callback_url = callback_url
        self.sessions = sessions
        self.history = history
        self.timeout = timeout
        self.http = http or requests.Session()
        self.clock = clock

    # -------- transport --------
    def _call(self, http_method: str, params: dict[str, str], error_cls: type, fallback: str) -> dict:
        signed = self.signer.signed(params)
        try:
            if http_method == "POST":
                resp = self.http.post(API_ROOT, data=signed, timeout=self.timeout)
            else:
                resp = self.http.get(API_ROOT, params=signed, timeout=self.timeout)
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise LastFMNetworkError(f"{params['method']} failed: {e}") from e

        # Last.fm reports API errors in the body, often with a 4xx status
        if not isinstance(data, dict):
            raise LastFMNetworkError(f"{params['method']}: unexpected response")
        if data.get("error"):
            msg = data.get("message") or fallback
            log.warning("%s rejected: code=%s msg=%s", params["method"], data.get("error"), msg)
            raise error_cls(msg)
        return data

    # -------- auth --------
    def get_auth_url(self) -> str:
        return f"{AUTH_URL}?{urlencode({'api_key': self.api_key, 'cb': self.callback_url})}"

    def complete_auth(self, token: str) -> Session:
        """Exchange a web-auth token for a session and store it."""
        data = self._call("GET", {
            "method": "auth.getSession",
            "api_key": self.api_key,
            "token": token,
        }, AuthenticationFailed, "Authentication failed")
        try:
            username = data["session"]["name"]
            key = data["session"]["key"]
        except (KeyError, TypeError) as e:
            raise AuthenticationFailed("Authentication failed") from e

        info = self._call("GET", {
            "method": "user.getInfo",
            "api_key": self.api_key,
            "user": username,
            "sk": key,
        }, AuthenticationFailed, "Authentication failed")
        image = pick_profile_image((info.get("user") or {}).get("image"))

        session = Session(username=username, session_key=key, profile_image_url=image)
        self.sessions.set(session)
        log.info("Authenticated as %s", username)
        return session

    def is_authenticated(self) -> bool:
        return self.sessions.get() is not None

    def logout(self) -> None:
        self.sessions.clear()
        log.info("Logged out")

    # -------- scrobbling --------
    def submit_scrobble(self, album: Album) -> list[SubmittedTrack]:
        """Scrobble up to 50 tracks of album as a listening run starting now."""
        session = self.sessions.get()
        if session is None:
            raise NotAuthenticated("Not authenticated")
        if not album.tracks:
            raise ScrobbleFailed("No tracks to scrobble")

        now = int(self.clock())
        submitted = synthesize_timestamps(album, now)
        if len(album.tracks) > MAX_SCROBBLES_PER_REQUEST:
            log.info("Album has %d tracks; only the first %d are submitted",
                     len(album.tracks), MAX_SCROBBLES_PER_REQUEST)

        params = {
            "method": "track.scrobble",
            "api_key": self.api_key,
            "sk": session.session_key,
        }
        for i, (track, sub) in enumerate(zip(album.tracks, submitted)):
            params[f"artist[{i}]"] = album.artist
            params[f"track[{i}]"] = track.name
            params[f"timestamp[{i}]"] = str(sub.timestamp)
            params[f"album[{i}]"] = album.title
            params[f"duration[{i}]"] = str(track.duration or DEFAULT_TRACK_DURATION)

        self._call("POST", params, ScrobbleFailed, "Scrobble failed")
        self.history.append(ScrobbleRecord(album=album, submitted_at=now, tracks=tuple(submitted)))
        log.info("Scrobbled %d tracks: %s — %s", len(submitted), album.artist, album.title)
        return submitted
