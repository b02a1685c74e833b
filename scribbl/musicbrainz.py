import logging
from urllib.parse import urlsplit

import requests

from scribbl.models import UNKNOWN_ARTIST, Album, Track
from scribbl.rate_gate import RateGate

log = logging.getLogger("musicbrainz")

MUSICBRAINZ_URL = "https://musicbrainz.org/ws/2"
COVER_ART_URL = "https://coverartarchive.org"
USER_AGENT = "scribbl-scrobbl/1.0 (https://github.com/scribbl/scribbl-scrobbl)"


class MetadataUnavailable(Exception): ...


class MetadataResolver:
    """
    Barcode -> Album via MusicBrainz.
    Search and release detail go through the rate gate; the cover art archive
    is a separate host and is queried unthrottled and best-effort.
    """

    def __init__(self, rate_gate: RateGate, base_url: str = MUSICBRAINZ_URL,
                 cover_art_url: str = COVER_ART_URL, user_agent: str = USER_AGENT,
                 timeout: float = 10, http: requests.Session | None = None):
        self.base = base_url.rstrip("/")
        self.cover_base = cover_art_url.rstrip("/")
        self.timeout = timeout
        self.rate_gate = rate_gate
        self.origin = urlsplit(self.base).netloc
        self.http = http or requests.Session()
        self.http.headers.update({"User-Agent": user_agent})

    def _get_json(self, path: str, params: dict) -> dict:
        self.rate_gate.acquire(self.origin)
        url = f"{self.base}{path}"
        try:
            resp = self.http.get(url, params=params, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise MetadataUnavailable(f"MusicBrainz request failed: {url}: {e}") from e
        if not isinstance(data, dict):
            raise MetadataUnavailable(f"Unexpected MusicBrainz payload from {url}")
        return data

    def _tracks(self, release: dict) -> tuple[Track, ...]:
        tracks = []
        for medium in release.get("media") or []:
            for t in medium.get("tracks") or []:
                tracks.append(Track.from_length_ms(t["title"], t.get("length"), t["position"]))
        return tuple(tracks)

    def _cover_art(self, release_id: str) -> str | None:
        url = f"{self.cover_base}/release/{release_id}/front-250"
        try:
            # only the final redirected URL is needed, never the image body
            resp = self.http.get(url, timeout=self.timeout, stream=True)
        except Exception as e:
            log.debug("Cover art lookup failed for %s: %s", release_id, e)
            return None
        try:
            if not resp.ok:
                log.debug("No cover art for %s (HTTP %s)", release_id, resp.status_code)
                return None
            return resp.url
        finally:
            resp.close()

    def resolve(self, barcode: str) -> Album | None:
        """Look up a release by barcode. Returns None when nothing matches."""
        found = self._get_json("/release", {"query": f"barcode:{barcode}", "fmt": "json"})
        releases = found.get("releases") or []
        if not releases:
            log.info("No MusicBrainz release for barcode %s", barcode)
            return None

        try:
            # First match wins; MusicBrainz ordering is trusted as-is.
            release = releases[0]
            release_id = release["id"]
            detail = self._get_json(f"/release/{release_id}", {"inc": "recordings", "fmt": "json"})
            tracks = self._tracks(detail)

            credits = release.get("artist-credit") or []
            first = credits[0] if credits else {}
            artist = first.get("name") or UNKNOWN_ARTIST
            artist_id = (first.get("artist") or {}).get("id") or ""
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise MetadataUnavailable(f"Malformed MusicBrainz release for {barcode}: {e}") from e

        album = Album(
            id=release_id,
            title=release.get("title", ""),
            artist=artist,
            artist_id=artist_id,
            release_date=release.get("date") or "",
            barcode=barcode,
            tracks=tracks,
            cover_art_url=self._cover_art(release_id),
        )
        log.info("Resolved %s -> %s — %s (%d tracks)", barcode, album.artist, album.title, len(tracks))
        return album
