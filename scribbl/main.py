import argparse
import os
import logging
from datetime import datetime, timezone

from scribbl.lastfm_client import ScrobbleClient, LastFMError
from scribbl.musicbrainz import (
    COVER_ART_URL as DEFAULT_COVER_ART_URL,
    MUSICBRAINZ_URL as DEFAULT_MUSICBRAINZ_URL,
    USER_AGENT as DEFAULT_USER_AGENT,
    MetadataResolver, MetadataUnavailable,
)
from scribbl.rate_gate import RateGate
from scribbl.signer import Signer
from scribbl.storage import HistoryStore, SessionStore

# -------------------------
# Configuration via ENV VARS
# -------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LASTFM_API_KEY = os.getenv("LASTFM_API_KEY")
LASTFM_API_SECRET = os.getenv("LASTFM_API_SECRET")
LASTFM_CALLBACK_URL = os.getenv("LASTFM_CALLBACK_URL", "http://localhost:5173/callback")

MUSICBRAINZ_URL = os.getenv("MUSICBRAINZ_URL", DEFAULT_MUSICBRAINZ_URL)
COVER_ART_URL = os.getenv("COVER_ART_URL", DEFAULT_COVER_ART_URL)
USER_AGENT = os.getenv("USER_AGENT", DEFAULT_USER_AGENT)
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))

SESSION_PATH = os.getenv("SESSION_PATH", "/data/session.json")
HISTORY_PATH = os.getenv("HISTORY_PATH", "/data/history.json")
HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "20"))

log = logging.getLogger("scribbl")


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        force=True,  # ensure our config is used even if libs pre-configure logging
    )


def build_resolver() -> MetadataResolver:
    return MetadataResolver(
        RateGate(),
        base_url=MUSICBRAINZ_URL,
        cover_art_url=COVER_ART_URL,
        user_agent=USER_AGENT,
        timeout=HTTP_TIMEOUT,
    )


def build_client() -> ScrobbleClient:
    # Validate Last.fm configuration up-front for clear errors
    if not LASTFM_API_KEY or not LASTFM_API_SECRET:
        raise SystemExit("LASTFM_API_KEY and LASTFM_API_SECRET are required")
    return ScrobbleClient(
        api_key=LASTFM_API_KEY,
        signer=Signer(LASTFM_API_SECRET),
        callback_url=LASTFM_CALLBACK_URL,
        sessions=SessionStore(SESSION_PATH),
        history=HistoryStore(HISTORY_PATH, HISTORY_LIMIT),
        timeout=HTTP_TIMEOUT,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scribbl", description="Scrobble a CD or record by its barcode.")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("auth-url", help="print the Last.fm authorization URL")
    login = sub.add_parser("login", help="exchange the callback token for a session")
    login.add_argument("token")
    lookup = sub.add_parser("lookup", help="show the release for a barcode")
    lookup.add_argument("barcode")
    scrobble = sub.add_parser("scrobble", help="look up a barcode and scrobble the album")
    scrobble.add_argument("barcode")
    sub.add_parser("history", help="list recent submissions")
    sub.add_parser("logout", help="forget the stored session")
    return parser


def _fmt_ts(ts: int) -> str:
    return datetime.fromtimestamp(ts, timezone.utc).strftime("%Y-%m-%d %H:%M")


def _print_album(album) -> None:
    print(f"{album.artist} — {album.title}" + (f" ({album.release_date})" if album.release_date else ""))
    for t in album.tracks:
        print(f"  {t.position:>2}. {t.name} [{t.duration // 60}:{t.duration % 60:02d}]")
    if album.cover_art_url:
        print(f"  cover: {album.cover_art_url}")


def main(argv=None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)

    if args.command == "lookup":
        try:
            album = build_resolver().resolve(args.barcode)
        except MetadataUnavailable as e:
            log.error("Lookup failed: %s", e)
            return 2
        if album is None:
            print(f"No release found for barcode {args.barcode}")
            return 1
        _print_album(album)
        return 0

    # Local-only commands: no Last.fm credentials needed
    if args.command == "logout":
        SessionStore(SESSION_PATH).clear()
        log.info("Logged out")
        return 0
    if args.command == "history":
        for record in HistoryStore(HISTORY_PATH, HISTORY_LIMIT).list():
            print(f"{_fmt_ts(record.submitted_at)}  {record.album.artist} — {record.album.title}"
                  f" ({len(record.tracks)} tracks)")
        return 0

    client = build_client()
    try:
        if args.command == "auth-url":
            print(client.get_auth_url())
        elif args.command == "login":
            session = client.complete_auth(args.token)
            print(f"Logged in as {session.username}")
        elif args.command == "scrobble":
            # Fail fast before spending MusicBrainz requests
            if not client.is_authenticated():
                print("Not logged in; run `scribbl auth-url` then `scribbl login TOKEN`")
                return 2
            album = build_resolver().resolve(args.barcode)
            if album is None:
                print(f"No release found for barcode {args.barcode}")
                return 1
            _print_album(album)
            for sub in client.submit_scrobble(album):
                print(f"  scrobbled {sub.name} @ {_fmt_ts(sub.timestamp)}")
    except (LastFMError, MetadataUnavailable) as e:
        log.error("%s failed: %s", args.command, e)
        return 2
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except KeyboardInterrupt:
        log.info("Shutting down…")
