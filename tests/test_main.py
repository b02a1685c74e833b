import pytest

from scribbl import main as cli
from scribbl.models import Album, ScrobbleRecord, Session, SubmittedTrack, Track
from scribbl.storage import HistoryStore, SessionStore


class _ResolverStub:
    def __init__(self, album):
        self.album = album
        self.barcodes = []

    def resolve(self, barcode):
        self.barcodes.append(barcode)
        return self.album


def test_lookup_not_found_exits_1(monkeypatch, capsys):
    stub = _ResolverStub(None)
    monkeypatch.setattr(cli, "build_resolver", lambda: stub)
    assert cli.main(["lookup", "0000"]) == 1
    assert "No release found" in capsys.readouterr().out
    assert stub.barcodes == ["0000"]


def test_lookup_prints_tracklist(monkeypatch, capsys):
    album = Album(id="x", title="Homogenic", artist="Björk", artist_id="", release_date="1997",
                  barcode="1", tracks=(Track(name="Hunter", position=1, duration=255),))
    monkeypatch.setattr(cli, "build_resolver", lambda: _ResolverStub(album))
    assert cli.main(["lookup", "1"]) == 0
    out = capsys.readouterr().out
    assert "Björk — Homogenic (1997)" in out
    assert "1. Hunter [4:15]" in out


def test_lastfm_commands_require_credentials(monkeypatch):
    monkeypatch.setattr(cli, "LASTFM_API_KEY", None)
    with pytest.raises(SystemExit, match="LASTFM_API_KEY"):
        cli.main(["auth-url"])


def test_auth_url_command(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(cli, "LASTFM_API_KEY", "KEY")
    monkeypatch.setattr(cli, "LASTFM_API_SECRET", "SECRET")
    monkeypatch.setattr(cli, "SESSION_PATH", str(tmp_path / "session.json"))
    monkeypatch.setattr(cli, "HISTORY_PATH", str(tmp_path / "history.json"))
    assert cli.main(["auth-url"]) == 0
    assert capsys.readouterr().out.startswith("https://www.last.fm/api/auth/?api_key=KEY&cb=")


def test_scrobble_without_login_skips_lookup(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(cli, "LASTFM_API_KEY", "KEY")
    monkeypatch.setattr(cli, "LASTFM_API_SECRET", "SECRET")
    monkeypatch.setattr(cli, "SESSION_PATH", str(tmp_path / "session.json"))
    monkeypatch.setattr(cli, "HISTORY_PATH", str(tmp_path / "history.json"))
    stub = _ResolverStub(None)
    monkeypatch.setattr(cli, "build_resolver", lambda: stub)
    assert cli.main(["scrobble", "1"]) == 2
    assert stub.barcodes == []


def _no_credentials(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "LASTFM_API_KEY", None)
    monkeypatch.setattr(cli, "LASTFM_API_SECRET", None)
    monkeypatch.setattr(cli, "SESSION_PATH", str(tmp_path / "session.json"))
    monkeypatch.setattr(cli, "HISTORY_PATH", str(tmp_path / "history.json"))


def test_logout_works_without_credentials(monkeypatch, tmp_path):
    _no_credentials(monkeypatch, tmp_path)
    SessionStore(cli.SESSION_PATH).set(Session(username="rj", session_key="SK"))
    assert cli.main(["logout"]) == 0
    assert SessionStore(cli.SESSION_PATH).get() is None


def test_history_works_without_credentials(monkeypatch, tmp_path, capsys):
    _no_credentials(monkeypatch, tmp_path)
    (tmp_path / "history.json").write_text("[42]", encoding="utf-8")
    album = Album(id="x", title="Homogenic", artist="Björk", artist_id="", release_date="",
                  barcode="1", tracks=(Track(name="Hunter", position=1),))
    HistoryStore(cli.HISTORY_PATH).append(
        ScrobbleRecord(album=album, submitted_at=0, tracks=(SubmittedTrack(name="Hunter", timestamp=0),)))

    assert cli.main(["history"]) == 0
    out = capsys.readouterr().out
    assert "1970-01-01 00:00  Björk — Homogenic (1 tracks)" in out
