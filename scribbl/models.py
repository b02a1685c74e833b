from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

DEFAULT_TRACK_DURATION = 180  # seconds, when the source has no length
UNKNOWN_ARTIST = "Unknown Artist"


# -------------------------
# Release metadata
# -------------------------
@dataclass(frozen=True)
class Track:
    name: str
    position: int
    duration: int = DEFAULT_TRACK_DURATION  # seconds

    @classmethod
    def from_length_ms(cls, name: str, length_ms: int | None, position: int) -> "Track":
        """Build a track from a millisecond length, substituting the default when unknown."""
        duration = int(length_ms) // 1000 if length_ms else DEFAULT_TRACK_DURATION
        return cls(name=name, position=position, duration=duration)


@dataclass(frozen=True)
class Album:
    id: str
    title: str
    artist: str
    artist_id: str
    release_date: str
    barcode: str
    tracks: tuple[Track, ...] = ()
    cover_art_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["tracks"] = [asdict(t) for t in self.tracks]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Album":
        return cls(
            id=data["id"],
            title=data["title"],
            artist=data["artist"],
            artist_id=data.get("artist_id", ""),
            release_date=data.get("release_date", ""),
            barcode=data.get("barcode", ""),
            tracks=tuple(Track(**t) for t in data.get("tracks", [])),
            cover_art_url=data.get("cover_art_url"),
        )


# -------------------------
# Last.fm side
# -------------------------
@dataclass(frozen=True)
class Session:
    username: str
    session_key: str
    profile_image_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Session":
        return cls(
            username=data["username"],
            session_key=data["session_key"],
            profile_image_url=data.get("profile_image_url"),
        )


@dataclass(frozen=True)
class SubmittedTrack:
    name: str
    timestamp: int  # unix seconds


@dataclass(frozen=True)
class ScrobbleRecord:
    """One successful submission, as kept in the history log."""

    album: Album
    submitted_at: int
    tracks: tuple[SubmittedTrack, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "album": self.album.to_dict(),
            "submitted_at": self.submitted_at,
            "tracks": [asdict(t) for t in self.tracks],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScrobbleRecord":
        return cls(
            album=Album.from_dict(data["album"]),
            submitted_at=int(data["submitted_at"]),
            tracks=tuple(SubmittedTrack(name=t["name"], timestamp=int(t["timestamp"]))
                         for t in data.get("tracks", [])),
        )
