"""Scan a barcode, find the release on MusicBrainz, scrobble it to Last.fm."""

__version__ = "1.0.0"
