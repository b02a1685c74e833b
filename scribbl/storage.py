"""
Durable client-side storage.

- SessionStore: the one Last.fm session, in a single JSON file.
- HistoryStore: capped log of past submissions (default 20), oldest evicted first.
- Both write atomically (tmp file + os.replace) so a crash can't corrupt them.
"""

from __future__ import annotations
import json
import logging
import os
import threading
from collections import deque
from typing import Any, Deque, Dict, List

from scribbl.models import ScrobbleRecord, Session

log = logging.getLogger("storage")

HISTORY_LIMIT = 20


def _write_json(path: str, data: Any) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    tmp = f"{path}.tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)
    os.replace(tmp, path)


def _read_json(path: str) -> Any:
    if not os.path.isfile(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class SessionStore:
    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def get(self) -> Session | None:
        with self._lock:
            try:
                data = _read_json(self.path)
                return Session.from_dict(data) if data else None
            except (OSError, ValueError, KeyError, TypeError) as e:
                # Unreadable session == logged out
                log.warning("Ignoring unreadable session file %s: %s", self.path, e)
                return None

    def set(self, session: Session) -> None:
        with self._lock:
            _write_json(self.path, session.to_dict())

    def clear(self) -> None:
        with self._lock:
            try:
                os.remove(self.path)
            except FileNotFoundError:
                pass


class HistoryStore:
    def __init__(self, path: str, maxlen: int = HISTORY_LIMIT):
        self.path = path
        self.maxlen = maxlen
        self._lock = threading.Lock()
        # oldest on the left, newest on the right
        self._q: Deque[Dict[str, Any]] = deque(maxlen=maxlen)
        self._load()

    # -------- persistence --------
    def _load(self) -> None:
        try:
            data = _read_json(self.path)
        except (OSError, ValueError) as e:
            log.warning("History file %s unreadable, starting fresh: %s", self.path, e)
            return
        if not isinstance(data, list):
            if data is not None:
                log.warning("History file %s is not a list, starting fresh", self.path)
            return
        for item in data[-self.maxlen:]:
            try:
                # normalize through the model so list() can't trip on it later
                self._q.append(ScrobbleRecord.from_dict(item).to_dict())
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                log.warning("Dropping malformed history entry in %s: %r", self.path, e)

    # -------- public API --------
    def append(self, record: ScrobbleRecord) -> None:
        with self._lock:
            # deque(maxlen) drops the oldest entry once full
            self._q.append(record.to_dict())
            _write_json(self.path, list(self._q))

    def list(self) -> List[ScrobbleRecord]:
        """Records newest first."""
        with self._lock:
            items = list(self._q)
        return [ScrobbleRecord.from_dict(item) for item in reversed(items)]

    def size(self) -> int:
        with self._lock:
            return len(self._q)
