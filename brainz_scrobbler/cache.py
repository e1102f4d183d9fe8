import json
import logging
import sqlite3
from pathlib import Path
from typing import List, Union

from brainz_scrobbler.exceptions import CacheError
from brainz_scrobbler.listen import ListenEvent, Listens
from brainz_scrobbler.metadata import ScrobbleMetadata

logger = logging.getLogger("brainz_scrobbler")

CACHE_FILE = "listenbrainzscrobbler.cache"


def default_cache_path() -> Path:
    return Path.home() / ".cache" / "brainz-scrobbler" / CACHE_FILE


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS listens (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp INTEGER NOT NULL,
    metadata TEXT NOT NULL,
    error INTEGER NOT NULL DEFAULT 0
);
"""


class PendingEventCache:
    """
    Ordered, durable queue of listens that haven't been confirmed by the
    service yet.

    Every event is one row in an SQLite database, so adding and removing
    events only touches the affected rows and a broken row can't take the
    rest of the queue with it. Events are kept in memory in insertion order;
    the database is only read when the cache is opened.

    The "sent" flag only lives in memory. A submission that was in flight
    when the process went away is simply retried after a restart.

    How to use:
    >>> cache = PendingEventCache()
    >>> len(cache)
    0
    """

    def __init__(self, path: Union[str, Path, None] = None):
        """
        :param path: Location of the database file. An in-memory database is
            used if no path is given.
        :raises brainz_scrobbler.exceptions.CacheError: If the database
            can't be opened
        """
        self.path = Path(path) if path is not None else None
        self._events: List[ListenEvent] = []

        try:
            if self.path is not None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.path or ":memory:"))
            self._conn.executescript(_SCHEMA_SQL)
            self._conn.commit()
        except (OSError, sqlite3.Error) as e:
            raise CacheError(f"Failed to open scrobble cache {self.path}: {e}")

        self._load()

    def _load(self):
        """Reads all rows in insertion order, dropping rows that can't be decoded."""
        try:
            rows = self._conn.execute(
                "SELECT id, timestamp, metadata, error FROM listens ORDER BY id"
            ).fetchall()
        except sqlite3.Error as e:
            raise CacheError(f"Failed to read scrobble cache {self.path}: {e}")

        corrupt = []
        for row_id, timestamp, raw_metadata, error in rows:
            try:
                metadata = ScrobbleMetadata.from_dict(json.loads(raw_metadata))
                event = ListenEvent(metadata, int(timestamp), error=bool(error))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping unreadable cache entry {row_id}: {e}")
                corrupt.append(row_id)
                continue
            event.row_id = row_id
            self._events.append(event)

        if corrupt:
            self._delete_rows(corrupt)

        logger.debug(f"Loaded {len(self._events)} pending listens from cache")

    def _delete_rows(self, row_ids: List[int]):
        try:
            with self._conn:
                self._conn.executemany(
                    "DELETE FROM listens WHERE id = ?", [(i,) for i in row_ids]
                )
        except sqlite3.Error as e:
            raise CacheError(f"Failed to remove listens from cache: {e}")

    def __len__(self):
        return len(self._events)

    def count(self) -> int:
        return len(self._events)

    def list(self) -> List[ListenEvent]:
        """Returns the pending events in insertion order."""
        return list(self._events)

    def add(self, metadata: ScrobbleMetadata, timestamp: int) -> ListenEvent:
        """
        Appends a new event. Events are never merged, two plays of the same
        track are two events.

        :raises brainz_scrobbler.exceptions.CacheError: If the event can't
            be written
        """
        event = ListenEvent(metadata, timestamp)
        try:
            with self._conn:
                cursor = self._conn.execute(
                    "INSERT INTO listens (timestamp, metadata) VALUES (?, ?)",
                    (event.timestamp, json.dumps(metadata.to_dict())),
                )
        except sqlite3.Error as e:
            raise CacheError(f"Failed to add listen to cache: {e}")

        event.row_id = cursor.lastrowid
        self._events.append(event)
        return event

    def set_error(self, events: Listens):
        events = [e for e in events if e in self._events]
        for event in events:
            event.error = True
        try:
            with self._conn:
                self._conn.executemany(
                    "UPDATE listens SET error = 1 WHERE id = ?",
                    [(e.row_id,) for e in events],
                )
        except sqlite3.Error as e:
            raise CacheError(f"Failed to mark listens as failed: {e}")

    def clear_sent(self, events: Listens):
        for event in events:
            event.sent = False

    def flush(self, events: Listens):
        """
        Removes the given events. Events that aren't in the cache (anymore)
        are ignored.
        """
        events = [e for e in events if e in self._events]
        if not events:
            return

        self._delete_rows([e.row_id for e in events])
        for event in events:
            self._events.remove(event)

    def close(self):
        self._conn.close()
