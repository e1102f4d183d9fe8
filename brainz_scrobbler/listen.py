from typing import Iterable, Optional

from brainz_scrobbler.metadata import ScrobbleMetadata


class ListenEvent:
    def __init__(
        self,
        metadata: ScrobbleMetadata,
        timestamp: int,
        sent: bool = False,
        error: bool = False,
        row_id: Optional[int] = None,
    ):
        """
        Creates a ListenEvent. Instances are normally created by
        PendingEventCache.add() which also assigns the row_id.

        :param metadata: ScrobbleMetadata of the played track
        :param timestamp: Epoch seconds when playback started
        :param sent: True while the event is part of a submission in flight
        :param error: True if the service rejected the event in a batch and
            it has to be retried on its own
        :param row_id: Identifier of the event in the backing store
        """
        self.metadata = metadata
        self.timestamp = int(timestamp)
        self.sent = sent
        self.error = error
        self.row_id = row_id

    def __repr__(self):
        flags = "".join(
            flag for flag, on in (("S", self.sent), ("E", self.error)) if on
        )
        return (
            f"<ListenEvent #{self.row_id} {self.metadata.artist!r} - "
            f"{self.metadata.title!r} @{self.timestamp} {flags}>"
        )

    @property
    def description(self) -> str:
        """Album artist and title, for user-visible messages."""
        return f"{self.metadata.effective_albumartist} - {self.metadata.title}"


Listens = Iterable[ListenEvent]
