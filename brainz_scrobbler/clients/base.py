import abc
import logging
import time
from typing import Callable, Optional

from brainz_scrobbler.clients.interface import ScrobblerServiceInterface
from brainz_scrobbler.metadata import Song
from brainz_scrobbler.signals import Signal

logger = logging.getLogger("brainz_scrobbler")

# streams that played longer than this are scrobbled when they stop
MIN_STREAM_SCROBBLE_SECONDS = 30


class NowPlayingState:
    def __init__(self):
        self.song_playing: Optional[Song] = None
        self.scrobbled = False
        self.timestamp = 0

    def reset(self, song: Optional[Song] = None, timestamp: int = 0):
        self.song_playing = song
        self.scrobbled = False
        self.timestamp = timestamp


class ScrobblerServiceBase(ScrobblerServiceInterface):
    """
    Playback bookkeeping shared by scrobbler services. Subclasses provide the
    network side through send_now_playing(), add_to_cache() and
    start_submit().
    """

    @abc.abstractmethod
    def __init__(self, name: str, clock: Callable[[], float] = time.time):
        self.name = name
        self.now_playing = NowPlayingState()
        self.authentication_complete = Signal()
        self.error_message = Signal()
        self._clock = clock

    def update_now_playing(self, song: Song):
        """
        Finishes the previous song, makes the given song the current one and
        announces it if possible.
        """
        self.check_scrobble_prev_song()
        self.now_playing.reset(song, int(self._clock()))

        if not song.is_metadata_good or not self.authenticated or self.config.offline:
            return

        self.send_now_playing(song)

    def clear_playing(self):
        self.check_scrobble_prev_song()
        self.now_playing.reset()

    def scrobble(self, song: Song):
        """
        Queues a listen for the song. Only the song that is currently playing
        can be scrobbled.
        """
        np = self.now_playing
        if not song.same_track(np.song_playing) or not song.is_metadata_good:
            return

        np.scrobbled = True
        self.add_to_cache(song, np.timestamp)

        if self.config.offline or not self.authenticated:
            return

        self.start_submit(initial=True)

    def check_scrobble_prev_song(self):
        """
        Streams have no end of track, so a stream that played for more than
        MIN_STREAM_SCROBBLE_SECONDS without being scrobbled is scrobbled
        with the time it played as its length.
        """
        np = self.now_playing
        song = np.song_playing
        if song is None:
            return

        duration = max(int(self._clock()) - np.timestamp, 0)
        if (
            not np.scrobbled
            and song.is_metadata_good
            and song.is_stream
            and duration > MIN_STREAM_SCROBBLE_SECONDS
        ):
            logger.info(f"Scrobbling stream {song.artist} - {song.title} ({duration}s)")
            self.scrobble(song.with_length(duration))

    def error(self, message: str, debug: Optional[object] = None):
        """Logs an error and shows it to the user if they want to see errors."""
        logger.error(f"{self.name}: {message}")
        if debug is not None:
            logger.debug(debug)

        if self.config.show_error_dialog:
            self.error_message.emit(f"{self.name} error: {message}")

    @abc.abstractmethod
    def send_now_playing(self, song: Song):  # pragma: no cover
        pass

    @abc.abstractmethod
    def add_to_cache(self, song: Song, timestamp: int):  # pragma: no cover
        pass

    @abc.abstractmethod
    def start_submit(self, initial: bool = False):  # pragma: no cover
        pass
