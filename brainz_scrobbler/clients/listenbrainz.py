import logging
import time
from typing import Callable, Optional
import webbrowser

from brainz_scrobbler.auth import AuthController
from brainz_scrobbler.cache import PendingEventCache, default_cache_path
from brainz_scrobbler.classifier import ReplyClassifier
from brainz_scrobbler.clients.base import ScrobblerServiceBase
from brainz_scrobbler.exceptions import CacheError, MissingRecordingIdError
from brainz_scrobbler.metadata import ScrobbleMetadata, Song, listen_payload
from brainz_scrobbler.network import ListenBrainzApi, Network
from brainz_scrobbler.redirect import LocalRedirectServer
from brainz_scrobbler.requests import Reply
from brainz_scrobbler.scheduler import SubmissionScheduler
from brainz_scrobbler.session import SessionStore
from brainz_scrobbler.settings import ScrobblerConfig, Settings

logger = logging.getLogger("brainz_scrobbler")


class ListenBrainzScrobbler(ScrobblerServiceBase):
    """
    Scrobbler for ListenBrainz.

    All state is changed on the thread that calls the public methods and
    tick(). tick() should be called regularly from a main loop: it runs the
    callbacks of finished requests, picks up the OAuth redirect and fires
    the refresh and submission timers.

    How to use:
    >>> settings = Settings()
    >>> settings.set_value("ListenBrainz", "enabled", True)
    >>> scrobbler = ListenBrainzScrobbler(settings, cache=PendingEventCache())
    >>> scrobbler.authenticated
    False
    >>> scrobbler.close()

    Signals:
    - authentication_complete(success: bool, error: str)
    - error_message(message: str), only if show_error_dialog is set
    - open_url_failed(url: str)
    """

    NAME = "ListenBrainz"

    def __init__(
        self,
        settings: Settings,
        network: Optional[Network] = None,
        cache: Optional[PendingEventCache] = None,
        clock: Callable[[], float] = time.time,
        timer_clock: Callable[[], float] = time.monotonic,
        open_url: Callable[[str], bool] = webbrowser.open,
        server_factory: Callable[[], LocalRedirectServer] = LocalRedirectServer,
        **config_overrides,
    ):
        """
        :param settings: Settings the configuration and session are read from
        :param network: Network to use, a new one is created if not given
        :param cache: PendingEventCache to use. If not given, the cache is
            opened at the configured cache_path or the default location.
        :param clock: Wall clock for timestamps and token expiry
        :param timer_clock: Monotonic clock for the timers
        :param open_url: Opens the authorization url in a browser
        :param server_factory: Creates the local redirect listener
        :param config_overrides: Values that take precedence over the
            settings, see brainz_scrobbler.settings.ScrobblerConfig
        """
        super().__init__(self.NAME, clock)

        self.settings = settings
        self._config_overrides = config_overrides
        self._config = ScrobblerConfig.from_settings(settings, **config_overrides)

        self.network = network or Network()
        self.api = ListenBrainzApi(self.network, self._config)
        if cache is None:
            cache = PendingEventCache(self._config.cache_path or default_cache_path())
        self.cache = cache

        self.classifier = ReplyClassifier(on_session_expired=self.logout)
        self.auth = AuthController(
            self.api,
            SessionStore(settings),
            self._config,
            clock=clock,
            timer_clock=timer_clock,
            open_url=open_url,
            server_factory=server_factory,
        )
        self.scheduler = SubmissionScheduler(
            self.cache,
            self.api,
            self.classifier,
            config=lambda: self._config,
            ready=self._ready_to_submit,
            timer_clock=timer_clock,
        )
        self.open_url_failed = self.auth.open_url_failed

        self.auth.authentication_complete.connect(self.authentication_complete.emit)
        self.auth.authenticated.connect(self.scheduler.submit_now)
        self.scheduler.error.connect(self.error)

        self.auth.load_session()

    def __enter__(self) -> "ListenBrainzScrobbler":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def config(self) -> ScrobblerConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def authenticated(self) -> bool:
        return self.auth.is_authenticated and bool(self._config.user_token)

    def _ready_to_submit(self) -> bool:
        return self.enabled and self.authenticated and not self._config.offline

    def reload_settings(self):
        """Takes a new snapshot of the settings."""
        self._config = ScrobblerConfig.from_settings(
            self.settings, **self._config_overrides
        )
        self.api.config = self._config
        self.auth.config = self._config

    def tick(self):
        self.network.process_completions()
        self.auth.tick()
        self.scheduler.tick()

    def authenticate(self):
        self.auth.authenticate()

    def logout(self):
        self.auth.logout()

    def send_now_playing(self, song: Song):
        body = listen_payload(
            "playing_now",
            [(None, ScrobbleMetadata.from_song(song))],
            self._config.prefer_albumartist,
        )
        self.api.submit_listens(body, self.on_now_playing_reply)

    def on_now_playing_reply(self, reply: Reply):
        classification = self.classifier(reply)
        if not classification.ok:
            self.error(classification.message)
            return

        status = classification.json.get("status")
        if status is None:
            self.error("Now playing request is missing status from server.")
        elif str(status).lower() != "ok":
            self.error(f"Received {status} status for now playing.")

    def add_to_cache(self, song: Song, timestamp: int):
        try:
            self.cache.add(ScrobbleMetadata.from_song(song), timestamp)
        except CacheError as e:
            self.error(str(e))

    def start_submit(self, initial: bool = False):
        self.scheduler.start_submit(initial)

    def love(self, song: Optional[Song] = None):
        """
        Sends positive feedback for the given song, or the one playing.
        Songs without a MusicBrainz recording id can't be loved.
        """
        song = song if song is not None else self.now_playing.song_playing
        if song is None or not song.is_valid or not song.is_metadata_good:
            return

        try:
            recording_id = self.recording_id(song)
        except MissingRecordingIdError as e:
            self.error(str(e))
            return

        if not self.authenticated:
            self.error("Not authenticated, please log in to ListenBrainz first.")
            return

        logger.debug(f"Sending love for song {song.artist} {song.album} {song.title}")
        self.api.recording_feedback(recording_id, 1, self.on_love_reply)

    @staticmethod
    def recording_id(song: Song) -> str:
        """
        :raises brainz_scrobbler.exceptions.MissingRecordingIdError: If the
            song has no MusicBrainz recording id
        """
        if not song.musicbrainz_recording_id:
            raise MissingRecordingIdError(song.artist, song.album, song.title)
        return song.musicbrainz_recording_id

    def on_love_reply(self, reply: Reply):
        classification = self.classifier(reply)
        if not classification.ok:
            self.error(classification.message)
            return

        status = classification.json.get("status")
        if status is not None:
            logger.debug(f"Received recording-feedback status: {status}")

    def close(self):
        """Aborts all requests, stops the timers and closes the cache."""
        self.network.close()
        self.scheduler.timer.stop()
        self.auth.close()
        self.cache.close()
