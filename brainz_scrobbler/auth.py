import enum
import logging
import time
from typing import Callable, Optional
import urllib.parse
import webbrowser

from brainz_scrobbler.classifier import classify
from brainz_scrobbler.exceptions import (
    BrainzScrobblerNonFatalException,
    ProtocolError,
    SettingsError,
)
from brainz_scrobbler.network import ListenBrainzApi
from brainz_scrobbler.redirect import LocalRedirectServer
from brainz_scrobbler.requests import Reply
from brainz_scrobbler.session import Session, SessionStore
from brainz_scrobbler.settings import ScrobblerConfig
from brainz_scrobbler.signals import Signal
from brainz_scrobbler.timer import SingleShotTimer

logger = logging.getLogger("brainz_scrobbler")

MSEC_PER_SEC = 1000

# seconds until a failed refresh is tried again
REFRESH_RETRY_INTERVAL = 60


class AuthState(enum.Enum):
    LOGGED_OUT = "logged_out"
    AWAITING_REDIRECT = "awaiting_redirect"
    EXCHANGING_CODE = "exchanging_code"
    AUTHENTICATED = "authenticated"
    REFRESH_PENDING = "refresh_pending"


class AuthController:
    """
    OAuth2 authorization-code and refresh-token flows against MusicBrainz.

    authenticate() opens the authorization page in the browser and starts a
    local listener for the redirect. tick() has to be called from the
    owner's loop: it picks up the redirect and fires the refresh countdown.

    Signals:
    - authentication_complete(success: bool, error: str)
    - authenticated(): emitted after authentication_complete on success,
      used to drain the scrobble queue right away
    - open_url_failed(url: str): the browser couldn't be opened and the user
      has to open the url by hand
    """

    def __init__(
        self,
        api: ListenBrainzApi,
        store: SessionStore,
        config: ScrobblerConfig,
        clock: Callable[[], float] = time.time,
        timer_clock: Callable[[], float] = time.monotonic,
        open_url: Callable[[str], bool] = webbrowser.open,
        server_factory: Callable[[], LocalRedirectServer] = LocalRedirectServer,
    ):
        self.api = api
        self.store = store
        self.config = config
        self.state = AuthState.LOGGED_OUT
        self.server: Optional[LocalRedirectServer] = None
        self.refresh_timer = SingleShotTimer(self.request_new_access_token, timer_clock)

        self.authentication_complete = Signal()
        self.authenticated = Signal()
        self.open_url_failed = Signal()

        self._clock = clock
        self._open_url = open_url
        self._server_factory = server_factory
        self._token_request: Optional[str] = None

    @property
    def session(self) -> Session:
        return self.store.session

    @property
    def is_authenticated(self) -> bool:
        return self.session.usable(self._clock())

    def load_session(self) -> Session:
        """
        Loads the persisted session and arms the refresh countdown if there
        is a refresh token.
        """
        session = self.store.load()
        self._settle_state()

        if session.refresh_token:
            interval = session.refresh_interval(self._clock())
            self.refresh_timer.set_interval(interval * MSEC_PER_SEC)
            self.refresh_timer.start()
            logger.debug(f"Refreshing access token in {interval} seconds")

        return session

    def redirect_uri(self) -> str:
        return f"{self.config.redirect_url}:{self.server.port}"

    def authorize_url(self, redirect_uri: str) -> str:
        query = urllib.parse.urlencode(
            {
                "response_type": "code",
                "client_id": self.config.client_id,
                "redirect_uri": redirect_uri,
                "scope": self.config.scopes,
            }
        )
        return f"{self.config.authorize_url}?{query}"

    def authenticate(self):
        """
        Starts the authorization. While a redirect is awaited the existing
        listener is reused.
        """
        if self.server is None:
            server = self._server_factory()
            if not server.listen():
                server.close()
                self._auth_error(server.error)
                return
            self.server = server

        self.state = AuthState.AWAITING_REDIRECT
        url = self.authorize_url(self.redirect_uri())

        if not self._open_url(url):
            logger.warning(f"Please open this URL in your browser: {url}")
            self.open_url_failed.emit(url)

    def tick(self):
        if self.server is not None and self.server.finished.is_set():
            self.redirect_arrived()

        self.refresh_timer.poll()

    def redirect_arrived(self):
        if self.server is None:
            return

        server = self.server
        try:
            if server.error:
                self._auth_error(server.error)
            elif not server.request_url:
                self._auth_error("Received invalid reply from web browser.")
            else:
                url = urllib.parse.urlparse(server.request_url)
                query = urllib.parse.parse_qs(url.query)
                if "error" in query:
                    self._auth_error(query["error"][0])
                elif "code" in query:
                    self.request_access_token(self.redirect_uri(), query["code"][0])
                else:
                    self._auth_error("Redirect missing token code!")
        finally:
            server.close()
            self.server = None

    def request_new_access_token(self):
        self.request_access_token()

    def request_access_token(
        self, redirect_url: Optional[str] = None, code: Optional[str] = None
    ):
        """
        Exchanges an authorization code, or the refresh token if no code is
        given. Does nothing if neither is possible.
        """
        self.refresh_timer.stop()

        if code and redirect_url:
            params = {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_url,
            }
            state = AuthState.EXCHANGING_CODE
        elif self.session.refresh_token and self.config.enabled:
            params = {
                "grant_type": "refresh_token",
                "refresh_token": self.session.refresh_token,
            }
            state = AuthState.REFRESH_PENDING
        else:
            return

        if self._token_request is not None:
            self.api.network.abort(self._token_request)

        self.state = state
        logger.info(f"Requesting access token ({params['grant_type']})")
        self._token_request = self.api.request_token(params, self.on_token_reply)

    def on_token_reply(self, reply: Reply):
        self._token_request = None

        # token replies never log out, only data requests do that
        classification = classify(reply)
        try:
            classification.raise_for_result()
            session = self._session_from_json(classification.json)
            self.store.save(session)
        except (BrainzScrobblerNonFatalException, SettingsError) as e:
            refreshing = self.state == AuthState.REFRESH_PENDING
            self._auth_error(str(e))
            if refreshing and self.session.refresh_token:
                self._retry_refresh()
            return

        if session.expires_in > 0:
            self.refresh_timer.set_interval(session.expires_in * MSEC_PER_SEC)
            self.refresh_timer.start()

        self.state = AuthState.AUTHENTICATED
        self.authentication_complete.emit(True, "")
        logger.info(
            f"Authentication was successful, login expires in {session.expires_in}"
        )
        self.authenticated.emit()

    def _session_from_json(self, data: dict) -> Session:
        """
        :raises brainz_scrobbler.exceptions.ProtocolError: If the reply lacks
            access_token, expires_in or token_type
        """
        if not all(k in data for k in ("access_token", "expires_in", "token_type")):
            raise ProtocolError("Json access_token, expires_in or token_type is missing.")

        try:
            expires_in = int(data["expires_in"])
        except (TypeError, ValueError):
            raise ProtocolError(f"Invalid expires_in: {data['expires_in']!r}")

        return Session(
            access_token=str(data["access_token"]),
            token_type=str(data["token_type"]),
            refresh_token=str(data.get("refresh_token") or self.session.refresh_token),
            expires_in=expires_in,
            login_time=int(self._clock()),
        )

    def logout(self):
        self.refresh_timer.stop()
        if self._token_request is not None:
            self.api.network.abort(self._token_request)
            self._token_request = None
        self.store.clear()
        self.state = AuthState.LOGGED_OUT
        logger.info("Logged out")

    def close(self):
        self.refresh_timer.stop()
        if self.server is not None:
            self.server.close()
            self.server = None

    def _retry_refresh(self):
        self.refresh_timer.set_interval(REFRESH_RETRY_INTERVAL * MSEC_PER_SEC)
        self.refresh_timer.start()
        logger.warning(
            f"Refreshing access token failed, retrying in {REFRESH_RETRY_INTERVAL} seconds"
        )

    def _settle_state(self):
        if self.session.access_token:
            self.state = AuthState.AUTHENTICATED
        else:
            self.state = AuthState.LOGGED_OUT

    def _auth_error(self, error: str):
        logger.error(f"ListenBrainz: {error}")
        self._settle_state()
        self.authentication_complete.emit(False, error)
