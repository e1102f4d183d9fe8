import logging
import time
from typing import Optional

from brainz_scrobbler.settings import SETTINGS_GROUP, Settings

logger = logging.getLogger("brainz_scrobbler")

# lower bound for the refresh countdown in seconds
MIN_REFRESH_INTERVAL = 6

SESSION_KEYS = ("access_token", "expires_in", "token_type", "refresh_token", "login_time")


class Session:
    def __init__(
        self,
        access_token: str = "",
        token_type: str = "",
        refresh_token: str = "",
        expires_in: int = -1,
        login_time: int = 0,
    ):
        self.access_token = access_token
        self.token_type = token_type
        self.refresh_token = refresh_token
        self.expires_in = expires_in
        self.login_time = login_time

    def __repr__(self):
        return (
            f"<Session {self.token_type or 'no token'} expires_in={self.expires_in} "
            f"login_time={self.login_time} refresh={bool(self.refresh_token)}>"
        )

    @property
    def is_empty(self) -> bool:
        return not self.access_token and not self.refresh_token

    def remaining(self, now: Optional[float] = None) -> int:
        """
        Seconds until the access token expires. Negative if it already has.

        >>> Session("token", expires_in=3600, login_time=1000).remaining(now=1600)
        3000
        """
        now = time.time() if now is None else now
        return int(self.expires_in - (now - self.login_time))

    def usable(self, now: Optional[float] = None) -> bool:
        """
        Whether the access token may be used. Tokens without a known
        lifetime (expires_in <= 0) are usable until the service rejects them.
        """
        if not self.access_token:
            return False
        if self.expires_in <= 0:
            return True
        return self.remaining(now) > 0

    def refresh_interval(self, now: Optional[float] = None) -> int:
        """
        Seconds until the token should be refreshed, never less than
        MIN_REFRESH_INTERVAL.

        >>> Session("token", expires_in=3600, login_time=0).refresh_interval(now=7200)
        6
        """
        return max(self.remaining(now), MIN_REFRESH_INTERVAL)


class SessionStore:
    """Loads, saves and clears the OAuth session in the settings."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.session = Session()

    def load(self) -> Session:
        """
        :raises brainz_scrobbler.exceptions.SettingsError: If the settings
            can't be read
        """
        s = self.settings
        self.session = Session(
            access_token=s.value(SETTINGS_GROUP, "access_token", "") or "",
            token_type=s.value(SETTINGS_GROUP, "token_type", "") or "",
            refresh_token=s.value(SETTINGS_GROUP, "refresh_token", "") or "",
            expires_in=int(s.value(SETTINGS_GROUP, "expires_in", -1) or -1),
            login_time=int(s.value(SETTINGS_GROUP, "login_time", 0) or 0),
        )
        return self.session

    def save(self, session: Session):
        """
        :raises brainz_scrobbler.exceptions.SettingsError: If the settings
            can't be written
        """
        self.session = session
        self.settings.set_values(
            SETTINGS_GROUP,
            {
                "access_token": session.access_token,
                "expires_in": session.expires_in,
                "token_type": session.token_type,
                "refresh_token": session.refresh_token,
                "login_time": session.login_time,
            },
        )

    def clear(self):
        self.session = Session()
        self.settings.remove(SETTINGS_GROUP, *SESSION_KEYS)
