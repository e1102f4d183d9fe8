import dataclasses
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from brainz_scrobbler.exceptions import SettingsError

logger = logging.getLogger("brainz_scrobbler")

SETTINGS_GROUP = "ListenBrainz"
SCROBBLER_SETTINGS_GROUP = "Scrobbler"


class Settings:
    """
    Grouped key/value settings. Values are kept in memory and written to a
    JSON file on every change if a path was given.

    How to use:
    >>> s = Settings()
    >>> s.set_value("ListenBrainz", "enabled", True)
    >>> s.value("ListenBrainz", "enabled", False)
    True
    >>> s.value("ListenBrainz", "user_token", "")
    ''
    """

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path) if path is not None else None
        self._groups = {}

        if self.path is not None and self.path.exists():
            self._load()

    def _load(self):
        try:
            with open(self.path, "r", encoding="utf8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise SettingsError(f"Failed to load settings from {self.path}: {e}")

        if not isinstance(data, dict):
            raise SettingsError(f"Settings file {self.path} is not a JSON object")

        self._groups = {
            group: dict(values)
            for group, values in data.items()
            if isinstance(values, dict)
        }

    def sync(self):
        """
        Writes all settings to disk. The file is written to a temporary
        sibling first and moved into place, so a crash never leaves a
        half-written settings file behind.

        :raises brainz_scrobbler.exceptions.SettingsError: If the file
            can't be written
        """
        if self.path is None:
            return

        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf8") as f:
                json.dump(self._groups, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise SettingsError(f"Failed to save settings to {self.path}: {e}")

    def value(self, group: str, key: str, default: Any = None) -> Any:
        return self._groups.get(group, {}).get(key, default)

    def contains(self, group: str, key: str) -> bool:
        return key in self._groups.get(group, {})

    def set_value(self, group: str, key: str, value: Any):
        self._groups.setdefault(group, {})[key] = value
        self.sync()

    def set_values(self, group: str, values: dict):
        """Sets several keys of one group with a single write."""
        self._groups.setdefault(group, {}).update(values)
        self.sync()

    def remove(self, group: str, *keys: str):
        values = self._groups.get(group, {})
        for key in keys:
            values.pop(key, None)
        self.sync()


@dataclasses.dataclass(frozen=True)
class ScrobblerConfig:
    """
    Immutable snapshot of everything the scrobbler reads from the settings.
    A new snapshot is taken whenever the settings are reloaded.
    """

    enabled: bool = False
    user_token: str = ""
    prefer_albumartist: bool = False
    offline: bool = False
    show_error_dialog: bool = False
    submit_delay: int = 0

    api_url: str = "https://api.listenbrainz.org"
    authorize_url: str = "https://musicbrainz.org/oauth2/authorize"
    access_token_url: str = "https://musicbrainz.org/oauth2/token"
    redirect_url: str = "http://localhost"
    client_id: str = "oeAUNwqSQer0er09Fiqi0Q"
    client_secret: str = "ROFghkeQ3F3oPyEhqiyWPA"
    scopes: str = "profile;email;tag;rating;collection;submit_isrc;submit_barcode"
    cache_path: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "ScrobblerConfig":
        """
        Reads a snapshot from the given settings. Keyword arguments override
        the values from the settings (mostly useful for endpoints and the
        cache location).
        """
        values = {
            "enabled": bool(settings.value(SETTINGS_GROUP, "enabled", False)),
            "user_token": str(settings.value(SETTINGS_GROUP, "user_token", "") or ""),
            "prefer_albumartist": bool(
                settings.value(SCROBBLER_SETTINGS_GROUP, "albumartist", False)
            ),
            "offline": bool(settings.value(SCROBBLER_SETTINGS_GROUP, "offline", False)),
            "show_error_dialog": bool(
                settings.value(SCROBBLER_SETTINGS_GROUP, "show_error_dialog", False)
            ),
            "submit_delay": int(
                settings.value(SCROBBLER_SETTINGS_GROUP, "submit_delay", 0) or 0
            ),
        }
        values.update(overrides)
        return cls(**values)

    def replace(self, **changes) -> "ScrobblerConfig":
        return dataclasses.replace(self, **changes)
