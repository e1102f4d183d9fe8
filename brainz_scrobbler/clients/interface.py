import abc
from typing import Optional

from brainz_scrobbler.metadata import Song
from brainz_scrobbler.settings import ScrobblerConfig


class ScrobblerServiceInterface(abc.ABC):
    @property
    @abc.abstractmethod
    def config(self) -> ScrobblerConfig:
        pass

    @property
    @abc.abstractmethod
    def authenticated(self) -> bool:
        pass

    @abc.abstractmethod
    def reload_settings(self):
        pass

    @abc.abstractmethod
    def tick(self):
        pass

    @abc.abstractmethod
    def update_now_playing(self, song: Song):
        pass

    @abc.abstractmethod
    def clear_playing(self):
        pass

    @abc.abstractmethod
    def scrobble(self, song: Song):
        pass

    @abc.abstractmethod
    def love(self, song: Optional[Song] = None):
        pass

    @abc.abstractmethod
    def authenticate(self):
        pass

    @abc.abstractmethod
    def logout(self):
        pass
