import logging

import coloredlogs

from brainz_scrobbler.metadata import Song  # noqa: F401
from brainz_scrobbler.settings import ScrobblerConfig, Settings  # noqa: F401
from brainz_scrobbler.version import __version__, __version_info__  # noqa: F401
from brainz_scrobbler.clients.listenbrainz import ListenBrainzScrobbler  # noqa: F401


# set up logging
logger = logging.getLogger("brainz_scrobbler")
coloredlogs.install(level="DEBUG", logger=logger)
