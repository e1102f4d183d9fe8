class BrainzScrobblerFatalException(Exception):
    """
    Superclass for Exceptions that can't realistically be recovered from
    during runtime.
    """


class BrainzScrobblerNonFatalException(Exception):
    """
    Superclass for Exceptions that callers may want to handle (e.g. a
    rejected submission by retrying later)
    """


class ProtocolError(BrainzScrobblerNonFatalException):
    """
    Raised when a message from the remote service or the browser redirect
    doesn't have the expected shape, e.g. a redirect without a code or a
    token reply without an access token. Fatal to the single operation but
    never retried automatically.
    """

    pass


class RemoteAPIError(BrainzScrobblerNonFatalException):
    """
    The remote service understood the request and explicitly rejected it.
    The message is the service's own description of the problem.
    """

    pass


class TransportOrServerError(BrainzScrobblerNonFatalException):
    """
    Network failure or a non-200 reply without a structured error body.
    Always considered transient.
    """

    pass


class MissingRecordingIdError(BrainzScrobblerNonFatalException):
    """
    Raised by ListenBrainzScrobbler.recording_id() for a song without a
    MusicBrainz recording id. love() reports it and sends no request.
    """

    def __init__(self, artist: str, album: str, title: str):
        msg = f"Missing MusicBrainz recording ID for {artist} {album} {title}"
        super().__init__(msg)


class UsageException(BrainzScrobblerFatalException):
    """
    Superclass for exceptions that are raised when the brainz_scrobbler is
    used in an unintended way. These exceptions are considered fatal.
    """

    pass


class SettingsError(BrainzScrobblerFatalException):
    """
    Raised by brainz_scrobbler.settings.Settings when the settings file
    can't be read or written. Fatal to the load or save call that hit it.
    """

    pass


class CacheError(BrainzScrobblerFatalException):
    """
    Raised by brainz_scrobbler.cache.PendingEventCache when the backing
    database can't be opened or written.
    """

    pass


class SubmissionWithoutListensError(UsageException):
    """
    Raised by ListenBrainzApi.submit_listens() if called without any listens.
    Calling it with an empty payload wouldn't in itself break anything, but
    it's a sign that the calling code contains an error.
    """

    def __init__(self):
        msg = "ListenBrainzApi.submit_listens() has been called without any listens."
        super().__init__(msg)
