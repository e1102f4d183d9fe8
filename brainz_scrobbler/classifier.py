import enum
import logging
from typing import Callable, Optional

from brainz_scrobbler.exceptions import RemoteAPIError, TransportOrServerError
from brainz_scrobbler.requests import Reply, ReplyError

logger = logging.getLogger("brainz_scrobbler")

# transport errors that mean the session has expired
SESSION_EXPIRED_ERRORS = (
    ReplyError.ACCESS_DENIED,
    ReplyError.OPERATION_NOT_PERMITTED,
    ReplyError.AUTHENTICATION_REQUIRED,
)


class ReplyResult(enum.Enum):
    SUCCESS = "success"
    API_ERROR = "api_error"
    SERVER_ERROR = "server_error"


class Classification:
    def __init__(
        self,
        result: ReplyResult,
        message: str = "",
        json: Optional[dict] = None,
        session_expired: bool = False,
    ):
        self.result = result
        self.message = message
        self.json = json if json is not None else {}
        self.session_expired = session_expired

    def __repr__(self):
        return f"<Classification {self.result.name}: {self.message!r}>"

    @property
    def ok(self) -> bool:
        return self.result == ReplyResult.SUCCESS

    def raise_for_result(self):
        """
        :raises brainz_scrobbler.exceptions.RemoteAPIError: On API_ERROR
        :raises brainz_scrobbler.exceptions.TransportOrServerError: On
            SERVER_ERROR
        """
        if self.result == ReplyResult.API_ERROR:
            raise RemoteAPIError(self.message)
        elif self.result == ReplyResult.SERVER_ERROR:
            raise TransportOrServerError(self.message)


def classify(reply: Reply) -> Classification:
    """
    Classifies a finished request.

    1. Without a transport error and with status 200 the reply is a
       success, otherwise a server error with the status code or the
       transport error as message.
    2. If the reply carries a JSON body with "error" and
       "error_description", or with "code" and "error", the reply is an API
       error and the message from the body replaces the generic one.
    3. Access denied, operation not permitted and authentication required
       mean the session expired. This is reported regardless of the result.

    >>> classify(Reply(200, content=b'{"status": "ok"}')).result
    <ReplyResult.SUCCESS: 'success'>
    >>> c = classify(Reply(400, ReplyError.UNKNOWN_CONTENT_ERROR, "Bad request",
    ...              b'{"code": 400, "error": "Invalid listen"}'))
    >>> c.result, c.message
    (<ReplyResult.API_ERROR: 'api_error'>, 'Invalid listen (400)')
    """
    result = ReplyResult.SERVER_ERROR
    message = ""

    if reply.error == ReplyError.NO_ERROR:
        if reply.status_code == 200:
            result = ReplyResult.SUCCESS
        else:
            message = f"Received HTTP code {reply.status_code}"
    else:
        message = f"{reply.error_string} ({int(reply.error)})"

    data = None
    session_expired = False
    if reply.has_response:
        data = reply.json()
        if data is not None:
            if "error" in data and "error_description" in data:
                message = str(data["error_description"])
                result = ReplyResult.API_ERROR
            elif "code" in data and "error" in data:
                message = f"{data['error']} ({_as_int(data['code'])})"
                result = ReplyResult.API_ERROR

        session_expired = reply.error in SESSION_EXPIRED_ERRORS

    return Classification(result, message, data, session_expired)


def _as_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class ReplyClassifier:
    """
    classify() plus the logout side effect: whenever a reply says the
    session expired, on_session_expired is called, also for replies that
    end up classified as API errors.
    """

    def __init__(self, on_session_expired: Callable[[], None]):
        self.on_session_expired = on_session_expired

    def __call__(self, reply: Reply) -> Classification:
        classification = classify(reply)
        if classification.session_expired:
            logger.warning("Session is probably expired, logging out")
            self.on_session_expired()
        return classification
