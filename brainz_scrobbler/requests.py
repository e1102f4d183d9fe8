import enum
import json
from typing import Optional

import requests


class ReplyError(enum.IntEnum):
    """
    Error of a finished request. Values below 100 are transport-level
    errors without a server response, values from 200 on mean the server
    answered with an HTTP error status.
    """

    NO_ERROR = 0
    CONNECTION_REFUSED = 1
    TIMEOUT = 4
    SSL_HANDSHAKE_FAILED = 6
    UNKNOWN_NETWORK_ERROR = 99

    ACCESS_DENIED = 201
    OPERATION_NOT_PERMITTED = 202
    CONTENT_NOT_FOUND = 203
    AUTHENTICATION_REQUIRED = 204
    CONTENT_CONFLICT = 206
    UNKNOWN_CONTENT_ERROR = 299
    INTERNAL_SERVER_ERROR = 401
    SERVICE_UNAVAILABLE = 403
    UNKNOWN_SERVER_ERROR = 499

    @property
    def has_response(self) -> bool:
        return self == ReplyError.NO_ERROR or self >= 200

    @classmethod
    def from_status_code(cls, status_code: int) -> "ReplyError":
        if status_code < 400:
            return cls.NO_ERROR
        elif status_code == 401:
            return cls.AUTHENTICATION_REQUIRED
        elif status_code == 403:
            return cls.ACCESS_DENIED
        elif status_code == 404:
            return cls.CONTENT_NOT_FOUND
        elif status_code == 405:
            return cls.OPERATION_NOT_PERMITTED
        elif status_code == 409:
            return cls.CONTENT_CONFLICT
        elif status_code < 500:
            return cls.UNKNOWN_CONTENT_ERROR
        elif status_code == 500:
            return cls.INTERNAL_SERVER_ERROR
        elif status_code == 503:
            return cls.SERVICE_UNAVAILABLE
        else:
            return cls.UNKNOWN_SERVER_ERROR


class Reply:
    def __init__(
        self,
        status_code: Optional[int] = None,
        error: ReplyError = ReplyError.NO_ERROR,
        error_string: str = "",
        content: bytes = b"",
    ):
        """
        Outcome of one request, successful or not.

        :param status_code: HTTP status code, None if there was no response
        :param error: ReplyError
        :param error_string: Human readable description of the error
        :param content: Raw response body
        """
        self.status_code = status_code
        self.error = error
        self.error_string = error_string
        self.content = content

    def __repr__(self):
        return f"<Reply {self.status_code} {self.error.name}>"

    @classmethod
    def from_response(cls, response: requests.Response) -> "Reply":
        error = ReplyError.from_status_code(response.status_code)
        error_string = ""
        if error != ReplyError.NO_ERROR:
            error_string = (
                f"Error transferring {response.url} - server replied: "
                f"{response.reason or response.status_code}"
            )
        return cls(response.status_code, error, error_string, response.content)

    @property
    def has_response(self) -> bool:
        return self.error.has_response

    def json(self) -> Optional[dict]:
        """
        Parses the body as JSON.

        :return: dict, or None if the body is empty or not a JSON object
        """
        if not self.content:
            return None
        try:
            data = json.loads(self.content)
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        return data


class PostRequest:
    def __init__(
        self,
        url: str,
        data: dict = None,
        json: dict = None,
        headers: dict = None,
        timeout: int = 30,
    ):
        self.url = url
        self.data = data
        self.json = json
        self.headers = headers or {}
        self.timeout = timeout

    def execute(self, http: Optional[requests.Session] = None) -> Reply:
        """
        Executes the request. Exceptions from the requests library are
        turned into a Reply with the matching ReplyError, so this method
        never raises for network problems.

        :param http: requests.Session to use. A plain requests.post is used
            if no session is given.
        :return: Reply
        """
        post = http.post if http is not None else requests.post
        try:
            r = post(
                self.url,
                data=self.data,
                json=self.json,
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            return Reply(None, ReplyError.TIMEOUT, f"Operation timed out: {e}")
        except requests.exceptions.SSLError as e:
            return Reply(None, ReplyError.SSL_HANDSHAKE_FAILED, f"SSL error: {e}")
        except requests.exceptions.ConnectionError as e:
            return Reply(None, ReplyError.CONNECTION_REFUSED, f"Connection error: {e}")
        except requests.exceptions.RequestException as e:
            msg = f"Exception from underlying requests library: {e}"
            return Reply(None, ReplyError.UNKNOWN_NETWORK_ERROR, msg)

        return Reply.from_response(r)
