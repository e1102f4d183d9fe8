import itertools
import json
import threading
from typing import Callable, Dict, List, Tuple

from brainz_scrobbler.requests import PostRequest, Reply, ReplyError


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: float = 1000000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeNetwork:
    """
    Stand-in for brainz_scrobbler.network.Network that records requests and
    only runs callbacks when a test delivers a reply, either right away with
    reply() or through process_completions() after complete().
    """

    def __init__(self):
        self.pending: Dict[str, Tuple[PostRequest, Callable]] = {}
        self.posted: List[PostRequest] = []
        self.completions: List[Tuple[str, Reply]] = []
        self.closed = False
        self._ids = itertools.count(1)

    @property
    def in_flight(self) -> List[str]:
        return list(self.pending)

    def post(self, request: PostRequest, callback) -> str:
        request_id = str(next(self._ids))
        self.pending[request_id] = (request, callback)
        self.posted.append(request)
        return request_id

    def last_id(self) -> str:
        return list(self.pending)[-1]

    def reply(self, reply: Reply, request_id: str = None):
        """Runs the callback of the given (or the most recent) request."""
        request_id = request_id or self.last_id()
        request, callback = self.pending.pop(request_id)
        callback(reply)

    def complete(self, reply: Reply, request_id: str = None):
        """Queues a reply that is delivered by the next process_completions()."""
        self.completions.append((request_id or self.last_id(), reply))

    def process_completions(self) -> int:
        handled = 0
        completions, self.completions = self.completions, []
        for request_id, reply in completions:
            if request_id in self.pending:
                self.reply(reply, request_id)
                handled += 1
        return handled

    def abort(self, request_id: str):
        self.pending.pop(request_id, None)

    def abort_all(self):
        self.pending.clear()

    def close(self):
        self.abort_all()
        self.closed = True


class FakeRedirectServer:
    """Redirect listener that never touches a socket."""

    instances = []

    def __init__(self, bind_ok: bool = True):
        self.port = 43210
        self.error = ""
        self.request_url = None
        self.finished = threading.Event()
        self.closed = 0
        self._bind_ok = bind_ok
        FakeRedirectServer.instances.append(self)

    def listen(self) -> bool:
        if not self._bind_ok:
            self.error = "Failed to start local redirect listener: in use"
        return self._bind_ok

    def close(self):
        self.closed += 1

    def redirect(self, query: str):
        self.request_url = f"http://localhost:{self.port}/?{query}"
        self.finished.set()


def json_reply(body: dict, status_code: int = 200, error=None) -> Reply:
    if error is None:
        error = ReplyError.from_status_code(status_code)
    error_string = "" if error == ReplyError.NO_ERROR else f"HTTP {status_code}"
    return Reply(status_code, error, error_string, json.dumps(body).encode("utf-8"))


def ok_reply() -> Reply:
    return json_reply({"status": "ok"})


def api_error_reply(message: str = "Invalid listen", code: int = 400) -> Reply:
    return json_reply({"code": code, "error": message}, status_code=code)


def server_error_reply() -> Reply:
    return Reply(500, ReplyError.INTERNAL_SERVER_ERROR, "Internal Server Error", b"")


def timeout_reply() -> Reply:
    return Reply(None, ReplyError.TIMEOUT, "Operation timed out")
