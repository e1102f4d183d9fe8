from concurrent.futures import Future, ThreadPoolExecutor
import logging
import queue
import threading
from typing import Callable, Dict, List, Optional
import uuid

import requests

from brainz_scrobbler.exceptions import SubmissionWithoutListensError
from brainz_scrobbler.requests import PostRequest, Reply
from brainz_scrobbler.settings import ScrobblerConfig
from brainz_scrobbler.version import __version__

logger = logging.getLogger("brainz_scrobbler")

ReplyCallback = Callable[[Reply], None]


class PendingRequest:
    def __init__(self, request: PostRequest, callback: ReplyCallback):
        self.request = request
        self.callback = callback
        self.future: Optional[Future] = None


class Network:
    """
    Runs requests on a small worker pool and hands the replies back to the
    thread that owns this object.

    Requests are identified by a generated id. A finished request is put on
    a completion queue by the worker; its callback only runs when the owner
    calls process_completions(). Aborting a request removes it from the
    pending requests, so a reply that arrives afterwards is dropped without
    running its callback.

    requests.Session isn't documented as thread-safe, so every worker thread
    gets a session of its own from session_factory.
    """

    USER_AGENT = f"brainz-scrobbler/{__version__}"

    def __init__(
        self,
        max_workers: int = 4,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        self._session_factory = session_factory
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="brainz-network",
            initializer=self._init_worker,
        )
        self._completions = queue.Queue()
        self._pending: Dict[str, PendingRequest] = {}
        self._closed = False

    def _init_worker(self):
        http = self._session_factory()
        http.headers["User-Agent"] = self.USER_AGENT
        self._local.http = http
        with self._sessions_lock:
            self._sessions.append(http)

    @property
    def in_flight(self) -> List[str]:
        return list(self._pending)

    def post(self, request: PostRequest, callback: ReplyCallback) -> str:
        """
        Starts the given request.

        :param request: PostRequest object
        :param callback: Called with the Reply once the request finished
            and process_completions() runs
        :return: str. Id of the request, usable with abort()
        """
        if self._closed:
            raise RuntimeError("Network has been closed")

        request_id = uuid.uuid4().hex
        pending = PendingRequest(request, callback)
        self._pending[request_id] = pending
        pending.future = self._executor.submit(self._run, request_id, request)
        return request_id

    def _run(self, request_id: str, request: PostRequest):
        # runs on a worker thread, only its own session and the queue are used
        reply = request.execute(self._local.http)
        self._completions.put((request_id, reply))

    def process_completions(self) -> int:
        """
        Runs the callbacks of all requests that finished since the last call.

        :return: int. Number of callbacks that were run
        """
        handled = 0
        while True:
            try:
                request_id, reply = self._completions.get_nowait()
            except queue.Empty:
                break

            pending = self._pending.pop(request_id, None)
            if pending is None:
                # aborted
                continue

            pending.callback(reply)
            handled += 1

        return handled

    def abort(self, request_id: str):
        pending = self._pending.pop(request_id, None)
        if pending is not None and pending.future is not None:
            pending.future.cancel()

    def abort_all(self):
        for request_id in list(self._pending):
            self.abort(request_id)

    def close(self):
        """Aborts every pending request and shuts down the worker pool."""
        self.abort_all()
        self._closed = True
        self._executor.shutdown(wait=False)
        with self._sessions_lock:
            for http in self._sessions:
                http.close()
            self._sessions.clear()


class ListenBrainzApi:
    """Endpoints of the ListenBrainz and MusicBrainz OAuth services."""

    def __init__(self, network: Network, config: ScrobblerConfig):
        self.network = network
        self.config = config

    def _json_request(self, path: str, body: dict) -> PostRequest:
        return PostRequest(
            f"{self.config.api_url}{path}",
            json=body,
            headers={"Authorization": f"Token {self.config.user_token}"},
        )

    def submit_listens(self, body: dict, callback: ReplyCallback) -> str:
        """
        Posts a submit-listens body (see brainz_scrobbler.metadata.listen_payload).

        :raises brainz_scrobbler.exceptions.SubmissionWithoutListensError:
            If the payload is empty
        """
        if not body.get("payload"):
            raise SubmissionWithoutListensError()

        request = self._json_request("/1/submit-listens", body)
        return self.network.post(request, callback)

    def recording_feedback(
        self, recording_mbid: str, score: int, callback: ReplyCallback
    ) -> str:
        body = {"recording_mbid": recording_mbid, "score": score}
        request = self._json_request("/1/feedback/recording-feedback", body)
        return self.network.post(request, callback)

    def request_token(self, params: dict, callback: ReplyCallback) -> str:
        """
        Posts a form encoded token request. Client id and secret are added
        to the given params.
        """
        data = {
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }
        data.update(params)
        request = PostRequest(
            self.config.access_token_url,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        return self.network.post(request, callback)
