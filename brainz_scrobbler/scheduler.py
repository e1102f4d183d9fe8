import logging
import time
from typing import Callable, List

from brainz_scrobbler.cache import PendingEventCache
from brainz_scrobbler.classifier import Classification, ReplyClassifier, ReplyResult
from brainz_scrobbler.exceptions import CacheError
from brainz_scrobbler.listen import ListenEvent
from brainz_scrobbler.metadata import listen_payload
from brainz_scrobbler.network import ListenBrainzApi
from brainz_scrobbler.requests import Reply
from brainz_scrobbler.settings import ScrobblerConfig
from brainz_scrobbler.signals import Signal
from brainz_scrobbler.timer import SingleShotTimer

logger = logging.getLogger("brainz_scrobbler")

SCROBBLES_PER_REQUEST = 10

# minimum delay between submissions in seconds, after a success and after
# a failed submission respectively
SUBMIT_DELAY_FLOOR = 5
SUBMIT_ERROR_DELAY_FLOOR = 30


class SubmissionScheduler:
    """
    Decides when the pending listens are submitted and keeps at most one
    submission in flight.

    The error signal is emitted with a user-visible message whenever a
    submission fails.
    """

    def __init__(
        self,
        cache: PendingEventCache,
        api: ListenBrainzApi,
        classifier: ReplyClassifier,
        config: Callable[[], ScrobblerConfig],
        ready: Callable[[], bool],
        timer_clock: Callable[[], float] = time.monotonic,
    ):
        """
        :param cache: PendingEventCache the listens are taken from
        :param api: ListenBrainzApi used for the submissions
        :param classifier: ReplyClassifier for the submission replies
        :param config: Callable returning the current ScrobblerConfig
        :param ready: Callable returning whether submitting is possible right
            now (enabled, authenticated and online)
        :param timer_clock: Clock of the delay timer
        """
        self.cache = cache
        self.api = api
        self.classify = classifier
        self._config = config
        self._ready = ready

        self.submitted = False
        self.submit_error = False
        self.timer = SingleShotTimer(self.submit, timer_clock)
        self.error = Signal()

    def tick(self):
        self.timer.poll()

    def start_submit(self, initial: bool = False):
        """
        Submits right away or arms the delay timer.

        An initial submission (a new listen was just added) is sent at once
        if the configured delay is zero and the last submission didn't fail.
        Otherwise the timer is armed, unless it already is, for the
        configured delay but at least SUBMIT_DELAY_FLOOR seconds, or
        SUBMIT_ERROR_DELAY_FLOOR seconds after a failure.
        """
        if self.submitted or self.cache.count() == 0:
            return

        submit_delay = self._config().submit_delay
        if initial and submit_delay <= 0 and not self.submit_error:
            if self.timer.is_active:
                self.timer.stop()
            self.submit()
        elif not self.timer.is_active:
            floor = SUBMIT_ERROR_DELAY_FLOOR if self.submit_error else SUBMIT_DELAY_FLOOR
            delay = max(submit_delay, floor)
            self.timer.set_interval(delay * 1000)
            self.timer.start()
            logger.debug(f"Next submission in {delay} seconds")

    def submit_now(self):
        """Submits right away, regardless of the delay timer."""
        self.timer.stop()
        self.submit()

    def next_batch(self) -> List[ListenEvent]:
        """
        Selects the listens for the next submission and marks them as sent.

        Listens are taken in cache order. Listens already sent are skipped.
        A listen that failed before is only ever sent on its own: the scan
        stops in front of it if other listens were selected already, and
        right after it otherwise.
        """
        batch = []
        for event in self.cache.list():
            if event.sent:
                continue
            if event.error and len(batch) > 0:
                break
            event.sent = True
            batch.append(event)
            if len(batch) >= SCROBBLES_PER_REQUEST or event.error:
                break

        return batch

    def submit(self):
        logger.debug("Submitting scrobbles")

        if self.submitted or not self._ready():
            return

        batch = self.next_batch()
        if not batch:
            return

        config = self._config()
        body = listen_payload(
            "import",
            [(event.timestamp, event.metadata) for event in batch],
            config.prefer_albumartist,
        )

        self.submitted = True
        self.api.submit_listens(body, lambda reply: self.on_submit_reply(reply, batch))

    def on_submit_reply(self, reply: Reply, batch: List[ListenEvent]):
        self.submitted = False

        classification = self.classify(reply)
        try:
            self._handle_result(classification, batch)
        except CacheError as e:
            self.submit_error = True
            self.cache.clear_sent(batch)
            self.error.emit(str(e))

        self.start_submit()

    def _handle_result(self, classification: Classification, batch: List[ListenEvent]):
        """
        :raises brainz_scrobbler.exceptions.CacheError: If the cache can't
            be updated
        """
        if classification.result == ReplyResult.SUCCESS:
            status = classification.json.get("status")
            if status is not None:
                logger.debug(f"Received scrobble status: {status}")
            else:
                logger.debug("Received scrobble reply without status")
            self.cache.flush(batch)
            self.submit_error = False
            logger.info(
                f"Submitted {len(batch)} listens. Length of remaining queue "
                f"is now {self.cache.count()}"
            )
        else:
            self.submit_error = True
            if classification.result == ReplyResult.API_ERROR and len(batch) == 1:
                event = batch[0]
                self.error.emit(
                    f"Unable to scrobble {event.description} because of error: "
                    f"{classification.message}"
                )
                self.cache.flush(batch)
            elif classification.result == ReplyResult.API_ERROR:
                self.error.emit(classification.message)
                self.cache.set_error(batch)
                self.cache.clear_sent(batch)
            else:
                self.error.emit(classification.message)
                self.cache.clear_sent(batch)
            logger.warning(
                f"Submission of {len(batch)} listens failed: {classification.message}"
            )

