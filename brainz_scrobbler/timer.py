import datetime
import time
from typing import Callable, Optional


class SingleShotTimer:
    """
    Timer that fires its callback once after an interval. It doesn't run
    on its own thread: the owner calls poll() from its loop and the
    callback runs there.

    >>> fired = []
    >>> t = SingleShotTimer(lambda: fired.append(True))
    >>> t.set_interval(0)
    >>> t.start()
    >>> t.poll()
    True
    >>> t.is_active, fired
    (False, [True])
    """

    def __init__(self, callback: Callable, clock: Callable[[], float] = time.monotonic):
        self._callback = callback
        self._clock = clock
        self._interval_ms = 0
        self._start_time: Optional[float] = None

    @property
    def interval(self) -> int:
        """Interval in milliseconds."""
        return self._interval_ms

    def set_interval(self, msec: int):
        self._interval_ms = max(int(msec), 0)

    def start(self):
        """Arms the timer. Starting an active timer restarts it."""
        self._start_time = self._clock()

    def stop(self):
        self._start_time = None

    @property
    def is_active(self) -> bool:
        return self._start_time is not None

    @property
    def remaining(self) -> datetime.timedelta:
        """
        Time until the timer fires. A timedelta of zero if the timer is due
        or not active.
        """
        if self._start_time is None:
            return datetime.timedelta(seconds=0)

        end = self._start_time + self._interval_ms / 1000
        now = self._clock()
        if end <= now:
            return datetime.timedelta(seconds=0)
        else:
            return datetime.timedelta(seconds=end - now)

    def poll(self) -> bool:
        """
        Fires the callback if the timer is active and due. The timer is
        stopped before the callback runs, so the callback may re-arm it.

        :return: bool. Whether the callback was called
        """
        if not self.is_active or self.remaining > datetime.timedelta(0):
            return False

        self.stop()
        self._callback()
        return True
