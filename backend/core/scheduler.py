"""
Delayed-callback schedulers used for notification timers.

``ThreadingScheduler`` runs callbacks on daemon timer threads.
``ManualScheduler`` keeps a virtual clock that only moves when ``advance``
is called, so timer-driven behaviour can be tested deterministically.
"""
import heapq
import itertools
import logging
import threading

logger = logging.getLogger(__name__)


class ScheduledCall:
    """Handle returned by ``call_later``"""

    def __init__(self, callback, due=None, timer=None):
        self.callback = callback
        self.due = due
        self._timer = timer
        self.cancelled = False

    def cancel(self):
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()


class Scheduler:
    def call_later(self, delay, callback):
        """Run ``callback`` after ``delay`` seconds; returns a ScheduledCall"""
        raise NotImplementedError


class ThreadingScheduler(Scheduler):
    def call_later(self, delay, callback):
        handle = ScheduledCall(callback)

        def run():
            if handle.cancelled:
                return
            try:
                callback()
            except Exception as e:
                logger.error(f"Scheduled callback failed: {str(e)}", exc_info=True)

        timer = threading.Timer(max(delay, 0), run)
        timer.daemon = True
        handle._timer = timer
        timer.start()
        return handle


class ManualScheduler(Scheduler):
    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._counter = itertools.count()

    def call_later(self, delay, callback):
        handle = ScheduledCall(callback, due=self.now + max(delay, 0))
        heapq.heappush(self._queue, (handle.due, next(self._counter), handle))
        return handle

    @property
    def pending(self):
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def advance(self, seconds):
        """Move the clock forward, firing every callback that falls due"""
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            self.now = due
            if not handle.cancelled:
                handle.callback()
        self.now = target

    def run_all(self):
        """Fire everything still queued, in due order"""
        while self._queue:
            self.advance(self._queue[0][0] - self.now)
