"""Progress frames, ETA projection and simulated progress during long calls."""

import logging
import threading
import time
from typing import Optional

from coachflow.exceptions import UpstreamWriteError
from coachflow.streaming.sse import FrameChannel

logger = logging.getLogger(__name__)


def remaining_eta(estimate_ms: Optional[int], progress: int) -> Optional[int]:
    """Seconds left at `progress` percent, or None without an estimate."""
    if estimate_ms is None:
        return None
    return max(0, round(estimate_ms * (100 - progress) / 100 / 1000))


class ProgressEmitter:
    """
    Writes progress frames for one stream invocation.

    Progress never goes backwards within a stream, and nothing is written
    after the terminal `complete` or `error` frame. A failed write means the
    client is gone: it is absorbed and later frames are dropped.
    """

    def __init__(self, channel: FrameChannel, estimate_ms: Optional[int] = None):
        self.channel = channel
        self.estimate_ms = estimate_ms
        self.last_progress = 0
        self.frames_sent = 0
        self.connected = True
        self.terminated = False
        self._lock = threading.Lock()

    def progress(self, phase: str, progress: int, message: str, detail: Optional[str] = None) -> None:
        with self._lock:
            progress = max(int(progress), self.last_progress)
            self.last_progress = progress

            frame = {"phase": phase, "progress": progress, "message": message}
            eta = remaining_eta(self.estimate_ms, progress)
            if eta is not None:
                frame["eta"] = eta
            if detail:
                frame["detail"] = detail
            self._write(frame)

    def complete(self, split_plan_id: Optional[str], message: str) -> None:
        with self._lock:
            self.last_progress = 100
            frame = {"phase": "complete", "progress": 100, "message": message}
            eta = remaining_eta(self.estimate_ms, 100)
            if eta is not None:
                frame["eta"] = eta
            frame["splitPlanId"] = split_plan_id
            self._write(frame)
            self.terminated = True

    def error(self, message: str) -> None:
        with self._lock:
            self._write({"phase": "error", "error": message})
            self.terminated = True

    def _write(self, frame: dict) -> None:
        if self.terminated:
            logger.warning(f"Dropping {frame['phase']} frame after terminal frame")
            return
        if not self.connected:
            return
        try:
            self.channel.send(frame)
            self.frames_sent += 1
        except UpstreamWriteError:
            self.connected = False
            logger.info("Client disconnected, no further progress frames will be sent")


class ProgressTicker:
    """
    Emits interpolated progress on a timer while a blocking call runs.

    Used as a context manager around the call; progress moves linearly from
    `start` to `end` over `duration_s` and never beyond `end`.
    """

    def __init__(
        self,
        emitter: ProgressEmitter,
        phase: str,
        start: int,
        end: int,
        duration_s: float,
        message: str,
        interval_s: float = 2.0,
    ):
        self.emitter = emitter
        self.phase = phase
        self.start = start
        self.end = end
        self.duration_s = duration_s
        self.message = message
        self.interval_s = interval_s
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last = start

    def __enter__(self):
        self._thread = threading.Thread(target=self._loop, name="progress-ticker", daemon=True)
        self._thread.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self._stop.set()
        if self._thread:
            self._thread.join()
        return False

    def value_at(self, elapsed_s: float) -> int:
        if self.duration_s <= 0:
            return self.end
        fraction = min(1.0, elapsed_s / self.duration_s)
        return self.start + int((self.end - self.start) * fraction)

    def _loop(self):
        started = time.monotonic()
        while not self._stop.wait(self.interval_s):
            value = self.value_at(time.monotonic() - started)
            if value > self._last:
                self._last = value
                self.emitter.progress(self.phase, value, self.message)
            if value >= self.end:
                return
