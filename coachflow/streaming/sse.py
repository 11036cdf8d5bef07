"""Server-Sent-Events framing and the per-request frame channel."""

import json
import logging
import queue
import threading
from typing import Any, AsyncIterator, Callable, Dict, Iterator

import anyio
import anyio.to_thread

from coachflow.exceptions import UpstreamWriteError

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

_CLOSE = object()
_IDLE = object()


def encode_frame(payload: Dict[str, Any]) -> bytes:
    """Encode one event as an SSE `data:` frame."""
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")


class FrameChannel:
    """
    Thread-safe hand-off between the orchestrator and the HTTP response.

    The orchestrator thread calls `send` without waiting for the client; the
    response drains `aiter_bytes` (or `iter_bytes` outside an event loop). Once the response iterator is torn down
    (client gone) every further `send` raises UpstreamWriteError.
    """

    def __init__(self, encoder: Callable[[Dict[str, Any]], bytes] = encode_frame):
        self._encoder = encoder
        self._queue: "queue.Queue" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._disconnected = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    def send(self, payload: Dict[str, Any]) -> None:
        with self._lock:
            if self._disconnected:
                raise UpstreamWriteError("Client disconnected")
            if self._closed:
                raise UpstreamWriteError("Stream already closed")
            self._queue.put(self._encoder(payload))

    def close(self) -> None:
        """End the stream. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSE)

    def disconnect(self) -> None:
        with self._lock:
            if not self._closed:
                logger.info("Stream consumer went away before the stream was closed")
            self._disconnected = True

    def iter_bytes(self) -> Iterator[bytes]:
        """Encoded frames in send order, until the channel is closed."""
        finished = False
        try:
            while True:
                item = self._queue.get()
                if item is _CLOSE:
                    finished = True
                    return
                yield item
        finally:
            if not finished:
                self.disconnect()

    async def aiter_bytes(self, poll_interval: float = 1.0) -> AsyncIterator[bytes]:
        """
        Encoded frames in send order, drained without holding a shared worker thread.

        Each wait runs on a thread of this channel's own limiter, so a slow
        generation never occupies the threadpool that sync routes run on. The
        wait returns every `poll_interval` seconds, which lets a cancelled
        response (client gone) stop promptly.
        """
        limiter = anyio.CapacityLimiter(1)
        finished = False
        try:
            while True:
                item = await anyio.to_thread.run_sync(self._next, poll_interval, limiter=limiter)
                if item is _IDLE:
                    continue
                if item is _CLOSE:
                    finished = True
                    return
                yield item
        finally:
            if not finished:
                self.disconnect()

    def _next(self, timeout: float) -> Any:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return _IDLE
