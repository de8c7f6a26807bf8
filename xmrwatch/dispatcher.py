"""Fire-and-forget delivery of chat messages through a single worker thread."""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, Optional

log = logging.getLogger(__name__)

Transport = Callable[[int, str], None]

TRY_LIMIT = 5

_STOP = object()


class NotificationDispatcher:
    """Serialises outgoing messages and retries failed sends.

    ``send`` only enqueues; one worker thread hands the messages to
    ``transport`` in call order. A message is attempted ``max_attempts``
    times and then dropped with a warning. There is no backoff unless
    ``retry_delay`` is set.
    """

    def __init__(
        self,
        transport: Transport,
        max_attempts: int = TRY_LIMIT,
        retry_delay: float = 0.0,
        autostart: bool = True,
    ):
        self.transport = transport
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._closed = threading.Event()
        self._thread: Optional[threading.Thread] = None
        if autostart:
            self.start()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="xmr-dispatcher", daemon=True)
        self._thread.start()

    def send(self, chat_id: int, text: str) -> None:
        if self._closed.is_set():
            log.warning("dispatcher stopped, dropping message to %s", chat_id)
            return
        self._queue.put((chat_id, text))

    def pending(self) -> int:
        return self._queue.qsize()

    def join(self) -> None:
        """Block until everything queued so far has been handled."""
        self._queue.join()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop accepting messages and give the worker ``timeout`` seconds to drain."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._queue.put(_STOP)
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                log.warning("dispatcher did not drain in time, %s message(s) abandoned", self.pending())

    # ------------------------------------------------------------------ #
    # worker                                                             #
    # ------------------------------------------------------------------ #
    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                chat_id, text = item
                self.deliver(chat_id, text)
            finally:
                self._queue.task_done()

    def deliver(self, chat_id: int, text: str) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                self.transport(chat_id, text)
                return True
            except Exception as exc:  # noqa: BLE001 - transport errors are retried
                log.warning(
                    "failed to send message to %s (try %s/%s): %s",
                    chat_id,
                    attempt,
                    self.max_attempts,
                    exc,
                )
            if self.retry_delay and attempt < self.max_attempts:
                time.sleep(self.retry_delay)

        log.warning("unable to deliver message %r to %s", text, chat_id)
        return False


__all__ = ["NotificationDispatcher", "Transport", "TRY_LIMIT"]
