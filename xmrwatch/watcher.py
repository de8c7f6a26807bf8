"""Polls the price source and fans each new quote out to observers."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, List, Optional

from xmrwatch.config import DEFAULT_FETCH_INTERVAL
from xmrwatch.errors import FetchError, StartupError
from xmrwatch.locks import ReadWriteLock
from xmrwatch.price import PriceQuote, PriceSource

log = logging.getLogger(__name__)

Observer = Callable[[PriceQuote, PriceQuote], None]


class WatcherState(Enum):
    PRIMING = "priming"
    RUNNING = "running"
    STOPPED = "stopped"


class PriceWatcher:
    """Single writer of the current XMR price.

    Construction fetches the initial quote synchronously and raises
    :class:`StartupError` if that fails. Afterwards a daemon thread fetches a
    new quote every ``interval`` seconds; failed ticks are logged and skipped.
    """

    def __init__(
        self,
        source: PriceSource,
        interval: float = DEFAULT_FETCH_INTERVAL,
        autostart: bool = True,
    ):
        if not interval or interval <= 0:
            log.warning(
                "invalid fetch interval %r, falling back to %ss", interval, DEFAULT_FETCH_INTERVAL
            )
            interval = DEFAULT_FETCH_INTERVAL

        self.source = source
        self.interval = interval
        self.state = WatcherState.PRIMING

        self._price_lock = ReadWriteLock()
        self._observers: List[Observer] = []
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        try:
            self._current = source.fetch()
        except FetchError as exc:
            log.error("failed to fetch initial xmr price: %s", exc)
            raise StartupError(f"failed to fetch initial xmr price: {exc}") from exc

        self.state = WatcherState.RUNNING
        log.info("initial xmr price: %s", self._current)
        if autostart:
            self.start()

    # ------------------------------------------------------------------ #
    # public API                                                         #
    # ------------------------------------------------------------------ #
    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def current_price(self) -> PriceQuote:
        with self._price_lock.read():
            return self._current

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        if self._thread is not None or self.stopped:
            return
        self._thread = threading.Thread(target=self._run, name="xmr-price-watcher", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Cancel the polling loop; safe to call more than once."""
        if self.stopped:
            return
        # no tick publishes once this returns
        with self._price_lock.write():
            self._stop_event.set()
            self.state = WatcherState.STOPPED
        log.info("price watcher stopped")

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    # ------------------------------------------------------------------ #
    # polling                                                            #
    # ------------------------------------------------------------------ #
    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.tick()
            except Exception:  # noqa: BLE001
                log.exception("unexpected error in price tick")

    def tick(self) -> bool:
        """Fetch once and notify observers. Returns ``True`` if a new quote was published."""
        try:
            new = self.source.fetch()
        except FetchError as exc:
            log.warning("skipping price tick: %s", exc)
            return False

        if self.stopped:
            log.debug("watcher stopped during fetch, discarding %s", new)
            return False

        with self._price_lock.write():
            if self.stopped:
                log.debug("watcher stopped before publish, discarding %s", new)
                return False
            old, self._current = self._current, new

        for observer in list(self._observers):
            try:
                observer(old, new)
            except Exception:  # noqa: BLE001
                log.exception("price observer %r failed", observer)
        return True


__all__ = ["PriceWatcher", "WatcherState", "Observer"]
