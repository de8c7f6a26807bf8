"""
Subscriber registry: chat id -> alert thresholds + last observed price.

Locking
-------
* the id -> subscriber map is guarded by a :class:`ReadWriteLock`; lookups
  take the read side, creation takes the write side and re-checks the map
* every subscriber has its own mutex around alert mutation, persistence and
  crossing evaluation
* alert mutations are persist-then-commit: the change is applied to a copy,
  the copy is written to the store and only then replaces the in-memory set,
  so a failed write leaves memory untouched
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from xmrwatch.alertset import AlertSet
from xmrwatch.crossing import Crossing, crossed
from xmrwatch.locks import ReadWriteLock
from xmrwatch.price import Currency, PriceQuote
from xmrwatch.store import AlertStore

log = logging.getLogger(__name__)

PriceGetter = Callable[[], PriceQuote]
Notify = Callable[[int, str], None]


class Subscriber:
    def __init__(self, chat_id: int, alerts: AlertSet, last_price: PriceQuote):
        self.chat_id = chat_id
        self.alerts = alerts
        self.last_price = last_price
        self.lock = threading.Lock()

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"Subscriber(chat_id={self.chat_id}, alerts={len(self.alerts)})"


class SubscriberRegistry:
    def __init__(
        self,
        store: AlertStore,
        current_price: PriceGetter,
        notify: Notify,
        subscribers: Optional[Dict[int, Subscriber]] = None,
    ):
        self.store = store
        self.current_price = current_price
        self.notify = notify
        self._subscribers: Dict[int, Subscriber] = dict(subscribers or {})
        self._lock = ReadWriteLock()

    @classmethod
    def load(cls, store: AlertStore, current_price: PriceGetter, notify: Notify) -> "SubscriberRegistry":
        """Restore every stored subscriber; last price starts at the current price."""
        price = current_price()
        subscribers = {
            chat_id: Subscriber(chat_id, alerts, price)
            for chat_id, alerts in store.load_all().items()
        }
        log.info("loaded %s subscriber(s) from the database", len(subscribers))
        return cls(store, current_price, notify, subscribers)

    # ---------- lookup ----------

    def get(self, chat_id: int) -> Optional[Subscriber]:
        with self._lock.read():
            return self._subscribers.get(chat_id)

    def get_or_create(self, chat_id: int) -> Subscriber:
        with self._lock.read():
            subscriber = self._subscribers.get(chat_id)
        if subscriber is not None:
            return subscriber

        with self._lock.write():
            # another caller may have created it while we waited for the lock
            subscriber = self._subscribers.get(chat_id)
            if subscriber is not None:
                return subscriber
            subscriber = Subscriber(chat_id, AlertSet(), self.current_price())
            self.store.save(chat_id, subscriber.alerts)
            self._subscribers[chat_id] = subscriber
            log.info("new subscriber %s", chat_id)
            return subscriber

    def snapshot(self) -> List[Subscriber]:
        with self._lock.read():
            return list(self._subscribers.values())

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._subscribers)

    def __contains__(self, chat_id: object) -> bool:
        with self._lock.read():
            return chat_id in self._subscribers

    # ---------- alert mutation ----------

    def _mutate(self, chat_id: int, change: Callable[[AlertSet], object]) -> object:
        subscriber = self.get_or_create(chat_id)
        with subscriber.lock:
            candidate = subscriber.alerts.copy()
            result = change(candidate)
            self.store.save(chat_id, candidate)
            subscriber.alerts = candidate
        return result

    def add_alert(self, chat_id: int, currency: Currency, price: float) -> None:
        self._mutate(chat_id, lambda alerts: alerts.add(currency, price))

    def remove_alert(self, chat_id: int, currency: Currency, index: int) -> float:
        return self._mutate(chat_id, lambda alerts: alerts.remove_at(currency, index))

    def clear_alerts(self, chat_id: int) -> None:
        self._mutate(chat_id, lambda alerts: alerts.clear())

    def list_alerts(self, chat_id: int) -> Dict[Currency, List[Tuple[int, float]]]:
        subscriber = self.get_or_create(chat_id)
        with subscriber.lock:
            return subscriber.alerts.list()

    # ---------- price updates ----------

    def on_price_changed(self, old: PriceQuote, new: PriceQuote) -> int:
        """Evaluate every subscriber against ``new`` and notify each crossing.

        ``old`` is the previous global price; crossings are judged against each
        subscriber's own last observed price, which equals ``old`` unless the
        subscriber joined after the previous tick. Returns the number of
        notifications queued.
        """
        sent = 0
        for subscriber in self.snapshot():
            with subscriber.lock:
                crossings: List[Crossing] = crossed(subscriber.last_price, new, subscriber.alerts)
                subscriber.last_price = new
            for crossing in crossings:
                log.info("chat %s: %s", subscriber.chat_id, crossing.message())
                self.notify(subscriber.chat_id, crossing.message())
                sent += 1
        if sent:
            log.debug("price %s -> %s produced %s alert(s)", old, new, sent)
        return sent


__all__ = ["Subscriber", "SubscriberRegistry"]
