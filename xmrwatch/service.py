"""Service root: builds and owns every long-lived component."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from xmrwatch.commands import handle_alert_command, price_message
from xmrwatch.config import Settings
from xmrwatch.dispatcher import NotificationDispatcher, Transport
from xmrwatch.notify import TelegramTransport
from xmrwatch.price import PriceQuote, PriceSource
from xmrwatch.registry import SubscriberRegistry
from xmrwatch.store import AlertStore
from xmrwatch.watcher import PriceWatcher

log = logging.getLogger(__name__)


class XmrWatchService:
    def __init__(
        self,
        store: AlertStore,
        watcher: PriceWatcher,
        dispatcher: NotificationDispatcher,
        registry: SubscriberRegistry,
    ):
        self.store = store
        self.watcher = watcher
        self.dispatcher = dispatcher
        self.registry = registry
        self._stop_lock = threading.Lock()
        self._stopped = False

    @classmethod
    def build(
        cls,
        store: AlertStore,
        watcher: PriceWatcher,
        transport: Transport,
        max_attempts: int = 5,
    ) -> "XmrWatchService":
        dispatcher = NotificationDispatcher(transport, max_attempts=max_attempts)
        registry = SubscriberRegistry.load(store, watcher.current_price, dispatcher.send)
        watcher.subscribe(registry.on_price_changed)
        return cls(store, watcher, dispatcher, registry)

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[Transport] = None) -> "XmrWatchService":
        """Build everything from ``settings``.

        Raises :class:`StartupError` if no initial price can be fetched or the
        database cannot be opened.
        """
        source = PriceSource(
            api_key=settings.CRYPTOCOMPARE_API_KEY,
            url=settings.PRICE_API_URL,
            proxy=settings.NETWORK_PROXY,
            timeout=settings.REQUEST_TIMEOUT,
        )
        watcher = PriceWatcher(source, interval=settings.FETCH_INTERVAL, autostart=False)
        store = AlertStore.open(settings.XMRWATCH_DB_PATH, retries=settings.DB_CONNECT_RETRIES)
        if transport is None:
            transport = TelegramTransport(
                settings.TELEGRAM_BOT_TOKEN or "",
                api_url=settings.TELEGRAM_API_URL,
                proxy=settings.NETWORK_PROXY,
                timeout=settings.REQUEST_TIMEOUT,
            )
        return cls.build(store, watcher, transport, max_attempts=settings.MAX_RETRIES)

    # ---------- lifecycle ----------

    def start(self) -> None:
        self.watcher.start()
        log.info(
            "xmrwatch started: %s subscriber(s), polling every %ss",
            len(self.registry),
            self.watcher.interval,
        )

    def stop(self, timeout: float = 5.0) -> None:
        with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True
        self.watcher.stop()
        self.dispatcher.stop(timeout)
        self.store.close()
        log.info("xmrwatch stopped")

    # ---------- command entry points ----------

    def current_price(self) -> PriceQuote:
        return self.watcher.current_price()

    def handle_alert(self, chat_id: int, text: str) -> str:
        return handle_alert_command(self.registry, chat_id, text)

    def handle_price(self) -> str:
        return price_message(self.current_price())


__all__ = ["XmrWatchService"]
