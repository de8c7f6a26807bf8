"""xmrwatch: XMR price alerts over Telegram."""

from .alertset import AlertSet
from .crossing import Crossing, Direction, crossed
from .price import Currency, PriceQuote, PriceSource
from .registry import Subscriber, SubscriberRegistry
from .watcher import PriceWatcher

__all__ = [
    "AlertSet",
    "Crossing",
    "Currency",
    "Direction",
    "PriceQuote",
    "PriceSource",
    "PriceWatcher",
    "Subscriber",
    "SubscriberRegistry",
    "crossed",
]
