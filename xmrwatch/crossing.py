"""Threshold crossing detection between two consecutive quotes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List

from xmrwatch.alertset import AlertSet
from xmrwatch.price import ASSET_SYMBOL, CURRENCIES, Currency, PriceQuote, format_price


class Direction(Enum):
    RISEN_ABOVE = "risen above"
    FALLEN_BELOW = "fallen below"


@dataclass(frozen=True)
class Crossing:
    currency: Currency
    threshold: float
    direction: Direction

    def message(self) -> str:
        return (
            f"Price alert: {ASSET_SYMBOL.lower()} price has {self.direction.value} "
            f"{format_price(self.threshold)} {self.currency}"
        )


def crossed(old: PriceQuote, new: PriceQuote, alert_set: AlertSet) -> List[Crossing]:
    """Return every threshold of ``alert_set`` that lies between ``old`` and ``new``.

    ``low``/``high`` are picked by comparing the BTC field only, and that
    ordering is applied to all four currencies. A threshold ``t`` is crossed
    iff ``low[c] <= t < high[c]``; the direction is taken from the currency's
    own old/new values. Identical quotes never yield a crossing.
    """
    low, high = (old, new) if old.less(new) else (new, old)

    result: List[Crossing] = []
    for currency in CURRENCIES:
        lo, hi = low[currency], high[currency]
        if not lo < hi:
            continue
        direction = (
            Direction.RISEN_ABOVE if new[currency] > old[currency] else Direction.FALLEN_BELOW
        )
        for threshold in alert_set.prices(currency):
            if threshold >= hi:
                break  # thresholds are sorted
            if lo <= threshold:
                result.append(Crossing(currency, threshold, direction))
    return result


__all__ = ["Crossing", "Direction", "crossed"]
